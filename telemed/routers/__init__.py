# Routers package
from . import appointments_router
from . import doctors_router
from . import notifications_router
from . import users_router
from . import waiting_room_router

__all__ = [
    "appointments_router",
    "doctors_router",
    "notifications_router",
    "users_router",
    "waiting_room_router",
]

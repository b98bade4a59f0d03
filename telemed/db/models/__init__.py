# Models package (re-export feature modules for stable imports)
from .users.user import User
from .health.appointment import Appointment
from .health.notification import Notification

__all__ = [
    "User",
    "Appointment",
    "Notification",
]

# Schemas package (re-export feature modules for stable imports)
from .users.user import *
from .doctors.doctor import *
from .appointments.appointment import *
from .notifications.notification import *
from .common.common import *

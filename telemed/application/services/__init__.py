# Services package (re-export feature modules for stable imports)
from .appointments_service import AppointmentsService, PaymentLinkService
from .waiting_room import WaitingRoomService, WaitingRoomQueue, WaitingEntry
from .notification_inbox import NotificationInbox
from .profile_service import ProfileService
from .doctor_directory import DoctorDirectory

import warnings
from datetime import datetime

from sqlmodel import select

from telemed.application.ports.appointments_repo import AppointmentDto, AppointmentStatus, AppointmentType
from telemed.application.ports.notifier import NotificationEvent, NotificationIntent
from telemed.application.services.notification_intents import build_intents, render
from telemed.core.config import Settings
from telemed.database import engine
from telemed.db.models import Notification
from telemed.infrastructure.notifications import push_dispatcher
from telemed.infrastructure.notifications.dispatchers import BackgroundDispatcher, CompositeDispatcher, build_notifier
from telemed.infrastructure.notifications.inbox_dispatcher import InboxDispatcher

APPT = AppointmentDto(
    id="a1",
    patient_id="p1",
    doctor_id="d1",
    type=AppointmentType.SCHEDULED,
    scheduled_time=datetime(2030, 3, 5, 14, 30),
    status=AppointmentStatus.SCHEDULED,
    created_at=datetime(2030, 1, 1),
)


class Boom:
    def deliver(self, intent):
        raise RuntimeError("down")


class Recorder:
    def __init__(self):
        self.seen = []

    def deliver(self, intent):
        self.seen.append(intent)


def test_booked_message_mentions_slot():
    [intent] = build_intents(NotificationEvent.APPOINTMENT_BOOKED, ("d1",), APPT)
    title, body = render(intent)
    assert title == "New Appointment Booked"
    assert "Mar 05, 2030 at 14:30" in body
    assert intent.payload["status"] == "scheduled"


def test_inbox_dispatcher_stores_notification(session):
    intent = NotificationIntent(NotificationEvent.WAITING_ROOM_JOINED, "d1", {"appointment_id": "a1"})
    InboxDispatcher(engine).deliver(intent)
    rows = session.exec(select(Notification).where(Notification.user_id == "d1")).all()
    assert [(n.type, n.title, n.is_read) for n in rows] == [("WaitingRoomJoined", "Patient in Waiting Room", False)]


def test_composite_keeps_going_after_a_failure():
    recorder = Recorder()
    intent = NotificationIntent(NotificationEvent.APPOINTMENT_CANCELLED, "p1")
    CompositeDispatcher([Boom(), recorder]).deliver(intent)
    assert recorder.seen == [intent]


def test_background_dispatcher_defers():
    class Tasks:
        def __init__(self):
            self.queued = []

        def add_task(self, fn, *args):
            self.queued.append((fn, args))

    tasks, recorder = Tasks(), Recorder()
    intent = NotificationIntent(NotificationEvent.APPOINTMENT_STARTED, "p1")
    BackgroundDispatcher(tasks, recorder).deliver(intent)
    assert recorder.seen == []
    fn, args = tasks.queued[0]
    fn(*args)
    assert recorder.seen == [intent]


def test_push_message_carries_event_type():
    intent = build_intents(NotificationEvent.APPOINTMENT_STARTED, ("p1",), APPT)[0]
    message = push_dispatcher.build_message(intent, "device-token")
    assert message.fid == "device-token"
    assert message.token is None
    assert message.data["type"] == "AppointmentStarted"
    assert message.data["appointment_id"] == "a1"
    assert message.notification.title == "Appointment Started"


def test_notifier_without_push_is_inbox_only():
    notifier = build_notifier(engine, Settings(PUSH_NOTIFICATIONS_ENABLED=False))
    assert [type(d) for d in notifier.dispatchers] == [InboxDispatcher]


def test_push_enabled_but_unconfigured_falls_back_to_inbox():
    settings = Settings(PUSH_NOTIFICATIONS_ENABLED=True, FIREBASE_PROJECT_ID="", FIREBASE_PRIVATE_KEY="", FIREBASE_CLIENT_EMAIL="")
    notifier = build_notifier(engine, settings)
    assert [type(d) for d in notifier.dispatchers] == [InboxDispatcher]


def test_push_skips_users_without_token(monkeypatch, session):
    sent = []
    monkeypatch.setattr(push_dispatcher.messaging, "send", lambda message, app=None: sent.append(message))
    dispatcher = push_dispatcher.PushDispatcher(engine, app=object())
    dispatcher.deliver(NotificationIntent(NotificationEvent.APPOINTMENT_STARTED, "nobody"))
    assert sent == []


def test_push_message_uses_installation_id_without_warnings():
    intent = NotificationIntent(NotificationEvent.WAITING_ROOM_JOINED, "d1", {"appointment_id": "a1"})
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        message = push_dispatcher.build_message(intent, "fid-123")
    assert message.fid == "fid-123"

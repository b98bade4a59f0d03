from datetime import timedelta
from itertools import count

import pytest

from telemed.application.errors import BookingRejected, InvalidTransition, NotAuthorized, RecordNotFound, StoreConflict
from telemed.application.ports.appointments_repo import AppointmentStatus, AppointmentType
from telemed.application.ports.notifier import NotificationEvent
from telemed.application.ports.user_repo import UserRole
from telemed.application.services.appointments_service import AppointmentsService, PaymentLinkService
from telemed.application.services.waiting_room import WaitingRoomService

from fakes import Clock, FailingNotifier, FakeIdentity, InMemoryAppointments, RecordingAudit, RecordingNotifier

ROLES = {
    "p1": UserRole.PATIENT,
    "p2": UserRole.PATIENT,
    "d1": UserRole.DOCTOR,
    "d2": UserRole.DOCTOR,
}


@pytest.fixture
def env():
    ids = count(1)
    clock = Clock()
    repo = InMemoryAppointments()
    identity = FakeIdentity(ROLES)
    notifier = RecordingNotifier()
    audit = RecordingAudit()
    svc = AppointmentsService(
        repo=repo,
        identity=identity,
        notifier=notifier,
        audit=audit,
        clock=clock,
        id_factory=lambda: f"a{next(ids)}",
    )
    return svc, repo, identity, notifier, audit, clock


def book(svc, identity, clock, patient="p1", doctor="d1", hours=2):
    identity.act_as(patient)
    return svc.book(doctor, AppointmentType.SCHEDULED, clock.now + timedelta(hours=hours))


def test_book_stores_and_notifies_doctor(env):
    svc, repo, identity, notifier, audit, clock = env
    appt = book(svc, identity, clock)
    assert repo.get(appt.id).status == AppointmentStatus.SCHEDULED
    assert appt.version == 1
    assert [(i.event, i.recipient_id) for i in notifier.delivered] == [(NotificationEvent.APPOINTMENT_BOOKED, "d1")]
    assert audit.entries[-1] == ("book", "p1", appt.id, True)


def test_book_unknown_doctor(env):
    svc, repo, identity, notifier, audit, clock = env
    identity.act_as("p1")
    with pytest.raises(RecordNotFound):
        svc.book("nobody", AppointmentType.INSTANT)
    assert repo.rows == {}
    assert audit.entries[-1][3] is False


def test_book_rejects_overlapping_slot(env):
    svc, repo, identity, notifier, audit, clock = env
    book(svc, identity, clock, hours=2)
    identity.act_as("p2")
    with pytest.raises(BookingRejected):
        svc.book("d1", AppointmentType.SCHEDULED, clock.now + timedelta(hours=2, minutes=10))
    # a full slot away is free, and other doctors are unaffected
    svc.book("d1", AppointmentType.SCHEDULED, clock.now + timedelta(hours=2, minutes=30))
    svc.book("d2", AppointmentType.SCHEDULED, clock.now + timedelta(hours=2, minutes=10))
    assert len(repo.rows) == 3


def test_cancelled_appointment_frees_slot(env):
    svc, repo, identity, notifier, audit, clock = env
    first = book(svc, identity, clock)
    svc.cancel(first.id)
    identity.act_as("p2")
    svc.book("d1", AppointmentType.SCHEDULED, first.scheduled_time)


def test_two_patients_waiting_then_doctor_starts_first(env):
    svc, repo, identity, notifier, audit, clock = env
    a = book(svc, identity, clock, patient="p1", hours=1)
    b = book(svc, identity, clock, patient="p2", hours=3)
    waiting_room = WaitingRoomService(repo=repo, identity=identity, clock=clock)

    identity.act_as("p1")
    svc.join_waiting_room(a.id)
    clock.advance(minutes=1)
    identity.act_as("p2")
    svc.join_waiting_room(b.id)

    queue = [e.appointment.id for e in waiting_room.list_waiting("d1").entries()]
    assert queue == [a.id, b.id]

    notifier.delivered.clear()
    identity.act_as("d1")
    started = svc.start(a.id)
    assert started.status == AppointmentStatus.IN_PROGRESS
    assert started.waiting_room_joined_at is None
    assert [(i.event, i.recipient_id) for i in notifier.delivered] == [(NotificationEvent.APPOINTMENT_STARTED, "p1")]

    entries = waiting_room.list_waiting("d1").snapshot()
    assert [(e.appointment.id, e.position) for e in entries] == [(b.id, 1)]


def test_each_successful_write_bumps_version(env):
    svc, repo, identity, notifier, audit, clock = env
    appt = book(svc, identity, clock)
    joined = svc.join_waiting_room(appt.id)
    left = svc.leave_waiting_room(appt.id)
    assert (joined.version, left.version) == (2, 3)


def test_stale_read_raises_store_conflict(env):
    svc, repo, identity, notifier, audit, clock = env
    appt = book(svc, identity, clock)
    stale = repo.get(appt.id)
    svc.join_waiting_room(appt.id)
    notifier.delivered.clear()

    live_get = repo.get
    repo.get = lambda appointment_id: stale
    with pytest.raises(StoreConflict):
        svc.cancel(appt.id)
    repo.get = live_get

    assert repo.get(appt.id).status == AppointmentStatus.SCHEDULED
    assert notifier.delivered == []
    assert audit.entries[-1] == ("cancel", "p1", appt.id, False)


def test_rejected_command_changes_nothing(env):
    svc, repo, identity, notifier, audit, clock = env
    appt = book(svc, identity, clock)
    notifier.delivered.clear()
    with pytest.raises(NotAuthorized):
        svc.start(appt.id)
    assert repo.get(appt.id) == appt
    assert notifier.delivered == []


def test_missing_appointment(env):
    svc, repo, identity, notifier, audit, clock = env
    identity.act_as("p1")
    with pytest.raises(RecordNotFound):
        svc.join_waiting_room("missing")


def test_failed_delivery_does_not_undo_transition(env):
    svc, repo, identity, notifier, audit, clock = env
    appt = book(svc, identity, clock)
    svc.notifier = FailingNotifier()
    joined = svc.join_waiting_room(appt.id)
    assert joined.waiting_room_joined_at == clock.now
    assert repo.get(appt.id).is_waiting


def test_get_is_limited_to_parties(env):
    svc, repo, identity, notifier, audit, clock = env
    appt = book(svc, identity, clock)
    identity.act_as("d1")
    assert svc.get(appt.id).id == appt.id
    identity.act_as("p2")
    with pytest.raises(NotAuthorized):
        svc.get(appt.id)


def test_list_mine_by_role_and_status(env):
    svc, repo, identity, notifier, audit, clock = env
    a = book(svc, identity, clock, patient="p1", hours=5)
    b = book(svc, identity, clock, patient="p1", doctor="d2", hours=1)
    book(svc, identity, clock, patient="p2", hours=9)
    identity.act_as("p1")
    svc.cancel(a.id)

    assert [x.id for x in svc.list_mine()] == [b.id, a.id]
    assert [x.id for x in svc.list_mine(AppointmentStatus.CANCELLED)] == [a.id]
    identity.act_as("d1")
    assert len(svc.list_mine()) == 2


def test_upcoming_skips_past_and_terminal(env):
    svc, repo, identity, notifier, audit, clock = env
    soon = book(svc, identity, clock, hours=1)
    later = book(svc, identity, clock, hours=4)
    dropped = book(svc, identity, clock, hours=8)
    svc.cancel(dropped.id)
    clock.advance(hours=2)
    identity.act_as("p1")
    assert [a.id for a in svc.upcoming()] == [later.id]
    assert soon.id not in [a.id for a in svc.upcoming()]


def test_pending_payments_and_payment_link(env):
    svc, repo, identity, notifier, audit, clock = env
    appt = book(svc, identity, clock)
    payments = PaymentLinkService(repo=repo, identity=identity, audit=audit)

    identity.act_as("p1")
    assert [a.id for a in svc.pending_payments()] == [appt.id]

    identity.act_as("d1")
    with pytest.raises(NotAuthorized):
        payments.record_payment(appt.id, "pay_1")

    identity.act_as("p1")
    paid = payments.record_payment(appt.id, "pay_1")
    assert paid.is_paid and paid.payment_id == "pay_1"
    assert paid.status == AppointmentStatus.SCHEDULED
    assert svc.pending_payments() == []
    with pytest.raises(InvalidTransition):
        payments.record_payment(appt.id, "pay_2")


def test_cannot_pay_for_cancelled(env):
    svc, repo, identity, notifier, audit, clock = env
    appt = book(svc, identity, clock)
    svc.cancel(appt.id)
    payments = PaymentLinkService(repo=repo, identity=identity)
    with pytest.raises(InvalidTransition):
        payments.record_payment(appt.id, "pay_1")

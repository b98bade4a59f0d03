from dataclasses import replace
from datetime import datetime, timedelta

from telemed.application.errors import RecordNotFound, StoreConflict
from telemed.application.ports.user_repo import UserDto


class Clock:
    def __init__(self, now=None):
        self.now = now or datetime(2030, 1, 1, 9, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class InMemoryAppointments:
    def __init__(self, feed=None):
        self.rows = {}
        self.feed = feed

    def _publish(self, appt):
        if self.feed is not None:
            self.feed.publish(appt)

    def get(self, appointment_id):
        return self.rows.get(appointment_id)

    def create(self, appointment):
        stored = replace(appointment, version=1)
        self.rows[stored.id] = stored
        self._publish(stored)
        return stored

    def _swap(self, appointment_id, expected_version, **changes):
        current = self.rows.get(appointment_id)
        if current is None:
            raise RecordNotFound("Appointment not found", appointment_id)
        if current.version != expected_version:
            raise StoreConflict("stale", appointment_id)
        stored = replace(current, version=expected_version + 1, **changes)
        self.rows[appointment_id] = stored
        self._publish(stored)
        return stored

    def put(self, appointment, expected_version):
        return self._swap(
            appointment.id,
            expected_version,
            status=appointment.status,
            scheduled_time=appointment.scheduled_time,
            waiting_room_joined_at=appointment.waiting_room_joined_at,
            waiting_room_left_at=appointment.waiting_room_left_at,
            updated_at=appointment.updated_at,
        )

    def record_payment(self, appointment_id, payment_id, expected_version):
        return self._swap(appointment_id, expected_version, is_paid=True, payment_id=payment_id)

    def query(self, filter, order=()):
        rows = [a for a in self.rows.values() if filter.matches(a)]
        for key in reversed(order):
            rows.sort(key=lambda a: getattr(a, key.lstrip("-")), reverse=key.startswith("-"))
        for row in rows:
            yield row

    def subscribe(self, filter):
        return self.feed.subscribe(filter)


class FakeIdentity:
    def __init__(self, roles, current=None):
        self.roles = dict(roles)
        self.current = current

    def act_as(self, user_id):
        self.current = user_id
        return self

    def current_actor_id(self):
        return self.current

    def role(self, user_id):
        return self.roles.get(user_id)


class RecordingNotifier:
    def __init__(self):
        self.delivered = []

    def deliver(self, intent):
        self.delivered.append(intent)


class FailingNotifier:
    def deliver(self, intent):
        raise ConnectionError("push gateway unreachable")


class RecordingAudit:
    def __init__(self):
        self.entries = []

    def log(self, action, actor_id, appointment_id=None, success=True, details=None):
        self.entries.append((action, actor_id, appointment_id, success))


class FakeUsers:
    def __init__(self):
        self.users = {}
        self.tokens = []

    def get_by_id(self, user_id):
        return self.users.get(user_id)

    def create(self, user_id, name, role, specialization=None):
        now = datetime(2030, 1, 1)
        self.users[user_id] = UserDto(user_id, name, role, None, now, now, specialization)
        return self.users[user_id]

    def update_profile(self, user_id, name, specialization=None):
        self.users[user_id].name = name
        self.users[user_id].specialization = specialization

    def set_fcm_token(self, user_id, token):
        self.tokens.append((user_id, token))
        self.users[user_id].fcm_token = token

    def list_by_role(self, role, name_contains=None, specialization=None, limit=50, offset=0):
        found = [
            u for u in self.users.values()
            if u.role == role
            and (not name_contains or name_contains.lower() in u.name.lower())
            and (not specialization or specialization.lower() in (u.specialization or "").lower())
        ]
        found.sort(key=lambda u: (u.name, u.id))
        return found[offset:offset + limit]

from datetime import datetime

import pytest
from fastapi import HTTPException

from telemed.application.ports.user_repo import UserRole
from telemed.application.services.doctor_directory import DoctorDirectory
from telemed.infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository

from fakes import FakeUsers

SLOT = datetime(2030, 1, 2, 10, 0)


@pytest.fixture
def users():
    repo = FakeUsers()
    repo.create("d1", "Dr. Mehta", UserRole.DOCTOR, "Prosthodontics")
    repo.create("d2", "Dr. Iyer", UserRole.DOCTOR, "Orthodontics")
    repo.create("p1", "Asha Mehta", UserRole.PATIENT)
    return repo


def test_search_lists_doctors_only(users):
    directory = DoctorDirectory(user_repo=users)
    assert [d.id for d in directory.search()] == ["d2", "d1"]
    assert [d.id for d in directory.search(query="  mehta ")] == ["d1"]
    assert [d.id for d in directory.search(specialization="ORTHO")] == ["d2"]


def test_search_by_slot_drops_busy_doctors(users):
    asked = []

    def is_available(doctor_id, at):
        asked.append((doctor_id, at))
        return doctor_id != "d1"

    directory = DoctorDirectory(user_repo=users, is_available=is_available)
    assert [d.id for d in directory.search(available_at=SLOT)] == ["d2"]
    assert asked == [("d2", SLOT), ("d1", SLOT)]
    # no slot, no availability lookups
    assert [d.id for d in directory.search()] == ["d2", "d1"]
    assert len(asked) == 2


def test_get_rejects_unknown_ids_and_patients(users):
    directory = DoctorDirectory(user_repo=users)
    assert directory.get("d1").specialization == "Prosthodontics"
    for user_id in ("p1", "ghost"):
        with pytest.raises(HTTPException) as exc:
            directory.get(user_id)
        assert exc.value.status_code == 404


def test_sql_listing_filters_orders_and_pages(session):
    repo = SqlUserRepository(session)
    repo.create("d1", "Dr. Mehta", UserRole.DOCTOR, "Prosthodontics")
    repo.create("d2", "Dr. Iyer", UserRole.DOCTOR, "Orthodontics")
    repo.create("d3", "Dr. Anand", UserRole.DOCTOR)
    repo.create("p1", "Asha Mehta", UserRole.PATIENT)

    assert [u.id for u in repo.list_by_role(UserRole.DOCTOR)] == ["d3", "d2", "d1"]
    assert [u.id for u in repo.list_by_role(UserRole.DOCTOR, name_contains="mehta")] == ["d1"]
    assert [u.id for u in repo.list_by_role(UserRole.DOCTOR, specialization="dontics")] == ["d2", "d1"]
    assert [u.id for u in repo.list_by_role(UserRole.DOCTOR, limit=1, offset=1)] == ["d2"]
    assert [u.id for u in repo.list_by_role(UserRole.PATIENT)] == ["p1"]

    repo.update_profile("d3", "Dr. Anand", "Periodontics")
    assert repo.get_by_id("d3").specialization == "Periodontics"

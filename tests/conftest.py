import os

# Settings are read at import time; point them at an in-memory database first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["PUSH_NOTIFICATIONS_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest
from sqlmodel import SQLModel, Session

from telemed.database import engine
from telemed.db import models  # noqa: F401
from telemed.utils import create_jwt_token


@pytest.fixture(autouse=True)
def fresh_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from telemed.main import app

    with TestClient(app) as c:
        yield c


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_jwt_token({'sub': user_id})}"}

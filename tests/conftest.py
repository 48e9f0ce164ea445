import os

# settings are read at import time
os.environ["ENV"] = "test"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ["AUTH_JWT_AUDIENCE"] = "gradebook"
os.environ["DEMO_DATA_FALLBACK"] = "false"
os.environ["SQLITE_PATH"] = ":memory:"

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.settings import settings
from database.db import Base, get_db
from database.init_db import create_tables
from main import app

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    create_tables(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


def make_token(sub="teacher-1", role="teacher", expires_in=timedelta(hours=1), **claims):
    payload = {
        "sub": sub,
        "role": role,
        "aud": settings.AUTH_JWT_AUDIENCE,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    payload.update(claims)
    return jwt.encode(payload, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def teacher_headers():
    return bearer(make_token(sub="teacher-1", role="teacher"))


@pytest.fixture
def other_teacher_headers():
    return bearer(make_token(sub="teacher-2", role="teacher"))


@pytest.fixture
def admin_headers():
    return bearer(make_token(sub="admin-1", role="admin"))


CLASS_PAYLOAD = {
    "name": "Algebra I",
    "section": "Section A",
    "term": "Fall 2025",
    "schedule": {
        "days": ["Mon", "Wed"],
        "start_time": "08:00",
        "end_time": "09:30",
        "start_date": "2025-09-01",
        "end_date": "2025-12-15",
    },
    "capacity": 30,
}


@pytest.fixture
def make_class(client, teacher_headers):
    def _make(headers=None, **overrides):
        payload = {**CLASS_PAYLOAD, **overrides}
        resp = client.post("/v1/classes/", json=payload, headers=headers or teacher_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["id"]
    return _make


@pytest.fixture
def make_student(client, teacher_headers):
    def _make(class_id, first_name, last_name, headers=None):
        payload = {
            "student_number": f"2025-{first_name.lower()}",
            "first_name": first_name,
            "last_name": last_name,
            "email": f"{first_name.lower()}@school.test",
        }
        resp = client.post(f"/v1/classes/{class_id}/students/", json=payload, headers=headers or teacher_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["id"]
    return _make


@pytest.fixture
def class_payload():
    return {**CLASS_PAYLOAD, "schedule": dict(CLASS_PAYLOAD["schedule"])}

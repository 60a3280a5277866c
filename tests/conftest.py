"""Test bootstrap.

Point the app at a shared in-memory SQLite database and a temporary export
directory, and make sure no OpenAI key leaks in, before anything imports it.
"""

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["EXPORT_DIR"] = tempfile.mkdtemp(prefix="plan-exports-")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("OPENAI_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from auth.security import create_access_token, hash_password
from database import crud
from database.database import Base, SessionLocal, engine
from database.models import Role


QUESTION_COUNT = 10


@pytest.fixture(autouse=True)
def _no_openai_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    from main import app
    return TestClient(app)


def _make_user(db, email, name, role):
    return crud.create_user(
        db,
        email=email,
        display_name=name,
        hashed_password=hash_password("secret"),
        role=role,
    )


def auth_header(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, Role(user.role).value)}"}


@pytest.fixture
def admin(db):
    return _make_user(db, "admin@example.org", "Admin", Role.ADMIN)


@pytest.fixture
def teacher(db):
    return _make_user(db, "marie.curie@example.org", "Marie Curie", Role.TEACHER)


@pytest.fixture
def other_teacher(db):
    return _make_user(db, "paul@example.org", "Paul Langevin", Role.TEACHER)


@pytest.fixture
def admin_headers(admin):
    return auth_header(admin)


@pytest.fixture
def teacher_headers(teacher):
    return auth_header(teacher)


@pytest.fixture
def other_teacher_headers(other_teacher):
    return auth_header(other_teacher)


def question_payload(i: int, **overrides) -> dict:
    payload = {
        "title": f"Question {i}",
        "type": "long-text",
        "required": True,
        "placeholder": "",
        "ai_rule": "Décrire le contenu du cours",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def active_form(client, admin_headers):
    """An activated form with QUESTION_COUNT questions; the last one is optional."""
    resp = client.post("/forms/", json={"title": "Plan de cours A2026", "session": "A2026"}, headers=admin_headers)
    assert resp.status_code == 201
    form_id = resp.json()["id"]
    for i in range(1, QUESTION_COUNT + 1):
        resp = client.post(
            f"/forms/{form_id}/questions",
            json=question_payload(i, required=i < QUESTION_COUNT),
            headers=admin_headers,
        )
        assert resp.status_code == 201
    resp = client.post(f"/forms/{form_id}/activate", headers=admin_headers)
    assert resp.status_code == 200
    return resp.json()

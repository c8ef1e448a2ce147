import os

# keep the app from creating app.db when it is imported under test
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from registry.database import build_engine, create_db_and_tables, get_session
from registry.main import app


@pytest.fixture()
def engine():
    """A fresh in-memory SQLite database per test."""
    eng = build_engine("sqlite://")
    create_db_and_tables(eng)
    yield eng
    SQLModel.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture()
def client(engine):
    """TestClient whose requests use the per-test database."""
    def _get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_student(client):
    def _make(name="Sam", age=25, email="sam@mail.com", **extra):
        payload = {"name": name, "age": age, "email": email, **extra}
        r = client.post("/students", json=payload)
        assert r.status_code == 201, r.text
        return r.json()
    return _make

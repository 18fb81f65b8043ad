import asyncio
import os
import tempfile
import uuid
from datetime import datetime, timezone

import pytest

# Configuration before importing the app
_DB_DIR = tempfile.mkdtemp(prefix="clinic-test-")
os.environ["SQL_DSN"] = f"sqlite+aiosqlite:///{_DB_DIR}/clinic.db"
os.environ["APP_ENV"] = "test"
os.environ["LOG_JSON"] = "false"
os.environ["JWT_SECRET"] = "test-secret"

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from clinic.core.clock import FixedClock, get_clock
from clinic.core.config import settings
from clinic.db.sql import install_sqlite_hooks
from clinic.main import app

API = "/api/v1"
NOW = datetime(2030, 1, 15, 8, 0, tzinfo=timezone.utc)
PASSWORD = "Secret123"


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def fixed_clock():
    app.dependency_overrides[get_clock] = lambda: FixedClock(NOW)
    yield
    app.dependency_overrides.pop(get_clock, None)


@pytest.fixture
def set_clock():
    def _set(instant: datetime):
        app.dependency_overrides[get_clock] = lambda: FixedClock(instant)
    return _set


def register(client, role="assistant", first_name="Test", last_name="User"):
    email = f"{role}-{uuid.uuid4().hex[:10]}@dental-clinic.org"
    res = client.post(
        f"{API}/auth/register",
        json={
            "email": email,
            "password": PASSWORD,
            "first_name": first_name,
            "last_name": last_name,
            "role": role,
        },
    )
    assert res.status_code == 201, res.text
    return email, res.json()["data"]


def login_headers(client, email):
    res = client.post(f"{API}/auth/login", json={"email": email, "password": PASSWORD})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


@pytest.fixture(scope="session")
def admin_headers(client):
    email, _ = register(client, role="admin", first_name="Ada", last_name="Admin")
    return login_headers(client, email)


@pytest.fixture(scope="session")
def assistant_headers(client):
    email, _ = register(client, role="assistant")
    return login_headers(client, email)


@pytest.fixture
def dentist(client):
    _, user = register(client, role="dentist", first_name="Marie", last_name="Curie")
    return user["id"]


@pytest.fixture
def patient(client, admin_headers):
    res = client.post(
        f"{API}/patients",
        json={
            "nom": "Durand",
            "prenom": "Paul",
            "dateNaissance": "1985-04-12",
            "adresse": "12 rue de la Paix, Paris",
            "telephone": "+33612345678",
        },
        headers=admin_headers,
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]["id"]


@pytest.fixture
def room(client, admin_headers):
    res = client.post(
        f"{API}/salles",
        json={"numero": f"S-{uuid.uuid4().hex[:6]}", "capacite": 1},
        headers=admin_headers,
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]["id"]


@pytest.fixture
def treatment(client, admin_headers):
    res = client.post(
        f"{API}/soins",
        json={"description": "Detartrage", "prix": 50, "categorie": "Hygiene"},
        headers=admin_headers,
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]["code"]


def run_db(work):
    """
    Run `await work(sessionmaker)` on a private engine bound to the test
    database, outside the app's event loop.
    """
    async def _run():
        engine = create_async_engine(settings.SQL_DSN, poolclass=NullPool)
        install_sqlite_hooks(engine)
        try:
            return await work(async_sessionmaker(engine, expire_on_commit=False, autoflush=False))
        finally:
            await engine.dispose()

    return asyncio.run(_run())

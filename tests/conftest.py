import os

# Test environment, set before qrlinks reads its configuration
os.environ["ENVIRONMENT"] = "dev"
os.environ["DATABASE_URL"] = "sqlite://"  # in-memory SQLite
os.environ["SECRET_KEY"] = "test-secret-key-that-is-comfortably-longer-than-256-bits!"
os.environ["PUBLIC_BASE_URL"] = "http://short.test"
os.environ["CORS_ORIGINS"] = ""

import httpx
import pytest
import pytest_asyncio

from qrlinks import crud, database, models
from qrlinks.auth import hash_password
from qrlinks.main import app, get_qr_storage
from qrlinks.qr_utils import QrStorage

BASE_URL = "http://short.test"


@pytest.fixture(autouse=True)
def clean_db():
    models.Base.metadata.drop_all(bind=database.engine)
    models.Base.metadata.create_all(bind=database.engine)
    yield


@pytest.fixture
def qr_dir(tmp_path):
    return tmp_path / "qr"


@pytest.fixture
def qr_storage(qr_dir):
    return QrStorage(qr_dir)


@pytest.fixture
def db():
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def owner(db):
    return crud.UserRepository(db).insert(
        models.User(email="owner@example.com", password_hash=hash_password("secret1"))
    )


@pytest.fixture
def test_app(qr_storage):
    app.dependency_overrides[get_qr_storage] = lambda: qr_storage
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(test_app):
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def signup(client: httpx.AsyncClient, email: str, password: str = "secret1") -> dict:
    """Register and log in; returns the user with its auth headers."""
    response = await client.post("/api/users", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    user = response.json()
    response = await client.post("/api/auth", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    user["headers"] = {"Authorization": f"Bearer {response.json()['access_token']}"}
    return user


@pytest_asyncio.fixture
async def alice(async_client):
    return await signup(async_client, "alice@example.com")


@pytest_asyncio.fixture
async def bob(async_client):
    return await signup(async_client, "bob@example.com")

"""
Shared fixtures for the identity service tests.

Each test gets its own SQLite file so unique constraints and concurrent
inserts behave like they do against PostgreSQL.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from identity.config import Settings
from identity.main import create_app

TEST_SECRET = "test-secret-key-for-testing-only"

ARTIST = {
    "firstname": "Angel",
    "lastname": "Pina Santana",
    "username": "0aps",
    "email": "test.artist@gmail.com",
    "password": "longpassword",
    "password_confirm": "longpassword",
    "phone": "8297413515",
    "address": "my address, my address2",
    "role": "artist",
}


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'identity.db'}",
        jwt_secret_key=TEST_SECRET,
        access_token_expire_minutes=5,
        bcrypt_rounds=4,
    )


@pytest.fixture
def make_payload():
    """Build a registration payload from the artist template."""
    def _make(**overrides):
        payload = dict(ARTIST)
        payload.update(overrides)
        return payload
    return _make


@pytest_asyncio.fixture
async def app(settings):
    app = create_app(settings)
    await app.state.directory.create_schema()
    yield app
    await app.state.directory.dispose()


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(base_url="http://test", transport=transport) as ac:
        yield ac


@pytest.fixture
def user_service(app):
    return app.state.user_service

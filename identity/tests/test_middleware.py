from datetime import timedelta
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from identity.base_microservice import BaseMicroservice
from identity.auth.errors import IdentityError
from identity.auth.jwt import AuthenticatedIdentity, TokenService
from identity.auth.middleware import get_current_identity, require_role
from identity.auth.models import Role
from identity.main import identity_error_handler

SECRET = "test-secret-key-for-testing-only"


@pytest.fixture
def tokens():
    return TokenService(SECRET, default_ttl=timedelta(minutes=5))


@pytest.fixture
def client(tokens):
    test_app = FastAPI()
    test_app.state.token_service = tokens
    test_app.state.base_service = BaseMicroservice("identity-test")
    test_app.add_exception_handler(IdentityError, identity_error_handler)

    @test_app.get("/whoami")
    async def whoami(identity: AuthenticatedIdentity = Depends(get_current_identity)):
        return {"user_id": identity.user_id, "role": identity.role.value}

    @test_app.get("/artists")
    async def artists(identity: AuthenticatedIdentity = Depends(require_role(Role.ARTIST))):
        return {"ok": True}

    @test_app.get("/admin")
    async def admin(identity: AuthenticatedIdentity = Depends(require_role(Role.ADMIN))):
        return {"ok": True, "user_id": identity.user_id}

    return TestClient(test_app)


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_missing_token(client):
    resp = client.get("/whoami")
    assert resp.status_code == 401
    assert resp.json() == {"message": "missing token"}


def test_identity_is_passed_to_handler(client, tokens):
    resp = client.get("/whoami", headers=bearer(tokens.issue(5, Role.ARTIST).token))
    assert resp.status_code == 200
    assert resp.json() == {"user_id": 5, "role": "artist"}


def test_verification_failures_are_generic(client, tokens):
    expired = tokens.issue(5, Role.ADMIN, ttl=timedelta(seconds=-1)).token
    for token in (expired, "garbage"):
        resp = client.get("/admin", headers=bearer(token))
        assert resp.status_code == 401
        assert resp.json() == {"message": "unauthorized"}


def test_admin_guard(client, tokens):
    resp = client.get("/admin", headers=bearer(tokens.issue(5, Role.ARTIST).token))
    assert resp.status_code == 403
    assert resp.json() == {"message": "forbidden"}

    resp = client.get("/admin", headers=bearer(tokens.issue(6, Role.ADMIN).token))
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "user_id": 6}


def test_admin_satisfies_lower_role(client, tokens):
    for role in (Role.ARTIST, Role.ADMIN):
        resp = client.get("/artists", headers=bearer(tokens.issue(1, role).token))
        assert resp.status_code == 200


def test_role_ranking():
    assert Role.ADMIN.satisfies(Role.ARTIST)
    assert Role.ADMIN.satisfies(Role.ADMIN)
    assert Role.ARTIST.satisfies(Role.ARTIST)
    assert not Role.ARTIST.satisfies(Role.ADMIN)


def test_role_parse():
    assert Role.parse("admin") is Role.ADMIN
    assert Role.parse(Role.ARTIST) is Role.ARTIST
    with pytest.raises(ValueError):
        Role.parse("root")
    with pytest.raises(ValueError):
        Role.parse(None)


def test_events_use_configured_service_name(client, tokens, caplog):
    with caplog.at_level("INFO", logger="identity"):
        client.get("/whoami")
        client.get("/admin", headers=bearer(tokens.issue(5, Role.ARTIST).token))
    events = [r.getMessage() for r in caplog.records if r.getMessage().startswith("EVENT: ")]
    assert any('"auth.unauthorized"' in e and '"identity-test"' in e for e in events)
    assert any('"auth.forbidden"' in e and '"identity-test"' in e for e in events)

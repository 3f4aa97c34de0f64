import json
import pytest

from identity.base_microservice import BaseMicroservice
from identity.config import DEFAULT_SECRET_KEY, Settings

base_service = BaseMicroservice("identity-test")


def test_log_event_and_error(caplog):
    with caplog.at_level("INFO", logger="identity"):
        data = base_service.log_event("pytest_log_event", {"foo": "bar"})
        assert any("pytest_log_event" in m for m in caplog.text.splitlines())
    assert data["service"] == "identity-test"
    assert data["data"] == {"foo": "bar"}

    with caplog.at_level("ERROR", logger="identity"):
        try:
            raise ValueError("test error")
        except Exception as e:
            error = base_service.log_error(e, context="pytest")
        assert any("test error" in m for m in caplog.text.splitlines())
    assert error["error_type"] == "ValueError"
    assert error["context"] == "pytest"


def test_event_payload_is_json(caplog):
    with caplog.at_level("INFO", logger="identity"):
        base_service.log_event("json_event", {"id": 1})
    line = next(r.getMessage() for r in caplog.records if "json_event" in r.getMessage())
    payload = json.loads(line[len("EVENT: "):])
    assert payload["event"] == "json_event"


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", "from-env-secret")
    monkeypatch.setenv("PASSWORD_MIN_LENGTH", "10")
    monkeypatch.setenv("BCRYPT_ROUNDS", "6")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = Settings.from_env()
    assert settings.jwt_secret_key == "from-env-secret"
    assert settings.password_min_length == 10
    assert settings.bcrypt_rounds == 6
    assert settings.log_level == "DEBUG"
    assert not settings.uses_default_secret


def test_settings_defaults(monkeypatch):
    for name in ("JWT_SECRET_KEY", "PASSWORD_MIN_LENGTH", "ACCESS_TOKEN_EXPIRE_MINUTES"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.jwt_secret_key == DEFAULT_SECRET_KEY
    assert settings.uses_default_secret
    assert settings.password_min_length == 8
    assert settings.access_token_expire_minutes == 60


def test_settings_are_immutable():
    settings = Settings()
    with pytest.raises(Exception):
        settings.jwt_secret_key = "changed"


@pytest.mark.asyncio
async def test_password_policy_follows_settings(tmp_path, make_payload):
    from identity.auth.errors import ValidationError
    from identity.main import create_app

    settings = Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'policy.db'}",
        password_min_length=12,
        bcrypt_rounds=4,
    )
    app = create_app(settings)
    await app.state.directory.create_schema()
    try:
        with pytest.raises(ValidationError):
            await app.state.user_service.register(make_payload())
    finally:
        await app.state.directory.dispose()

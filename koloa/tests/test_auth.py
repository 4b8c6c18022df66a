import hashlib
import hmac
from datetime import timedelta

import pytest
from sqlalchemy import func, select, update

from koloa.app import main
from koloa.app.core import config
from koloa.app.db.models.models_v1 import AuthSession, utcnow
from koloa.services import auth
from koloa.services.errors import TooManyAttemptsError, ValidationError


def test_login_returns_token_and_user(client, staff):
    res = client.post("/api/auth/login", json={"code": "1234"})

    assert res.status_code == 200, res.text
    body = res.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"] == {"id": staff.id, "name": "Ana", "role": "user"}


def test_token_is_stored_hashed(client, staff, db_session):
    token = client.post("/api/auth/login", json={"code": "1234"}).json()["token"]

    session = db_session.execute(select(AuthSession)).scalar_one()
    assert session.token_hash == auth.hash_token(token)
    assert session.token_hash != token


def test_pin_is_never_stored_in_clear(staff):
    assert staff.pin_hash != "1234"
    assert len(staff.pin_hash) == 64


def test_pin_digest_is_keyed_by_pepper(monkeypatch):
    monkeypatch.setattr(config, "PIN_PEPPER", "s3cret")

    expected = hmac.new(b"s3cret", b"1234", hashlib.sha256).hexdigest()
    assert auth.hash_pin("1234") == expected
    assert auth.hash_pin("1234") != hashlib.sha256(b"s3cret:1234").hexdigest()

    monkeypatch.setattr(config, "PIN_PEPPER", "other")
    assert auth.hash_pin("1234") != expected


class _Recorder:
    def __init__(self):
        self.warnings = []

    def warning(self, msg, *args):
        self.warnings.append(msg % args)


def test_default_pepper_logs_warning(monkeypatch):
    recorder = _Recorder()
    monkeypatch.setattr(main, "logger", recorder)

    monkeypatch.setattr(config, "PIN_PEPPER", config.DEFAULT_PIN_PEPPER)
    main._warn_insecure_settings()
    assert len(recorder.warnings) == 1
    assert "PIN_PEPPER" in recorder.warnings[0]

    monkeypatch.setattr(config, "PIN_PEPPER", "s3cret")
    main._warn_insecure_settings()
    assert len(recorder.warnings) == 1


@pytest.mark.parametrize("code", [None, "", "123", "12345", "12a4"])
def test_login_rejects_malformed_code(client, code):
    res = client.post("/api/auth/login", json={"code": code})

    assert res.status_code == 400
    assert res.json() == {"error": "Code must be exactly 4 digits"}


def test_login_unknown_code(client, staff):
    res = client.post("/api/auth/login", json={"code": "9999"})

    assert res.status_code == 401
    assert res.json() == {"error": "Invalid code"}


def test_login_throttled_after_repeated_failures(client, staff):
    for _ in range(3):
        assert client.post("/api/auth/login", json={"code": "9999"}).status_code == 401

    # même le bon code est refusé pendant la fenêtre de blocage
    res = client.post("/api/auth/login", json={"code": "1234"})
    assert res.status_code == 429
    assert res.json() == {"error": "Too many failed attempts. Try again later."}


def test_success_resets_ip_failures(client, staff):
    for _ in range(2):
        client.post("/api/auth/login", json={"code": "9999"})
    assert client.post("/api/auth/login", json={"code": "1234"}).status_code == 200

    for _ in range(2):
        client.post("/api/auth/login", json={"code": "9999"})
    assert client.post("/api/auth/login", json={"code": "1234"}).status_code == 200


def test_blocked_user_cannot_login(client, make_user):
    make_user(name="Bea", code="4321", blocked=True)

    res = client.post("/api/auth/login", json={"code": "4321"})

    assert res.status_code == 423
    assert res.json() == {"error": "User blocked after too many failed attempts"}


def test_user_over_failed_attempts_gets_blocked(client, make_user, db_session):
    user = make_user(name="Bea", code="4321", failed_attempts=4)

    res = client.post("/api/auth/login", json={"code": "4321"})

    assert res.status_code == 423
    db_session.refresh(user)
    assert user.blocked is True


def test_login_resets_user_failed_attempts(client, make_user, db_session):
    user = make_user(name="Bea", code="4321", failed_attempts=2)

    assert client.post("/api/auth/login", json={"code": "4321"}).status_code == 200

    db_session.refresh(user)
    assert user.failed_attempts == 0


def test_me_and_logout(client, user_headers):
    me = client.get("/api/auth/me", headers=user_headers)
    assert me.status_code == 200
    assert me.json()["name"] == "Ana"

    out = client.post("/api/auth/logout", headers=user_headers)
    assert out.status_code == 200
    assert out.json()["success"] is True

    again = client.get("/api/auth/me", headers=user_headers)
    assert again.status_code == 401
    assert again.json() == {"error": "Invalid or expired token"}


def test_expired_token_rejected(client, user_headers, db_session):
    db_session.execute(update(AuthSession).values(expires_at=utcnow() - timedelta(minutes=1)))
    db_session.commit()

    res = client.get("/api/auth/me", headers=user_headers)

    assert res.status_code == 401


def test_expired_sessions_purged_on_login(client, user_headers, db_session, login_as):
    db_session.execute(update(AuthSession).values(expires_at=utcnow() - timedelta(minutes=1)))
    db_session.commit()

    login_as("1234")

    assert db_session.execute(select(func.count(AuthSession.id))).scalar() == 1


def test_token_of_blocked_user_rejected(client, staff, user_headers, db_session):
    staff.blocked = True
    db_session.commit()

    res = client.get("/api/inventory", headers=user_headers)

    assert res.status_code == 401


def test_garbage_token_rejected(client):
    res = client.get("/api/inventory", headers={"Authorization": "Bearer not-a-token"})

    assert res.status_code == 401
    assert res.json() == {"error": "Invalid or expired token"}


# ---------- LoginThrottle ----------
def test_throttle_window_expires(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(auth.time, "monotonic", lambda: clock[0])
    throttle = auth.LoginThrottle(max_failures=2, lockout_seconds=60)

    throttle.register_failure("10.0.0.1")
    throttle.register_failure("10.0.0.1")
    with pytest.raises(TooManyAttemptsError):
        throttle.check("10.0.0.1")
    # une autre IP n'est pas concernée
    throttle.check("10.0.0.2")

    clock[0] += 61
    throttle.check("10.0.0.1")
    assert throttle.register_failure("10.0.0.1") == 1


def test_validate_pin():
    assert auth.validate_pin("0042") == "0042"
    with pytest.raises(ValidationError):
        auth.validate_pin("42")

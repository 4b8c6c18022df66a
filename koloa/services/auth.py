"""
Authentification par PIN (4 chiffres).

- le PIN est stocké sous forme de HMAC-SHA256(pepper, pin): recherche directe par
  index unique, le PIN brut n'est jamais persisté
- un login réussi crée une session (token opaque, stocké hashé, expiration)
- LoginThrottle compte les échecs par IP en mémoire (process local)
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import re
import secrets
import threading
import time
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from koloa.app.core import config
from koloa.app.db.models.models_v1 import AuthSession, User, utcnow
from koloa.services.errors import (
    AccountBlockedError,
    AuthenticationError,
    TooManyAttemptsError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PIN_PATTERN = re.compile(r"^\d{4}$")


def validate_pin(code: str | None) -> str:
    if not code or not PIN_PATTERN.match(str(code)):
        raise ValidationError("Code must be exactly 4 digits")
    return str(code)


def hash_pin(code: str) -> str:
    # HMAC avec le pepper comme clé: sans lui, les 10 000 PIN ne se testent pas
    return hmac.new(config.PIN_PEPPER.encode("utf-8"), code.encode("utf-8"), hashlib.sha256).hexdigest()


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def find_user_by_pin(db: Session, code: str) -> User | None:
    return db.execute(select(User).where(User.pin_hash == hash_pin(code))).scalar_one_or_none()


class LoginThrottle:
    """
    Compteur d'échecs de login par IP.

    Après `max_failures` échecs dans la fenêtre `lockout_seconds`, toute
    nouvelle tentative depuis cette IP est refusée jusqu'à expiration.
    """

    def __init__(self, max_failures: int, lockout_seconds: float):
        self.max_failures = max_failures
        self.lockout_seconds = lockout_seconds
        self._failures: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def _current(self, ip: str) -> int:
        count, first_at = self._failures.get(ip, (0, 0.0))
        if count and time.monotonic() - first_at > self.lockout_seconds:
            self._failures.pop(ip, None)
            return 0
        return count

    def check(self, ip: str) -> None:
        with self._lock:
            if self._current(ip) >= self.max_failures:
                raise TooManyAttemptsError("Too many failed attempts. Try again later.")

    def register_failure(self, ip: str) -> int:
        with self._lock:
            count = self._current(ip)
            first_at = self._failures[ip][1] if count else time.monotonic()
            self._failures[ip] = (count + 1, first_at)
            return count + 1

    def reset(self, ip: str) -> None:
        with self._lock:
            self._failures.pop(ip, None)

    def clear(self) -> None:
        with self._lock:
            self._failures.clear()


login_throttle = LoginThrottle(
    max_failures=config.LOGIN_MAX_FAILURES,
    lockout_seconds=config.LOGIN_LOCKOUT_MINUTES * 60,
)


@dataclass
class LoginResult:
    user: User
    token: str


def login(db: Session, code: str | None, client_ip: str, throttle: LoginThrottle = login_throttle) -> LoginResult:
    code = validate_pin(code)
    throttle.check(client_ip)

    user = find_user_by_pin(db, code)
    if not user:
        failures = throttle.register_failure(client_ip)
        logger.warning("failed login from %s (%d)", client_ip, failures)
        raise AuthenticationError("Invalid code")

    if not user.blocked and user.failed_attempts >= config.USER_MAX_FAILED_ATTEMPTS:
        user.blocked = True
        db.flush()
    if user.blocked:
        raise AccountBlockedError("User blocked after too many failed attempts")

    user.failed_attempts = 0
    throttle.reset(client_ip)

    purge_expired_sessions(db)
    token = secrets.token_urlsafe(32)
    db.add(
        AuthSession(
            user_id=user.id,
            token_hash=hash_token(token),
            expires_at=utcnow() + timedelta(hours=config.SESSION_TTL_HOURS),
        )
    )
    db.flush()
    logger.info("user %s logged in", user.id)
    return LoginResult(user=user, token=token)


def resolve_token(db: Session, token: str | None) -> User:
    if not token:
        raise AuthenticationError("Authentication token required")

    session = (
        db.execute(
            select(AuthSession)
            .where(AuthSession.token_hash == hash_token(token))
            .where(AuthSession.expires_at > utcnow())
        )
        .scalar_one_or_none()
    )
    if not session or session.user.blocked:
        raise AuthenticationError("Invalid or expired token")
    return session.user


def logout(db: Session, token: str) -> None:
    db.execute(delete(AuthSession).where(AuthSession.token_hash == hash_token(token)))


def purge_expired_sessions(db: Session) -> int:
    result = db.execute(delete(AuthSession).where(AuthSession.expires_at <= utcnow()))
    return result.rowcount or 0

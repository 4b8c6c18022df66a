from __future__ import annotations

from typing import Callable, Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from koloa.app.db.models.models_v1 import User
from koloa.app.db.session import SessionLocal
from koloa.services.auth import resolve_token
from koloa.services.policy import PermissionPolicy, default_policy


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_policy() -> PermissionPolicy:
    return default_policy


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    user = resolve_token(db, bearer_token(request))
    # lu par le middleware de journalisation
    request.state.user = {"id": user.id, "name": user.name, "role": user.role.value}
    return user


def require_permission(action: str, resource: str) -> Callable[..., User]:
    def dependency(
        user: User = Depends(get_current_user),
        policy: PermissionPolicy = Depends(get_policy),
    ) -> User:
        policy.check(user, action, resource)
        return user

    return dependency

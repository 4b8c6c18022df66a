from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from koloa.app.api.deps import get_db, require_permission
from koloa.app.db.models.core_types import Role
from koloa.app.db.models.models_v1 import InventoryItem, Order, User
from koloa.app.schemas.users import UserAdminRead, UserCreate, UserUpdate
from koloa.services.auth import find_user_by_pin, hash_pin, validate_pin
from koloa.services.errors import NotFoundError, ValidationError

router = APIRouter(prefix="/users")


def _order_counts(db: Session) -> dict[int, int]:
    rows = db.execute(select(Order.user_id, func.count(Order.id)).group_by(Order.user_id)).all()
    return {int(uid): int(n) for uid, n in rows}


def _read(user: User, order_count: int = 0) -> UserAdminRead:
    data = UserAdminRead.model_validate(user)
    data.order_count = order_count
    return data


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def _ensure_pin_free(db: Session, code: str, current: User | None = None) -> None:
    owner = find_user_by_pin(db, code)
    if owner and (current is None or owner.id != current.id):
        raise ValidationError("A user with that code already exists")


@router.get("/stats")
def system_stats(
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("read", "users")),
):
    count = lambda stmt: int(db.execute(stmt).scalar() or 0)  # noqa: E731

    return {
        "users": {
            "total": count(select(func.count(User.id))),
            "admins": count(select(func.count(User.id)).where(User.role == Role.admin)),
            "blocked": count(select(func.count(User.id)).where(User.blocked.is_(True))),
        },
        "products": {
            "total": count(select(func.count(InventoryItem.id))),
            "lowStock": count(
                select(func.count(InventoryItem.id))
                .where(InventoryItem.stock > 0)
                .where(InventoryItem.stock < InventoryItem.min_stock)
            ),
            "outOfStock": count(select(func.count(InventoryItem.id)).where(InventoryItem.stock == 0)),
        },
        "orders": {
            "total": count(select(func.count(Order.id))),
        },
    }


@router.get("", response_model=list[UserAdminRead])
def list_users(
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("read", "users")),
):
    counts = _order_counts(db)
    rows = db.execute(select(User).order_by(User.created_at.desc(), User.id.desc())).scalars().all()
    return [_read(u, counts.get(int(u.id), 0)) for u in rows]


@router.post("", response_model=UserAdminRead, status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("create", "users")),
):
    name = payload.name.strip()
    if not name:
        raise ValidationError("Name cannot be empty")
    code = validate_pin(payload.code)
    _ensure_pin_free(db, code)

    user = User(name=name, pin_hash=hash_pin(code), role=payload.role)
    db.add(user)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return _read(user)


@router.put("/{user_id}", response_model=UserAdminRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("update", "users")),
):
    user = _get_user(db, user_id)

    if payload.name is not None:
        if not payload.name.strip():
            raise ValidationError("Name cannot be empty")
        user.name = payload.name.strip()

    if payload.code is not None:
        code = validate_pin(payload.code)
        _ensure_pin_free(db, code, current=user)
        user.pin_hash = hash_pin(code)

    if payload.role is not None:
        user.role = payload.role

    if payload.blocked is not None:
        user.blocked = payload.blocked
        if not payload.blocked:
            user.failed_attempts = 0

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return _read(user, _order_counts(db).get(int(user.id), 0))


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(require_permission("delete", "users")),
):
    user = _get_user(db, user_id)
    if user.id == current.id:
        raise ValidationError("You cannot delete yourself")
    if _order_counts(db).get(int(user.id), 0):
        raise ValidationError("User owns orders and cannot be deleted")

    db.delete(user)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"message": "User deleted"}

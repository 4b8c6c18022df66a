from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from koloa.app.api.deps import bearer_token, get_current_user, get_db
from koloa.app.db.models.models_v1 import User
from koloa.app.schemas.users import LoginRequest, LoginResponse, UserRead
from koloa.services import auth
from koloa.services.errors import AccountBlockedError

router = APIRouter(prefix="/auth")


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    try:
        result = auth.login(db, payload.code, client_ip(request))
        db.commit()
    except AccountBlockedError:
        # le blocage doit persister même si le login échoue
        db.commit()
        raise
    except Exception:
        db.rollback()
        raise

    request.state.user = {"id": result.user.id, "name": result.user.name, "role": result.user.role.value}
    return LoginResponse(token=result.token, user=UserRead.model_validate(result.user))


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    auth.logout(db, bearer_token(request))
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"success": True, "message": "Logged out"}


@router.get("/me", response_model=UserRead)
def me(user: User = Depends(get_current_user)):
    return UserRead.model_validate(user)

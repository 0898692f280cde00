from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from elearning.core.config import settings
from elearning.core.errors import AlreadyExistsError, AuthenticationError, AuthorizationError, ValidationError
from elearning.core.rate_limit import rate_limit
from elearning.core.security import create_access_token, get_current_user, hash_password, verify_password
from elearning.core.security_audit_log import audit_log
from elearning.db.session import get_db
from elearning.models.user import User, UserRole

router = APIRouter(prefix="/auth", tags=["auth"])


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int | None = None
    role: str | None = None


class MeResponse(BaseModel):
    id: str
    firstname: str
    lastname: str
    email: str
    role: str
    is_active: bool


class RegisterRequest(BaseModel):
    firstname: str = Field(min_length=1, max_length=255)
    lastname: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    password: str

    @field_validator("email")
    @classmethod
    def _email_shape(cls, v: str) -> str:
        local, _, domain = v.strip().partition("@")
        if not local or "." not in domain:
            raise ValueError("invalid email")
        return v


def _normalize_email(email: str) -> str:
    return str(email or "").strip().lower()


def _issue_token(response: Response, user: User) -> TokenResponse:
    token = create_access_token(user_id=str(user.id), role=user.role.value)
    expires_in = int(settings.jwt_access_token_minutes) * 60
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=expires_in,
        httponly=True,
        samesite="lax",
        secure=(settings.app_env or "").strip().lower() in {"prod", "production"},
    )
    return TokenResponse(access_token=token, expires_in=expires_in, role=user.role.value)


def me_public(user: User) -> dict:
    return {
        "id": str(user.id),
        "firstname": user.firstname,
        "lastname": user.lastname,
        "email": user.email,
        "role": user.role.value,
        "is_active": bool(user.is_active),
    }


@router.post("/register", response_model=TokenResponse, status_code=201)
def register(
    request: Request,
    response: Response,
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    _: object = rate_limit(key_prefix="auth_register", limit=10, window_seconds=60),
):
    if not settings.allow_public_register:
        raise AuthorizationError("registration disabled")

    if not payload.password or len(payload.password) < int(settings.password_min_length or 0):
        raise ValidationError("password too short")

    email = _normalize_email(payload.email)
    existing = db.scalar(select(User).where(func.lower(User.email) == email))
    if existing is not None:
        audit_log(db=db, request=request, event_type="auth_register_failed", meta={"reason": "user_exists", "email": email})
        db.commit()
        raise AlreadyExistsError("email already registered")

    user = User(
        firstname=payload.firstname.strip(),
        lastname=payload.lastname.strip(),
        email=email,
        role=UserRole.learner,
        is_active=True,
        password_hash=hash_password(payload.password),
    )
    try:
        db.add(user)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise AlreadyExistsError("email already registered") from e
    db.refresh(user)

    audit_log(db=db, request=request, event_type="auth_register_success", actor_user_id=user.id, target_user_id=user.id)
    db.commit()

    return _issue_token(response, user)


@router.post("/token", response_model=TokenResponse)
def token(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    _: object = rate_limit(key_prefix="auth_token", limit=20, window_seconds=60),
):
    email = _normalize_email(form_data.username)
    user = db.scalar(select(User).where(func.lower(User.email) == email))
    if user is None or not verify_password(form_data.password, user.password_hash):
        audit_log(db=db, request=request, event_type="auth_login_failed", meta={"email": email})
        db.commit()
        raise AuthenticationError("invalid credentials")

    if not user.is_active:
        audit_log(
            db=db,
            request=request,
            event_type="auth_login_inactive",
            actor_user_id=user.id,
            target_user_id=user.id,
        )
        db.commit()
        raise AuthorizationError("account is inactive")

    audit_log(
        db=db,
        request=request,
        event_type="auth_login_success",
        actor_user_id=user.id,
        target_user_id=user.id,
        meta={"user_agent": str(request.headers.get("user-agent") or "").strip()},
    )
    db.commit()

    return _issue_token(response, user)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(key=settings.auth_cookie_name)
    return {"ok": True}


@router.get("/me", response_model=MeResponse)
def me(user: User = Depends(get_current_user)):
    return me_public(user)

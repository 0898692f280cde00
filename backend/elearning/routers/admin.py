from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from elearning.core.errors import NotFoundError, ValidationError, parse_uuid
from elearning.core.rate_limit import rate_limit
from elearning.core.security import require_roles
from elearning.core.security_audit_log import audit_log
from elearning.db.session import get_db
from elearning.models.module import Module
from elearning.models.user import User, UserRole
from elearning.schemas.admin import ModuleReportRow, UserPublic, UserStatusRequest
from elearning.services.reports import enrollment_report

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _user_public(u: User) -> dict:
    return {
        "id": str(u.id),
        "firstname": u.firstname,
        "lastname": u.lastname,
        "email": u.email,
        "role": u.role.value,
        "is_active": bool(u.is_active),
        "created_at": u.created_at,
    }


def _get_user(db: Session, user_id: str) -> User:
    uid = parse_uuid(user_id, field="user_id")
    user = db.get(User, uid)
    if user is None:
        raise NotFoundError("user not found")
    return user


@router.get("/users", response_model=list[UserPublic])
def list_users(
    role: UserRole | None = Query(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(UserRole.admin)),
):
    q = select(User).order_by(User.created_at.desc())
    if role is not None:
        q = q.where(User.role == role)
    return [_user_public(u) for u in db.scalars(q).all()]


@router.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(UserRole.admin)),
    _: object = rate_limit(key_prefix="admin_user_delete", limit=30, window_seconds=60),
):
    user = _get_user(db, user_id)
    if user.id == admin.id:
        raise ValidationError("you cannot delete your own account")

    owned = db.scalar(select(Module.id).where(Module.instructor_id == user.id).limit(1))
    if owned is not None:
        raise ValidationError("user still owns modules; reassign or delete them first")

    target_id = user.id
    try:
        db.delete(user)
        audit_log(
            db=db,
            request=request,
            event_type="admin_user_deleted",
            actor_user_id=admin.id,
            meta={"user_id": str(target_id), "email": user.email},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    log.info("user deleted user_id=%s by=%s", target_id, admin.id)
    return {"ok": True}


@router.put("/users/{user_id}/status", response_model=UserPublic)
def set_user_status(
    user_id: str,
    body: UserStatusRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(UserRole.admin)),
):
    user = _get_user(db, user_id)
    if user.id == admin.id and not body.is_active:
        raise ValidationError("you cannot deactivate your own account")

    try:
        user.is_active = body.is_active
        audit_log(
            db=db,
            request=request,
            event_type="admin_user_status_changed",
            actor_user_id=admin.id,
            target_user_id=user.id,
            meta={"is_active": body.is_active},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return _user_public(user)


@router.put("/users/{user_id}/promote", response_model=UserPublic)
def promote_user(
    user_id: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(UserRole.admin)),
):
    user = _get_user(db, user_id)
    if user.role == UserRole.admin:
        raise ValidationError("admins cannot be promoted")

    try:
        user.role = UserRole.lecturer
        audit_log(
            db=db,
            request=request,
            event_type="admin_user_promoted",
            actor_user_id=admin.id,
            target_user_id=user.id,
            meta={"role": UserRole.lecturer.value},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return _user_public(user)


@router.get("/reports", response_model=list[ModuleReportRow])
def reports(
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(UserRole.admin)),
):
    return enrollment_report(db)

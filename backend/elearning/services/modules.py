from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session, aliased

from elearning.core.errors import AuthorizationError, NotFoundError, ValidationError, parse_uuid
from elearning.models.enrollment import Enrollment
from elearning.models.module import Module
from elearning.models.user import User, UserRole
from elearning.schemas.module import ModuleCreate, ModuleUpdate
from elearning.services.access import AccessControl
from elearning.services.storage import delete_prefix_best_effort, module_prefix


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleFilters:
    category: str | None = None
    difficulty: str | None = None
    duration_hours_max: int | None = None
    price_max: float | None = None


def module_public(module: Module, *, instructor: User | None = None, enrollment_count: int = 0) -> dict[str, Any]:
    return {
        "id": str(module.id),
        "module_name": module.module_name,
        "description": module.description,
        "instructor_id": str(module.instructor_id),
        "instructor_firstname": instructor.firstname if instructor else None,
        "instructor_lastname": instructor.lastname if instructor else None,
        "is_published": bool(module.is_published),
        "category": module.category,
        "difficulty": module.difficulty,
        "duration_hours": module.duration_hours,
        "price": float(module.price or 0),
        "enrollment_count": int(enrollment_count or 0),
        "created_at": module.created_at,
    }


class ModuleService:
    def __init__(self, db: Session):
        self.db = db
        self.access = AccessControl(db)

    def _enrollment_counts(self):
        return (
            select(Enrollment.module_id, func.count(Enrollment.id).label("n"))
            .group_by(Enrollment.module_id)
            .subquery()
        )

    def list_modules(self, user: User, filters: ModuleFilters | None = None) -> list[dict[str, Any]]:
        filters = filters or ModuleFilters()
        counts = self._enrollment_counts()
        instructor = aliased(User)

        q = (
            select(Module, instructor, func.coalesce(counts.c.n, 0))
            .join(instructor, instructor.id == Module.instructor_id)
            .outerjoin(counts, counts.c.module_id == Module.id)
        )

        if user.role == UserRole.lecturer:
            q = q.where(Module.instructor_id == user.id)
        elif user.role == UserRole.learner:
            q = q.where(Module.is_published.is_(True))
            if filters.category:
                q = q.where(Module.category == filters.category)
            if filters.difficulty:
                q = q.where(Module.difficulty == filters.difficulty)
            if filters.duration_hours_max is not None:
                q = q.where(Module.duration_hours <= filters.duration_hours_max)
            if filters.price_max is not None:
                q = q.where(Module.price <= filters.price_max)

        rows = self.db.execute(q.order_by(desc(Module.created_at))).all()
        return [module_public(m, instructor=i, enrollment_count=n) for m, i, n in rows]

    def get_module(self, user: User, module_id: uuid.UUID) -> dict[str, Any]:
        module = self.access.get_module(module_id)
        self.access.require_module_visible(user, module)

        instructor = self.db.get(User, module.instructor_id)
        n = self.db.scalar(select(func.count(Enrollment.id)).where(Enrollment.module_id == module.id)) or 0
        return module_public(module, instructor=instructor, enrollment_count=n)

    def _resolve_instructor(self, raw_id: str) -> User:
        instructor_id = parse_uuid(raw_id, field="instructor_id")
        instructor = self.db.get(User, instructor_id)
        if instructor is None or instructor.role != UserRole.lecturer:
            raise ValidationError("instructor must be an existing lecturer")
        return instructor

    def create_module(self, user: User, body: ModuleCreate) -> Module:
        if not body.module_name.strip() or not body.description.strip():
            raise ValidationError("module name and description are required")

        if user.role == UserRole.admin:
            if not body.instructor_id:
                raise ValidationError("instructor_id is required")
            instructor = self._resolve_instructor(body.instructor_id)
        else:
            if body.instructor_id and body.instructor_id != str(user.id):
                raise AuthorizationError("lecturers can only create modules for themselves")
            instructor = user

        module = Module(
            module_name=body.module_name.strip(),
            description=body.description.strip(),
            instructor_id=instructor.id,
            is_published=body.is_published,
            category=body.category,
            difficulty=body.difficulty,
            duration_hours=body.duration_hours,
            price=body.price,
        )
        try:
            self.db.add(module)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(module)
        log.info("module created module_id=%s instructor_id=%s", module.id, module.instructor_id)
        return module

    def update_module(self, user: User, module_id: uuid.UUID, body: ModuleUpdate) -> Module:
        module = self.access.get_module(module_id)
        self.access.require_module_owner(user, module)

        patch = body.model_dump(exclude_unset=True)
        if "instructor_id" in patch:
            raw = patch.pop("instructor_id")
            if raw is not None and raw != str(module.instructor_id):
                if user.role != UserRole.admin:
                    raise AuthorizationError("only admins can reassign a module")
                module.instructor_id = self._resolve_instructor(raw).id

        for field in ("module_name", "description"):
            if field in patch:
                value = (patch.pop(field) or "").strip()
                if not value:
                    raise ValidationError(f"{field} must not be empty")
                setattr(module, field, value)

        for field, value in patch.items():
            if field in {"is_published", "price"} and value is None:
                continue
            setattr(module, field, value)

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(module)
        return module

    def delete_module(self, user: User, module_id: uuid.UUID) -> None:
        module = self.access.get_module(module_id)
        self.access.require_module_owner(user, module)

        try:
            self.db.delete(module)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        log.info("module deleted module_id=%s by=%s", module_id, user.id)
        delete_prefix_best_effort(prefix=module_prefix(module_id))

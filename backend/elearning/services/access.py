from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from elearning.core.errors import AuthorizationError, NotFoundError
from elearning.models.enrollment import Enrollment
from elearning.models.module import Module
from elearning.models.user import User, UserRole


class AccessControl:
    """Ownership and enrollment checks that sit on top of role checks."""

    def __init__(self, db: Session):
        self.db = db

    def get_module(self, module_id: uuid.UUID) -> Module:
        module = self.db.get(Module, module_id)
        if module is None:
            raise NotFoundError("module not found")
        return module

    def is_enrolled(self, *, user_id: uuid.UUID, module_id: uuid.UUID) -> bool:
        return (
            self.db.scalar(
                select(Enrollment.id).where(Enrollment.user_id == user_id, Enrollment.module_id == module_id)
            )
            is not None
        )

    def require_module_owner(self, user: User, module: Module) -> None:
        if user.role == UserRole.admin:
            return
        if user.role == UserRole.lecturer and module.instructor_id == user.id:
            return
        raise AuthorizationError("you do not own this module")

    def require_enrolled(self, user: User, module_id: uuid.UUID) -> None:
        if not self.is_enrolled(user_id=user.id, module_id=module_id):
            raise AuthorizationError("you are not enrolled in this module")

    def require_module_visible(self, user: User, module: Module) -> None:
        if user.role == UserRole.admin:
            return
        if user.role == UserRole.lecturer:
            self.require_module_owner(user, module)
            return
        if module.is_published or self.is_enrolled(user_id=user.id, module_id=module.id):
            return
        raise AuthorizationError("module is not published and you are not enrolled")

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from elearning.core.errors import AlreadyEnrolledError, PaymentNotSupportedError, ValidationError
from elearning.models.enrollment import Enrollment
from elearning.models.module import Module
from elearning.models.user import User
from elearning.services.access import AccessControl


log = logging.getLogger(__name__)


def enrollment_public(e: Enrollment) -> dict[str, Any]:
    return {
        "id": str(e.id),
        "module_id": str(e.module_id),
        "enrollment_date": e.enrollment_date,
        "is_completed": bool(e.is_completed),
        "completed_date": e.completed_date,
    }


class EnrollmentService:
    def __init__(self, db: Session):
        self.db = db
        self.access = AccessControl(db)

    def enroll(self, user: User, module_id: uuid.UUID) -> Enrollment:
        module = self.access.get_module(module_id)
        if not module.is_published:
            raise ValidationError("module is not published")
        if float(module.price or 0) > 0:
            raise PaymentNotSupportedError("paid modules cannot be enrolled in")
        if self.access.is_enrolled(user_id=user.id, module_id=module.id):
            raise AlreadyEnrolledError("already enrolled in this module")

        enrollment = Enrollment(user_id=user.id, module_id=module.id)
        try:
            self.db.add(enrollment)
            self.db.commit()
        except IntegrityError as e:
            # Concurrent enroll for the same pair lost the race on the unique constraint.
            self.db.rollback()
            raise AlreadyEnrolledError("already enrolled in this module") from e
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(enrollment)
        log.info("enrolled user_id=%s module_id=%s", user.id, module.id)
        return enrollment

    def list_my_enrollments(self, user: User) -> list[dict[str, Any]]:
        instructor = aliased(User)
        rows = self.db.execute(
            select(Enrollment, Module, instructor)
            .join(Module, Module.id == Enrollment.module_id)
            .join(instructor, instructor.id == Module.instructor_id)
            .where(Enrollment.user_id == user.id)
            .order_by(desc(Enrollment.enrollment_date))
        ).all()

        out = []
        for e, m, i in rows:
            out.append(
                {
                    **enrollment_public(e),
                    "module_name": m.module_name,
                    "description": m.description,
                    "price": float(m.price or 0),
                    "instructor_firstname": i.firstname,
                    "instructor_lastname": i.lastname,
                }
            )
        return out

    def list_module_learners(self, user: User, module_id: uuid.UUID) -> list[dict[str, Any]]:
        module = self.access.get_module(module_id)
        self.access.require_module_owner(user, module)

        rows = self.db.execute(
            select(Enrollment, User)
            .join(User, User.id == Enrollment.user_id)
            .where(Enrollment.module_id == module.id)
            .order_by(Enrollment.enrollment_date)
        ).all()
        return [
            {
                "user_id": str(u.id),
                "firstname": u.firstname,
                "lastname": u.lastname,
                "email": u.email,
                "enrollment_id": str(e.id),
                "enrollment_date": e.enrollment_date,
                "is_completed": bool(e.is_completed),
                "completed_date": e.completed_date,
            }
            for e, u in rows
        ]

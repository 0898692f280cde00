from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from elearning.core.errors import parse_uuid
from elearning.core.rate_limit import rate_limit
from elearning.core.security import require_roles
from elearning.db.session import get_db
from elearning.models.user import User, UserRole
from elearning.schemas.enrollment import EnrollmentPublic, EnrollRequest, MyEnrollmentPublic
from elearning.services.enrollment import EnrollmentService, enrollment_public
from elearning.services.progress import ProgressTracker

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.post("", response_model=EnrollmentPublic, status_code=201)
def enroll(
    body: EnrollRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.learner)),
    _: object = rate_limit(key_prefix="enroll", limit=30, window_seconds=60),
):
    mid = parse_uuid(body.module_id, field="module_id")
    enrollment = EnrollmentService(db).enroll(user, mid)
    return enrollment_public(enrollment)


@router.get("", response_model=list[MyEnrollmentPublic])
def my_enrollments(db: Session = Depends(get_db), user: User = Depends(require_roles(UserRole.learner))):
    return EnrollmentService(db).list_my_enrollments(user)


@router.put("/{enrollment_id}/complete", response_model=EnrollmentPublic)
def complete_enrollment(
    enrollment_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.learner)),
):
    eid = parse_uuid(enrollment_id, field="enrollment_id")
    enrollment = ProgressTracker(db).complete_enrollment(user_id=user.id, enrollment_id=eid)
    return enrollment_public(enrollment)

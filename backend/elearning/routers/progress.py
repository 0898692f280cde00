from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from elearning.core.errors import parse_uuid
from elearning.core.security import require_roles
from elearning.db.session import get_db
from elearning.models.user import User, UserRole
from elearning.schemas.progress import ModuleProgressResponse
from elearning.services.access import AccessControl
from elearning.services.progress import ProgressTracker

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("/modules/{module_id}", response_model=ModuleProgressResponse)
def module_progress(
    module_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.learner)),
):
    mid = parse_uuid(module_id, field="module_id")
    access = AccessControl(db)
    access.get_module(mid)
    access.require_enrolled(user, mid)

    progress = ProgressTracker(db).module_progress(user_id=user.id, module_id=mid)
    return ModuleProgressResponse(
        module_id=str(progress.module_id),
        completedCount=progress.completed_count,
        totalCount=progress.total_count,
        progressPercentage=progress.progress_percentage,
    )

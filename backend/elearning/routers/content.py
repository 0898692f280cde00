from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from elearning.core.errors import parse_uuid
from elearning.core.security import require_roles
from elearning.db.session import get_db
from elearning.models.user import User, UserRole
from elearning.services.access import AccessControl
from elearning.services.content import ContentService
from elearning.services.progress import ProgressTracker

router = APIRouter(prefix="/content", tags=["content"])


@router.delete("/{content_id}")
def delete_content(
    content_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.lecturer, UserRole.admin)),
):
    cid = parse_uuid(content_id, field="content_id")
    ContentService(db).delete_content(user, cid)
    return {"ok": True}


@router.post("/{content_id}/complete")
def complete_content(
    content_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.learner)),
):
    cid = parse_uuid(content_id, field="content_id")
    content = ContentService(db).get_content(cid)
    AccessControl(db).require_enrolled(user, content.module_id)

    ProgressTracker(db).mark_content_complete(user_id=user.id, content=content)
    return {"ok": True, "content_id": str(content.id), "message": "Content marked as completed"}

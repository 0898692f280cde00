from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from elearning.core.errors import parse_uuid
from elearning.core.rate_limit import rate_limit
from elearning.core.security import get_current_user, require_roles
from elearning.db.session import get_db
from elearning.models.user import User, UserRole
from elearning.schemas.content import ContentCreatedResponse, ContentPublic
from elearning.schemas.module import ModuleCreate, ModuleLearnerPublic, ModulePublic, ModuleUpdate
from elearning.services.content import ContentService, UploadedFile
from elearning.services.enrollment import EnrollmentService
from elearning.services.modules import ModuleFilters, ModuleService

router = APIRouter(prefix="/modules", tags=["modules"])


@router.get("", response_model=list[ModulePublic])
def list_modules(
    category: str | None = Query(default=None),
    difficulty: str | None = Query(default=None),
    duration_hours_max: int | None = Query(default=None, ge=0),
    price_max: float | None = Query(default=None, ge=0),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    filters = ModuleFilters(
        category=category,
        difficulty=difficulty,
        duration_hours_max=duration_hours_max,
        price_max=price_max,
    )
    return ModuleService(db).list_modules(user, filters)


@router.post("", response_model=ModulePublic, status_code=201)
def create_module(
    body: ModuleCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.lecturer, UserRole.admin)),
):
    service = ModuleService(db)
    module = service.create_module(user, body)
    return service.get_module(user, module.id)


@router.get("/{module_id}", response_model=ModulePublic)
def get_module(module_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    mid = parse_uuid(module_id, field="module_id")
    return ModuleService(db).get_module(user, mid)


@router.put("/{module_id}", response_model=ModulePublic)
def update_module(
    module_id: str,
    body: ModuleUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.lecturer, UserRole.admin)),
):
    mid = parse_uuid(module_id, field="module_id")
    service = ModuleService(db)
    service.update_module(user, mid, body)
    return service.get_module(user, mid)


@router.delete("/{module_id}")
def delete_module(
    module_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.lecturer, UserRole.admin)),
):
    mid = parse_uuid(module_id, field="module_id")
    ModuleService(db).delete_module(user, mid)
    return {"ok": True}


@router.get("/{module_id}/learners", response_model=list[ModuleLearnerPublic])
def module_learners(
    module_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.lecturer, UserRole.admin)),
):
    mid = parse_uuid(module_id, field="module_id")
    return EnrollmentService(db).list_module_learners(user, mid)


@router.get("/{module_id}/content", response_model=list[ContentPublic])
def module_content(module_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    mid = parse_uuid(module_id, field="module_id")
    return ContentService(db).list_module_content(user, mid)


@router.post("/{module_id}/content", response_model=ContentCreatedResponse, status_code=201)
def create_content(
    module_id: str,
    title: str = Form(...),
    content_type: str = Form(...),
    content_text: str | None = Form(default=None),
    quiz_data: str | None = Form(default=None),
    materialFile: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.lecturer, UserRole.admin)),
    _: object = rate_limit(key_prefix="content_create", limit=60, window_seconds=60),
):
    mid = parse_uuid(module_id, field="module_id")

    upload = None
    if materialFile is not None and materialFile.filename:
        upload = UploadedFile(
            filename=materialFile.filename,
            data=materialFile.file.read(),
            content_type=materialFile.content_type,
        )

    content = ContentService(db).create_content(
        user,
        mid,
        title=title,
        content_type=content_type,
        content_text=content_text,
        quiz_data=quiz_data,
        upload=upload,
    )
    return ContentCreatedResponse(content_id=str(content.id))

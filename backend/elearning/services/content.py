from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from elearning.core.config import settings
from elearning.core.errors import NotFoundError, ValidationError
from elearning.models.content import Content, ContentType
from elearning.models.user import User, UserRole
from elearning.schemas.quiz import QuizDefinition
from elearning.services.access import AccessControl
from elearning.services.progress import ProgressTracker
from elearning.services.quiz_engine import parse_quiz_definition, public_quiz_data
from elearning.services.storage import delete_object_best_effort, put_upload


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    data: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class TextPayload:
    text: str


@dataclass(frozen=True)
class FilePayload:
    upload: UploadedFile


@dataclass(frozen=True)
class QuizPayload:
    definition: QuizDefinition


ContentPayload = Union[TextPayload, FilePayload, QuizPayload]


def parse_content_type(raw: str | None) -> ContentType:
    try:
        return ContentType((raw or "").strip())
    except ValueError as e:
        allowed = ", ".join(t.value for t in ContentType)
        raise ValidationError(f"invalid content type; expected one of: {allowed}") from e


def build_payload(
    content_type: ContentType,
    *,
    content_text: str | None,
    upload: UploadedFile | None,
    quiz_data: Any,
) -> ContentPayload:
    """Pick the single payload variant allowed for ``content_type``."""
    text = (content_text or "").strip() or None

    if content_type == ContentType.Quizzes:
        if text is not None or upload is not None:
            raise ValidationError("quizzes take quiz data only, not text or a file")
        return QuizPayload(parse_quiz_definition(quiz_data))

    if quiz_data not in (None, "") and str(quiz_data).strip():
        raise ValidationError("quiz data is only allowed for quizzes")
    if text is not None and upload is not None:
        raise ValidationError("provide either content text or a file, not both")
    if upload is not None:
        return FilePayload(upload)
    if text is not None:
        return TextPayload(text)
    raise ValidationError("content text or a file is required")


def content_public(c: Content, *, completed: bool = False, hide_answers: bool = False) -> dict[str, Any]:
    quiz_data = c.quiz_data
    if quiz_data is not None and hide_answers:
        quiz_data = public_quiz_data(quiz_data)
    return {
        "id": str(c.id),
        "module_id": str(c.module_id),
        "title": c.title,
        "content_type": c.content_type.value,
        "content_text": c.content_text,
        "file_path": c.file_path,
        "quiz_data": quiz_data,
        "created_at": c.created_at,
        "user_completed_content": completed,
    }


class ContentService:
    def __init__(self, db: Session):
        self.db = db
        self.access = AccessControl(db)

    def get_content(self, content_id: uuid.UUID) -> Content:
        content = self.db.get(Content, content_id)
        if content is None:
            raise NotFoundError("content not found")
        return content

    def create_content(
        self,
        user: User,
        module_id: uuid.UUID,
        *,
        title: str | None,
        content_type: str | None,
        content_text: str | None = None,
        quiz_data: Any = None,
        upload: UploadedFile | None = None,
    ) -> Content:
        module = self.access.get_module(module_id)
        self.access.require_module_owner(user, module)

        title = (title or "").strip()
        if not title:
            raise ValidationError("title is required")
        ctype = parse_content_type(content_type)
        if upload is not None and len(upload.data) > int(settings.upload_max_bytes):
            raise ValidationError("file too large")

        payload = build_payload(ctype, content_text=content_text, upload=upload, quiz_data=quiz_data)

        row = Content(module_id=module.id, title=title, content_type=ctype)
        object_key: str | None = None
        try:
            if isinstance(payload, TextPayload):
                row.content_text = payload.text
            elif isinstance(payload, FilePayload):
                object_key = put_upload(
                    module_id=module.id,
                    filename=payload.upload.filename,
                    data=payload.upload.data,
                    content_type=payload.upload.content_type,
                )
                row.file_path = object_key
            else:
                row.quiz_data = payload.definition.to_storage()

            self.db.add(row)
            self.db.commit()
        except Exception:
            self.db.rollback()
            delete_object_best_effort(object_key)
            raise

        self.db.refresh(row)
        log.info("content created content_id=%s module_id=%s type=%s", row.id, module.id, ctype.value)
        return row

    def delete_content(self, user: User, content_id: uuid.UUID) -> None:
        content = self.get_content(content_id)
        module = self.access.get_module(content.module_id)
        self.access.require_module_owner(user, module)

        object_key = content.file_path
        try:
            self.db.delete(content)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        log.info("content deleted content_id=%s by=%s", content_id, user.id)
        delete_object_best_effort(object_key)

    def list_module_content(self, user: User, module_id: uuid.UUID) -> list[dict[str, Any]]:
        module = self.access.get_module(module_id)
        self.access.require_module_visible(user, module)

        items = self.db.scalars(
            select(Content).where(Content.module_id == module.id).order_by(Content.created_at, Content.id)
        ).all()
        done = ProgressTracker(self.db).completed_content_ids(user_id=user.id, module_id=module.id)
        hide = user.role == UserRole.learner
        return [content_public(c, completed=c.id in done, hide_answers=hide) for c in items]

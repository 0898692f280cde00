from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import and_, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from elearning.core.config import settings
from elearning.core.errors import NotFoundError, ValidationError
from elearning.models.content import Content
from elearning.models.enrollment import Enrollment
from elearning.models.module import Module
from elearning.models.progress import UserContentProgress


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleProgress:
    module_id: uuid.UUID
    completed_count: int
    total_count: int
    progress_percentage: float


def progress_percentage(completed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    pct = (Decimal(completed) * 100 / Decimal(total)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(pct)


class ProgressTracker:
    def __init__(self, db: Session):
        self.db = db

    def upsert_completion(self, *, user_id: uuid.UUID, content_id: uuid.UUID, now: datetime | None = None) -> None:
        """Record (or refresh) completion of one content item. Does not commit.

        At most one progress row exists per (user, content); a repeat
        completion only moves ``completed_at`` forward.
        """
        now = now or datetime.now(timezone.utc)
        values = {
            "id": uuid.uuid4(),
            "user_id": user_id,
            "content_id": content_id,
            "is_completed": True,
            "completed_at": now,
        }
        dialect = self.db.get_bind().dialect.name

        if dialect in {"postgresql", "sqlite"}:
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = insert(UserContentProgress).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "content_id"],
                set_={"is_completed": True, "completed_at": now},
            )
            self.db.execute(stmt)
            return

        try:
            with self.db.begin_nested():
                self.db.add(UserContentProgress(**values))
        except IntegrityError:
            self.db.execute(
                update(UserContentProgress)
                .where(UserContentProgress.user_id == user_id, UserContentProgress.content_id == content_id)
                .values(is_completed=True, completed_at=now)
            )

    def mark_content_complete(self, *, user_id: uuid.UUID, content: Content) -> None:
        try:
            self.upsert_completion(user_id=user_id, content_id=content.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        log.info("content completed user_id=%s content_id=%s", user_id, content.id)

    def completed_content_ids(self, *, user_id: uuid.UUID, module_id: uuid.UUID) -> set[uuid.UUID]:
        return set(
            self.db.scalars(
                select(UserContentProgress.content_id)
                .join(Content, Content.id == UserContentProgress.content_id)
                .where(
                    UserContentProgress.user_id == user_id,
                    UserContentProgress.is_completed.is_(True),
                    Content.module_id == module_id,
                )
            ).all()
        )

    def module_progress(self, *, user_id: uuid.UUID, module_id: uuid.UUID) -> ModuleProgress:
        if self.db.get(Module, module_id) is None:
            raise NotFoundError("module not found")

        total = self.db.scalar(select(func.count(Content.id)).where(Content.module_id == module_id)) or 0
        completed = (
            self.db.scalar(
                select(func.count(UserContentProgress.id))
                .join(
                    Content,
                    and_(Content.id == UserContentProgress.content_id, Content.module_id == module_id),
                )
                .where(
                    UserContentProgress.user_id == user_id,
                    UserContentProgress.is_completed.is_(True),
                )
            )
            or 0
        )
        return ModuleProgress(
            module_id=module_id,
            completed_count=int(completed),
            total_count=int(total),
            progress_percentage=progress_percentage(int(completed), int(total)),
        )

    def complete_enrollment(self, *, user_id: uuid.UUID, enrollment_id: uuid.UUID) -> Enrollment:
        enrollment = self.db.scalar(
            select(Enrollment).where(Enrollment.id == enrollment_id, Enrollment.user_id == user_id)
        )
        if enrollment is None:
            raise NotFoundError("enrollment not found")

        if settings.enforce_content_completion:
            progress = self.module_progress(user_id=user_id, module_id=enrollment.module_id)
            if progress.completed_count < progress.total_count:
                raise ValidationError("all module content must be completed first")

        try:
            enrollment.is_completed = True
            enrollment.completed_date = datetime.now(timezone.utc)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(enrollment)
        log.info("enrollment completed user_id=%s enrollment_id=%s", user_id, enrollment.id)
        return enrollment

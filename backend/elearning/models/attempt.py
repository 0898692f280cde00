import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from elearning.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuizAttempt(Base):
    """One graded quiz submission. Rows are only ever appended."""

    __tablename__ = "user_quiz_attempts"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    quiz_content_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("content.id", ondelete="CASCADE"), index=True
    )

    attempt_no: Mapped[int] = mapped_column(Integer, default=1)
    score: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False))
    submitted_answers: Mapped[list] = mapped_column(JSON)

    attempt_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (CheckConstraint("score >= 0 AND score <= 100", name="score_range"),)

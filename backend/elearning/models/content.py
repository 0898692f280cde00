import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from elearning.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContentType(str, enum.Enum):
    Notes = "Notes"
    Videos = "Videos"
    Quizzes = "Quizzes"
    Assignments = "Assignments"


class Content(Base):
    __tablename__ = "content"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    module_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("modules.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(255))
    content_type: Mapped[ContentType] = mapped_column(Enum(ContentType), index=True)

    content_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_path: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    # JSON array of {question_text, options, correct_answer_index}.
    quiz_data: Mapped[list | None] = mapped_column(JSON(none_as_null=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint(
            "(content_type = 'Quizzes' AND quiz_data IS NOT NULL) "
            "OR (content_type <> 'Quizzes' AND quiz_data IS NULL)",
            name="quiz_data_matches_type",
        ),
    )

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from elearning.core.errors import DataIntegrityError, NotFoundError, ValidationError
from elearning.models.attempt import QuizAttempt
from elearning.models.content import Content, ContentType
from elearning.schemas.quiz import QuizDefinition
from elearning.services.progress import ProgressTracker, progress_percentage


log = logging.getLogger(__name__)

_INT_RE = re.compile(r"[+-]?\d+")


@dataclass(frozen=True)
class GradeResult:
    correct_answers: int
    total_questions: int
    score: float


def parse_quiz_definition(raw: Any) -> QuizDefinition:
    """Validate a quiz definition coming from an authoring request.

    ``raw`` is either the JSON text of a form field or already-decoded data.
    """
    if raw is None or (isinstance(raw, (str, bytes)) and not raw.strip()):
        raise ValidationError("quiz data is required for quizzes")

    data = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ValidationError("invalid quiz data format: must be a valid JSON array of questions") from e

    if not isinstance(data, list):
        raise ValidationError("invalid quiz data format: must be a valid JSON array of questions")

    try:
        return QuizDefinition.model_validate(data)
    except PydanticValidationError as e:
        first = (e.errors() or [{}])[0]
        loc = ".".join(str(p) for p in first.get("loc", ()))
        msg = str(first.get("msg") or "invalid question")
        raise ValidationError(f"invalid quiz data format: {loc}: {msg}" if loc else f"invalid quiz data format: {msg}") from e


def _as_option_index(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        return int(value.strip())
    return None


def _expected_index(question: Any) -> int | None:
    if not isinstance(question, dict):
        return None
    expected = question.get("correct_answer_index")
    if isinstance(expected, bool) or not isinstance(expected, int):
        return None
    return expected


def grade_answers(stored_questions: Any, answers: list[Any]) -> GradeResult:
    """Grade ``answers`` by position against the stored answer key.

    A missing or malformed answer, or a malformed stored question, counts as
    wrong for that question only.
    """
    if not isinstance(stored_questions, list) or not stored_questions:
        raise DataIntegrityError("quiz has no questions")

    total = len(stored_questions)
    correct = 0
    for i, question in enumerate(stored_questions):
        expected = _expected_index(question)
        if expected is None:
            log.warning("quiz question %s is malformed; scored as incorrect", i)
            continue
        if i >= len(answers):
            continue
        got = _as_option_index(answers[i])
        if got is None:
            if answers[i] is not None:
                log.warning("submitted answer for question %s is not an option index; scored as incorrect", i)
            continue
        if got == expected:
            correct += 1

    return GradeResult(correct_answers=correct, total_questions=total, score=progress_percentage(correct, total))


class QuizEngine:
    def __init__(self, db: Session):
        self.db = db

    def get_quiz(self, quiz_content_id: uuid.UUID) -> Content:
        content = self.db.get(Content, quiz_content_id)
        if content is None or content.content_type != ContentType.Quizzes:
            raise NotFoundError("quiz not found")
        return content

    def submit_attempt(self, *, user_id: uuid.UUID, quiz_content_id: uuid.UUID, answers: list[Any]) -> GradeResult:
        """Grade a submission, append the attempt and mark the quiz completed.

        Enrollment is checked by the caller. Attempt row and progress row are
        committed together or not at all.
        """
        quiz = self.get_quiz(quiz_content_id)
        result = grade_answers(quiz.quiz_data, answers)

        now = datetime.now(timezone.utc)
        try:
            previous = self.db.scalar(
                select(func.count(QuizAttempt.id)).where(
                    QuizAttempt.user_id == user_id,
                    QuizAttempt.quiz_content_id == quiz.id,
                )
            )
            self.db.add(
                QuizAttempt(
                    user_id=user_id,
                    quiz_content_id=quiz.id,
                    attempt_no=int(previous or 0) + 1,
                    score=result.score,
                    submitted_answers=list(answers),
                    attempt_date=now,
                )
            )
            self.db.flush()
            ProgressTracker(self.db).upsert_completion(user_id=user_id, content_id=quiz.id, now=now)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        log.info(
            "quiz submitted user_id=%s quiz_id=%s correct=%s total=%s score=%s",
            user_id,
            quiz.id,
            result.correct_answers,
            result.total_questions,
            result.score,
        )
        return result

    def list_attempts(self, *, user_id: uuid.UUID, quiz_content_id: uuid.UUID) -> list[QuizAttempt]:
        quiz = self.get_quiz(quiz_content_id)
        return list(
            self.db.scalars(
                select(QuizAttempt)
                .where(QuizAttempt.user_id == user_id, QuizAttempt.quiz_content_id == quiz.id)
                .order_by(desc(QuizAttempt.attempt_date), desc(QuizAttempt.attempt_no))
            ).all()
        )


def public_quiz_data(stored_questions: Any) -> list[dict[str, Any]]:
    """Quiz definition as shown to learners: answer key removed."""
    if not isinstance(stored_questions, list):
        return []
    return [
        {k: v for k, v in q.items() if k != "correct_answer_index"}
        for q in stored_questions
        if isinstance(q, dict)
    ]

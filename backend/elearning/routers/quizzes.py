from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from elearning.core.errors import parse_uuid
from elearning.core.rate_limit import rate_limit
from elearning.core.security import require_roles
from elearning.db.session import get_db
from elearning.models.user import User, UserRole
from elearning.schemas.quiz import QuizAttemptPublic, QuizSubmitRequest, QuizSubmitResponse
from elearning.services.access import AccessControl
from elearning.services.quiz_engine import QuizEngine

router = APIRouter(prefix="/quizzes", tags=["quizzes"])


@router.post("/{content_id}/submit", response_model=QuizSubmitResponse)
def submit_quiz(
    content_id: str,
    body: QuizSubmitRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.learner)),
    _: object = rate_limit(key_prefix="quiz_submit", limit=30, window_seconds=60),
):
    qid = parse_uuid(content_id, field="content_id")
    engine = QuizEngine(db)
    quiz = engine.get_quiz(qid)
    AccessControl(db).require_enrolled(user, quiz.module_id)

    result = engine.submit_attempt(user_id=user.id, quiz_content_id=quiz.id, answers=body.answers)
    return QuizSubmitResponse(
        score=result.score,
        correctAnswers=result.correct_answers,
        totalQuestions=result.total_questions,
    )


@router.get("/{content_id}/attempts", response_model=list[QuizAttemptPublic])
def list_attempts(
    content_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.learner)),
):
    qid = parse_uuid(content_id, field="content_id")
    attempts = QuizEngine(db).list_attempts(user_id=user.id, quiz_content_id=qid)
    return [
        {
            "id": str(a.id),
            "score": float(a.score),
            "attempt_no": int(a.attempt_no),
            "attempt_date": a.attempt_date,
            "submitted_answers": list(a.submitted_answers or []),
        }
        for a in attempts
    ]

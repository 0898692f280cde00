from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, RootModel, StrictInt, field_validator, model_validator


class QuizQuestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    question_text: str
    options: list[str]
    correct_answer_index: StrictInt

    @field_validator("question_text")
    @classmethod
    def _text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question text must not be empty")
        return v

    @field_validator("options")
    @classmethod
    def _options_present(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("question must have at least one option")
        if any(not o.strip() for o in v):
            raise ValueError("options must not be blank")
        return v

    @model_validator(mode="after")
    def _index_in_range(self) -> "QuizQuestion":
        if not 0 <= self.correct_answer_index < len(self.options):
            raise ValueError("correct_answer_index is out of range")
        return self


class QuizDefinition(RootModel[list[QuizQuestion]]):
    """Ordered questions of one quiz; stored as a JSON array."""

    @model_validator(mode="after")
    def _not_empty(self) -> "QuizDefinition":
        if not self.root:
            raise ValueError("quiz must have at least one question")
        return self

    @property
    def questions(self) -> list[QuizQuestion]:
        return self.root

    def to_storage(self) -> list[dict[str, Any]]:
        return [q.model_dump() for q in self.root]


class QuizSubmitRequest(BaseModel):
    # Elements stay untyped: a malformed entry scores that question as wrong
    # instead of rejecting the whole submission.
    answers: list[Any]

    @field_validator("answers")
    @classmethod
    def _finite_numbers(cls, v: list[Any]) -> list[Any]:
        # inf/nan cannot be stored as JSON and would come back as null.
        if any(_has_non_finite(a) for a in v):
            raise ValueError("answers must not contain non-finite numbers")
        return v


def _has_non_finite(value: Any) -> bool:
    if isinstance(value, float):
        return not math.isfinite(value)
    if isinstance(value, list):
        return any(_has_non_finite(v) for v in value)
    if isinstance(value, dict):
        return any(_has_non_finite(v) for v in value.values())
    return False


class QuizSubmitResponse(BaseModel):
    score: float
    correctAnswers: int
    totalQuestions: int
    message: str = "Quiz submitted successfully"


class QuizAttemptPublic(BaseModel):
    id: str
    score: float
    attempt_no: int
    attempt_date: datetime
    submitted_answers: list[Any] = Field(default_factory=list)

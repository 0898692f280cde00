import uuid

from fastapi.testclient import TestClient
from sqlalchemy import func, select

from elearning.db.session import SessionLocal
from elearning.models.attempt import QuizAttempt
from elearning.models.content import ContentType
from elearning.models.progress import UserContentProgress
from elearning.services.progress import ProgressTracker

from conftest import seed_content


def _quiz(module):
    return seed_content(module_id=module.id, content_type=ContentType.Quizzes, title="Quiz")


def test_submit_scores_and_records_attempt(client, enrolled_learner, published_module):
    user, headers = enrolled_learner
    quiz = _quiz(published_module)

    r = client.post(f"/quizzes/{quiz.id}/submit", json={"answers": [1, 1, 2]}, headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["correctAnswers"] == 2
    assert body["totalQuestions"] == 3
    assert body["score"] == 66.67

    with SessionLocal() as db:
        attempts = db.scalars(
            select(QuizAttempt).where(QuizAttempt.user_id == user.id, QuizAttempt.quiz_content_id == quiz.id)
        ).all()
        assert len(attempts) == 1
        assert attempts[0].submitted_answers == [1, 1, 2]
        assert attempts[0].attempt_no == 1

        progress = db.scalar(
            select(UserContentProgress).where(
                UserContentProgress.user_id == user.id, UserContentProgress.content_id == quiz.id
            )
        )
        assert progress is not None
        assert progress.is_completed is True


def test_repeat_submissions_append_attempts_but_one_progress_row(client, enrolled_learner, published_module):
    user, headers = enrolled_learner
    quiz = _quiz(published_module)

    for answers in ([0, 0, 0], [1, 0, 0], [1, 0, 2]):
        r = client.post(f"/quizzes/{quiz.id}/submit", json={"answers": answers}, headers=headers)
        assert r.status_code == 200

    with SessionLocal() as db:
        n_attempts = db.scalar(
            select(func.count(QuizAttempt.id)).where(
                QuizAttempt.user_id == user.id, QuizAttempt.quiz_content_id == quiz.id
            )
        )
        n_progress = db.scalar(
            select(func.count(UserContentProgress.id)).where(
                UserContentProgress.user_id == user.id, UserContentProgress.content_id == quiz.id
            )
        )
    assert n_attempts == 3
    assert n_progress == 1

    r = client.get(f"/quizzes/{quiz.id}/attempts", headers=headers)
    assert r.status_code == 200
    rows = r.json()
    assert [a["attempt_no"] for a in rows] == [3, 2, 1]
    assert [a["score"] for a in rows] == [100.0, 66.67, 33.33]
    assert rows[0]["submitted_answers"] == [1, 0, 2]


def test_attempt_history_is_per_learner(client, make_user, published_module):
    quiz = _quiz(published_module)
    _, h1 = make_user()
    _, h2 = make_user()
    for h in (h1, h2):
        assert client.post("/enrollments", json={"module_id": str(published_module.id)}, headers=h).status_code == 201

    client.post(f"/quizzes/{quiz.id}/submit", json={"answers": [1, 0, 2]}, headers=h1)

    r = client.get(f"/quizzes/{quiz.id}/attempts", headers=h2)
    assert r.status_code == 200
    assert r.json() == []


def test_malformed_answers_are_graded_not_rejected(client, enrolled_learner, published_module):
    _, headers = enrolled_learner
    quiz = _quiz(published_module)

    r = client.post(f"/quizzes/{quiz.id}/submit", json={"answers": ["1", None]}, headers=headers)
    assert r.status_code == 200
    assert r.json()["correctAnswers"] == 1
    assert r.json()["totalQuestions"] == 3


def test_submit_requires_enrollment(client, learner, published_module):
    _, headers = learner
    quiz = _quiz(published_module)

    r = client.post(f"/quizzes/{quiz.id}/submit", json={"answers": [1, 0, 2]}, headers=headers)
    assert r.status_code == 403
    assert r.json()["error_code"] == "forbidden"

    with SessionLocal() as db:
        n = db.scalar(select(func.count(QuizAttempt.id)).where(QuizAttempt.quiz_content_id == quiz.id))
    assert n == 0


def test_submit_unknown_quiz_is_not_found(client, learner):
    _, headers = learner
    r = client.post(f"/quizzes/{uuid.uuid4()}/submit", json={"answers": []}, headers=headers)
    assert r.status_code == 404
    assert r.json()["ok"] is False


def test_non_quiz_content_is_not_found(client, enrolled_learner, published_module):
    _, headers = enrolled_learner
    notes = seed_content(module_id=published_module.id)

    r = client.post(f"/quizzes/{notes.id}/submit", json={"answers": [0]}, headers=headers)
    assert r.status_code == 404
    assert r.json()["error_code"] == "not_found"

    r = client.get(f"/quizzes/{notes.id}/attempts", headers=headers)
    assert r.status_code == 404



def test_submit_invalid_id_is_validation_error(client, learner):
    _, headers = learner
    r = client.post("/quizzes/not-a-uuid/submit", json={"answers": []}, headers=headers)
    assert r.status_code == 400


def test_submit_without_answers_field_is_validation_error(client, enrolled_learner, published_module):
    _, headers = enrolled_learner
    quiz = _quiz(published_module)
    r = client.post(f"/quizzes/{quiz.id}/submit", json={}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error_code"] == "validation_error"


def test_empty_stored_quiz_is_data_integrity_error_and_writes_nothing(client, enrolled_learner, published_module):
    user, headers = enrolled_learner
    quiz = seed_content(module_id=published_module.id, content_type=ContentType.Quizzes, quiz_data=[])

    r = client.post(f"/quizzes/{quiz.id}/submit", json={"answers": []}, headers=headers)
    assert r.status_code == 500
    assert r.json()["error_code"] == "data_integrity_error"

    with SessionLocal() as db:
        n = db.scalar(select(func.count(QuizAttempt.id)).where(QuizAttempt.quiz_content_id == quiz.id))
        p = db.scalar(
            select(func.count(UserContentProgress.id)).where(UserContentProgress.content_id == quiz.id)
        )
    assert n == 0
    assert p == 0


def test_lecturer_cannot_submit(client, lecturer, published_module):
    _, headers = lecturer
    quiz = _quiz(published_module)
    r = client.post(f"/quizzes/{quiz.id}/submit", json={"answers": [1, 0, 2]}, headers=headers)
    assert r.status_code == 403


def test_submit_requires_authentication(client, published_module):
    quiz = _quiz(published_module)
    r = client.post(f"/quizzes/{quiz.id}/submit", json={"answers": [1, 0, 2]})
    assert r.status_code == 401
    assert r.json()["error_code"] == "unauthorized"


def test_failed_progress_write_leaves_no_attempt(client, enrolled_learner, published_module, monkeypatch):
    user, headers = enrolled_learner
    quiz = _quiz(published_module)

    def _fail(self, **kwargs):
        raise RuntimeError("progress write failed")

    monkeypatch.setattr(ProgressTracker, "upsert_completion", _fail)
    local = TestClient(client.app, raise_server_exceptions=False)
    r = local.post(f"/quizzes/{quiz.id}/submit", json={"answers": [1, 0, 2]}, headers=headers)
    assert r.status_code == 500

    with SessionLocal() as db:
        n = db.scalar(
            select(func.count(QuizAttempt.id)).where(
                QuizAttempt.quiz_content_id == quiz.id, QuizAttempt.user_id == user.id
            )
        )
        p = db.scalar(
            select(func.count(UserContentProgress.id)).where(
                UserContentProgress.content_id == quiz.id, UserContentProgress.user_id == user.id
            )
        )
    assert n == 0
    assert p == 0


def test_non_finite_answer_is_rejected(client, enrolled_learner, published_module):
    _, headers = enrolled_learner
    quiz = _quiz(published_module)

    r = client.post(
        f"/quizzes/{quiz.id}/submit",
        content=b'{"answers": [1e400, 0, 2]}',
        headers={**headers, "Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json()["error_code"] == "validation_error"

    with SessionLocal() as db:
        n = db.scalar(select(func.count(QuizAttempt.id)).where(QuizAttempt.quiz_content_id == quiz.id))
    assert n == 0

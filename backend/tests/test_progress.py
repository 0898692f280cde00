import uuid

from sqlalchemy import func, select

from elearning.core.config import settings
from elearning.db.session import SessionLocal
from elearning.models.content import ContentType
from elearning.models.progress import UserContentProgress
from elearning.services.progress import progress_percentage

from conftest import seed_content, seed_module


def _progress(client, module_id, headers):
    r = client.get(f"/progress/modules/{module_id}", headers=headers)
    assert r.status_code == 200
    return r.json()


def test_progress_percentage_helper():
    assert progress_percentage(0, 0) == 0.0
    assert progress_percentage(1, 3) == 33.33
    assert progress_percentage(2, 3) == 66.67
    assert progress_percentage(4, 4) == 100.0


def test_empty_module_is_zero_percent(client, enrolled_learner, published_module):
    _, headers = enrolled_learner
    body = _progress(client, published_module.id, headers)
    assert body == {
        "module_id": str(published_module.id),
        "completedCount": 0,
        "totalCount": 0,
        "progressPercentage": 0.0,
    }


def test_progress_grows_as_content_is_completed(client, enrolled_learner, published_module):
    _, headers = enrolled_learner
    items = [seed_content(module_id=published_module.id, title=f"n{i}") for i in range(3)]

    assert _progress(client, published_module.id, headers)["progressPercentage"] == 0.0

    seen = []
    for item in items:
        r = client.post(f"/content/{item.id}/complete", headers=headers)
        assert r.status_code == 200
        seen.append(_progress(client, published_module.id, headers)["progressPercentage"])

    assert seen == [33.33, 66.67, 100.0]


def test_completing_twice_keeps_one_row(client, enrolled_learner, published_module):
    user, headers = enrolled_learner
    item = seed_content(module_id=published_module.id)

    for _ in range(2):
        assert client.post(f"/content/{item.id}/complete", headers=headers).status_code == 200

    with SessionLocal() as db:
        n = db.scalar(
            select(func.count(UserContentProgress.id)).where(
                UserContentProgress.user_id == user.id, UserContentProgress.content_id == item.id
            )
        )
    assert n == 1
    body = _progress(client, published_module.id, headers)
    assert body["completedCount"] == 1
    assert body["totalCount"] == 1


def test_quiz_submission_counts_towards_progress(client, enrolled_learner, published_module):
    _, headers = enrolled_learner
    seed_content(module_id=published_module.id)
    quiz = seed_content(module_id=published_module.id, content_type=ContentType.Quizzes)

    client.post(f"/quizzes/{quiz.id}/submit", json={"answers": [0, 0, 0]}, headers=headers)

    body = _progress(client, published_module.id, headers)
    assert body["completedCount"] == 1
    assert body["totalCount"] == 2
    assert body["progressPercentage"] == 50.0


def test_progress_ignores_other_modules(client, enrolled_learner, published_module, lecturer):
    _, headers = enrolled_learner
    lect, _ = lecturer
    other = seed_module(instructor_id=lect.id)
    other_item = seed_content(module_id=other.id)
    seed_content(module_id=published_module.id)

    assert client.post("/enrollments", json={"module_id": str(other.id)}, headers=headers).status_code == 201
    client.post(f"/content/{other_item.id}/complete", headers=headers)

    body = _progress(client, published_module.id, headers)
    assert body["completedCount"] == 0
    assert body["totalCount"] == 1


def test_new_content_lowers_percentage(client, enrolled_learner, published_module):
    _, headers = enrolled_learner
    first = seed_content(module_id=published_module.id)
    client.post(f"/content/{first.id}/complete", headers=headers)
    assert _progress(client, published_module.id, headers)["progressPercentage"] == 100.0

    seed_content(module_id=published_module.id)
    assert _progress(client, published_module.id, headers)["progressPercentage"] == 50.0


def test_complete_content_requires_enrollment(client, learner, published_module):
    _, headers = learner
    item = seed_content(module_id=published_module.id)
    r = client.post(f"/content/{item.id}/complete", headers=headers)
    assert r.status_code == 403


def test_progress_requires_enrollment(client, learner, published_module):
    _, headers = learner
    r = client.get(f"/progress/modules/{published_module.id}", headers=headers)
    assert r.status_code == 403


def test_progress_unknown_module(client, learner):
    _, headers = learner
    r = client.get(f"/progress/modules/{uuid.uuid4()}", headers=headers)
    assert r.status_code == 404


def test_complete_enrollment(client, enrolled_learner, published_module):
    _, headers = enrolled_learner
    r = client.get("/enrollments", headers=headers)
    enrollment_id = r.json()[0]["id"]

    r = client.put(f"/enrollments/{enrollment_id}/complete", headers=headers)
    assert r.status_code == 200
    assert r.json()["is_completed"] is True
    assert r.json()["completed_date"] is not None


def test_complete_enrollment_of_someone_else_is_not_found(client, enrolled_learner, make_user):
    _, headers = enrolled_learner
    enrollment_id = client.get("/enrollments", headers=headers).json()[0]["id"]

    _, other_headers = make_user()
    r = client.put(f"/enrollments/{enrollment_id}/complete", headers=other_headers)
    assert r.status_code == 404


def test_complete_enrollment_can_require_all_content(client, enrolled_learner, published_module, monkeypatch):
    _, headers = enrolled_learner
    item = seed_content(module_id=published_module.id)
    enrollment_id = client.get("/enrollments", headers=headers).json()[0]["id"]

    monkeypatch.setattr(settings, "enforce_content_completion", True)
    r = client.put(f"/enrollments/{enrollment_id}/complete", headers=headers)
    assert r.status_code == 400

    client.post(f"/content/{item.id}/complete", headers=headers)
    r = client.put(f"/enrollments/{enrollment_id}/complete", headers=headers)
    assert r.status_code == 200

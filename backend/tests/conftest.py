import os
import sys
import time
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from sqlalchemy.pool import StaticPool

from elearning.db.base import Base
from elearning.db import session as session_module
from elearning.main import create_app

# Import models so that they are registered in Base.metadata before create_all.
import elearning.models  # noqa: F401
from elearning.core.security import create_access_token, hash_password
from elearning.models.content import Content, ContentType
from elearning.models.module import Module
from elearning.models.user import User, UserRole


class _MemoryRedis:
    def __init__(self):
        self._data: dict[str, tuple[str, float | None]] = {}

    def ping(self):
        return True

    def _now(self) -> float:
        return time.time()

    def _get_entry(self, key: str):
        v = self._data.get(key)
        if not v:
            return None
        value, exp = v
        if exp is not None and exp <= self._now():
            self._data.pop(key, None)
            return None
        return value, exp

    def get(self, key: str):
        entry = self._get_entry(key)
        return entry[0] if entry else None

    def incr(self, key: str):
        cur = self.get(key)
        n = int(cur or 0) + 1
        _, exp = self._data.get(key, ("", None))
        self._data[key] = (str(n), exp)
        return n

    def expire(self, key: str, seconds: int):
        entry = self._get_entry(key)
        if not entry:
            return False
        value, _ = entry
        self._data[key] = (value, self._now() + int(seconds))
        return True

    def ttl(self, key: str):
        entry = self._get_entry(key)
        if not entry:
            return -2
        _, exp = entry
        if exp is None:
            return -1
        return max(0, int(exp - self._now()))

    def flushall(self):
        self._data.clear()


class _MemoryS3:
    def __init__(self):
        self.buckets: set[str] = set()
        self.objects: dict[tuple[str, str], bytes] = {}
        self.fail_puts = False

    def head_bucket(self, *, Bucket):
        if Bucket not in self.buckets:
            raise RuntimeError("no such bucket")
        return {}

    def create_bucket(self, *, Bucket):
        self.buckets.add(Bucket)
        return {}

    def put_object(self, *, Bucket, Key, Body, ContentType=None):
        if self.fail_puts:
            raise RuntimeError("storage unavailable")
        self.objects[(Bucket, Key)] = bytes(Body)
        return {}

    def delete_object(self, *, Bucket, Key):
        self.objects.pop((Bucket, Key), None)
        return {}

    def list_objects_v2(self, *, Bucket, Prefix="", MaxKeys=1000, ContinuationToken=None):
        keys = sorted(k for b, k in self.objects if b == Bucket and k.startswith(Prefix))
        start = int(ContinuationToken or 0)
        page = keys[start : start + int(MaxKeys)]
        resp = {"Contents": [{"Key": k} for k in page], "IsTruncated": start + len(page) < len(keys)}
        if resp["IsTruncated"]:
            resp["NextContinuationToken"] = str(start + len(page))
        return resp

    def delete_objects(self, *, Bucket, Delete):
        for o in Delete.get("Objects", []):
            self.objects.pop((Bucket, o["Key"]), None)
        return {}

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for _, k in self.objects if k.startswith(prefix))


# Configure test DB (SQLite in-memory) at import time so all tests importing
# elearning.db.session.SessionLocal will get the patched version.
_engine = session_module.create_db_engine("sqlite+pysqlite:///:memory:", poolclass=StaticPool)
Base.metadata.create_all(bind=_engine)
session_module.engine = _engine
session_module.SessionLocal = session_module.sessionmaker(autocommit=False, autoflush=False, bind=_engine)


# Stub Redis and S3 at import time.
_mem_redis = _MemoryRedis()
_mem_s3 = _MemoryS3()

import elearning.core.redis_client as redis_client_module

redis_client_module.get_redis = lambda: _mem_redis

import elearning.core.rate_limit as rate_limit_module

rate_limit_module.get_redis = lambda: _mem_redis

import elearning.services.storage as storage_module

storage_module.get_s3_client = lambda: _mem_s3


_app = create_app()


def _get_db_override():
    db = session_module.SessionLocal()
    try:
        yield db
    finally:
        db.close()


_app.dependency_overrides[session_module.get_db] = _get_db_override


@pytest.fixture()
def client():
    # Fresh client per test so auth cookies never leak between tests.
    return TestClient(_app)


@pytest.fixture()
def db():
    with session_module.SessionLocal() as session:
        yield session


@pytest.fixture()
def s3():
    return _mem_s3


@pytest.fixture()
def memory_redis():
    _mem_redis.flushall()
    return _mem_redis


def create_user(*, role: UserRole, password: str = "testpass123", is_active: bool = True) -> User:
    with session_module.SessionLocal() as db:
        user = User(
            firstname="Test",
            lastname=role.value.title(),
            email=f"{role.value}_{uuid.uuid4().hex[:10]}@example.com",
            role=role,
            is_active=is_active,
            password_hash=hash_password(password),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        db.expunge(user)
        return user


def headers_for(user: User) -> dict[str, str]:
    token = create_access_token(user_id=str(user.id), role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_user():
    def _make(role: UserRole = UserRole.learner, **kwargs):
        user = create_user(role=role, **kwargs)
        return user, headers_for(user)

    return _make


@pytest.fixture()
def learner(make_user):
    return make_user(UserRole.learner)


@pytest.fixture()
def lecturer(make_user):
    return make_user(UserRole.lecturer)


@pytest.fixture()
def admin(make_user):
    return make_user(UserRole.admin)


SAMPLE_QUIZ = [
    {"question_text": "2 + 2 = ?", "options": ["3", "4", "5"], "correct_answer_index": 1},
    {"question_text": "Capital of France?", "options": ["Paris", "Rome"], "correct_answer_index": 0},
    {"question_text": "Largest planet?", "options": ["Mars", "Venus", "Jupiter"], "correct_answer_index": 2},
]


def seed_module(*, instructor_id, published: bool = True, price: float = 0.0, name: str | None = None) -> Module:
    with session_module.SessionLocal() as db:
        module = Module(
            module_name=name or f"Module {uuid.uuid4().hex[:6]}",
            description="A module for tests",
            instructor_id=instructor_id,
            is_published=published,
            category="programming",
            difficulty="beginner",
            duration_hours=4,
            price=price,
        )
        db.add(module)
        db.commit()
        db.refresh(module)
        db.expunge(module)
        return module


def seed_content(*, module_id, content_type: ContentType = ContentType.Notes, quiz_data=None, title: str = "Item") -> Content:
    with session_module.SessionLocal() as db:
        content = Content(module_id=module_id, title=title, content_type=content_type)
        if content_type == ContentType.Quizzes:
            content.quiz_data = quiz_data if quiz_data is not None else SAMPLE_QUIZ
        else:
            content.content_text = "Some text"
        db.add(content)
        db.commit()
        db.refresh(content)
        db.expunge(content)
        return content


@pytest.fixture()
def published_module(lecturer):
    user, _ = lecturer
    return seed_module(instructor_id=user.id)


@pytest.fixture()
def enrolled_learner(client, learner, published_module):
    user, headers = learner
    r = client.post("/enrollments", json={"module_id": str(published_module.id)}, headers=headers)
    assert r.status_code == 201
    return user, headers

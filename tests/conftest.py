"""
Pytest configuration and fixtures

Tests run against an in-memory SQLite database. The schema is created
before and dropped after every test, so nothing leaks between tests.
Redis is never contacted: the shoutbox throttle sees no client (fail
open) unless a test installs ``FakeRedis``.
"""
import os
import sys
from datetime import date
from uuid import uuid4

import pytest

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Must be set before core.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["REDIS_URL"] = "redis://localhost:1/0"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"

from core.database import Base, SessionLocal, engine  # noqa: E402
from core.security import create_access_token  # noqa: E402
from models import GroupMember, TrainingSession, User  # noqa: E402


class FakeRedis:
    """Just enough of redis.Redis for SET NX EX throttling and INCR windows."""

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.set_calls = []

    def incr(self, key):
        self.store[key] = int(self.store.get(key, 0)) + 1
        return self.store[key]

    def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    def ttl(self, key):
        return self.ttls.get(key, -1)

    def set(self, key, value, nx=False, ex=None):
        self.set_calls.append((key, value, nx, ex))
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True


class RecordingLeaderboardSync:
    """Stands in for DebouncedLeaderboardSync in API tests: no timers."""

    def __init__(self):
        self.scheduled = []

    def schedule(self, user_id, group_id):
        self.scheduled.append((user_id, group_id))


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema per test; the session is closed before tables are dropped."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _no_redis(monkeypatch):
    import services.shoutbox as shoutbox_mod
    monkeypatch.setattr(shoutbox_mod, "get_redis_client", lambda: None)


@pytest.fixture
def make_user(db_session):
    def _make_user(is_anonymous=False):
        user = User(
            id=uuid4(),
            email=None if is_anonymous else f"fighter_{uuid4().hex[:8]}@example.com",
            is_anonymous=is_anonymous,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture
def test_user(make_user):
    return make_user()


@pytest.fixture
def add_sessions(db_session):
    """Insert pre-scored sessions directly: add_sessions(user, [(date, type, points), ...])."""
    def _add_sessions(user, specs, level="Basic"):
        rows = []
        for day, session_type, points in specs:
            row = TrainingSession(
                user_id=user.id,
                group_id="global",
                date=day if isinstance(day, date) else date.fromisoformat(day),
                type=session_type,
                level=level,
                points=points,
            )
            db_session.add(row)
            rows.append(row)
        db_session.commit()
        return rows
    return _add_sessions


@pytest.fixture
def add_member(db_session):
    def _add_member(user, username, score=0.0, badges=None, group_id="global"):
        member = GroupMember(
            user_id=user.id,
            group_id=group_id,
            username=username,
            score=score,
            badges=badges or [],
        )
        db_session.add(member)
        db_session.commit()
        return member
    return _add_member


def auth_headers(user, page=None):
    token = create_access_token(data={"sub": str(user.id)})
    headers = {"Authorization": f"Bearer {token}"}
    if page:
        headers["X-Client-Page"] = page
    return headers

"""
Pytest Configuration and Fixtures
"""

import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import database
from auth import get_password_hash
from database import Base, enable_sqlite_foreign_keys, get_db
from main import app
from models import Badge, BadgeType, Challenge, DifficultyLevel, User, UserRole
from services import sessions as session_service

PASSWORD = "secret123"
# bcrypt медленный, хешируем один раз на весь прогон
PASSWORD_HASH = get_password_hash(PASSWORD)

_counter = itertools.count(1)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    # in-memory база исчезает вместе с соединением
    engine.dispose()


@pytest.fixture
def session_factory(engine, monkeypatch):
    """Session factory bound to the test engine; also used by background tasks."""
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    monkeypatch.setattr(database, "SessionLocal", factory)
    return factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """Return API test client with the database dependency overridden."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(role=UserRole.USER, is_active=True, first_name=None, last_name="Tester", **fields):
        n = next(_counter)
        data = {
            "email": f"user{n}@example.com",
            "hashed_password": PASSWORD_HASH,
            "first_name": first_name or f"User{n}",
            "last_name": last_name,
            "role": role,
            "is_active": is_active,
            "total_score": 0,
        }
        data.update(fields)
        user = User(**data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers(db):
    def _auth_headers(user):
        session = session_service.create_session(db, user)
        return {"Authorization": f"Bearer {session.id}"}

    return _auth_headers


@pytest.fixture
def challenge_payload():
    return {
        "title": "30 days of push-ups",
        "description": "Do push-ups every day",
        "exercises": [{"exercise_id": 1, "sets": 3, "reps": 20}],
        "goals": [{"type": "REPS", "target": 1800, "unit": "reps"}],
        "difficulty": "BEGINNER",
        "duration": 30,
        "tags": ["strength", "pushups"],
    }


@pytest.fixture
def make_challenge(db):
    def _make_challenge(creator, **fields):
        data = {
            "title": "Plank challenge",
            "description": "Hold the plank longer each day",
            "exercises": [{"exercise_id": 1, "duration": 60}],
            "goals": [{"type": "TIME", "target": 300, "unit": "sec"}],
            "difficulty": DifficultyLevel.BEGINNER,
            "duration": 14,
            "current_participants": 0,
            "tags": ["core"],
        }
        data.update(fields)
        challenge = Challenge(created_by=creator.id, **data)
        db.add(challenge)
        db.commit()
        db.refresh(challenge)
        return challenge

    return _make_challenge


@pytest.fixture
def make_badge(db):
    def _make_badge(rules=None, **fields):
        n = next(_counter)
        data = {
            "name": f"Badge {n}",
            "description": "Test badge",
            "type": BadgeType.ACHIEVEMENT,
            "rules": rules if rules is not None else [
                {"condition": "challenges_completed", "operator": ">=", "value": 1}
            ],
            "points": 50,
            "is_active": True,
        }
        data.update(fields)
        badge = Badge(**data)
        db.add(badge)
        db.commit()
        db.refresh(badge)
        return badge

    return _make_badge

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["ACHIEVEMENTS_EVALUATE_IN_BACKGROUND"] = "false"

import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

import app.models  # noqa: F401
from app.database import Base, SessionLocal, engine
from app.main import app as fastapi_app
from app.models import Achievement, AchievementType, Quiz
from app.services.achievement_catalog import load_catalog


NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user_id():
    return uuid.uuid4()


def build_questions(num_questions):
    return [
        {
            "id": f"q{i}",
            "text": f"Question {i}?",
            "explanation": f"Because of reason {i}",
            "options": [
                {"id": f"q{i}-a", "text": "Right", "is_correct": True},
                {"id": f"q{i}-b", "text": "Wrong", "is_correct": False},
            ],
        }
        for i in range(1, num_questions + 1)
    ]


def answers_for(quiz, correct=None):
    """(question_id, option_id) pairs; the first `correct` questions answered right"""
    questions = quiz.questions
    if correct is None:
        correct = len(questions)
    return [
        (q["id"], q["options"][0]["id"] if i < correct else q["options"][1]["id"])
        for i, q in enumerate(questions)
    ]


@pytest.fixture
def make_quiz(db):
    def _make_quiz(num_questions=4, cooldown_hours=24, title="Networking Basics"):
        quiz = Quiz(
            title=title,
            description="A short quiz",
            difficulty="EASY",
            time_limit=10,
            cooldown_hours=cooldown_hours,
            questions=build_questions(num_questions),
        )
        db.add(quiz)
        db.commit()
        db.refresh(quiz)
        return quiz

    return _make_quiz


@pytest.fixture
def make_achievement(db):
    def _make_achievement(type, threshold, name=None, points=10):
        achievement = Achievement(
            name=name or f"{type.value}-{threshold}",
            description=f"Reach {threshold}",
            icon="trophy",
            type=type.value if isinstance(type, AchievementType) else type,
            threshold=threshold,
            points=points,
        )
        db.add(achievement)
        db.commit()
        db.refresh(achievement)
        return achievement

    return _make_achievement


@pytest.fixture
def client(db):
    test_client = TestClient(fastapi_app)
    fastapi_app.state.achievement_catalog = load_catalog(db)
    try:
        yield test_client
    finally:
        if hasattr(fastapi_app.state, "achievement_catalog"):
            del fastapi_app.state.achievement_catalog


@pytest.fixture
def reload_catalog(db):
    def _reload():
        fastapi_app.state.achievement_catalog = load_catalog(db)
        return fastapi_app.state.achievement_catalog

    return _reload


@pytest.fixture
def answer_key():
    return answers_for

import uuid
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.exceptions import ConflictError, CooldownError, NotFoundError, StoreError, ValidationError
from app.models import QuizAttempt
from app.services.attempt_service import AttemptService
from app.services.cooldown_service import CooldownStatus
from app.services.scoring_service import ScoringResult

from conftest import NOW


@pytest.fixture
def service():
    return AttemptService()


def test_perfect_submission_is_recorded(db, make_quiz, user_id, answer_key, service):
    quiz = make_quiz(num_questions=4, cooldown_hours=24)

    outcome = service.record_attempt(db, quiz.id, user_id, answer_key(quiz), time_spent=95, now=NOW)

    assert outcome.score == 100
    assert outcome.correct_answers == 4
    assert outcome.total_questions == 4
    assert outcome.time_spent == 95
    assert outcome.next_attempt_allowed == NOW + timedelta(hours=24)

    attempt = db.query(QuizAttempt).one()
    assert attempt.attempt_number == 1
    assert attempt.completed_at == NOW
    assert attempt.next_attempt_allowed == NOW + timedelta(hours=24)
    assert attempt.answers[0] == {
        "question_id": "q1",
        "selected_option_id": "q1-a",
        "is_correct": True,
        "explanation": "Because of reason 1",
    }


def test_second_submission_inside_cooldown_is_rejected(db, make_quiz, user_id, answer_key, service):
    quiz = make_quiz(num_questions=4, cooldown_hours=24)
    service.record_attempt(db, quiz.id, user_id, answer_key(quiz), time_spent=60, now=NOW)

    with pytest.raises(CooldownError) as exc_info:
        service.record_attempt(
            db, quiz.id, user_id, answer_key(quiz), time_spent=60, now=NOW + timedelta(hours=1)
        )

    assert exc_info.value.next_attempt_at == NOW + timedelta(hours=24)
    assert db.query(QuizAttempt).count() == 1


def test_submission_at_cooldown_end_is_accepted(db, make_quiz, user_id, answer_key, service):
    quiz = make_quiz(cooldown_hours=24)
    service.record_attempt(db, quiz.id, user_id, answer_key(quiz), time_spent=60, now=NOW)

    outcome = service.record_attempt(
        db, quiz.id, user_id, answer_key(quiz, correct=1), time_spent=60, now=NOW + timedelta(hours=24)
    )

    assert outcome.score == 25
    attempts = db.query(QuizAttempt).order_by(QuizAttempt.attempt_number).all()
    assert [a.attempt_number for a in attempts] == [1, 2]


def test_zero_cooldown_allows_immediate_retry(db, make_quiz, user_id, answer_key, service):
    quiz = make_quiz(cooldown_hours=0)

    service.record_attempt(db, quiz.id, user_id, answer_key(quiz), time_spent=10, now=NOW)
    service.record_attempt(db, quiz.id, user_id, answer_key(quiz), time_spent=10, now=NOW)

    assert db.query(QuizAttempt).count() == 2


def test_missing_quiz_raises_not_found(db, user_id, service):
    with pytest.raises(NotFoundError):
        service.record_attempt(db, uuid.uuid4(), user_id, [], time_spent=0, now=NOW)


@pytest.mark.parametrize("count", [0, 3, 5])
def test_wrong_answer_count_writes_nothing(db, make_quiz, user_id, answer_key, service, count):
    quiz = make_quiz(num_questions=4)
    answers = (answer_key(quiz) * 2)[:count]

    with pytest.raises(ValidationError):
        service.record_attempt(db, quiz.id, user_id, answers, time_spent=30, now=NOW)

    assert db.query(QuizAttempt).count() == 0


def test_unknown_option_writes_nothing(db, make_quiz, user_id, answer_key, service):
    quiz = make_quiz(num_questions=2)
    answers = [("q1", "q1-a"), ("q2", "not-an-option")]

    with pytest.raises(ValidationError):
        service.record_attempt(db, quiz.id, user_id, answers, time_spent=30, now=NOW)

    assert db.query(QuizAttempt).count() == 0


def test_negative_time_spent_is_rejected(db, make_quiz, user_id, answer_key, service):
    quiz = make_quiz()

    with pytest.raises(ValidationError):
        service.record_attempt(db, quiz.id, user_id, answer_key(quiz), time_spent=-1, now=NOW)


class StaleCooldown:
    """Reports the state a concurrent request saw before the other one committed"""

    def check(self, db, user_id, quiz_id, now=None):
        return CooldownStatus(can_attempt=True, next_attempt_number=1)


def test_racing_submission_for_same_epoch_is_a_conflict(db, make_quiz, user_id, answer_key):
    quiz = make_quiz(cooldown_hours=24)
    AttemptService().record_attempt(db, quiz.id, user_id, answer_key(quiz), time_spent=60, now=NOW)

    racing = AttemptService(cooldown=StaleCooldown())
    with pytest.raises(ConflictError):
        racing.record_attempt(db, quiz.id, user_id, answer_key(quiz), time_spent=60, now=NOW)

    assert db.query(QuizAttempt).count() == 1


def test_database_failure_is_a_store_error(db, make_quiz, user_id, answer_key, service, monkeypatch):
    quiz = make_quiz()

    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", broken_commit)

    with pytest.raises(StoreError):
        service.record_attempt(db, quiz.id, user_id, answer_key(quiz), time_spent=60, now=NOW)

    monkeypatch.undo()
    assert db.query(QuizAttempt).count() == 0


def test_latest_result_returns_most_recent(db, make_quiz, user_id, answer_key, service):
    quiz = make_quiz(cooldown_hours=0)
    service.record_attempt(db, quiz.id, user_id, answer_key(quiz, correct=1), time_spent=10, now=NOW)
    service.record_attempt(
        db, quiz.id, user_id, answer_key(quiz, correct=3), time_spent=10, now=NOW + timedelta(minutes=5)
    )

    assert service.latest_result(db, quiz.id, user_id).score == 75


def test_latest_result_without_attempts_is_not_found(db, make_quiz, user_id, service):
    quiz = make_quiz()

    with pytest.raises(NotFoundError):
        service.latest_result(db, quiz.id, user_id)


class OutOfRangeScoring:
    """Produces a score the attempts table refuses"""

    def score_submission(self, questions, answers):
        return ScoringResult(score=150, correct_count=len(answers), total_questions=len(questions), details=[])


def test_constraint_violation_is_not_reported_as_a_conflict(db, make_quiz, user_id, answer_key):
    quiz = make_quiz()

    with pytest.raises(StoreError) as exc_info:
        AttemptService(scoring=OutOfRangeScoring()).record_attempt(
            db, quiz.id, user_id, answer_key(quiz), time_spent=60, now=NOW
        )

    assert not isinstance(exc_info.value, ConflictError)
    assert db.query(QuizAttempt).count() == 0


def test_quiz_lookup_failure_is_a_store_error(db, make_quiz, user_id, answer_key, service, monkeypatch):
    quiz = make_quiz()

    def broken_query(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("server closed the connection"))

    monkeypatch.setattr(db, "query", broken_query)

    with pytest.raises(StoreError):
        service.record_attempt(db, quiz.id, user_id, answer_key(quiz), time_spent=60, now=NOW)
    with pytest.raises(StoreError):
        service.latest_result(db, quiz.id, user_id)

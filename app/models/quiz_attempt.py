"""
QuizAttempt model - append-only record of scored submissions
"""
from sqlalchemy import (
    Column, Integer, ForeignKey, CheckConstraint, UniqueConstraint, Index, Uuid
)
from app.database import Base, JSONType, UTCDateTime, utcnow
import uuid


class QuizAttempt(Base):
    """
    Quiz attempts table - one row per accepted submission, never updated

    attempt_number is the per (user, quiz) submission epoch; the unique
    constraint on it rejects the second of two racing submissions.
    answers holds immutable snapshots:
    [{"question_id", "selected_option_id", "is_correct", "explanation"}]
    """
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        UniqueConstraint("user_id", "quiz_id", "attempt_number", name="uq_attempt_user_quiz_epoch"),
        CheckConstraint("score >= 0 AND score <= 100", name="ck_attempt_score_range"),
        CheckConstraint("time_spent >= 0", name="ck_attempt_time_spent_non_negative"),
        Index("ix_attempts_user_quiz_completed", "user_id", "quiz_id", "completed_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id"), nullable=False)
    attempt_number = Column(Integer, nullable=False)
    answers = Column(JSONType, nullable=False)
    score = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    time_spent = Column(Integer, nullable=False)  # seconds
    completed_at = Column(UTCDateTime, nullable=False, default=utcnow)
    next_attempt_allowed = Column(UTCDateTime, nullable=False)

    def __repr__(self):
        return (
            f"<QuizAttempt(user_id={self.user_id}, quiz_id={self.quiz_id}, "
            f"attempt={self.attempt_number}, score={self.score})>"
        )

"""
Quiz model - authored quizzes with embedded questions
"""
import enum
import uuid

from sqlalchemy import Column, String, Integer, Text, CheckConstraint, Uuid

from app.database import Base, JSONType, UTCDateTime, utcnow


class Difficulty(str, enum.Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class Quiz(Base):
    """
    Quizzes table - authored by admins, immutable reference for attempts

    questions holds the ordered question list:
    [{"id", "text", "explanation", "options": [{"id", "text", "is_correct"}]}]
    """
    __tablename__ = "quizzes"
    __table_args__ = (
        CheckConstraint("cooldown_hours >= 0", name="ck_quizzes_cooldown_non_negative"),
        CheckConstraint("time_limit >= 1", name="ck_quizzes_time_limit_positive"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    topic_id = Column(Uuid, index=True)
    difficulty = Column(String(10), nullable=False, default=Difficulty.MEDIUM.value)
    time_limit = Column(Integer, nullable=False, default=10)  # minutes
    tags = Column(JSONType, default=list)
    cooldown_hours = Column(Integer, nullable=False, default=24)  # 0 means no cooldown
    questions = Column(JSONType, nullable=False, default=list)
    created_by = Column(Uuid)
    created_at = Column(UTCDateTime, default=utcnow)

    @property
    def question_count(self) -> int:
        return len(self.questions or [])

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title}, cooldown_hours={self.cooldown_hours})>"

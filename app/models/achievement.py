"""
Achievement model - static catalog of unlockable milestones
"""
import enum
import uuid

from sqlalchemy import Column, String, Integer, Text, Uuid

from app.database import Base


class AchievementType(str, enum.Enum):
    QUIZ_SCORE = "QUIZ_SCORE"
    QUIZ_COUNT = "QUIZ_COUNT"
    STREAK = "STREAK"
    TOPIC_MASTERY = "TOPIC_MASTERY"


class Achievement(Base):
    """
    Achievements table - configured by admins, read through the catalog
    """
    __tablename__ = "achievements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=False)
    icon = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)
    threshold = Column(Integer, nullable=False)
    points = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Achievement(name={self.name}, type={self.type}, threshold={self.threshold})>"

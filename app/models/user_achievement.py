"""
UserAchievement model - permanent unlock records
"""
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from app.database import Base, UTCDateTime, utcnow
import uuid


class UserAchievement(Base):
    """
    User achievements table - one row per (user, achievement), never updated

    The unique pair constraint makes unlocking at-most-once.
    """
    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    achievement_id = Column(Uuid, ForeignKey("achievements.id"), nullable=False)
    unlocked_at = Column(UTCDateTime, nullable=False, default=utcnow)
    progress = Column(Integer, nullable=False, default=0)

    achievement = relationship("Achievement")

    def __repr__(self):
        return f"<UserAchievement(user_id={self.user_id}, achievement_id={self.achievement_id})>"

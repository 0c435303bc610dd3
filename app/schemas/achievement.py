"""
Pydantic schemas for achievement endpoints
"""
from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime


class AchievementResponse(BaseModel):
    """Achievement definition"""
    id: UUID
    name: str
    description: str
    icon: str
    type: str
    threshold: int
    points: int

    class Config:
        from_attributes = True


class UserAchievementResponse(BaseModel):
    """An unlocked achievement"""
    achievement: AchievementResponse
    unlocked_at: datetime
    progress: int

    class Config:
        from_attributes = True


class AchievementProgressResponse(AchievementResponse):
    """Catalog entry annotated with the user's progress"""
    progress: int
    unlocked: bool
    unlocked_at: Optional[datetime] = None

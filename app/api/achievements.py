"""
Achievement API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import logging

from app.database import get_db
from app.api.deps import get_achievement_service, get_current_user_id
from app.schemas.achievement import AchievementProgressResponse, UserAchievementResponse
from app.services.achievement_service import AchievementService

router = APIRouter(prefix="/api/achievements", tags=["achievements"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[UserAchievementResponse])
async def get_user_achievements(
    user_id: UUID = Depends(get_current_user_id),
    achievements: AchievementService = Depends(get_achievement_service),
    db: Session = Depends(get_db)
):
    """Unlocked achievements, most recently unlocked first"""

    records = achievements.list_unlocked(db, user_id)

    return [UserAchievementResponse.model_validate(r) for r in records]


@router.get("/progress", response_model=List[AchievementProgressResponse])
async def get_achievement_progress(
    user_id: UUID = Depends(get_current_user_id),
    achievements: AchievementService = Depends(get_achievement_service),
    db: Session = Depends(get_db)
):
    """
    Progress towards every achievement in the catalog

    Returns:
    - Recorded progress and unlock time for unlocked achievements
    - Live progress for the rest, computed for every achievement type
    """

    logger.info(f"Fetching achievement progress for user {user_id}")

    return [
        AchievementProgressResponse(
            id=p.achievement.id,
            name=p.achievement.name,
            description=p.achievement.description,
            icon=p.achievement.icon,
            type=p.achievement.type.value,
            threshold=p.achievement.threshold,
            points=p.achievement.points,
            progress=p.progress,
            unlocked=p.unlocked,
            unlocked_at=p.unlocked_at,
        )
        for p in achievements.compute_progress(db, user_id)
    ]

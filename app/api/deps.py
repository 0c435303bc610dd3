"""
Shared API dependencies
"""
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status

from app.config import settings
from app.services.achievement_catalog import AchievementCatalog
from app.services.achievement_service import AchievementService, StreakMode


def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(None)
) -> UUID:
    """
    Identity of the authenticated user

    Session handling lives in the upstream auth gateway, which forwards
    the user id in the X-User-Id header.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity",
        )

    request.state.user_id = user_id
    return user_id


def get_achievement_catalog(request: Request) -> AchievementCatalog:
    return getattr(request.app.state, "achievement_catalog", None) or AchievementCatalog()


def get_achievement_service(
    catalog: AchievementCatalog = Depends(get_achievement_catalog)
) -> AchievementService:
    return AchievementService(catalog, streak_mode=StreakMode(settings.ACHIEVEMENT_STREAK_MODE))

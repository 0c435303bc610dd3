"""
Attempt cooldown policy
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import utcnow
from app.exceptions import StoreError
from app.models import QuizAttempt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CooldownStatus:
    can_attempt: bool
    next_attempt_at: Optional[datetime] = None
    next_attempt_number: int = 1


def is_attempt_allowed(next_attempt_allowed: Optional[datetime], now: datetime) -> bool:
    """No prior attempt, or the prior attempt's window has passed (inclusive)"""
    if next_attempt_allowed is None:
        return True
    return now >= next_attempt_allowed


class CooldownService:
    """Decides whether a user may submit another attempt at a quiz"""

    def latest_attempt(self, db: Session, user_id: UUID, quiz_id: UUID) -> Optional[QuizAttempt]:
        """
        Most recent attempt for the pair

        Ties on completed_at fall back to the higher attempt_number.
        """
        try:
            return db.query(QuizAttempt).filter(
                QuizAttempt.user_id == user_id,
                QuizAttempt.quiz_id == quiz_id
            ).order_by(
                QuizAttempt.completed_at.desc(),
                QuizAttempt.attempt_number.desc()
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read attempts: user={user_id}, quiz={quiz_id}, error={str(e)}", exc_info=True)
            raise StoreError("Failed to read quiz attempts") from e

    def check(
        self,
        db: Session,
        user_id: UUID,
        quiz_id: UUID,
        now: Optional[datetime] = None
    ) -> CooldownStatus:
        """
        Get cooldown status for a (user, quiz) pair

        Args:
            db: Database session
            user_id: User UUID
            quiz_id: Quiz UUID
            now: Evaluation time (defaults to current UTC time)

        Returns:
            CooldownStatus; next_attempt_at is set whenever a prior attempt exists
        """
        now = now or utcnow()
        latest = self.latest_attempt(db, user_id, quiz_id)

        if latest is None:
            return CooldownStatus(can_attempt=True)

        try:
            last_number = db.query(func.max(QuizAttempt.attempt_number)).filter(
                QuizAttempt.user_id == user_id,
                QuizAttempt.quiz_id == quiz_id
            ).scalar() or 0
        except SQLAlchemyError as e:
            raise StoreError("Failed to read quiz attempts") from e

        can_attempt = is_attempt_allowed(latest.next_attempt_allowed, now)

        if not can_attempt:
            logger.info(
                f"Cooldown active: user={user_id}, quiz={quiz_id}, "
                f"next_attempt_at={latest.next_attempt_allowed.isoformat()}"
            )

        return CooldownStatus(
            can_attempt=can_attempt,
            next_attempt_at=latest.next_attempt_allowed,
            next_attempt_number=last_number + 1,
        )


# Global instance
cooldown_service = CooldownService()

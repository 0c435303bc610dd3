"""
Achievement evaluation service
Rule-based progress tracking and idempotent unlocking
"""
import enum
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import utcnow
from app.exceptions import StoreError
from app.models import Achievement, AchievementType, QuizAttempt, UserAchievement
from app.services.achievement_catalog import AchievementCatalog, AchievementDefinition

logger = logging.getLogger(__name__)


class StreakMode(str, enum.Enum):
    DISTINCT_DAYS = "distinct_days"
    SAME_DAY_ATTEMPTS = "same_day_attempts"


DEFAULT_STREAK_MODE = StreakMode.DISTINCT_DAYS


@dataclass(frozen=True)
class AttemptRecord:
    """The slice of an attempt the rules look at"""
    quiz_id: UUID
    score: int
    completed_at: datetime


@dataclass(frozen=True)
class AchievementProgress:
    achievement: AchievementDefinition
    progress: int
    unlocked: bool
    unlocked_at: Optional[datetime] = None


class AchievementRule:
    """Computes the progress metric for one achievement type"""

    def evaluate(self, user_id: UUID, history: Sequence[AttemptRecord]) -> int:
        raise NotImplementedError


class QuizScoreRule(AchievementRule):
    """Highest score across all attempts"""

    def evaluate(self, user_id, history):
        return max((r.score for r in history), default=0)


class QuizCountRule(AchievementRule):
    """Total number of attempts"""

    def evaluate(self, user_id, history):
        return len(history)


class StreakRule(AchievementRule):
    """
    Consecutive activity, walked back from the most recent attempt

    DISTINCT_DAYS counts consecutive UTC calendar days with at least one
    attempt. SAME_DAY_ATTEMPTS counts the most recent attempts sharing the
    latest attempt's date.
    """

    def __init__(self, mode: StreakMode = DEFAULT_STREAK_MODE):
        self.mode = StreakMode(mode)

    def evaluate(self, user_id, history):
        if not history:
            return 0

        days = [self._day(r.completed_at) for r in sorted(
            history, key=lambda r: r.completed_at, reverse=True
        )]

        if self.mode == StreakMode.SAME_DAY_ATTEMPTS:
            streak = 0
            for day in days:
                if day != days[0]:
                    break
                streak += 1
            return streak

        distinct_days = sorted(set(days), reverse=True)
        streak = 1
        for previous, current in zip(distinct_days, distinct_days[1:]):
            if previous - current != timedelta(days=1):
                break
            streak += 1
        return streak

    @staticmethod
    def _day(moment: datetime) -> date:
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        return moment.date()


class TopicMasteryRule(AchievementRule):
    """Distinct quizzes whose average score is at least MASTERY_SCORE"""

    MASTERY_SCORE = 90

    def evaluate(self, user_id, history):
        quiz_scores = defaultdict(list)
        for record in history:
            quiz_scores[record.quiz_id].append(record.score)

        return sum(
            1 for scores in quiz_scores.values()
            if sum(scores) / len(scores) >= self.MASTERY_SCORE
        )


def build_rules(streak_mode: StreakMode = DEFAULT_STREAK_MODE) -> Dict[AchievementType, AchievementRule]:
    return {
        AchievementType.QUIZ_SCORE: QuizScoreRule(),
        AchievementType.QUIZ_COUNT: QuizCountRule(),
        AchievementType.STREAK: StreakRule(streak_mode),
        AchievementType.TOPIC_MASTERY: TopicMasteryRule(),
    }


class AchievementService:
    """
    Service for evaluating and reading user achievements

    Unlocks are inserted one at a time; the (user, achievement) unique
    constraint makes repeated or concurrent evaluation safe.
    """

    def __init__(
        self,
        catalog: AchievementCatalog,
        streak_mode: StreakMode = DEFAULT_STREAK_MODE
    ):
        self.catalog = catalog
        self.rules = build_rules(streak_mode)

    def load_history(self, db: Session, user_id: UUID) -> List[AttemptRecord]:
        """All attempts for the user, most recent first"""
        rows = db.query(
            QuizAttempt.quiz_id, QuizAttempt.score, QuizAttempt.completed_at
        ).filter(
            QuizAttempt.user_id == user_id
        ).order_by(
            QuizAttempt.completed_at.desc(),
            QuizAttempt.attempt_number.desc()
        ).all()

        return [AttemptRecord(quiz_id=q, score=s, completed_at=c) for q, s, c in rows]

    def measure(self, definition: AchievementDefinition, user_id: UUID, history: Sequence[AttemptRecord]) -> int:
        return self.rules[definition.type].evaluate(user_id, history)

    def _unlocked_records(self, db: Session, user_id: UUID) -> Dict[UUID, UserAchievement]:
        records = db.query(UserAchievement).filter(UserAchievement.user_id == user_id).all()
        return {r.achievement_id: r for r in records}

    def evaluate(
        self,
        db: Session,
        user_id: UUID,
        now: Optional[datetime] = None
    ) -> List[AchievementDefinition]:
        """
        Re-evaluate every locked achievement for a user

        Args:
            db: Database session
            user_id: User UUID
            now: Unlock timestamp (defaults to current UTC time)

        Returns:
            Achievements unlocked by this call
        """
        now = now or utcnow()

        try:
            unlocked_ids = set(self._unlocked_records(db, user_id))
            history = self.load_history(db, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read achievement state for user {user_id}: {str(e)}", exc_info=True)
            raise StoreError("Failed to evaluate achievements") from e

        newly_unlocked = []

        for definition in self.catalog:
            if definition.id in unlocked_ids:
                continue

            progress = self.measure(definition, user_id, history)
            if progress < definition.threshold:
                continue

            if self._insert_unlock(db, user_id, definition, progress, now):
                newly_unlocked.append(definition)

        if newly_unlocked:
            logger.info(
                f"Achievements unlocked for user {user_id}: "
                f"{', '.join(d.name for d in newly_unlocked)}"
            )

        return newly_unlocked

    def _insert_unlock(
        self,
        db: Session,
        user_id: UUID,
        definition: AchievementDefinition,
        progress: int,
        now: datetime
    ) -> bool:
        """Insert one unlock row; False when another evaluation got there first"""
        try:
            db.add(UserAchievement(
                user_id=user_id,
                achievement_id=definition.id,
                unlocked_at=now,
                progress=progress,
            ))
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.debug(f"Achievement {definition.name} already unlocked for user {user_id}")
            return False
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"Failed to record achievement {definition.name} for user {user_id}: {str(e)}",
                exc_info=True
            )
            raise StoreError("Failed to record achievement") from e

        return True

    def list_unlocked(self, db: Session, user_id: UUID) -> List[UserAchievement]:
        """
        Unlocked achievements, most recently unlocked first

        Unlocks from one evaluation share a timestamp and are ordered by name.
        """
        try:
            return db.query(UserAchievement).join(
                Achievement, UserAchievement.achievement_id == Achievement.id
            ).filter(
                UserAchievement.user_id == user_id
            ).order_by(
                UserAchievement.unlocked_at.desc(),
                Achievement.name
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list achievements for user {user_id}: {str(e)}", exc_info=True)
            raise StoreError("Failed to read achievements") from e

    def compute_progress(self, db: Session, user_id: UUID) -> List[AchievementProgress]:
        """
        Progress for every catalog achievement

        Unlocked entries report the progress recorded at unlock time;
        locked entries are measured live with the same rules used for unlocking.
        """
        try:
            unlocked = self._unlocked_records(db, user_id)
            history = self.load_history(db, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read achievement progress for user {user_id}: {str(e)}", exc_info=True)
            raise StoreError("Failed to read achievement progress") from e

        progress_list = []
        for definition in self.catalog:
            record = unlocked.get(definition.id)
            if record is not None:
                progress_list.append(AchievementProgress(
                    achievement=definition,
                    progress=record.progress,
                    unlocked=True,
                    unlocked_at=record.unlocked_at,
                ))
            else:
                progress_list.append(AchievementProgress(
                    achievement=definition,
                    progress=self.measure(definition, user_id, history),
                    unlocked=False,
                ))

        return progress_list

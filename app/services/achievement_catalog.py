"""
Read-only achievement catalog
Loaded once at startup and handed to the achievement engine
"""
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.models import Achievement, AchievementType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AchievementDefinition:
    id: UUID
    name: str
    description: str
    icon: str
    type: AchievementType
    threshold: int
    points: int

    @classmethod
    def from_model(cls, achievement: Achievement) -> "AchievementDefinition":
        return cls(
            id=achievement.id,
            name=achievement.name,
            description=achievement.description,
            icon=achievement.icon,
            type=AchievementType(achievement.type),
            threshold=achievement.threshold,
            points=achievement.points,
        )


class AchievementCatalog:
    """Immutable snapshot of the achievement definitions"""

    def __init__(self, definitions: Tuple[AchievementDefinition, ...] = ()):
        self._definitions = tuple(definitions)
        self._by_id = {d.id: d for d in self._definitions}

    def __iter__(self) -> Iterator[AchievementDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def get(self, achievement_id: UUID) -> Optional[AchievementDefinition]:
        return self._by_id.get(achievement_id)


def load_catalog(db: Session) -> AchievementCatalog:
    """Read every achievement row into a catalog snapshot"""
    rows = db.query(Achievement).order_by(Achievement.name).all()
    catalog = AchievementCatalog(tuple(AchievementDefinition.from_model(a) for a in rows))
    logger.info(f"Achievement catalog loaded: {len(catalog)} definitions")
    return catalog


DEFAULT_ACHIEVEMENTS: List[dict] = [
    {
        "name": "First Steps",
        "description": "Complete your first quiz",
        "icon": "trophy-bronze",
        "type": AchievementType.QUIZ_COUNT.value,
        "threshold": 1,
        "points": 10,
    },
    {
        "name": "Quiz Enthusiast",
        "description": "Complete 10 quizzes",
        "icon": "trophy-silver",
        "type": AchievementType.QUIZ_COUNT.value,
        "threshold": 10,
        "points": 50,
    },
    {
        "name": "Perfectionist",
        "description": "Score 100 on any quiz",
        "icon": "star",
        "type": AchievementType.QUIZ_SCORE.value,
        "threshold": 100,
        "points": 30,
    },
    {
        "name": "On a Roll",
        "description": "Take quizzes on 3 consecutive days",
        "icon": "flame",
        "type": AchievementType.STREAK.value,
        "threshold": 3,
        "points": 25,
    },
    {
        "name": "Topic Master",
        "description": "Average 90 or more on 3 different quizzes",
        "icon": "crown",
        "type": AchievementType.TOPIC_MASTERY.value,
        "threshold": 3,
        "points": 75,
    },
]


def seed_default_achievements(db: Session) -> int:
    """Insert the starter catalog when the table is empty; returns rows added"""
    if db.query(Achievement).count() > 0:
        return 0

    for data in DEFAULT_ACHIEVEMENTS:
        db.add(Achievement(**data))
    db.commit()

    logger.info(f"Seeded {len(DEFAULT_ACHIEVEMENTS)} default achievements")
    return len(DEFAULT_ACHIEVEMENTS)

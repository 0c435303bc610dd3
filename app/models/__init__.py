"""
Database models package
"""
from app.models.quiz import Quiz, Difficulty
from app.models.quiz_attempt import QuizAttempt
from app.models.achievement import Achievement, AchievementType
from app.models.user_achievement import UserAchievement

__all__ = [
    "Quiz", "Difficulty", "QuizAttempt",
    "Achievement", "AchievementType", "UserAchievement",
]

"""
Quiz attempt API endpoints
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging
from app.config import settings
from app.database import SessionLocal, get_db
from app.api.deps import get_achievement_service, get_current_user_id
from app.exceptions import StoreError
from app.schemas.achievement import AchievementResponse
from app.schemas.quiz import (
    AnswerResult,
    CooldownStatusResponse,
    QuizResultResponse,
    QuizSubmission,
    QuizSubmissionResponse,
)
from app.services.achievement_service import AchievementService
from app.services.attempt_service import attempt_service
from app.services.cooldown_service import cooldown_service


router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])
logger = logging.getLogger(__name__)


def achievement_response(definition) -> AchievementResponse:
    return AchievementResponse(
        id=definition.id,
        name=definition.name,
        description=definition.description,
        icon=definition.icon,
        type=definition.type.value,
        threshold=definition.threshold,
        points=definition.points,
    )


def evaluate_achievements_in_background(service: AchievementService, user_id: UUID):
    """Re-evaluate achievements with a session of its own"""
    db = SessionLocal()
    try:
        service.evaluate(db, user_id)
    except StoreError as e:
        logger.error(f"Background achievement evaluation failed for user {user_id}: {e.message}")
    finally:
        db.close()


@router.post("/{quiz_id}/submit", response_model=QuizSubmissionResponse)
async def submit_quiz(
    quiz_id: UUID,
    submission: QuizSubmission,
    background_tasks: BackgroundTasks,
    user_id: UUID = Depends(get_current_user_id),
    achievements: AchievementService = Depends(get_achievement_service),
    db: Session = Depends(get_db),
):
    """
    Submit and score a quiz attempt

    - Every question must be answered exactly once
    - Rejected with 403 while the previous attempt's cooldown is running
    - Stores the attempt, then re-evaluates the user's achievements

    Returns:
    - Score (0-100) and per-question breakdown with explanations
    - Achievements unlocked by this attempt (when evaluated inline)
    """

    logger.info(f"Scoring quiz {quiz_id} for user {user_id}")

    outcome = attempt_service.record_attempt(
        db,
        quiz_id=quiz_id,
        user_id=user_id,
        answers=[(a.question_id, a.selected_option_id) for a in submission.answers],
        time_spent=submission.time_spent,
    )

    new_achievements = []
    if settings.ACHIEVEMENTS_EVALUATE_IN_BACKGROUND:
        background_tasks.add_task(evaluate_achievements_in_background, achievements, user_id)
    else:
        try:
            new_achievements = achievements.evaluate(db, user_id)
        except StoreError as e:
            # The attempt is already stored; unlocks are picked up on the next evaluation
            logger.error(f"Achievement evaluation failed for user {user_id}: {e.message}")

    return QuizSubmissionResponse(
        score=outcome.score,
        correct_answers=outcome.correct_answers,
        total_questions=outcome.total_questions,
        time_spent=outcome.time_spent,
        detailed_results=[AnswerResult(**d.to_dict()) for d in outcome.detailed_results],
        new_achievements=[achievement_response(a) for a in new_achievements],
    )


@router.get("/{quiz_id}/cooldown", response_model=CooldownStatusResponse)
async def get_cooldown_status(
    quiz_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Whether the user may attempt the quiz now, and when the next attempt opens"""

    status = cooldown_service.check(db, user_id, quiz_id)

    return CooldownStatusResponse(
        can_attempt=status.can_attempt,
        next_attempt_at=status.next_attempt_at,
    )


@router.get("/{quiz_id}/results", response_model=QuizResultResponse)
async def get_quiz_results(
    quiz_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Most recent result for the quiz, with the answer snapshots taken at submission"""

    attempt = attempt_service.latest_result(db, quiz_id, user_id)

    return QuizResultResponse(
        score=attempt.score,
        correct_answers=attempt.correct_answers,
        total_questions=attempt.total_questions,
        time_spent=attempt.time_spent,
        completed_at=attempt.completed_at,
        next_attempt_allowed=attempt.next_attempt_allowed,
        detailed_results=[AnswerResult(**a) for a in attempt.answers or []],
    )

"""
Quiz attempt recording service
The single write path from a validated submission to a persisted attempt
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import utcnow
from app.exceptions import ConflictError, CooldownError, NotFoundError, StoreError, ValidationError
from app.models import Quiz, QuizAttempt
from app.services.cooldown_service import CooldownService, cooldown_service
from app.services.scoring_service import AnswerDetail, ScoringService, scoring_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptOutcome:
    attempt_id: UUID
    score: int
    correct_answers: int
    total_questions: int
    time_spent: int
    completed_at: datetime
    next_attempt_allowed: datetime
    detailed_results: List[AnswerDetail] = field(default_factory=list)


class AttemptService:
    """
    Records quiz attempts

    Steps: load quiz, check answer count, enforce cooldown, score,
    insert one attempt row. Nothing is written unless every step passes.
    """

    def __init__(
        self,
        scoring: Optional[ScoringService] = None,
        cooldown: Optional[CooldownService] = None
    ):
        self.scoring = scoring or scoring_service
        self.cooldown = cooldown or cooldown_service

    def record_attempt(
        self,
        db: Session,
        quiz_id: UUID,
        user_id: UUID,
        answers: Sequence[Tuple[str, str]],
        time_spent: int,
        now: Optional[datetime] = None
    ) -> AttemptOutcome:
        """
        Validate, score and persist a submission

        Args:
            db: Database session
            quiz_id: Quiz UUID
            user_id: Authenticated user UUID
            answers: Ordered (question_id, selected_option_id) pairs
            time_spent: Seconds spent on the quiz
            now: Completion time (defaults to current UTC time)

        Raises:
            NotFoundError: quiz does not exist
            ValidationError: answer count mismatch or unknown ids
            CooldownError: previous attempt still in cooldown
            ConflictError: a concurrent submission claimed the same epoch
            StoreError: database failure
        """
        now = now or utcnow()

        try:
            quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load quiz {quiz_id}: {str(e)}", exc_info=True)
            raise StoreError("Failed to load quiz") from e

        if not quiz:
            raise NotFoundError("Quiz not found")

        questions = quiz.questions or []
        if len(answers) != len(questions):
            raise ValidationError("All questions must be answered")

        if time_spent < 0:
            raise ValidationError("Time spent must be a non-negative number of seconds")

        status = self.cooldown.check(db, user_id, quiz_id, now=now)
        if not status.can_attempt:
            raise CooldownError(status.next_attempt_at)

        result = self.scoring.score_submission(questions, answers)

        next_attempt_allowed = now + timedelta(hours=quiz.cooldown_hours or 0)

        attempt = QuizAttempt(
            user_id=user_id,
            quiz_id=quiz_id,
            attempt_number=status.next_attempt_number,
            answers=[detail.to_dict() for detail in result.details],
            score=result.score,
            correct_answers=result.correct_count,
            total_questions=result.total_questions,
            time_spent=time_spent,
            completed_at=now,
            next_attempt_allowed=next_attempt_allowed,
        )

        try:
            db.add(attempt)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if not self._epoch_taken(db, user_id, quiz_id, status.next_attempt_number):
                # FK or check constraint, not a lost race
                logger.error(
                    f"Attempt rejected by a database constraint: user={user_id}, quiz={quiz_id}, "
                    f"error={str(e.orig)}",
                    exc_info=True
                )
                raise StoreError("Failed to save quiz attempt") from e
            logger.warning(
                f"Concurrent submission rejected: user={user_id}, quiz={quiz_id}, "
                f"attempt_number={status.next_attempt_number}"
            )
            raise ConflictError("Another submission for this quiz was recorded at the same time. Please retry.")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"Failed to save attempt: user={user_id}, quiz={quiz_id}, error={str(e)}",
                exc_info=True
            )
            raise StoreError("Failed to save quiz attempt") from e

        logger.info(
            f"Quiz attempt saved: {attempt.id}, user={user_id}, quiz={quiz_id}, "
            f"score={result.score} ({result.correct_count}/{result.total_questions})"
        )

        return AttemptOutcome(
            attempt_id=attempt.id,
            score=result.score,
            correct_answers=result.correct_count,
            total_questions=result.total_questions,
            time_spent=time_spent,
            completed_at=now,
            next_attempt_allowed=next_attempt_allowed,
            detailed_results=list(result.details),
        )

    def _epoch_taken(self, db: Session, user_id: UUID, quiz_id: UUID, attempt_number: int) -> bool:
        """Whether another submission already holds this attempt_number"""
        try:
            return db.query(QuizAttempt.id).filter(
                QuizAttempt.user_id == user_id,
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.attempt_number == attempt_number
            ).first() is not None
        except SQLAlchemyError as e:
            raise StoreError("Failed to save quiz attempt") from e

    def latest_result(self, db: Session, quiz_id: UUID, user_id: UUID) -> QuizAttempt:
        """Most recent attempt for the pair, or NotFoundError"""
        attempt = self.cooldown.latest_attempt(db, user_id, quiz_id)
        if attempt is None:
            raise NotFoundError("No results found")
        return attempt


# Global instance
attempt_service = AttemptService()

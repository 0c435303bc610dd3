"""
Quiz scoring service
Option-keyed multiple choice: the selected option's correctness flag decides
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from app.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnswerDetail:
    """Per-question outcome, snapshotted onto the attempt"""
    question_id: str
    selected_option_id: str
    is_correct: bool
    explanation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "selected_option_id": self.selected_option_id,
            "is_correct": self.is_correct,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class ScoringResult:
    score: int
    correct_count: int
    total_questions: int
    details: List[AnswerDetail] = field(default_factory=list)


class ScoringService:
    """
    Service for scoring quiz submissions

    Strategy:
    - Every question must be answered exactly once
    - Unknown question or option ids reject the whole submission
    - Score is the correct percentage, rounded half-up to an integer
    """

    def score_submission(
        self,
        questions: List[Dict[str, Any]],
        answers: Sequence[Tuple[str, str]]
    ) -> ScoringResult:
        """
        Score a complete submission

        Args:
            questions: Quiz question dictionaries
            answers: Ordered (question_id, selected_option_id) pairs

        Returns:
            ScoringResult with details in submitted order

        Raises:
            ValidationError: count mismatch, duplicate or unknown ids
        """
        total = len(questions)
        if len(answers) != total:
            raise ValidationError(
                f"All questions must be answered: expected {total} answers, got {len(answers)}"
            )

        questions_by_id = {str(q["id"]): q for q in questions}
        seen = set()
        details = []
        correct_count = 0

        for question_id, selected_option_id in answers:
            question_id = str(question_id)
            selected_option_id = str(selected_option_id)

            question = questions_by_id.get(question_id)
            if question is None:
                raise ValidationError(f"Unknown question id: {question_id}")
            if question_id in seen:
                raise ValidationError(f"Question answered more than once: {question_id}")
            seen.add(question_id)

            option = self._find_option(question, selected_option_id)
            if option is None:
                raise ValidationError(
                    f"Unknown option id {selected_option_id} for question {question_id}"
                )

            is_correct = bool(option.get("is_correct", False))
            if is_correct:
                correct_count += 1

            details.append(AnswerDetail(
                question_id=question_id,
                selected_option_id=selected_option_id,
                is_correct=is_correct,
                explanation=question.get("explanation", ""),
            ))

        score = self.percentage(correct_count, total)

        logger.debug(f"Submission scored: {correct_count}/{total} -> {score}")

        return ScoringResult(
            score=score,
            correct_count=correct_count,
            total_questions=total,
            details=details,
        )

    @staticmethod
    def percentage(correct: int, total: int) -> int:
        """round(100 * correct / total) with halves rounded up"""
        if total <= 0:
            return 0
        return (200 * correct + total) // (2 * total)

    def _find_option(self, question: Dict[str, Any], option_id: str):
        for option in question.get("options", []):
            if str(option.get("id")) == option_id:
                return option
        return None


# Global instance
scoring_service = ScoringService()

"""
Results builder for finished quiz sessions
Correctness: exact match of the selected option set against the correct set
captured when the session started
"""
import logging
from typing import Any, Dict, List, Optional

from certquiz.domain.scoring import is_answer_correct
from certquiz.domain.session import QuizSession
from certquiz.models.question import Question

logger = logging.getLogger(__name__)


class ScoringService:
    """
    Builds the results view of a session

    Strategy:
    - Score: taken from the session itself so it matches the completion event
    - Breakdown: one entry per question, unanswered ones included
    - Weak categories: categories where fewer than 60% of questions were correct
    """

    WEAK_CATEGORY_THRESHOLD = 0.6

    def build_results(
        self,
        session: QuizSession,
        question_details: Dict[str, Question]
    ) -> Dict[str, Any]:
        """
        Build the JSON-ready results of a session

        Args:
            session: A COMPLETED or EXPIRED session
            question_details: Catalog rows keyed by question id (may be partial)

        Returns:
            Results dictionary matching ``QuizResultsResponse``
        """
        summary = session.score()
        breakdown = []
        category_performance = {}  # {category: [1.0 | 0.0]}

        for index, reference in enumerate(session.questions):
            answer = session.answer_for(index)
            selected = list(answer.selected_option_ids) if answer else []
            is_correct = answer is not None and is_answer_correct(selected, reference.correct_option_ids)

            details = question_details.get(reference.question_id)
            category = (details.category if details else None) or "general"
            category_performance.setdefault(category, []).append(1.0 if is_correct else 0.0)

            breakdown.append({
                "question_index": index,
                "question_id": reference.question_id,
                "question_text": details.question_text if details else None,
                "category": category,
                "selected_option_ids": selected,
                "correct_option_ids": list(reference.correct_option_ids),
                "is_correct": is_correct,
                "answered_at": answer.answered_at.isoformat() if answer else None,
                "options": self._build_options(details, selected),
            })

        weak_categories = sorted(
            category for category, scores in category_performance.items()
            if sum(scores) / len(scores) < self.WEAK_CATEGORY_THRESHOLD
        )

        feedback = self._generate_feedback(summary.percentage, weak_categories, breakdown)

        logger.info(
            f"Results built for session {session.id}: {summary.correct_count}/{summary.total_count}, "
            f"weak categories: {weak_categories}"
        )

        return {
            "session_id": session.id,
            "state": session.state.value,
            "started_at": session.started_at.isoformat(),
            "completed_at": session.completed_at.isoformat() if session.completed_at else None,
            "expired_at": session.expired_at.isoformat() if session.expired_at else None,
            "config": {
                "exam_type": session.config.exam_type.value,
                "category": session.config.category,
                "question_count": session.config.question_count,
                "time_limit": session.config.time_limit,
                "difficulty": session.config.difficulty.value,
            },
            "score": summary.model_dump(),
            "questions": breakdown,
            "weak_categories": weak_categories,
            "feedback": feedback,
        }

    @staticmethod
    def _build_options(details: Optional[Question], selected: List[str]) -> List[Dict[str, Any]]:
        if details is None:
            return []
        return [
            {
                "id": option["id"],
                "text": option.get("text", ""),
                "is_correct": bool(option.get("is_correct")),
                "was_selected": option["id"] in selected,
            }
            for option in details.options or []
        ]

    def _generate_feedback(
        self,
        percentage: int,
        weak_categories: List[str],
        breakdown: List[Dict[str, Any]]
    ) -> str:
        """Generate overall feedback message"""

        feedback_parts = []

        # Performance summary
        if percentage >= 90:
            feedback_parts.append("Excellent work! Strong understanding across all topics.")
        elif percentage >= 75:
            feedback_parts.append("Good performance! You have a solid grasp of the material.")
        elif percentage >= 60:
            feedback_parts.append("Fair performance. Review the weak areas for improvement.")
        else:
            feedback_parts.append("Needs improvement. Focus on understanding core concepts.")

        if weak_categories:
            feedback_parts.append(f"Focus on: {', '.join(weak_categories)}.")

        unanswered = sum(1 for item in breakdown if not item["selected_option_ids"])
        if unanswered:
            feedback_parts.append(f"{unanswered} question(s) were left unanswered.")

        return " ".join(feedback_parts)

"""
Session scoring

A question counts as correct only when the selected options equal the
correct options exactly; unanswered questions count as incorrect.
"""
from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict


class ScoreSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    correct_count: int
    total_count: int
    answered_count: int
    percentage: int


def is_answer_correct(selected_option_ids: Iterable[str], correct_option_ids: Iterable[str]) -> bool:
    correct = set(correct_option_ids)
    return bool(correct) and set(selected_option_ids) == correct


def score_percentage(correct_count: int, total_count: int) -> int:
    """Percentage rounded half up to an integer (1/3 -> 33, 2/3 -> 67, 1/8 -> 13)"""
    if total_count <= 0:
        return 0
    return (200 * correct_count + total_count) // (2 * total_count)


def score_answers(questions: Sequence, answers: Iterable) -> ScoreSummary:
    """
    Score answers against the session's question references

    Args:
        questions: ordered ``QuestionReference`` values
        answers: ``Answer`` values keyed by their ``question_index``
    """
    by_index = {answer.question_index: answer for answer in answers}
    correct = 0
    for index, question in enumerate(questions):
        answer = by_index.get(index)
        if answer is not None and is_answer_correct(answer.selected_option_ids, question.correct_option_ids):
            correct += 1

    total = len(questions)
    return ScoreSummary(
        correct_count=correct,
        total_count=total,
        answered_count=len(by_index),
        percentage=score_percentage(correct, total),
    )

"""
Answer grading.

Grading is deterministic and purely string based: both sides are trimmed and
case-folded and must then be equal. There is no partial credit and no fuzzy
or numeric matching.
"""

from typing import Mapping, Optional, Sequence, List, Any, Dict

from studyquiz.analytics.models import AnswerRecord, Difficulty, QuestionType


def normalize_answer(answer: str) -> str:
    """Trim surrounding whitespace and case-fold."""
    return answer.strip().casefold()


def is_correct_answer(submitted: Optional[str], correct: str) -> bool:
    """
    Grade one submitted answer against its canonical answer.

    A missing submission is always wrong, and so is anything graded against a
    canonical answer that is empty after normalization.
    """
    if submitted is None:
        return False
    expected = normalize_answer(correct)
    if not expected:
        return False
    return normalize_answer(submitted) == expected


def grade_question(question: Mapping[str, Any], submitted: Optional[str]) -> AnswerRecord:
    """
    Build the graded answer record for one question.

    Args:
        question: Question fields (id, question, type, correct_answer,
            optional difficulty and topics)
        submitted: The learner's answer, None if unanswered

    Returns:
        Graded AnswerRecord
    """
    difficulty = question.get("difficulty")
    return AnswerRecord(
        question_id=str(question["id"]),
        question=question.get("question", ""),
        question_type=QuestionType(question["type"]),
        correct_answer=question["correct_answer"],
        user_answer=submitted,
        difficulty=Difficulty(difficulty) if difficulty else Difficulty.MEDIUM,
        topics=tuple(question.get("topics") or ()),
        is_correct=is_correct_answer(submitted, question["correct_answer"]),
    )


def grade_submission(
    questions: Sequence[Mapping[str, Any]],
    user_answers: Dict[str, Optional[str]]
) -> List[AnswerRecord]:
    """Grade every question of a quiz in order, looking answers up by question id."""
    return [grade_question(q, user_answers.get(str(q["id"]))) for q in questions]

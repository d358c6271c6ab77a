"""
Performance Aggregator

Turns the graded answers of one submission into batch tallies and merges
those tallies into the persisted cumulative aggregates.

The merge is a plain addition and is NOT idempotent: applying the same batch
twice double counts it. A batch must reach each aggregate exactly once, which
is why duplicate submission ids are rejected before any merge happens.
"""

from typing import Dict, Iterable, Optional

from studyquiz.analytics.models import (
    AnswerRecord,
    BatchTallies,
    BreakdownPerformance,
    Dimension,
    Tally,
    TopicPerformance,
    utcnow,
)


def _count(tallies: Dict[str, Tally], key: str, is_correct: bool) -> None:
    tallies[key] = tallies.get(key, Tally()).record(is_correct)


def compute_batch_tallies(answers: Iterable[AnswerRecord]) -> BatchTallies:
    """
    Tally one submission's graded answers by topic, question type and difficulty.

    An answer with several topics counts fully toward each of them; the
    topic totals of a batch can therefore exceed its number of answers.
    """
    by_topic: Dict[str, Tally] = {}
    by_question_type: Dict[str, Tally] = {}
    by_difficulty: Dict[str, Tally] = {}

    for answer in answers:
        for topic in dict.fromkeys(answer.topics):
            _count(by_topic, topic, answer.is_correct)
        _count(by_question_type, answer.question_type.value, answer.is_correct)
        _count(by_difficulty, answer.difficulty.value, answer.is_correct)

    return BatchTallies(
        by_topic=by_topic,
        by_question_type=by_question_type,
        by_difficulty=by_difficulty,
    )


def merge_topic_tally(
    existing: Optional[TopicPerformance],
    learner_id: str,
    topic: str,
    batch: Tally
) -> TopicPerformance:
    """
    Add one batch tally to a topic aggregate, creating it on first occurrence.

    Only the counters change here; accuracy follows from them and the
    weakness fields are left to the rolling window.
    """
    current = existing or TopicPerformance(learner_id=learner_id, topic=topic)
    return current.with_counts(
        total_attempts=current.total_attempts + batch.total,
        correct_answers=current.correct_answers + batch.correct,
    )


def merge_breakdown_tally(
    existing: Optional[BreakdownPerformance],
    learner_id: str,
    dimension: Dimension,
    value: str,
    batch: Tally
) -> BreakdownPerformance:
    """Add one batch tally to a question-type or difficulty aggregate."""
    tally = batch
    if existing is not None:
        tally = Tally(correct=existing.correct, total=existing.total) + batch
    return BreakdownPerformance(
        learner_id=learner_id,
        dimension=dimension,
        value=value,
        total=tally.total,
        correct=tally.correct,
        last_updated=utcnow(),
    )

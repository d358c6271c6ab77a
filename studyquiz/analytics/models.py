"""
Analytics Domain Model Module

This module defines the value types shared by the grading, aggregation,
weakness detection and storage layers.
"""

import enum
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any, Tuple


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the offset) and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def accuracy_of(correct: int, total: int) -> float:
    """Accuracy percentage, 0.0 when nothing was attempted."""
    if total <= 0:
        return 0.0
    return (correct / total) * 100


class QuestionType(enum.Enum):
    """Question formats produced by the question generator."""
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"


class Difficulty(enum.Enum):
    """Difficulty label carried by each question."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Dimension(enum.Enum):
    """Non-topic dimensions that get their own persisted breakdowns."""
    QUESTION_TYPE = "question_type"
    DIFFICULTY = "difficulty"


class PerformanceBand(enum.Enum):
    """Lifetime-accuracy reporting band of a topic."""
    WEAKNESS = "weakness"
    IMPROVING = "improving"
    STRENGTH = "strength"


@dataclass(frozen=True)
class AnswerRecord:
    """
    One graded answer inside a quiz submission.

    Attributes:
        question_id: Identifier of the question within its quiz
        question: The question text
        question_type: Format of the question
        correct_answer: Canonical correct answer
        user_answer: Submitted answer, None when the learner skipped it
        difficulty: Difficulty label, medium unless stated
        topics: Topic labels, a question may belong to several
        is_correct: Result of grading user_answer against correct_answer
    """
    question_id: str
    question: str
    question_type: QuestionType
    correct_answer: str
    user_answer: Optional[str] = None
    difficulty: Difficulty = Difficulty.MEDIUM
    topics: Tuple[str, ...] = ()
    is_correct: bool = False

    def has_topic(self, topic: str) -> bool:
        return topic in self.topics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "question": self.question,
            "type": self.question_type.value,
            "user_answer": self.user_answer,
            "correct_answer": self.correct_answer,
            "is_correct": self.is_correct,
            "topics": list(self.topics),
            "difficulty": self.difficulty.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnswerRecord':
        return cls(
            question_id=str(data["question_id"]),
            question=data.get("question", ""),
            question_type=QuestionType(data["type"]),
            correct_answer=data["correct_answer"],
            user_answer=data.get("user_answer"),
            difficulty=Difficulty(data.get("difficulty") or Difficulty.MEDIUM.value),
            topics=tuple(data.get("topics") or ()),
            is_correct=bool(data.get("is_correct", False)),
        )


@dataclass(frozen=True)
class Tally:
    """Correct/total counter for one dimension value."""
    correct: int = 0
    total: int = 0

    def record(self, is_correct: bool) -> 'Tally':
        return Tally(correct=self.correct + (1 if is_correct else 0), total=self.total + 1)

    def __add__(self, other: 'Tally') -> 'Tally':
        return Tally(correct=self.correct + other.correct, total=self.total + other.total)

    def to_dict(self) -> Dict[str, int]:
        return {"correct": self.correct, "total": self.total}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Tally':
        return cls(correct=int(data.get("correct", 0)), total=int(data.get("total", 0)))


@dataclass(frozen=True)
class BatchTallies:
    """The three per-submission tallies produced by the aggregator."""
    by_topic: Dict[str, Tally] = field(default_factory=dict)
    by_question_type: Dict[str, Tally] = field(default_factory=dict)
    by_difficulty: Dict[str, Tally] = field(default_factory=dict)

    def for_dimension(self, dimension: Dimension) -> Dict[str, Tally]:
        if dimension is Dimension.QUESTION_TYPE:
            return self.by_question_type
        return self.by_difficulty


def _tallies_to_dict(tallies: Dict[str, Tally]) -> Dict[str, Dict[str, int]]:
    return {key: tally.to_dict() for key, tally in tallies.items()}


def _tallies_from_dict(data: Optional[Dict[str, Any]]) -> Dict[str, Tally]:
    return {key: Tally.from_dict(value) for key, value in (data or {}).items()}


@dataclass(frozen=True)
class QuizSubmission:
    """
    A persisted, immutable quiz result.

    Submissions form the append-only history the rolling window can be
    rebuilt from.
    """
    learner_id: str
    answers: Tuple[AnswerRecord, ...]
    score: int
    total_questions: int
    tallies: BatchTallies = field(default_factory=BatchTallies)
    submission_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    time_taken: Optional[float] = None
    quiz_id: Optional[str] = None
    study_material_id: Optional[str] = None
    completed_at: datetime = field(default_factory=utcnow)

    def answers_for_topic(self, topic: str) -> List[AnswerRecord]:
        """Answers carrying ``topic``, in submission order."""
        return [answer for answer in self.answers if answer.has_topic(topic)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.submission_id,
            "user_id": self.learner_id,
            "quiz_id": self.quiz_id,
            "study_material_id": self.study_material_id,
            "answers": [answer.to_dict() for answer in self.answers],
            "score": self.score,
            "total_questions": self.total_questions,
            "time_taken": self.time_taken,
            "topic_performance": _tallies_to_dict(self.tallies.by_topic),
            "question_type_performance": _tallies_to_dict(self.tallies.by_question_type),
            "difficulty_performance": _tallies_to_dict(self.tallies.by_difficulty),
            "completed_at": self.completed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QuizSubmission':
        completed_at = data.get("completed_at")
        if isinstance(completed_at, str):
            completed_at = datetime.fromisoformat(completed_at)
        return cls(
            submission_id=data["id"],
            learner_id=data["user_id"],
            quiz_id=data.get("quiz_id"),
            study_material_id=data.get("study_material_id"),
            answers=tuple(AnswerRecord.from_dict(a) for a in data.get("answers") or ()),
            score=int(data.get("score", 0)),
            total_questions=int(data.get("total_questions", 0)),
            time_taken=data.get("time_taken"),
            tallies=BatchTallies(
                by_topic=_tallies_from_dict(data.get("topic_performance")),
                by_question_type=_tallies_from_dict(data.get("question_type_performance")),
                by_difficulty=_tallies_from_dict(data.get("difficulty_performance")),
            ),
            completed_at=ensure_utc(completed_at) if completed_at else utcnow(),
        )


@dataclass(frozen=True)
class TopicPerformance:
    """
    Cumulative performance of one learner on one topic.

    accuracy_percentage is derived from the two counters and cannot be set.
    is_weakness and rolling_accuracy come from the rolling window only.
    recent_outcomes holds the topic's newest answer outcomes in completion
    order, bounded by the window size; buffer_newest_at and buffer_oldest_at
    bound the completion times of the submissions folded into it.
    """
    learner_id: str
    topic: str
    total_attempts: int = 0
    correct_answers: int = 0
    is_weakness: bool = False
    rolling_accuracy: Optional[float] = None
    recent_outcomes: Tuple[bool, ...] = ()
    last_updated: datetime = field(default_factory=utcnow)
    buffer_newest_at: Optional[datetime] = None
    buffer_oldest_at: Optional[datetime] = None

    @property
    def accuracy_percentage(self) -> float:
        return accuracy_of(self.correct_answers, self.total_attempts)

    def with_counts(self, total_attempts: int, correct_answers: int) -> 'TopicPerformance':
        return replace(
            self,
            total_attempts=total_attempts,
            correct_answers=correct_answers,
            last_updated=utcnow(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.learner_id,
            "topic": self.topic,
            "total_attempts": self.total_attempts,
            "correct_answers": self.correct_answers,
            "accuracy_percentage": round(self.accuracy_percentage, 2),
            "is_weakness": self.is_weakness,
            "rolling_accuracy": self.rolling_accuracy,
            "last_updated": self.last_updated.isoformat(),
        }


@dataclass(frozen=True)
class BreakdownPerformance:
    """Cumulative performance of one learner on one question type or difficulty."""
    learner_id: str
    dimension: Dimension
    value: str
    total: int = 0
    correct: int = 0
    last_updated: datetime = field(default_factory=utcnow)

    @property
    def accuracy_percentage(self) -> float:
        return accuracy_of(self.correct, self.total)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dimension": self.dimension.value,
            "value": self.value,
            "correct": self.correct,
            "total": self.total,
            "accuracy_percentage": round(self.accuracy_percentage, 2),
            "last_updated": self.last_updated.isoformat(),
        }

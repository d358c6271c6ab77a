"""
SQLAlchemy ORM models for quiz results and performance aggregates.
"""

from sqlalchemy import (
    Boolean, Column, DateTime, Float, Index, Integer, JSON, String, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import JSONB

from studyquiz.analytics.models import (
    BreakdownPerformance,
    Dimension,
    QuizSubmission,
    TopicPerformance,
    ensure_utc,
    utcnow,
)
from studyquiz.database.base import Base

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class QuizResultRecord(Base):
    """
    One persisted quiz submission. Rows are never updated.
    """
    __tablename__ = 'quiz_results'

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(String(64), nullable=False, unique=True)
    user_id = Column(String(255), nullable=False)
    quiz_id = Column(String(255), nullable=True)
    study_material_id = Column(String(255), nullable=True)

    answers = Column(JSONType, nullable=False, default=list)
    score = Column(Integer, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False, default=0)
    time_taken = Column(Float, nullable=True)

    topic_performance = Column(JSONType, nullable=False, default=dict)
    question_type_performance = Column(JSONType, nullable=False, default=dict)
    difficulty_performance = Column(JSONType, nullable=False, default=dict)

    completed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index('idx_quiz_results_user_completed', user_id, completed_at),
    )

    def __repr__(self):
        return (f"<QuizResultRecord(submission_id='{self.submission_id}', "
                f"user_id='{self.user_id}', score={self.score}/{self.total_questions})>")

    @classmethod
    def from_domain(cls, submission: QuizSubmission) -> 'QuizResultRecord':
        data = submission.to_dict()
        return cls(
            submission_id=data["id"],
            user_id=data["user_id"],
            quiz_id=data["quiz_id"],
            study_material_id=data["study_material_id"],
            answers=data["answers"],
            score=data["score"],
            total_questions=data["total_questions"],
            time_taken=data["time_taken"],
            topic_performance=data["topic_performance"],
            question_type_performance=data["question_type_performance"],
            difficulty_performance=data["difficulty_performance"],
            completed_at=submission.completed_at,
        )

    def to_domain(self) -> QuizSubmission:
        return QuizSubmission.from_dict({
            "id": self.submission_id,
            "user_id": self.user_id,
            "quiz_id": self.quiz_id,
            "study_material_id": self.study_material_id,
            "answers": self.answers,
            "score": self.score,
            "total_questions": self.total_questions,
            "time_taken": self.time_taken,
            "topic_performance": self.topic_performance,
            "question_type_performance": self.question_type_performance,
            "difficulty_performance": self.difficulty_performance,
            "completed_at": self.completed_at,
        })


class TopicPerformanceRecord(Base):
    """
    Cumulative per-topic performance of a learner.

    version_id is checked on every UPDATE; a concurrent writer makes the
    flush fail with StaleDataError instead of overwriting.
    """
    __tablename__ = 'performance_analytics'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False)
    topic = Column(String(255), nullable=False)

    total_attempts = Column(Integer, nullable=False, default=0)
    correct_answers = Column(Integer, nullable=False, default=0)
    # Stored for ordering only, always written from the counters
    accuracy_percentage = Column(Float, nullable=False, default=0.0)

    is_weakness = Column(Boolean, nullable=False, default=False)
    rolling_accuracy = Column(Float, nullable=True)
    recent_outcomes = Column(JSONType, nullable=False, default=list)
    buffer_newest_at = Column(DateTime(timezone=True), nullable=True)
    buffer_oldest_at = Column(DateTime(timezone=True), nullable=True)

    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        UniqueConstraint('user_id', 'topic', name='uq_performance_analytics_user_topic'),
        Index('idx_performance_analytics_user_weakness', user_id, is_weakness),
    )

    def __repr__(self):
        return (f"<TopicPerformanceRecord(user_id='{self.user_id}', topic='{self.topic}', "
                f"correct={self.correct_answers}/{self.total_attempts})>")

    def to_domain(self) -> TopicPerformance:
        return TopicPerformance(
            learner_id=self.user_id,
            topic=self.topic,
            total_attempts=self.total_attempts,
            correct_answers=self.correct_answers,
            is_weakness=self.is_weakness,
            rolling_accuracy=self.rolling_accuracy,
            recent_outcomes=tuple(bool(o) for o in self.recent_outcomes or ()),
            last_updated=ensure_utc(self.last_updated),
            buffer_newest_at=ensure_utc(self.buffer_newest_at) if self.buffer_newest_at else None,
            buffer_oldest_at=ensure_utc(self.buffer_oldest_at) if self.buffer_oldest_at else None,
        )

    def apply(self, performance: TopicPerformance) -> None:
        """Copy a merged aggregate onto this row."""
        self.total_attempts = performance.total_attempts
        self.correct_answers = performance.correct_answers
        self.accuracy_percentage = performance.accuracy_percentage
        self.is_weakness = performance.is_weakness
        self.rolling_accuracy = performance.rolling_accuracy
        self.recent_outcomes = list(performance.recent_outcomes)
        self.buffer_newest_at = performance.buffer_newest_at
        self.buffer_oldest_at = performance.buffer_oldest_at
        self.last_updated = performance.last_updated


class BreakdownPerformanceRecord(Base):
    """Cumulative performance of a learner per question type or difficulty."""
    __tablename__ = 'performance_breakdowns'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False)
    dimension = Column(String(32), nullable=False)
    value = Column(String(64), nullable=False)

    total = Column(Integer, nullable=False, default=0)
    correct = Column(Integer, nullable=False, default=0)
    accuracy_percentage = Column(Float, nullable=False, default=0.0)

    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        UniqueConstraint('user_id', 'dimension', 'value', name='uq_performance_breakdowns_user_dimension_value'),
    )

    def to_domain(self) -> BreakdownPerformance:
        return BreakdownPerformance(
            learner_id=self.user_id,
            dimension=Dimension(self.dimension),
            value=self.value,
            total=self.total,
            correct=self.correct,
            last_updated=ensure_utc(self.last_updated),
        )

    def apply(self, performance: BreakdownPerformance) -> None:
        self.total = performance.total
        self.correct = performance.correct
        self.accuracy_percentage = performance.accuracy_percentage
        self.last_updated = performance.last_updated

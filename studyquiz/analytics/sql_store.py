"""
SQLAlchemy Analytics Store

This module provides the durable AnalyticsStore implementation on top of an
async SQLAlchemy session factory.
"""

from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from studyquiz.analytics.models import (
    BreakdownPerformance,
    Dimension,
    QuizSubmission,
    TopicPerformance,
)
from studyquiz.analytics.orm import (
    BreakdownPerformanceRecord,
    QuizResultRecord,
    TopicPerformanceRecord,
)
from studyquiz.analytics.store import AnalyticsStore, BreakdownMerge, TopicMerge
from studyquiz.common.error_handling import retry
from studyquiz.common.exceptions import ConcurrencyError, DuplicateError, StoreUnavailableError
from studyquiz.common.logger import app_logger

logger = app_logger.getChild("analytics.sql_store")

T = TypeVar('T')

CONFLICT_ERRORS = (StaleDataError, IntegrityError)


class SQLAlchemyAnalyticsStore(AnalyticsStore):
    """
    AnalyticsStore backed by a relational database.

    Aggregate upserts are optimistic: the row is read, merged in Python and
    written back under a version check. A concurrent insert trips the unique
    key, a concurrent update trips the version check, and either way the
    whole read-merge-write is retried from a fresh read.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        max_retries: int = 5,
        retry_delay: float = 0.01
    ):
        """
        Initialize the store.

        Args:
            session_factory: Factory for async sessions
            max_retries: Retries of a conflicting upsert before giving up
            retry_delay: Initial delay between retries in seconds
        """
        self._session_factory = session_factory
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def _read(self, operation: Callable[..., Awaitable[T]], *args: Any) -> T:
        try:
            return await operation(*args)
        except SQLAlchemyError as e:
            logger.error(f"Store read failed in {operation.__name__}: {e}")
            raise StoreUnavailableError(str(e), e)

    async def _atomic(self, key: Tuple, operation: Callable[..., Awaitable[T]], *args: Any) -> T:
        attempt = retry(
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            retry_exceptions=CONFLICT_ERRORS,
        )(operation)
        try:
            return await attempt(*args)
        except CONFLICT_ERRORS as e:
            logger.warning(f"Upsert of {key} gave up after {self.max_retries + 1} attempts")
            raise ConcurrencyError(key, self.max_retries + 1, e)
        except SQLAlchemyError as e:
            logger.error(f"Upsert of {key} failed: {e}")
            raise StoreUnavailableError(str(e), e)

    async def add_submission(self, submission: QuizSubmission) -> QuizSubmission:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    existing = await session.execute(
                        select(QuizResultRecord.id).where(
                            QuizResultRecord.submission_id == submission.submission_id
                        )
                    )
                    if existing.first() is not None:
                        raise DuplicateError("quiz submission", submission.submission_id)
                    session.add(QuizResultRecord.from_domain(submission))
        except IntegrityError as e:
            if await self._read(self._submission_exists, submission.submission_id):
                # Lost the race against a concurrent insert of the same id
                raise DuplicateError("quiz submission", submission.submission_id) from e
            logger.error(f"Submission {submission.submission_id} violates a constraint: {e}")
            raise StoreUnavailableError(str(e), e)
        except SQLAlchemyError as e:
            logger.error(f"Failed to persist submission {submission.submission_id}: {e}")
            raise StoreUnavailableError(str(e), e)
        return submission

    async def _submission_exists(self, submission_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(QuizResultRecord.id).where(QuizResultRecord.submission_id == submission_id)
            )
            return result.first() is not None

    async def _recent_submissions(self, learner_id: str, limit: int) -> List[QuizSubmission]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(QuizResultRecord)
                .where(QuizResultRecord.user_id == learner_id)
                .order_by(QuizResultRecord.completed_at.desc(), QuizResultRecord.id.desc())
                .limit(limit)
            )
            return [record.to_domain() for record in result.scalars()]

    async def recent_submissions(self, learner_id: str, limit: int = 50) -> List[QuizSubmission]:
        return await self._read(self._recent_submissions, learner_id, limit)

    async def _count_submissions_since(self, learner_id: str, since: datetime) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(QuizResultRecord.id)).where(
                    QuizResultRecord.user_id == learner_id,
                    QuizResultRecord.completed_at >= since,
                )
            )
            return int(result.scalar_one())

    async def count_submissions_since(self, learner_id: str, since: datetime) -> int:
        return await self._read(self._count_submissions_since, learner_id, since)

    async def _score_totals(self, learner_id: str) -> Tuple[int, int]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(
                    func.coalesce(func.sum(QuizResultRecord.score), 0),
                    func.coalesce(func.sum(QuizResultRecord.total_questions), 0),
                ).where(QuizResultRecord.user_id == learner_id)
            )
            score, total = result.one()
            return int(score), int(total)

    async def score_totals(self, learner_id: str) -> Tuple[int, int]:
        return await self._read(self._score_totals, learner_id)

    async def _get(self, learner_id: str, topic: str) -> Optional[TopicPerformance]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TopicPerformanceRecord).where(
                    TopicPerformanceRecord.user_id == learner_id,
                    TopicPerformanceRecord.topic == topic,
                )
            )
            record = result.scalar_one_or_none()
            return record.to_domain() if record else None

    async def get(self, learner_id: str, topic: str) -> Optional[TopicPerformance]:
        return await self._read(self._get, learner_id, topic)

    async def _get_all(self, learner_id: str, weaknesses_only: bool = False) -> List[TopicPerformance]:
        stmt = select(TopicPerformanceRecord).where(TopicPerformanceRecord.user_id == learner_id)
        if weaknesses_only:
            stmt = stmt.where(TopicPerformanceRecord.is_weakness.is_(True))
        stmt = stmt.order_by(TopicPerformanceRecord.accuracy_percentage.asc(), TopicPerformanceRecord.topic.asc())
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [record.to_domain() for record in result.scalars()]

    async def get_all(self, learner_id: str) -> List[TopicPerformance]:
        return await self._read(self._get_all, learner_id)

    async def query_weaknesses(self, learner_id: str) -> List[TopicPerformance]:
        return await self._read(self._get_all, learner_id, True)

    async def _upsert_topic(self, learner_id: str, topic: str, merge_fn: TopicMerge) -> TopicPerformance:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(TopicPerformanceRecord).where(
                        TopicPerformanceRecord.user_id == learner_id,
                        TopicPerformanceRecord.topic == topic,
                    )
                )
                record = result.scalar_one_or_none()
                merged = merge_fn(record.to_domain() if record else None)
                if record is None:
                    record = TopicPerformanceRecord(user_id=learner_id, topic=topic)
                    session.add(record)
                record.apply(merged)
        return merged

    async def upsert(self, learner_id: str, topic: str, merge_fn: TopicMerge) -> TopicPerformance:
        return await self._atomic((learner_id, topic), self._upsert_topic, learner_id, topic, merge_fn)

    async def _upsert_breakdown(
        self,
        learner_id: str,
        dimension: Dimension,
        value: str,
        merge_fn: BreakdownMerge
    ) -> BreakdownPerformance:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(BreakdownPerformanceRecord).where(
                        BreakdownPerformanceRecord.user_id == learner_id,
                        BreakdownPerformanceRecord.dimension == dimension.value,
                        BreakdownPerformanceRecord.value == value,
                    )
                )
                record = result.scalar_one_or_none()
                merged = merge_fn(record.to_domain() if record else None)
                if record is None:
                    record = BreakdownPerformanceRecord(
                        user_id=learner_id,
                        dimension=dimension.value,
                        value=value,
                    )
                    session.add(record)
                record.apply(merged)
        return merged

    async def upsert_breakdown(
        self,
        learner_id: str,
        dimension: Dimension,
        value: str,
        merge_fn: BreakdownMerge
    ) -> BreakdownPerformance:
        key = (learner_id, dimension.value, value)
        return await self._atomic(key, self._upsert_breakdown, learner_id, dimension, value, merge_fn)

    async def _get_breakdowns(self, learner_id: str, dimension: Dimension) -> List[BreakdownPerformance]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(BreakdownPerformanceRecord)
                .where(
                    BreakdownPerformanceRecord.user_id == learner_id,
                    BreakdownPerformanceRecord.dimension == dimension.value,
                )
                .order_by(BreakdownPerformanceRecord.value.asc())
            )
            return [record.to_domain() for record in result.scalars()]

    async def get_breakdowns(self, learner_id: str, dimension: Dimension) -> List[BreakdownPerformance]:
        return await self._read(self._get_breakdowns, learner_id, dimension)

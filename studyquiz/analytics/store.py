"""
Analytics Store Module

This module defines the storage contract consumed by the analytics service:
per-(learner, topic) aggregates, per-dimension breakdowns and the append-only
submission history.
"""

import abc
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from studyquiz.analytics.models import (
    BreakdownPerformance,
    Dimension,
    QuizSubmission,
    TopicPerformance,
)

TopicMerge = Callable[[Optional[TopicPerformance]], TopicPerformance]
BreakdownMerge = Callable[[Optional[BreakdownPerformance]], BreakdownPerformance]


class AnalyticsStore(abc.ABC):
    """
    Abstract base class for analytics stores.

    Atomicity contract: ``upsert`` and ``upsert_breakdown`` are atomic
    read-modify-write operations per key. Concurrent calls for the same key
    must serialize so that no update is lost. Merge functions must be pure,
    since an implementation may call them again after a conflicting write.

    Storage failures are raised as ``StoreUnavailableError``; conflicts that
    survive every retry as ``ConcurrencyError``.
    """

    @abc.abstractmethod
    async def add_submission(self, submission: QuizSubmission) -> QuizSubmission:
        """
        Append a submission to the learner's history.

        Raises:
            DuplicateError: If a submission with the same id already exists
        """
        pass

    @abc.abstractmethod
    async def recent_submissions(self, learner_id: str, limit: int = 50) -> List[QuizSubmission]:
        """
        Get a learner's most recent submissions.

        Args:
            learner_id: Learner identifier
            limit: Maximum number of submissions to return

        Returns:
            Submissions ordered by completion time, newest first
        """
        pass

    @abc.abstractmethod
    async def count_submissions_since(self, learner_id: str, since: datetime) -> int:
        """Count a learner's submissions completed at or after ``since``."""
        pass

    @abc.abstractmethod
    async def score_totals(self, learner_id: str) -> Tuple[int, int]:
        """
        Sum score and total_questions over all of a learner's submissions.

        Returns:
            Tuple of (total score, total questions)
        """
        pass

    @abc.abstractmethod
    async def get(self, learner_id: str, topic: str) -> Optional[TopicPerformance]:
        """Get one topic aggregate, None if the learner never saw the topic."""
        pass

    @abc.abstractmethod
    async def get_all(self, learner_id: str) -> List[TopicPerformance]:
        """Get every topic aggregate of a learner, lowest accuracy first."""
        pass

    @abc.abstractmethod
    async def upsert(self, learner_id: str, topic: str, merge_fn: TopicMerge) -> TopicPerformance:
        """
        Atomically replace a topic aggregate with ``merge_fn(existing)``.

        Args:
            learner_id: Learner identifier
            topic: Topic label
            merge_fn: Receives the stored aggregate (None if absent) and
                returns its replacement

        Returns:
            The aggregate as written
        """
        pass

    @abc.abstractmethod
    async def query_weaknesses(self, learner_id: str) -> List[TopicPerformance]:
        """Get aggregates flagged as weakness, lowest accuracy first."""
        pass

    @abc.abstractmethod
    async def upsert_breakdown(
        self,
        learner_id: str,
        dimension: Dimension,
        value: str,
        merge_fn: BreakdownMerge
    ) -> BreakdownPerformance:
        """Atomically replace a breakdown aggregate with ``merge_fn(existing)``."""
        pass

    @abc.abstractmethod
    async def get_breakdowns(self, learner_id: str, dimension: Dimension) -> List[BreakdownPerformance]:
        """Get a learner's breakdown aggregates for one dimension, ordered by value."""
        pass

"""
Memory Analytics Store Module

This module provides an in-memory implementation of the AnalyticsStore
interface for development and testing purposes.
"""

import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from studyquiz.analytics.models import (
    BreakdownPerformance,
    Dimension,
    QuizSubmission,
    TopicPerformance,
)
from studyquiz.analytics.store import AnalyticsStore, BreakdownMerge, TopicMerge
from studyquiz.common.exceptions import DuplicateError
from studyquiz.common.logger import app_logger

logger = app_logger.getChild("analytics.memory_store")


class MemoryAnalyticsStore(AnalyticsStore):
    """
    In-memory implementation of the AnalyticsStore.

    Each aggregate key has its own asyncio lock, so upserts on one key run
    one at a time while different keys proceed independently. Intended for
    development and testing only; nothing survives the process. Locks are
    kept for every key ever upserted until clear() is called, so memory grows
    with the number of distinct keys.
    """

    def __init__(self):
        self._submissions: Dict[str, QuizSubmission] = {}
        self._topics: Dict[Tuple[str, str], TopicPerformance] = {}
        self._breakdowns: Dict[Tuple[str, str, str], BreakdownPerformance] = {}
        self._locks: Dict[tuple, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def add_submission(self, submission: QuizSubmission) -> QuizSubmission:
        if submission.submission_id in self._submissions:
            raise DuplicateError("quiz submission", submission.submission_id)
        self._submissions[submission.submission_id] = submission
        return submission

    async def recent_submissions(self, learner_id: str, limit: int = 50) -> List[QuizSubmission]:
        # Reversed insertion order first so that equal timestamps list the latest insert first
        submissions = [
            s for s in reversed(list(self._submissions.values()))
            if s.learner_id == learner_id
        ]
        submissions.sort(key=lambda s: s.completed_at, reverse=True)
        return submissions[:limit]

    async def count_submissions_since(self, learner_id: str, since: datetime) -> int:
        return sum(
            1 for s in self._submissions.values()
            if s.learner_id == learner_id and s.completed_at >= since
        )

    async def score_totals(self, learner_id: str) -> Tuple[int, int]:
        score = 0
        total = 0
        for submission in self._submissions.values():
            if submission.learner_id == learner_id:
                score += submission.score
                total += submission.total_questions
        return score, total

    async def get(self, learner_id: str, topic: str) -> Optional[TopicPerformance]:
        return self._topics.get((learner_id, topic))

    async def get_all(self, learner_id: str) -> List[TopicPerformance]:
        aggregates = [a for (learner, _), a in self._topics.items() if learner == learner_id]
        return sorted(aggregates, key=lambda a: a.accuracy_percentage)

    async def upsert(self, learner_id: str, topic: str, merge_fn: TopicMerge) -> TopicPerformance:
        key = (learner_id, topic)
        async with self._locks[("topic",) + key]:
            merged = merge_fn(self._topics.get(key))
            self._topics[key] = merged
            return merged

    async def query_weaknesses(self, learner_id: str) -> List[TopicPerformance]:
        return [a for a in await self.get_all(learner_id) if a.is_weakness]

    async def upsert_breakdown(
        self,
        learner_id: str,
        dimension: Dimension,
        value: str,
        merge_fn: BreakdownMerge
    ) -> BreakdownPerformance:
        key = (learner_id, dimension.value, value)
        async with self._locks[("breakdown",) + key]:
            merged = merge_fn(self._breakdowns.get(key))
            self._breakdowns[key] = merged
            return merged

    async def get_breakdowns(self, learner_id: str, dimension: Dimension) -> List[BreakdownPerformance]:
        breakdowns = [
            b for (learner, dim, _), b in self._breakdowns.items()
            if learner == learner_id and dim == dimension.value
        ]
        return sorted(breakdowns, key=lambda b: b.value)

    def clear(self) -> None:
        """
        Drop all stored data.

        This method is specific to the memory implementation and not part of
        the AnalyticsStore interface.
        """
        self._submissions.clear()
        self._topics.clear()
        self._breakdowns.clear()
        self._locks.clear()
        logger.debug("Memory analytics store cleared")

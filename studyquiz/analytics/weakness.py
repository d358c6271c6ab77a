"""
Rolling Window Weakness Detector

A topic's rolling window is its most recent answer outcomes: the current
submission's answers first (in submission order), then older submissions from
newest to oldest. Only a full window can flag a weakness; below that size the
topic is in cold start and is never flagged, however many answers were wrong.

Lifetime accuracy reacts slowly to change. The window lets a learner who has
improved on an old weak topic drop the flag, and flags a newly struggling
topic after a handful of answers.

The history scan is authoritative. The outcome buffer stored on each
aggregate is an optional shortcut, used only while it still matches the
scan. It cannot see answers of a submission whose topic update failed.
"""

from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from studyquiz.analytics.models import AnswerRecord, QuizSubmission, TopicPerformance
from studyquiz.analytics.thresholds import AnalyticsThresholds


@dataclass(frozen=True)
class WeaknessVerdict:
    """Outcome of evaluating one topic window."""
    window: Tuple[bool, ...]
    is_weakness: bool = False
    rolling_accuracy: Optional[float] = None

    @property
    def cold_start(self) -> bool:
        return self.rolling_accuracy is None


@dataclass(frozen=True)
class WindowUpdate:
    """A verdict together with the buffer to store for later submissions."""
    verdict: WeaknessVerdict
    buffer: Tuple[bool, ...]
    newest_at: Optional[datetime] = None
    oldest_at: Optional[datetime] = None


class StaleBufferError(Exception):
    """Raised by a merge when the stored buffer can no longer be extended."""


class RollingWindowDetector:
    """
    Builds per-topic windows and derives the weakness flag from them.

    Windows are rebuilt from submission history, or pushed incrementally
    onto the outcome buffer stored on the aggregate when that buffer is known
    to match the history (see buffer_is_current).
    """

    def __init__(self, thresholds: Optional[AnalyticsThresholds] = None):
        self.thresholds = thresholds or AnalyticsThresholds()

    @property
    def window_size(self) -> int:
        return self.thresholds.window_size

    def push_outcomes(self, current: Iterable[bool], previous: Sequence[bool] = ()) -> Tuple[bool, ...]:
        """
        Push the current outcomes in front of the previous window.

        Args:
            current: Outcomes of this submission for the topic, in submission order
            previous: Stored window, newest first

        Returns:
            New window, newest first, at most window_size long
        """
        window = deque(previous[:self.window_size], maxlen=self.window_size)
        for outcome in reversed(list(current)):
            window.appendleft(bool(outcome))
        return tuple(window)

    def window_from_history(
        self,
        topic: str,
        current_answers: Iterable[AnswerRecord],
        history: Iterable[QuizSubmission]
    ) -> Tuple[bool, ...]:
        """
        Rebuild a topic window from submission history.

        Args:
            topic: Topic label
            current_answers: Answers of the submission being processed
            history: Earlier submissions, most recent first, not including
                the one being processed

        Returns:
            Window, newest first, at most window_size long
        """
        outcomes = [answer.is_correct for answer in current_answers if answer.has_topic(topic)]
        for submission in history:
            if len(outcomes) >= self.window_size:
                break
            outcomes.extend(answer.is_correct for answer in submission.answers_for_topic(topic))
        return tuple(outcomes[:self.window_size])

    def evaluate(self, window: Sequence[bool]) -> WeaknessVerdict:
        """Derive the weakness flag from a window."""
        window = tuple(window[:self.window_size])
        if len(window) < self.window_size:
            return WeaknessVerdict(window=window)

        rolling_accuracy = (sum(1 for outcome in window if outcome) / self.window_size) * 100
        return WeaknessVerdict(
            window=window,
            is_weakness=rolling_accuracy < self.thresholds.weakness_threshold,
            rolling_accuracy=rolling_accuracy,
        )

    def buffer_is_current(self, aggregate: Optional[TopicPerformance], completed_at: datetime) -> bool:
        """
        Whether pushing onto the stored buffer gives the history window.

        The buffer is only trusted when it holds every outcome it should and
        the submission completed after everything already folded into it. A
        missing aggregate, a buffer written before completion times were
        tracked, or an earlier-dated submission all need the history scan.
        Whether the buffered answers are still inside the scanned history is
        checked separately against the store.
        """
        if aggregate is None or aggregate.buffer_newest_at is None:
            return False
        expected = min(self.window_size, aggregate.total_attempts)
        if len(aggregate.recent_outcomes) < expected:
            return False
        return completed_at > aggregate.buffer_newest_at

    def update_from_buffer(
        self,
        aggregate: TopicPerformance,
        current_answers: Sequence[AnswerRecord],
        completed_at: datetime
    ) -> WindowUpdate:
        current = [answer.is_correct for answer in current_answers]
        window = self.push_outcomes(current, aggregate.recent_outcomes)
        # Without per-outcome times the old bound is kept; it can only be too old
        oldest_at = completed_at if len(current) >= self.window_size else (aggregate.buffer_oldest_at or completed_at)
        return WindowUpdate(
            verdict=self.evaluate(window),
            buffer=window,
            newest_at=completed_at,
            oldest_at=oldest_at,
        )

    def update_from_history(
        self,
        topic: str,
        submission: QuizSubmission,
        history: Sequence[QuizSubmission]
    ) -> WindowUpdate:
        """
        Evaluate the window from history and rebuild the stored buffer.

        The window always starts with the current answers. The buffer keeps
        completion order instead, so an earlier-dated submission lands behind
        the newer ones and later pushes stay in history order.
        """
        window = self.window_from_history(topic, submission.answers_for_topic(topic), history)

        buffer: List[bool] = []
        newest_at = oldest_at = None
        for source in in_completion_order(submission, history):
            if len(buffer) >= self.window_size:
                break
            outcomes = [answer.is_correct for answer in source.answers_for_topic(topic)]
            if not outcomes:
                continue
            buffer.extend(outcomes)
            newest_at = newest_at or source.completed_at
            oldest_at = source.completed_at

        return WindowUpdate(
            verdict=self.evaluate(window),
            buffer=tuple(buffer[:self.window_size]),
            newest_at=newest_at,
            oldest_at=oldest_at,
        )

    def apply(self, aggregate: TopicPerformance, update: WindowUpdate) -> TopicPerformance:
        """Store the verdict and buffer on the aggregate; the counters are left untouched."""
        return replace(
            aggregate,
            is_weakness=update.verdict.is_weakness,
            rolling_accuracy=update.verdict.rolling_accuracy,
            recent_outcomes=update.buffer,
            buffer_newest_at=update.newest_at,
            buffer_oldest_at=update.oldest_at,
        )


def in_completion_order(submission: QuizSubmission, history: Sequence[QuizSubmission]) -> List[QuizSubmission]:
    """
    Place ``submission`` into ``history`` by completion time, newest first.

    ``history`` is already newest first. On equal times the submission goes
    first, being the latest stored.
    """
    newer = [s for s in history if s.completed_at > submission.completed_at]
    older = [s for s in history if s.completed_at <= submission.completed_at]
    return newer + [submission] + older

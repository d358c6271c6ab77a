"""
Performance Analytics Service

This module orchestrates quiz submission processing: grading, tallying,
persisting the submission, and updating each touched topic's aggregate and
weakness flag. It also serves the read side used by reports and
personalization.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from studyquiz.analytics.aggregator import compute_batch_tallies, merge_breakdown_tally, merge_topic_tally
from studyquiz.analytics.grading import grade_submission
from studyquiz.analytics.models import (
    AnswerRecord,
    BreakdownPerformance,
    Dimension,
    PerformanceBand,
    QuizSubmission,
    Tally,
    TopicPerformance,
    accuracy_of,
    ensure_utc,
    utcnow,
)
from studyquiz.analytics.personalization import GenerationBias, PersonalizationSelector, split_into_bands
from studyquiz.analytics.store import AnalyticsStore, TopicMerge
from studyquiz.analytics.thresholds import AnalyticsThresholds
from studyquiz.analytics.weakness import RollingWindowDetector, StaleBufferError
from studyquiz.common.exceptions import DatabaseError, ValidationError
from studyquiz.common.logger import app_logger, log_execution_time, with_context

logger = app_logger.getChild("analytics.service")

HistoryLoader = Callable[[], Awaitable[List[QuizSubmission]]]


def _buffer_state(aggregate: TopicPerformance) -> Tuple:
    return (
        aggregate.total_attempts,
        aggregate.recent_outcomes,
        aggregate.buffer_newest_at,
        aggregate.buffer_oldest_at,
    )


@dataclass(frozen=True)
class SubmissionResult:
    """
    Outcome of processing one quiz submission.

    The submission itself is always persisted when a result is returned.
    Topics or breakdowns whose update failed are listed and left unchanged;
    the others were updated.
    """
    submission: QuizSubmission
    topics: Dict[str, TopicPerformance] = field(default_factory=dict)
    breakdowns: List[BreakdownPerformance] = field(default_factory=list)
    failed_topics: Tuple[str, ...] = ()
    failed_breakdowns: Tuple[str, ...] = ()

    @property
    def complete(self) -> bool:
        return not self.failed_topics and not self.failed_breakdowns


@dataclass(frozen=True)
class PerformanceSummary:
    """Report of a learner's performance across all topics."""
    analytics: List[TopicPerformance]
    weaknesses: List[TopicPerformance]
    improving: List[TopicPerformance]
    strengths: List[TopicPerformance]
    overall_accuracy: float
    total_attempts: int
    total_correct: int
    question_types: List[BreakdownPerformance] = field(default_factory=list)
    difficulties: List[BreakdownPerformance] = field(default_factory=list)

    @property
    def total_topics(self) -> int:
        return len(self.analytics)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analytics": [a.to_dict() for a in self.analytics],
            "summary": {
                "weaknesses": [a.to_dict() for a in self.weaknesses],
                "improving": [a.to_dict() for a in self.improving],
                "strengths": [a.to_dict() for a in self.strengths],
                "overall_accuracy": self.overall_accuracy,
                "total_attempts": self.total_attempts,
                "total_correct": self.total_correct,
                "total_topics": self.total_topics,
            },
            "question_types": [b.to_dict() for b in self.question_types],
            "difficulties": [b.to_dict() for b in self.difficulties],
        }


class PerformanceAnalyticsService:
    """
    Service for recording quiz results and reporting learner performance.

    Submission processing steps:
    1. Validate the input; nothing is stored when it is rejected
    2. Grade every answer and tally the batch
    3. Persist the submission; a failure here aborts everything
    4. Update each touched topic and breakdown concurrently, isolating failures
    """

    def __init__(self, store: AnalyticsStore, thresholds: Optional[AnalyticsThresholds] = None):
        self.store = store
        self.thresholds = thresholds or AnalyticsThresholds()
        self.detector = RollingWindowDetector(self.thresholds)
        self.selector = PersonalizationSelector(store, self.thresholds)

    @staticmethod
    def _require_learner(learner_id: Optional[str]) -> None:
        if not learner_id:
            raise ValidationError("User ID required", {"user_id": "missing"})

    def _validate_submission(
        self,
        learner_id: Optional[str],
        questions: Optional[Sequence[Mapping[str, Any]]],
        user_answers: Optional[Mapping[str, Optional[str]]]
    ) -> None:
        errors = {}
        if not learner_id:
            errors["user_id"] = "missing"
        if questions is None:
            errors["questions"] = "missing"
        if user_answers is None:
            errors["user_answers"] = "missing"
        if errors:
            raise ValidationError("Missing required fields", errors)

    @staticmethod
    def _grade(questions: Sequence[Mapping[str, Any]], user_answers: Mapping[str, Optional[str]]) -> List[AnswerRecord]:
        try:
            return grade_submission(questions, dict(user_answers))
        except KeyError as e:
            raise ValidationError(f"Question is missing field {e}", {"questions": f"missing {e}"})
        except ValueError as e:
            raise ValidationError(f"Invalid question: {e}", {"questions": str(e)})

    @log_execution_time(logger)
    async def submit_quiz_result(
        self,
        learner_id: Optional[str],
        questions: Optional[Sequence[Mapping[str, Any]]],
        user_answers: Optional[Mapping[str, Optional[str]]],
        score: Optional[int] = None,
        total_questions: Optional[int] = None,
        time_taken: Optional[float] = None,
        quiz_id: Optional[str] = None,
        study_material_id: Optional[str] = None,
        submission_id: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> SubmissionResult:
        """
        Record a quiz submission and update the learner's aggregates.

        Args:
            learner_id: Learner identifier
            questions: Question dicts (id, question, type, correct_answer,
                optional difficulty and topics)
            user_answers: Submitted answers keyed by question id
            score: Reported score, defaults to the number graded correct
            total_questions: Reported question count, defaults to len(questions)
            time_taken: Elapsed seconds
            quiz_id: Optional quiz identifier
            study_material_id: Optional study material identifier
            submission_id: Caller-chosen id; reusing one is rejected
            completed_at: Completion time, defaults to now

        Returns:
            SubmissionResult with the updated aggregates and any failed topics

        Raises:
            ValidationError: Input rejected, nothing stored
            DuplicateError: submission_id already recorded, nothing changed
            DatabaseError: Submission could not be persisted, nothing changed
        """
        self._validate_submission(learner_id, questions, user_answers)

        answers = self._grade(questions, user_answers)
        tallies = compute_batch_tallies(answers)
        graded_correct = sum(1 for answer in answers if answer.is_correct)

        submission_fields = {}
        if submission_id is not None:
            submission_fields["submission_id"] = submission_id
        submission = QuizSubmission(
            learner_id=learner_id,
            answers=tuple(answers),
            score=graded_correct if score is None else score,
            total_questions=len(answers) if total_questions is None else total_questions,
            tallies=tallies,
            time_taken=time_taken,
            quiz_id=quiz_id,
            study_material_id=study_material_id,
            completed_at=ensure_utc(completed_at) if completed_at else utcnow(),
            **submission_fields
        )
        log = with_context(logger, learner_id=learner_id, submission_id=submission.submission_id)

        await self.store.add_submission(submission)
        log.info(
            f"Recorded quiz result {submission.score}/{submission.total_questions} "
            f"touching {len(tallies.by_topic)} topics"
        )

        load_history = self._history_loader(submission)
        topic_updates = [
            self._update_topic(submission, topic, batch, load_history)
            for topic, batch in tallies.by_topic.items()
        ]
        breakdown_updates = [
            self._update_breakdown(learner_id, dimension, value, batch)
            for dimension in Dimension
            for value, batch in tallies.for_dimension(dimension).items()
        ]
        topic_results = await asyncio.gather(*topic_updates)
        breakdown_results = await asyncio.gather(*breakdown_updates)

        topics = {topic: aggregate for topic, aggregate in topic_results if aggregate is not None}
        failed_topics = tuple(topic for topic, aggregate in topic_results if aggregate is None)
        breakdowns = [b for _, b in breakdown_results if b is not None]
        failed_breakdowns = tuple(key for key, b in breakdown_results if b is None)

        if failed_topics or failed_breakdowns:
            log.warning(
                f"Submission stored with failed updates: topics={list(failed_topics)} "
                f"breakdowns={list(failed_breakdowns)}"
            )

        return SubmissionResult(
            submission=submission,
            topics=topics,
            breakdowns=breakdowns,
            failed_topics=failed_topics,
            failed_breakdowns=failed_breakdowns,
        )

    def _history_loader(self, submission: QuizSubmission) -> HistoryLoader:
        """
        Build a loader fetching the learner's earlier submissions at most once.

        The submission being processed is already stored, so one extra row is
        fetched and the current one filtered out.
        """
        limit = self.thresholds.history_limit
        task: Optional[asyncio.Future] = None

        async def fetch() -> List[QuizSubmission]:
            recent = await self.store.recent_submissions(submission.learner_id, limit=limit + 1)
            return [s for s in recent if s.submission_id != submission.submission_id][:limit]

        def load() -> Awaitable[List[QuizSubmission]]:
            nonlocal task
            if task is None:
                task = asyncio.ensure_future(fetch())
            return task

        return load

    async def _buffer_usable(self, aggregate: Optional[TopicPerformance], submission: QuizSubmission) -> bool:
        """
        Whether pushing onto the stored buffer gives the same window as the scan.

        Besides the checks on the aggregate itself, the submission behind the
        oldest buffered answer must still be within the history_limit most
        recent submissions other than this one.
        """
        if not self.detector.buffer_is_current(aggregate, submission.completed_at):
            return False
        if aggregate.buffer_oldest_at is None:
            return True
        # Includes this submission and the oldest buffered one
        since_oldest = await self.store.count_submissions_since(submission.learner_id, aggregate.buffer_oldest_at)
        return since_oldest - 1 <= self.thresholds.history_limit

    def _topic_merge(
        self,
        submission: QuizSubmission,
        topic: str,
        batch: Tally,
        history: Optional[List[QuizSubmission]],
        checked: Optional[TopicPerformance] = None
    ) -> TopicMerge:
        """
        Build the pure merge for one topic.

        Without history the merge can only push onto the buffer of
        ``checked``, and raises StaleBufferError when the row it reads no
        longer carries that buffer.
        """
        detector = self.detector

        def merge(existing: Optional[TopicPerformance]) -> TopicPerformance:
            merged = merge_topic_tally(existing, submission.learner_id, topic, batch)
            if history is not None:
                update = detector.update_from_history(topic, submission, history)
            elif existing is not None and checked is not None and _buffer_state(existing) == _buffer_state(checked):
                update = detector.update_from_buffer(
                    existing, submission.answers_for_topic(topic), submission.completed_at
                )
            else:
                raise StaleBufferError(topic)
            return detector.apply(merged, update)

        return merge

    async def _update_topic(
        self,
        submission: QuizSubmission,
        topic: str,
        batch: Tally,
        load_history: HistoryLoader
    ) -> Tuple[str, Optional[TopicPerformance]]:
        learner_id = submission.learner_id

        try:
            checked = None
            if self.thresholds.use_outcome_buffer:
                checked = await self.store.get(learner_id, topic)
                if not await self._buffer_usable(checked, submission):
                    checked = None
            history = None if checked is not None else await load_history()
            try:
                aggregate = await self.store.upsert(
                    learner_id, topic, self._topic_merge(submission, topic, batch, history, checked)
                )
            except StaleBufferError:
                # A concurrent update changed the buffer after it was checked
                aggregate = await self.store.upsert(
                    learner_id, topic, self._topic_merge(submission, topic, batch, await load_history())
                )
        except DatabaseError as e:
            logger.error(f"Failed to update topic '{topic}' for {learner_id}: {e}")
            return topic, None

        if aggregate.is_weakness:
            logger.debug(
                f"Topic '{topic}' flagged as weakness for {learner_id} "
                f"(rolling accuracy {aggregate.rolling_accuracy:.1f}%)"
            )
        return topic, aggregate

    async def _update_breakdown(
        self,
        learner_id: str,
        dimension: Dimension,
        value: str,
        batch: Tally
    ) -> Tuple[str, Optional[BreakdownPerformance]]:
        key = f"{dimension.value}:{value}"
        try:
            merge = partial(merge_breakdown_tally, learner_id=learner_id, dimension=dimension, value=value, batch=batch)
            return key, await self.store.upsert_breakdown(learner_id, dimension, value, merge)
        except DatabaseError as e:
            logger.error(f"Failed to update breakdown {key} for {learner_id}: {e}")
            return key, None

    async def list_quiz_results(self, learner_id: Optional[str], limit: int = 10) -> List[QuizSubmission]:
        """Get the learner's most recent quiz results, newest first."""
        self._require_learner(learner_id)
        if limit < 1:
            raise ValidationError("limit must be at least 1", {"limit": limit})
        return await self.store.recent_submissions(learner_id, limit=limit)

    @log_execution_time(logger)
    async def get_performance_summary(self, learner_id: Optional[str]) -> PerformanceSummary:
        """
        Build the learner's performance report.

        Bands use lifetime accuracy. Overall accuracy comes from the reported
        scores of all submissions, not from the topic tallies, since one answer
        can count toward several topics.
        """
        self._require_learner(learner_id)

        analytics, (score, total), question_types, difficulties = await asyncio.gather(
            self.store.get_all(learner_id),
            self.store.score_totals(learner_id),
            self.store.get_breakdowns(learner_id, Dimension.QUESTION_TYPE),
            self.store.get_breakdowns(learner_id, Dimension.DIFFICULTY),
        )
        bands = split_into_bands(analytics, self.thresholds)

        return PerformanceSummary(
            analytics=analytics,
            weaknesses=bands[PerformanceBand.WEAKNESS],
            improving=bands[PerformanceBand.IMPROVING],
            strengths=bands[PerformanceBand.STRENGTH],
            overall_accuracy=accuracy_of(score, total),
            total_attempts=total,
            total_correct=score,
            question_types=question_types,
            difficulties=difficulties,
        )

    async def get_weaknesses(self, learner_id: Optional[str]) -> List[TopicPerformance]:
        """Get topics currently flagged as weakness, lowest accuracy first."""
        self._require_learner(learner_id)
        return await self.store.query_weaknesses(learner_id)

    async def select_focus_topics(self, learner_id: Optional[str], focus_on_weaknesses: bool = True) -> List[str]:
        self._require_learner(learner_id)
        return await self.selector.select_focus_topics(learner_id, focus_on_weaknesses)

    async def generation_bias(self, learner_id: Optional[str], focus_on_weaknesses: bool = True) -> GenerationBias:
        self._require_learner(learner_id)
        return await self.selector.generation_bias(learner_id, focus_on_weaknesses)

"""
Tests for the performance analytics service.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from studyquiz.analytics.memory_store import MemoryAnalyticsStore
from studyquiz.analytics.models import AnswerRecord, QuestionType, QuizSubmission, TopicPerformance
from studyquiz.analytics.service import PerformanceAnalyticsService
from studyquiz.analytics.thresholds import AnalyticsThresholds
from studyquiz.common.exceptions import DuplicateError, StoreUnavailableError, ValidationError

from factories import make_question, make_quiz

T, F = True, False
BASE_TIME = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


def window_service(use_buffer, **overrides):
    store = MemoryAnalyticsStore()
    return PerformanceAnalyticsService(store, AnalyticsThresholds(use_outcome_buffer=use_buffer, **overrides)), store


async def submit(service, outcomes, minutes, topics=("algebra",)):
    questions, answers = make_quiz(outcomes, topics=topics, prefix=f"m{minutes}-")
    return await service.submit_quiz_result(
        "l", questions, answers, completed_at=BASE_TIME + timedelta(minutes=minutes)
    )


def algebra_state(result):
    aggregate = result.topics["algebra"]
    return aggregate.is_weakness, aggregate.rolling_accuracy


class TestSubmissionValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["learner_id", "questions", "user_answers"])
    async def test_missing_input_is_rejected_without_storing(self, service, memory_store, missing):
        questions, answers = make_quiz([T])
        arguments = {"learner_id": "l", "questions": questions, "user_answers": answers}
        arguments[missing] = None

        with pytest.raises(ValidationError):
            await service.submit_quiz_result(**arguments)

        assert await memory_store.recent_submissions("l") == []
        assert await memory_store.get_all("l") == []

    @pytest.mark.asyncio
    async def test_malformed_question_is_rejected(self, service, memory_store):
        with pytest.raises(ValidationError):
            await service.submit_quiz_result("l", [{"id": "q1", "type": "essay", "correct_answer": "x"}], {})

        assert await memory_store.recent_submissions("l") == []

    @pytest.mark.asyncio
    async def test_empty_quiz_is_accepted(self, service):
        result = await service.submit_quiz_result("l", [], {})

        assert result.submission.total_questions == 0
        assert result.topics == {}
        assert result.complete


class TestSubmitQuizResult:

    @pytest.mark.asyncio
    async def test_score_and_total_default_to_graded_values(self, service):
        questions, answers = make_quiz([T, F, T])
        result = await service.submit_quiz_result("l", questions, answers)

        assert result.submission.score == 2
        assert result.submission.total_questions == 3

    @pytest.mark.asyncio
    async def test_reported_score_is_kept(self, service):
        questions, answers = make_quiz([T, F, T])
        result = await service.submit_quiz_result("l", questions, answers, score=1, total_questions=5)

        assert result.submission.score == 1
        assert result.submission.total_questions == 5
        assert result.topics["algebra"].correct_answers == 2

    @pytest.mark.asyncio
    async def test_multi_topic_questions_update_every_topic(self, service):
        questions = [
            make_question("q1", topics=["algebra", "fractions"]),
            make_question("q2", topics=["fractions"]),
        ]
        result = await service.submit_quiz_result("l", questions, {"q1": "A", "q2": "B"})

        assert result.topics["algebra"].total_attempts == 1
        assert result.topics["fractions"].total_attempts == 2
        assert result.topics["fractions"].correct_answers == 1

    @pytest.mark.asyncio
    async def test_breakdowns_are_updated(self, service, memory_store):
        questions = [
            make_question("q1", question_type="true-false", difficulty="easy"),
            make_question("q2", question_type="true-false", difficulty=None),
        ]
        result = await service.submit_quiz_result("l", questions, {"q1": "A"})

        summary = await service.get_performance_summary("l")
        [true_false] = summary.question_types
        assert (true_false.value, true_false.correct, true_false.total) == ("true-false", 1, 2)
        assert [(b.value, b.total) for b in summary.difficulties] == [("easy", 1), ("medium", 1)]
        assert len(result.breakdowns) == 3

    @pytest.mark.asyncio
    async def test_aggregates_accumulate_across_submissions(self, service):
        for outcomes in ([T, T, F], [F, F], [T]):
            questions, answers = make_quiz(outcomes)
            result = await service.submit_quiz_result("l", questions, answers)

        aggregate = result.topics["algebra"]
        assert aggregate.total_attempts == 6
        assert aggregate.correct_answers == 3
        assert aggregate.accuracy_percentage == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_duplicate_submission_is_not_counted_twice(self, service, memory_store):
        questions, answers = make_quiz([T, F])
        await service.submit_quiz_result("l", questions, answers, submission_id="sub-1")

        with pytest.raises(DuplicateError):
            await service.submit_quiz_result("l", questions, answers, submission_id="sub-1")

        aggregate = await memory_store.get("l", "algebra")
        assert aggregate.total_attempts == 2
        assert await memory_store.score_totals("l") == (1, 2)


class TestWeaknessDetection:

    @pytest.mark.asyncio
    async def test_cold_start_never_flags(self, service):
        questions, answers = make_quiz([F, F, F])
        result = await service.submit_quiz_result("l", questions, answers)

        aggregate = result.topics["algebra"]
        assert aggregate.accuracy_percentage == 0.0
        assert aggregate.is_weakness is False
        assert aggregate.rolling_accuracy is None

    @pytest.mark.asyncio
    async def test_three_wrong_after_seven_of_ten_flags_weakness(self, service):
        questions, answers = make_quiz([T, T, T, F, T, T, F, T, F, T], prefix="first")
        first = await service.submit_quiz_result("l", questions, answers)
        assert first.topics["algebra"].rolling_accuracy == pytest.approx(70.0)
        assert first.topics["algebra"].is_weakness is False

        questions, answers = make_quiz([F, F, F], prefix="second")
        second = await service.submit_quiz_result("l", questions, answers)

        aggregate = second.topics["algebra"]
        assert aggregate.rolling_accuracy == pytest.approx(50.0)
        assert aggregate.is_weakness is True
        assert aggregate.accuracy_percentage == pytest.approx(7 / 13 * 100)

    @pytest.mark.asyncio
    async def test_recent_improvement_clears_weakness(self, service):
        questions, answers = make_quiz([F] * 10, prefix="bad")
        await service.submit_quiz_result("l", questions, answers)
        assert (await service.get_weaknesses("l"))[0].topic == "algebra"

        questions, answers = make_quiz([T] * 8, prefix="good")
        result = await service.submit_quiz_result("l", questions, answers)

        aggregate = result.topics["algebra"]
        assert aggregate.is_weakness is False
        assert aggregate.rolling_accuracy == pytest.approx(80.0)
        assert aggregate.accuracy_percentage < 60
        assert await service.get_weaknesses("l") == []

    @pytest.mark.asyncio
    async def test_buffer_and_history_scan_agree(self):
        sequences = [[T, F, T], [F, F, F, T], [T, T], [F, F, T, F], [T, F, F]]
        services = [
            PerformanceAnalyticsService(MemoryAnalyticsStore(), AnalyticsThresholds(use_outcome_buffer=True)),
            PerformanceAnalyticsService(MemoryAnalyticsStore(), AnalyticsThresholds(use_outcome_buffer=False)),
        ]

        verdicts = []
        for svc in services:
            seen = []
            for i, outcomes in enumerate(sequences):
                questions, answers = make_quiz(outcomes, prefix=f"s{i}-")
                result = await svc.submit_quiz_result("l", questions, answers)
                aggregate = result.topics["algebra"]
                seen.append((aggregate.is_weakness, aggregate.rolling_accuracy, aggregate.recent_outcomes))
            verdicts.append(seen)

        assert verdicts[0] == verdicts[1]
        assert verdicts[0][-1][1] == pytest.approx(40.0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("use_buffer", [False, True])
    async def test_aggregate_without_buffer_is_seeded_from_history(self, memory_store, use_buffer):
        service = PerformanceAnalyticsService(memory_store, AnalyticsThresholds(use_outcome_buffer=use_buffer))
        old_answers = tuple(
            AnswerRecord(
                question_id=f"old{i}",
                question="?",
                question_type=QuestionType.MULTIPLE_CHOICE,
                correct_answer="A",
                topics=("algebra",),
                is_correct=False,
            )
            for i in range(10)
        )
        await memory_store.add_submission(
            QuizSubmission(learner_id="l", answers=old_answers, score=0, total_questions=10)
        )
        await memory_store.upsert(
            "l", "algebra",
            lambda existing: TopicPerformance(learner_id="l", topic="algebra", total_attempts=10, correct_answers=0)
        )

        questions, answers = make_quiz([T, T])
        result = await service.submit_quiz_result("l", questions, answers)

        aggregate = result.topics["algebra"]
        assert aggregate.total_attempts == 12
        assert aggregate.rolling_accuracy == pytest.approx(20.0)
        assert aggregate.is_weakness is True
        assert aggregate.recent_outcomes == (T, T) + (F,) * 8


class TestWindowSources:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("use_buffer", [False, True])
    async def test_topic_older_than_history_limit_is_in_cold_start(self, use_buffer):
        service, _ = window_service(use_buffer)
        first = await submit(service, [F] * 10, minutes=0)
        assert algebra_state(first) == (True, pytest.approx(0.0))

        for i in range(1, 51):
            await submit(service, [T], minutes=i, topics=("geometry",))
        result = await submit(service, [T], minutes=51)

        assert algebra_state(result) == (False, None)
        assert result.topics["algebra"].total_attempts == 11

    @pytest.mark.asyncio
    @pytest.mark.parametrize("use_buffer", [False, True])
    async def test_topic_at_the_history_limit_still_counts(self, use_buffer):
        service, _ = window_service(use_buffer)
        await submit(service, [F] * 10, minutes=0)

        for i in range(1, 50):
            await submit(service, [T], minutes=i, topics=("geometry",))
        result = await submit(service, [T], minutes=50)

        assert algebra_state(result) == (True, pytest.approx(10.0))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("use_buffer", [False, True])
    async def test_history_limit_is_configurable(self, use_buffer):
        service, _ = window_service(use_buffer, history_limit=2)
        await submit(service, [F] * 10, minutes=0)
        await submit(service, [T], minutes=1, topics=("geometry",))
        await submit(service, [T], minutes=2, topics=("geometry",))

        result = await submit(service, [T], minutes=3)

        assert algebra_state(result) == (False, None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("use_buffer", [False, True])
    async def test_answers_of_a_failed_topic_update_stay_in_the_window(self, use_buffer):
        service, store = window_service(use_buffer)

        with patch.object(store, "upsert", AsyncMock(side_effect=StoreUnavailableError("down"))):
            failed = await submit(service, [F] * 10, minutes=0)
        assert failed.failed_topics == ("algebra",)
        assert await store.get("l", "algebra") is None

        result = await submit(service, [T], minutes=1)

        assert algebra_state(result) == (True, pytest.approx(10.0))
        assert result.topics["algebra"].total_attempts == 1

    @pytest.mark.asyncio
    async def test_history_scan_sees_a_failed_update_on_an_existing_topic(self):
        service, store = window_service(False)
        await submit(service, [T] * 10, minutes=0)

        with patch.object(store, "upsert", AsyncMock(side_effect=StoreUnavailableError("down"))):
            await submit(service, [F] * 10, minutes=1)
        result = await submit(service, [T], minutes=2)

        assert algebra_state(result) == (True, pytest.approx(10.0))
        assert result.topics["algebra"].total_attempts == 11

    @pytest.mark.asyncio
    @pytest.mark.parametrize("use_buffer", [False, True])
    async def test_earlier_dated_submission_is_ordered_by_completion_time(self, use_buffer):
        service, _ = window_service(use_buffer)
        await submit(service, [T] * 10, minutes=0)

        backdated = await submit(service, [F] * 5, minutes=-60 * 24 * 30)
        assert algebra_state(backdated) == (True, pytest.approx(50.0))

        result = await submit(service, [T], minutes=60 * 24)

        assert algebra_state(result) == (False, pytest.approx(100.0))
        assert result.topics["algebra"].recent_outcomes == (T,) * 10

    @pytest.mark.asyncio
    async def test_both_sources_agree_on_a_mixed_sequence(self):
        steps = [
            ([F] * 4, 0, ("algebra",)),
            ([T] * 3, 10, ("algebra", "geometry")),
            ([F] * 6, -5, ("algebra",)),
            ([T], 20, ("geometry",)),
            ([T] * 2, 30, ("algebra",)),
            ([F], 30, ("algebra",)),
            ([T] * 8, 40, ("algebra",)),
        ]
        states = []
        for use_buffer in (False, True):
            service, _ = window_service(use_buffer)
            seen = []
            for outcomes, minutes, topics in steps:
                result = await submit(service, outcomes, minutes, topics=topics)
                if "algebra" in result.topics:
                    seen.append(algebra_state(result) + (result.topics["algebra"].recent_outcomes,))
            states.append(seen)

        assert states[0] == states[1]

    @pytest.mark.asyncio
    async def test_buffer_changed_after_the_check_falls_back_to_history(self):
        service, store = window_service(True)
        await submit(service, [F] * 10, minutes=0)
        stored = await store.get("l", "algebra")
        outdated = replace(stored, recent_outcomes=(T,) * 10)

        with patch.object(store, "get", AsyncMock(return_value=outdated)):
            result = await submit(service, [T], minutes=1)

        assert algebra_state(result) == (True, pytest.approx(10.0))


class TestFailureHandling:

    @pytest.mark.asyncio
    async def test_submission_failure_aborts_everything(self, service, memory_store):
        questions, answers = make_quiz([T, F])
        upsert = AsyncMock()

        with patch.object(memory_store, "add_submission", AsyncMock(side_effect=StoreUnavailableError("down"))), \
                patch.object(memory_store, "upsert", upsert):
            with pytest.raises(StoreUnavailableError):
                await service.submit_quiz_result("l", questions, answers)

        upsert.assert_not_awaited()
        assert await memory_store.get_all("l") == []

    @pytest.mark.asyncio
    async def test_topic_failure_is_isolated(self, service, memory_store):
        original_upsert = memory_store.upsert

        async def flaky_upsert(learner_id, topic, merge_fn):
            if topic == "geometry":
                raise StoreUnavailableError("geometry shard down")
            return await original_upsert(learner_id, topic, merge_fn)

        questions = [
            make_question("q1", topics=["algebra"]),
            make_question("q2", topics=["geometry"]),
            make_question("q3", topics=["calculus"]),
        ]
        with patch.object(memory_store, "upsert", side_effect=flaky_upsert):
            result = await service.submit_quiz_result("l", questions, {"q1": "A", "q2": "A", "q3": "B"})

        assert result.failed_topics == ("geometry",)
        assert not result.complete
        assert set(result.topics) == {"algebra", "calculus"}
        assert await memory_store.get("l", "geometry") is None
        assert await memory_store.get("l", "calculus") is not None
        assert len(await memory_store.recent_submissions("l")) == 1

    @pytest.mark.asyncio
    async def test_breakdown_failure_is_isolated(self, service, memory_store):
        questions, answers = make_quiz([T])
        failing = AsyncMock(side_effect=StoreUnavailableError("down"))

        with patch.object(memory_store, "upsert_breakdown", failing):
            result = await service.submit_quiz_result("l", questions, answers)

        assert set(result.failed_breakdowns) == {"question_type:multiple-choice", "difficulty:medium"}
        assert result.failed_topics == ()
        assert result.topics["algebra"].total_attempts == 1


class TestReports:

    @pytest.mark.asyncio
    async def test_summary_bands_and_overall_accuracy(self, service):
        await service.submit_quiz_result("l", *make_quiz([T, F, F, F, F], topics=("weak",), prefix="w"))
        await service.submit_quiz_result("l", *make_quiz([T, T, T, F], topics=("mid",), prefix="m"))
        await service.submit_quiz_result(
            "l", *make_quiz([T, T, T, T, T], topics=("strong", "mid"), prefix="s")
        )

        summary = await service.get_performance_summary("l")

        assert [a.topic for a in summary.weaknesses] == ["weak"]
        assert [a.topic for a in summary.improving] == []
        assert [a.topic for a in summary.strengths] == ["mid", "strong"]
        assert summary.total_topics == 3
        assert summary.total_attempts == 14
        assert summary.total_correct == 9
        assert summary.overall_accuracy == pytest.approx(9 / 14 * 100)

    @pytest.mark.asyncio
    async def test_overall_accuracy_uses_reported_scores(self, service):
        questions = [make_question("q1", topics=["a", "b", "c"])]
        await service.submit_quiz_result("l", questions, {"q1": "A"}, score=1, total_questions=4)

        summary = await service.get_performance_summary("l")

        assert summary.overall_accuracy == pytest.approx(25.0)
        assert all(a.accuracy_percentage == 100.0 for a in summary.analytics)

    @pytest.mark.asyncio
    async def test_summary_without_submissions(self, service):
        summary = await service.get_performance_summary("nobody")

        assert summary.overall_accuracy == 0.0
        assert summary.total_topics == 0
        assert summary.to_dict()["summary"]["total_attempts"] == 0

    @pytest.mark.asyncio
    async def test_reads_require_learner(self, service):
        with pytest.raises(ValidationError):
            await service.get_weaknesses("")
        with pytest.raises(ValidationError):
            await service.get_performance_summary(None)
        with pytest.raises(ValidationError):
            await service.list_quiz_results("l", limit=0)

    @pytest.mark.asyncio
    async def test_list_quiz_results_newest_first(self, service):
        for i in range(3):
            await service.submit_quiz_result("l", *make_quiz([T], prefix=f"r{i}-"), submission_id=f"r{i}")

        results = await service.list_quiz_results("l", limit=2)

        assert [r.submission_id for r in results] == ["r2", "r1"]

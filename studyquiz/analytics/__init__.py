"""
Performance analytics for StudyQuiz.

This package grades quiz submissions, keeps per-topic performance aggregates,
flags weak topics from a rolling window of recent answers, and selects the
topics future quizzes should focus on.
"""

from studyquiz.analytics.models import (
    AnswerRecord,
    BreakdownPerformance,
    Difficulty,
    Dimension,
    PerformanceBand,
    QuestionType,
    QuizSubmission,
    Tally,
    TopicPerformance,
)
from studyquiz.analytics.grading import grade_submission, is_correct_answer
from studyquiz.analytics.aggregator import compute_batch_tallies, merge_topic_tally
from studyquiz.analytics.weakness import RollingWindowDetector, WeaknessVerdict
from studyquiz.analytics.store import AnalyticsStore
from studyquiz.analytics.memory_store import MemoryAnalyticsStore
from studyquiz.analytics.personalization import GenerationBias, PersonalizationSelector
from studyquiz.analytics.service import PerformanceAnalyticsService, PerformanceSummary, SubmissionResult
from studyquiz.analytics.thresholds import AnalyticsThresholds

__all__ = [
    'AnswerRecord',
    'BreakdownPerformance',
    'Difficulty',
    'Dimension',
    'PerformanceBand',
    'QuestionType',
    'QuizSubmission',
    'Tally',
    'TopicPerformance',
    'grade_submission',
    'is_correct_answer',
    'compute_batch_tallies',
    'merge_topic_tally',
    'RollingWindowDetector',
    'WeaknessVerdict',
    'AnalyticsStore',
    'MemoryAnalyticsStore',
    'GenerationBias',
    'PersonalizationSelector',
    'PerformanceAnalyticsService',
    'PerformanceSummary',
    'SubmissionResult',
    'AnalyticsThresholds',
]

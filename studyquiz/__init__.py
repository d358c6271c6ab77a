"""
StudyQuiz Performance Analytics Backend

This package implements the personalization core of the StudyQuiz application:
1. Grading of submitted quiz answers against their canonical answers
2. Per-topic, per-question-type and per-difficulty performance aggregation
3. Rolling-window weakness detection over a learner's most recent answers
4. Topic-bias selection for the external question generator
"""

__version__ = "0.1.0"

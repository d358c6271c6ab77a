"""
Shared fixtures for the StudyQuiz analytics tests.
"""

import pytest

from studyquiz.analytics.memory_store import MemoryAnalyticsStore
from studyquiz.analytics.service import PerformanceAnalyticsService
from studyquiz.analytics.thresholds import AnalyticsThresholds


@pytest.fixture
def thresholds():
    return AnalyticsThresholds()


@pytest.fixture
def memory_store():
    return MemoryAnalyticsStore()


@pytest.fixture
def service(memory_store, thresholds):
    return PerformanceAnalyticsService(memory_store, thresholds)


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'analytics.db'}"

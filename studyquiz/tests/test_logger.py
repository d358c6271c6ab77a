"""
Tests for the application logger helpers.
"""

import json
import logging

import pytest

from studyquiz.common.logger import JsonFormatter, log_execution_time, with_context


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def capture_logger():
    logger = logging.getLogger("studyquiz.tests.capture")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = ListHandler()
    logger.addHandler(handler)
    yield logger, handler
    logger.removeHandler(handler)


def test_context_is_prefixed_and_attached(capture_logger):
    logger, handler = capture_logger

    with_context(logger, learner_id="l-1").info("Recorded")

    [record] = handler.records
    assert record.getMessage() == "[learner_id=l-1] Recorded"
    assert record.data == {"learner_id": "l-1"}


def test_json_formatter_includes_context(capture_logger):
    logger, handler = capture_logger
    with_context(logger, topic="algebra").warning("Flagged")

    payload = json.loads(JsonFormatter().format(handler.records[0]))

    assert payload["level"] == "WARNING"
    assert payload["topic"] == "algebra"


@pytest.mark.asyncio
async def test_log_execution_time_wraps_coroutines(capture_logger):
    logger, handler = capture_logger

    @log_execution_time(logger)
    async def compute(x):
        return x * 2

    assert await compute(21) == 42
    assert "compute executed in" in handler.records[0].getMessage()

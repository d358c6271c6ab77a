"""
Tests for settings validation and the derived analytics thresholds.
"""

import unittest

from pydantic import ValidationError as SettingsValidationError

from studyquiz.analytics.thresholds import AnalyticsThresholds
from studyquiz.config import Settings


class TestSettings(unittest.TestCase):

    def test_defaults(self):
        settings = Settings(_env_file=None)

        self.assertEqual(settings.WEAKNESS_WINDOW_SIZE, 10)
        self.assertEqual(settings.WEAKNESS_ACCURACY_THRESHOLD, 60.0)
        self.assertEqual(settings.STRENGTH_ACCURACY_THRESHOLD, 80.0)
        self.assertEqual(settings.FOCUS_TOPIC_LIMIT, 5)
        self.assertFalse(settings.OUTCOME_BUFFER_ENABLED)

    def test_thresholds_follow_settings(self):
        settings = Settings(
            _env_file=None,
            WEAKNESS_WINDOW_SIZE=5,
            WEAKNESS_ACCURACY_THRESHOLD=50.0,
            FOCUS_TOPIC_LIMIT=3,
            OUTCOME_BUFFER_ENABLED=True,
        )
        thresholds = AnalyticsThresholds.from_settings(settings)

        self.assertEqual(thresholds.window_size, 5)
        self.assertEqual(thresholds.weakness_threshold, 50.0)
        self.assertEqual(thresholds.focus_topic_limit, 3)
        self.assertTrue(thresholds.use_outcome_buffer)

    def test_window_must_hold_an_answer(self):
        with self.assertRaises(SettingsValidationError):
            Settings(_env_file=None, WEAKNESS_WINDOW_SIZE=0)

    def test_weakness_cutoff_cannot_exceed_strength_cutoff(self):
        with self.assertRaises(SettingsValidationError):
            Settings(_env_file=None, WEAKNESS_ACCURACY_THRESHOLD=90.0, STRENGTH_ACCURACY_THRESHOLD=80.0)


if __name__ == "__main__":
    unittest.main()

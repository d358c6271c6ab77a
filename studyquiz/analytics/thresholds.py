"""Tunable analytics thresholds, decoupled from the global settings object."""

from dataclasses import dataclass

from studyquiz.config import Settings


@dataclass(frozen=True)
class AnalyticsThresholds:
    """
    Numeric knobs of weakness detection, reporting bands and personalization.

    Attributes:
        window_size: Answers in the rolling window; fewer means cold start
        weakness_threshold: Accuracy (percent) below which a topic is weak
        strength_threshold: Lifetime accuracy (percent) from which a topic is a strength
        history_limit: Past submissions scanned when rebuilding a window
        focus_topic_limit: Maximum topics handed to the question generator
        use_outcome_buffer: Push onto the stored buffer instead of rescanning history when it is safe
    """
    window_size: int = 10
    weakness_threshold: float = 60.0
    strength_threshold: float = 80.0
    history_limit: int = 50
    focus_topic_limit: int = 5
    use_outcome_buffer: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> 'AnalyticsThresholds':
        return cls(
            window_size=settings.WEAKNESS_WINDOW_SIZE,
            weakness_threshold=settings.WEAKNESS_ACCURACY_THRESHOLD,
            strength_threshold=settings.STRENGTH_ACCURACY_THRESHOLD,
            history_limit=settings.HISTORY_SUBMISSION_LIMIT,
            focus_topic_limit=settings.FOCUS_TOPIC_LIMIT,
            use_outcome_buffer=settings.OUTCOME_BUFFER_ENABLED,
        )

"""
Personalization Selector

Reads the weakness flags and hands the weakest topics to the external
question generator. The result is soft guidance: the generator decides how
many questions actually target those topics.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from studyquiz.analytics.models import PerformanceBand, TopicPerformance
from studyquiz.analytics.store import AnalyticsStore
from studyquiz.analytics.thresholds import AnalyticsThresholds
from studyquiz.common.logger import app_logger

logger = app_logger.getChild("analytics.personalization")

# Share of generated questions the generator is asked to spend on focus topics
FOCUS_SHARE_RANGE: Tuple[float, float] = (0.6, 0.7)


def classify_accuracy(accuracy: float, thresholds: Optional[AnalyticsThresholds] = None) -> PerformanceBand:
    """Place a lifetime accuracy into its reporting band."""
    thresholds = thresholds or AnalyticsThresholds()
    if accuracy < thresholds.weakness_threshold:
        return PerformanceBand.WEAKNESS
    if accuracy < thresholds.strength_threshold:
        return PerformanceBand.IMPROVING
    return PerformanceBand.STRENGTH


def split_into_bands(
    aggregates: Sequence[TopicPerformance],
    thresholds: Optional[AnalyticsThresholds] = None
) -> Dict[PerformanceBand, List[TopicPerformance]]:
    """
    Group aggregates by lifetime-accuracy band, keeping their input order.

    Banding looks at lifetime accuracy only; the rolling weakness flag is a
    separate signal and may disagree with it.
    """
    bands: Dict[PerformanceBand, List[TopicPerformance]] = {band: [] for band in PerformanceBand}
    for aggregate in aggregates:
        bands[classify_accuracy(aggregate.accuracy_percentage, thresholds)].append(aggregate)
    return bands


@dataclass(frozen=True)
class GenerationBias:
    """
    Topic guidance passed to the question generator.

    Attributes:
        focus_topics: Weak topics, weakest first
        share_range: Suggested fraction of questions on focus topics
    """
    focus_topics: Tuple[str, ...] = ()
    share_range: Tuple[float, float] = field(default=FOCUS_SHARE_RANGE)

    @property
    def is_empty(self) -> bool:
        return not self.focus_topics

    def to_dict(self) -> Dict[str, Any]:
        min_share, max_share = (0.0, 0.0) if self.is_empty else self.share_range
        return {
            "focus_topics": list(self.focus_topics),
            "min_share": min_share,
            "max_share": max_share,
        }


class QuestionGenerator(Protocol):
    """Interface of the external question generator."""

    async def generate(
        self,
        study_material: str,
        length: int,
        difficulty: str,
        question_types: Sequence[str],
        bias: GenerationBias
    ) -> List[Dict[str, Any]]:
        """Return question dicts in the shape accepted by quiz submission."""
        ...


class PersonalizationSelector:
    """Selects the topics future quizzes should emphasize."""

    def __init__(self, store: AnalyticsStore, thresholds: Optional[AnalyticsThresholds] = None):
        self.store = store
        self.thresholds = thresholds or AnalyticsThresholds()

    async def select_focus_topics(self, learner_id: str, focus_on_weaknesses: bool) -> List[str]:
        """
        Pick the learner's weakest flagged topics.

        Args:
            learner_id: Learner identifier
            focus_on_weaknesses: Whether the learner asked for a focused quiz

        Returns:
            Up to focus_topic_limit topic labels, lowest accuracy first;
            empty when focus is off or nothing is flagged
        """
        if not focus_on_weaknesses:
            return []

        weaknesses = await self.store.query_weaknesses(learner_id)
        topics = [aggregate.topic for aggregate in weaknesses[:self.thresholds.focus_topic_limit]]
        logger.debug(f"Focus topics for {learner_id}: {topics}")
        return topics

    async def generation_bias(self, learner_id: str, focus_on_weaknesses: bool) -> GenerationBias:
        topics = await self.select_focus_topics(learner_id, focus_on_weaknesses)
        return GenerationBias(focus_topics=tuple(topics))

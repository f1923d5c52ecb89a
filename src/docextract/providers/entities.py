"""Entity-frequency heuristic for document classification.

The most frequent named-entity type in a document's text is taken as a
cheap classification signal. The dominant language and overall sentiment
of the same sample are reported alongside. Entity detection providers
accept a limited request size, so text is cut to a UTF-8 byte budget
before it is sent.
"""

import logging
from collections.abc import Iterable
from typing import Optional

from docextract.config import settings
from docextract.models import (
    ClassificationResult,
    ClassificationSource,
    DetectedEntity,
    EntityProfile,
    EntityTypeScore,
    SentimentResult,
)
from docextract.providers.base import EntityDetector, LanguageDetector, SentimentDetector

logger = logging.getLogger(__name__)

UNKNOWN_ENTITY_TYPE = "UNKNOWN"


def truncate_utf8(text: str, max_bytes: Optional[int] = None) -> str:
    """Longest prefix of ``text`` whose UTF-8 encoding fits in ``max_bytes``.

    Never splits a multi-byte character.
    """
    if max_bytes is None:
        max_bytes = settings.entity_sample_max_bytes
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def build_entity_profile(entities: Iterable[DetectedEntity]) -> EntityProfile:
    """Count entities per type and average their scores.

    Args:
        entities: Entities in detection order.

    Returns:
        EntityProfile with classes sorted by count, highest first. Ties
        keep first-seen order. The dominant type is the first class, or
        ``UNKNOWN`` when there are no entities.
    """
    counts: dict[str, int] = {}
    totals: dict[str, float] = {}

    for entity in entities:
        entity_type = entity.type or UNKNOWN_ENTITY_TYPE
        counts[entity_type] = counts.get(entity_type, 0) + 1
        totals[entity_type] = totals.get(entity_type, 0.0) + entity.score

    classes = [
        EntityTypeScore(name=name, count=count, score=min(1.0, totals[name] / count))
        for name, count in counts.items()
    ]
    classes.sort(key=lambda c: c.count, reverse=True)

    dominant = classes[0].name if classes else UNKNOWN_ENTITY_TYPE
    return EntityProfile(dominant=dominant, classes=classes)


def classification_from_profile(profile: EntityProfile) -> ClassificationResult:
    """Classification for the dominant entity type of a profile."""
    return ClassificationResult(
        type=profile.dominant,
        sub_type="",
        confidence=profile.dominant_score,
        source=ClassificationSource.AWS_COMPREHEND,
    )


class EntityProfileClassifier:
    """Heuristic classifier backed by an entity detection provider.

    Optional language and sentiment providers are called on the same text
    sample. A failed language detection fails the whole profile; a failed
    sentiment detection is logged and reported as neutral.
    """

    def __init__(
        self,
        detector: EntityDetector,
        max_bytes: Optional[int] = None,
        language_detector: Optional[LanguageDetector] = None,
        sentiment_detector: Optional[SentimentDetector] = None,
    ):
        """Initialize heuristic classifier.

        Args:
            detector: Entity detection provider.
            max_bytes: UTF-8 byte budget for the text sample.
            language_detector: Dominant language provider.
            sentiment_detector: Sentiment provider.
        """
        self.detector = detector
        self.max_bytes = max_bytes if max_bytes is not None else settings.entity_sample_max_bytes
        self.language_detector = language_detector
        self.sentiment_detector = sentiment_detector

    async def profile(self, text: str) -> EntityProfile:
        """Detect entities in a sample of ``text`` and profile them."""
        sample = truncate_utf8(text, self.max_bytes)
        language_code = await self._detect_language(sample)
        entities = await self.detector.detect_entities(sample)
        sentiment = await self._detect_sentiment(
            sample, language_code or settings.default_language_code
        )

        profile = build_entity_profile(entities).model_copy(
            update={"language_code": language_code, "sentiment": sentiment}
        )
        logger.info(
            "Entity profile: dominant=%s over %d types, language=%s",
            profile.dominant,
            len(profile.classes),
            language_code,
        )
        return profile

    async def _detect_language(self, sample: str) -> Optional[str]:
        if self.language_detector is None:
            return None
        detected = await self.language_detector.detect_dominant_language(sample)
        return detected or settings.default_language_code

    async def _detect_sentiment(self, sample: str, language_code: str) -> Optional[SentimentResult]:
        if self.sentiment_detector is None:
            return None
        try:
            return await self.sentiment_detector.detect_sentiment(sample, language_code)
        except Exception as e:
            logger.warning("Sentiment detection failed, reporting neutral: %s", e)
            return SentimentResult()

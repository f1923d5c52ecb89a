"""Schema Matching Stage - Select extracted fields for configured elements.

Each configured element is matched independently against the full field
list:

- pattern elements: case-insensitive regex searched in label or value
- named elements: label contains name, name contains label, or the
  lowercased edit distance is within ``max_distance`` (3 by default)

All matches are kept, sorted by confidence (highest first), copied and
stamped with the element's type and category. The matcher never creates
fields; a field matched by two elements appears twice.
"""

import logging
import re
from collections.abc import Iterable, Sequence
from typing import Optional

from rapidfuzz.distance import Levenshtein

from docextract.config import settings
from docextract.models import ConfiguredElement, ExtractedField

logger = logging.getLogger(__name__)


def levenshtein_distance(a: str, b: str) -> int:
    """Unit-cost edit distance (insert, delete, substitute) between two strings."""
    return Levenshtein.distance(a, b)


class SchemaMatcher:
    """Matches configured elements against extracted fields."""

    def __init__(
        self,
        max_distance: Optional[int] = None,
        default_type: Optional[str] = None,
        default_category: Optional[str] = None,
    ):
        """Initialize schema matcher.

        Args:
            max_distance: Largest edit distance accepted as a fuzzy match.
            default_type: elementType stamped when an element has no type.
            default_category: category stamped when an element has none.
        """
        self.max_distance = (
            max_distance if max_distance is not None else settings.fuzzy_max_distance
        )
        self.default_type = default_type or settings.default_element_type
        self.default_category = default_category or settings.default_element_category

    def match(
        self,
        elements: Optional[Sequence[ConfiguredElement]],
        fields: Sequence[ExtractedField],
    ) -> list[ExtractedField]:
        """Match every element and concatenate the annotated results.

        Args:
            elements: Configured elements, in schema order.
            fields: All fields from the field extractor.

        Returns:
            Annotated matches in element order, or ``fields`` unchanged when
            no elements are configured.
        """
        if not elements:
            return list(fields)

        matched: list[ExtractedField] = []
        for element in elements:
            hits = self.match_element(element, fields)
            logger.debug(
                "Element %r matched %d fields",
                element.pattern or element.name,
                len(hits),
            )
            matched.extend(self._annotate(element, hits))
        return matched

    def match_element(
        self,
        element: ConfiguredElement,
        fields: Iterable[ExtractedField],
    ) -> list[ExtractedField]:
        """Fields matching one element, highest confidence first (unannotated)."""
        if element.is_pattern:
            hits = self._match_pattern(element.pattern, fields)
        elif element.names:
            hits = self._match_names(element.names, fields)
        else:
            return []
        return sorted(hits, key=lambda f: f.confidence, reverse=True)

    def is_fuzzy_match(self, label: str, name: str) -> bool:
        """Containment either way, or edit distance within ``max_distance``."""
        label = label.lower()
        name = name.lower()
        return (
            name in label
            or label in name
            or levenshtein_distance(label, name) <= self.max_distance
        )

    def _match_pattern(
        self, pattern: str, fields: Iterable[ExtractedField]
    ) -> list[ExtractedField]:
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            logger.warning("Skipping invalid element pattern %r: %s", pattern, e)
            return []
        return [f for f in fields if regex.search(f.label) or regex.search(f.value)]

    def _match_names(
        self, names: list[str], fields: Iterable[ExtractedField]
    ) -> list[ExtractedField]:
        return [
            f for f in fields if any(self.is_fuzzy_match(f.label, name) for name in names)
        ]

    def _annotate(
        self, element: ConfiguredElement, hits: list[ExtractedField]
    ) -> list[ExtractedField]:
        update = {
            "element_type": element.element_type or self.default_type,
            "category": element.category or self.default_category,
        }
        return [hit.model_copy(update=update, deep=True) for hit in hits]


def match_configured_fields(
    elements: Optional[Sequence[ConfiguredElement]],
    fields: Sequence[ExtractedField],
) -> list[ExtractedField]:
    """Match configured elements against fields with default settings."""
    return SchemaMatcher().match(elements, fields)


def missing_required(
    elements: Sequence[ConfiguredElement],
    fields: Sequence[ExtractedField],
    matcher: Optional[SchemaMatcher] = None,
) -> list[str]:
    """Names of required elements that match none of ``fields``."""
    matcher = matcher or SchemaMatcher()
    missing = []
    for element in elements:
        if element.required and not matcher.match_element(element, fields):
            missing.append(element.name or element.pattern or element.id or "")
    return missing

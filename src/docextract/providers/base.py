"""Provider interfaces consumed by the classification orchestrator.

Transports (HTTP clients, SDK sessions) live outside this package; any
object with the matching async methods can be plugged in. Providers
signal failure by raising; timeouts are their own concern and surface
as exceptions like any other failure.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from docextract.models import (
    DetectedEntity,
    DocumentExtraction,
    DocumentTypeOption,
    SentimentResult,
    StageClassification,
    TfnDetection,
)


@runtime_checkable
class TextExtractor(Protocol):
    """OCR provider: reads a document and returns its text and fields."""

    async def extract(self, document: Any) -> DocumentExtraction:
        ...


@runtime_checkable
class EntityDetector(Protocol):
    """Named-entity provider used by the heuristic classifier."""

    async def detect_entities(self, text: str) -> list[DetectedEntity]:
        ...


@runtime_checkable
class LanguageDetector(Protocol):
    """Reports the dominant language of a text as a language code."""

    async def detect_dominant_language(self, text: str) -> Optional[str]:
        ...


@runtime_checkable
class SentimentDetector(Protocol):
    """Reports the overall sentiment of a text."""

    async def detect_sentiment(self, text: str, language_code: str) -> SentimentResult:
        ...


@runtime_checkable
class DocumentClassifier(Protocol):
    """Classifies text into a caller-supplied type/sub-type taxonomy."""

    async def classify(
        self,
        text: str,
        taxonomy: list[DocumentTypeOption],
        file_name: Optional[str] = None,
    ) -> StageClassification:
        ...


@runtime_checkable
class SensitiveScanner(Protocol):
    """Side-channel scan for sensitive identifiers in text."""

    async def scan(self, text: str) -> TfnDetection:
        ...


@runtime_checkable
class ChatClient(Protocol):
    """Chat-completion transport for an LLM provider."""

    async def complete(
        self,
        system: str,
        user: str,
        model: str,
        temperature: float,
        json_response: bool = False,
    ) -> str:
        ...

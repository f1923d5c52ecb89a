"""Provider interfaces and provider-side logic.

Interfaces (base):
- TextExtractor, EntityDetector, LanguageDetector, SentimentDetector,
  DocumentClassifier, SensitiveScanner, ChatClient

Logic on either side of a provider call:
- entities: entity-frequency profile with language and sentiment,
  byte-bounded text sample
- llm: classification and TFN prompts and reply parsing

Local providers (no network):
- BlockTextExtractor, RegexTfnScanner
"""

from .base import (
    ChatClient,
    DocumentClassifier,
    EntityDetector,
    LanguageDetector,
    SensitiveScanner,
    SentimentDetector,
    TextExtractor,
)
from .entities import (
    EntityProfileClassifier,
    build_entity_profile,
    classification_from_profile,
    truncate_utf8,
)
from .llm import (
    LlmDocumentClassifier,
    LlmTfnScanner,
    build_classification_prompt,
    build_tfn_prompt,
    parse_classification_response,
    parse_tfn_response,
)
from .local import (
    BlockTextExtractor,
    RegexTfnScanner,
    find_tfns,
    is_valid_tfn,
    load_blocks,
)

__all__ = [
    # Interfaces
    "ChatClient",
    "DocumentClassifier",
    "EntityDetector",
    "LanguageDetector",
    "SensitiveScanner",
    "SentimentDetector",
    "TextExtractor",
    # Entity heuristic
    "EntityProfileClassifier",
    "build_entity_profile",
    "classification_from_profile",
    "truncate_utf8",
    # LLM
    "LlmDocumentClassifier",
    "LlmTfnScanner",
    "build_classification_prompt",
    "build_tfn_prompt",
    "parse_classification_response",
    "parse_tfn_response",
    # Local
    "BlockTextExtractor",
    "RegexTfnScanner",
    "find_tfns",
    "is_valid_tfn",
    "load_blocks",
]

"""Pipeline stages for document field extraction and classification.

Deterministic Stages (No external calls):
1. stage_graph - Block id index and relationship resolution
2. stage_types - Data type inference for field values
3. stage_extract - Key/value field extraction
4. stage_match - Schema matching against configured elements
5. stage_cards - Card number detection and the blocks showing it
6. stage_redact - Redaction rectangles for selected fields and cards

Provider-backed Stage:
7. stage_classify - Text extraction, heuristic and LLM classification,
   TFN scan

Each stage is independent and can be run separately or
orchestrated through ClassificationOrchestrator.
"""

from .stage_graph import BlockGraph
from .stage_types import DATA_TYPE_RULES, infer_data_type
from .stage_match import SchemaMatcher, levenshtein_distance, match_configured_fields, missing_required
from .stage_extract import (
    FieldExtractor,
    average_confidence,
    extract_all_fields,
    extract_document,
    extract_text,
)
from .stage_cards import card_groups, detect_card_numbers, find_card_numbers, mask_card_number
from .stage_redact import card_regions, field_regions, redaction_regions
from .stage_classify import (
    AnalysisRegistry,
    AnalysisTicket,
    ClassificationOrchestrator,
    Stage,
    StageOutcome,
    merge_stage,
    resolve_classification,
)

__all__ = [
    # Block graph
    "BlockGraph",
    # Data types
    "DATA_TYPE_RULES",
    "infer_data_type",
    # Schema matching
    "SchemaMatcher",
    "levenshtein_distance",
    "match_configured_fields",
    "missing_required",
    # Field extraction
    "FieldExtractor",
    "average_confidence",
    "extract_all_fields",
    "extract_document",
    "extract_text",
    # Card numbers
    "card_groups",
    "detect_card_numbers",
    "find_card_numbers",
    "mask_card_number",
    # Redaction
    "card_regions",
    "field_regions",
    "redaction_regions",
    # Classification
    "AnalysisRegistry",
    "AnalysisTicket",
    "ClassificationOrchestrator",
    "Stage",
    "StageOutcome",
    "merge_stage",
    "resolve_classification",
]

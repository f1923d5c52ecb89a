"""IR models for the document field extraction pipeline.

This module defines the Pydantic models that flow through the pipeline
stages. Provider input (OCR blocks) validates from the provider's
PascalCase JSON; pipeline output serializes with camelCase names via
``to_json_dict()``.

Model Hierarchy:
- Block → Relationship / Geometry → BoundingBox, Point
- ExtractedField → WordBlock
- ConfiguredElement (caller schema)
- CardMatch → CardBlock
- AnalysisResults → TextExtraction, ClassificationResult, SentimentResult, TfnDetection
"""

from .base import (
    BlockType,
    BoundingBox,
    DataType,
    EntityType,
    Geometry,
    PipelineModel,
    Point,
    ProviderModel,
    RelationshipType,
)
from .block import (
    Block,
    Relationship,
    WordBlock,
)
from .classification import (
    AnalysisFlags,
    AnalysisResults,
    AnalysisState,
    ClassificationResult,
    ClassificationSource,
    DetectedEntity,
    DocumentTypeOption,
    EntityProfile,
    EntityTypeScore,
    SentimentResult,
    StageClassification,
    SubTypeOption,
    TextExtraction,
    TfnDetection,
)
from .field import (
    CardBlock,
    CardMatch,
    ConfiguredElement,
    DocumentExtraction,
    ExtractedField,
    RedactionRegion,
)

__all__ = [
    # Base types
    "BlockType",
    "BoundingBox",
    "DataType",
    "EntityType",
    "Geometry",
    "PipelineModel",
    "Point",
    "ProviderModel",
    "RelationshipType",
    # Block
    "Block",
    "Relationship",
    "WordBlock",
    # Field
    "CardBlock",
    "CardMatch",
    "ConfiguredElement",
    "DocumentExtraction",
    "ExtractedField",
    "RedactionRegion",
    # Classification
    "AnalysisFlags",
    "AnalysisResults",
    "AnalysisState",
    "ClassificationResult",
    "ClassificationSource",
    "DetectedEntity",
    "DocumentTypeOption",
    "EntityProfile",
    "EntityTypeScore",
    "SentimentResult",
    "StageClassification",
    "SubTypeOption",
    "TextExtraction",
    "TfnDetection",
]

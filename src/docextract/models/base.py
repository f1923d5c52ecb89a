"""Base models and common types for the document field extraction pipeline."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel, to_pascal


class BlockType(str, Enum):
    """Types of blocks emitted by the OCR provider."""

    PAGE = "PAGE"
    LINE = "LINE"
    WORD = "WORD"
    KEY_VALUE_SET = "KEY_VALUE_SET"
    SELECTION_ELEMENT = "SELECTION_ELEMENT"
    TABLE = "TABLE"
    CELL = "CELL"
    MERGED_CELL = "MERGED_CELL"
    TITLE = "TITLE"
    SIGNATURE = "SIGNATURE"
    QUERY = "QUERY"
    QUERY_RESULT = "QUERY_RESULT"


class EntityType(str, Enum):
    """Which half of a form field a KEY_VALUE_SET block represents."""

    KEY = "KEY"
    VALUE = "VALUE"


class RelationshipType(str, Enum):
    """Edge types between blocks."""

    CHILD = "CHILD"
    VALUE = "VALUE"
    COMPLEX_FEATURES = "COMPLEX_FEATURES"
    MERGED_CELL = "MERGED_CELL"
    TITLE = "TITLE"
    ANSWER = "ANSWER"


class DataType(str, Enum):
    """Semantic type inferred for an extracted field value."""

    EMAIL = "Email"
    PHONE = "Phone"
    SSN = "SSN"
    CREDIT_CARD = "CreditCard"
    CURRENCY = "Currency"
    DATE = "Date"
    ADDRESS = "Address"
    NAME = "Name"
    NUMBER = "Number"
    TEXT = "Text"


class ProviderModel(BaseModel):
    """Base class for models parsed from OCR provider output (PascalCase keys)."""

    class Config:
        alias_generator = to_pascal
        populate_by_name = True
        frozen = True


class PipelineModel(BaseModel):
    """Base class for pipeline output models (camelCase keys on the wire)."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_json_dict(self) -> dict:
        """Serialize with wire field names, dropping nothing."""
        return self.model_dump(mode="json", by_alias=True)


class BoundingBox(ProviderModel):
    """Axis-aligned box in coordinates normalised to the page (0-1)."""

    left: float = Field(..., description="Left edge as a ratio of page width")
    top: float = Field(..., description="Top edge as a ratio of page height")
    width: float = Field(..., description="Box width as a ratio of page width")
    height: float = Field(..., description="Box height as a ratio of page height")

    @property
    def right(self) -> float:
        """Right edge coordinate."""
        return self.left + self.width

    @property
    def bottom(self) -> float:
        """Bottom edge coordinate."""
        return self.top + self.height


class Point(ProviderModel):
    """Polygon vertex, normalised to the page."""

    x: float
    y: float


class Geometry(ProviderModel):
    """Location of a block on its page."""

    bounding_box: Optional[BoundingBox] = None
    polygon: Optional[list[Point]] = None

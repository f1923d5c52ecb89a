"""Field-level models: extracted key/value fields and schema elements."""

from typing import Optional

from pydantic import Field

from .base import BoundingBox, DataType, PipelineModel
from .block import WordBlock


class ExtractedField(PipelineModel):
    """
    Key/value form field resolved from the block graph.

    Identity is ``id``, the id of the source KEY block. ``element_type`` and
    ``category`` are only set once the field has been matched against a
    configured element.
    """

    id: str = Field(..., description="Id of the source KEY block")
    label: str = Field(..., min_length=1, description="Text of the KEY block")
    value: str = Field(..., min_length=1, description="Text of the VALUE block")
    confidence: float = Field(default=0.0, description="KEY block confidence (0-100)")
    data_type: DataType = Field(default=DataType.TEXT)

    # Geometry for redaction
    bounding_box: Optional[BoundingBox] = Field(None, description="VALUE block box")
    key_bounding_box: Optional[BoundingBox] = Field(None, description="KEY block box")
    value_word_blocks: list[WordBlock] = Field(default_factory=list)
    page: int = Field(default=1, ge=1)

    # Set by the schema matcher
    element_type: Optional[str] = None
    category: Optional[str] = None


class ConfiguredElement(PipelineModel):
    """
    Expected element supplied by the caller's document schema.

    An element with a ``pattern`` is matched by regex against field labels
    and values; otherwise ``name`` (and any ``aliases``) are fuzzy-matched
    against field labels.
    """

    pattern: Optional[str] = Field(None, description="Case-insensitive regex")
    name: Optional[str] = None
    element_type: Optional[str] = Field(None, alias="type")
    category: Optional[str] = None

    # Descriptive attributes carried through from the configuration store
    id: Optional[str] = None
    description: Optional[str] = None
    required: bool = False
    action: Optional[str] = Field(
        None, description="Extract, Redact, ExtractAndRedact or Ignore"
    )
    aliases: list[str] = Field(default_factory=list)

    @property
    def is_pattern(self) -> bool:
        """True if the element matches by regex."""
        return bool(self.pattern)

    @property
    def names(self) -> list[str]:
        """Non-blank name followed by its non-blank aliases.

        Aliases only widen a named element; an element without a usable
        name has no names at all.
        """
        if not self.name or not self.name.strip():
            return []
        return [self.name, *(a for a in self.aliases if a and a.strip())]


class DocumentExtraction(PipelineModel):
    """Text, confidence and fields extracted from one document."""

    text: str = ""
    confidence: int = Field(default=0, description="Rounded mean block confidence")
    fields: list[ExtractedField] = Field(
        default_factory=list, description="Matched fields, or all fields when unconfigured"
    )
    all_fields: list[ExtractedField] = Field(default_factory=list)


class RedactionRegion(PipelineModel):
    """Pixel rectangle to black out on a rendered page (top-left origin)."""

    field_id: str = Field(..., description="Id of the field or card block covered")
    page: int = Field(default=1, ge=1)
    x: float
    y: float
    width: float
    height: float


class CardBlock(PipelineModel):
    """OCR block covering part of a detected card number."""

    id: str
    text: str = ""
    bounding_box: Optional[BoundingBox] = None
    page: int = Field(default=1, ge=1)
    last_four_only: bool = Field(
        default=False, description="Shows only the last four digits and may stay visible"
    )


class CardMatch(PipelineModel):
    """Payment card number found in a document's text."""

    original: str = Field(..., description="Number as it appears in the text")
    digits: str
    groups: list[str] = Field(default_factory=list)
    last_four: str
    masked: str = Field(..., description="Masked form, e.g. **** **** **** 1234")
    blocks: list[CardBlock] = Field(default_factory=list)

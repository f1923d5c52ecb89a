"""Block-level models for OCR provider output."""

from typing import Optional, Union

from pydantic import Field

from .base import (
    BlockType,
    BoundingBox,
    EntityType,
    Geometry,
    PipelineModel,
    Point,
    ProviderModel,
    RelationshipType,
)


class Relationship(ProviderModel):
    """Ordered edge list from one block to others of a given type."""

    type: Union[RelationshipType, str] = Field(..., union_mode="left_to_right")
    ids: list[str] = Field(default_factory=list)


class Block(ProviderModel):
    """
    Atomic recognised unit from the OCR provider.

    Validates straight from a Textract ``Blocks[]`` element. Blocks are
    frozen: the pipeline only indexes them by ``id``. Block types the
    enum does not know are kept as plain strings.
    """

    id: str
    block_type: Union[BlockType, str] = Field(..., union_mode="left_to_right")
    text: Optional[str] = None
    entity_types: list[str] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    geometry: Optional[Geometry] = None
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    page: int = Field(default=1, ge=1)

    @property
    def is_key(self) -> bool:
        """True for the KEY half of a form field."""
        return (
            self.block_type == BlockType.KEY_VALUE_SET
            and EntityType.KEY.value in self.entity_types
        )

    @property
    def is_value(self) -> bool:
        """True for the VALUE half of a form field."""
        return (
            self.block_type == BlockType.KEY_VALUE_SET
            and EntityType.VALUE.value in self.entity_types
        )

    @property
    def bounding_box(self) -> Optional[BoundingBox]:
        """Bounding box if the block carries geometry."""
        return self.geometry.bounding_box if self.geometry else None

    @property
    def polygon(self) -> Optional[list[Point]]:
        """Polygon if the block carries geometry."""
        return self.geometry.polygon if self.geometry else None

    def related_ids(self, relation_type: Union[RelationshipType, str]) -> list[str]:
        """Target ids of every relationship of ``relation_type``, in order."""
        ids: list[str] = []
        for relationship in self.relationships:
            if relationship.type == relation_type:
                ids.extend(relationship.ids)
        return ids


class WordBlock(PipelineModel):
    """Projection of a WORD block used for word-precise redaction."""

    id: str
    text: str = ""
    bounding_box: Optional[BoundingBox] = None
    polygon: Optional[list[Point]] = None
    confidence: float = 0.0

    @classmethod
    def from_block(cls, block: Block) -> "WordBlock":
        """Project a WORD block."""
        return cls(
            id=block.id,
            text=block.text or "",
            bounding_box=block.bounding_box,
            polygon=block.polygon,
            confidence=block.confidence,
        )

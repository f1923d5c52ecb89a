"""Field Extraction Stage - Turn form key/value blocks into fields.

For every KEY block with text, the first resolvable VALUE block with text
becomes one ExtractedField carrying the KEY confidence, both bounding
boxes, the VALUE's WORD blocks (for word-precise redaction) and an
inferred data type.

Fields are accumulated by label: when two KEY blocks carry the same text,
the later one replaces the earlier.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Optional, Union

from docextract.errors import EmptyExtractionError
from docextract.models import (
    Block,
    ConfiguredElement,
    DataType,
    DocumentExtraction,
    ExtractedField,
    WordBlock,
)
from docextract.pipeline.stage_graph import BlockGraph
from docextract.pipeline.stage_match import match_configured_fields
from docextract.pipeline.stage_types import infer_data_type

logger = logging.getLogger(__name__)


def extract_text(blocks: Union[BlockGraph, Iterable[Block]]) -> str:
    """Join the text of all LINE blocks with newlines, in provider order."""
    graph = blocks if isinstance(blocks, BlockGraph) else BlockGraph(blocks)
    return "\n".join(line.text or "" for line in graph.lines())


def average_confidence(blocks: Iterable[Block]) -> int:
    """Rounded mean confidence over all blocks (0 for an empty list)."""
    confidences = [block.confidence for block in blocks]
    if not confidences:
        return 0
    return round(sum(confidences) / len(confidences))


class FieldExtractor:
    """Extracts key/value fields from an OCR block graph."""

    def __init__(
        self,
        type_inferencer: Optional[Callable[[str], DataType]] = None,
    ):
        """Initialize field extractor.

        Args:
            type_inferencer: Value -> DataType function (rule cascade by default).
        """
        self.type_inferencer = type_inferencer or infer_data_type

    def extract(self, blocks: Union[BlockGraph, Iterable[Block]]) -> list[ExtractedField]:
        """Extract every key/value field.

        Args:
            blocks: OCR blocks of one document, or an already built graph.

        Returns:
            One field per distinct KEY label, in first-seen label order.
        """
        graph = blocks if isinstance(blocks, BlockGraph) else BlockGraph(blocks)
        fields_by_label: dict[str, ExtractedField] = {}

        for key_block in graph.key_blocks:
            extracted = self._extract_field(graph, key_block)
            if extracted is None:
                continue
            if extracted.label in fields_by_label:
                logger.debug(
                    "Label %r from key %s replaces key %s",
                    extracted.label,
                    extracted.id,
                    fields_by_label[extracted.label].id,
                )
            fields_by_label[extracted.label] = extracted

        logger.info(
            "Extracted %d fields from %d key blocks",
            len(fields_by_label),
            len(graph.key_blocks),
        )
        return list(fields_by_label.values())

    def _extract_field(self, graph: BlockGraph, key_block: Block) -> Optional[ExtractedField]:
        """Build the field for one KEY block, or None if it has no usable value."""
        key_text = graph.text_of(key_block)
        if not key_text:
            return None

        value_block = graph.value_block_of(key_block)
        if value_block is None:
            return None

        value_text = graph.text_of(value_block)
        if not value_text:
            return None

        word_blocks = [WordBlock.from_block(word) for word in graph.words_of(value_block)]

        return ExtractedField(
            id=key_block.id,
            label=key_text,
            value=value_text,
            confidence=key_block.confidence,
            data_type=self.type_inferencer(value_text),
            bounding_box=value_block.bounding_box,
            key_bounding_box=key_block.bounding_box,
            value_word_blocks=word_blocks,
            page=value_block.page,
        )


def extract_all_fields(blocks: Iterable[Block]) -> list[ExtractedField]:
    """Extract every key/value field with the default rule cascade."""
    return FieldExtractor().extract(blocks)


def extract_document(
    blocks: Iterable[Block],
    elements: Optional[list[ConfiguredElement]] = None,
    require_fields: bool = False,
) -> DocumentExtraction:
    """Run text and field extraction, then schema matching if configured.

    Args:
        blocks: OCR blocks of one document.
        elements: Expected elements; all fields are returned when empty.
        require_fields: Raise if KEY blocks exist but no field resolves.

    Returns:
        DocumentExtraction for the document.

    Raises:
        EmptyExtractionError: Fields were required and none resolved.
    """
    graph = BlockGraph(blocks)
    all_fields = FieldExtractor().extract(graph)

    if require_fields and graph.key_blocks and not all_fields:
        raise EmptyExtractionError(len(graph.key_blocks))

    if elements:
        logger.info("Matching %d configured elements", len(elements))
        fields = match_configured_fields(elements, all_fields)
    else:
        fields = all_fields

    return DocumentExtraction(
        text=extract_text(graph),
        confidence=average_confidence(graph.blocks),
        fields=fields,
        all_fields=all_fields,
    )

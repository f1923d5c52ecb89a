"""Redaction Stage - Map selected fields and card numbers to pixel rectangles.

Word boxes of the field value are preferred so only the value text is
covered; each is grown by ``padding`` pixels on every side. Edges pushed
past the page origin are clamped to it and the far edges stay put. A
field whose value has no word boxes falls back to the value bounding box
as is. Card numbers are covered block by block.

Drawing the rectangles is left to the caller.
"""

import logging
from collections.abc import Iterable
from typing import Optional

from docextract.config import settings
from docextract.models import BoundingBox, CardMatch, ExtractedField, RedactionRegion

logger = logging.getLogger(__name__)


def _region(
    source_id: str,
    page: int,
    box: BoundingBox,
    page_width: int,
    page_height: int,
    padding: int,
) -> RedactionRegion:
    left = max(0.0, box.left * page_width - padding)
    top = max(0.0, box.top * page_height - padding)
    right = box.right * page_width + padding
    bottom = box.bottom * page_height + padding
    return RedactionRegion(
        field_id=source_id,
        page=page,
        x=left,
        y=top,
        width=right - left,
        height=bottom - top,
    )


def field_regions(
    field: ExtractedField,
    page_width: int,
    page_height: int,
    padding: Optional[int] = None,
) -> list[RedactionRegion]:
    """Rectangles covering one field's value.

    Args:
        field: Extracted field.
        page_width: Rendered page width in pixels.
        page_height: Rendered page height in pixels.
        padding: Pixels added around each word box.

    Returns:
        One rectangle per word box, the value box alone, or nothing when
        the field has no geometry.
    """
    if padding is None:
        padding = settings.redaction_padding

    word_boxes = [w.bounding_box for w in field.value_word_blocks if w.bounding_box]
    if word_boxes:
        return [
            _region(field.id, field.page, box, page_width, page_height, padding)
            for box in word_boxes
        ]

    if field.bounding_box is not None:
        return [_region(field.id, field.page, field.bounding_box, page_width, page_height, 0)]

    logger.debug("Field %s (%r) has no geometry to redact", field.id, field.label)
    return []


def redaction_regions(
    fields: Iterable[ExtractedField],
    field_ids: Iterable[str],
    page_width: int,
    page_height: int,
    padding: Optional[int] = None,
) -> list[RedactionRegion]:
    """Rectangles covering every selected field.

    Args:
        fields: Extracted fields of the document.
        field_ids: Ids of the fields to redact.
        page_width: Rendered page width in pixels.
        page_height: Rendered page height in pixels.
        padding: Pixels added around each word box.

    Returns:
        Rectangles in field order.
    """
    selected = set(field_ids)
    regions: list[RedactionRegion] = []
    for field in fields:
        if field.id in selected:
            regions.extend(field_regions(field, page_width, page_height, padding))

    logger.info("Prepared %d redaction regions for %d fields", len(regions), len(selected))
    return regions


def card_regions(
    matches: Iterable[CardMatch],
    page_width: int,
    page_height: int,
    padding: Optional[int] = None,
) -> list[RedactionRegion]:
    """Rectangles covering detected card numbers.

    Blocks showing only the last four digits are left visible. Each
    rectangle carries the id of the block it covers.
    """
    if padding is None:
        padding = settings.redaction_padding

    regions = [
        _region(block.id, block.page, block.bounding_box, page_width, page_height, padding)
        for match in matches
        for block in match.blocks
        if block.bounding_box is not None and not block.last_four_only
    ]
    logger.info("Prepared %d redaction regions for card numbers", len(regions))
    return regions

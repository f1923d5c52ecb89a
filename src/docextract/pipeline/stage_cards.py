"""Card Number Stage - Find payment card numbers and the blocks showing them.

Numbers of 15 to 19 digits, written with or without space/dash
separators, are searched for in the LINE text of the document. LINE
texts are joined with spaces so a number wrapped onto the next line is
still found. Each number is then traced back to the OCR blocks that
display it, trying in turn:

1. LINE blocks containing the whole number
2. WORD blocks containing any 8-digit run of it
3. WORD blocks containing one of its digit groups

A number that no block can be traced to is reported without blocks.
"""

import functools
import logging
import math
import re
from collections.abc import Iterable, Sequence
from typing import Union

from docextract.models import Block, CardBlock, CardMatch
from docextract.pipeline.stage_graph import BlockGraph

logger = logging.getLogger(__name__)

CARD_NUMBER_PATTERN = re.compile(r"(?<!\d)\d(?:[\s-]?\d){14,18}(?!\d)")
CHUNK_SIZE = 8
SAME_LINE_TOLERANCE = 0.01

_NON_DIGIT = re.compile(r"\D")


def digits_of(text: str) -> str:
    """Digits of ``text`` with everything else removed."""
    return _NON_DIGIT.sub("", text)


def card_groups(digits: str) -> list[str]:
    """Split a card number into its display groups.

    Sixteen digits give four groups of four. Any other length keeps the
    last four digits as the final group and splits the rest into at most
    three groups of equal size.
    """
    if len(digits) == 16:
        return [digits[i : i + 4] for i in range(0, 16, 4)]

    head, last_four = digits[:-4], digits[-4:]
    size = math.ceil(len(head) / 3)
    return [head[i : i + size] for i in range(0, len(head), size)] + [last_four]


def mask_card_number(digits: str) -> str:
    """Masked form of a card number showing only its last four digits."""
    return f"**** **** **** {digits[-4:]}"


def find_card_numbers(text: str) -> list[str]:
    """Card numbers in ``text`` as written, first occurrence of each number."""
    seen: set[str] = set()
    found: list[str] = []
    for match in CARD_NUMBER_PATTERN.finditer(text):
        digits = digits_of(match.group())
        if digits not in seen:
            seen.add(digits)
            found.append(match.group())
    return found


def _block_digits(block: Block) -> str:
    return digits_of(block.text or "")


def _covering_blocks(
    original: str,
    digits: str,
    groups: list[str],
    lines: Sequence[Block],
    words: Sequence[Block],
) -> list[Block]:
    exact = [
        line
        for line in lines
        if original in (line.text or "") or digits in _block_digits(line)
    ]
    if exact:
        return exact

    chunks = {digits[i : i + CHUNK_SIZE] for i in range(len(digits) - CHUNK_SIZE + 1)}
    by_chunk = [w for w in words if any(chunk in _block_digits(w) for chunk in chunks)]
    if by_chunk:
        logger.debug("Card ending %s located by %d-digit runs", digits[-4:], CHUNK_SIZE)
        return by_chunk

    by_group = [w for w in words if any(group in _block_digits(w) for group in groups)]
    if by_group:
        logger.debug("Card ending %s located by digit groups", digits[-4:])
    else:
        logger.warning("No block shows card ending %s", digits[-4:])
    return by_group


def _compare_reading_order(a: Block, b: Block) -> int:
    box_a, box_b = a.bounding_box, b.bounding_box
    if box_a is None or box_b is None:
        return 0
    if a.page != b.page:
        return a.page - b.page
    if abs(box_a.top - box_b.top) > SAME_LINE_TOLERANCE:
        return -1 if box_a.top < box_b.top else 1
    return (box_a.left > box_b.left) - (box_a.left < box_b.left)


def _card_block(block: Block, last_four: str, leading_groups: list[str]) -> CardBlock:
    shown = _block_digits(block)
    return CardBlock(
        id=block.id,
        text=block.text or "",
        bounding_box=block.bounding_box,
        page=block.page,
        last_four_only=last_four in shown and not any(g in shown for g in leading_groups),
    )


def _card_match(
    original: str,
    lines: Sequence[Block],
    words: Sequence[Block],
) -> CardMatch:
    digits = digits_of(original)
    groups = card_groups(digits)
    last_four = digits[-4:]

    located = _covering_blocks(original, digits, groups, lines, words)
    unique = list({block.id: block for block in located}.values())
    ordered = sorted(unique, key=functools.cmp_to_key(_compare_reading_order))

    return CardMatch(
        original=original,
        digits=digits,
        groups=groups,
        last_four=last_four,
        masked=mask_card_number(digits),
        blocks=[_card_block(block, last_four, groups[:-1]) for block in ordered],
    )


def detect_card_numbers(blocks: Union[BlockGraph, Iterable[Block]]) -> list[CardMatch]:
    """Find card numbers and the blocks that display them.

    Args:
        blocks: OCR blocks of one document, or an already built graph.

    Returns:
        One CardMatch per distinct number, in order of first appearance.
        Its blocks are unique and in reading order.
    """
    graph = blocks if isinstance(blocks, BlockGraph) else BlockGraph(blocks)
    lines = list(graph.lines())
    words = list(graph.words())

    text = " ".join(line.text or "" for line in lines)
    matches = [_card_match(original, lines, words) for original in find_card_numbers(text)]

    logger.info("Found %d card numbers among %d blocks", len(matches), len(graph))
    return matches

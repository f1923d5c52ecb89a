"""Block Graph Stage - Resolve key/value adjacency in a flat block list.

OCR providers return a flat list of blocks joined by id-valued
relationships. This stage indexes the list once and answers two
questions for the field extractor:

- what is the text directly under block X (one hop, no recursion)
- which VALUE block does KEY block X point at (first resolved wins)

Dangling relationship ids and blocks without relationships are tolerated.
Duplicate ids resolve to the last block seen.
"""

import logging
from collections.abc import Iterable, Iterator
from typing import Optional, Union

from docextract.models import Block, BlockType, RelationshipType

logger = logging.getLogger(__name__)


class BlockGraph:
    """Id index over an immutable list of OCR blocks."""

    def __init__(self, blocks: Iterable[Block]):
        """Index blocks by id.

        Args:
            blocks: OCR blocks in provider order.
        """
        self._blocks: list[Block] = list(blocks)
        self._by_id: dict[str, Block] = {}
        self._keys: dict[str, Block] = {}
        self._values: dict[str, Block] = {}

        for block in self._blocks:
            self._by_id[block.id] = block
            if block.is_key:
                self._keys[block.id] = block
            elif block.is_value:
                self._values[block.id] = block

        logger.debug(
            "Indexed %d blocks (%d keys, %d values)",
            len(self._blocks),
            len(self._keys),
            len(self._values),
        )

    def __len__(self) -> int:
        return len(self._blocks)

    @property
    def blocks(self) -> list[Block]:
        """All blocks in provider order, duplicates included."""
        return list(self._blocks)

    def get(self, block_id: str) -> Optional[Block]:
        """Look up a block by id."""
        return self._by_id.get(block_id)

    @property
    def key_blocks(self) -> list[Block]:
        """KEY blocks, one per id, in first-seen order."""
        return list(self._keys.values())

    @property
    def value_blocks(self) -> list[Block]:
        """VALUE blocks, one per id, in first-seen order."""
        return list(self._values.values())

    def lines(self) -> Iterator[Block]:
        """LINE blocks in provider order."""
        return (b for b in self._blocks if b.block_type == BlockType.LINE)

    def words(self) -> Iterator[Block]:
        """WORD blocks in provider order."""
        return (b for b in self._blocks if b.block_type == BlockType.WORD)

    def children_of(
        self,
        block: Block,
        relation_type: Union[RelationshipType, str] = RelationshipType.CHILD,
    ) -> list[Block]:
        """Directly related blocks of ``relation_type``, unresolvable ids skipped."""
        children = []
        for block_id in block.related_ids(relation_type):
            related = self.get(block_id)
            if related is not None:
                children.append(related)
        return children

    def text_of(
        self,
        block: Block,
        relation_type: Union[RelationshipType, str] = RelationshipType.CHILD,
    ) -> str:
        """Join the text of directly related blocks with single spaces.

        Args:
            block: Block whose relationships are followed.
            relation_type: Relationship type to follow (CHILD by default).

        Returns:
            Joined text, or an empty string when nothing carries text.
        """
        return " ".join(
            child.text for child in self.children_of(block, relation_type) if child.text
        )

    def words_of(self, block: Block) -> list[Block]:
        """WORD blocks among the direct children of ``block``."""
        return [
            child
            for child in self.children_of(block, RelationshipType.CHILD)
            if child.block_type == BlockType.WORD
        ]

    def value_block_of(self, key_block: Block) -> Optional[Block]:
        """Resolve the VALUE block a KEY block points at.

        Only ids present in the VALUE index count. When several resolve, the
        first in relationship order is returned.
        """
        for block_id in key_block.related_ids(RelationshipType.VALUE):
            value = self._values.get(block_id)
            if value is not None:
                return value
        return None

"""Network-free providers.

- BlockTextExtractor: text extraction over an OCR response already on hand
- RegexTfnScanner: TFN detection by pattern plus the ATO check digit
"""

import logging
import re
from typing import Any, Optional

from pydantic import ValidationError

from docextract.errors import UnreadableDocumentError
from docextract.models import Block, ConfiguredElement, DocumentExtraction, TfnDetection
from docextract.pipeline.stage_extract import extract_document

logger = logging.getLogger(__name__)

# 8 or 9 digits, optionally grouped 3-3-2/3 by spaces or dashes
TFN_CANDIDATE_PATTERN = re.compile(r"(?<!\d)(\d{3}[ -]?\d{3}[ -]?\d{2,3})(?!\d)")

TFN_WEIGHTS = {
    9: (1, 4, 3, 7, 5, 8, 6, 9, 10),
    8: (10, 7, 8, 4, 6, 3, 5, 1),
}


def load_blocks(payload: Any) -> list[Block]:
    """Parse OCR blocks from a provider response.

    Args:
        payload: A response dict with a ``Blocks`` list, a list of block
            dicts, or a list of Block instances.

    Returns:
        Parsed blocks in provider order.

    Raises:
        UnreadableDocumentError: The payload is not a block list.
    """
    if isinstance(payload, dict):
        payload = payload.get("Blocks", payload.get("blocks"))
    if not isinstance(payload, list):
        raise UnreadableDocumentError("Expected a list of OCR blocks")
    try:
        return [b if isinstance(b, Block) else Block.model_validate(b) for b in payload]
    except ValidationError as e:
        raise UnreadableDocumentError(f"Malformed OCR block: {e}") from e


def is_valid_tfn(digits: str) -> bool:
    """Check a TFN against the ATO weighted mod-11 check."""
    weights = TFN_WEIGHTS.get(len(digits))
    if weights is None or not digits.isdigit():
        return False
    total = sum(int(d) * w for d, w in zip(digits, weights))
    return total % 11 == 0


def find_tfns(text: str) -> list[str]:
    """All check-digit-valid TFNs in ``text``, digits only, in order."""
    found = []
    for match in TFN_CANDIDATE_PATTERN.finditer(text):
        digits = re.sub(r"\D", "", match.group(1))
        if is_valid_tfn(digits):
            found.append(digits)
    return found


class BlockTextExtractor:
    """TextExtractor over an OCR response the caller already holds."""

    def __init__(
        self,
        elements: Optional[list[ConfiguredElement]] = None,
        require_fields: bool = False,
    ):
        """Initialize block text extractor.

        Args:
            elements: Expected elements used to select fields.
            require_fields: Fail when KEY blocks yield no fields.
        """
        self.elements = elements
        self.require_fields = require_fields

    async def extract(self, document: Any) -> DocumentExtraction:
        """Extract text and fields from a block list or OCR response."""
        blocks = load_blocks(document)
        extraction = extract_document(blocks, self.elements, self.require_fields)
        if not extraction.text and not extraction.all_fields:
            raise UnreadableDocumentError("Document contains no text")
        return extraction


class RegexTfnScanner:
    """SensitiveScanner that finds TFNs by pattern and check digit."""

    async def scan(self, text: str) -> TfnDetection:
        """Count valid TFNs in ``text``."""
        count = len(find_tfns(text))
        logger.debug("Found %d TFN candidates passing the check digit", count)
        return TfnDetection(detected=count > 0, count=count)

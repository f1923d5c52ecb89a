"""Pytest configuration and fixtures."""

import pytest

from docextract.models import Block


def _box(left=0.1, top=0.1, width=0.2, height=0.02):
    return {"Left": left, "Top": top, "Width": width, "Height": height}


@pytest.fixture
def make_block():
    """Build a Block from Textract-shaped keyword arguments."""

    def _make(
        block_id,
        block_type,
        text=None,
        entity_types=None,
        children=None,
        values=None,
        box=None,
        confidence=90.0,
        page=1,
    ):
        payload = {
            "Id": block_id,
            "BlockType": block_type,
            "Confidence": confidence,
            "Page": page,
        }
        if text is not None:
            payload["Text"] = text
        if entity_types:
            payload["EntityTypes"] = entity_types
        relationships = []
        if children:
            relationships.append({"Type": "CHILD", "Ids": children})
        if values:
            relationships.append({"Type": "VALUE", "Ids": values})
        if relationships:
            payload["Relationships"] = relationships
        if box is not None:
            payload["Geometry"] = {"BoundingBox": _box(*box)}
        return Block.model_validate(payload)

    return _make


@pytest.fixture
def make_form(make_block):
    """Build a form from (label, value, key_confidence) triples.

    Each pair becomes a LINE, KEY/VALUE blocks and one WORD per token.
    """

    def _make(pairs, page=1):
        blocks = []
        for i, (label, value, confidence) in enumerate(pairs):
            top = 0.1 + i * 0.05
            blocks.append(make_block(f"line-{i}", "LINE", text=f"{label}: {value}", page=page))

            key_words = []
            for j, token in enumerate(label.split()):
                word_id = f"kw-{i}-{j}"
                key_words.append(word_id)
                blocks.append(make_block(word_id, "WORD", text=token, page=page))

            value_words = []
            for j, token in enumerate(value.split()):
                word_id = f"vw-{i}-{j}"
                value_words.append(word_id)
                blocks.append(
                    make_block(
                        word_id,
                        "WORD",
                        text=token,
                        box=(0.5 + j * 0.1, top, 0.08, 0.02),
                        page=page,
                    )
                )

            blocks.append(
                make_block(
                    f"key-{i}",
                    "KEY_VALUE_SET",
                    entity_types=["KEY"],
                    children=key_words,
                    values=[f"value-{i}"],
                    box=(0.1, top, 0.3, 0.02),
                    confidence=confidence,
                    page=page,
                )
            )
            blocks.append(
                make_block(
                    f"value-{i}",
                    "KEY_VALUE_SET",
                    entity_types=["VALUE"],
                    children=value_words,
                    box=(0.5, top, 0.3, 0.02),
                    page=page,
                )
            )
        return blocks

    return _make


@pytest.fixture
def identity_form(make_form):
    """Small identity form: name, date of birth and email."""
    return make_form(
        [
            ("Full Name", "John Smith", 95.0),
            ("Date of Birth", "04/12/1990", 88.0),
            ("Email", "john@example.com", 92.0),
        ]
    )


@pytest.fixture
def textract_response(identity_form):
    """Raw OCR response as it arrives on the wire."""
    return {"Blocks": [block.model_dump(mode="json", by_alias=True) for block in identity_form]}

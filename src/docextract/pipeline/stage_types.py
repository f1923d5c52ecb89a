"""Data Type Stage - Infer the semantic type of a field value.

Rules are an ordered list of (predicate, type) pairs evaluated against
the whitespace-stripped value; the first predicate that holds wins and
``Text`` is the universal fallback. Patterns must match the whole value,
so a date is never mistaken for an amount that merely starts with digits.
"""

import re
from collections.abc import Callable

from docextract.models import DataType

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

# Optional country code, optional parens around the area code, 10 digits
PHONE_PATTERN = re.compile(r"(?:\+\d{1,3}[\s.-]?)?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}")

# 9 digits, separators allowed after the 3rd and 5th digit
SSN_PATTERN = re.compile(r"\d{3}[-\s]?\d{2}[-\s]?\d{4}")

CREDIT_CARD_PATTERN = re.compile(r"\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}")

CURRENCY_PATTERN = re.compile(
    r"[$€£¥]?\s?(?:\d{1,3}(?:,\d{3})+|\d+)(?:[.,]\d{1,2})?"
)

# Day first: D/M/Y, D-M-Y or D.M.Y
DATE_PATTERN = re.compile(
    r"(0?[1-9]|[12]\d|3[01])([/.-])(0?[1-9]|1[0-2])\2(\d{4}|\d{2})"
)

STREET_SUFFIXES = (
    "St", "Street", "Rd", "Road", "Ave", "Avenue", "Blvd", "Boulevard",
    "Dr", "Drive", "Ln", "Lane", "Ct", "Court", "Pl", "Place",
    "Cres", "Crescent", "Hwy", "Highway", "Pde", "Parade",
)

# House number, 1-3 capitalised words, street suffix, then anything
ADDRESS_PATTERN = re.compile(
    r"\d+[A-Za-z]?\s+(?:[A-Z][A-Za-z']*\s+){1,3}(?:"
    + "|".join(STREET_SUFFIXES)
    + r")\b\.?(?:[\s,].*)?",
    re.DOTALL,
)

NAME_PATTERN = re.compile(r"[A-Z][a-z]+ [A-Z][a-z]+")

NUMBER_STRIP = re.compile(r"[,.\s]")


def _full(pattern: re.Pattern) -> Callable[[str], bool]:
    return lambda value: pattern.fullmatch(value) is not None


def _is_number(value: str) -> bool:
    stripped = NUMBER_STRIP.sub("", value)
    return stripped.isascii() and stripped.isdigit()


DATA_TYPE_RULES: list[tuple[Callable[[str], bool], DataType]] = [
    (_full(EMAIL_PATTERN), DataType.EMAIL),
    (_full(PHONE_PATTERN), DataType.PHONE),
    (_full(SSN_PATTERN), DataType.SSN),
    (_full(CREDIT_CARD_PATTERN), DataType.CREDIT_CARD),
    (_full(CURRENCY_PATTERN), DataType.CURRENCY),
    (_full(DATE_PATTERN), DataType.DATE),
    (_full(ADDRESS_PATTERN), DataType.ADDRESS),
    (_full(NAME_PATTERN), DataType.NAME),
    (_is_number, DataType.NUMBER),
]


def infer_data_type(value: str) -> DataType:
    """Classify a field value into one semantic type.

    Args:
        value: Raw field value. Non-strings are coerced with ``str``.

    Returns:
        The first matching DataType, or DataType.TEXT.
    """
    text = str(value).strip() if value is not None else ""
    for predicate, data_type in DATA_TYPE_RULES:
        if predicate(text):
            return data_type
    return DataType.TEXT

"""Shared helpers for rule-based field extraction."""

import re
from collections.abc import Callable, Iterable
from typing import TypeVar

from winedoc.utils.errors import ParseError
from winedoc.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Four-digit years plausible as a vintage. ASCII word boundaries so that
# a year glued to Hangul ("2019년산") still counts as a standalone year.
VINTAGE_YEAR_PATTERN = re.compile(r"\b(19[5-9]\d|20[0-3]\d)\b", re.ASCII)
MIN_VINTAGE = 1950
MAX_VINTAGE = 2039


def run_rule(field_name: str, rule: Callable[..., T | None], *args: object) -> T | None:
    """Run one field rule, degrading a ``ParseError`` to an absent field.

    Args:
        field_name: Name of the field, used in the log entry.
        rule: Extraction function for the field.
        *args: Arguments passed to ``rule``.

    Returns:
        The rule's value, or ``None`` if it raised ``ParseError``.
    """
    try:
        return rule(*args)
    except ParseError as exc:
        logger.warning("Field '%s' skipped: %s", field_name, exc)
        return None


def split_lines(text: str) -> list[str]:
    """Split text into trimmed, non-empty lines."""
    return [line.strip() for line in text.split("\n") if line.strip()]


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    """Case-insensitive substring test for any keyword."""
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def find_term(text: str, terms: Iterable[str]) -> str | None:
    """Find the first vocabulary term present in the text.

    Terms are tried in vocabulary order and matched case-insensitively;
    the text is returned with its original casing.

    Args:
        text: Text to search.
        terms: Vocabulary in priority order.

    Returns:
        The matching slice of ``text``, or ``None``.
    """
    for term in terms:
        match = re.search(re.escape(term), text, re.IGNORECASE)
        if match:
            return match.group(0)
    return None


def parse_amount(field_name: str, raw: str) -> float:
    """Parse a monetary amount, dropping thousands separators.

    Raises:
        ParseError: If ``raw`` is not a number.
    """
    cleaned = raw.replace(",", "").strip()
    try:
        return float(cleaned)
    except ValueError:
        raise ParseError(field_name, f"invalid amount {raw!r}") from None


def parse_int(field_name: str, raw: str) -> int:
    """Parse an integer field value.

    Raises:
        ParseError: If ``raw`` is not an integer.
    """
    try:
        return int(raw)
    except ValueError:
        raise ParseError(field_name, f"invalid integer {raw!r}") from None


def find_vintage_year(text: str) -> int | None:
    """Return the first standalone vintage year (1950-2039) in the text."""
    match = VINTAGE_YEAR_PATTERN.search(text)
    return int(match.group(1)) if match else None

"""Text helpers shared by extractors and renderers."""

import re
from collections.abc import Iterable

_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_SEPARATORS = re.compile(r"[\s/_.-]+")
_NON_ALNUM = re.compile(r"[^a-z0-9 ]")
_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def unique_sorted(values: Iterable[str]) -> list[str]:
    """Deduplicate and sort strings lexicographically."""
    return sorted(set(values))


def tokenize(
    value: str,
    stop_words: frozenset[str] = frozenset(),
    min_length: int = 3,
) -> list[str]:
    """Split an identifier or path into lowercase vocabulary tokens.

    Camel-case boundaries become word breaks, separators and punctuation are
    dropped, and short or stop-listed tokens are discarded. Order and
    repetition are preserved so that callers can weight every occurrence.

    Args:
        value: Raw identifier, folder name or path segment
        stop_words: Tokens to discard
        min_length: Shortest token kept

    Returns:
        Tokens in source order

    Examples:
        >>> tokenize("OrderLineItem")
        ['order', 'line', 'item']
        >>> tokenize("user_id")
        ['user']
    """
    normalized = _CAMEL_BOUNDARY.sub(r"\1 \2", value).lower()
    normalized = _SEPARATORS.sub(" ", normalized)
    normalized = _NON_ALNUM.sub(" ", normalized)

    return [
        token
        for token in normalized.split()
        if len(token) >= min_length and token not in stop_words
    ]


def slugify(value: str) -> str:
    """Lowercase a name and collapse anything non-alphanumeric into dashes."""
    return _SLUG_INVALID.sub("-", value.lower().strip()).strip("-")

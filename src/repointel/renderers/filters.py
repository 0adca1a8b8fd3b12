"""Jinja2 filters for markdown output.

Keeps the presentation of empty and missing data consistent across every
generated document: an empty list is rendered as an explicit "none" bullet,
and a fact that could not be loaded at all is rendered as a placeholder.
"""

from collections.abc import Iterable

# Rendered wherever a fact file was missing or unreadable
NO_DATA_PLACEHOLDER = "_No data available._"

EMPTY_LIST_TEXT = "- None detected"


def markdown_list(values: Iterable[str] | None, empty: str = EMPTY_LIST_TEXT) -> str:
    """Render values as a markdown bullet list.

    Args:
        values: Items to list, or None when the underlying fact is missing
        empty: Text used when the list is empty

    Returns:
        Bullet list, ``empty`` for no items, or the no-data placeholder

    Examples:
        >>> markdown_list(["a", "b"])
        '- a\\n- b'
        >>> markdown_list([], empty="- None")
        '- None'
        >>> markdown_list(None)
        '_No data available._'
    """
    if values is None:
        return NO_DATA_PLACEHOLDER

    items = [f"- {value}" for value in values]
    if not items:
        return empty
    return "\n".join(items)


def or_dash(values: Iterable[str] | str | None) -> str:
    """Join values with commas, or "-" when there are none."""
    if values is None:
        return "-"
    if isinstance(values, str):
        return values or "-"
    return ", ".join(values) or "-"


def or_placeholder(text: str | None) -> str:
    """Return text, or the no-data placeholder when it is missing."""
    return text if text else NO_DATA_PLACEHOLDER

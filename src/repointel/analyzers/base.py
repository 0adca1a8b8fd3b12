"""Shared building blocks for fact extractors.

Extractors are plain functions over a ``RepoSurvey``. Detection rules are
declared as data (``PatternRule`` tables) so a new detector is one more table
row, not new traversal code. ``run_guarded`` is the outer safety net the
orchestrator wraps around every extractor call.
"""

import logging
import re
from collections.abc import Callable, Iterable
from typing import NamedTuple, TypeVar

from repointel.models.inventory import ExtractionFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Delimiter used to flatten records into identity keys
KEY_DELIMITER = "|"

JS_SUFFIXES = frozenset({".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"})
PY_SUFFIXES = frozenset({".py"})


class PatternRule(NamedTuple):
    """A labelled regular expression.

    Attributes:
        label: Tag emitted when the pattern matches
        pattern: Compiled expression
    """

    label: str
    pattern: re.Pattern[str]


def rule(label: str, expression: str, flags: int = 0) -> PatternRule:
    """Compile a ``PatternRule``."""
    return PatternRule(label, re.compile(expression, flags))


def matching_labels(rules: Iterable[PatternRule], text: str) -> list[str]:
    """Labels of every rule that matches ``text``, in rule order."""
    return [r.label for r in rules if r.pattern.search(text)]


def dedupe_sorted(records: Iterable[T], key: Callable[[T], tuple[str, ...]]) -> list[T]:
    """Deduplicate records by full identity and return them in key order.

    Each record is flattened into a delimiter-joined key; the unique keys are
    sorted and the first record seen for each key is returned. Re-running an
    extractor on the same input therefore yields the same list byte for byte.

    Args:
        records: Records in detection order
        key: Identity fields of a record

    Returns:
        Unique records sorted by their flattened key
    """
    by_key: dict[str, T] = {}
    for record in records:
        by_key.setdefault(KEY_DELIMITER.join(key(record)), record)
    return [by_key[flat] for flat in sorted(by_key)]


def run_guarded(
    repo: str,
    domain: str,
    extractor: Callable[[], T],
    fallback: Callable[[], T],
) -> tuple[T, ExtractionFailure | None]:
    """Run one extractor, degrading to an empty fact on unexpected errors.

    Extractors already treat missing or malformed inputs as "no data"; this
    catches anything they did not anticipate so one repository's bad file
    never aborts the rest of the scan.

    Args:
        repo: Repository name for reporting
        domain: Extractor name for reporting
        extractor: Zero-argument callable producing the fact
        fallback: Zero-argument callable producing the empty fact

    Returns:
        Tuple of (fact, failure or None)
    """
    try:
        return extractor(), None
    except Exception as e:
        logger.warning("%s extraction failed for %s: %s", domain, repo, e)
        return fallback(), ExtractionFailure(repo=repo, domain=domain, message=str(e))

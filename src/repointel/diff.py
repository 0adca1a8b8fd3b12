"""Snapshot diff engine.

Compares two persisted snapshots repository by repository for a fixed set of
fact domains. Facts are compared through a canonical string (recursively
sorted keys, compact separators) so key order in the stored JSON never shows
up as a change.
"""

import json
import logging
from typing import Any

from repointel.models.diff import DiffReport, DiffSection
from repointel.models.facts import FactDomain
from repointel.models.inventory import Inventory
from repointel.pipeline import iso_timestamp
from repointel.store import SnapshotStore
from repointel.templates.renderer import DocumentRenderer

logger = logging.getLogger(__name__)

# Report field -> compared fact domain
TRACKED_DOMAINS: dict[str, FactDomain] = {
    "api_surface": FactDomain.API_SURFACE,
    "dependencies": FactDomain.DEPENDENCIES_EXTERNAL,
    "domain_terms": FactDomain.DOMAIN_TERMS,
    "quality_signals": FactDomain.QUALITY_SIGNALS,
}


def canonicalize(value: Any) -> str:
    """Canonical comparison string of a decoded JSON value.

    Object keys are sorted at every depth; list order is significant. A
    missing value (None) canonicalizes to the empty string.

    Examples:
        >>> canonicalize({"b": 1, "a": [{"y": 2, "x": 1}]})
        '{"a":[{"x":1,"y":2}],"b":1}'
        >>> canonicalize(None)
        ''
    """
    if value is None:
        return ""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compare_section(
    base_names: list[str],
    head_names: list[str],
    base_facts: dict[str, str],
    head_facts: dict[str, str],
) -> DiffSection:
    """Classify repositories for one fact domain.

    Args:
        base_names: Repositories in the base inventory
        head_names: Repositories in the head inventory
        base_facts: Canonical fact strings of base repositories
        head_facts: Canonical fact strings of head repositories

    Returns:
        DiffSection with sorted name lists
    """
    base_set, head_set = set(base_names), set(head_names)
    common = sorted(base_set & head_set)
    return DiffSection(
        added=sorted(head_set - base_set),
        removed=sorted(base_set - head_set),
        changed=[name for name in common if base_facts.get(name, "") != head_facts.get(name, "")],
    )


class DiffEngine:
    """Compares named snapshots of one workspace."""

    def __init__(self, store: SnapshotStore, renderer: DocumentRenderer | None = None) -> None:
        """Initialize the engine.

        Args:
            store: Snapshot store of the workspace
            renderer: Markdown renderer (a default one is created if omitted)
        """
        self.store = store
        self.renderer = renderer or DocumentRenderer()

    def _canonical_facts(
        self, snapshot_id: str, inventory: Inventory, domain: FactDomain
    ) -> dict[str, str]:
        return {
            name: canonicalize(self.store.load_raw(name, domain, snapshot_id))
            for name in inventory.repo_names
        }

    def compare(self, base: str, head: str) -> DiffReport:
        """Compare two snapshots without writing anything.

        Args:
            base: Base snapshot identifier
            head: Head snapshot identifier

        Returns:
            DiffReport

        Raises:
            SnapshotNotFoundError: If either snapshot has no valid inventory
        """
        base_inventory = self.store.load_snapshot_inventory(base)
        head_inventory = self.store.load_snapshot_inventory(head)

        sections = {
            field_name: compare_section(
                base_inventory.repo_names,
                head_inventory.repo_names,
                self._canonical_facts(base, base_inventory, domain),
                self._canonical_facts(head, head_inventory, domain),
            )
            for field_name, domain in TRACKED_DOMAINS.items()
        }

        return DiffReport(
            generated_at=iso_timestamp(),
            base_snapshot=base,
            head_snapshot=head,
            **sections,
        )

    def run(self, base: str, head: str) -> DiffReport:
        """Compare two snapshots and write ``diff.json`` and ``diff.md``."""
        report = self.compare(base, head)
        self.store.write_diff(report.to_dict(), self.renderer.render_diff(report))
        logger.info(
            "Diff %s..%s: %d section(s) with changes",
            base,
            head,
            sum(1 for _, section in report.sections() if not section.is_empty),
        )
        return report

"""Snapshot comparison models."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class DiffSection:
    """Repository names grouped by how one fact domain moved.

    Attributes:
        added: Repositories present only in the head snapshot
        removed: Repositories present only in the base snapshot
        changed: Repositories in both whose canonical facts differ
    """

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when nothing moved."""
        return not (self.added or self.removed or self.changed)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"added": self.added, "removed": self.removed, "changed": self.changed}


@dataclass
class DiffReport:
    """Comparison of two persisted snapshots.

    Attributes:
        generated_at: Report timestamp (ISO 8601, UTC)
        base_snapshot: Base snapshot identifier
        head_snapshot: Head snapshot identifier
        api_surface: API surface movement
        dependencies: External dependency movement
        domain_terms: Domain vocabulary movement
        quality_signals: Quality signal movement
    """

    generated_at: str
    base_snapshot: str
    head_snapshot: str
    api_surface: DiffSection = field(default_factory=DiffSection)
    dependencies: DiffSection = field(default_factory=DiffSection)
    domain_terms: DiffSection = field(default_factory=DiffSection)
    quality_signals: DiffSection = field(default_factory=DiffSection)

    def sections(self) -> list[tuple[str, DiffSection]]:
        """Sections with their display titles, in report order."""
        return [
            ("API Surface", self.api_surface),
            ("Dependencies", self.dependencies),
            ("Domain Terms", self.domain_terms),
            ("Quality Signals", self.quality_signals),
        ]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "generated_at": self.generated_at,
            "base_snapshot": self.base_snapshot,
            "head_snapshot": self.head_snapshot,
            "api_surface": self.api_surface.to_dict(),
            "dependencies": self.dependencies.to_dict(),
            "domain_terms": self.domain_terms.to_dict(),
            "quality_signals": self.quality_signals.to_dict(),
        }

"""Snapshot store.

Owns the state directory under a scanned workspace:

    <scan_root>/.repo-intel/
        inventory.json, inventory.md          current view
        repos/<name>/raw/<domain>.json        current facts
        repos/<name>/docs/*.md                generated documents
        snapshots/<id>/inventory.json         immutable snapshot (validity marker)
        snapshots/<id>/repos/<name>/raw/*.json
        diff.json, diff.md, org-service-map.mmd

A snapshot is valid only once its ``inventory.json`` exists, so that file is
written last. Readers never see a half-written snapshot as valid.

There is no locking: concurrent scans of the same workspace root are
unsupported, and two writers may interleave their fact files.
"""

import logging
import shutil
from pathlib import Path
from typing import Any, TypeVar

from repointel.config import DEFAULT_STATE_DIR
from repointel.models.facts import DependenciesInternal, FactDomain, FactModel
from repointel.models.inventory import Inventory, ScanResult
from repointel.utils.fs import dump_json, read_json_if_exists, write_json, write_text

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=FactModel)

INVENTORY_FILE = "inventory.json"
INVENTORY_MARKDOWN_FILE = "inventory.md"
DIFF_JSON_FILE = "diff.json"
DIFF_MARKDOWN_FILE = "diff.md"
SERVICE_MAP_FILE = "org-service-map.mmd"
REPOS_DIR = "repos"
RAW_DIR = "raw"
DOCS_DIR = "docs"
SNAPSHOTS_DIR = "snapshots"


def is_valid_snapshot_id(snapshot_id: str) -> bool:
    """Check that an identifier is a plain directory name under ``snapshots/``."""
    return (
        bool(snapshot_id)
        and snapshot_id not in {".", ".."}
        and "/" not in snapshot_id
        and "\\" not in snapshot_id
    )


# =============================================================================
# Errors
# =============================================================================


class RepoIntelError(Exception):
    """Base class for command-level failures reported to the user."""


class StateNotFoundError(RepoIntelError):
    """The workspace has not been scanned yet."""


class SnapshotNotFoundError(RepoIntelError):
    """A named snapshot has no valid inventory."""


class SnapshotExistsError(RepoIntelError):
    """A scan targeted a snapshot identifier that is already taken."""


class RepoNotFoundError(RepoIntelError):
    """A repository filter matched nothing in the inventory."""


# =============================================================================
# Store
# =============================================================================


class SnapshotStore:
    """Reads and writes the state directory of one workspace."""

    def __init__(self, scan_root: Path, state_dir: str = DEFAULT_STATE_DIR) -> None:
        """Initialize the store.

        Args:
            scan_root: Workspace root
            state_dir: Name of the state directory under the root
        """
        self.scan_root = scan_root.resolve()
        self.state_dir = state_dir
        self.intel_root = self.scan_root / state_dir

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    @property
    def inventory_path(self) -> Path:
        """Current inventory."""
        return self.intel_root / INVENTORY_FILE

    @property
    def inventory_markdown_path(self) -> Path:
        """Current inventory table."""
        return self.intel_root / INVENTORY_MARKDOWN_FILE

    @property
    def diff_json_path(self) -> Path:
        """Latest diff report."""
        return self.intel_root / DIFF_JSON_FILE

    @property
    def diff_markdown_path(self) -> Path:
        """Latest diff report rendered as markdown."""
        return self.intel_root / DIFF_MARKDOWN_FILE

    @property
    def service_map_path(self) -> Path:
        """Organization service map."""
        return self.intel_root / SERVICE_MAP_FILE

    def snapshot_dir(self, snapshot_id: str) -> Path:
        """Directory of a named snapshot."""
        return self.intel_root / SNAPSHOTS_DIR / snapshot_id

    def snapshot_inventory_path(self, snapshot_id: str) -> Path:
        """Inventory (validity marker) of a named snapshot."""
        return self.snapshot_dir(snapshot_id) / INVENTORY_FILE

    def raw_path(self, repo: str, domain: FactDomain, snapshot_id: str | None = None) -> Path:
        """Fact file of one repository in the current view or a snapshot."""
        base = self.intel_root if snapshot_id is None else self.snapshot_dir(snapshot_id)
        return base / REPOS_DIR / repo / RAW_DIR / domain.filename

    def docs_dir(self, repo: str) -> Path:
        """Generated documents of one repository."""
        return self.intel_root / REPOS_DIR / repo / DOCS_DIR

    # -------------------------------------------------------------------------
    # Snapshot writing
    # -------------------------------------------------------------------------

    def snapshot_exists(self, snapshot_id: str) -> bool:
        """Check whether a snapshot is valid (its inventory was written)."""
        return self.snapshot_inventory_path(snapshot_id).is_file()

    def ensure_snapshot_available(self, snapshot_id: str) -> None:
        """Refuse an identifier that already names a valid snapshot.

        Raises:
            SnapshotExistsError: If the snapshot is valid
        """
        if self.snapshot_exists(snapshot_id):
            raise SnapshotExistsError(
                f"Snapshot already exists: {snapshot_id}. Choose another --snapshot-id."
            )

    def write_scan(self, result: ScanResult, inventory_markdown: str) -> Path:
        """Persist a scan to the current view and to its snapshot.

        Every fact is serialized once and the same text is written to both
        locations. The snapshot inventory is written last.

        Args:
            result: Scan result to persist
            inventory_markdown: Rendered inventory table

        Returns:
            Snapshot directory

        Raises:
            SnapshotExistsError: If the snapshot is already valid
        """
        snapshot_id = result.snapshot_id
        self.ensure_snapshot_available(snapshot_id)

        snapshot_dir = self.snapshot_dir(snapshot_id)
        if snapshot_dir.exists():
            logger.warning("Clearing incomplete snapshot directory: %s", snapshot_dir)
            shutil.rmtree(snapshot_dir)

        for repo in result.repos:
            for domain, value in repo.documents().items():
                content = dump_json(value)
                write_text(self.raw_path(repo.name, domain), content)
                write_text(self.raw_path(repo.name, domain, snapshot_id), content)

        inventory = result.inventory.to_dict()
        write_json(self.inventory_path, inventory)
        write_text(self.inventory_markdown_path, inventory_markdown)
        write_json(self.snapshot_inventory_path(snapshot_id), inventory)

        logger.info("Wrote snapshot %s (%d repos)", snapshot_id, len(result.repos))
        return snapshot_dir

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def load_inventory(self) -> Inventory:
        """Load the current inventory.

        Raises:
            StateNotFoundError: If the workspace was never scanned
        """
        inventory = Inventory.from_dict(read_json_if_exists(self.inventory_path))
        if inventory is None:
            raise StateNotFoundError(f"Missing {self.state_dir}/{INVENTORY_FILE}. Run scan first.")
        return inventory

    def load_snapshot_inventory(self, snapshot_id: str) -> Inventory:
        """Load the inventory of a named snapshot.

        Raises:
            SnapshotNotFoundError: If the identifier is not a plain name, or the
                snapshot is missing or incomplete
        """
        if not is_valid_snapshot_id(snapshot_id):
            raise SnapshotNotFoundError(f"Invalid snapshot id: {snapshot_id!r}")
        path = self.snapshot_inventory_path(snapshot_id)
        inventory = Inventory.from_dict(read_json_if_exists(path))
        if inventory is None:
            raise SnapshotNotFoundError(f"Missing snapshot inventory: {path}")
        return inventory

    def load_raw(self, repo: str, domain: FactDomain, snapshot_id: str | None = None) -> Any | None:
        """Decoded fact file, or None if it is missing or malformed."""
        return read_json_if_exists(self.raw_path(repo, domain, snapshot_id))

    def load_fact(self, repo: str, domain: FactDomain, model: type[M]) -> M | None:
        """Typed current fact, or None if missing or of the wrong shape."""
        return model.from_dict(self.load_raw(repo, domain))

    def load_dependencies_internal(self, inventory: Inventory) -> dict[str, DependenciesInternal]:
        """Internal dependencies of every inventoried repository that has them."""
        loaded: dict[str, DependenciesInternal] = {}
        for name in inventory.repo_names:
            deps = self.load_fact(name, FactDomain.DEPENDENCIES_INTERNAL, DependenciesInternal)
            if deps is not None:
                loaded[name] = deps
        return loaded

    # -------------------------------------------------------------------------
    # Derived artifacts
    # -------------------------------------------------------------------------

    def write_document(self, repo: str, filename: str, content: str) -> Path:
        """Write one generated document for a repository."""
        path = self.docs_dir(repo) / filename
        write_text(path, content)
        return path

    def write_diff(self, report: dict[str, Any], markdown: str) -> None:
        """Write the diff report and its markdown rendering."""
        write_json(self.diff_json_path, report)
        write_text(self.diff_markdown_path, markdown)

    def write_service_map(self, mermaid: str) -> Path:
        """Write the organization service map."""
        write_text(self.service_map_path, mermaid)
        return self.service_map_path

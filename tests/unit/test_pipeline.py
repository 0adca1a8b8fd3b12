"""Unit tests for the snapshot pipeline and its consumers."""

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import pytest

from repointel.config import RepoIntelConfig
from repointel.models.facts import FactDomain
from repointel.pipeline import (
    SnapshotPipeline,
    build_service_map,
    iso_timestamp,
    make_snapshot_id,
    summarize_workspace,
)
from repointel.store import RepoNotFoundError, SnapshotExistsError, SnapshotStore, StateNotFoundError
from tests.fixtures import ORDERS_SERVICE, write_repo

NOW = datetime(2024, 5, 1, 9, 30, 0, 123000, tzinfo=UTC)


class TestSnapshotIds:
    """Tests for timestamps and snapshot identifiers."""

    def test_iso_timestamp(self) -> None:
        """Test millisecond precision with a Z suffix."""
        assert iso_timestamp(NOW) == "2024-05-01T09:30:00.123Z"

    def test_explicit_id(self, tmp_path: Path) -> None:
        """Test a user-supplied identifier is used as-is."""
        assert make_snapshot_id(tmp_path, "release-42") == "release-42"

    @pytest.mark.parametrize("snapshot_id", ["..", ".", "a/b", "a\\b"])
    def test_invalid_explicit_id(self, tmp_path: Path, snapshot_id: str) -> None:
        """Test identifiers that are not plain directory names are refused."""
        with pytest.raises(ValueError, match="Invalid snapshot id"):
            make_snapshot_id(tmp_path, snapshot_id)

    def test_generated_id(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test generated identifiers combine revision and filesystem-safe time."""
        monkeypatch.setattr("repointel.pipeline.detect_revision", lambda root: "3f2c9a1b7d4e")

        assert make_snapshot_id(tmp_path, now=NOW) == "3f2c9a1b7d4e-2024-05-01T09-30-00-123Z"

    def test_generated_id_without_git(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the revision placeholder is used outside a git work tree."""
        monkeypatch.setattr("repointel.pipeline.detect_revision", lambda root: "nogit")

        assert make_snapshot_id(tmp_path, "", now=NOW).startswith("nogit-2024-05-01T09-30-00")


class TestSnapshotPipeline:
    """Tests for SnapshotPipeline."""

    @pytest.fixture
    def pipeline(self) -> SnapshotPipeline:
        """Create a pipeline with default configuration."""
        return SnapshotPipeline(RepoIntelConfig())

    def test_scan_extracts_facts(self, pipeline: SnapshotPipeline, orders_workspace: Path) -> None:
        """Test every extractor contributes to the repository facts."""
        result = asyncio.run(pipeline.scan(orders_workspace, "s1"))

        assert result.inventory.repo_names == ["orders-service"]
        assert result.failures == []
        facts = result.repos[0]
        assert [(r.method, r.path) for r in facts.api_surface.routes] == [("GET", "/orders")]
        assert [e.name for e in facts.db_models.entities] == ["Customer", "Order"]
        assert "CATALOG_INTERNAL_URL" in facts.env_vars.all
        assert "api.stripe.com" in facts.dependencies_external.outbound_hosts
        assert facts.dependencies_internal.internal_packages == ["@catalog-service/client"]
        assert facts.quality_signals.tests_present
        assert facts.metadata.package_manager == "npm"

    def test_empty_workspace(self, pipeline: SnapshotPipeline, workspace: Path) -> None:
        """Test a workspace without repositories yields an empty inventory."""
        result = asyncio.run(pipeline.scan(workspace, "s1"))

        assert result.inventory.repos == []
        assert result.repos == []

    def test_duplicate_names_are_kept(self, pipeline: SnapshotPipeline, workspace: Path) -> None:
        """Test two roots sharing a package name are both inventoried."""
        write_repo(workspace / "a", ORDERS_SERVICE)
        write_repo(workspace / "b", ORDERS_SERVICE)

        result = asyncio.run(pipeline.scan(workspace, "s1"))

        assert result.inventory.repo_names == ["orders-service", "orders-service"]

    def test_run_persists_snapshot(self, pipeline: SnapshotPipeline, orders_workspace: Path) -> None:
        """Test run writes the current view and the named snapshot."""
        pipeline.run(orders_workspace, snapshot_id="s1")
        store = SnapshotStore(orders_workspace)

        assert store.snapshot_exists("s1")
        assert store.load_inventory().snapshot_id == "s1"
        routes = store.load_raw("orders-service", FactDomain.ROUTES, "s1")
        assert routes == [{"method": "GET", "path": "/orders", "file": "src/index.js", "style": "express-like"}]
        assert store.inventory_markdown_path.read_text().startswith("# Repository Inventory")

    def test_run_refuses_existing_snapshot(
        self, pipeline: SnapshotPipeline, orders_workspace: Path
    ) -> None:
        """Test a second run with the same identifier fails before scanning."""
        pipeline.run(orders_workspace, snapshot_id="s1")

        with pytest.raises(SnapshotExistsError):
            pipeline.run(orders_workspace, snapshot_id="s1")

    def test_rescan_is_byte_identical(
        self, pipeline: SnapshotPipeline, two_repo_workspace: Path
    ) -> None:
        """Test scanning an unchanged tree twice writes identical fact files."""
        pipeline.run(two_repo_workspace, snapshot_id="a")
        pipeline.run(two_repo_workspace, snapshot_id="b")
        store = SnapshotStore(two_repo_workspace)

        first = store.snapshot_dir("a") / "repos"
        second = store.snapshot_dir("b") / "repos"
        first_files = sorted(path.relative_to(first) for path in first.rglob("*.json"))
        second_files = sorted(path.relative_to(second) for path in second.rglob("*.json"))

        assert len(first_files) == 2 * len(FactDomain)
        assert first_files == second_files
        for rel_path in first_files:
            assert (first / rel_path).read_bytes() == (second / rel_path).read_bytes(), rel_path


class TestConsumers:
    """Tests for summarize and graph over the current view."""

    def test_summarize_before_scan(self, workspace: Path) -> None:
        """Test summarizing an unscanned workspace."""
        with pytest.raises(StateNotFoundError):
            summarize_workspace(workspace)

    def test_summarize_unknown_repo(self, orders_workspace: Path) -> None:
        """Test filtering by a name that is not inventoried."""
        SnapshotPipeline().run(orders_workspace, snapshot_id="s1")

        with pytest.raises(RepoNotFoundError, match="--repo=billing"):
            summarize_workspace(orders_workspace, repo="billing")

    def test_summarize_empty_inventory(self, workspace: Path) -> None:
        """Test a scan that found no repositories summarizes to nothing."""
        SnapshotPipeline().run(workspace, snapshot_id="s1")

        assert summarize_workspace(workspace) == []

    def test_summarize_writes_documents(self, orders_workspace: Path) -> None:
        """Test every document lands in the repository docs directory."""
        SnapshotPipeline().run(orders_workspace, snapshot_id="s1")

        handovers = summarize_workspace(orders_workspace, repo="orders-service")

        store = SnapshotStore(orders_workspace)
        assert handovers == [store.docs_dir("orders-service") / "HANDOVER.md"]
        written = sorted(path.name for path in store.docs_dir("orders-service").iterdir())
        assert written == [
            "ARCHITECTURE.md",
            "HANDOVER.md",
            "HEALTH.md",
            "NEW_DEV.md",
            "RUNBOOK.md",
            "api_surface.md",
            "domain_glossary.md",
        ]
        assert "GET /orders" in handovers[0].read_text()

    def test_build_service_map(self, two_repo_workspace: Path) -> None:
        """Test the scoped package dependency becomes an edge."""
        SnapshotPipeline().run(two_repo_workspace, snapshot_id="s1")

        mermaid = build_service_map(two_repo_workspace).read_text()

        assert mermaid.startswith("graph LR\n")
        assert '  orders_service -- "pkg" --> catalog_service\n' in mermaid

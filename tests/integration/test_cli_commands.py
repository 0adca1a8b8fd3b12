"""Integration tests for the repo-intel CLI.

Each test drives the real commands against a temporary workspace.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from repointel import __version__
from repointel.cli import app
from repointel.models.facts import FactDomain
from repointel.store import SnapshotStore

runner = CliRunner()


def scan(root: Path, snapshot_id: str) -> None:
    """Run a scan and assert it succeeded."""
    result = runner.invoke(app, ["scan", "--root", str(root), "--snapshot-id", snapshot_id])
    assert result.exit_code == 0, result.output


class TestScanCommand:
    """Tests for repo-intel scan."""

    def test_scan(self, orders_workspace: Path) -> None:
        """Test a scan reports the repository count and snapshot."""
        result = runner.invoke(app, ["scan", "--root", str(orders_workspace), "-s", "s1"])

        assert result.exit_code == 0
        assert "Scanned 1 repo(s). Snapshot: s1" in result.output

        routes = json.loads(
            SnapshotStore(orders_workspace).raw_path("orders-service", FactDomain.ROUTES).read_text()
        )
        assert [(r["method"], r["path"]) for r in routes] == [("GET", "/orders")]

    def test_duplicate_snapshot_id(self, orders_workspace: Path) -> None:
        """Test reusing a snapshot identifier fails."""
        scan(orders_workspace, "s1")

        result = runner.invoke(app, ["scan", "--root", str(orders_workspace), "-s", "s1"])

        assert result.exit_code == 1

    def test_missing_root(self, tmp_path: Path) -> None:
        """Test a root that does not exist is a usage error."""
        result = runner.invoke(app, ["scan", "--root", str(tmp_path / "missing")])

        assert result.exit_code != 0


class TestSummarizeCommand:
    """Tests for repo-intel summarize."""

    def test_before_scan(self, workspace: Path) -> None:
        """Test summarizing an unscanned workspace fails."""
        result = runner.invoke(app, ["summarize", "--root", str(workspace)])

        assert result.exit_code == 1

    def test_summarize(self, orders_workspace: Path) -> None:
        """Test handover paths are printed."""
        scan(orders_workspace, "s1")

        result = runner.invoke(app, ["summarize", "--root", str(orders_workspace)])

        assert result.exit_code == 0
        assert "HANDOVER.md" in result.output

    def test_missing_fact_renders_placeholder(self, orders_workspace: Path) -> None:
        """Test a deleted fact file degrades to the no-data placeholder."""
        scan(orders_workspace, "s1")
        store = SnapshotStore(orders_workspace)
        store.raw_path("orders-service", FactDomain.API_SURFACE).unlink()

        result = runner.invoke(app, ["summarize", "--root", str(orders_workspace)])

        assert result.exit_code == 0
        handover = (store.docs_dir("orders-service") / "HANDOVER.md").read_text()
        assert "## 1. What it is\n\n_No data available._" in handover

    def test_unknown_repo(self, orders_workspace: Path) -> None:
        """Test --repo with an unknown name fails."""
        scan(orders_workspace, "s1")

        result = runner.invoke(app, ["summarize", "--root", str(orders_workspace), "--repo", "nope"])

        assert result.exit_code == 1


class TestGraphCommand:
    """Tests for repo-intel graph."""

    def test_graph(self, two_repo_workspace: Path) -> None:
        """Test the service map links orders to catalog."""
        scan(two_repo_workspace, "s1")

        result = runner.invoke(app, ["graph", "--root", str(two_repo_workspace)])

        assert result.exit_code == 0
        mermaid = SnapshotStore(two_repo_workspace).service_map_path.read_text()
        assert '  orders_service -- "pkg" --> catalog_service' in mermaid


class TestDiffCommand:
    """Tests for repo-intel diff."""

    def test_new_route_is_an_api_change(self, orders_workspace: Path) -> None:
        """Test adding a route shows up as a changed API surface."""
        scan(orders_workspace, "s1")
        index = orders_workspace / "orders" / "src" / "index.js"
        index.write_text(index.read_text() + "app.post('/orders', (req, res) => res.json({}));\n")
        scan(orders_workspace, "s2")

        result = runner.invoke(
            app, ["diff", "--root", str(orders_workspace), "--base", "s1", "--head", "s2"]
        )

        assert result.exit_code == 0
        assert "Diff generated between s1 and s2." in result.output
        report = json.loads(SnapshotStore(orders_workspace).diff_json_path.read_text())
        assert report["api_surface"] == {"added": [], "removed": [], "changed": ["orders-service"]}

    def test_unchanged_workspace(self, orders_workspace: Path) -> None:
        """Test rescanning an unchanged workspace reports no changes."""
        scan(orders_workspace, "s1")
        scan(orders_workspace, "s2")

        runner.invoke(app, ["diff", "--root", str(orders_workspace), "--base", "s1", "--head", "s2"])

        report = json.loads(SnapshotStore(orders_workspace).diff_json_path.read_text())
        for section in ("api_surface", "dependencies", "domain_terms", "quality_signals"):
            assert report[section] == {"added": [], "removed": [], "changed": []}

    def test_missing_snapshot(self, orders_workspace: Path) -> None:
        """Test diffing against an unknown snapshot fails."""
        scan(orders_workspace, "s1")

        result = runner.invoke(
            app, ["diff", "--root", str(orders_workspace), "--base", "s1", "--head", "nope"]
        )

        assert result.exit_code == 1

    def test_parent_directory_snapshot_id(self, orders_workspace: Path) -> None:
        """Test ``..`` is refused instead of resolving to the state directory."""
        scan(orders_workspace, "s1")

        result = runner.invoke(
            app, ["diff", "--root", str(orders_workspace), "--base", "..", "--head", "s1"]
        )

        assert result.exit_code == 1
        assert not SnapshotStore(orders_workspace).diff_json_path.exists()


class TestGlobalOptions:
    """Tests for version and init."""

    def test_version(self) -> None:
        """Test --version prints the package version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"repo-intel {__version__}" in result.output

    def test_init(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test init writes a config and refuses to overwrite without --force."""
        monkeypatch.chdir(tmp_path)

        first = runner.invoke(app, ["init"])
        second = runner.invoke(app, ["init"])
        forced = runner.invoke(app, ["init", "--force"])

        assert first.exit_code == 0
        assert (tmp_path / "repo-intel.yaml").is_file()
        assert second.exit_code == 1
        assert forced.exit_code == 0

"""Unit tests for markdown filters, narrative builders and the template renderer."""

import pytest

from repointel.models.diff import DiffReport, DiffSection
from repointel.models.facts import (
    ApiSurface,
    DataEntity,
    DbModelSummary,
    DomainTerm,
    DomainTerms,
    EnvVarSummary,
    PackageSummary,
    QualitySignals,
    RouteDescriptor,
)
from repointel.models.inventory import Inventory, RepoMetadata, RepoType
from repointel.renderers.filters import NO_DATA_PLACEHOLDER, markdown_list, or_dash, or_placeholder
from repointel.renderers.summary import (
    RepoDocumentInputs,
    build_document_context,
    key_flows,
    risk_notes,
    run_commands,
)
from repointel.templates import REPO_DOCUMENTS, DocumentRenderer


@pytest.fixture
def metadata() -> RepoMetadata:
    """Return metadata for a TypeScript service."""
    return RepoMetadata(
        name="orders",
        root_path="/ws/orders",
        relative_path="orders",
        languages=["TypeScript"],
        frameworks=["express"],
        package_manager="npm",
        repo_type=RepoType.SERVICE,
    )


@pytest.fixture
def renderer() -> DocumentRenderer:
    """Create a renderer instance."""
    return DocumentRenderer()


class TestFilters:
    """Tests for markdown filters."""

    def test_markdown_list(self) -> None:
        """Test items, empty lists and missing data."""
        assert markdown_list(["a", "b"]) == "- a\n- b"
        assert markdown_list([]) == "- None detected"
        assert markdown_list([], empty="- None") == "- None"
        assert markdown_list(None) == NO_DATA_PLACEHOLDER

    def test_or_dash_and_placeholder(self) -> None:
        """Test fallbacks for table cells and paragraphs."""
        assert or_dash(["TypeScript", "JSON"]) == "TypeScript, JSON"
        assert or_dash([]) == "-"
        assert or_dash("") == "-"
        assert or_placeholder(None) == NO_DATA_PLACEHOLDER
        assert or_placeholder("text") == "text"


class TestSummaryBuilders:
    """Tests for narrative builders."""

    def test_key_flows(self) -> None:
        """Test route flows use the first entity and are capped."""
        api = ApiSurface(routes=[RouteDescriptor("GET", f"/r{i}", "a.ts") for i in range(5)])
        db = DbModelSummary(entities=[DataEntity("Order", "schema.prisma")])

        flows = key_flows(api, db, None)

        assert flows is not None
        assert len(flows) == 3
        assert flows[0] == "GET /r0 -> application service -> Order persistence -> response"

    def test_key_flows_fallback(self) -> None:
        """Test a repository without routes or consumers gets a startup flow."""
        assert key_flows(ApiSurface(), None, None) == [
            "Startup task -> core logic execution -> internal package interactions"
        ]
        assert key_flows(None, None, None) is None

    def test_run_commands(self) -> None:
        """Test standard scripts are listed in a fixed order."""
        summary = PackageSummary(name="x", scripts={"test": "jest", "dev": "vite", "deploy": "x"})

        assert run_commands(summary) == ["dev: vite", "test: jest"]
        assert run_commands(PackageSummary(name="x")) == ["No standard scripts detected in the manifest"]

    def test_risk_notes(self) -> None:
        """Test red flags and the all-clear message."""
        risky = QualitySignals(cycles=["a -> a"])
        healthy = QualitySignals(tests_present=True, typing_strict=True, ci_configured=True)

        assert risk_notes(risky) == [
            "Tests are missing; regression risk is high.",
            "Strict type checking is not enabled.",
            "CI configuration not detected.",
            "Import cycles detected: 1.",
        ]
        assert risk_notes(healthy) == ["No critical quality red flags detected from static signals."]

    def test_context_marks_missing_facts(self, metadata: RepoMetadata) -> None:
        """Test missing facts become None in the template context."""
        context = build_document_context(RepoDocumentInputs(metadata=metadata))

        assert context["what_it_is"] is None
        assert context["entities"] is None
        assert context["scorecard"] is None
        assert context["deploy_notes"] == ["No explicit deployment pipeline detected from scanned files."]


class TestDocumentRenderer:
    """Tests for DocumentRenderer."""

    def test_inventory_table(self, renderer: DocumentRenderer, metadata: RepoMetadata) -> None:
        """Test the inventory markdown table."""
        inventory = Inventory(generated_at="t0", scan_root="/ws", snapshot_id="s1", repos=[metadata])

        table = renderer.render_inventory(inventory)

        assert table.startswith("# Repository Inventory\n")
        assert "| orders | service | TypeScript | express | npm | - |" in table

    def test_diff_report(self, renderer: DocumentRenderer) -> None:
        """Test every section lists added, removed and changed."""
        report = DiffReport(
            generated_at="t",
            base_snapshot="s1",
            head_snapshot="s2",
            api_surface=DiffSection(changed=["orders"]),
        )

        markdown = renderer.render_diff(report)

        assert markdown.startswith("# Repo Intelligence Diff\n")
        assert "## API Surface\n\n### Added\n- None\n\n### Removed\n- None\n\n### Changed\n- orders" in markdown
        assert markdown.count("### Changed") == 4

    def test_repo_documents_complete(self, renderer: DocumentRenderer, metadata: RepoMetadata) -> None:
        """Test every document renders with full facts."""
        inputs = RepoDocumentInputs(
            metadata=metadata,
            package_summary=PackageSummary(name="orders", scripts={"start": "node ."}),
            api_surface=ApiSurface(routes=[RouteDescriptor("GET", "/orders", "src/app.ts")]),
            domain_terms=DomainTerms(top_terms=[DomainTerm("orders", 3, ["route"])]),
            db_models=DbModelSummary(),
            env_vars=EnvVarSummary(all=["PORT"]),
            quality_signals=QualitySignals(),
        )

        documents = renderer.render_repo_documents(inputs)

        assert list(documents) == list(REPO_DOCUMENTS)
        handover = documents["HANDOVER.md"]
        for number, title in enumerate(
            [
                "What it is",
                "What business capability it owns",
                "Key flows",
                "Core data model",
                "External interactions",
                "Internal interactions",
                "How to run locally",
                "How it deploys",
                "Operational view",
                "Risk notes",
                "Onboarding checklist",
            ],
            start=1,
        ):
            assert f"## {number}. {title}" in handover
        assert "orders is a service repository built primarily with TypeScript." in handover
        assert "- No entities detected" in handover
        assert "- ENV: PORT=<value>" in handover
        assert "- GET /orders (src/app.ts)" in documents["api_surface.md"]
        assert "- orders (score: 3; sources: route)" in documents["domain_glossary.md"]
        assert "- PORT=<safe-placeholder>" in documents["RUNBOOK.md"]

    def test_missing_facts_render_placeholder(self, renderer: DocumentRenderer, metadata: RepoMetadata) -> None:
        """Test documents still render when facts are missing."""
        documents = renderer.render_repo_documents(RepoDocumentInputs(metadata=metadata))

        assert "## 1. What it is\n\n_No data available._" in documents["HANDOVER.md"]
        assert NO_DATA_PLACEHOLDER in documents["api_surface.md"]
        assert NO_DATA_PLACEHOLDER in documents["domain_glossary.md"]
        assert NO_DATA_PLACEHOLDER in documents["HEALTH.md"]

    def test_unknown_template(self, renderer: DocumentRenderer) -> None:
        """Test a missing template raises ValueError."""
        with pytest.raises(ValueError, match="Template rendering failed"):
            renderer.render("missing.md.j2")

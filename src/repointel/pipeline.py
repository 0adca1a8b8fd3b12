"""Snapshot orchestrator.

Walks a workspace, runs every fact extractor on every repository and hands
the collected facts to the snapshot store. Also drives the consumers of the
current view (document generation and the service map).

Repositories are processed concurrently as asyncio tasks; the blocking file
and regex work runs in worker threads through ``asyncio.to_thread``, bounded
by ``scan.max_concurrency``. Within one repository the extractors run in
dependency order:

    survey -> package summary -> metadata
           -> api surface | data model | env vars | quality   (parallel)
           -> dependencies (needs env vars)
           -> domain terms (needs routes and data model)
"""

import asyncio
import logging
import os
from collections import Counter
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import TypeVar

from repointel.analyzers import (
    DependencyFacts,
    extract_api_surface,
    extract_db_models,
    extract_dependencies,
    extract_env_vars,
    extract_package_summary,
    extract_quality_signals,
    extract_repo_metadata,
    rank_domain_terms,
    run_guarded,
)
from repointel.analyzers.diagrams import ServiceMapGenerator
from repointel.config import RepoIntelConfig
from repointel.models.facts import (
    ApiSurface,
    DbModelSummary,
    DependenciesExternal,
    DependenciesInternal,
    DomainTerms,
    EnvVarSummary,
    FactDomain,
    PackageSummary,
    QualitySignals,
)
from repointel.models.inventory import (
    ExtractionFailure,
    Inventory,
    RepoFacts,
    RepoMetadata,
    ScanResult,
)
from repointel.renderers.summary import RepoDocumentInputs
from repointel.store import RepoNotFoundError, SnapshotStore, is_valid_snapshot_id
from repointel.templates.renderer import DocumentRenderer
from repointel.utils.fs import RepoSurvey, discover_repo_roots, survey_repo
from repointel.utils.git import detect_revision

logger = logging.getLogger(__name__)

T = TypeVar("T")


def iso_timestamp(now: datetime | None = None) -> str:
    """UTC timestamp with millisecond precision, e.g. 2024-05-01T09:30:00.000Z."""
    now = now or datetime.now(UTC)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_snapshot_id(scan_root: Path, explicit: str | None = None, now: datetime | None = None) -> str:
    """Resolve the identifier a scan is stored under.

    Args:
        scan_root: Workspace root (its git revision prefixes generated ids)
        explicit: Identifier supplied by the user, used as-is when non-empty
        now: Clock override

    Returns:
        Snapshot identifier such as ``3f2c9a1b7d4e-2024-05-01T09-30-00-000Z``

    Raises:
        ValueError: If an explicit identifier is not a plain directory name
    """
    if explicit:
        if not is_valid_snapshot_id(explicit):
            raise ValueError(f"Invalid snapshot id: {explicit!r}")
        return explicit

    timestamp = iso_timestamp(now).replace(":", "-").replace(".", "-")
    return f"{detect_revision(scan_root)}-{timestamp}"


class SnapshotPipeline:
    """Runs a full scan of a workspace and persists it as a snapshot.

    Usage:
        pipeline = SnapshotPipeline(config)
        result = pipeline.run(Path("."), snapshot_id="release-42")
    """

    def __init__(
        self,
        config: RepoIntelConfig | None = None,
        renderer: DocumentRenderer | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: repointel configuration (defaults if None)
            renderer: Markdown renderer for the inventory table
        """
        self.config = config or RepoIntelConfig()
        self.renderer = renderer or DocumentRenderer()

    def run(self, scan_root: Path, snapshot_id: str | None = None) -> ScanResult:
        """Scan a workspace and write the current view and the snapshot.

        Args:
            scan_root: Workspace root
            snapshot_id: Explicit snapshot identifier

        Returns:
            ScanResult with every repository's facts and recoverable failures

        Raises:
            SnapshotExistsError: If the snapshot identifier is already taken
        """
        scan_root = scan_root.resolve()
        store = SnapshotStore(scan_root, self.config.state_dir)
        resolved_id = make_snapshot_id(scan_root, snapshot_id)
        store.ensure_snapshot_available(resolved_id)

        logger.info("Scanning %s (snapshot %s)", scan_root, resolved_id)
        result = asyncio.run(self.scan(scan_root, resolved_id))

        store.write_scan(result, self.renderer.render_inventory(result.inventory))
        if result.failures:
            logger.warning("%d extractor failure(s) degraded to empty facts", len(result.failures))
        return result

    async def scan(self, scan_root: Path, snapshot_id: str) -> ScanResult:
        """Extract facts for every repository under ``scan_root`` without persisting."""
        roots = await asyncio.to_thread(
            discover_repo_roots, scan_root, self.config.discovery_ignore_dirs
        )
        logger.info("Discovered %d repositories", len(roots))

        semaphore = asyncio.Semaphore(self.config.scan.max_concurrency)
        outcomes = await asyncio.gather(
            *(self._scan_repo(scan_root, root, semaphore) for root in roots)
        )

        repos = [facts for facts, _ in outcomes]
        failures = [failure for _, repo_failures in outcomes for failure in repo_failures]

        duplicates = [name for name, count in Counter(r.name for r in repos).items() if count > 1]
        for name in sorted(duplicates):
            logger.warning("Repository name %s is used by more than one root; facts overlap", name)

        inventory = Inventory(
            generated_at=iso_timestamp(),
            scan_root=str(scan_root),
            snapshot_id=snapshot_id,
            repos=[repo.metadata for repo in repos],
        )
        return ScanResult(inventory=inventory, repos=repos, failures=failures)

    # =========================================================================
    # Per-repository extraction
    # =========================================================================

    async def _scan_repo(
        self,
        scan_root: Path,
        repo_root: Path,
        semaphore: asyncio.Semaphore,
    ) -> tuple[RepoFacts, list[ExtractionFailure]]:
        async with semaphore:
            failures: list[ExtractionFailure] = []

            async def guarded(domain: str, extractor: Callable[[], T], fallback: Callable[[], T]) -> T:
                fact, failure = await asyncio.to_thread(
                    run_guarded, repo_root.name, domain, extractor, fallback
                )
                if failure is not None:
                    failures.append(failure)
                return fact

            survey = await asyncio.to_thread(
                survey_repo,
                repo_root,
                self.config.tree_ignore_dirs,
                self.config.source_ignore_dirs,
            )

            package_summary = await guarded(
                FactDomain.PACKAGE_SUMMARY.value,
                lambda: extract_package_summary(survey),
                lambda: PackageSummary(name=repo_root.name),
            )
            metadata = await guarded(
                "inventory",
                lambda: extract_repo_metadata(survey, scan_root, package_summary),
                lambda: self._fallback_metadata(scan_root, survey, package_summary),
            )

            api_surface, db_models, env_vars, quality = await asyncio.gather(
                guarded(
                    FactDomain.API_SURFACE.value,
                    lambda: extract_api_surface(survey, package_summary),
                    ApiSurface,
                ),
                guarded(FactDomain.DB_MODELS.value, lambda: extract_db_models(survey), DbModelSummary),
                guarded(FactDomain.ENV_VARS.value, lambda: extract_env_vars(survey), EnvVarSummary),
                guarded(
                    FactDomain.QUALITY_SIGNALS.value,
                    lambda: extract_quality_signals(survey, package_summary, self.config.quality),
                    QualitySignals,
                ),
            )

            dependencies = await guarded(
                "dependencies",
                lambda: extract_dependencies(
                    survey, package_summary, env_vars, self.config.dependencies
                ),
                lambda: DependencyFacts([], DependenciesExternal(), DependenciesInternal()),
            )
            domain_terms = await guarded(
                FactDomain.DOMAIN_TERMS.value,
                lambda: rank_domain_terms(
                    survey, api_surface.routes, db_models, self.config.domain
                ),
                DomainTerms,
            )

        logger.info(
            "Scanned %s: %d route(s), %d entit(ies)",
            metadata.name,
            len(api_surface.routes),
            len(db_models.entities),
        )

        facts = RepoFacts(
            metadata=metadata,
            package_summary=package_summary,
            routes=list(api_surface.routes),
            api_surface=api_surface,
            domain_terms=domain_terms,
            db_models=db_models,
            outbound_calls=dependencies.outbound_calls,
            dependencies_external=dependencies.external,
            dependencies_internal=dependencies.internal,
            env_vars=env_vars,
            quality_signals=quality,
        )
        return facts, failures

    @staticmethod
    def _fallback_metadata(
        scan_root: Path, survey: RepoSurvey, package_summary: PackageSummary
    ) -> RepoMetadata:
        relative_path = Path(os.path.relpath(survey.root, scan_root)).as_posix()
        return RepoMetadata(
            name=package_summary.name,
            root_path=str(survey.root),
            relative_path=relative_path or ".",
        )


# =============================================================================
# Consumers of the current view
# =============================================================================


def load_document_inputs(store: SnapshotStore, metadata: RepoMetadata) -> RepoDocumentInputs:
    """Load the current facts of one repository; unusable files load as None."""
    name = metadata.name
    return RepoDocumentInputs(
        metadata=metadata,
        package_summary=store.load_fact(name, FactDomain.PACKAGE_SUMMARY, PackageSummary),
        api_surface=store.load_fact(name, FactDomain.API_SURFACE, ApiSurface),
        domain_terms=store.load_fact(name, FactDomain.DOMAIN_TERMS, DomainTerms),
        db_models=store.load_fact(name, FactDomain.DB_MODELS, DbModelSummary),
        dependencies_external=store.load_fact(
            name, FactDomain.DEPENDENCIES_EXTERNAL, DependenciesExternal
        ),
        dependencies_internal=store.load_fact(
            name, FactDomain.DEPENDENCIES_INTERNAL, DependenciesInternal
        ),
        env_vars=store.load_fact(name, FactDomain.ENV_VARS, EnvVarSummary),
        quality_signals=store.load_fact(name, FactDomain.QUALITY_SIGNALS, QualitySignals),
    )


def summarize_workspace(
    scan_root: Path,
    config: RepoIntelConfig | None = None,
    repo: str | None = None,
    renderer: DocumentRenderer | None = None,
) -> list[Path]:
    """Generate handover documents from the current view.

    Args:
        scan_root: Workspace root
        config: repointel configuration
        repo: Only summarize the repository with this name
        renderer: Markdown renderer

    Returns:
        Paths of the written HANDOVER.md files, in inventory order

    Raises:
        StateNotFoundError: If the workspace was never scanned
        RepoNotFoundError: If ``repo`` matches no inventoried repository
    """
    config = config or RepoIntelConfig()
    renderer = renderer or DocumentRenderer()
    store = SnapshotStore(scan_root, config.state_dir)
    inventory = store.load_inventory()

    selected = [meta for meta in inventory.repos if not repo or meta.name == repo]
    if repo and not selected:
        raise RepoNotFoundError(f"No repo matched --repo={repo}")

    handovers: list[Path] = []
    for metadata in selected:
        documents = renderer.render_repo_documents(load_document_inputs(store, metadata))
        for filename, content in documents.items():
            path = store.write_document(metadata.name, filename, content)
            if filename == "HANDOVER.md":
                handovers.append(path)
        logger.info("Wrote %d documents for %s", len(documents), metadata.name)
    return handovers


def build_service_map(scan_root: Path, config: RepoIntelConfig | None = None) -> Path:
    """Render the organization service map from the current view.

    Raises:
        StateNotFoundError: If the workspace was never scanned
    """
    config = config or RepoIntelConfig()
    store = SnapshotStore(scan_root, config.state_dir)
    inventory = store.load_inventory()
    mermaid = ServiceMapGenerator().generate(inventory, store.load_dependencies_internal(inventory))
    return store.write_service_map(mermaid)

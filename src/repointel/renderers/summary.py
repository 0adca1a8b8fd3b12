"""Narrative builders for per-repository documents.

Turns the current facts of one repository into the sentences and bullet
lists the document templates print. Every fact except the inventory entry is
optional: a builder whose input is missing returns None, which the templates
render as the no-data placeholder.
"""

from dataclasses import dataclass
from typing import Any

from repointel.models.facts import (
    ApiSurface,
    DbModelSummary,
    DependenciesExternal,
    DependenciesInternal,
    DomainTerms,
    EnvVarSummary,
    PackageSummary,
    QualitySignals,
)
from repointel.models.inventory import RepoMetadata

RUN_SCRIPT_CANDIDATES = ("dev", "start", "build", "test", "lint")
MAX_KEY_FLOWS = 5


@dataclass
class RepoDocumentInputs:
    """Current facts of one repository, None where a fact file was unusable."""

    metadata: RepoMetadata
    package_summary: PackageSummary | None = None
    api_surface: ApiSurface | None = None
    domain_terms: DomainTerms | None = None
    db_models: DbModelSummary | None = None
    dependencies_external: DependenciesExternal | None = None
    dependencies_internal: DependenciesInternal | None = None
    env_vars: EnvVarSummary | None = None
    quality_signals: QualitySignals | None = None


# =============================================================================
# Builders
# =============================================================================


def what_it_is(metadata: RepoMetadata, api_surface: ApiSurface | None) -> str | None:
    """One-paragraph identity statement."""
    if api_surface is None:
        return None
    language = metadata.languages[0] if metadata.languages else "unknown stack"
    return (
        f"{metadata.name} is a {metadata.repo_type.value} repository built primarily with "
        f"{language}. It exposes {len(api_surface.routes)} detected HTTP route(s) and "
        f"{len(api_surface.message_consumers)} message consumer(s), and it acts as an owned "
        f"unit inside {metadata.relative_path}."
    )


def business_capability(metadata: RepoMetadata, domain_terms: DomainTerms | None) -> str | None:
    """Capability statement from the top domain terms."""
    if domain_terms is None:
        return None
    terms = [entry.term for entry in domain_terms.top_terms[:6]]
    terms_text = ", ".join(terms) if terms else "no strong domain terms detected yet"
    return (
        f"{metadata.name} owns business logic around {terms_text}. The boundary is inferred "
        "from local APIs/entities and internal dependencies; cross-repo integrations are "
        "treated as consumed capabilities."
    )


def key_flows(
    api_surface: ApiSurface | None,
    db_models: DbModelSummary | None,
    dependencies_external: DependenciesExternal | None,
) -> list[str] | None:
    """Up to five request and message flows."""
    if api_surface is None:
        return None

    entity = db_models.entities[0].name if db_models and db_models.entities else "data model"
    outbound = (
        dependencies_external.outbound_hosts[0]
        if dependencies_external and dependencies_external.outbound_hosts
        else "downstream side effects"
    )

    flows = [
        f"{route.method} {route.path} -> application service -> {entity} persistence -> response"
        for route in api_surface.routes[:3]
    ]
    flows.extend(
        f"Consume {consumer.transport}:{consumer.topic_or_queue} -> domain handler -> {outbound}"
        for consumer in api_surface.message_consumers[:2]
    )
    if flows:
        return flows[:MAX_KEY_FLOWS]
    return ["Startup task -> core logic execution -> internal package interactions"]


def entity_names(db_models: DbModelSummary | None) -> list[str] | None:
    """Entity names."""
    return None if db_models is None else [entity.name for entity in db_models.entities]


def relationship_lines(db_models: DbModelSummary | None) -> list[str] | None:
    """Relationships as "from -> to (relation)"."""
    if db_models is None:
        return None
    return [
        f"{rel.from_entity} -> {rel.to_entity} ({rel.relation})" for rel in db_models.relationships
    ]


def external_interactions(deps: DependenciesExternal | None) -> list[str] | None:
    """Hosts, databases, queues and SDKs, each with a kind prefix."""
    if deps is None:
        return None
    return [
        *(f"HTTP host: {host}" for host in deps.outbound_hosts),
        *(f"Database: {db}" for db in deps.databases),
        *(f"Queue/Event: {queue}" for queue in deps.queues),
        *(f"SDK: {sdk}" for sdk in deps.sdk_usages),
    ]


def internal_interactions(deps: DependenciesInternal | None, with_evidence: bool = True) -> list[str] | None:
    """Interactions as "kind -> target", optionally with their evidence."""
    if deps is None:
        return None
    if with_evidence:
        return [f"{i.kind.value} -> {i.target} ({i.evidence})" for i in deps.interactions]
    return [f"{i.kind.value} -> {i.target}" for i in deps.interactions]


def run_commands(package_summary: PackageSummary | None) -> list[str] | None:
    """Standard scripts as "name: command"."""
    if package_summary is None:
        return None
    commands = [
        f"{name}: {package_summary.scripts[name]}"
        for name in RUN_SCRIPT_CANDIDATES
        if name in package_summary.scripts
    ]
    commands.extend(
        f"{name}: {target}" for name, target in sorted(package_summary.console_scripts.items())
    )
    return commands or ["No standard scripts detected in the manifest"]


def local_run_steps(inputs: RepoDocumentInputs) -> list[str] | None:
    """Run commands followed by the environment variables to set."""
    commands = run_commands(inputs.package_summary)
    if commands is None and inputs.env_vars is None:
        return None
    steps = list(commands or [])
    if inputs.env_vars is not None:
        steps.extend(f"ENV: {name}=<value>" for name in inputs.env_vars.all)
    return steps


def deploy_notes(metadata: RepoMetadata, quality: QualitySignals | None) -> list[str]:
    """Deployment hints from Docker and CI detection."""
    notes = []
    if "docker" in metadata.frameworks:
        notes.append("Dockerfile detected (containerized deployment likely).")
    if quality is not None and quality.ci_configured:
        notes.append("CI configuration detected (.github/workflows or gitlab-ci).")
    return notes or ["No explicit deployment pipeline detected from scanned files."]


def operational_notes(quality: QualitySignals | None) -> list[str] | None:
    """Observability evidence counts."""
    if quality is None:
        return None
    notes = [
        f"{label} signals: {len(signals)}"
        for label, signals in (
            ("Logging", quality.logging_signals),
            ("Metrics", quality.metrics_signals),
            ("Tracing", quality.tracing_signals),
        )
        if signals
    ]
    return notes or ["No explicit logging/metrics/tracing signals were detected."]


def risk_notes(quality: QualitySignals | None) -> list[str] | None:
    """Quality red flags."""
    if quality is None:
        return None
    risks = []
    if not quality.tests_present:
        risks.append("Tests are missing; regression risk is high.")
    if not quality.typing_strict:
        risks.append("Strict type checking is not enabled.")
    if not quality.ci_configured:
        risks.append("CI configuration not detected.")
    if quality.cycles:
        risks.append(f"Import cycles detected: {len(quality.cycles)}.")
    return risks or ["No critical quality red flags detected from static signals."]


def onboarding_checklist(metadata: RepoMetadata, package_summary: PackageSummary | None) -> list[str]:
    """First steps for a new maintainer."""
    scripts = list(package_summary.scripts) if package_summary else []
    entry = scripts[0] if scripts else "dev/start"
    return [
        f"Read README.md and docs/ first in {metadata.name}.",
        "Inspect HANDOVER.md and ARCHITECTURE.md generated in this repo intel pack.",
        f"Run one entry command ({entry}) and one verification command (test/lint).",
        "Walk through three key flows in HANDOVER.md before touching business rules.",
        "Review dependencies_internal.json to understand upstream/downstream service links.",
    ]


def responsibility(inputs: RepoDocumentInputs) -> str | None:
    """Architecture summary paragraph."""
    if inputs.api_surface is None or inputs.domain_terms is None or inputs.db_models is None:
        return None
    terms = ", ".join(entry.term for entry in inputs.domain_terms.top_terms[:5]) or "detected domains"
    return (
        f"{inputs.metadata.name} owns {inputs.metadata.repo_type.value} responsibilities around "
        f"{terms}. It exposes {len(inputs.api_surface.routes)} route(s), consumes "
        f"{len(inputs.api_surface.message_consumers)} message stream(s), and maintains "
        f"{len(inputs.db_models.entities)} detected data entity(ies)."
    )


def scorecard(quality: QualitySignals | None) -> list[str] | None:
    """Boolean health indicators."""
    if quality is None:
        return None
    return [
        f"Tests present: {str(quality.tests_present).lower()}",
        f"CI configured: {str(quality.ci_configured).lower()}",
        f"Lint configured: {str(quality.lint_configured).lower()}",
        f"Format configured: {str(quality.format_configured).lower()}",
        f"Strict typing: {str(quality.typing_strict).lower()}",
        f"Import cycles: {len(quality.cycles)}",
    ]


# =============================================================================
# Template context
# =============================================================================


def build_document_context(inputs: RepoDocumentInputs) -> dict[str, Any]:
    """Assemble the context shared by every per-repository template.

    Args:
        inputs: Loaded facts for one repository

    Returns:
        Template context; list and text values are None where data is missing
    """
    metadata = inputs.metadata
    api = inputs.api_surface
    quality = inputs.quality_signals
    flows = key_flows(api, inputs.db_models, inputs.dependencies_external)

    return {
        "repo": metadata,
        "what_it_is": what_it_is(metadata, api),
        "business_capability": business_capability(metadata, inputs.domain_terms),
        "responsibility": responsibility(inputs),
        "key_flows": flows,
        "top_flows": flows[:3] if flows is not None else None,
        "entities": entity_names(inputs.db_models),
        "relationships": relationship_lines(inputs.db_models),
        "external_interactions": external_interactions(inputs.dependencies_external),
        "outbound_hosts": inputs.dependencies_external.outbound_hosts
        if inputs.dependencies_external
        else None,
        "internal_interactions": internal_interactions(inputs.dependencies_internal),
        "internal_links": internal_interactions(inputs.dependencies_internal, with_evidence=False),
        "local_run_steps": local_run_steps(inputs),
        "run_commands": run_commands(inputs.package_summary),
        "setup": [
            f"Package manager: {metadata.package_manager}",
            *(f"Framework: {framework}" for framework in metadata.frameworks),
        ],
        "env_placeholders": [f"{name}=<safe-placeholder>" for name in inputs.env_vars.all]
        if inputs.env_vars
        else None,
        "deploy_notes": deploy_notes(metadata, quality),
        "operational_notes": operational_notes(quality),
        "risk_notes": risk_notes(quality),
        "onboarding": onboarding_checklist(metadata, inputs.package_summary),
        "business_rules": [f"{r.method} {r.path} ({r.file})" for r in api.routes[:8]]
        if api
        else None,
        "scorecard": scorecard(quality),
        "hotspots": [f"{h.file} ({h.lines} lines)" for h in quality.largest_files]
        if quality
        else None,
        "deepest_folders": quality.deepest_folders if quality else None,
        "cycles": quality.cycles if quality else None,
        "api": api,
        "domain_terms": inputs.domain_terms,
    }

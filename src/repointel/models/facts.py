"""Per-repository fact structures.

One dataclass per fact domain plus the small records they contain. Every type
serializes with ``to_dict()`` (snake_case keys, lists already in canonical
order) and reads back with ``from_dict()``, which returns ``None`` for any
value that does not have the persisted shape.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Self

from repointel.models.validation import (
    FactShapeError,
    require_bool,
    require_int,
    require_list,
    require_mapping,
    require_str,
    require_str_list,
    require_str_map,
)

logger = logging.getLogger(__name__)


class FactDomain(Enum):
    """Fact domains persisted per repository, in write order."""

    PACKAGE_SUMMARY = "package_summary"
    ROUTES = "routes"
    API_SURFACE = "api_surface"
    DOMAIN_TERMS = "domain_terms"
    DB_MODELS = "db_models"
    OUTBOUND_CALLS = "outbound_calls"
    DEPENDENCIES_EXTERNAL = "dependencies_external"
    DEPENDENCIES_INTERNAL = "dependencies_internal"
    ENV_VARS = "env_vars"
    QUALITY_SIGNALS = "quality_signals"

    @property
    def filename(self) -> str:
        """File name under a repository's raw directory."""
        return f"{self.value}.json"


class FactModel:
    """Mixin giving dataclasses a validating ``from_dict``."""

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        raise NotImplementedError

    @classmethod
    def from_dict(cls, data: Any) -> Self | None:
        """Build an instance from decoded JSON.

        Args:
            data: Any decoded JSON value

        Returns:
            Typed instance, or None if the value has the wrong shape
        """
        try:
            return cls._parse(require_mapping(data, cls.__name__))
        except FactShapeError as e:
            logger.debug("Rejected %s: %s", cls.__name__, e)
            return None


def _items(data: dict[str, Any], key: str, item_type: type[FactModel]) -> list[Any]:
    return [item_type._parse(require_mapping(item, key)) for item in require_list(data, key)]


# =============================================================================
# Package summary
# =============================================================================


@dataclass
class PackageSummary(FactModel):
    """Manifest facts shared by several extractors.

    Attributes:
        name: Package name (repository folder name if no manifest names it)
        scripts: Script name to command (package.json scripts)
        dependencies: Runtime dependency names, sorted
        dev_dependencies: Development dependency names, sorted
        workspaces: Workspace globs declared by a mono-repo manifest
        console_scripts: Executable name to target (package.json bin,
            pyproject [project.scripts])
    """

    name: str
    scripts: dict[str, str] = field(default_factory=dict)
    dependencies: list[str] = field(default_factory=list)
    dev_dependencies: list[str] = field(default_factory=list)
    workspaces: list[str] = field(default_factory=list)
    console_scripts: dict[str, str] = field(default_factory=dict)

    @property
    def all_dependencies(self) -> list[str]:
        """Runtime and development dependency names together."""
        return [*self.dependencies, *self.dev_dependencies]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "scripts": dict(sorted(self.scripts.items())),
            "dependencies": self.dependencies,
            "dev_dependencies": self.dev_dependencies,
            "workspaces": self.workspaces,
            "console_scripts": dict(sorted(self.console_scripts.items())),
        }

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            name=require_str(data, "name"),
            scripts=require_str_map(data, "scripts"),
            dependencies=require_str_list(data, "dependencies"),
            dev_dependencies=require_str_list(data, "dev_dependencies"),
            workspaces=require_str_list(data, "workspaces"),
            console_scripts=require_str_map(data, "console_scripts")
            if "console_scripts" in data
            else {},
        )


# =============================================================================
# API surface
# =============================================================================


@dataclass
class RouteDescriptor(FactModel):
    """A detected HTTP route.

    Attributes:
        method: Uppercase HTTP method (ALL for catch-all handlers)
        path: Normalized path, always starting with "/"
        file: Repo-relative source file
        style: Detection style (express-like, nestjs, fastapi, flask, next, unknown)
    """

    method: str
    path: str
    file: str
    style: str = "unknown"

    @property
    def sort_key(self) -> tuple[str, str, str]:
        """Canonical ordering and identity key."""
        return (self.method, self.path, self.file)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "method": self.method,
            "path": self.path,
            "file": self.file,
            "style": self.style,
        }

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            method=require_str(data, "method"),
            path=require_str(data, "path"),
            file=require_str(data, "file"),
            style=require_str(data, "style"),
        )


@dataclass
class MessageConsumer(FactModel):
    """A message/event subscription."""

    transport: str
    topic_or_queue: str
    file: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "transport": self.transport,
            "topic_or_queue": self.topic_or_queue,
            "file": self.file,
        }

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            transport=require_str(data, "transport"),
            topic_or_queue=require_str(data, "topic_or_queue"),
            file=require_str(data, "file"),
        )


@dataclass
class CronJob(FactModel):
    """A scheduled job declaration."""

    schedule: str
    file: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"schedule": self.schedule, "file": self.file}

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(schedule=require_str(data, "schedule"), file=require_str(data, "file"))


@dataclass
class CliEntrypoint(FactModel):
    """A command-line entry declared by a manifest."""

    name: str
    command: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"name": self.name, "command": self.command}

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(name=require_str(data, "name"), command=require_str(data, "command"))


@dataclass
class ApiSurface(FactModel):
    """Everything a repository exposes or subscribes to.

    Attributes:
        routes: HTTP routes sorted by (method, path, file)
        message_consumers: Queue/topic subscriptions
        cron_jobs: Scheduled jobs
        cli_entrypoints: Manifest-declared CLI commands
        frontend_pages: Page routes inferred from pages/app directories
        api_clients: HTTP/GraphQL client libraries in use
        auth_signals: Authentication libraries and markers
    """

    routes: list[RouteDescriptor] = field(default_factory=list)
    message_consumers: list[MessageConsumer] = field(default_factory=list)
    cron_jobs: list[CronJob] = field(default_factory=list)
    cli_entrypoints: list[CliEntrypoint] = field(default_factory=list)
    frontend_pages: list[str] = field(default_factory=list)
    api_clients: list[str] = field(default_factory=list)
    auth_signals: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "routes": [route.to_dict() for route in self.routes],
            "message_consumers": [consumer.to_dict() for consumer in self.message_consumers],
            "cron_jobs": [job.to_dict() for job in self.cron_jobs],
            "cli_entrypoints": [entry.to_dict() for entry in self.cli_entrypoints],
            "frontend_pages": self.frontend_pages,
            "api_clients": self.api_clients,
            "auth_signals": self.auth_signals,
        }

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            routes=_items(data, "routes", RouteDescriptor),
            message_consumers=_items(data, "message_consumers", MessageConsumer),
            cron_jobs=_items(data, "cron_jobs", CronJob),
            cli_entrypoints=_items(data, "cli_entrypoints", CliEntrypoint),
            frontend_pages=require_str_list(data, "frontend_pages"),
            api_clients=require_str_list(data, "api_clients"),
            auth_signals=require_str_list(data, "auth_signals"),
        )


# =============================================================================
# Data model
# =============================================================================


@dataclass
class DataEntity(FactModel):
    """A persisted entity (table, model, document)."""

    name: str
    source: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"name": self.name, "source": self.source}

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(name=require_str(data, "name"), source=require_str(data, "source"))


@dataclass
class DataRelationship(FactModel):
    """A directed relationship between two entities.

    Attributes:
        from_entity: Owning entity
        to_entity: Referenced entity
        relation: Relation kind (relation, foreign-key)
        source: File that declares the relationship
    """

    from_entity: str
    to_entity: str
    relation: str
    source: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "from": self.from_entity,
            "to": self.to_entity,
            "relation": self.relation,
            "source": self.source,
        }

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            from_entity=require_str(data, "from"),
            to_entity=require_str(data, "to"),
            relation=require_str(data, "relation"),
            source=require_str(data, "source"),
        )


@dataclass
class DbModelSummary(FactModel):
    """Entities and relationships in canonical sorted order."""

    entities: list[DataEntity] = field(default_factory=list)
    relationships: list[DataRelationship] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "entities": [entity.to_dict() for entity in self.entities],
            "relationships": [relation.to_dict() for relation in self.relationships],
        }

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            entities=_items(data, "entities", DataEntity),
            relationships=_items(data, "relationships", DataRelationship),
        )


# =============================================================================
# Environment variables
# =============================================================================


@dataclass
class EnvVarSummary(FactModel):
    """Environment variable names read by the code.

    Attributes:
        all: Every referenced name, sorted
        endpoint_like: Names that look like service locations (URL, HOST, ...)
    """

    all: list[str] = field(default_factory=list)
    endpoint_like: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"all": self.all, "endpoint_like": self.endpoint_like}

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            all=require_str_list(data, "all"),
            endpoint_like=require_str_list(data, "endpoint_like"),
        )


# =============================================================================
# Dependencies
# =============================================================================


class InteractionKind(Enum):
    """Kinds of internal interaction edges."""

    HTTP = "http"
    QUEUE = "queue"
    PKG = "pkg"
    DB = "db"
    SDK = "sdk"


@dataclass
class OutboundCall(FactModel):
    """A literal URL found in source code."""

    host: str
    protocol: str
    file: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"host": self.host, "protocol": self.protocol, "file": self.file}

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            host=require_str(data, "host"),
            protocol=require_str(data, "protocol"),
            file=require_str(data, "file"),
        )


@dataclass
class DependenciesExternal(FactModel):
    """Third-party hosts and packages.

    Attributes:
        outbound_hosts: External hosts referenced by URL literals
        sdk_usages: Vendor SDK packages
        databases: Database driver/ORM packages
        queues: Queue/event packages
        third_parties: External parties (currently the external hosts)
    """

    outbound_hosts: list[str] = field(default_factory=list)
    sdk_usages: list[str] = field(default_factory=list)
    databases: list[str] = field(default_factory=list)
    queues: list[str] = field(default_factory=list)
    third_parties: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "outbound_hosts": self.outbound_hosts,
            "sdk_usages": self.sdk_usages,
            "databases": self.databases,
            "queues": self.queues,
            "third_parties": self.third_parties,
        }

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            outbound_hosts=require_str_list(data, "outbound_hosts"),
            sdk_usages=require_str_list(data, "sdk_usages"),
            databases=require_str_list(data, "databases"),
            queues=require_str_list(data, "queues"),
            third_parties=require_str_list(data, "third_parties"),
        )


@dataclass
class Interaction(FactModel):
    """One piece of evidence that a repository talks to an internal party."""

    target: str
    kind: InteractionKind
    evidence: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"target": self.target, "kind": self.kind.value, "evidence": self.evidence}

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        try:
            kind = InteractionKind(require_str(data, "kind"))
        except ValueError as e:
            raise FactShapeError(str(e)) from e
        return cls(
            target=require_str(data, "target"),
            kind=kind,
            evidence=require_str(data, "evidence"),
        )


@dataclass
class DependenciesInternal(FactModel):
    """Same-organization packages and endpoints.

    Attributes:
        internal_packages: Scoped or configured-prefix dependency names
        internal_hosts: URL hosts classified internal
        internal_host_env_vars: Endpoint-like env vars naming internal services
        interactions: Package evidence followed by env-var evidence
    """

    internal_packages: list[str] = field(default_factory=list)
    internal_hosts: list[str] = field(default_factory=list)
    internal_host_env_vars: list[str] = field(default_factory=list)
    interactions: list[Interaction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "internal_packages": self.internal_packages,
            "internal_hosts": self.internal_hosts,
            "internal_host_env_vars": self.internal_host_env_vars,
            "interactions": [interaction.to_dict() for interaction in self.interactions],
        }

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            internal_packages=require_str_list(data, "internal_packages"),
            internal_hosts=require_str_list(data, "internal_hosts")
            if "internal_hosts" in data
            else [],
            internal_host_env_vars=require_str_list(data, "internal_host_env_vars"),
            interactions=_items(data, "interactions", Interaction),
        )


# =============================================================================
# Domain terms
# =============================================================================


@dataclass
class DomainTerm(FactModel):
    """A ranked vocabulary term.

    Attributes:
        term: Lowercase token
        score: Sum of the weights of every occurrence
        sources: Evidence tags (folder, route, entity, relation, type), sorted
    """

    term: str
    score: int
    sources: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"term": self.term, "score": self.score, "sources": self.sources}

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            term=require_str(data, "term"),
            score=require_int(data, "score"),
            sources=require_str_list(data, "sources"),
        )


@dataclass
class DomainTerms(FactModel):
    """Top terms ordered by score descending, then term."""

    top_terms: list[DomainTerm] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"top_terms": [term.to_dict() for term in self.top_terms]}

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(top_terms=_items(data, "top_terms", DomainTerm))


# =============================================================================
# Quality signals
# =============================================================================


@dataclass
class HotspotFile(FactModel):
    """A large source file."""

    file: str
    lines: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"file": self.file, "lines": self.lines}

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(file=require_str(data, "file"), lines=require_int(data, "lines"))


@dataclass
class QualitySignals(FactModel):
    """Static health indicators for one repository.

    Attributes:
        tests_present: At least one test file exists
        test_file_count: Number of test files
        ci_configured: GitHub Actions or GitLab CI configuration exists
        lint_configured: A lint script or linter config exists
        format_configured: A format script or formatter config exists
        typing_strict: TypeScript strict mode or mypy strict is enabled
        largest_files: Top files by line count
        deepest_folders: Top directories by depth
        cycles: Relative-import cycles as "a -> b -> a" chains, sorted
        logging_signals: "label:file" evidence of logging
        metrics_signals: "label:file" evidence of metrics
        tracing_signals: "label:file" evidence of tracing
    """

    tests_present: bool = False
    test_file_count: int = 0
    ci_configured: bool = False
    lint_configured: bool = False
    format_configured: bool = False
    typing_strict: bool = False
    largest_files: list[HotspotFile] = field(default_factory=list)
    deepest_folders: list[str] = field(default_factory=list)
    cycles: list[str] = field(default_factory=list)
    logging_signals: list[str] = field(default_factory=list)
    metrics_signals: list[str] = field(default_factory=list)
    tracing_signals: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "tests_present": self.tests_present,
            "test_file_count": self.test_file_count,
            "ci_configured": self.ci_configured,
            "lint_configured": self.lint_configured,
            "format_configured": self.format_configured,
            "typing_strict": self.typing_strict,
            "largest_files": [hotspot.to_dict() for hotspot in self.largest_files],
            "deepest_folders": self.deepest_folders,
            "cycles": self.cycles,
            "logging_signals": self.logging_signals,
            "metrics_signals": self.metrics_signals,
            "tracing_signals": self.tracing_signals,
        }

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            tests_present=require_bool(data, "tests_present"),
            test_file_count=require_int(data, "test_file_count"),
            ci_configured=require_bool(data, "ci_configured"),
            lint_configured=require_bool(data, "lint_configured"),
            format_configured=require_bool(data, "format_configured"),
            typing_strict=require_bool(data, "typing_strict"),
            largest_files=_items(data, "largest_files", HotspotFile),
            deepest_folders=require_str_list(data, "deepest_folders"),
            cycles=require_str_list(data, "cycles"),
            logging_signals=require_str_list(data, "logging_signals"),
            metrics_signals=require_str_list(data, "metrics_signals"),
            tracing_signals=require_str_list(data, "tracing_signals"),
        )

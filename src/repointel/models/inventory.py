"""Workspace inventory and scan result models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Self

from repointel.models.facts import (
    ApiSurface,
    DbModelSummary,
    DependenciesExternal,
    DependenciesInternal,
    DomainTerms,
    EnvVarSummary,
    FactDomain,
    FactModel,
    OutboundCall,
    PackageSummary,
    QualitySignals,
    RouteDescriptor,
)
from repointel.models.validation import (
    FactShapeError,
    require_list,
    require_mapping,
    require_str,
    require_str_list,
)


class RepoType(Enum):
    """Coarse repository classification."""

    SERVICE = "service"
    LIBRARY = "library"
    INFRA = "infra"
    FRONTEND = "frontend"
    WORKER = "worker"
    DATA = "data"
    MONO_REPO = "mono-repo"
    UNKNOWN = "unknown"


@dataclass
class RepoMetadata(FactModel):
    """Identity and classification of one repository.

    Attributes:
        name: Package name or folder name
        root_path: Absolute repository root
        relative_path: Root relative to the scan root ("." for the root itself)
        languages: Languages ordered by file count descending
        frameworks: Framework tags, sorted
        package_manager: Lockfile-derived package manager tag
        repo_type: Classified repository type
        owner_team: CODEOWNERS handles, sorted
    """

    name: str
    root_path: str
    relative_path: str
    languages: list[str] = field(default_factory=list)
    frameworks: list[str] = field(default_factory=list)
    package_manager: str = "unknown"
    repo_type: RepoType = RepoType.UNKNOWN
    owner_team: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "root_path": self.root_path,
            "relative_path": self.relative_path,
            "languages": self.languages,
            "frameworks": self.frameworks,
            "package_manager": self.package_manager,
            "repo_type": self.repo_type.value,
            "owner_team": self.owner_team,
        }

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        try:
            repo_type = RepoType(require_str(data, "repo_type"))
        except ValueError as e:
            raise FactShapeError(str(e)) from e
        return cls(
            name=require_str(data, "name"),
            root_path=require_str(data, "root_path"),
            relative_path=require_str(data, "relative_path"),
            languages=require_str_list(data, "languages"),
            frameworks=require_str_list(data, "frameworks"),
            package_manager=require_str(data, "package_manager"),
            repo_type=repo_type,
            owner_team=require_str_list(data, "owner_team"),
        )


@dataclass
class Inventory(FactModel):
    """All repositories found by one scan.

    Attributes:
        generated_at: Scan timestamp (ISO 8601, UTC)
        scan_root: Absolute workspace root
        snapshot_id: Identifier of the snapshot this inventory belongs to
        repos: Repository metadata sorted by root path
    """

    generated_at: str
    scan_root: str
    snapshot_id: str
    repos: list[RepoMetadata] = field(default_factory=list)

    @property
    def repo_names(self) -> list[str]:
        """Repository names in inventory order."""
        return [repo.name for repo in self.repos]

    def find(self, name: str) -> RepoMetadata | None:
        """Look up a repository by name."""
        for repo in self.repos:
            if repo.name == name:
                return repo
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "generated_at": self.generated_at,
            "scan_root": self.scan_root,
            "snapshot_id": self.snapshot_id,
            "repos": [repo.to_dict() for repo in self.repos],
        }

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> Self:
        return cls(
            generated_at=require_str(data, "generated_at"),
            scan_root=require_str(data, "scan_root"),
            snapshot_id=require_str(data, "snapshot_id"),
            repos=[
                RepoMetadata._parse(require_mapping(item, "repos"))
                for item in require_list(data, "repos")
            ],
        )


@dataclass
class RepoFacts:
    """Metadata plus every fact domain extracted for one repository."""

    metadata: RepoMetadata
    package_summary: PackageSummary
    routes: list[RouteDescriptor] = field(default_factory=list)
    api_surface: ApiSurface = field(default_factory=ApiSurface)
    domain_terms: DomainTerms = field(default_factory=DomainTerms)
    db_models: DbModelSummary = field(default_factory=DbModelSummary)
    outbound_calls: list[OutboundCall] = field(default_factory=list)
    dependencies_external: DependenciesExternal = field(default_factory=DependenciesExternal)
    dependencies_internal: DependenciesInternal = field(default_factory=DependenciesInternal)
    env_vars: EnvVarSummary = field(default_factory=EnvVarSummary)
    quality_signals: QualitySignals = field(default_factory=QualitySignals)

    @property
    def name(self) -> str:
        """Repository name."""
        return self.metadata.name

    def documents(self) -> dict[FactDomain, Any]:
        """JSON-ready value of every fact domain, in FactDomain order."""
        return {
            FactDomain.PACKAGE_SUMMARY: self.package_summary.to_dict(),
            FactDomain.ROUTES: [route.to_dict() for route in self.routes],
            FactDomain.API_SURFACE: self.api_surface.to_dict(),
            FactDomain.DOMAIN_TERMS: self.domain_terms.to_dict(),
            FactDomain.DB_MODELS: self.db_models.to_dict(),
            FactDomain.OUTBOUND_CALLS: [call.to_dict() for call in self.outbound_calls],
            FactDomain.DEPENDENCIES_EXTERNAL: self.dependencies_external.to_dict(),
            FactDomain.DEPENDENCIES_INTERNAL: self.dependencies_internal.to_dict(),
            FactDomain.ENV_VARS: self.env_vars.to_dict(),
            FactDomain.QUALITY_SIGNALS: self.quality_signals.to_dict(),
        }


@dataclass
class ExtractionFailure:
    """Non-fatal failure of one extractor on one repository.

    The affected fact domain is persisted as its empty value; the failure
    itself is only logged and reported, never written into the facts.

    Attributes:
        repo: Repository name (or root path if the name is not known yet)
        domain: Extractor that failed
        message: Error description
    """

    repo: str
    domain: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"repo": self.repo, "domain": self.domain, "message": self.message}


@dataclass
class ScanResult:
    """Outcome of one scan."""

    inventory: Inventory
    repos: list[RepoFacts] = field(default_factory=list)
    failures: list[ExtractionFailure] = field(default_factory=list)

    @property
    def snapshot_id(self) -> str:
        """Identifier the scan was persisted under."""
        return self.inventory.snapshot_id

"""repointel data models.

This module exports the structures persisted in a snapshot:
- Inventory / RepoMetadata: which repositories were scanned and what they are
- Per-domain facts: ApiSurface, DbModelSummary, DependenciesExternal, ...
- RepoFacts: every fact domain for one repository
- DiffReport / DiffSection: comparison of two snapshots
"""

from repointel.models.diff import DiffReport, DiffSection
from repointel.models.facts import (
    ApiSurface,
    CliEntrypoint,
    CronJob,
    DataEntity,
    DataRelationship,
    DbModelSummary,
    DependenciesExternal,
    DependenciesInternal,
    DomainTerm,
    DomainTerms,
    EnvVarSummary,
    FactDomain,
    HotspotFile,
    Interaction,
    InteractionKind,
    MessageConsumer,
    OutboundCall,
    PackageSummary,
    QualitySignals,
    RouteDescriptor,
)
from repointel.models.inventory import (
    ExtractionFailure,
    Inventory,
    RepoFacts,
    RepoMetadata,
    RepoType,
    ScanResult,
)

__all__ = [
    "ApiSurface",
    "CliEntrypoint",
    "CronJob",
    "DataEntity",
    "DataRelationship",
    "DbModelSummary",
    "DependenciesExternal",
    "DependenciesInternal",
    "DiffReport",
    "DiffSection",
    "DomainTerm",
    "DomainTerms",
    "EnvVarSummary",
    "ExtractionFailure",
    "FactDomain",
    "HotspotFile",
    "Interaction",
    "InteractionKind",
    "Inventory",
    "MessageConsumer",
    "OutboundCall",
    "PackageSummary",
    "QualitySignals",
    "RepoFacts",
    "RepoMetadata",
    "RepoType",
    "RouteDescriptor",
    "ScanResult",
]

"""repointel analyzers - deterministic fact extractors.

Each extractor is a pure function of a repository survey (plus upstream
facts where it needs them) returning one fact structure. Missing or
malformed optional inputs mean "no data", never an error.

Extractors:
- Inventory: manifests, languages, frameworks, package manager, ownership
- API surface: routes, pages, consumers, cron jobs, clients, auth
- Data model: Prisma, SQL DDL, ORM entities
- Environment variables
- Dependencies: outbound hosts, internal/external classification
- Domain terms: weighted vocabulary ranking
- Quality signals: tests, CI, tooling, hotspots, import cycles
"""

from repointel.analyzers.base import run_guarded
from repointel.analyzers.db_models import extract_db_models
from repointel.analyzers.dependencies import DependencyFacts, extract_dependencies
from repointel.analyzers.domain_terms import rank_domain_terms
from repointel.analyzers.env_vars import extract_env_vars
from repointel.analyzers.import_cycles import detect_import_cycles
from repointel.analyzers.inventory import extract_package_summary, extract_repo_metadata
from repointel.analyzers.quality import extract_quality_signals
from repointel.analyzers.routes import extract_api_surface

__all__ = [
    "DependencyFacts",
    "detect_import_cycles",
    "extract_api_surface",
    "extract_db_models",
    "extract_dependencies",
    "extract_env_vars",
    "extract_package_summary",
    "extract_quality_signals",
    "extract_repo_metadata",
    "rank_domain_terms",
    "run_guarded",
]

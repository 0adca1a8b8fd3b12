"""repointel configuration system.

Configuration is YAML-based with per-run CLI overrides (--root, --snapshot-id).
Supports environment variable substitution (${VAR}) in config files.

Every setting has a default that reproduces the documented extraction
behaviour, so a workspace without any config file scans deterministically.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.repo-intel/config.yaml
3. ./repo-intel.yaml
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_STATE_DIR = ".repo-intel"

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_INTERNAL_HOST_TOKENS: tuple[str, ...] = (
    "internal",
    "svc",
    "service",
    "cluster.local",
    ".local",
)

DEFAULT_STOP_WORDS: frozenset[str] = frozenset(
    {
        "src", "lib", "utils", "common", "api", "service", "services",
        "controller", "controllers", "models", "model", "index", "types",
        "type", "node", "app", "core", "shared", "module", "modules", "test",
        "tests", "spec", "impl", "internal", "external", "config", "scripts",
        "assets", "references", "docs", "dist", "build", "public", "private",
        "main",
    }
)

# Directories never descended into while discovering repository roots
DEFAULT_IGNORE_DIRS: tuple[str, ...] = ("node_modules",)

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class ScanConfig:
    """Scan orchestration settings.

    Attributes:
        max_concurrency: Repositories extracted at the same time
        ignore_dirs: Extra directory names skipped during repository discovery
    """

    max_concurrency: int = 8
    ignore_dirs: tuple[str, ...] = DEFAULT_IGNORE_DIRS

    def __post_init__(self) -> None:
        """Validate scan configuration."""
        if self.max_concurrency < 1:
            raise ValueError(
                f"scan.max_concurrency must be at least 1 (got {self.max_concurrency})"
            )
        self.ignore_dirs = tuple(self.ignore_dirs)


@dataclass
class DependencyConfig:
    """Internal/external classification settings.

    The host heuristic is a plain substring match on the host string; a public
    host that happens to contain "service" is classified internal.

    Attributes:
        internal_host_tokens: Substrings marking a host as internal
        internal_package_prefixes: Dependency name prefixes treated as internal
            packages in addition to scoped (``@scope/name``) packages
    """

    internal_host_tokens: tuple[str, ...] = DEFAULT_INTERNAL_HOST_TOKENS
    internal_package_prefixes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Normalize token lists."""
        self.internal_host_tokens = tuple(self.internal_host_tokens)
        self.internal_package_prefixes = tuple(self.internal_package_prefixes)


@dataclass(frozen=True)
class DomainRankerConfig:
    """Read-only tables for the domain term ranker.

    Attributes:
        folder_weight: Weight of top-level folder names
        route_weight: Weight of route path segments
        entity_weight: Weight of data entity names
        relation_weight: Weight of relationship endpoint names
        type_weight: Weight of declared type names
        max_terms: Number of ranked terms kept
        min_token_length: Shortest token kept
        stop_words: Tokens never ranked
    """

    folder_weight: int = 2
    route_weight: int = 3
    entity_weight: int = 4
    relation_weight: int = 3
    type_weight: int = 1
    max_terms: int = 30
    min_token_length: int = 3
    stop_words: frozenset[str] = DEFAULT_STOP_WORDS

    def __post_init__(self) -> None:
        """Validate ranker configuration."""
        weights = (
            self.folder_weight,
            self.route_weight,
            self.entity_weight,
            self.relation_weight,
            self.type_weight,
        )
        if any(weight < 0 for weight in weights):
            raise ValueError("domain weights must be non-negative")
        if self.max_terms < 1:
            raise ValueError(f"domain.max_terms must be at least 1 (got {self.max_terms})")


@dataclass
class QualityConfig:
    """Quality signal settings.

    Attributes:
        top_n: Size of the largest-file and deepest-folder lists
    """

    top_n: int = 5

    def __post_init__(self) -> None:
        """Validate quality configuration."""
        if self.top_n < 1:
            raise ValueError(f"quality.top_n must be at least 1 (got {self.top_n})")


@dataclass
class RepoIntelConfig:
    """Top-level repointel configuration.

    Attributes:
        state_dir: Name of the state directory created under the scan root
        scan: Orchestration settings
        dependencies: Host and package classification
        domain: Domain term ranker tables
        quality: Quality signal settings
    """

    state_dir: str = DEFAULT_STATE_DIR
    scan: ScanConfig = field(default_factory=ScanConfig)
    dependencies: DependencyConfig = field(default_factory=DependencyConfig)
    domain: DomainRankerConfig = field(default_factory=DomainRankerConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)

    _config_path: Path | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate the state directory name."""
        if not self.state_dir or "/" in self.state_dir or "\\" in self.state_dir:
            raise ValueError(f"state_dir must be a plain directory name (got {self.state_dir!r})")

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path

    @property
    def source_ignore_dirs(self) -> frozenset[str]:
        """Directory names skipped when listing source files."""
        return frozenset(
            {
                "node_modules", "dist", "build", ".next", "coverage", ".turbo",
                ".git", "__pycache__", ".venv", "venv", self.state_dir,
            }
        )

    @property
    def tree_ignore_dirs(self) -> frozenset[str]:
        """Directory names skipped when listing all files and directories."""
        return frozenset({"node_modules", ".git", self.state_dir})

    @property
    def discovery_ignore_dirs(self) -> frozenset[str]:
        """Directory names skipped while discovering repository roots."""
        return frozenset({*self.scan.ignore_dirs, self.state_dir})


# =============================================================================
# Environment Variable Substitution
# =============================================================================

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax, e.g. ``state_dir: "${REPO_INTEL_STATE}"``.

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted

    Raises:
        ValueError: If a referenced variable is not set
    """
    if isinstance(value, str):

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return _ENV_VAR_PATTERN.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.repo-intel/config.yaml
    2. ./repo-intel.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / DEFAULT_STATE_DIR / "config.yaml",
        start_path / "repo-intel.yaml",
    ]

    for candidate in candidates:
        if candidate.is_file():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    return value


def load_config_from_dict(data: dict[str, Any]) -> RepoIntelConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        RepoIntelConfig instance

    Raises:
        ValueError: If a section has the wrong shape or an invalid value
    """
    data = substitute_env_vars(data)

    defaults = RepoIntelConfig()

    scan_data = _section(data, "scan")
    scan = ScanConfig(
        max_concurrency=int(scan_data.get("max_concurrency", defaults.scan.max_concurrency)),
        ignore_dirs=tuple(
            dict.fromkeys([*DEFAULT_IGNORE_DIRS, *scan_data.get("ignore_dirs", [])])
        ),
    )

    deps_data = _section(data, "dependencies")
    dependencies = DependencyConfig(
        internal_host_tokens=tuple(
            deps_data.get("internal_host_tokens", defaults.dependencies.internal_host_tokens)
        ),
        internal_package_prefixes=tuple(deps_data.get("internal_package_prefixes", [])),
    )

    domain_data = _section(data, "domain")
    weights = domain_data.get("weights") or {}
    if not isinstance(weights, dict):
        raise ValueError("Config key 'domain.weights' must be a mapping")
    ranker = defaults.domain
    domain = DomainRankerConfig(
        folder_weight=int(weights.get("folder", ranker.folder_weight)),
        route_weight=int(weights.get("route", ranker.route_weight)),
        entity_weight=int(weights.get("entity", ranker.entity_weight)),
        relation_weight=int(weights.get("relation", ranker.relation_weight)),
        type_weight=int(weights.get("type", ranker.type_weight)),
        max_terms=int(domain_data.get("max_terms", ranker.max_terms)),
        stop_words=ranker.stop_words
        | frozenset(str(word).lower() for word in domain_data.get("extra_stop_words", [])),
    )

    quality_data = _section(data, "quality")
    quality = QualityConfig(top_n=int(quality_data.get("top_n", defaults.quality.top_n)))

    return RepoIntelConfig(
        state_dir=str(data.get("state_dir", DEFAULT_STATE_DIR)),
        scan=scan,
        dependencies=dependencies,
        domain=domain,
        quality=quality,
    )


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> RepoIntelConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        RepoIntelConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is None:
        return RepoIntelConfig()

    with open(found_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {found_path}")

    config = load_config_from_dict(data)
    config._config_path = found_path
    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return """# repointel configuration

# State directory created under every scanned workspace root
state_dir: ".repo-intel"

scan:
  max_concurrency: 8       # repositories extracted at the same time
  ignore_dirs: []          # extra directory names skipped during discovery

dependencies:
  # A host is internal when it contains any of these substrings
  internal_host_tokens: ["internal", "svc", "service", "cluster.local", ".local"]
  # Dependency prefixes treated as internal packages (scoped @org/* always are)
  internal_package_prefixes: []

domain:
  max_terms: 30
  weights:
    folder: 2
    route: 3
    entity: 4
    relation: 3
    type: 1
  extra_stop_words: []

quality:
  top_n: 5
"""

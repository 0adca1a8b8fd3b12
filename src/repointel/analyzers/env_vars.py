"""Environment variable detection."""

from repointel.analyzers.base import PatternRule, rule
from repointel.models.facts import EnvVarSummary
from repointel.utils.fs import RepoSurvey
from repointel.utils.text import unique_sorted

ENV_ACCESS_RULES: list[PatternRule] = [
    rule("node", r"(?:process\.env|import\.meta\.env)\.([A-Z0-9_]+)"),
    rule("node-index", r"process\.env\[\s*['\"`]([A-Z0-9_]+)['\"`]\s*\]"),
    rule("python-environ", r"os\.environ\[\s*['\"]([A-Z0-9_]+)['\"]\s*\]"),
    rule("python-environ-get", r"os\.environ\.get\(\s*['\"]([A-Z0-9_]+)['\"]"),
    rule("python-getenv", r"os\.getenv\(\s*['\"]([A-Z0-9_]+)['\"]"),
]

# Substrings marking a variable as a service location
ENDPOINT_MARKERS = ("URL", "HOST", "ENDPOINT", "BASE")


def is_endpoint_like(name: str) -> bool:
    """Check whether a variable name looks like it points at a service."""
    return any(marker in name for marker in ENDPOINT_MARKERS)


def extract_env_vars(survey: RepoSurvey) -> EnvVarSummary:
    """Collect environment variable names read anywhere in the source.

    Args:
        survey: Repository listing with source text

    Returns:
        EnvVarSummary with unique sorted names
    """
    names = [
        match.group(1)
        for _, code in survey.iter_sources()
        for access in ENV_ACCESS_RULES
        for match in access.pattern.finditer(code)
    ]
    all_names = unique_sorted(name for name in names if name)
    return EnvVarSummary(
        all=all_names,
        endpoint_like=[name for name in all_names if is_endpoint_like(name)],
    )

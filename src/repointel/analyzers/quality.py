"""Quality signal detection.

Static health indicators: tests, CI, lint/format/type-check setup, size
hotspots, folder depth, import cycles and observability evidence.
"""

import json
import logging
import re
from pathlib import PurePosixPath

from repointel.analyzers.base import PatternRule, rule
from repointel.analyzers.import_cycles import detect_import_cycles
from repointel.config import QualityConfig
from repointel.models.facts import HotspotFile, PackageSummary, QualitySignals
from repointel.utils.fs import RepoSurvey

logger = logging.getLogger(__name__)

TEST_FILE_PATTERNS = [
    re.compile(r"\.(?:test|spec)\.(?:ts|tsx|js|jsx|mjs|cjs)$"),
    re.compile(r"(?:^|/)__tests__/"),
    re.compile(r"(?:^|/)test_[^/]*\.py$"),
    re.compile(r"_test\.py$"),
]

GITLAB_CI_FILE = ".gitlab-ci.yml"
WORKFLOW_DIR = ".github/workflows"

LINT_SCRIPTS = ("lint",)
LINT_CONFIG_FILES = (
    ".eslintrc",
    ".eslintrc.js",
    ".eslintrc.cjs",
    ".eslintrc.json",
    ".eslintrc.yml",
    ".eslintrc.yaml",
    "eslint.config.js",
    "eslint.config.mjs",
    "eslint.config.cjs",
    "ruff.toml",
    ".ruff.toml",
    ".flake8",
)
FORMAT_SCRIPTS = ("format", "prettier")
FORMAT_CONFIG_FILES = (
    ".prettierrc",
    ".prettierrc.json",
    ".prettierrc.js",
    ".prettierrc.yml",
    "prettier.config.js",
    "prettier.config.cjs",
)

HOTSPOT_EXTENSIONS = frozenset(
    {".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".java", ".rb", ".rs"}
)
HOTSPOT_EXCLUDED_DIRS = frozenset({"dist", "build"})
LINE_BREAK = re.compile(r"\r?\n")

# One rule per signal kind; the label prefixes every "label:path" entry
LOGGING_RULE: PatternRule = rule(
    "log", r"(pino|winston|logger\.|console\.log|logging\.getLogger|structlog)"
)
METRICS_RULE: PatternRule = rule("metrics", r"(prom-client|/metrics|meter|prometheus_client)")
TRACING_RULE: PatternRule = rule("tracing", r"(opentelemetry|traceparent|span)")

MYPY_CONFIG_FILES = ("mypy.ini", "setup.cfg", "pyproject.toml")


def _toml_section(text: str, header: str) -> str:
    match = re.search(
        rf"^\[{re.escape(header)}\]\s*$(.*?)(?=^\[|\Z)", text, re.MULTILINE | re.DOTALL
    )
    return match.group(1) if match else ""


# =============================================================================
# Individual signals
# =============================================================================


def is_test_file(rel_path: str) -> bool:
    """Check whether a path follows a JS/TS or Python test naming convention."""
    return any(pattern.search(rel_path) for pattern in TEST_FILE_PATTERNS)


def has_ci_configuration(survey: RepoSurvey) -> bool:
    """GitHub Actions workflows or a GitLab CI file exist."""
    workflows = survey.root / WORKFLOW_DIR
    if workflows.is_dir():
        for pattern in ("*.yml", "*.yaml"):
            if any(path.is_file() for path in workflows.glob(pattern)):
                return True
    return survey.exists(GITLAB_CI_FILE)


def has_lint_configuration(survey: RepoSurvey, package_summary: PackageSummary) -> bool:
    """A lint script, a linter config file or a ``[tool.ruff]`` table exists."""
    if any(script in package_summary.scripts for script in LINT_SCRIPTS):
        return True
    if any(survey.exists(name) for name in LINT_CONFIG_FILES):
        return True
    pyproject = survey.read("pyproject.toml")
    return "[tool.ruff" in pyproject or "[tool.flake8" in pyproject


def has_format_configuration(survey: RepoSurvey, package_summary: PackageSummary) -> bool:
    """A format script, a prettier config file or a ``[tool.black]`` table exists."""
    if any(script in package_summary.scripts for script in FORMAT_SCRIPTS):
        return True
    if any(survey.exists(name) for name in FORMAT_CONFIG_FILES):
        return True
    return "[tool.black]" in survey.read("pyproject.toml")


def has_strict_typing(survey: RepoSurvey) -> bool:
    """TypeScript ``compilerOptions.strict`` is true or mypy runs in strict mode.

    A tsconfig that is not plain JSON (comments, trailing commas) counts as
    not strict.
    """
    tsconfig = survey.read("tsconfig.json")
    if tsconfig:
        try:
            compiler_options = json.loads(tsconfig).get("compilerOptions")
        except (json.JSONDecodeError, AttributeError):
            compiler_options = None
        if isinstance(compiler_options, dict) and compiler_options.get("strict") is True:
            return True

    for name in MYPY_CONFIG_FILES:
        text = survey.read(name)
        if not text:
            continue
        header = "tool.mypy" if name == "pyproject.toml" else "mypy"
        if re.search(r"^\s*strict\s*=\s*true\s*$", _toml_section(text, header), re.I | re.M):
            return True
    return False


def count_lines(text: str) -> int:
    """Line count as split on line breaks; an empty file has 0 lines."""
    return 0 if not text else len(LINE_BREAK.split(text))


def largest_files(survey: RepoSurvey, top_n: int) -> list[HotspotFile]:
    """Top ``top_n`` code files by line count, ties broken by path."""
    measured = [
        HotspotFile(file=rel_path, lines=count_lines(survey.read(rel_path)))
        for rel_path in survey.all_files
        if PurePosixPath(rel_path).suffix in HOTSPOT_EXTENSIONS
        and not HOTSPOT_EXCLUDED_DIRS.intersection(rel_path.split("/")[:-1])
    ]
    measured.sort(key=lambda hotspot: (-hotspot.lines, hotspot.file))
    return measured[:top_n]


def deepest_folders(survey: RepoSurvey, top_n: int) -> list[str]:
    """Top ``top_n`` directories by depth, ties broken by path."""
    ranked = sorted(survey.all_dirs, key=lambda directory: (-len(directory.split("/")), directory))
    return ranked[:top_n]


def signal_evidence(survey: RepoSurvey, signal: PatternRule) -> list[str]:
    """``label:path`` for every source file matching a signal pattern, sorted."""
    return sorted(
        f"{signal.label}:{rel_path}"
        for rel_path, code in survey.iter_sources()
        if signal.pattern.search(code)
    )


# =============================================================================
# Extractor
# =============================================================================


def extract_quality_signals(
    survey: RepoSurvey,
    package_summary: PackageSummary,
    config: QualityConfig,
) -> QualitySignals:
    """Compute the quality signals of a repository.

    Args:
        survey: Repository listing with source text
        package_summary: Manifest facts (scripts)
        config: List sizes

    Returns:
        QualitySignals
    """
    test_files = [rel_path for rel_path in survey.all_files if is_test_file(rel_path)]

    signals = QualitySignals(
        tests_present=bool(test_files),
        test_file_count=len(test_files),
        ci_configured=has_ci_configuration(survey),
        lint_configured=has_lint_configuration(survey, package_summary),
        format_configured=has_format_configuration(survey, package_summary),
        typing_strict=has_strict_typing(survey),
        largest_files=largest_files(survey, config.top_n),
        deepest_folders=deepest_folders(survey, config.top_n),
        cycles=detect_import_cycles(survey),
        logging_signals=signal_evidence(survey, LOGGING_RULE),
        metrics_signals=signal_evidence(survey, METRICS_RULE),
        tracing_signals=signal_evidence(survey, TRACING_RULE),
    )

    logger.debug(
        "Quality for %s: %d test files, ci=%s, %d cycle(s)",
        package_summary.name,
        signals.test_file_count,
        signals.ci_configured,
        len(signals.cycles),
    )
    return signals

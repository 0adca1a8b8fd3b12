"""Inventory extraction: manifests, languages, frameworks and repo type.

Reads the package manifests of a repository (package.json, pyproject.toml,
requirements.txt) into a ``PackageSummary`` and classifies the repository into
``RepoMetadata``. Every other extractor that needs scripts or dependency
names consumes the summary produced here, so this runs first for each repo.
"""

import json
import logging
import os
import re
from collections import Counter
from pathlib import Path
from typing import Any

from repointel.models.facts import PackageSummary
from repointel.models.inventory import RepoMetadata, RepoType
from repointel.utils.fs import RepoSurvey
from repointel.utils.text import unique_sorted

logger = logging.getLogger(__name__)

# =============================================================================
# Detection tables
# =============================================================================

LANGUAGE_BY_EXTENSION: dict[str, str] = {
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".mjs": "JavaScript",
    ".cjs": "JavaScript",
    ".py": "Python",
    ".go": "Go",
    ".java": "Java",
    ".rb": "Ruby",
    ".rs": "Rust",
    ".tf": "Terraform",
    ".sql": "SQL",
    ".yaml": "YAML",
    ".yml": "YAML",
    ".json": "JSON",
    ".md": "Markdown",
}

# Dependency name -> framework tag
KNOWN_FRAMEWORKS: dict[str, str] = {
    "next": "next",
    "react": "react",
    "vite": "vite",
    "express": "express",
    "fastify": "fastify",
    "@nestjs/core": "nest",
    "koa": "koa",
    "hono": "hono",
    "prisma": "prisma",
    "typeorm": "typeorm",
    "sequelize": "sequelize",
    "mongoose": "mongoose",
    "kafkajs": "kafka",
    "@aws-sdk/client-sqs": "sqs",
    "amqplib": "rabbitmq",
    "bullmq": "bullmq",
    "fastapi": "fastapi",
    "flask": "flask",
    "django": "django",
    "celery": "celery",
    "sqlalchemy": "sqlalchemy",
}

# Checked in order; the first lockfile present wins
LOCKFILES: list[tuple[str, str]] = [
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
    ("bun.lockb", "bun"),
    ("poetry.lock", "poetry"),
    ("uv.lock", "uv"),
    ("Pipfile.lock", "pipenv"),
    ("requirements.txt", "pip"),
]

CODEOWNERS_LOCATIONS = ("CODEOWNERS", ".github/CODEOWNERS", "docs/CODEOWNERS")

INFRA_FOLDERS = frozenset({"terraform", "infra", "helm", "k8s"})
FRONTEND_FRAMEWORKS = frozenset({"next", "react", "vite"})
WORKER_FRAMEWORKS = frozenset({"bullmq", "celery"})
SERVICE_FRAMEWORKS = frozenset({"express", "fastify", "nest", "koa", "hono", "fastapi", "flask", "django"})
DATA_FRAMEWORKS = frozenset({"prisma", "typeorm", "sequelize", "mongoose", "sqlalchemy"})

_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")
_QUOTED = re.compile(r"\"([^\"]*)\"|'([^']*)'")


# =============================================================================
# Manifest parsing
# =============================================================================


class ManifestParser:
    """Builds a ``PackageSummary`` from the manifests found at a repo root.

    Supported manifests:
    - package.json (npm, yarn, pnpm, bun)
    - pyproject.toml ([project] and [tool.poetry] tables)
    - requirements.txt

    Malformed manifests are logged at debug level and contribute nothing.
    """

    def __init__(self, survey: RepoSurvey) -> None:
        """Initialize the manifest parser.

        Args:
            survey: Repository listing
        """
        self.survey = survey

    def parse(self) -> PackageSummary:
        """Parse every manifest and merge the results.

        Returns:
            PackageSummary with sorted, deduplicated dependency lists
        """
        name = ""
        scripts: dict[str, str] = {}
        console_scripts: dict[str, str] = {}
        workspaces: list[str] = []
        dependencies: list[str] = []
        dev_dependencies: list[str] = []

        package_json = self._parse_package_json()
        if package_json is not None:
            name = self._as_str(package_json.get("name"))
            scripts = self._as_str_map(package_json.get("scripts"))
            dependencies.extend(self._as_str_map(package_json.get("dependencies")))
            dev_dependencies.extend(self._as_str_map(package_json.get("devDependencies")))
            workspaces = self._parse_workspaces(package_json.get("workspaces"))
            console_scripts.update(self._parse_bin(package_json.get("bin"), name))

        pyproject = self.survey.read("pyproject.toml")
        if pyproject:
            py_name, py_deps, py_dev_deps, py_scripts = self._parse_pyproject_toml(pyproject)
            name = name or py_name
            dependencies.extend(py_deps)
            dev_dependencies.extend(py_dev_deps)
            for script_name, target in py_scripts.items():
                console_scripts.setdefault(script_name, target)

        requirements = self.survey.read("requirements.txt")
        if requirements:
            dependencies.extend(self._parse_requirements_txt(requirements))

        return PackageSummary(
            name=name or self.survey.root.name,
            scripts=scripts,
            dependencies=unique_sorted(dependencies),
            dev_dependencies=unique_sorted(dev_dependencies),
            workspaces=workspaces,
            console_scripts=console_scripts,
        )

    # =========================================================================
    # package.json
    # =========================================================================

    def _parse_package_json(self) -> dict[str, Any] | None:
        content = self.survey.read("package.json")
        if not content:
            return None
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.debug("Malformed package.json in %s: %s", self.survey.root, e)
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _as_str(value: Any) -> str:
        return value if isinstance(value, str) else ""

    @staticmethod
    def _as_str_map(value: Any) -> dict[str, str]:
        """Keep only non-empty string values of an object."""
        if not isinstance(value, dict):
            return {}
        return {
            str(key): item
            for key, item in value.items()
            if isinstance(item, str) and item
        }

    @staticmethod
    def _parse_workspaces(value: Any) -> list[str]:
        # yarn also accepts {"packages": [...]}
        if isinstance(value, dict):
            value = value.get("packages")
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]

    @staticmethod
    def _parse_bin(value: Any, package_name: str) -> dict[str, str]:
        if isinstance(value, str) and value:
            bin_name = package_name.rsplit("/", 1)[-1] or "bin"
            return {bin_name: value}
        return ManifestParser._as_str_map(value)

    # =========================================================================
    # pyproject.toml
    # =========================================================================

    @staticmethod
    def _table(content: str, header: str) -> str:
        """Body of a TOML table, up to the next table header."""
        match = re.search(
            rf"^\[{re.escape(header)}\][ \t]*$(.*?)(?=^\[|\Z)",
            content,
            re.MULTILINE | re.DOTALL,
        )
        return match.group(1) if match else ""

    @staticmethod
    def _string_array(body: str, key: str) -> list[str]:
        match = re.search(
            rf"^\s*{re.escape(key)}\s*=\s*\[(.*?)\]\s*$",
            body,
            re.MULTILINE | re.DOTALL,
        )
        if not match:
            return []
        return [double or single for double, single in _QUOTED.findall(match.group(1))]

    @staticmethod
    def _requirement_name(requirement: str) -> str | None:
        match = _REQUIREMENT_NAME.match(requirement)
        return match.group(1).lower() if match else None

    def _parse_pyproject_toml(
        self, content: str
    ) -> tuple[str, list[str], list[str], dict[str, str]]:
        """Parse pyproject.toml.

        Returns:
            Tuple of (name, dependencies, dev_dependencies, console scripts)
        """
        project = self._table(content, "project")
        name_match = re.search(r'^\s*name\s*=\s*["\']([^"\']+)["\']', project, re.MULTILINE)
        name = name_match.group(1) if name_match else ""

        deps = [
            dep_name
            for requirement in self._string_array(project, "dependencies")
            if (dep_name := self._requirement_name(requirement))
        ]

        dev_deps: list[str] = []
        optional = self._table(content, "project.optional-dependencies")
        for group in re.findall(r"^\s*([A-Za-z0-9_-]+)\s*=\s*\[", optional, re.MULTILINE):
            for requirement in self._string_array(optional, group):
                if dep_name := self._requirement_name(requirement):
                    dev_deps.append(dep_name)

        # Poetry keeps dependencies as table keys
        poetry = self._table(content, "tool.poetry.dependencies")
        for key in re.findall(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)\s*=", poetry, re.MULTILINE):
            if key.lower() != "python":
                deps.append(key.lower())

        scripts: dict[str, str] = {}
        for script_name, target in re.findall(
            r'^\s*([A-Za-z0-9_.-]+)\s*=\s*["\']([^"\']+)["\']',
            self._table(content, "project.scripts"),
            re.MULTILINE,
        ):
            scripts[script_name] = target

        return name, deps, dev_deps, scripts

    # =========================================================================
    # requirements.txt
    # =========================================================================

    def _parse_requirements_txt(self, content: str) -> list[str]:
        deps: list[str] = []
        for line in content.splitlines():
            line = line.strip()

            # Skip comments, options (-r, -e, --index-url) and empty lines
            if not line or line.startswith(("#", "-")):
                continue

            if dep_name := self._requirement_name(line):
                deps.append(dep_name)
        return deps


def extract_package_summary(survey: RepoSurvey) -> PackageSummary:
    """Convenience function to parse a repository's manifests.

    Args:
        survey: Repository listing

    Returns:
        PackageSummary (defaults if no manifest is readable)
    """
    return ManifestParser(survey).parse()


# =============================================================================
# Metadata
# =============================================================================


def detect_languages(all_files: tuple[str, ...] | list[str]) -> list[str]:
    """Languages ordered by file count descending, then by name."""
    counts: Counter[str] = Counter()
    for rel_path in all_files:
        language = LANGUAGE_BY_EXTENSION.get(Path(rel_path).suffix.lower())
        if language:
            counts[language] += 1
    return [language for language, _ in sorted(counts.items(), key=lambda item: (-item[1], item[0]))]


def detect_frameworks(survey: RepoSurvey, package_summary: PackageSummary) -> list[str]:
    """Framework tags implied by dependencies, plus docker for a Dockerfile."""
    frameworks = [
        KNOWN_FRAMEWORKS[dep]
        for dep in package_summary.all_dependencies
        if dep in KNOWN_FRAMEWORKS
    ]
    if survey.exists("Dockerfile"):
        frameworks.append("docker")
    return unique_sorted(frameworks)


def detect_package_manager(survey: RepoSurvey) -> str:
    """Package manager tag from the first lockfile present."""
    for lockfile, manager in LOCKFILES:
        if survey.exists(lockfile):
            return manager
    return "unknown"


def detect_owner_team(survey: RepoSurvey) -> list[str]:
    """``@owner`` handles listed in the repository's CODEOWNERS file."""
    for location in CODEOWNERS_LOCATIONS:
        content = survey.read(location)
        if content:
            break
    else:
        return []

    owners: list[str] = []
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        owners.extend(token for token in line.split()[1:] if token.startswith("@"))
    return unique_sorted(owners)


def classify_repo_type(
    package_summary: PackageSummary,
    frameworks: list[str],
    top_level_folders: tuple[str, ...] | list[str],
) -> RepoType:
    """Classify a repository; the first matching rule wins.

    Args:
        package_summary: Parsed manifests
        frameworks: Detected framework tags
        top_level_folders: Top-level directory names

    Returns:
        RepoType classification
    """
    tags = set(frameworks)
    scripts = package_summary.scripts

    if package_summary.workspaces:
        return RepoType.MONO_REPO
    if INFRA_FOLDERS & set(top_level_folders):
        return RepoType.INFRA
    if FRONTEND_FRAMEWORKS & tags:
        return RepoType.FRONTEND
    if WORKER_FRAMEWORKS & tags or "worker" in scripts:
        return RepoType.WORKER
    if SERVICE_FRAMEWORKS & tags or "start" in scripts:
        return RepoType.SERVICE
    if DATA_FRAMEWORKS & tags:
        return RepoType.DATA
    if "build" in scripts or package_summary.all_dependencies:
        return RepoType.LIBRARY
    return RepoType.UNKNOWN


def extract_repo_metadata(
    survey: RepoSurvey,
    scan_root: Path,
    package_summary: PackageSummary,
) -> RepoMetadata:
    """Build the inventory entry for one repository.

    Args:
        survey: Repository listing
        scan_root: Workspace root the scan started from
        package_summary: Output of ``extract_package_summary``

    Returns:
        RepoMetadata for the inventory
    """
    frameworks = detect_frameworks(survey, package_summary)
    relative_path = Path(os.path.relpath(survey.root, scan_root)).as_posix()

    return RepoMetadata(
        name=package_summary.name,
        root_path=str(survey.root),
        relative_path=relative_path or ".",
        languages=detect_languages(survey.all_files),
        frameworks=frameworks,
        package_manager=detect_package_manager(survey),
        repo_type=classify_repo_type(package_summary, frameworks, survey.top_level_folders),
        owner_team=detect_owner_team(survey),
    )

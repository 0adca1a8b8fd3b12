"""Shared pytest fixtures for repointel tests.

Fixtures are organized by category:
- Workspace fixtures: Temporary multi-repo workspaces
- Survey fixtures: In-memory repository listings for extractor tests
- Configuration fixtures: Default configs
"""

from collections.abc import Callable
from pathlib import Path
from types import MappingProxyType

import pytest

from repointel.config import RepoIntelConfig
from repointel.utils.fs import RepoSurvey, survey_repo
from tests.fixtures import CATALOG_SERVICE, ORDERS_SERVICE, RepoFiles, write_repo

# =============================================================================
# Workspace Fixtures
# =============================================================================


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create an empty workspace root."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def orders_workspace(workspace: Path) -> Path:
    """Workspace holding the orders service only."""
    write_repo(workspace / "orders", ORDERS_SERVICE)
    return workspace


@pytest.fixture
def two_repo_workspace(workspace: Path) -> Path:
    """Workspace where orders depends on the catalog service package."""
    write_repo(workspace / "orders", ORDERS_SERVICE)
    write_repo(workspace / "catalog", CATALOG_SERVICE)
    return workspace


# =============================================================================
# Survey Fixtures
# =============================================================================


@pytest.fixture
def make_survey(tmp_path: Path) -> Callable[[RepoFiles], RepoSurvey]:
    """Return a factory that writes files and surveys them like a scan would."""
    config = RepoIntelConfig()

    def factory(files: RepoFiles) -> RepoSurvey:
        root = write_repo(tmp_path / "repo", files)
        return survey_repo(root, config.tree_ignore_dirs, config.source_ignore_dirs)

    return factory


@pytest.fixture
def source_survey() -> Callable[[dict[str, str]], RepoSurvey]:
    """Return a factory for surveys built from source text only (no disk)."""

    def factory(sources: dict[str, str]) -> RepoSurvey:
        paths = tuple(sorted(sources))
        return RepoSurvey(
            root=Path("/nonexistent/repo"),
            source_files=paths,
            all_files=paths,
            sources=MappingProxyType(dict(sources)),
        )

    return factory


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def default_config() -> RepoIntelConfig:
    """Return the default configuration."""
    return RepoIntelConfig()

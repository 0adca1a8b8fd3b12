"""File system surveyor.

Read-only traversal of a workspace: discovers repository roots and
enumerates each repository's files, directories and source text once so that
every extractor works from the same immutable listing.

Walks use an explicit work-list instead of recursion so very deep trees do not
hit the interpreter's recursion limit.
"""

import json
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)

VCS_MARKER = ".git"

SOURCE_EXTENSIONS = frozenset({".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".py"})


# =============================================================================
# Reading and writing
# =============================================================================


def read_text_if_exists(path: Path) -> str:
    """Read a UTF-8 text file, returning an empty string if it is unreadable."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""


def read_json_if_exists(path: Path) -> Any | None:
    """Read a JSON document, returning None if missing or malformed."""
    content = read_text_if_exists(path)
    if not content:
        return None
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        logger.debug("Ignoring malformed JSON: %s", path)
        return None


def dump_json(value: Any) -> str:
    """Serialize a value the way every state file is written."""
    return json.dumps(value, indent=2, ensure_ascii=False) + "\n"


def write_text(path: Path, content: str) -> None:
    """Write text, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def write_json(path: Path, value: Any) -> None:
    """Write a JSON document with two-space indentation and a final newline."""
    write_text(path, dump_json(value))


# =============================================================================
# Repository discovery
# =============================================================================


def discover_repo_roots(scan_root: Path, ignore_dirs: frozenset[str]) -> list[Path]:
    """Find every directory under ``scan_root`` that holds a ``.git`` marker.

    The scan root itself counts when it is a repository. Nested repositories
    are discovered too; ignored directory names are never entered.

    Args:
        scan_root: Workspace root
        ignore_dirs: Directory names to skip (dependency caches, state dir)

    Returns:
        Absolute repository roots, deduplicated and sorted
    """
    scan_root = scan_root.resolve()
    roots: set[Path] = set()
    pending: list[Path] = [scan_root]

    while pending:
        directory = pending.pop()
        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", directory, e)
            continue

        for entry in entries:
            if entry.name == VCS_MARKER:
                roots.add(Path(directory))
                continue
            if entry.name in ignore_dirs:
                continue
            if entry.is_dir(follow_symlinks=False):
                pending.append(Path(entry.path))

    return sorted(roots, key=lambda root: root.as_posix())


# =============================================================================
# Repository survey
# =============================================================================


@dataclass(frozen=True)
class RepoSurvey:
    """Immutable listing of one repository shared by all extractors.

    Attributes:
        root: Absolute repository root
        source_files: Repo-relative posix paths of source files
        all_files: Repo-relative posix paths of every non-hidden file
        all_dirs: Repo-relative posix paths of every non-hidden directory
        top_level_folders: Non-hidden directories directly under the root
        sources: Decoded text of every source file
    """

    root: Path
    source_files: tuple[str, ...] = ()
    all_files: tuple[str, ...] = ()
    all_dirs: tuple[str, ...] = ()
    top_level_folders: tuple[str, ...] = ()
    sources: MappingProxyType[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def iter_sources(self, suffixes: frozenset[str] | None = None) -> Iterator[tuple[str, str]]:
        """Yield (relative path, text) pairs in path order.

        Args:
            suffixes: Only yield files with one of these extensions
        """
        for rel_path in self.source_files:
            if suffixes is None or Path(rel_path).suffix in suffixes:
                yield rel_path, self.sources.get(rel_path, "")

    def read(self, rel_path: str) -> str:
        """Read any repository file by relative path ("" if unreadable)."""
        if rel_path in self.sources:
            return self.sources[rel_path]
        return read_text_if_exists(self.root / rel_path)

    def exists(self, rel_path: str) -> bool:
        """Check whether a repo-relative path is a file."""
        return (self.root / rel_path).is_file()


def _walk_tree(root: Path, ignore_dirs: frozenset[str]) -> tuple[list[str], list[str]]:
    """List non-hidden files and directories under ``root``."""
    files: list[str] = []
    dirs: list[str] = []
    pending: list[tuple[Path, str]] = [(root, "")]

    while pending:
        directory, prefix = pending.pop()
        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", directory, e)
            continue

        for entry in entries:
            if entry.name.startswith(".") or entry.name in ignore_dirs:
                continue
            rel_path = f"{prefix}{entry.name}"
            if entry.is_dir(follow_symlinks=False):
                dirs.append(rel_path)
                pending.append((Path(entry.path), f"{rel_path}/"))
            elif entry.is_file():
                files.append(rel_path)

    return sorted(files), sorted(dirs)


def list_top_level_folders(root: Path) -> list[str]:
    """Non-hidden directories directly under ``root``, sorted."""
    try:
        entries = list(os.scandir(root))
    except OSError:
        return []
    return sorted(
        entry.name
        for entry in entries
        if entry.is_dir() and not entry.name.startswith(".")
    )


def survey_repo(
    repo_root: Path,
    tree_ignore_dirs: frozenset[str],
    source_ignore_dirs: frozenset[str],
) -> RepoSurvey:
    """Enumerate a repository once for all extractors.

    Args:
        repo_root: Repository root
        tree_ignore_dirs: Names skipped for the full file/directory listing
        source_ignore_dirs: Names that exclude a file from the source list
            when they appear anywhere in its path

    Returns:
        RepoSurvey with sorted listings and pre-read source text
    """
    all_files, all_dirs = _walk_tree(repo_root, tree_ignore_dirs)

    source_files = [
        rel_path
        for rel_path in all_files
        if Path(rel_path).suffix in SOURCE_EXTENSIONS
        and not any(part in source_ignore_dirs for part in rel_path.split("/")[:-1])
    ]
    sources = {rel_path: read_text_if_exists(repo_root / rel_path) for rel_path in source_files}

    logger.debug(
        "Surveyed %s: %d files, %d source files, %d directories",
        repo_root.name,
        len(all_files),
        len(source_files),
        len(all_dirs),
    )

    return RepoSurvey(
        root=repo_root,
        source_files=tuple(source_files),
        all_files=tuple(all_files),
        all_dirs=tuple(all_dirs),
        top_level_folders=tuple(list_top_level_folders(repo_root)),
        sources=MappingProxyType(sources),
    )

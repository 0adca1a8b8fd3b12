"""Relative-import cycle detection.

Builds a file-level graph from relative imports only (``./x`` in JS/TS,
``from .x import y`` in Python); imports that do not resolve to a scanned
source file are ignored. Cycles are found with an iterative depth-first
search over an integer node table, so long import chains cannot exhaust the
interpreter stack.
"""

import logging
import posixpath
import re

from repointel.analyzers.base import JS_SUFFIXES, PY_SUFFIXES
from repointel.utils.fs import RepoSurvey

logger = logging.getLogger(__name__)

CYCLE_SEPARATOR = " -> "

JS_RELATIVE_IMPORTS = [
    re.compile(r"from\s+['\"`](\.[^'\"`]+)['\"`]"),
    re.compile(r"require\(\s*['\"`](\.[^'\"`]+)['\"`]\s*\)"),
    re.compile(r"^\s*import\s+['\"`](\.[^'\"`]+)['\"`]", re.MULTILINE),
]
JS_RESOLUTION_SUFFIXES = ("", ".ts", ".tsx", ".js", ".jsx")
JS_INDEX_FILES = ("index.ts", "index.tsx", "index.js")

PY_RELATIVE_IMPORT = re.compile(
    r"^\s*from\s+(\.+)([\w.]*)\s+import\s+([^\n#]+)", re.MULTILINE
)


# =============================================================================
# Import resolution
# =============================================================================


def resolve_js_import(importer: str, specifier: str, known: set[str]) -> str | None:
    """Resolve a relative JS/TS import to a known source file.

    Candidates are tried in order: the path as written, the path with each
    source extension, then an index file inside the path.

    Args:
        importer: Repo-relative path of the importing file
        specifier: Relative import specifier ("./x", "../y/z")
        known: Repo-relative paths of all source files

    Returns:
        Resolved repo-relative path, or None
    """
    base = posixpath.normpath(posixpath.join(posixpath.dirname(importer), specifier))
    candidates = [f"{base}{suffix}" for suffix in JS_RESOLUTION_SUFFIXES]
    candidates.extend(posixpath.join(base, index) for index in JS_INDEX_FILES)
    for candidate in candidates:
        if candidate in known:
            return candidate
    return None


def _resolve_py_module(package_dir: str, dotted: str, known: set[str]) -> str | None:
    base = posixpath.join(package_dir, *dotted.split(".")) if dotted else package_dir
    base = posixpath.normpath(base)
    for candidate in (f"{base}.py", posixpath.join(base, "__init__.py")):
        if candidate in known:
            return candidate
    return None


def resolve_py_imports(importer: str, dots: str, module: str, names: str, known: set[str]) -> list[str]:
    """Resolve one ``from <dots><module> import <names>`` statement.

    With an explicit module the statement resolves to that module; with a
    bare ``from . import a, b`` each imported name is tried as a submodule.
    """
    package_dir = posixpath.dirname(importer)
    for _ in range(len(dots) - 1):
        package_dir = posixpath.dirname(package_dir)

    if module:
        resolved = _resolve_py_module(package_dir, module, known)
        return [resolved] if resolved else []

    targets = []
    for name in names.replace("(", " ").replace(")", " ").split(","):
        name = name.strip().split(" as ")[0].strip()
        if name and name != "*":
            resolved = _resolve_py_module(package_dir, name, known)
            if resolved:
                targets.append(resolved)
    return targets


def build_import_graph(survey: RepoSurvey) -> dict[str, list[str]]:
    """Map each source file to the sorted source files it imports relatively."""
    known = set(survey.source_files)
    graph: dict[str, list[str]] = {}

    for rel_path, code in survey.iter_sources():
        targets: set[str] = set()
        suffix = posixpath.splitext(rel_path)[1]

        if suffix in JS_SUFFIXES:
            for pattern in JS_RELATIVE_IMPORTS:
                for match in pattern.finditer(code):
                    resolved = resolve_js_import(rel_path, match.group(1), known)
                    if resolved:
                        targets.add(resolved)
        elif suffix in PY_SUFFIXES:
            for match in PY_RELATIVE_IMPORT.finditer(code):
                targets.update(
                    resolve_py_imports(rel_path, match.group(1), match.group(2), match.group(3), known)
                )

        graph[rel_path] = sorted(targets)

    return graph


# =============================================================================
# Cycle search
# =============================================================================


def find_cycles(graph: dict[str, list[str]]) -> list[str]:
    """Find import cycles with an iterative depth-first search.

    Every back edge to a node on the current path yields one cycle, written as
    the path from that node back to itself ("a -> b -> a"). Nodes are visited
    in sorted order and each node is expanded at most once.

    Args:
        graph: Adjacency lists keyed by file

    Returns:
        Unique cycle strings, sorted
    """
    names = sorted(set(graph) | {target for targets in graph.values() for target in targets})
    index = {name: position for position, name in enumerate(names)}
    adjacency = [[index[target] for target in graph.get(name, [])] for name in names]

    visited = [False] * len(names)
    on_path = [False] * len(names)
    cycles: set[str] = set()

    for start in range(len(names)):
        if visited[start]:
            continue

        visited[start] = on_path[start] = True
        path = [start]
        # (node, position of the next neighbour to explore)
        stack = [(start, 0)]

        while stack:
            node, position = stack[-1]
            if position < len(adjacency[node]):
                stack[-1] = (node, position + 1)
                neighbour = adjacency[node][position]
                if on_path[neighbour]:
                    loop = path[path.index(neighbour) :] + [neighbour]
                    cycles.add(CYCLE_SEPARATOR.join(names[n] for n in loop))
                elif not visited[neighbour]:
                    visited[neighbour] = on_path[neighbour] = True
                    path.append(neighbour)
                    stack.append((neighbour, 0))
            else:
                stack.pop()
                path.pop()
                on_path[node] = False

    return sorted(cycles)


def detect_import_cycles(survey: RepoSurvey) -> list[str]:
    """Relative-import cycles of a repository.

    Args:
        survey: Repository listing with source text

    Returns:
        Sorted cycle strings such as "a.ts -> b.ts -> a.ts"
    """
    cycles = find_cycles(build_import_graph(survey))
    if cycles:
        logger.debug("Found %d import cycle(s) in %s", len(cycles), survey.root.name)
    return cycles

"""Unit tests for relative-import cycle detection."""

from collections.abc import Callable

from repointel.analyzers.import_cycles import (
    build_import_graph,
    detect_import_cycles,
    find_cycles,
    resolve_js_import,
)
from repointel.utils.fs import RepoSurvey

SurveyFactory = Callable[[dict[str, str]], RepoSurvey]


class TestFindCycles:
    """Tests for the cycle search on plain graphs."""

    def test_three_node_cycle(self) -> None:
        """Test a -> b -> c -> a is reported once from its smallest node."""
        graph = {"a": ["b"], "b": ["c"], "c": ["a"]}

        assert find_cycles(graph) == ["a -> b -> c -> a"]

    def test_self_cycle(self) -> None:
        """Test a file importing itself."""
        assert find_cycles({"a": ["a"]}) == ["a -> a"]

    def test_acyclic(self) -> None:
        """Test a DAG has no cycles."""
        graph = {"a": ["b", "c"], "b": ["c"], "c": []}

        assert find_cycles(graph) == []

    def test_long_chain_does_not_recurse(self) -> None:
        """Test a chain far deeper than the recursion limit."""
        size = 5000
        graph = {f"n{i:05d}": [f"n{i + 1:05d}"] for i in range(size)}
        graph[f"n{size:05d}"] = ["n00000"]

        [cycle] = find_cycles(graph)

        assert cycle.startswith("n00000 -> n00001")
        assert cycle.endswith(f"n{size:05d} -> n00000")


class TestImportGraph:
    """Tests for building the import graph from source."""

    def test_resolve_js_import(self) -> None:
        """Test extension and index resolution."""
        known = {"src/a.ts", "src/lib/index.ts"}

        assert resolve_js_import("src/b.ts", "./a", known) == "src/a.ts"
        assert resolve_js_import("src/b.ts", "./lib", known) == "src/lib/index.ts"
        assert resolve_js_import("src/b.ts", "../missing", known) is None

    def test_js_cycle(self, source_survey: SurveyFactory) -> None:
        """Test import, require and side-effect imports."""
        survey = source_survey(
            {
                "src/a.ts": "import { b } from './b';\n",
                "src/b.js": "const c = require('./c');\n",
                "src/c.ts": "import './a';\nimport express from 'express';\n",
            }
        )

        assert detect_import_cycles(survey) == ["src/a.ts -> src/b.js -> src/c.ts -> src/a.ts"]

    def test_python_relative_imports(self, source_survey: SurveyFactory) -> None:
        """Test module and bare-name relative imports."""
        survey = source_survey(
            {
                "pkg/__init__.py": "",
                "pkg/models.py": "from .services import helper\n",
                "pkg/services/__init__.py": "from .. import models, missing\n",
                "pkg/api.py": "from os import path\n",
            }
        )

        graph = build_import_graph(survey)

        assert graph["pkg/models.py"] == ["pkg/services/__init__.py"]
        assert graph["pkg/services/__init__.py"] == ["pkg/models.py"]
        assert graph["pkg/api.py"] == []
        assert detect_import_cycles(survey) == [
            "pkg/models.py -> pkg/services/__init__.py -> pkg/models.py"
        ]

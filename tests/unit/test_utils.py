"""Unit tests for text, file system and git helpers."""

from pathlib import Path

from repointel.config import RepoIntelConfig
from repointel.utils.fs import (
    discover_repo_roots,
    dump_json,
    read_json_if_exists,
    survey_repo,
)
from repointel.utils.git import NO_REVISION, detect_revision
from repointel.utils.text import slugify, tokenize, unique_sorted
from tests.fixtures import write_repo


class TestTokenize:
    """Tests for identifier tokenization."""

    def test_camel_case_split(self) -> None:
        """Test camel-case boundaries become tokens."""
        assert tokenize("OrderLineItem") == ["order", "line", "item"]

    def test_separators_and_short_tokens(self) -> None:
        """Test separators split and short tokens are dropped."""
        assert tokenize("user_id") == ["user"]
        assert tokenize("billing-api/v2.invoices") == ["billing", "api", "invoices"]

    def test_stop_words(self) -> None:
        """Test stop words are discarded."""
        assert tokenize("src/orders", stop_words=frozenset({"src"})) == ["orders"]

    def test_repetition_preserved(self) -> None:
        """Test every occurrence is returned."""
        assert tokenize("order order") == ["order", "order"]


class TestTextHelpers:
    """Tests for slugs and sorting."""

    def test_slugify(self) -> None:
        """Test slugs collapse punctuation into dashes."""
        assert slugify("@Acme/Billing API") == "acme-billing-api"
        assert slugify("@@@") == ""

    def test_unique_sorted(self) -> None:
        """Test deduplication and lexicographic order."""
        assert unique_sorted(["b", "a", "b"]) == ["a", "b"]


class TestDiscoverRepoRoots:
    """Tests for repository discovery."""

    def test_finds_nested_repos(self, tmp_path: Path) -> None:
        """Test repositories at any depth are found in path order."""
        write_repo(tmp_path / "b-service", {"index.js": ""})
        write_repo(tmp_path / "group" / "a-lib", {"index.js": ""})
        write_repo(tmp_path / "plain", {"README.md": ""}, git=False)

        roots = discover_repo_roots(tmp_path, RepoIntelConfig().discovery_ignore_dirs)

        assert [root.name for root in roots] == ["b-service", "a-lib"]

    def test_scan_root_itself_is_a_repo(self, tmp_path: Path) -> None:
        """Test the workspace root counts when it has a marker."""
        write_repo(tmp_path, {"index.js": ""})

        roots = discover_repo_roots(tmp_path, frozenset())

        assert roots == [tmp_path.resolve()]

    def test_ignored_dirs_not_entered(self, tmp_path: Path) -> None:
        """Test dependency caches are skipped."""
        write_repo(tmp_path / "node_modules" / "dep", {"index.js": ""})
        write_repo(tmp_path / "app", {"index.js": ""})

        roots = discover_repo_roots(tmp_path, RepoIntelConfig().discovery_ignore_dirs)

        assert [root.name for root in roots] == ["app"]

    def test_hidden_dirs_are_entered(self, tmp_path: Path) -> None:
        """Test repositories below hidden directories are discovered."""
        write_repo(tmp_path / ".cache" / "vendored", {"index.js": ""})

        roots = discover_repo_roots(tmp_path, RepoIntelConfig().discovery_ignore_dirs)

        assert [root.name for root in roots] == ["vendored"]


class TestSurveyRepo:
    """Tests for repository survey."""

    def test_listing(self, tmp_path: Path) -> None:
        """Test files, directories and sources are listed and sorted."""
        config = RepoIntelConfig()
        root = write_repo(
            tmp_path / "svc",
            {
                "src/app.ts": "export const a = 1;\n",
                "src/util.py": "x = 1\n",
                "README.md": "# svc\n",
                ".env": "SECRET=1\n",
                ".github/workflows/ci.yml": "on: push\n",
                "dist/bundle.js": "var a;\n",
                "node_modules/x/index.js": "",
            },
        )

        survey = survey_repo(root, config.tree_ignore_dirs, config.source_ignore_dirs)

        assert survey.all_files == ("README.md", "dist/bundle.js", "src/app.ts", "src/util.py")
        assert survey.source_files == ("src/app.ts", "src/util.py")
        assert survey.all_dirs == ("dist", "src")
        assert survey.top_level_folders == ("dist", "node_modules", "src")
        assert survey.sources["src/app.ts"] == "export const a = 1;\n"

    def test_read_and_exists(self, tmp_path: Path) -> None:
        """Test reading non-source files through the survey."""
        config = RepoIntelConfig()
        root = write_repo(tmp_path / "svc", {"package.json": "{}"})

        survey = survey_repo(root, config.tree_ignore_dirs, config.source_ignore_dirs)

        assert survey.read("package.json") == "{}"
        assert survey.read("missing.txt") == ""
        assert survey.exists("package.json")
        assert not survey.exists("missing.txt")


class TestJsonHelpers:
    """Tests for JSON reading and writing."""

    def test_malformed_json_reads_as_none(self, tmp_path: Path) -> None:
        """Test malformed and missing documents read as None."""
        broken = tmp_path / "broken.json"
        broken.write_text("{not json")

        assert read_json_if_exists(broken) is None
        assert read_json_if_exists(tmp_path / "missing.json") is None

    def test_dump_format(self) -> None:
        """Test two-space indentation and trailing newline."""
        assert dump_json({"a": [1]}) == '{\n  "a": [\n    1\n  ]\n}\n'


class TestDetectRevision:
    """Tests for git revision lookup."""

    def test_non_repository(self, tmp_path: Path) -> None:
        """Test a plain directory yields the no-revision tag."""
        assert detect_revision(tmp_path) == NO_REVISION

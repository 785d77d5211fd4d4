"""Tests for hierarchical .gitignore matching."""

from pathlib import Path

from workshop_runner.core.gitignore import GitignoreParser, read_ignore_file


class TestReadIgnoreFile:
    def test_skips_comments_and_blanks(self, tmp_path: Path) -> None:
        path = tmp_path / ".gitignore"
        path.write_text("# deps\nnode_modules\n\n  \n*.log\n")
        assert read_ignore_file(path) == ["node_modules", "*.log"]

    def test_missing_file(self, tmp_path: Path) -> None:
        assert read_ignore_file(tmp_path / ".gitignore") == []


class TestGitignoreParser:
    """Matching against stacked .gitignore files."""

    def test_root_patterns(self, tmp_path: Path) -> None:
        (tmp_path / ".gitignore").write_text("node_modules/\n*.log\n")
        parser = GitignoreParser(tmp_path)
        assert parser.is_ignored_relative("node_modules", is_dir=True)
        assert parser.is_ignored_relative("src/debug.log")
        assert not parser.is_ignored_relative("src/index.js")

    def test_git_dir_always_ignored(self, tmp_path: Path) -> None:
        parser = GitignoreParser(tmp_path)
        assert parser.is_ignored_relative(".git", is_dir=True)

    def test_nested_file_scoped_to_its_directory(self, tmp_path: Path) -> None:
        """A nested .gitignore only applies below its own directory."""
        (tmp_path / "app").mkdir()
        (tmp_path / "app" / ".gitignore").write_text("dist\n")
        parser = GitignoreParser(tmp_path)
        assert parser.is_ignored_relative("app/dist", is_dir=True)
        assert parser.is_ignored_relative("app/sub/dist", is_dir=True)
        assert not parser.is_ignored_relative("dist", is_dir=True)

    def test_nested_negation_overrides_parent(self, tmp_path: Path) -> None:
        (tmp_path / ".gitignore").write_text("*.env\n")
        (tmp_path / "app").mkdir()
        (tmp_path / "app" / ".gitignore").write_text("!keep.env\n")
        parser = GitignoreParser(tmp_path)
        assert parser.is_ignored_relative("app/other.env")
        assert not parser.is_ignored_relative("app/keep.env")

    def test_anchored_nested_pattern(self, tmp_path: Path) -> None:
        (tmp_path / "app").mkdir()
        (tmp_path / "app" / ".gitignore").write_text("/build\n")
        parser = GitignoreParser(tmp_path)
        assert parser.is_ignored_relative("app/build", is_dir=True)
        assert not parser.is_ignored_relative("app/src/build", is_dir=True)

    def test_is_ignored_absolute_path(self, tmp_path: Path) -> None:
        (tmp_path / ".gitignore").write_text("*.tmp\n")
        (tmp_path / "a.tmp").write_text("x")
        parser = GitignoreParser(tmp_path)
        assert parser.is_ignored(tmp_path / "a.tmp")

    def test_path_outside_root_not_ignored(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        root.mkdir()
        (root / ".gitignore").write_text("*\n")
        parser = GitignoreParser(root)
        assert not parser.is_ignored(tmp_path / "elsewhere.txt")

    def test_root_itself_not_ignored(self, tmp_path: Path) -> None:
        (tmp_path / ".gitignore").write_text("*\n")
        assert not GitignoreParser(tmp_path).is_ignored_relative(".")

"""Hierarchical .gitignore matching.

Used by the catalog (empty-directory probe), modified-time scans and the
playground copy. A parser is rooted at the directory being walked; every
.gitignore between that root and a path contributes patterns, deeper files
taking precedence so a child can negate a parent's pattern.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from pathspec import GitIgnoreSpec as PathspecGitIgnore

logger = logging.getLogger(__name__)

# Always excluded, whatever the .gitignore files say
DEFAULT_EXCLUSIONS = (".git", ".git/")


def read_ignore_file(path: Path) -> list[str]:
    """Read ignore patterns from a .gitignore-style file.

    Blank lines and comments are dropped. A missing file yields no patterns.

    Args:
        path: File to read.

    Returns:
        List of patterns in file order.

    """
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as e:
        logger.warning("Failed to read ignore file %s: %s", path, e)
        return []
    return [
        line.rstrip()
        for line in content.splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    ]


def _rebase(patterns: Iterable[str], prefix: str) -> list[str]:
    """Rewrite patterns of a nested .gitignore relative to the parser root."""
    if not prefix:
        return list(patterns)
    rebased: list[str] = []
    for pattern in patterns:
        negated = pattern.startswith("!")
        body = pattern[1:] if negated else pattern
        anchored = "/" in body.rstrip("/")
        body = body.lstrip("/")
        rebased_body = f"{prefix}/{body}" if anchored else f"{prefix}/**/{body}"
        rebased.append(("!" if negated else "") + rebased_body)
    return rebased


class GitignoreParser:
    """Parser for hierarchical .gitignore files below a root directory.

    Combined specs are memoized per directory, so walking a large tree costs
    one compile per directory rather than one per file.
    """

    def __init__(self, root: Path, default_patterns: Iterable[str] = DEFAULT_EXCLUSIONS) -> None:
        """Initialize the parser.

        Args:
            root: Directory the parser is anchored at.
            default_patterns: Lowest priority patterns applied everywhere.

        """
        self.root = root.resolve()
        self._default_patterns = list(default_patterns)
        self._patterns_cache: dict[str, list[str]] = {}
        self._spec_cache: dict[str, PathspecGitIgnore | None] = {}

    def _patterns_for_dir(self, rel_dir: str) -> list[str]:
        if rel_dir in self._patterns_cache:
            return self._patterns_cache[rel_dir]
        if rel_dir:
            parent = rel_dir.rsplit("/", 1)[0] if "/" in rel_dir else ""
            inherited = self._patterns_for_dir(parent)
        else:
            inherited = list(self._default_patterns)
        own = read_ignore_file(self.root / rel_dir / ".gitignore")
        patterns = inherited + _rebase(own, rel_dir)
        self._patterns_cache[rel_dir] = patterns
        return patterns

    def _spec_for_dir(self, rel_dir: str) -> PathspecGitIgnore | None:
        if rel_dir not in self._spec_cache:
            patterns = self._patterns_for_dir(rel_dir)
            self._spec_cache[rel_dir] = PathspecGitIgnore.from_lines(patterns) if patterns else None
        return self._spec_cache[rel_dir]

    def is_ignored_relative(self, rel_path: str, *, is_dir: bool = False) -> bool:
        """Check a posix path relative to the parser root.

        Args:
            rel_path: Path relative to root, forward slashes.
            is_dir: Whether the path names a directory.

        Returns:
            True if the path should be ignored.

        """
        rel_path = rel_path.strip("/")
        if not rel_path or rel_path == ".":
            return False
        parent = rel_path.rsplit("/", 1)[0] if "/" in rel_path else ""
        spec = self._spec_for_dir(parent)
        if spec is None:
            return False
        if is_dir and spec.match_file(rel_path + "/"):
            return True
        return spec.match_file(rel_path)

    def is_ignored(self, path: Path) -> bool:
        """Check if a path is ignored using stacked rules.

        Args:
            path: Absolute path, or a path relative to the root.

        Returns:
            True if path should be ignored. Paths outside the root are never
            ignored.

        """
        absolute = path if path.is_absolute() else self.root / path
        try:
            rel_path = absolute.relative_to(self.root)
        except ValueError:
            try:
                rel_path = absolute.resolve().relative_to(self.root)
            except ValueError:
                return False
        return self.is_ignored_relative(rel_path.as_posix(), is_dir=absolute.is_dir())

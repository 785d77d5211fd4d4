"""Tests for the diff document renderer."""

from pathlib import Path

import pytest

from workshop_runner.diff import FileChange, FileChangeType, Hunk
from workshop_runner.diff.models import DiffLine, LineType
from workshop_runner.diff.render import (
    EMPTY_FILE_MESSAGE,
    NO_CHANGES_MESSAGE,
    SAME_APP_MESSAGE,
    DiffRenderer,
    language_for,
    render_document,
    render_same_app,
)

ROOT = Path("/workshop")
APP1 = ROOT / "exercises" / "01.basics" / "01.problem.hello"
APP2 = ROOT / "exercises" / "01.basics" / "01.solution.hello"


def _changed_hunk() -> Hunk:
    return Hunk(
        old_start=4,
        old_lines=3,
        new_start=4,
        new_lines=3,
        lines=[
            DiffLine(LineType.UNCHANGED, "const a = 1", 4, 4),
            DiffLine(LineType.DELETED, "const b = 2", 5, None),
            DiffLine(LineType.ADDED, "const b = 3", None, 5),
            DiffLine(LineType.UNCHANGED, "export { a, b }", 6, 6),
        ],
    )


@pytest.fixture
def renderer() -> DiffRenderer:
    return DiffRenderer(APP1, APP2, root=ROOT)


class TestRenderFile:
    def test_changed_file(self, renderer: DiffRenderer) -> None:
        change = FileChange(FileChangeType.CHANGED, "src/index.js", "src/index.js", [_changed_hunk()])
        section = renderer.render_file(change, "src/index.js", "src/index.js")

        assert section.startswith('\n<Accordion title="src/index.js" variant="changed">')
        assert section.rstrip().endswith("</Accordion>")
        assert "```javascript filename=src/index.js start=4 remove=5 add=6\n" in section
        assert "const b = 2\nconst b = 3\n" in section
        assert "OPEN in APP 1" in section
        assert "OPEN in APP 2" in section
        assert "CREATE" not in section
        assert f'file="{APP1 / "src/index.js"}" line={{4}}' in section
        assert 'title="exercises/01.basics/01.problem.hello/src/index.js"' in section

    def test_sync_buttons(self, renderer: DiffRenderer) -> None:
        change = FileChange(FileChangeType.CHANGED, "index.js", "index.js", [_changed_hunk()])
        section = renderer.render_file(change, "index.js", "index.js")
        assert f'syncTo={{{{file: "{APP2 / "index.js"}"}}}}' in section
        assert 'title="Copy app 2 file to app 1"' in section
        assert 'title="Copy app 1 file to app 2"' in section

    def test_added_file_offers_create_in_first_app(self, renderer: DiffRenderer) -> None:
        hunk = Hunk(old_start=0, old_lines=0, new_start=1, new_lines=1, lines=[DiffLine(LineType.ADDED, "new", None, 1)])
        change = FileChange(FileChangeType.ADDED, "util.ts", "util.ts", [hunk])
        section = renderer.render_file(change, "util.ts", "util.ts")
        assert 'variant="added"' in section
        assert "```typescript filename=util.ts start=0 add=0\n" in section
        assert "CREATE in APP 1" in section
        assert "OPEN in APP 2" in section

    def test_deleted_file_offers_create_in_second_app(self, renderer: DiffRenderer) -> None:
        hunk = Hunk(old_start=1, old_lines=1, new_start=0, new_lines=0, lines=[DiffLine(LineType.DELETED, "x", 1, None)])
        change = FileChange(FileChangeType.DELETED, "old.css", "old.css", [hunk])
        section = renderer.render_file(change, "old.css", "old.css")
        assert "OPEN in APP 1" in section
        assert "CREATE in APP 2" in section

    def test_deployed_omits_create(self) -> None:
        renderer = DiffRenderer(APP1, APP2, root=ROOT, deployed=True)
        hunk = Hunk(old_start=0, old_lines=0, new_start=1, new_lines=1, lines=[DiffLine(LineType.ADDED, "new", None, 1)])
        change = FileChange(FileChangeType.ADDED, "util.ts", "util.ts", [hunk])
        section = renderer.render_file(change, "util.ts", "util.ts")
        assert "CREATE" not in section
        assert "OPEN in APP 2" in section

    def test_rename_title(self, renderer: DiffRenderer) -> None:
        change = FileChange(FileChangeType.RENAMED, "a.js", "b.js")
        section = renderer.render_file(change, "a.js", "b.js")
        assert 'title="a.js ▶️ b.js" variant="renamed"' in section
        assert EMPTY_FILE_MESSAGE in section

    @pytest.mark.parametrize(
        ("change_type", "label"),
        [
            (FileChangeType.ADDED, "Binary file added"),
            (FileChangeType.DELETED, "Binary file deleted"),
            (FileChangeType.CHANGED, "Binary file changed"),
        ],
    )
    def test_binary(self, renderer: DiffRenderer, change_type: FileChangeType, label: str) -> None:
        change = FileChange(change_type, "logo.png", "logo.png", [Hunk(binary=True)])
        section = renderer.render_file(change, "logo.png", "logo.png")
        assert f"```text filename=logo.png start=1\n{label}\n```" in section


class TestDocument:
    def test_no_changes(self) -> None:
        assert render_document([]) == "\n" + NO_CHANGES_MESSAGE

    def test_sections_joined(self) -> None:
        assert render_document(["one", "two"]) == "\none\ntwo"

    def test_same_app(self) -> None:
        assert SAME_APP_MESSAGE in render_same_app()
        assert "You are comparing the same app" in render_same_app()


@pytest.mark.parametrize(
    ("path", "language"),
    [
        ("index.js", "javascript"),
        ("App.TSX", "tsx"),
        ("src/styles.css", "css"),
        ("schema.prisma", "prisma"),
        ("Makefile", "text"),
    ],
)
def test_language_for(path: str, language: str) -> None:
    assert language_for(path) == language

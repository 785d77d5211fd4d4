"""Rendering parsed diffs into the diff document shown to students.

The document is MDX-flavoured markdown: one ``<Accordion>`` per changed file,
holding a fenced code block per hunk. Code block meta carries the file name,
the first line number and the added/removed line numbers, and each block is
followed by ``<LaunchEditor>`` elements that open (or create) the file in
either app.
"""

import json
from pathlib import Path, PurePosixPath

from .models import FileChange, FileChangeType, Hunk, LineType

SAME_APP_MESSAGE = '<p className="p-4 text-center">You are comparing the same app</p>'
NO_CHANGES_MESSAGE = (
    '<div className="m-5 inline-flex items-center justify-center bg-foreground px-1 py-0.5 '
    'font-mono text-sm uppercase text-background">No changes</div>'
)
EMPTY_FILE_MESSAGE = '<p className="m-0 p-4 border-b text-muted-foreground">No changes</p>'

LAUNCH_EDITOR_CLASS = "border hover:bg-foreground/20 rounded px-2 py-0.5 font-mono text-xs font-semibold"

LANGUAGES = {
    "js": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "jsx": "jsx",
    "ts": "typescript",
    "mts": "typescript",
    "cts": "typescript",
    "tsx": "tsx",
    "json": "json",
    "css": "css",
    "scss": "scss",
    "html": "html",
    "md": "markdown",
    "mdx": "mdx",
    "py": "python",
    "sh": "bash",
    "yml": "yaml",
    "yaml": "yaml",
    "toml": "toml",
    "sql": "sql",
    "prisma": "prisma",
    "svg": "xml",
    "xml": "xml",
}

_BINARY_LABELS = {
    FileChangeType.ADDED: "Binary file added",
    FileChangeType.DELETED: "Binary file deleted",
}


def language_for(path: str) -> str:
    return LANGUAGES.get(PurePosixPath(path).suffix.lstrip(".").lower(), "text")


class DiffRenderer:
    """Builds the diff document for one pair of apps.

    Attributes:
        app1_dir: Real directory of the first app.
        app2_dir: Real directory of the second app.
        root: Workshop root, used for the affordances' tooltips.
        deployed: Omit affordances that would create files.

    """

    def __init__(self, app1_dir: Path, app2_dir: Path, *, root: Path, deployed: bool = False) -> None:
        self.app1_dir = app1_dir
        self.app2_dir = app2_dir
        self.root = root
        self.deployed = deployed

    def _title(self, path: Path) -> str:
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    def _launch_editor(self, change_type: FileChangeType, app_num: int, file_path: Path, line: int) -> str:
        creates = (change_type is FileChangeType.ADDED and app_num == 1) or (
            change_type is FileChangeType.DELETED and app_num == 2
        )
        if creates and self.deployed:
            return ""
        label = f"CREATE in APP {app_num}" if creates else f"OPEN in APP {app_num}"
        return (
            f"<LaunchEditor file={json.dumps(str(file_path))} line={{{line or 1}}}>\n"
            f'\t<span title="{self._title(file_path)}" className="{LAUNCH_EDITOR_CLASS}">{label}</span>\n'
            "</LaunchEditor>"
        )

    def _sync_buttons(self, path1: Path, path2: Path) -> str:
        def button(target: Path, source: Path, icon: str, title: str) -> str:
            return (
                f"<LaunchEditor file={json.dumps(str(target))} syncTo={{{{file: {json.dumps(str(source))}}}}}>\n"
                f'\t\t\t<span className="block {LAUNCH_EDITOR_CLASS}">\n'
                f'\t\t\t\t<Icon name="{icon}" title="{title}" />\n'
                "\t\t\t</span>\n"
                "\t\t</LaunchEditor>"
            )

        return (
            '<div className="display-alt-down flex gap-2">\n\t\t'
            + button(path1, path2, "ArrowLeft", "Copy app 2 file to app 1")
            + "\n\t\t"
            + button(path2, path1, "ArrowRight", "Copy app 1 file to app 2")
            + "\n\t</div>"
        )

    def _hunk_block(self, change: FileChange, hunk: Hunk, rel_path: str, path1: Path, path2: Path) -> str:
        removed: list[int] = []
        added: list[int] = []
        lines: list[str] = []
        start_line = 1
        to_start_line = 0
        if hunk.binary:
            lines.append(_BINARY_LABELS.get(change.type, "Binary file changed"))
        else:
            start_line = hunk.old_start
            to_start_line = hunk.new_start
            for offset, line in enumerate(hunk.lines):
                lines.append(line.content)
                if line.type is LineType.ADDED:
                    added.append(start_line + offset)
                elif line.type is LineType.DELETED:
                    removed.append(start_line + offset)

        meta = [f"filename={rel_path}", f"start={start_line}"]
        if removed:
            meta.append("remove=" + ",".join(map(str, removed)))
        if added:
            meta.append("add=" + ",".join(map(str, added)))

        body = "\n".join(lines)
        return (
            '\n<div className="relative">\n\n'
            f"```{language_for(change.path_after)} {' '.join(meta)}\n"
            f"{body}\n"
            "```\n\n"
            '<div className="flex gap-4 absolute top-1 right-3 items-center">\n'
            f"\t{self._launch_editor(change.type, 1, path1, start_line)}\n"
            f"\t{self._sync_buttons(path1, path2)}\n"
            f"\t{self._launch_editor(change.type, 2, path2, to_start_line)}\n"
            "</div>\n\n"
            "</div>\n"
        )

    def render_file(self, change: FileChange, rel_before: str, rel_after: str) -> str:
        """Render one changed file as an accordion section."""
        path1 = self.app1_dir / rel_before
        path2 = self.app2_dir / rel_after
        if change.type is FileChangeType.RENAMED:
            title = f"{rel_before} ▶️ {rel_after}"
        else:
            title = rel_before if change.type is not FileChangeType.ADDED else rel_after
        if change.hunks:
            blocks = [self._hunk_block(change, hunk, rel_before, path1, path2) for hunk in change.hunks]
        else:
            blocks = [EMPTY_FILE_MESSAGE]
        return (
            f"\n<Accordion title={json.dumps(title, ensure_ascii=False)} variant={json.dumps(change.type.value)}>\n\n"
            + "\n".join(blocks)
            + "\n\n</Accordion>\n"
        )


def render_same_app() -> str:
    return "\n" + SAME_APP_MESSAGE


def render_document(sections: list[str]) -> str:
    """Join rendered file sections, or say there are no changes."""
    if not sections:
        return "\n" + NO_CHANGES_MESSAGE
    return "\n" + "\n".join(sections)

"""Line-level diffs between deployed files and their sources."""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.text import Text

logger = logging.getLogger(__name__)


class ChangeTag(Enum):
    EQUAL = " "
    INSERT = "+"
    DELETE = "-"


STYLES = {
    ChangeTag.EQUAL: "white",
    ChangeTag.INSERT: "green",
    ChangeTag.DELETE: "red",
}


@dataclass
class DiffLine:
    tag: ChangeTag
    value: str


@dataclass
class FileDiff:
    """Diff for one tracked file, deployed copy as base and source as target."""

    relative_path: str
    lines: List[DiffLine] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return any(line.tag is not ChangeTag.EQUAL for line in self.lines)


def diff_lines(base: str, target: str) -> List[DiffLine]:
    """Compute a per-line equal/insert/delete diff from ``base`` to ``target``."""
    old = base.splitlines(keepends=True)
    new = target.splitlines(keepends=True)
    lines: List[DiffLine] = []
    matcher = difflib.SequenceMatcher(None, old, new, autojunk=False)
    for opcode, i1, i2, j1, j2 in matcher.get_opcodes():
        if opcode == "equal":
            lines.extend(DiffLine(ChangeTag.EQUAL, value) for value in old[i1:i2])
            continue
        if opcode in ("replace", "delete"):
            lines.extend(DiffLine(ChangeTag.DELETE, value) for value in old[i1:i2])
        if opcode in ("replace", "insert"):
            lines.extend(DiffLine(ChangeTag.INSERT, value) for value in new[j1:j2])
    return lines


class DiffReporter:
    """Prints what a deploy would change, before it happens.

    Files missing on either side are not diffed. Files that cannot be read
    as UTF-8 text are reported and skipped.
    """

    def __init__(self, home: Path, console: Optional[Console] = None) -> None:
        self.home = Path(home)
        self.console = console or Console()

    def compute(self, files: Dict[str, str]) -> List[FileDiff]:
        diffs = []
        for relative_path, canonical_path in files.items():
            source = Path(canonical_path)
            dest = self.home / relative_path
            try:
                if not source.is_file() or not dest.is_file():
                    continue
                source_content = source.read_text(encoding="utf-8")
                dest_content = dest.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Failed to read %s for diff: %s", relative_path, e)
                continue
            diffs.append(FileDiff(relative_path, diff_lines(dest_content, source_content)))
        return diffs

    def render(self, diff: FileDiff) -> None:
        self.console.print(f"[bold]Diff for {diff.relative_path}:[/bold]")
        for line in diff.lines:
            text = Text(line.tag.value + line.value.rstrip("\n"), style=STYLES[line.tag])
            self.console.print(text, soft_wrap=True)
        self.console.print()

    def report(self, files: Dict[str, str]) -> List[FileDiff]:
        """Compute and print diffs for every tracked file that would change."""
        diffs = self.compute(files)
        for diff in diffs:
            if diff.has_changes:
                self.render(diff)
            else:
                logger.debug("No changes for %s", diff.relative_path)
        return diffs

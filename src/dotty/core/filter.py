"""Sync eligibility checks for tracked source paths."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from pathspec import PathSpec

logger = logging.getLogger(__name__)

GITIGNORE_FILE = ".gitignore"


def walk(root: Path) -> Iterator[Path]:
    """Yield ``root`` and, for a directory, every entry beneath it.

    Entries matched by a ``.gitignore`` inside the walked tree are not
    yielded and ignored directories are not descended into. Unreadable
    directories are logged and skipped.
    """
    root = Path(root)
    yield root
    if not root.is_dir() or root.is_symlink():
        return

    def on_error(error: OSError) -> None:
        logger.warning("Error walking directory: %s", error)

    specs: List[Tuple[Path, PathSpec]] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        current = Path(dirpath)
        specs = [(base, spec) for base, spec in specs if _is_within(current, base)]
        spec = _load_gitignore(current)
        if spec is not None:
            specs.append((current, spec))

        kept = []
        for name in sorted(dirnames):
            path = current / name
            if not _ignored(path, specs, is_dir=True):
                kept.append(name)
                yield path
        dirnames[:] = kept

        for name in sorted(filenames):
            path = current / name
            if not _ignored(path, specs, is_dir=False):
                yield path


def _load_gitignore(directory: Path) -> Optional[PathSpec]:
    gitignore = directory / GITIGNORE_FILE
    if not gitignore.is_file():
        return None
    try:
        lines = gitignore.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read %s: %s", gitignore, e)
        return None
    return PathSpec.from_lines("gitwildmatch", lines)


def _is_within(path: Path, base: Path) -> bool:
    return path == base or base in path.parents


def _ignored(path: Path, specs: Iterable[Tuple[Path, PathSpec]], is_dir: bool) -> bool:
    for base, spec in specs:
        relative = path.relative_to(base).as_posix()
        if is_dir:
            relative += "/"
        if spec.match_file(relative):
            return True
    return False


class ChangeFilter:
    """Decides whether a source path should be deployed.

    A path is ineligible as soon as it, or anything beneath it, contains one
    of the ignore patterns as a substring. Nothing is cached between calls.
    """

    def __init__(self, ignore_patterns: Iterable[str]) -> None:
        self.ignore_patterns = [p for p in ignore_patterns if p]

    def matching_pattern(self, path: Path) -> Optional[str]:
        """Return the first pattern found under ``path``, or None."""
        for entry in walk(path):
            text = str(entry)
            for pattern in self.ignore_patterns:
                if pattern in text:
                    logger.debug("%s matches ignore pattern %r", entry, pattern)
                    return pattern
        return None

    def should_sync(self, path: Path) -> bool:
        return self.matching_pattern(path) is None

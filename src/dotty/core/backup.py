"""Backups of destination files before they are overwritten.

Only the most recent pre-sync state is kept: the existing destination is
copied next to itself with a ``.bak`` extension, replacing any older backup.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from .errors import SyncIOError

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"


def backup_path(path: Path) -> Path:
    """Return the backup location for ``path``.

    The extension is replaced, so ``config.toml`` backs up to ``config.bak``
    while an extensionless ``.vimrc`` backs up to ``.vimrc.bak``. A file that
    already ends in ``.bak`` gets a second suffix so it never backs up onto
    itself.
    """
    path = Path(path)
    target = path.with_suffix(BACKUP_SUFFIX)
    if target == path:
        target = path.with_name(path.name + BACKUP_SUFFIX)
    return target


class BackupManager:
    """Snapshots destination files ahead of a deploy."""

    def backup(self, path: Path) -> Optional[Path]:
        """Copy an existing file to its backup path.

        Args:
            path: Destination about to be overwritten.

        Returns:
            The backup path, or None if there was nothing to back up.

        Raises:
            SyncIOError: If the copy fails.
        """
        path = Path(path)
        if not path.exists():
            return None

        target = backup_path(path)
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif target.exists() or target.is_symlink():
                target.unlink()
            if path.is_dir():
                shutil.copytree(path, target)
            else:
                shutil.copy2(path, target)
        except OSError as e:
            raise SyncIOError(f"Failed to create backup of {path}: {e}") from e

        logger.info("Created backup: %s", target)
        return target

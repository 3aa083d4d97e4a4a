"""Materialize tracked sources at their home-relative destinations."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from .backup import BackupManager
from .errors import SyncIOError

logger = logging.getLogger(__name__)


def sync_permissions(source: Path, dest: Path) -> None:
    """Copy the permission bits of ``source`` onto ``dest``."""
    try:
        shutil.copymode(source, dest)
    except OSError as e:
        raise SyncIOError(f"Failed to set permissions on {dest}: {e}") from e


class Deployer:
    """Copies or symlinks a source file to its destination.

    The strategy is a profile-level policy. Any existing destination is
    backed up before either strategy runs.
    """

    def __init__(self, backup_manager: BackupManager, use_symlinks: bool = False) -> None:
        self.backup_manager = backup_manager
        self.use_symlinks = use_symlinks

    def deploy(self, source: Path, dest: Path) -> None:
        """Write ``source`` (or a link to it) at ``dest``.

        Raises:
            SyncIOError: If the backup, copy, link or chmod fails.
        """
        source = Path(source)
        dest = Path(dest)

        self.backup_manager.backup(dest)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            _clear(dest, keep_regular_file=not self.use_symlinks)
            if self.use_symlinks:
                os.symlink(source, dest, target_is_directory=source.is_dir())
            elif source.is_dir():
                shutil.copytree(source, dest, symlinks=True, dirs_exist_ok=True)
            else:
                shutil.copyfile(source, dest)
        except OSError as e:
            action = "create symlink" if self.use_symlinks else "copy file"
            raise SyncIOError(f"Failed to {action} {source} -> {dest}: {e}") from e

        if self.use_symlinks:
            logger.info("Created symlink: %s -> %s", dest, source)
        else:
            sync_permissions(source, dest)
            logger.info("Synced: %s", dest)


def _clear(dest: Path, keep_regular_file: bool) -> None:
    # Links are always replaced; a copy may overwrite a regular file in place.
    if dest.is_symlink():
        dest.unlink()
    elif dest.is_dir():
        if not keep_regular_file:
            shutil.rmtree(dest)
    elif dest.exists() and not keep_regular_file:
        dest.unlink()

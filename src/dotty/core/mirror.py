"""Mirror every tracked file into a git repository and push it."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, List

from .config import Config
from .errors import RemoteError
from .repository import GitRepository

logger = logging.getLogger(__name__)

MIRROR_DIR_NAME = ".dotty_repo"
COMMIT_MESSAGE = "Sync dotfiles"
PUSH_BRANCH = "master"


def mirror_root(home: Path) -> Path:
    """Return the fixed, profile-independent working copy location."""
    return Path(home) / MIRROR_DIR_NAME


class RemoteMirror:
    """Keeps a local working copy of all tracked files in sync with a remote.

    The working copy is cloned on first use. Every tracked file across all
    profiles is copied in at its home-relative path, then staged, committed
    and pushed. A failing step aborts the mirror; earlier local commits are
    left in place.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def open(self, config: Config) -> GitRepository:
        """Open the working copy, cloning the remote if it does not exist yet."""
        repo = GitRepository(self.root, secrets=[config.remote.github_token])
        if self.root.exists():
            if not repo.exists():
                raise RemoteError(f"Failed to open existing repository at {self.root}")
            return repo
        logger.info("Cloning %s into %s", config.remote.github_repo, self.root)
        repo.clone(config.remote.github_repo, config.remote.github_token)
        return repo

    def tracked_files(self, config: Config) -> Dict[str, str]:
        files: Dict[str, str] = {}
        for profile in config.profiles.values():
            files.update(profile.files)
        return files

    def copy_tracked(self, config: Config) -> List[str]:
        """Copy every existing tracked source into the working copy.

        Returns:
            The relative paths that were copied.
        """
        copied = []
        for relative_path, canonical_path in self.tracked_files(config).items():
            source = Path(canonical_path)
            dest = self.root / relative_path
            try:
                if not source.exists():
                    logger.debug("Not mirroring missing source %s", source)
                    continue
                dest.parent.mkdir(parents=True, exist_ok=True)
                if source.is_dir():
                    shutil.copytree(source, dest, dirs_exist_ok=True)
                else:
                    shutil.copyfile(source, dest)
            except OSError as e:
                raise RemoteError(f"Failed to copy {source} to repo: {e}") from e
            copied.append(relative_path)
        return copied

    def mirror(self, config: Config) -> bool:
        """Run one mirror pass.

        Returns:
            True if a new commit was written.

        Raises:
            ConfigInvalidError: If the remote settings are incomplete.
            RemoteError: If cloning, copying, committing or pushing fails.
        """
        config.require_remote()
        repo = self.open(config)
        self.copy_tracked(config)

        repo.add_all()
        committed = repo.commit(COMMIT_MESSAGE)
        if not committed:
            logger.info("No changes to commit in %s", self.root)
        if not repo.has_commits():
            logger.warning("Nothing to push: %s has no commits", self.root)
            return False

        repo.push(PUSH_BRANCH, config.remote.github_token)
        logger.info("Synced with GitHub repository")
        return committed

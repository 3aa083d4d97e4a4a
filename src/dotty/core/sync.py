"""One full sync pass: diff, filter, backup, deploy, mirror.

A pass aborts only on store-level problems (unknown profile, incomplete
remote settings). Per-file failures and mirror failures are collected into
the returned ``SyncReport`` so one bad file never blocks the others.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from .backup import BackupManager
from .deploy import Deployer
from .detect import ProfileDetector
from .diff import DiffReporter
from .errors import DottyError
from .filter import ChangeFilter
from .mirror import RemoteMirror, mirror_root
from .store import ProfileStore

logger = logging.getLogger(__name__)


class FileStatus(Enum):
    SYNCED = "synced"
    SKIPPED = "skipped"
    MISSING = "missing"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass
class FileResult:
    relative_path: str
    status: FileStatus
    message: str = ""


@dataclass
class SyncReport:
    """Outcome of one sync pass."""

    profile: str
    files: List[FileResult] = field(default_factory=list)
    mirrored: bool = False
    mirror_error: Optional[str] = None

    def by_status(self, status: FileStatus) -> List[FileResult]:
        return [result for result in self.files if result.status is status]

    @property
    def failed(self) -> List[FileResult]:
        return self.by_status(FileStatus.FAILED)

    @property
    def ok(self) -> bool:
        return not self.failed and self.mirror_error is None


@dataclass
class SyncState:
    """Process-local bookkeeping, re-derived on every run."""

    current_profile: str
    last_synced: Optional[datetime] = None


class SyncOrchestrator:
    """Runs sync passes for the profiles held in a ``ProfileStore``.

    Attributes:
        store (ProfileStore): Configuration source.
        home (Path): Directory destinations are resolved against.
        state (SyncState): Last synced time and active profile.
    """

    def __init__(
        self,
        store: ProfileStore,
        home: Optional[Path] = None,
        detector: Optional[ProfileDetector] = None,
        mirror: Optional[RemoteMirror] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.store = store
        self.home = Path(home) if home is not None else Path.home()
        self.detector = detector or ProfileDetector(store.config)
        self.mirror = mirror or RemoteMirror(mirror_root(self.home))
        self.reporter = DiffReporter(self.home, console)
        self.backup_manager = BackupManager()
        self.state = SyncState(current_profile=self.detector.detect())

    def resolve_profile(self, profile: Optional[str] = None) -> str:
        """Return ``profile`` or, when None, the detected profile."""
        return profile if profile else self.state.current_profile

    def show_diff(self, profile: Optional[str] = None) -> None:
        name = self.resolve_profile(profile)
        self.reporter.report(self.store.get_profile(name).files)

    def sync(self, profile: Optional[str] = None, mirror: bool = True) -> SyncReport:
        """Run one sync pass.

        Args:
            profile: Profile to sync; the detected profile when None.
            mirror: Whether to commit and push to the remote afterwards.

        Returns:
            SyncReport: Per-file results and the mirror outcome.

        Raises:
            ProfileNotFoundError: If the profile does not exist.
            ConfigInvalidError: If mirroring is requested without remote settings.
        """
        name = self.resolve_profile(profile)
        profile_config = self.store.get_profile(name)
        if mirror:
            self.store.config.require_remote()

        report = SyncReport(profile=name)
        self.reporter.report(profile_config.files)

        change_filter = ChangeFilter(profile_config.ignore_patterns)
        deployer = Deployer(self.backup_manager, use_symlinks=profile_config.use_symlinks)
        for relative_path, canonical_path in profile_config.files.items():
            report.files.append(
                self._sync_file(relative_path, canonical_path, change_filter, deployer)
            )

        if mirror:
            try:
                self.mirror.mirror(self.store.config)
                report.mirrored = True
            except DottyError as e:
                logger.error("Mirror failed: %s", e)
                report.mirror_error = str(e)

        self.state.current_profile = name
        self.state.last_synced = datetime.now()
        return report

    def _sync_file(
        self,
        relative_path: str,
        canonical_path: str,
        change_filter: ChangeFilter,
        deployer: Deployer,
    ) -> FileResult:
        source = Path(canonical_path)
        dest = self.home / relative_path

        try:
            if not source.exists():
                logger.warning("Source file missing: %s", canonical_path)
                return FileResult(relative_path, FileStatus.MISSING, "source file missing")

            if not change_filter.should_sync(source):
                logger.info("Skipped syncing %s (ignored)", relative_path)
                return FileResult(relative_path, FileStatus.SKIPPED, "matches ignore pattern")

            if _same_file(source, dest):
                logger.debug("%s already points at its source", relative_path)
                return FileResult(relative_path, FileStatus.UNCHANGED, "destination is the source")

            deployer.deploy(source, dest)
        except (DottyError, OSError) as e:
            logger.error("Failed to sync %s: %s", relative_path, e)
            return FileResult(relative_path, FileStatus.FAILED, str(e))

        return FileResult(relative_path, FileStatus.SYNCED)


def _same_file(source: Path, dest: Path) -> bool:
    # A symlinked destination is replaced, so only compare real files.
    if dest.is_symlink() or not dest.exists():
        return False
    try:
        return os.path.samefile(source, dest)
    except OSError:
        return False

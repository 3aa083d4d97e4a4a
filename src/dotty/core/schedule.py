"""Run a sync pass on a fixed interval."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from .errors import DottyError, ScheduleError
from .store import ProfileStore
from .sync import SyncOrchestrator, SyncReport

logger = logging.getLogger(__name__)


class ScheduleTrigger:
    """Reloads the configuration and syncs once per interval.

    Each tick is two explicit steps: ``reload()`` builds a fresh store and
    orchestrator from disk, then ``tick()`` runs the pass. Edits to the
    config file therefore apply on the next tick. Tick errors are logged and
    the loop continues.
    """

    def __init__(
        self,
        interval_minutes: int,
        config_path: Optional[Path] = None,
        home: Optional[Path] = None,
    ) -> None:
        self.interval_minutes = interval_minutes
        self.config_path = config_path
        self.home = home

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60

    def reload(self) -> SyncOrchestrator:
        store = ProfileStore.load(self.config_path)
        return SyncOrchestrator(store, home=self.home)

    def tick(self, profile: Optional[str] = None) -> Optional[SyncReport]:
        try:
            orchestrator = self.reload()
            report = orchestrator.sync(profile)
        except (DottyError, OSError) as e:
            logger.error("Scheduled sync error: %s", e)
            return None
        if not report.ok:
            logger.error("Scheduled sync of profile %s finished with errors", report.profile)
        return report

    def check(self) -> None:
        """Validate the interval and remote settings before the loop starts.

        Raises:
            ScheduleError: If the interval is not positive.
            ConfigInvalidError: If the config is invalid or has no remote.
        """
        if not isinstance(self.interval_minutes, int) or self.interval_minutes <= 0:
            raise ScheduleError("Sync interval must be greater than 0")
        ProfileStore.load(self.config_path).config.require_remote()

    def run(
        self, profile: Optional[str] = None, stop_event: Optional[threading.Event] = None
    ) -> None:
        """Tick now and then every interval until ``stop_event`` is set."""
        self.check()
        stop_event = stop_event or threading.Event()
        logger.info(
            "Scheduled sync every %d minutes for profile %s",
            self.interval_minutes,
            profile or "(detected)",
        )
        while not stop_event.is_set():
            self.tick(profile)
            if stop_event.wait(self.interval_seconds):
                break

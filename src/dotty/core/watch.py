"""Run a sync pass whenever a tracked source file changes."""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import DottyError, WatchSetupError
from .sync import SyncOrchestrator

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 1.0
POLL_SECONDS = 0.5


class SourceEventHandler(FileSystemEventHandler):
    """Forwards content changes on a tracked source onto a queue.

    Open and close events are not forwarded: a sync pass reads every source
    itself and must not queue the next pass.
    """

    def __init__(self, sources: Iterable[Path], events: "queue.Queue[FileSystemEvent]") -> None:
        super().__init__()
        self.files: Set[Path] = set()
        self.directories: Set[Path] = set()
        for source in sources:
            (self.directories if source.is_dir() else self.files).add(source)
        self.events = events

    def is_tracked(self, path: str) -> bool:
        candidate = Path(path)
        if candidate in self.files or candidate in self.directories:
            return True
        return any(directory in candidate.parents for directory in self.directories)

    def _forward(self, event: FileSystemEvent, *paths: str) -> None:
        if any(path and self.is_tracked(str(path)) for path in paths):
            self.events.put(event)

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward(event, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory mtime changes follow from events on their entries.
        if event.is_directory:
            return
        self._forward(event, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._forward(event, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._forward(event, event.src_path, event.dest_path)


class WatchTrigger:
    """Watches a profile's sources and syncs on change.

    Events are debounced: after the first event, further events are drained
    until nothing arrives for ``debounce`` seconds, then a single pass runs.
    Passes never overlap. Errors from a pass are logged and watching goes
    on; ``stop_event`` ends the loop between events.
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        debounce: float = DEBOUNCE_SECONDS,
        observer_factory: Callable[[], Any] = Observer,
        mirror: bool = True,
    ) -> None:
        self.orchestrator = orchestrator
        self.debounce = debounce
        self.observer_factory = observer_factory
        self.mirror = mirror
        self.events: "queue.Queue[FileSystemEvent]" = queue.Queue()

    def watch_targets(self, sources: Iterable[Path]) -> Dict[Path, bool]:
        """Map each directory to observe onto whether it is watched recursively."""
        targets: Dict[Path, bool] = {}
        for source in sources:
            if not source.exists():
                raise WatchSetupError(f"Failed to watch path, it does not exist: {source}")
            if source.is_dir():
                targets[source] = True
            else:
                targets.setdefault(source.parent, False)
        return targets

    def start(self, profile: str) -> Any:
        sources: List[Path] = [
            Path(p) for p in self.orchestrator.store.get_profile(profile).files.values()
        ]
        targets = self.watch_targets(sources)
        handler = SourceEventHandler(sources, self.events)
        observer = self.observer_factory()
        try:
            for directory, recursive in targets.items():
                observer.schedule(handler, str(directory), recursive=recursive)
            observer.start()
        except OSError as e:
            raise WatchSetupError(f"Failed to create watcher: {e}") from e
        return observer

    def _drain(self) -> int:
        coalesced = 0
        while True:
            try:
                self.events.get(timeout=self.debounce)
            except queue.Empty:
                return coalesced
            coalesced += 1

    def run_pass(self, profile: str) -> None:
        logger.info("Change detected, syncing...")
        try:
            report = self.orchestrator.sync(profile, mirror=self.mirror)
        except (DottyError, OSError) as e:
            logger.error("Error during sync: %s", e)
            return
        if not report.ok:
            logger.error("Sync of profile %s finished with errors", profile)

    def run(
        self, profile: Optional[str] = None, stop_event: Optional[threading.Event] = None
    ) -> None:
        """Watch until ``stop_event`` is set.

        Raises:
            ProfileNotFoundError: If the profile does not exist.
            WatchSetupError: If a source is missing or the observer cannot start.
        """
        name = self.orchestrator.resolve_profile(profile)
        stop_event = stop_event or threading.Event()
        observer = self.start(name)
        logger.info("Watching for changes in profile %s. Press Ctrl-C to stop.", name)
        try:
            while not stop_event.is_set():
                try:
                    self.events.get(timeout=POLL_SECONDS)
                except queue.Empty:
                    continue
                coalesced = self._drain()
                logger.debug("Coalesced %d additional events", coalesced)
                self.run_pass(name)
        finally:
            observer.stop()
            observer.join()

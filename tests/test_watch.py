"""Tests for the filesystem watch trigger."""

import logging
import queue
import threading
import time
from pathlib import Path
from typing import Any, List, Optional, Tuple

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileClosedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileOpenedEvent,
)
from watchdog.observers import Observer

from dotty.core.errors import SyncIOError, WatchSetupError
from dotty.core.store import ProfileStore
from dotty.core.sync import SyncOrchestrator, SyncReport
from dotty.core.watch import SourceEventHandler, WatchTrigger


class FakeObserver:
    """Stands in for a watchdog observer."""

    def __init__(self) -> None:
        self.scheduled: List[Tuple[str, bool]] = []
        self.started = False
        self.stopped = False

    def schedule(self, handler: Any, path: str, recursive: bool = False) -> None:
        self.scheduled.append((path, recursive))

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout: Optional[float] = None) -> None:
        pass


def test_handler_filters_untracked(tmp_path: Path) -> None:
    """Test that only events on tracked paths are queued."""
    tracked = tmp_path / ".vimrc"
    tracked.write_text("")
    nvim = tmp_path / "nvim"
    nvim.mkdir()
    events: "queue.Queue[Any]" = queue.Queue()
    handler = SourceEventHandler([tracked, nvim], events)

    handler.dispatch(FileModifiedEvent(str(tmp_path / "other")))
    assert events.empty()

    handler.dispatch(FileModifiedEvent(str(tracked)))
    handler.dispatch(FileModifiedEvent(str(nvim / "lua" / "init.lua")))
    handler.dispatch(FileMovedEvent(str(tmp_path / ".vimrc.tmp"), str(tracked)))
    assert events.qsize() == 3


def test_watch_targets(orchestrator: SyncOrchestrator, dotfiles_dir: Path) -> None:
    """Test that files watch their parent and directories watch recursively."""
    nvim = dotfiles_dir / "nvim"
    nvim.mkdir()
    trigger = WatchTrigger(orchestrator, observer_factory=FakeObserver)

    targets = trigger.watch_targets([dotfiles_dir / ".vimrc", dotfiles_dir / ".bashrc", nvim])
    assert targets == {dotfiles_dir: False, nvim: True}


def test_setup_fails_for_missing_source(
    store: ProfileStore, orchestrator: SyncOrchestrator, dotfiles_dir: Path
) -> None:
    """Test that a missing source path is fatal at startup."""
    store.get_profile("default").files[".gone"] = str(dotfiles_dir / ".gone")
    trigger = WatchTrigger(orchestrator, observer_factory=FakeObserver)
    with pytest.raises(WatchSetupError):
        trigger.run(stop_event=threading.Event())


def test_events_are_coalesced(
    orchestrator: SyncOrchestrator, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that a burst of events triggers exactly one pass."""
    observers: List[FakeObserver] = []

    def factory() -> FakeObserver:
        observers.append(FakeObserver())
        return observers[-1]

    stop_event = threading.Event()
    calls = []

    def fake_sync(profile: Optional[str] = None, mirror: bool = True) -> SyncReport:
        calls.append((profile, mirror))
        stop_event.set()
        return SyncReport(profile=profile or "default")

    monkeypatch.setattr(orchestrator, "sync", fake_sync)
    trigger = WatchTrigger(orchestrator, debounce=0.01, observer_factory=factory, mirror=False)
    for _ in range(3):
        trigger.events.put(object())

    trigger.run(stop_event=stop_event)

    assert calls == [("default", False)]
    assert observers[0].started
    assert observers[0].stopped
    assert trigger.events.empty()


def test_sync_errors_do_not_stop_watching(
    orchestrator: SyncOrchestrator,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test that a failing pass is logged and the loop keeps going."""
    stop_event = threading.Event()
    trigger = WatchTrigger(orchestrator, debounce=0.01, observer_factory=FakeObserver)
    calls = []

    def fake_sync(profile: Optional[str] = None, mirror: bool = True) -> SyncReport:
        calls.append(profile)
        if len(calls) == 1:
            trigger.events.put(object())
            raise SyncIOError("disk on fire")
        stop_event.set()
        return SyncReport(profile=profile or "default")

    monkeypatch.setattr(orchestrator, "sync", fake_sync)
    trigger.events.put(object())

    with caplog.at_level(logging.ERROR):
        trigger.run(stop_event=stop_event)

    assert len(calls) == 2
    assert "disk on fire" in caplog.text


def test_stop_event_ends_idle_loop(orchestrator: SyncOrchestrator) -> None:
    """Test cooperative shutdown while no events arrive."""
    stop_event = threading.Event()
    stop_event.set()
    observer = FakeObserver()
    WatchTrigger(orchestrator, observer_factory=lambda: observer).run(stop_event=stop_event)
    assert observer.stopped


def test_handler_ignores_reads(tmp_path: Path) -> None:
    """Test that opening or closing a source without writing queues nothing."""
    tracked = tmp_path / ".vimrc"
    tracked.write_text("")
    events: "queue.Queue[Any]" = queue.Queue()
    handler = SourceEventHandler([tracked, tmp_path], events)

    handler.dispatch(FileOpenedEvent(str(tracked)))
    handler.dispatch(FileClosedEvent(str(tracked)))
    handler.dispatch(DirModifiedEvent(str(tmp_path)))
    assert events.empty()


def test_os_errors_do_not_stop_watching(
    orchestrator: SyncOrchestrator,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test that an unexpected I/O error in a pass is logged."""

    def fail(profile: Optional[str] = None, mirror: bool = True) -> SyncReport:
        raise PermissionError(13, "Permission denied", "locked/.inputrc")

    monkeypatch.setattr(orchestrator, "sync", fail)

    with caplog.at_level(logging.ERROR):
        WatchTrigger(orchestrator, observer_factory=FakeObserver).run_pass("default")

    assert "Permission denied" in caplog.text


def test_one_edit_runs_one_pass(
    orchestrator: SyncOrchestrator,
    home: Path,
    dotfiles_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test with a real observer that a pass reading the sources does not retrigger itself."""
    started = threading.Event()

    def factory() -> Any:
        observer = Observer()
        start = observer.start

        def start_and_signal() -> None:
            start()
            started.set()

        observer.start = start_and_signal
        return observer

    passes: List[SyncReport] = []
    sync = orchestrator.sync

    def counting_sync(profile: Optional[str] = None, mirror: bool = True) -> SyncReport:
        report = sync(profile, mirror=mirror)
        passes.append(report)
        return report

    monkeypatch.setattr(orchestrator, "sync", counting_sync)
    trigger = WatchTrigger(orchestrator, debounce=0.2, observer_factory=factory, mirror=False)
    stop_event = threading.Event()
    thread = threading.Thread(target=trigger.run, kwargs={"stop_event": stop_event})
    thread.start()
    try:
        assert started.wait(5)
        (dotfiles_dir / ".vimrc").write_text("set rnu\n")

        deadline = time.monotonic() + 5
        while not passes and time.monotonic() < deadline:
            time.sleep(0.05)
        # Leave time for any event caused by the pass itself to show up.
        time.sleep(2)
    finally:
        stop_event.set()
        thread.join(5)

    assert len(passes) == 1
    assert (home / ".vimrc").read_text() == "set rnu\n"

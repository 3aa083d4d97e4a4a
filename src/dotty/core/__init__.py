"""Core functionality for dotty."""

from .backup import BackupManager
from .config import Config
from .deploy import Deployer
from .detect import ProfileDetector
from .diff import DiffReporter
from .filter import ChangeFilter
from .mirror import RemoteMirror
from .repository import GitRepository
from .schedule import ScheduleTrigger
from .store import ProfileStore
from .sync import SyncOrchestrator
from .watch import WatchTrigger

__all__ = [
    "BackupManager",
    "ChangeFilter",
    "Config",
    "Deployer",
    "DiffReporter",
    "GitRepository",
    "ProfileDetector",
    "ProfileStore",
    "RemoteMirror",
    "ScheduleTrigger",
    "SyncOrchestrator",
    "WatchTrigger",
]

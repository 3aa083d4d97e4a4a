"""Exceptions raised by the dotty sync engine."""


class DottyError(Exception):
    """Base class for all dotty errors."""


class ConfigInvalidError(DottyError):
    """Configuration is missing a required field or holds an invalid value."""


class ProfileNotFoundError(DottyError):
    """The requested profile does not exist in the configuration."""

    def __init__(self, profile: str) -> None:
        super().__init__(f"Profile not found: {profile}")
        self.profile = profile


class PathOutsideHomeError(DottyError):
    """A path passed to add/remove does not live under the home directory."""


class PathUnresolvableError(DottyError):
    """A path could not be canonicalized (missing file, broken symlink)."""


class SyncIOError(DottyError):
    """Copying, linking, backing up or chmod-ing a file failed."""


class RemoteError(DottyError):
    """Cloning, committing or pushing the mirror repository failed."""


class WatchSetupError(DottyError):
    """The filesystem watcher could not be started."""


class ScheduleError(DottyError):
    """The scheduled sync loop could not be started."""

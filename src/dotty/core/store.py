"""Persistent configuration store for dotty."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

import yaml

from .config import Config, ProfileConfig
from .errors import (
    ConfigInvalidError,
    PathOutsideHomeError,
    PathUnresolvableError,
    ProfileNotFoundError,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DOTTY_CONFIG"


def default_config_path() -> Path:
    """Return the config file location, honouring ``$DOTTY_CONFIG``."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "dotty" / "config.yaml"


class ProfileStore:
    """Holds the parsed configuration and persists it as YAML.

    Attributes:
        path (Path): Location of the configuration file.
        config (Config): The in-memory configuration.
    """

    def __init__(self, path: Path, config: Config) -> None:
        self.path = Path(path)
        self.config = config

    def __repr__(self) -> str:
        return f"ProfileStore({self.path})"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> ProfileStore:
        """Load the configuration, creating a default one on first run.

        Args:
            path: Config file to read. Defaults to ``default_config_path()``.

        Returns:
            A store holding the loaded configuration.

        Raises:
            ConfigInvalidError: If the file cannot be read, parsed or validated.
        """
        path = Path(path) if path is not None else default_config_path()

        if not path.exists():
            store = cls(path, Config.default())
            store.save()
            logger.info("Created default configuration at %s", path)
            return store

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigInvalidError(f"Failed to read config file {path}: {e}") from e

        config = Config.from_dict(data or {})
        errors = config.validate()
        if errors:
            raise ConfigInvalidError(f"Invalid config file {path}: " + "; ".join(errors))

        logger.debug("Loaded configuration from %s", path)
        return cls(path, config)

    def save(self) -> None:
        """Write the configuration back to disk.

        Raises:
            ConfigInvalidError: If the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(self.config.to_dict(), f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise ConfigInvalidError(f"Failed to write config file {self.path}: {e}") from e
        logger.debug("Saved configuration to %s", self.path)

    def profile_names(self) -> List[str]:
        return list(self.config.profiles.keys())

    def get_profile(self, name: str) -> ProfileConfig:
        """Return the named profile.

        Raises:
            ProfileNotFoundError: If no profile has that name.
        """
        try:
            return self.config.profiles[name]
        except KeyError:
            raise ProfileNotFoundError(name) from None

    def set_profile(self, name: str, profile: ProfileConfig) -> None:
        """Create or replace a profile and persist the change."""
        self.config.profiles[name] = profile
        self.save()

    def add_file(self, path: Path, profile: str, home: Path) -> str:
        """Start tracking a file under a profile.

        Args:
            path: File to track; ``~`` is expanded.
            profile: Name of the profile to add it to.
            home: The user's home directory.

        Returns:
            The home-relative key the file was stored under.

        Raises:
            ProfileNotFoundError: If the profile does not exist.
            PathUnresolvableError: If the path cannot be canonicalized.
            PathOutsideHomeError: If the path is not under ``home``.
        """
        profile_config = self.get_profile(profile)
        relative_path, canonical_path = resolve_tracked_path(path, home)

        profile_config.files[relative_path] = str(canonical_path)
        self.save()
        logger.info("Added file: %s to profile %s", relative_path, profile)
        return relative_path

    def remove_file(self, path: Path, profile: str, home: Path) -> bool:
        """Stop tracking a file.

        Returns:
            True if the file was tracked and has been removed, False if it
            was not in the profile.
        """
        profile_config = self.get_profile(profile)
        relative_path, _ = resolve_tracked_path(path, home)

        if profile_config.files.pop(relative_path, None) is None:
            logger.warning("File not found in config: %s", relative_path)
            return False

        self.save()
        logger.info("Removed file: %s from profile %s", relative_path, profile)
        return True


def resolve_tracked_path(path: Path, home: Path) -> Tuple[str, Path]:
    """Split a user-supplied path into its home-relative key and canonical source.

    Returns:
        Tuple[str, Path]: (relative key, canonical source path)

    Raises:
        PathUnresolvableError: If the path does not resolve to an existing file.
        PathOutsideHomeError: If the path or its target is outside ``home``.
    """
    absolute = Path(os.path.abspath(Path(path).expanduser()))
    try:
        canonical = absolute.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise PathUnresolvableError(f"Failed to canonicalize path {path}: {e}") from e

    home = Path(home)
    relative = _relative_to_home(absolute, home)
    if relative is None:
        # The link itself may sit outside a symlinked home; fall back to its target.
        relative = _relative_to_home(canonical, home)
    if relative is None or _relative_to_home(canonical, home) is None:
        raise PathOutsideHomeError(f"Path is not in home directory: {path}")

    return relative.as_posix(), canonical


def _relative_to_home(path: Path, home: Path) -> Optional[Path]:
    for base in (home, home.resolve()):
        try:
            relative = path.relative_to(base)
        except ValueError:
            continue
        if relative.parts:
            return relative
    return None

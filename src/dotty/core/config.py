"""Configuration model for dotty.

The configuration is a plain mapping on disk (see ``store.py``) and a set of
dataclasses in memory. Profiles map home-relative paths to canonical source
paths; detection rules pick a profile from host signals.

Example config file:

    ```yaml
    profiles:
      default:
        files:
          .vimrc: /home/u/dotfiles/.vimrc
        ignore_patterns: [.git, .gitignore]
        use_symlinks: false
    remote:
      github_repo: https://github.com/u/dotfiles.git
      github_token: ghp_xxx
    sync_interval: 60
    profile_detection:
      - profile: work
        conditions:
          - os: linux
          - env_var: {name: WORK, value: "1"}
    ```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import ConfigInvalidError

DEFAULT_PROFILE = "default"
DEFAULT_IGNORE_PATTERNS = [".git", ".gitignore"]
DEFAULT_SYNC_INTERVAL = 60


def is_home_relative(relative_path: str) -> bool:
    """Whether a tracked key names a location inside the home directory."""
    path = PurePath(relative_path)
    return bool(path.parts) and not path.is_absolute() and ".." not in path.parts


@dataclass(frozen=True)
class HostSignals:
    """Host facts that detection conditions are evaluated against."""

    hostname: str
    os: str
    env: Mapping[str, str]


@dataclass(frozen=True)
class HostnameCondition:
    hostname: str

    def matches(self, signals: HostSignals) -> bool:
        return signals.hostname == self.hostname

    def to_dict(self) -> Dict[str, Any]:
        return {"hostname": self.hostname}


@dataclass(frozen=True)
class OSCondition:
    os: str

    def matches(self, signals: HostSignals) -> bool:
        return signals.os == self.os

    def to_dict(self) -> Dict[str, Any]:
        return {"os": self.os}


@dataclass(frozen=True)
class EnvVarCondition:
    name: str
    value: str

    def matches(self, signals: HostSignals) -> bool:
        # An unset variable never matches.
        actual = signals.env.get(self.name)
        return actual is not None and actual == self.value

    def to_dict(self) -> Dict[str, Any]:
        return {"env_var": {"name": self.name, "value": self.value}}


DetectionCondition = Union[HostnameCondition, OSCondition, EnvVarCondition]


def parse_condition(data: Any) -> DetectionCondition:
    """Parse one tagged condition mapping.

    Args:
        data: A single-key mapping such as ``{"os": "linux"}``.

    Returns:
        The matching condition dataclass.

    Raises:
        ValueError: If the tag is unknown or the payload is malformed.
    """
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"condition must be a single-key mapping, got {data!r}")

    tag, payload = next(iter(data.items()))
    tag = str(tag).lower()
    if tag == "hostname":
        if not isinstance(payload, str):
            raise ValueError("hostname condition must be a string")
        return HostnameCondition(payload)
    if tag == "os":
        if not isinstance(payload, str):
            raise ValueError("os condition must be a string")
        return OSCondition(payload)
    if tag in ("env_var", "envvar"):
        if not isinstance(payload, dict) or "name" not in payload or "value" not in payload:
            raise ValueError("env_var condition must have a name and a value")
        return EnvVarCondition(str(payload["name"]), str(payload["value"]))
    raise ValueError(f"unknown condition type: {tag}")


@dataclass
class DetectionRule:
    """A profile selected when all of its conditions match."""

    profile: str
    conditions: List[DetectionCondition] = field(default_factory=list)

    def matches(self, signals: HostSignals) -> bool:
        return all(condition.matches(signals) for condition in self.conditions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile": self.profile,
            "conditions": [condition.to_dict() for condition in self.conditions],
        }


@dataclass
class ProfileConfig:
    """Tracked files and policy for one profile."""

    files: Dict[str, str] = field(default_factory=dict)
    ignore_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))
    use_symlinks: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": dict(self.files),
            "ignore_patterns": list(self.ignore_patterns),
            "use_symlinks": self.use_symlinks,
        }


@dataclass
class RemoteConfig:
    """Remote repository used for mirroring."""

    github_repo: str = ""
    github_token: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"github_repo": self.github_repo, "github_token": self.github_token}


@dataclass
class Config:
    """Aggregate dotty configuration."""

    profiles: Dict[str, ProfileConfig] = field(default_factory=dict)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    sync_interval: int = DEFAULT_SYNC_INTERVAL
    detection_rules: Optional[List[DetectionRule]] = None

    @classmethod
    def default(cls) -> Config:
        """Return the configuration written on first run."""
        return cls(profiles={DEFAULT_PROFILE: ProfileConfig()})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Config:
        """Build a configuration from a parsed mapping.

        Structural problems raise ``ConfigInvalidError``; value checks are
        left to ``validate()``.
        """
        if not isinstance(data, dict):
            raise ConfigInvalidError("Configuration must be a dictionary")

        try:
            profiles_data = data.get("profiles") or {}
            if not isinstance(profiles_data, dict):
                raise ValueError("profiles must be a dictionary")
            profiles = {}
            for name, profile_data in profiles_data.items():
                if not isinstance(profile_data, dict):
                    raise ValueError(f"profile {name} configuration must be a dictionary")
                profiles[str(name)] = ProfileConfig(
                    files=profile_data.get("files") or {},
                    ignore_patterns=profile_data.get("ignore_patterns", []),
                    use_symlinks=profile_data.get("use_symlinks", False),
                )

            remote_data = data.get("remote") or {}
            if not isinstance(remote_data, dict):
                raise ValueError("remote must be a dictionary")
            remote = RemoteConfig(
                github_repo=remote_data.get("github_repo") or "",
                github_token=remote_data.get("github_token") or "",
            )

            rules_data = data.get("profile_detection")
            if isinstance(rules_data, dict):
                rules_data = rules_data.get("rules")
            rules = None
            if rules_data is not None:
                if not isinstance(rules_data, list):
                    raise ValueError("profile_detection must be a list of rules")
                rules = []
                for rule_data in rules_data:
                    if not isinstance(rule_data, dict) or "profile" not in rule_data:
                        raise ValueError("detection rule must have a profile")
                    conditions = rule_data.get("conditions") or []
                    if not isinstance(conditions, list):
                        raise ValueError(
                            f"conditions for rule {rule_data['profile']} must be a list"
                        )
                    rules.append(
                        DetectionRule(
                            profile=str(rule_data["profile"]),
                            conditions=[parse_condition(c) for c in conditions],
                        )
                    )
        except ValueError as e:
            raise ConfigInvalidError(str(e)) from e

        return cls(
            profiles=profiles,
            remote=remote,
            sync_interval=data.get("sync_interval", DEFAULT_SYNC_INTERVAL),
            detection_rules=rules,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "profiles": {name: profile.to_dict() for name, profile in self.profiles.items()},
            "remote": self.remote.to_dict(),
            "sync_interval": self.sync_interval,
        }
        if self.detection_rules is not None:
            data["profile_detection"] = [rule.to_dict() for rule in self.detection_rules]
        return data

    def validate(self) -> List[str]:
        """Validate configuration values.

        Returns:
            A list of error messages, empty when the configuration is valid.
        """
        errors = []

        if (
            not isinstance(self.sync_interval, int)
            or isinstance(self.sync_interval, bool)
            or self.sync_interval <= 0
        ):
            errors.append("sync_interval must be an integer greater than 0")

        for name, profile in self.profiles.items():
            if not isinstance(profile.files, dict):
                errors.append(f"profile {name} files must be a dictionary")
            else:
                for relative_path, source in profile.files.items():
                    if not isinstance(relative_path, str) or not isinstance(source, str):
                        errors.append(
                            f"profile {name} file {relative_path!r} must map a string to a string"
                        )
                    elif not is_home_relative(relative_path):
                        errors.append(
                            f"profile {name} file {relative_path!r} must be relative to the home"
                            " directory"
                        )

            if not isinstance(profile.ignore_patterns, list):
                errors.append(f"profile {name} ignore_patterns must be a list")
            else:
                for pattern in profile.ignore_patterns:
                    if not isinstance(pattern, str) or not pattern:
                        errors.append(
                            f"profile {name} ignore pattern {pattern!r} must be a non-empty string"
                        )

            if not isinstance(profile.use_symlinks, bool):
                errors.append(f"profile {name} use_symlinks must be a boolean")

        if not isinstance(self.remote.github_repo, str):
            errors.append("remote github_repo must be a string")
        if not isinstance(self.remote.github_token, str):
            errors.append("remote github_token must be a string")

        for rule in self.detection_rules or []:
            if not rule.profile:
                errors.append("detection rule profile must not be empty")

        return errors

    def require_remote(self) -> None:
        """Ensure the remote settings are usable for mirroring.

        Raises:
            ConfigInvalidError: If the repository URL or the token is empty.
        """
        if not self.remote.github_repo:
            raise ConfigInvalidError("GitHub repository URL is missing in the configuration")
        if not self.remote.github_token:
            raise ConfigInvalidError("GitHub token is missing in the configuration")

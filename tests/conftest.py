"""Test configuration."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any, Callable

import pytest

from dotty.core.config import Config, ProfileConfig, RemoteConfig
from dotty.core.store import ProfileStore
from dotty.core.sync import SyncOrchestrator


def run_git(*args: str, cwd: Path) -> str:
    """Run a git command in ``cwd`` and return its output."""
    result = subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)
    return result.stdout.strip()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Create a fake home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def dotfiles_dir(home: Path) -> Path:
    """Create a directory of canonical sources inside the fake home."""
    sources = home / "dotfiles"
    sources.mkdir()
    (sources / ".vimrc").write_text("set nu\n")
    (sources / ".bashrc").write_text("export EDITOR=vim\n")
    return sources


@pytest.fixture
def bare_remote(tmp_path: Path) -> Path:
    """Create an empty bare repository to act as the remote."""
    remote = tmp_path / "remote.git"
    remote.mkdir()
    run_git("init", "--bare", cwd=remote)
    return remote


@pytest.fixture
def store(tmp_path: Path, dotfiles_dir: Path) -> ProfileStore:
    """Create a store with a default profile tracking .vimrc."""
    config = Config(
        profiles={
            "default": ProfileConfig(
                files={".vimrc": str(dotfiles_dir / ".vimrc")},
                ignore_patterns=[".swp"],
                use_symlinks=False,
            )
        },
    )
    store = ProfileStore(tmp_path / "config" / "config.yaml", config)
    store.save()
    return store


@pytest.fixture
def remote_store(store: ProfileStore, bare_remote: Path) -> ProfileStore:
    """The default store pointed at a local bare remote."""
    store.config.remote = RemoteConfig(github_repo=str(bare_remote), github_token="secret-token")
    store.save()
    return store


@pytest.fixture
def orchestrator(store: ProfileStore, home: Path) -> SyncOrchestrator:
    """Create an orchestrator operating on the fake home."""
    return SyncOrchestrator(store, home=home)


@pytest.fixture
def deny_access(monkeypatch: pytest.MonkeyPatch) -> Callable[[Path], None]:
    """Make stat calls under a directory fail as if it could not be traversed."""

    def deny(locked: Path) -> None:
        for name in ("exists", "is_file", "is_dir", "is_symlink"):
            original = getattr(Path, name)

            def guarded(self: Path, *args: Any, _original: Any = original, **kwargs: Any) -> bool:
                if self == locked or locked in self.parents:
                    raise PermissionError(13, "Permission denied", str(self))
                return _original(self, *args, **kwargs)

            monkeypatch.setattr(Path, name, guarded)

    return deny

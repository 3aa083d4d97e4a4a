"""Command line interface for dotty."""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from .core.errors import DottyError
from .core.logging import setup_logging
from .core.schedule import ScheduleTrigger
from .core.store import ProfileStore
from .core.sync import FileStatus, SyncOrchestrator, SyncReport
from .core.watch import WatchTrigger

console = Console()

STATUS_STYLES = {
    FileStatus.SYNCED: "green",
    FileStatus.SKIPPED: "yellow",
    FileStatus.MISSING: "yellow",
    FileStatus.UNCHANGED: "blue",
    FileStatus.FAILED: "red",
}

profile_option = click.option(
    "--profile", "-p", help="Profile to use (defaults to the detected profile)"
)


class Context:
    """Shared state handed to every subcommand."""

    def __init__(self, config_path: Optional[Path]) -> None:
        self.config_path = config_path
        self.home = Path.home()

    def store(self) -> ProfileStore:
        return ProfileStore.load(self.config_path)

    def orchestrator(self) -> SyncOrchestrator:
        return SyncOrchestrator(self.store(), home=self.home, console=console)


pass_context = click.make_pass_decorator(Context)


def print_report(report: SyncReport) -> None:
    table = Table(title=f"Sync of profile '{report.profile}'")
    table.add_column("File", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")
    for result in report.files:
        style = STATUS_STYLES[result.status]
        table.add_row(
            result.relative_path, f"[{style}]{result.status.value}[/{style}]", result.message
        )
    console.print(table)

    if report.mirror_error:
        console.print(f"[red]Mirror failed: {report.mirror_error}")
    elif report.mirrored:
        console.print("[green]Mirrored tracked files to the remote repository")


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (defaults to $DOTTY_CONFIG or ~/.config/dotty/config.yaml)",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", help="Also write logs to this file")
@click.pass_context
def cli(
    ctx: click.Context, config_path: Optional[Path], debug: bool, log_file: Optional[str]
) -> None:
    """Dotfile synchronization tool.

    Keeps tracked configuration files in your home directory in line with
    their canonical sources, per profile, and mirrors them to a git remote.

    Main commands:

      add       Start tracking a file
      remove    Stop tracking a file
      sync      Deploy a profile and mirror it to the remote
      diff      Show what a sync would change
      watch     Sync whenever a tracked source changes
      schedule  Sync on a fixed interval
      profiles  List configured profiles

    Run 'dotty COMMAND --help' for more information on a specific command.
    """
    setup_logging(debug=debug, log_file=log_file)
    ctx.obj = Context(config_path)


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
@profile_option
@pass_context
def add(context: Context, path: Path, profile: Optional[str]) -> None:
    """Start tracking PATH (must live under your home directory).

    Examples:

      dotty add ~/.vimrc

      dotty add ~/.gitconfig --profile work
    """
    try:
        store = context.store()
        orchestrator = SyncOrchestrator(store, home=context.home)
        name = orchestrator.resolve_profile(profile)
        relative_path = store.add_file(path, name, context.home)
        console.print(f"[green]Added {relative_path} to profile {name}")
    except DottyError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
@profile_option
@pass_context
def remove(context: Context, path: Path, profile: Optional[str]) -> None:
    """Stop tracking PATH.

    Removing a file that is not tracked is reported but is not an error.
    """
    try:
        store = context.store()
        orchestrator = SyncOrchestrator(store, home=context.home)
        name = orchestrator.resolve_profile(profile)
        if store.remove_file(path, name, context.home):
            console.print(f"[green]Removed {path} from profile {name}")
        else:
            console.print(f"[yellow]{path} not found in profile {name}")
    except DottyError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()


@cli.command()
@profile_option
@click.option("--no-mirror", is_flag=True, help="Deploy only, do not commit and push to the remote")
@pass_context
def sync(context: Context, profile: Optional[str], no_mirror: bool) -> None:
    """Deploy a profile's files and mirror all tracked files to the remote.

    The sync command will:
    1. Show a diff of every deployed file against its source
    2. Back up and overwrite (or link) each eligible destination
    3. Commit and push all tracked files to the remote repository
    """
    try:
        report = context.orchestrator().sync(profile, mirror=not no_mirror)
    except DottyError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()

    print_report(report)
    if not report.ok:
        console.print("[red]Error: Sync finished with errors")
        raise click.Abort()


@cli.command()
@profile_option
@pass_context
def diff(context: Context, profile: Optional[str]) -> None:
    """Show what a sync would change, without changing anything."""
    try:
        context.orchestrator().show_diff(profile)
    except DottyError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()


@cli.command()
@profile_option
@click.option("--no-mirror", is_flag=True, help="Deploy only, do not commit and push to the remote")
@pass_context
def watch(context: Context, profile: Optional[str], no_mirror: bool) -> None:
    """Sync whenever a tracked source file changes. Stop with Ctrl-C."""
    try:
        WatchTrigger(context.orchestrator(), mirror=not no_mirror).run(profile)
    except KeyboardInterrupt:
        console.print("Stopped watching")
    except DottyError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()


@cli.command()
@click.option(
    "--interval", "-i", type=int, help="Minutes between syncs (defaults to sync_interval)"
)
@profile_option
@pass_context
def schedule(context: Context, interval: Optional[int], profile: Optional[str]) -> None:
    """Sync on a fixed interval, reloading the configuration each time. Stop with Ctrl-C."""
    try:
        if interval is None:
            interval = context.store().config.sync_interval
        ScheduleTrigger(interval, config_path=context.config_path, home=context.home).run(profile)
    except KeyboardInterrupt:
        console.print("Stopped scheduled sync")
    except DottyError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()


@cli.command()
@pass_context
def profiles(context: Context) -> None:
    """List configured profiles and the one detected for this machine."""
    try:
        orchestrator = context.orchestrator()
    except DottyError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()

    detected = orchestrator.resolve_profile()
    table = Table(title="Profiles")
    table.add_column("Profile", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Mode", style="magenta")
    table.add_column("Detected", style="green")
    for name, profile_config in orchestrator.store.config.profiles.items():
        table.add_row(
            name,
            str(len(profile_config.files)),
            "symlink" if profile_config.use_symlinks else "copy",
            "*" if name == detected else "",
        )
    console.print(table)


def main() -> None:
    """Entry point for the dotty CLI."""
    cli()


if __name__ == "__main__":
    main()

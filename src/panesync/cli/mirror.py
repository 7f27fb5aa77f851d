"""Mirror command for panesync CLI.

Commands:
- mirror: Replay changes of a local path into a target directory
"""

from __future__ import annotations

import sys
import time
from pathlib import Path

import click

from panesync.cli.config import load_config_or_exit
from panesync.core.types import HostError
from panesync.host.localhost import Localhost
from panesync.sync.session import SyncSession
from panesync.sync.watcher import WatcherBridge


@click.command()
@click.argument("local", type=click.Path(exists=True, path_type=Path))
@click.argument("remote", type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Stop after this many seconds instead of waiting for Ctrl+C.",
)
@click.option(
    "--interval",
    type=float,
    default=0.1,
    show_default=True,
    help="Seconds to sleep when no change is pending.",
)
def mirror(local: Path, remote: Path, duration: float | None, interval: float) -> None:
    """Watch LOCAL and replay its changes into REMOTE.

    Created and modified files are copied, removals and renames are
    applied to REMOTE. Existing content is not copied; use 'push' first.
    """
    config = load_config_or_exit()
    local = local.expanduser().resolve()
    remote.mkdir(parents=True, exist_ok=True)
    remote = remote.resolve()

    watcher = WatcherBridge.init(config.watcher_delay_s)
    if not watcher.available:
        click.echo("Error: File watcher is not available on this system.", err=True)
        sys.exit(1)

    with watcher:
        try:
            session = SyncSession(
                Localhost(local if local.is_dir() else local.parent, show_hidden=config.show_hidden),
                Localhost(remote, show_hidden=config.show_hidden),
                config=config,
                watcher=watcher,
            )
        except HostError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        target = remote if local.is_dir() else remote / local.name
        session.watch(local, target)
        if not watcher.watched(local):
            sys.exit(1)

        click.echo(f"Mirroring {local} into {target}. Press Ctrl+C to stop.")
        deadline = None if duration is None else time.monotonic() + duration
        try:
            while deadline is None or time.monotonic() < deadline:
                if session.poll_watcher() is not None:
                    continue
                if not watcher.available:
                    click.echo("Error: File watcher stopped.", err=True)
                    sys.exit(1)
                time.sleep(interval)
        except KeyboardInterrupt:
            click.echo("\nStopped.")

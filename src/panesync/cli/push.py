"""Push command for panesync CLI.

Commands:
- push: Copy a directory tree (optionally filtered) into another directory
"""

from __future__ import annotations

import signal
import sys
from pathlib import Path

import click

from panesync.cli.config import load_config_or_exit
from panesync.core.types import FileEntry, HostError
from panesync.host.localhost import Localhost
from panesync.sync.session import Side, SyncSession
from panesync.sync.walker import WalkdirState


def outermost(entries: list[FileEntry]) -> list[FileEntry]:
    """Drop entries inside a matched directory; copying the directory covers them."""
    directories = {entry.path for entry in entries if entry.is_dir}
    return [
        entry for entry in entries
        if not any(parent in directories for parent in entry.path.parents)
    ]


@click.command()
@click.argument("src", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("dst", type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "--filter",
    "-f",
    "pattern",
    help="Only copy entries matching this regex or wildcard, keeping their subdirectories.",
)
def push(src: Path, dst: Path, pattern: str | None) -> None:
    """Copy the contents of SRC into DST.

    Without --filter the whole tree is copied. With --filter, SRC is walked
    and every matching entry is copied to the same relative location under
    DST. Press Ctrl+C to abort; entries already copied are kept.
    """
    config = load_config_or_exit()
    dst.mkdir(parents=True, exist_ok=True)
    try:
        session = SyncSession(
            Localhost(src, show_hidden=config.show_hidden),
            Localhost(dst, show_hidden=config.show_hidden),
            config=config,
        )
    except HostError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if pattern is None:
        session.reload(Side.HOST)
        count = session.mark_all(Side.HOST)
    else:
        state = WalkdirState()
        previous = signal.signal(signal.SIGINT, lambda signum, frame: state.abort())
        try:
            entries = session.find(Side.HOST, pattern, state=state)
        finally:
            signal.signal(signal.SIGINT, previous)
        if entries is None:
            sys.exit(1)
        count = session.mark_walked(Side.HOST, outermost(entries), session.host.wrkdir)

    if count == 0:
        click.echo("Nothing to copy.")
        return

    click.echo(f"Copying {count} entries from {session.host.wrkdir} to {session.remote.wrkdir}")
    previous = signal.signal(signal.SIGINT, lambda signum, frame: session.abort_transfer())
    try:
        completed = session.transfer_queue(Side.HOST)
    finally:
        signal.signal(signal.SIGINT, previous)
    if not completed:
        sys.exit(1)

"""Walk command for panesync CLI.

Commands:
- walk: List every entry below a directory
"""

from __future__ import annotations

import signal
import sys
from pathlib import Path

import click

from panesync.cli.config import load_config_or_exit
from panesync.core.types import FileEntry, HostError, WalkAborted, WalkFailed
from panesync.host.localhost import Localhost
from panesync.sync.filter import Filter
from panesync.sync.walker import WalkdirState, walk_backend


def format_entry(entry: FileEntry, root: Path) -> str:
    """Render an entry relative to ``root``."""
    line = entry.path.relative_to(root).as_posix()
    if entry.is_dir:
        return f"{line}/"
    return line


@click.command()
@click.argument(
    "path",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--filter", "-f", "pattern", help="Only list entries matching this regex or wildcard.")
def walk(path: Path, pattern: str | None) -> None:
    """List every entry below PATH, depth-first.

    Press Ctrl+C to abort a long walk.
    """
    config = load_config_or_exit()
    try:
        backend = Localhost(path, show_hidden=config.show_hidden)
    except HostError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    state = WalkdirState()
    filter_ = Filter.compile(pattern) if pattern else None

    previous = signal.signal(signal.SIGINT, lambda signum, frame: state.abort())
    try:
        entries = walk_backend(backend, state=state, filter_=filter_)
    except WalkAborted:
        click.echo("Walk aborted.", err=True)
        sys.exit(130)
    except WalkFailed as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        signal.signal(signal.SIGINT, previous)

    root = backend.pwd()
    for entry in entries:
        click.echo(format_entry(entry, root))

"""Command-line interface for panesync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- walk: List every entry below a directory
- push: Copy a directory tree (optionally filtered) into another directory
- mirror: Replay changes of a local path into a target directory
- config: Show or set configuration values
"""

from __future__ import annotations

import logging

import click

from panesync.cli.config import config
from panesync.cli.mirror import mirror
from panesync.cli.push import push
from panesync.cli.walk import walk


class ClickEchoHandler(logging.Handler):
    """Logging handler writing records through ``click.echo``.

    Warnings and errors go to stderr, everything else to stdout.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            click.echo(msg, err=record.levelno >= logging.WARNING)
        except Exception:
            self.handleError(record)


def setup_logging(verbose: bool) -> None:
    """Route panesync log records to the terminal.

    Session log records (``panesync.sync.log``) are user-facing and shown
    from INFO up; other modules only report warnings unless ``verbose``.
    """
    handler = ClickEchoHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))

    panesync_logger = logging.getLogger("panesync")
    for existing in panesync_logger.handlers[:]:
        panesync_logger.removeHandler(existing)
    panesync_logger.addHandler(handler)
    panesync_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    panesync_logger.propagate = False

    session_logger = logging.getLogger("panesync.sync.log")
    session_logger.setLevel(logging.NOTSET if verbose else logging.INFO)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug output.")
@click.version_option(package_name="panesync")
def cli(verbose: bool) -> None:
    """panesync - Two-pane file synchronization."""
    setup_logging(verbose)


cli.add_command(walk)
cli.add_command(push)
cli.add_command(mirror)
cli.add_command(config)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "ClickEchoHandler",
    "cli",
    "main",
    "setup_logging",
]

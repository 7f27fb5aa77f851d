"""Config command for panesync CLI.

Commands:
- config: Show or set configuration values
"""

from __future__ import annotations

import sys

import click

from panesync.core.config import SessionConfig, load_config, save_config
from panesync.core.types import ConfigError


def load_config_or_exit() -> SessionConfig:
    """Load the configuration, exiting with an error message if it is invalid."""
    try:
        return load_config()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.command()
@click.argument("key", required=False)
@click.argument("value", required=False)
def config(key: str | None, value: str | None) -> None:
    """Show or set configuration values.

    Without arguments, prints every value. With KEY, prints that value.
    With KEY and VALUE, stores the new value.
    """
    current = load_config_or_exit()
    data = current.to_dict()

    if key is None:
        for name, setting in data.items():
            click.echo(f"{name} = {setting}")
        return

    if key not in data:
        click.echo(f"Error: Unknown configuration key '{key}'", err=True)
        sys.exit(1)

    if value is None:
        click.echo(f"{key} = {data[key]}")
        return

    data[key] = value
    try:
        updated = SessionConfig.from_dict(data)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    save_config(updated)
    click.echo(f"{key} = {updated.to_dict()[key]}")

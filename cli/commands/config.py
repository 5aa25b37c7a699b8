# cli/commands/config.py
"""Configuration commands."""

import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from cli.options import config_option, resolve_settings
from feeder.errors import FatalError


@click.command('check-config')
@config_option
@click.option('--show', is_flag=True, help='Print the effective settings')
def check_config(config_path: Optional[Path], show: bool):
    """Validate the controller configuration."""
    try:
        settings = resolve_settings(config_path)
    except FatalError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    click.echo("✅ Config check passed")
    if show:
        click.echo(yaml.safe_dump(settings.model_dump(mode="json"), sort_keys=False))

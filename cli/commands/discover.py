# cli/commands/discover.py
"""Inspect what the controller sees without moving anything."""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click

from cli.options import config_option, resolve_settings
from feeder.bootstrap import initialize
from feeder.environment.bridge import BridgeEnvironment
from feeder.errors import FatalError


async def _discover(settings):
    environment = BridgeEnvironment(settings.bridge_url, timeout=settings.bridge_timeout)
    try:
        return await initialize(settings, environment)
    finally:
        await environment.close()


@click.command()
@config_option
def discover(config_path: Optional[Path]):
    """Classify peripherals and list the resulting outputs."""
    try:
        settings = resolve_settings(config_path)
        loop = asyncio.run(_discover(settings))
    except FatalError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    click.echo(f"📦 Found {len(loop.pool)} output blocks/pairs:")
    for i, output in enumerate(loop.pool, start=1):
        click.echo(f"  {i}. {output}")

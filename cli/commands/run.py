# cli/commands/run.py
"""Run the controller."""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
import structlog

from cli.options import config_option, resolve_settings
from feeder.bootstrap import RunMode, run as run_controller
from feeder.errors import FatalError
from feeder.monitoring.metrics import FeederMetrics


logger = structlog.get_logger(__name__)


@click.command()
@config_option
@click.option(
    '--mode',
    '-m',
    type=click.Choice([m.value for m in RunMode]),
    default=RunMode.DEFAULT.value,
    show_default=True,
    help='default: loop forever; single: one cycle; benchinit: time initialization only'
)
def run(config_path: Optional[Path], mode: str):
    """Move intake contents into available outputs."""
    try:
        settings = resolve_settings(config_path)
    except FatalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    metrics = FeederMetrics()
    if settings.metrics_enabled:
        metrics.serve(settings.metrics_port)

    logger.info("controller_starting", mode=mode, bridge=settings.bridge_url)
    try:
        asyncio.run(run_controller(settings, RunMode(mode), metrics=metrics))
    except KeyboardInterrupt:
        logger.info("controller_interrupted")
    except FatalError as e:
        logger.error("controller_fatal", error=str(e), kind=type(e).__name__)
        sys.exit(1)

    logger.info("controller_stopped")

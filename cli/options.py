"""Options shared by CLI commands."""

from pathlib import Path
from typing import Optional

import click

from feeder.config import Settings, get_settings, load_settings
from feeder.log import configure_logging


config_option = click.option(
    '--config',
    '-c',
    'config_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Controller config file (defaults to the first feeder.yaml found below the working directory)'
)


def resolve_settings(config_path: Optional[Path]) -> Settings:
    """Load settings and set up logging from them."""
    settings = load_settings(config_path) if config_path else get_settings()
    configure_logging(settings.log_level, settings.log_file, settings.log_json)
    return settings

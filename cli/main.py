# cli/main.py
"""Main CLI entry point for the feeder controller."""

import click

from feeder import __version__


@click.group()
@click.version_option(version=__version__)
def cli():
    """Feeder - moves intake items and fluids into idle machines."""
    pass


def register_commands():
    """Register all CLI commands."""
    from cli.commands.run import run
    cli.add_command(run)

    from cli.commands.config import check_config
    cli.add_command(check_config)

    from cli.commands.discover import discover
    cli.add_command(discover)


register_commands()


if __name__ == '__main__':
    cli()

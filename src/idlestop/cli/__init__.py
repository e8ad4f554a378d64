"""Command-line interface for idlestop."""

import click

from idlestop import __version__
from idlestop.cli.serve import serve_command


@click.group()
@click.version_option(__version__, prog_name="idlestop")
def main() -> None:
    """Run an HTTP service that exits when it has been idle.

    Designed for systemd socket activation: the service manager starts the
    process on the first connection and idlestop stops it again after a
    period without requests.
    """


main.add_command(serve_command)

"""
golfbets/cli/__init__.py

golfbets CLI — root Click command group, registered in pyproject.toml as:

    [project.scripts]
    golfbets = "golfbets.cli:cli"
"""

import logging

import click

from golfbets.cli.settle import settle_command
from golfbets.cli.verify import verify_command


@click.group()
@click.version_option(package_name="golfbets")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for engine and ledger messages (written to stderr).",
)
def cli(log_level: str) -> None:
    """
    golfbets — golf side-bet settlement.

    \b
    Commands:
      settle    Settle a match snapshot and print the ledger.
      verify    Verify a signed audit log.

    \b
    Quick start:
      golfbets settle saturday.yaml
      golfbets --log-level INFO settle saturday.yaml --audit-log audit.jsonl
      golfbets verify audit.jsonl --format json
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(settle_command)
cli.add_command(verify_command)

"""route-validator CLI entry point."""

import click


@click.group()
def cli():
    """route-validator: declarative request validation CLI."""
    pass


# Register subcommands
from route_validator.cli.rules_cmd import check, directives  # noqa: E402

cli.add_command(check)
cli.add_command(directives)

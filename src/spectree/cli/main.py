"""spectree CLI entry point.

JSON-only output; every command reads a nested application payload file.
"""

from typing import Optional

import click

from spectree.cli.config import create_context
from spectree.cli.registry import register_all_commands


@click.group()
@click.option(
    "--config",
    "config_file",
    envvar="SPECTREE_CONFIG_FILE",
    type=click.Path(exists=False, dir_okay=False),
    help="Path to a spectree TOML config file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level",
)
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], log_level: Optional[str]) -> None:
    """spectree - inspect and reshape epic/feature/story/task trees.

    All commands output JSON for reliable parsing.
    """
    ctx.ensure_object(dict)
    ctx.obj["cli_context"] = create_context(config_file=config_file, log_level=log_level)


register_all_commands(cli)


if __name__ == "__main__":
    cli()

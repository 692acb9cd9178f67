"""Env command: write parameters to a KEY="value" env file."""

from __future__ import annotations

from pathlib import Path

import click
from rich.markup import escape

from ..errors import ParamfsError
from ._common import console, fail, open_engine


def _split_vars(ctx, param, value):
    if value is None:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def register_env_commands(main: click.Group) -> None:
    """Register the env command."""

    @main.command("env")
    @click.option(
        "--file", "-f", "output_file", required=True, envvar="FILE",
        type=click.Path(dir_okay=False), help="Env file to write.",
    )
    @click.option(
        "--base", "-b", required=True, envvar="BASE",
        help="Key prefix the variables live under.",
    )
    @click.option(
        "--vars", "-v", "variables", required=True, envvar="VARS",
        callback=_split_vars, help="Comma-separated variable names.",
    )
    @click.pass_context
    def env(ctx, output_file: str, base: str, variables: list[str]):
        """Export parameters as an env file.

        Each <base>/<name> parameter becomes a NAME="value" line. Options
        can also come from the FILE, BASE and VARS environment variables.

        \b
        Example:

            paramfs env -f .env -b /apps/prod/api -v db_url,api_key
        """
        console.print(f"Getting vars {escape(str(variables))} from [cyan]{base}[/]")
        try:
            written = open_engine(ctx).export_env(base, variables, Path(output_file))
        except ParamfsError as exc:
            fail(exc)

        console.print(f"Wrote {len(written)} variable(s) to [cyan]{output_file}[/]")
        missing = len(variables) - len(written)
        if missing > 0:
            console.print(f"[yellow]{missing} variable(s) not found[/]")

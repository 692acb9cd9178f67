"""Compose command: run docker compose with secrets from the store."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from ..compose import rewrite_secrets, run_compose
from ..errors import ParamfsError
from ._common import console, fail, open_store, resolve_config


def register_compose_commands(main: click.Group) -> None:
    """Register the compose command."""

    @main.command(
        "compose",
        context_settings={"ignore_unknown_options": True},
    )
    @click.argument("compose_file", type=click.Path(dir_okay=False))
    @click.argument("namespace")
    @click.argument("args", nargs=-1, type=click.UNPROCESSED)
    @click.option(
        "--print-only", is_flag=True,
        help="Print the secrets override without running docker.",
    )
    @click.pass_context
    def compose(ctx, compose_file: str, namespace: str, args: tuple, print_only: bool):
        """Run docker compose with service secrets injected from the store.

        Every secret a service references is read from
        /apps/<namespace>/<service>/secrets/<name> and passed to docker
        as an environment-backed secret. Anything after -- goes to
        docker compose.

        \b
        Examples:

            paramfs compose docker-compose.yml prod -- up -d

            paramfs compose docker-compose.yml prod --print-only
        """
        compose_path = Path(compose_file)
        try:
            manifest, environment = rewrite_secrets(
                open_store(ctx), compose_path, namespace,
            )
        except ParamfsError as exc:
            fail(exc)

        click.echo(manifest.to_yaml())
        if print_only:
            return

        try:
            code = run_compose(
                compose_path,
                manifest,
                environment,
                args,
                docker=resolve_config(ctx).docker_command,
            )
        except ParamfsError as exc:
            fail(exc)

        if code != 0:
            console.print(f"[red]docker compose exited with status {code}[/]")
            sys.exit(code)

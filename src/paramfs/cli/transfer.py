"""Transfer commands: upload, download, copy."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..errors import ParamfsError
from ..models import ParameterType
from ._common import console, fail, open_engine, resolve_config


def register_transfer_commands(main: click.Group) -> None:
    """Register upload, download and copy."""

    @main.command("upload")
    @click.option(
        "--dir", "local_dir", required=True,
        type=click.Path(exists=True, file_okay=False),
        help="Local directory to upload.",
    )
    @click.option("--prefix", required=True, help="Key prefix to upload under.")
    @click.option(
        "--type", "parameter_type", default=None,
        type=click.Choice([t.value for t in ParameterType]),
        help="Parameter type for uploaded files (default SecureString).",
    )
    @click.pass_context
    def upload(ctx, local_dir: str, prefix: str, parameter_type: Optional[str]):
        """Upload a directory tree under a key prefix.

        Files larger than the chunk size are split across
        <key>.part0, <key>.part1, ... parameters.

        \b
        Example:

            paramfs upload --dir ./certs --prefix /apps/prod/certs
        """
        try:
            if parameter_type:
                resolve_config(ctx).parameter_type = ParameterType(parameter_type)
            engine = open_engine(ctx)
            keys = engine.upload(Path(local_dir), prefix)
        except ParamfsError as exc:
            fail(exc)

        console.print(
            f"[green]Uploaded[/] {len(keys)} parameter(s) under [cyan]{prefix}[/]"
        )

    @main.command("download")
    @click.option("--prefix", default=None, help="Key prefix to download.")
    @click.option("--name", default=None, help="Single parameter to download.")
    @click.option(
        "--dir", "local_dir", required=True,
        type=click.Path(file_okay=False),
        help="Local directory to write into.",
    )
    @click.pass_context
    def download(ctx, prefix: Optional[str], name: Optional[str], local_dir: str):
        """Download a key prefix (or one parameter) into a directory.

        Chunked parameters are reassembled into their original files.

        \b
        Examples:

            paramfs download --prefix /apps/prod/certs --dir ./certs

            paramfs download --name /apps/prod/certs/ca.pem --dir .
        """
        if prefix is not None and name is not None:
            raise click.UsageError("--prefix and --name are mutually exclusive.")
        if prefix is None and name is None:
            raise click.UsageError("One of --prefix or --name is required.")

        target = Path(local_dir).expanduser()
        try:
            engine = open_engine(ctx)
            if prefix is not None:
                written = engine.download_prefix(prefix, target)
            else:
                written = [engine.download_name(name, target)]
        except ParamfsError as exc:
            fail(exc)

        console.print(f"[green]Downloaded[/] {len(written)} file(s) to [cyan]{target}[/]")
        for path in written:
            console.print(f"  [dim]{path}[/]")

    @main.command("copy")
    @click.option("--prefix", required=True, help="Source key prefix.")
    @click.option("--to-prefix", required=True, help="Destination key prefix.")
    @click.pass_context
    def copy(ctx, prefix: str, to_prefix: str):
        """Copy every parameter under one prefix to another.

        Values and parameter types are copied verbatim.

        \b
        Example:

            paramfs copy --prefix /apps/prod --to-prefix /apps/staging
        """
        try:
            keys = open_engine(ctx).copy(prefix, to_prefix)
        except ParamfsError as exc:
            fail(exc)

        console.print(
            f"[green]Copied[/] {len(keys)} parameter(s) "
            f"from [cyan]{prefix}[/] to [cyan]{to_prefix}[/]"
        )

"""
paramfs CLI — the parameter store as a filesystem.

The main Click group is defined here; each command module registers
its commands through a register function.

Entry point: paramfs.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="paramfs")
@click.option(
    "--config", "config_path", default=None, type=click.Path(dir_okay=False),
    help="Config file (default: $PARAMFS_HOME/config.yaml).",
)
@click.option("--region", default=None, help="AWS region.")
@click.option("--profile", default=None, help="AWS credentials profile.")
@click.option("--endpoint-url", default=None, help="Override the SSM endpoint.")
@click.option(
    "--chunk-size", default=None, type=click.IntRange(min=1),
    help="Maximum bytes per stored value (default 4096).",
)
@click.option("--verbose", "-v", count=True, help="More logging (-vv for debug).")
@click.pass_context
def main(ctx, config_path, region, profile, endpoint_url, chunk_size, verbose):
    """paramfs — use SSM Parameter Store as a filesystem.

    \b
    Upload:    paramfs upload --dir ./certs --prefix /apps/prod/certs
    Download:  paramfs download --prefix /apps/prod/certs --dir ./certs
    Copy:      paramfs copy --prefix /apps/prod --to-prefix /apps/staging
    Env file:  paramfs env -f .env -b /apps/prod/api -v db_url,api_key
    Compose:   paramfs compose docker-compose.yml prod -- up -d
    """
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(name)s: %(message)s")

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["overrides"] = {
        "region": region,
        "profile": profile,
        "endpoint_url": endpoint_url,
        "chunk_size": chunk_size,
    }


# ---------------------------------------------------------------------------
# Register all commands from modular files
# ---------------------------------------------------------------------------

from .transfer import register_transfer_commands
from .env_cmd import register_env_commands
from .compose_cmd import register_compose_commands

register_transfer_commands(main)
register_env_commands(main)
register_compose_commands(main)

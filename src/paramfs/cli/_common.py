"""Shared utilities for all CLI command modules.

Provides the Rich console instance and the helpers that turn the
group-level options into a config and a store handle.
"""

from __future__ import annotations

import logging
import sys
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape

from ..config import load_config
from ..engine import TreeSyncEngine
from ..errors import ParamfsError
from ..models import ParamfsConfig
from ..store import ParameterStore, create_store

console = Console()
logger = logging.getLogger("paramfs.cli")


def resolve_config(ctx: click.Context) -> ParamfsConfig:
    """Config for this invocation, loaded once and cached on the context."""
    obj = ctx.ensure_object(dict)
    if "config" not in obj:
        obj["config"] = load_config(
            obj.get("config_path"), overrides=obj.get("overrides"),
        )
    return obj["config"]


def open_store(ctx: click.Context) -> ParameterStore:
    """Store handle for this invocation."""
    obj = ctx.ensure_object(dict)
    if "store" not in obj:
        obj["store"] = create_store(resolve_config(ctx))
    return obj["store"]


def open_engine(ctx: click.Context) -> TreeSyncEngine:
    config = resolve_config(ctx)
    return TreeSyncEngine(
        open_store(ctx),
        chunk_size=config.chunk_size,
        parameter_type=config.parameter_type,
    )


def fail(exc: ParamfsError) -> NoReturn:
    """Report a fatal error and exit with status 1."""
    logger.debug("Command failed", exc_info=exc)
    console.print(f"[bold red]Error:[/] {escape(str(exc))}", highlight=False)
    sys.exit(1)

"""
Exceptions raised by paramfs.

Everything the CLI reports to the user derives from ParamfsError.
Malformed chunk suffixes are never errors; see paramfs.codec.
"""

from __future__ import annotations


class ParamfsError(Exception):
    """Base class for all paramfs failures."""


class StoreError(ParamfsError):
    """A request to the parameter store failed."""


class ParameterNotFoundError(StoreError):
    """A single named parameter does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Parameter not found: {name}")
        self.name = name


class LocalFileError(ParamfsError):
    """Reading or writing the local filesystem failed."""


class ComposeFileError(ParamfsError):
    """The compose file could not be parsed."""


class ConfigError(ParamfsError):
    """The paramfs configuration is invalid."""

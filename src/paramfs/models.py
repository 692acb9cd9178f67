"""
Pydantic models for parameters and paramfs configuration.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_CHUNK_SIZE = 4096


class ParameterType(str, Enum):
    """Storage classification of a parameter."""

    STRING = "String"
    STRING_LIST = "StringList"
    SECURE_STRING = "SecureString"


class Parameter(BaseModel):
    """A single stored parameter, already decrypted."""

    name: str
    value: str
    type: ParameterType = ParameterType.STRING

    @property
    def basename(self) -> str:
        """Last ``/``-delimited component of the name."""
        return self.name.rsplit("/", 1)[-1]


class ParamfsConfig(BaseModel):
    """Resolved paramfs settings.

    Store connection settings are passed straight to boto3. Anything left
    as None falls back to boto3's own credential and region resolution.
    """

    region: Optional[str] = None
    profile: Optional[str] = None
    endpoint_url: Optional[str] = None
    max_attempts: int = Field(default=3, ge=1)

    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    parameter_type: ParameterType = ParameterType.SECURE_STRING

    docker_command: str = "docker"

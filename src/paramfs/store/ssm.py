"""
AWS SSM Parameter Store backend.

Every read asks for decryption so SecureString values come back as
plaintext. Client construction (credentials, region, retries) happens
once per process in create_client; the handle is then passed around
explicitly.

Expects AWS credentials via environment variables, ~/.aws/credentials,
or an instance profile:
    AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_DEFAULT_REGION
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import StoreError
from ..models import Parameter, ParameterType, ParamfsConfig
from .base import ParameterStore

logger = logging.getLogger("paramfs.store.ssm")

# GetParameters accepts at most this many names per call.
MAX_BATCH_SIZE = 10


def create_client(config: ParamfsConfig) -> Any:
    """Create a boto3 SSM client from paramfs settings.

    Args:
        config: Resolved configuration.

    Returns:
        boto3 SSM client.

    Raises:
        StoreError: If the profile, region or credentials setup is unusable.
    """
    try:
        session = boto3.Session(
            profile_name=config.profile,
            region_name=config.region,
        )
        return session.client(
            "ssm",
            endpoint_url=config.endpoint_url,
            config=BotoConfig(retries={"max_attempts": config.max_attempts}),
        )
    except BotoCoreError as exc:
        raise StoreError(f"Cannot create SSM client: {exc}") from exc


def create_store(config: ParamfsConfig) -> SSMParameterStore:
    """Build the SSM-backed store for a CLI invocation."""
    return SSMParameterStore(create_client(config))


def _to_parameter(raw: dict) -> Parameter:
    return Parameter(
        name=raw["Name"],
        value=raw.get("Value", ""),
        type=ParameterType(raw.get("Type", ParameterType.STRING.value)),
    )


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


class SSMParameterStore(ParameterStore):
    """ParameterStore over a boto3 ``ssm`` client."""

    def __init__(self, client: Any):
        self._client = client

    @property
    def name(self) -> str:
        return "ssm"

    def put(
        self,
        name: str,
        value: str,
        *,
        parameter_type: ParameterType = ParameterType.SECURE_STRING,
        overwrite: bool = True,
    ) -> None:
        try:
            self._client.put_parameter(
                Name=name,
                Value=value,
                Type=parameter_type.value,
                Overwrite=overwrite,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Failed to write {name}: {exc}") from exc
        logger.debug("put %s (%s)", name, parameter_type.value)

    def get(self, name: str) -> Optional[Parameter]:
        try:
            resp = self._client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as exc:
            if _error_code(exc) == "ParameterNotFound":
                return None
            raise StoreError(f"Failed to fetch {name}: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"Failed to fetch {name}: {exc}") from exc
        return _to_parameter(resp["Parameter"])

    def get_batch(
        self, names: Sequence[str],
    ) -> tuple[list[Parameter], list[str]]:
        found: list[Parameter] = []
        missing: list[str] = []
        names = list(names)
        for start in range(0, len(names), MAX_BATCH_SIZE):
            batch = names[start:start + MAX_BATCH_SIZE]
            try:
                resp = self._client.get_parameters(
                    Names=batch, WithDecryption=True,
                )
            except (BotoCoreError, ClientError) as exc:
                raise StoreError(
                    "Failed to fetch parameters from SSM: "
                    f"{', '.join(batch)}: {exc}"
                ) from exc
            found.extend(_to_parameter(p) for p in resp.get("Parameters", []))
            missing.extend(resp.get("InvalidParameters", []))
        return found, missing

    def list_page(
        self,
        path: str,
        *,
        recursive: bool = True,
        next_token: Optional[str] = None,
    ) -> tuple[list[Parameter], Optional[str]]:
        kwargs: dict[str, Any] = {
            "Path": path,
            "Recursive": recursive,
            "WithDecryption": True,
        }
        if next_token:
            kwargs["NextToken"] = next_token
        try:
            resp = self._client.get_parameters_by_path(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Failed to list {path}: {exc}") from exc
        params = [_to_parameter(p) for p in resp.get("Parameters", [])]
        return params, resp.get("NextToken")

"""
Compose secrets -- stored secrets injected as environment variables.

Each secret a service references in the compose file is looked up at

    /apps/<namespace>/<service>/secrets/<name>

and exposed to docker compose through an override file that turns every
referenced secret into an environment-backed one:

    secrets:
      db_password:
        environment: _APPS_PROD_API_SECRETS_DB_PASSWORD

The override is handed to ``docker compose -f <original> -f <override>``
together with the matching environment variables, so it wins over
whatever the original file declares for those secrets.
"""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Sequence, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ComposeFileError, LocalFileError, ParamfsError
from .store.base import ParameterStore

logger = logging.getLogger("paramfs.compose")

SECRETS_ROOT = "/apps"


# ---------------------------------------------------------------------------
# Compose file models
# ---------------------------------------------------------------------------


class ServiceSecretDetail(BaseModel):
    """Long-form secret reference inside a service."""

    source: str
    target: Optional[str] = None
    uid: Optional[Union[str, int]] = None
    gid: Optional[Union[str, int]] = None
    mode: Optional[int] = None


ServiceSecret = Union[str, ServiceSecretDetail]


class Service(BaseModel):
    """A compose service. Only ``secrets`` is read; the rest is ignored."""

    model_config = ConfigDict(extra="allow")

    secrets: Optional[list[ServiceSecret]] = None


class FileSecret(BaseModel):
    file: str


class EnvironmentSecret(BaseModel):
    environment: str


class ExternalSecret(BaseModel):
    external: Optional[bool] = None
    name: Optional[str] = None


# Top-level secret definitions are never read, only written; keys such as
# labels or template_driver are dropped rather than rejected.
SecretDefinition = Union[FileSecret, EnvironmentSecret, ExternalSecret]


class ComposeFile(BaseModel):
    """The parts of a compose file paramfs reads and writes."""

    model_config = ConfigDict(extra="allow")

    services: dict[str, Service]
    secrets: Optional[dict[str, SecretDefinition]] = None

    def to_yaml(self) -> str:
        data = self.model_dump(mode="json", exclude_none=True)
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def load_compose(path: Path) -> ComposeFile:
    """Parse a compose file.

    Raises:
        ComposeFileError: If the file is missing, is not YAML, or does not
            have the expected shape.
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ComposeFileError(f"Cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ComposeFileError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ComposeFileError(f"{path} is not a compose mapping")
    try:
        return ComposeFile.model_validate(data)
    except ValidationError as exc:
        raise ComposeFileError(f"Invalid compose file {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Key and name derivation
# ---------------------------------------------------------------------------


def secret_source(secret: ServiceSecret) -> str:
    if isinstance(secret, ServiceSecretDetail):
        return secret.source
    return secret


def secret_keys(compose: ComposeFile, namespace: str) -> list[str]:
    """Full store key of every secret referenced by every service."""
    keys: list[str] = []
    for service_name, service in compose.services.items():
        for secret in service.secrets or []:
            keys.append(
                f"{SECRETS_ROOT}/{namespace}/{service_name}/secrets/"
                f"{secret_source(secret)}"
            )
    return keys


def parent_path(key: str) -> str:
    """Everything before the final ``/``."""
    return key.rsplit("/", 1)[0] if "/" in key else key


def env_name(key: str) -> str:
    """``/apps/prod/api/secrets/db`` -> ``_APPS_PROD_API_SECRETS_DB``."""
    return key.replace("/", "_").upper()


def group_by_parent(keys: Sequence[str]) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = {}
    for key in keys:
        groups.setdefault(parent_path(key), []).append(key)
    return groups


# ---------------------------------------------------------------------------
# Store access
# ---------------------------------------------------------------------------


async def gather_secret_values(
    store: ParameterStore, keys: Sequence[str],
) -> dict[str, str]:
    """List every parent path of keys concurrently, one request chain per path.

    Each listing is non-recursive and follows continuation tokens. The
    first failure propagates.

    Returns:
        Mapping of full parameter name to value for everything found.
    """
    parents = list(group_by_parent(keys))
    logger.debug("Fetching secrets under %s", parents)

    pages = await asyncio.gather(*(
        asyncio.to_thread(store.list_by_path, parent, recursive=False)
        for parent in parents
    ))

    values: dict[str, str] = {}
    for params in pages:
        for param in params:
            values[param.name] = param.value
    return values


def fetch_secret_values(
    store: ParameterStore, keys: Sequence[str],
) -> dict[str, str]:
    """Blocking wrapper around gather_secret_values."""
    return asyncio.run(gather_secret_values(store, keys))


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


def build_manifest(keys: Sequence[str]) -> ComposeFile:
    """Compose override declaring every key as an environment-backed secret.

    Secrets are named by the last key component; if two services share a
    secret name, the later one wins.
    """
    secrets: dict[str, SecretDefinition] = {}
    for key in keys:
        short = key.rsplit("/", 1)[-1]
        secrets[short] = EnvironmentSecret(environment=env_name(key))
    return ComposeFile(services={}, secrets=secrets)


def secret_environment(values: dict[str, str]) -> dict[str, str]:
    """Environment variables carrying the fetched secret values."""
    return {env_name(name): value for name, value in values.items()}


def rewrite_secrets(
    store: ParameterStore,
    compose_path: Path,
    namespace: str,
) -> tuple[ComposeFile, dict[str, str]]:
    """Build the secrets override and its environment for a compose file.

    The compose file is parsed before the store is touched.

    Args:
        store: Parameter store holding the secrets.
        compose_path: Original compose file.
        namespace: Namespace segment of the secret keys.

    Returns:
        Tuple of (override manifest, environment variables).
    """
    compose = load_compose(compose_path)
    keys = secret_keys(compose, namespace)
    logger.info("Compose file references %d secret(s)", len(keys))

    values = fetch_secret_values(store, keys) if keys else {}
    return build_manifest(keys), secret_environment(values)


# ---------------------------------------------------------------------------
# docker compose
# ---------------------------------------------------------------------------


def write_manifest(manifest: ComposeFile, directory: Optional[Path] = None) -> Path:
    """Write the override to a fresh temporary YAML file."""
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            suffix=".yaml",
            prefix="paramfs-secrets-",
            dir=directory,
            delete=False,
            encoding="utf-8",
        ) as fh:
            fh.write(manifest.to_yaml())
    except OSError as exc:
        raise LocalFileError(f"Failed to write compose override: {exc}") from exc
    return Path(fh.name)


def run_compose(
    compose_path: Path,
    manifest: ComposeFile,
    environment: dict[str, str],
    args: Sequence[str] = (),
    docker: str = "docker",
) -> int:
    """Run ``docker compose`` with the original file plus the secrets override.

    The override file only lives for the duration of the call.

    Returns:
        docker's exit code.
    """
    override = write_manifest(manifest)
    cmd = [
        docker, "compose",
        "-f", str(compose_path),
        "-f", str(override),
        *args,
    ]
    env = os.environ.copy()
    env.update(environment)

    logger.info("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, env=env, check=False)
    except OSError as exc:
        raise ParamfsError(f"Failed to run {docker}: {exc}") from exc
    finally:
        override.unlink(missing_ok=True)
    return result.returncode

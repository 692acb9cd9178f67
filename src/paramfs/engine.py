"""
Tree Sync Engine -- directory trees in, directory trees out.

Drives the chunked blob codec over whole trees:

    paramfs upload    ->  walk dir -> encode each file -> put every chunk
    paramfs download  ->  list prefix (all pages) -> decode -> write files
    paramfs copy      ->  list prefix -> put verbatim under the new prefix
    paramfs env       ->  fetch named parameters -> KEY="value" lines

Files and keys are independent units of work processed one at a time.
The first failure stops the walk; whatever was already written stays.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, Sequence

from .codec import decode, encode
from .errors import LocalFileError, ParameterNotFoundError
from .models import DEFAULT_CHUNK_SIZE, ParameterType
from .store.base import ParameterStore

logger = logging.getLogger("paramfs.engine")


def iter_files(root: Path) -> Iterator[Path]:
    """Yield every regular file under root, in sorted order.

    Symlinks (to files or directories) and special files are skipped.
    """
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if path.is_symlink() or not path.is_file():
                logger.debug("Skipping non-regular file %s", path)
                continue
            yield path


def to_key(prefix: str, relative: Path) -> str:
    """Map a relative file path onto a key under prefix.

    ``to_key("/p/", Path("a/b/c.txt"))`` gives ``/p/a/b/c.txt``.
    """
    return prefix.rstrip("/") + "".join(f"/{part}" for part in relative.parts)


def to_relative(prefix: str, name: str) -> str:
    """Strip ``prefix/`` from a key, leaving the path below it."""
    head = prefix.rstrip("/") + "/"
    if name.startswith(head):
        return name[len(head):]
    return name


def _safe_target(root: Path, relative: str) -> Path:
    parts = [p for p in relative.split("/") if p]
    if not parts or ".." in parts:
        raise LocalFileError(
            f"Refusing to write {relative!r} outside {root}"
        )
    return root.joinpath(*parts)


def _write_file(path: Path, content: bytes) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except OSError as exc:
        raise LocalFileError(f"Failed to write {path}: {exc}") from exc


class TreeSyncEngine:
    """Moves trees of files between a local directory and a parameter store.

    Args:
        store: Store handle every operation talks to.
        chunk_size: Maximum bytes per stored value.
        parameter_type: Classification used for uploaded files.
    """

    def __init__(
        self,
        store: ParameterStore,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        parameter_type: ParameterType = ParameterType.SECURE_STRING,
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        self.store = store
        self.chunk_size = chunk_size
        self.parameter_type = parameter_type

    def upload(self, local_dir: Path, remote_prefix: str) -> list[str]:
        """Upload every regular file under local_dir.

        Each chunk is stored as text decoded on its own, with invalid
        UTF-8 replaced by U+FFFD. A multi-byte character split across a
        chunk boundary, or any non-UTF-8 content, does not come back
        byte for byte.

        Args:
            local_dir: Directory to walk.
            remote_prefix: Key prefix the tree lands under.

        Returns:
            Every key written, in write order.

        Raises:
            LocalFileError: If local_dir is not a directory or a file
                cannot be read.
            StoreError: If a write fails.
        """
        local_dir = Path(local_dir)
        if not local_dir.is_dir():
            raise LocalFileError(f"Not a directory: {local_dir}")

        written: list[str] = []
        for path in iter_files(local_dir):
            try:
                content = path.read_bytes()
            except OSError as exc:
                raise LocalFileError(f"Failed to read {path}: {exc}") from exc

            base_key = to_key(remote_prefix, path.relative_to(local_dir))
            entries = encode(content, base_key, self.chunk_size)
            for key, chunk in entries:
                self.store.put(
                    key,
                    chunk.decode("utf-8", errors="replace"),
                    parameter_type=self.parameter_type,
                    overwrite=True,
                )
                written.append(key)
            logger.info(
                "Uploaded %s -> %s (%d chunk(s))", path, base_key, len(entries),
            )
        return written

    def download_prefix(self, remote_prefix: str, local_dir: Path) -> list[Path]:
        """Download and reassemble every blob under a prefix.

        Args:
            remote_prefix: Key prefix to list (recursively, all pages).
            local_dir: Directory the tree is recreated in.

        Returns:
            Paths of the files written.
        """
        local_dir = Path(local_dir)
        params = self.store.list_by_path(remote_prefix, recursive=True)
        logger.info("Found %d parameter(s) under %s", len(params), remote_prefix)

        blobs = decode(
            (to_relative(remote_prefix, p.name), p.value) for p in params
        )

        written: list[Path] = []
        for relative, content in sorted(blobs.items()):
            target = _safe_target(local_dir, relative)
            _write_file(target, content.encode("utf-8"))
            logger.info("Wrote %s", target)
            written.append(target)
        return written

    def download_name(self, name: str, local_dir: Path) -> Path:
        """Download one parameter into local_dir under its last path component.

        No chunk reassembly happens: the name addresses exactly one value.

        Raises:
            ParameterNotFoundError: If the parameter does not exist.
        """
        param = self.store.get(name)
        if param is None:
            raise ParameterNotFoundError(name)

        target = _safe_target(Path(local_dir), param.basename)
        _write_file(target, param.value.encode("utf-8"))
        logger.info("Wrote %s -> %s", name, target)
        return target

    def copy(self, from_prefix: str, to_prefix: str) -> list[str]:
        """Copy every parameter under from_prefix to the same path under to_prefix.

        Values and classifications are copied verbatim; chunked blobs are
        copied chunk by chunk.

        Returns:
            Every key written.
        """
        params = self.store.list_by_path(from_prefix, recursive=True)

        written: list[str] = []
        for param in params:
            if param.name.startswith(from_prefix):
                remainder = param.name[len(from_prefix):]
            else:
                remainder = param.name
            new_name = f"{to_prefix}{remainder}"
            self.store.put(
                new_name,
                param.value,
                parameter_type=param.type,
                overwrite=True,
            )
            logger.info("Copied %s -> %s", param.name, new_name)
            written.append(new_name)
        return written

    def export_env(
        self,
        base_prefix: str,
        variable_names: Sequence[str],
        output_file: Path,
    ) -> dict[str, str]:
        """Write selected parameters to an env file as ``KEY="value"`` lines.

        The key is the parameter's last path component, upper-cased. Values
        are written inside double quotes as-is, without escaping. Names the
        store does not have are skipped.

        Args:
            base_prefix: Path the variable names live under.
            variable_names: Names to fetch from ``base_prefix/<name>``.
            output_file: File to overwrite.

        Returns:
            The variables written, in the order requested.
        """
        names = [f"{base_prefix}/{v}" for v in variable_names]
        logger.info("Getting vars %s from %s", list(variable_names), base_prefix)

        found, missing = self.store.get_batch(names)
        for name in missing:
            logger.warning("Parameter %s not found, skipping", name)

        by_name = {p.name: p for p in found}
        env: dict[str, str] = {}
        for name in names:
            param = by_name.get(name)
            if param is not None:
                env[param.basename.upper()] = param.value

        output = "\n".join(f'{key}="{value}"' for key, value in env.items())
        output_file = Path(output_file)
        try:
            output_file.write_text(output, encoding="utf-8")
        except OSError as exc:
            raise LocalFileError(f"Failed to write to {output_file}: {exc}") from exc
        logger.info("Wrote %d variable(s) to %s", len(env), output_file)
        return env

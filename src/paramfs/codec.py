"""
Chunked blob codec -- files as bounded parameter values.

A parameter value has a hard size limit, so a blob larger than one chunk
is stored under several keys sharing a base name:

    /app/config.json          one value, fits in a chunk
    /app/bundle.pem.part0     first chunk of a larger blob
    /app/bundle.pem.part1     second chunk, and so on

Encoding slices raw bytes. Decoding groups whatever the store returned by
base key and reassembles each group in index order, whatever order the
entries arrived in.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, TypeVar

from .models import DEFAULT_CHUNK_SIZE

logger = logging.getLogger("paramfs.codec")

PART_SEPARATOR = ".part"

_PART_RE = re.compile(r"^(?P<base>.*)\.part(?P<index>[0-9]+)$", re.DOTALL)

V = TypeVar("V", str, bytes)


@dataclass(frozen=True)
class ParameterKey:
    """A stored key split into its blob name and optional chunk index.

    ``index`` is None for a key that holds a whole value. Such a key sorts
    as index 0 within its group.
    """

    base: str
    index: Optional[int] = None

    @property
    def is_chunk(self) -> bool:
        return self.index is not None

    @property
    def sort_index(self) -> int:
        return 0 if self.index is None else self.index

    @property
    def name(self) -> str:
        """The key as it is stored."""
        if self.index is None:
            return self.base
        return f"{self.base}{PART_SEPARATOR}{self.index}"


def parse_key(name: str) -> ParameterKey:
    """Parse a stored key into a ParameterKey.

    Only a trailing ``.part<digits>`` marks a chunk. Any other use of
    ``.part`` (``notes.partial``, ``x.partY``, ``a.part1/b``) leaves the
    whole key as the base.

    Args:
        name: Key as returned by the store.

    Returns:
        ParameterKey for the name.
    """
    match = _PART_RE.match(name)
    if match is None:
        return ParameterKey(name)
    return ParameterKey(match.group("base"), int(match.group("index")))


def encode(
    content: bytes,
    base_key: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[tuple[str, bytes]]:
    """Split a blob into (key, chunk) entries.

    Args:
        content: Raw blob bytes.
        base_key: Key the blob is stored under.
        chunk_size: Maximum bytes per entry.

    Returns:
        Entries in chunk order. A blob that fits in one chunk yields a
        single entry keyed by ``base_key`` itself.

    Raises:
        ValueError: If chunk_size is smaller than 1.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")

    if len(content) <= chunk_size:
        return [(base_key, content)]

    return [
        (ParameterKey(base_key, i).name, content[offset:offset + chunk_size])
        for i, offset in enumerate(range(0, len(content), chunk_size))
    ]


def decode(entries: Iterable[tuple[str, V]]) -> dict[str, V]:
    """Reassemble blobs from an unordered set of (key, value) entries.

    Values may be str or bytes; each blob comes back as the same type.
    When two entries claim the same index of one blob, the one seen last
    is kept.

    Args:
        entries: Entries in any order.

    Returns:
        Mapping of base key to reassembled blob.
    """
    groups: dict[str, dict[int, V]] = {}
    for name, value in entries:
        key = parse_key(name)
        chunks = groups.setdefault(key.base, {})
        if key.sort_index in chunks:
            logger.debug(
                "Duplicate chunk %d for %s, keeping %s",
                key.sort_index, key.base, name,
            )
        chunks[key.sort_index] = value

    blobs: dict[str, V] = {}
    for base, chunks in groups.items():
        ordered = [chunks[i] for i in sorted(chunks)]
        blobs[base] = ordered[0][:0].join(ordered)
    return blobs

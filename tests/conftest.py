"""Shared test fixtures for paramfs."""

from __future__ import annotations

from typing import Optional, Sequence

import pytest

from paramfs.models import Parameter, ParameterType
from paramfs.store.base import ParameterStore


class FakeParameterStore(ParameterStore):
    """In-memory store that pages its listings like SSM does.

    Args:
        page_size: Parameters per listing page.
    """

    def __init__(self, page_size: int = 2):
        self.page_size = page_size
        self.params: dict[str, Parameter] = {}
        self.puts: list[str] = []
        self.list_calls: list[tuple[str, bool, Optional[str]]] = []

    @property
    def name(self) -> str:
        return "fake"

    def seed(self, name: str, value: str, parameter_type=ParameterType.STRING) -> None:
        self.params[name] = Parameter(name=name, value=value, type=parameter_type)

    def put(self, name, value, *, parameter_type=ParameterType.SECURE_STRING, overwrite=True):
        if not overwrite and name in self.params:
            raise AssertionError(f"{name} exists and overwrite is off")
        self.params[name] = Parameter(name=name, value=value, type=parameter_type)
        self.puts.append(name)

    def get(self, name):
        return self.params.get(name)

    def get_batch(self, names: Sequence[str]):
        found = [self.params[n] for n in names if n in self.params]
        missing = [n for n in names if n not in self.params]
        return found, missing

    def _under(self, path: str, recursive: bool) -> list[Parameter]:
        head = path.rstrip("/") + "/"
        matches = []
        for name in sorted(self.params):
            if not name.startswith(head):
                continue
            if not recursive and "/" in name[len(head):]:
                continue
            matches.append(self.params[name])
        return matches

    def list_page(self, path, *, recursive=True, next_token=None):
        self.list_calls.append((path, recursive, next_token))
        matches = self._under(path, recursive)
        start = int(next_token) if next_token else 0
        end = start + self.page_size
        token = str(end) if end < len(matches) else None
        return matches[start:end], token


@pytest.fixture
def store() -> FakeParameterStore:
    """Empty paging store."""
    return FakeParameterStore()


@pytest.fixture
def tree(tmp_path):
    """A small directory tree with one file larger than a 16-byte chunk."""
    root = tmp_path / "tree"
    (root / "a" / "b").mkdir(parents=True)
    (root / "a" / "b" / "c.txt").write_bytes(b"hello world")
    (root / "big.bin").write_bytes(bytes(range(40)))
    (root / "empty").write_bytes(b"")
    return root

"""
The parameter store contract.

The engine only ever talks to a ParameterStore. Listings come back one
page at a time, each page carrying an optional continuation token;
list_by_path walks the tokens until the store stops returning one.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterator, Optional, Sequence

from ..models import Parameter, ParameterType

logger = logging.getLogger("paramfs.store")


class ParameterStore(ABC):
    """Abstract hierarchical key-value parameter store."""

    @abstractmethod
    def put(
        self,
        name: str,
        value: str,
        *,
        parameter_type: ParameterType = ParameterType.SECURE_STRING,
        overwrite: bool = True,
    ) -> None:
        """Write one parameter.

        Args:
            name: Full parameter key.
            value: Parameter value.
            parameter_type: Storage classification.
            overwrite: Replace an existing parameter with the same key.
        """

    @abstractmethod
    def get(self, name: str) -> Optional[Parameter]:
        """Fetch one parameter, or None if it does not exist."""

    @abstractmethod
    def get_batch(
        self, names: Sequence[str],
    ) -> tuple[list[Parameter], list[str]]:
        """Fetch several parameters in one request.

        Returns:
            Tuple of (found parameters, names the store does not have).
        """

    @abstractmethod
    def list_page(
        self,
        path: str,
        *,
        recursive: bool = True,
        next_token: Optional[str] = None,
    ) -> tuple[list[Parameter], Optional[str]]:
        """Fetch one page of parameters under a path.

        Returns:
            Tuple of (parameters, continuation token or None on the last page).
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable store name."""

    def list_by_path(self, path: str, *, recursive: bool = True) -> list[Parameter]:
        """List every parameter under a path, across all pages."""
        params: list[Parameter] = []
        for page in iter_pages(self, path, recursive=recursive):
            params.extend(page)
        return params


def iter_pages(
    store: ParameterStore,
    path: str,
    *,
    recursive: bool = True,
) -> Iterator[list[Parameter]]:
    """Yield listing pages under a path until no continuation token is left.

    Args:
        store: Store to list.
        path: Key prefix to list under.
        recursive: Descend into nested paths.

    Yields:
        One list of parameters per page.
    """
    next_token: Optional[str] = None
    pages = 0
    while True:
        page, next_token = store.list_page(
            path, recursive=recursive, next_token=next_token,
        )
        pages += 1
        yield page
        if not next_token:
            break
    logger.debug("Listed %s in %d page(s)", path, pages)

"""
Parameter stores -- where the files actually live.

The engine is written against ParameterStore; SSMParameterStore is the
real backend.
"""

from .base import ParameterStore, iter_pages
from .ssm import SSMParameterStore, create_client, create_store

__all__ = [
    "ParameterStore",
    "SSMParameterStore",
    "create_client",
    "create_store",
    "iter_pages",
]

"""Adapters — every side effect the setup performs goes through one of these.

Public re-exports for convenient access.
"""

from postinstall.adapters.base import Adapter, ExecutionContext
from postinstall.adapters.mock import MockAdapter
from postinstall.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]

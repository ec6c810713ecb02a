"""Adapters — tool bindings for external processes.

Public re-exports for convenient access.
"""

from vmsetup.adapters.base import Adapter, ExecutionContext
from vmsetup.adapters.mock import MockAdapter
from vmsetup.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
    "default_registry",
]

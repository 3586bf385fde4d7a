"""Schema registries for avroreg."""

from .base import BaseRegistry
from .ledger import SubjectLedger
from .memory_registry import RegistryConfig, RegistryStats, SchemaRegistry

__all__ = [
    "BaseRegistry",
    "RegistryConfig",
    "RegistryStats",
    "SchemaRegistry",
    "SubjectLedger",
]

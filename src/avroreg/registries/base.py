"""Abstract registry interface for schema registration and retrieval."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from ..compatibility import CompatibilityLevel
    from ..schema import SchemaRecord, SchemaReference


class BaseRegistry(ABC):
    """Abstract base class for schema registry implementations."""

    @abstractmethod
    def register_schema(
        self,
        subject: str,
        schema_source: str,
        references: Sequence[SchemaReference | dict[str, Any]] | None = None,
    ) -> int:
        """Register a schema under `subject` and return its schema id."""
        raise NotImplementedError

    @abstractmethod
    def get_schema(self, schema_id: int) -> SchemaRecord:
        """Retrieve a registered schema by its global id."""
        raise NotImplementedError

    @abstractmethod
    def get_latest_schema(self, subject: str) -> SchemaRecord:
        """Retrieve the most recent version registered under `subject`."""
        raise NotImplementedError

    @abstractmethod
    def get_schema_version(self, subject: str, version: int) -> SchemaRecord:
        """Retrieve a specific version of `subject`."""
        raise NotImplementedError

    @abstractmethod
    def list_subjects(self) -> set[str]:
        raise NotImplementedError

    @abstractmethod
    def list_versions(self, subject: str) -> list[int]:
        raise NotImplementedError

    @abstractmethod
    def set_compatibility_level(
        self, subject: str, level: CompatibilityLevel | str
    ) -> CompatibilityLevel:
        """Set the policy enforced on future registrations under `subject`."""
        raise NotImplementedError

    @abstractmethod
    def check_compatibility(
        self,
        subject: str,
        schema_source: str,
        references: Sequence[SchemaReference | dict[str, Any]] | None = None,
    ) -> bool:
        """Report whether registering `schema_source` would be accepted."""
        raise NotImplementedError

"""Per-subject version ledger."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class SubjectLedger:
    """Append-only version history of one subject.

    `schema_ids[i]` holds the id registered as version `i + 1`. Entries are
    only ever appended; nothing in the ledger is reordered or removed.

    Args:
        name: Subject name.
        schema_ids: Registered schema ids in version order.
    """

    name: str
    schema_ids: list[int] = field(default_factory=list)

    @property
    def latest_version(self) -> int:
        """Highest assigned version, 0 when nothing is registered yet."""
        return len(self.schema_ids)

    @property
    def latest_id(self) -> int | None:
        return self.schema_ids[-1] if self.schema_ids else None

    @property
    def next_version(self) -> int:
        return len(self.schema_ids) + 1

    @property
    def versions(self) -> list[int]:
        return list(range(1, len(self.schema_ids) + 1))

    def has_version(self, version: int) -> bool:
        return 1 <= version <= len(self.schema_ids)

    def id_for_version(self, version: int) -> int:
        """Return the schema id at 1-based `version`.

        Raises:
            IndexError: If `version` is outside `[1, latest_version]`.
        """
        if not self.has_version(version):
            raise IndexError(version)
        return self.schema_ids[version - 1]

    def append(self, schema_id: int) -> int:
        """Record `schema_id` as the next version and return that version."""
        self.schema_ids.append(schema_id)
        return len(self.schema_ids)

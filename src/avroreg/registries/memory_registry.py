"""In-memory schema registry with compatibility enforcement.

This module provides a thread-safe, process-local registry of Avro schemas.
Schemas are grouped into subjects, each subject holding an append-only list of
versions, and every registered version receives a registry-wide unique id.

Example:
    >>> from avroreg import SchemaRegistry
    >>> registry = SchemaRegistry()
    >>>
    >>> order_v1 = '''
    ... {"type": "record", "name": "Order", "fields": [
    ...   {"name": "id", "type": "long"}]}
    ... '''
    >>> registry.register_schema("orders-value", order_v1)
    1
    >>>
    >>> # Identical content returns the existing id
    >>> registry.register_schema("orders-value", order_v1)
    1
    >>> registry.get_latest_schema("orders-value").version
    1
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Mapping, Sequence

from .._locks import ReadWriteLock
from ..compatibility import (
    CompatibilityIssue,
    CompatibilityLevel,
    CompatibilityResult,
    CompatibilityRule,
    check_compatibility,
)
from ..exceptions import (
    AvroregError,
    CompatibilityError,
    DuplicateSchemaWarning,
    InvalidReferenceError,
    InvalidSubjectError,
    InvalidVersionError,
    NotFoundError,
    RegistryConfigError,
)
from ..fingerprint import compute_fingerprint
from ..loaders import AvroSchemaParser, BaseSchemaParser
from ..schema import ParsedSchema, SchemaRecord, SchemaReference
from .base import BaseRegistry
from .ledger import SubjectLedger


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RegistryConfig:
    """Configuration for `SchemaRegistry`.

    Args:
        default_compatibility: Level enforced on subjects without their own
            policy. Strings are accepted case-insensitively. Defaults to
            BACKWARD.
        warn_on_duplicate: Emit a `DuplicateSchemaWarning` when identical
            content is registered again under the same subject. Defaults to
            False.
        parser: Parser turning schema source text into a `ParsedSchema`.
            Defaults to `AvroSchemaParser()`.
        clock: Zero-argument callable returning the registration timestamp.
            Defaults to the current UTC time.

    Raises:
        RegistryConfigError: If any option has an invalid value.
    """

    default_compatibility: CompatibilityLevel | str = CompatibilityLevel.BACKWARD
    warn_on_duplicate: bool = False
    parser: BaseSchemaParser = field(default_factory=AvroSchemaParser)
    clock: Callable[[], datetime] = _utc_now

    def __post_init__(self):
        try:
            level = CompatibilityLevel.coerce(self.default_compatibility)
        except AvroregError as e:
            raise RegistryConfigError(
                f"Invalid default_compatibility: {self.default_compatibility!r}.",
                suggestions=e.suggestions,
            ) from e
        object.__setattr__(self, "default_compatibility", level)

        if not isinstance(self.warn_on_duplicate, bool):
            raise RegistryConfigError("warn_on_duplicate must be a boolean.")
        if not isinstance(self.parser, BaseSchemaParser):
            raise RegistryConfigError(
                f"parser must be a BaseSchemaParser, got {type(self.parser).__name__}."
            )
        if not callable(self.clock):
            raise RegistryConfigError("clock must be callable.")


@dataclass(frozen=True)
class RegistryStats:
    """Point-in-time summary of registry contents.

    Args:
        total_schemas: Number of registered schema records.
        total_subjects: Number of subjects with at least one version.
        next_schema_id: Id the next successful registration will receive.
        versions: Latest version number per subject.
    """

    total_schemas: int
    total_subjects: int
    next_schema_id: int
    versions: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class _Decision:
    """Outcome of evaluating a candidate schema against a subject."""

    parsed: ParsedSchema
    fingerprint: str
    level: CompatibilityLevel
    result: CompatibilityResult
    existing: SchemaRecord | None = None
    latest: SchemaRecord | None = None


class SchemaRegistry(BaseRegistry):
    """Thread-safe in-memory Avro schema registry.

    The registry assigns each new schema a global id (starting at 1, never
    reused) and a per-subject version (contiguous from 1). Registering content
    whose fingerprint already exists under the subject returns the existing id
    without creating a version. New content must satisfy the subject's
    compatibility level against the latest version; the first registration
    under a subject is always accepted.

    Thread Safety:
        All state is guarded by a readers-writer lock. Lookups run
        concurrently; `register_schema` and `set_compatibility_level` hold the
        exclusive lock for their whole read-decide-mutate sequence, so
        concurrent registrations never share an id or a version.

    Args:
        config: Registry configuration. Defaults to `RegistryConfig()`.
        logger: Optional logger for registry operations. If None, uses the
            logger at "avroreg.registries.memory".

    Example:
        >>> registry = SchemaRegistry(RegistryConfig(default_compatibility="FULL"))
        >>> registry.get_compatibility_level("payments")
        <CompatibilityLevel.FULL: 'FULL'>
    """

    def __init__(
        self,
        config: RegistryConfig | None = None,
        logger: logging.Logger | None = None,
    ):
        self.config = config or RegistryConfig()
        self.logger = logger or logging.getLogger("avroreg.registries.memory")

        self._lock = ReadWriteLock()
        self._schemas: dict[int, SchemaRecord] = {}
        self._subjects: dict[str, SubjectLedger] = {}
        self._fingerprints: dict[tuple[str, str], int] = {}
        self._policies: dict[str, CompatibilityLevel] = {}
        self._next_id = 1

        self.logger.debug(
            "Initialized SchemaRegistry with default compatibility "
            f"{self.config.default_compatibility.value}"
        )

    def register_schema(
        self,
        subject: str,
        schema_source: str,
        references: Sequence[SchemaReference | dict[str, Any]] | None = None,
    ) -> int:
        """Register a schema under `subject`.

        If identical content is already registered under the subject, its id
        is returned and nothing changes. Otherwise the candidate is checked
        against the latest version under the subject's compatibility level
        and, if accepted, stored as the next version with a fresh id.

        Args:
            subject: Subject to register under.
            schema_source: Avro schema as JSON (or YAML) text.
            references: Registered schemas whose named types the source uses,
                as `SchemaReference` instances or mappings with `name`,
                `subject` and `version` keys.

        Returns:
            The new or existing schema id.

        Raises:
            InvalidSubjectError: If `subject` is empty or not a string.
            InvalidReferenceError: If a reference is malformed.
            NotFoundError: If a referenced subject/version is not registered.
            SchemaParseError: If `schema_source` is not a valid schema.
            CompatibilityError: If the schema violates the subject's policy.
        """
        self._validate_subject(subject)
        refs = self._normalize_references(references)

        with self._lock.write():
            decision = self._evaluate(subject, schema_source, refs)

            if decision.existing is not None:
                existing = decision.existing
                if self.config.warn_on_duplicate:
                    warnings.warn(
                        f"Schema for subject '{subject}' is identical to version "
                        f"{existing.version}. Skipping registration.",
                        DuplicateSchemaWarning,
                        stacklevel=2,
                    )
                self.logger.warning(
                    f"Duplicate content for '{subject}'. "
                    f"Returning existing id {existing.id} (version {existing.version})."
                )
                return existing.id

            if not decision.result.is_compatible:
                error = self._rejection(subject, decision)
                self.logger.info(f"Rejected registration for '{subject}': {error}")
                raise error

            ledger = self._subjects.get(subject) or SubjectLedger(subject)
            record = SchemaRecord(
                id=self._next_id,
                subject=subject,
                version=ledger.next_version,
                schema_source=schema_source,
                parsed=decision.parsed,
                fingerprint=decision.fingerprint,
                created_at=self.config.clock(),
                references=refs,
            )

            # Nothing below raises.
            self._schemas[record.id] = record
            ledger.append(record.id)
            self._subjects[subject] = ledger
            self._fingerprints[(subject, record.fingerprint)] = record.id
            self._next_id += 1

        self.logger.info(
            f"Registered '{subject}' version {record.version} as id {record.id}"
        )
        return record.id

    def get_schema(self, schema_id: int) -> SchemaRecord:
        """Retrieve a schema by id.

        Raises:
            NotFoundError: If no schema has that id.
        """
        self.logger.debug(f"Retrieving schema id {schema_id}")
        with self._lock.read():
            record = self._schemas.get(schema_id) if self._is_int(schema_id) else None
        if record is None:
            raise NotFoundError(f"Schema id {schema_id!r} not found in registry")
        return record

    def get_latest_schema(self, subject: str) -> SchemaRecord:
        """Retrieve the highest version registered under `subject`.

        Raises:
            NotFoundError: If the subject has no versions.
        """
        self.logger.debug(f"Retrieving latest version of '{subject}'")
        with self._lock.read():
            return self._schemas[self._ledger(subject).schema_ids[-1]]

    def get_schema_version(self, subject: str, version: int) -> SchemaRecord:
        """Retrieve a specific version of `subject`.

        Raises:
            NotFoundError: If the subject has no versions.
            InvalidVersionError: If `version` is not an integer within
                `[1, latest_version]`.
        """
        self.logger.debug(f"Retrieving version {version!r} of '{subject}'")
        with self._lock.read():
            ledger = self._ledger(subject)
            if not self._is_int(version) or not ledger.has_version(version):
                raise InvalidVersionError(
                    f"Version {version!r} of subject '{subject}' not found in registry",
                    suggestions=[f"Available versions are 1 to {ledger.latest_version}"],
                )
            return self._schemas[ledger.id_for_version(version)]

    def list_subjects(self) -> set[str]:
        with self._lock.read():
            return set(self._subjects)

    def list_versions(self, subject: str) -> list[int]:
        """List the versions registered under `subject`, in ascending order.

        Raises:
            NotFoundError: If the subject has no versions.
        """
        with self._lock.read():
            versions = self._ledger(subject).versions
        self.logger.debug(f"Found {len(versions)} versions for '{subject}'")
        return versions

    def set_compatibility_level(
        self, subject: str, level: CompatibilityLevel | str
    ) -> CompatibilityLevel:
        """Set the policy for future registrations under `subject`.

        The subject need not exist yet. Already registered versions are not
        re-validated.

        Returns:
            The level now in effect.

        Raises:
            InvalidSubjectError: If `subject` is empty or not a string.
            InvalidCompatibilityLevelError: If `level` is not a known level.
        """
        self._validate_subject(subject)
        level = CompatibilityLevel.coerce(level)
        with self._lock.write():
            self._policies[subject] = level
        self.logger.info(f"Set compatibility level of '{subject}' to {level.value}")
        return level

    def get_compatibility_level(self, subject: str) -> CompatibilityLevel:
        """Return the level enforced on `subject`, falling back to the default."""
        with self._lock.read():
            return self._level_for(subject)

    def check_compatibility(
        self,
        subject: str,
        schema_source: str,
        references: Sequence[SchemaReference | dict[str, Any]] | None = None,
    ) -> bool:
        """Report whether `register_schema` would accept `schema_source`.

        Registers nothing. Content already registered under the subject
        counts as compatible, exactly as re-registering it would succeed.

        Raises:
            InvalidSubjectError: If `subject` is empty or not a string.
            NotFoundError: If a referenced subject/version is not registered.
            SchemaParseError: If `schema_source` is not a valid schema.
        """
        return self.test_compatibility(subject, schema_source, references).is_compatible

    def test_compatibility(
        self,
        subject: str,
        schema_source: str,
        references: Sequence[SchemaReference | dict[str, Any]] | None = None,
    ) -> CompatibilityResult:
        """Like `check_compatibility`, returning the detailed result.

        Example:
            >>> result = registry.test_compatibility("orders-value", candidate)
            >>> for issue in result.issues:
            ...     print(issue)
        """
        self._validate_subject(subject)
        refs = self._normalize_references(references)
        with self._lock.read():
            decision = self._evaluate(subject, schema_source, refs)
        if decision.existing is not None:
            return CompatibilityResult(level=decision.level)
        return decision.result

    def lookup_schema(
        self,
        subject: str,
        schema_source: str,
        references: Sequence[SchemaReference | dict[str, Any]] | None = None,
    ) -> SchemaRecord:
        """Find the record under `subject` with the same content as `schema_source`.

        Raises:
            NotFoundError: If no version of the subject has identical content.
        """
        self._validate_subject(subject)
        refs = self._normalize_references(references)
        with self._lock.read():
            parsed = self.config.parser.parse(schema_source, self._resolve_references(refs))
            fingerprint = compute_fingerprint(parsed.canonical, refs)
            schema_id = self._fingerprints.get((subject, fingerprint))
            record = self._schemas.get(schema_id) if schema_id is not None else None
        if record is None:
            raise NotFoundError(f"Schema not found under subject '{subject}'")
        self.logger.debug(f"Found schema id {record.id} under '{subject}'")
        return record

    def stats(self) -> RegistryStats:
        with self._lock.read():
            return RegistryStats(
                total_schemas=len(self._schemas),
                total_subjects=len(self._subjects),
                next_schema_id=self._next_id,
                versions=MappingProxyType(
                    {name: ledger.latest_version for name, ledger in self._subjects.items()}
                ),
            )

    # Private helper methods (callers hold the lock)

    def _evaluate(
        self,
        subject: str,
        schema_source: str,
        refs: tuple[SchemaReference, ...],
    ) -> _Decision:
        """Parse a candidate and decide how registration would treat it."""
        parsed = self.config.parser.parse(schema_source, self._resolve_references(refs))
        fingerprint = compute_fingerprint(parsed.canonical, refs)
        level = self._level_for(subject)

        existing_id = self._fingerprints.get((subject, fingerprint))
        if existing_id is not None:
            return _Decision(
                parsed=parsed,
                fingerprint=fingerprint,
                level=level,
                result=CompatibilityResult(level=level),
                existing=self._schemas[existing_id],
            )

        ledger = self._subjects.get(subject)
        latest = self._schemas[ledger.schema_ids[-1]] if ledger else None
        result = check_compatibility(latest.parsed if latest else None, parsed, level)
        return _Decision(
            parsed=parsed,
            fingerprint=fingerprint,
            level=level,
            result=result,
            latest=latest,
        )

    def _rejection(self, subject: str, decision: _Decision) -> CompatibilityError:
        latest = decision.latest
        issues = decision.result.issues
        summary = "; ".join(decision.result.messages)
        return CompatibilityError(
            f"Schema for subject '{subject}' is incompatible with version "
            f"{latest.version if latest else '?'} under {decision.level.value} "
            f"compatibility: {summary}",
            subject=subject,
            level=decision.level,
            issues=issues,
            latest_id=latest.id if latest else None,
            latest_version=latest.version if latest else None,
            suggestions=self._suggestions(issues),
        )

    def _suggestions(self, issues: Sequence[CompatibilityIssue]) -> list[str]:
        suggestions: list[str] = []
        for issue in issues:
            if issue.rule is CompatibilityRule.READER_FIELD_MISSING_DEFAULT:
                text = f"Give field '{issue.field}' a default value"
            elif issue.rule is CompatibilityRule.MISSING_ENUM_SYMBOLS:
                text = "Keep the removed enum symbols or declare an enum default"
            elif issue.rule is CompatibilityRule.TYPE_MISMATCH and issue.field:
                text = f"Keep field '{issue.field}' as {issue.reader_type} or a promotable type"
            else:
                continue
            if text not in suggestions:
                suggestions.append(text)
        return suggestions

    def _level_for(self, subject: str) -> CompatibilityLevel:
        return self._policies.get(subject, self.config.default_compatibility)

    def _ledger(self, subject: str) -> SubjectLedger:
        ledger = self._subjects.get(subject)
        if ledger is None:
            raise NotFoundError(f"Subject '{subject}' not found in registry")
        return ledger

    def _resolve_references(
        self, refs: tuple[SchemaReference, ...]
    ) -> list[ParsedSchema]:
        resolved: list[ParsedSchema] = []
        for ref in refs:
            ledger = self._subjects.get(ref.subject)
            if ledger is None or not ledger.has_version(ref.version):
                raise NotFoundError(
                    f"Referenced schema '{ref.name}' ({ref.subject} version "
                    f"{ref.version}) not found in registry",
                    suggestions=[f"Register subject '{ref.subject}' first"],
                )
            resolved.append(self._schemas[ledger.id_for_version(ref.version)].parsed)
        return resolved

    # Input validation (no lock required)

    def _validate_subject(self, subject: str) -> None:
        if not isinstance(subject, str):
            raise InvalidSubjectError(
                f"Subject must be a string, got {type(subject).__name__}"
            )
        if not subject.strip():
            raise InvalidSubjectError("Subject cannot be empty")

    def _normalize_references(
        self, references: Sequence[SchemaReference | dict[str, Any]] | None
    ) -> tuple[SchemaReference, ...]:
        if not references:
            return ()
        normalized: list[SchemaReference] = []
        for ref in references:
            if isinstance(ref, SchemaReference):
                normalized.append(ref)
                continue
            if not isinstance(ref, Mapping):
                raise InvalidReferenceError(
                    f"Schema reference must be a SchemaReference or mapping, "
                    f"got {type(ref).__name__}"
                )
            try:
                normalized.append(
                    SchemaReference(
                        name=ref["name"], subject=ref["subject"], version=ref["version"]
                    )
                )
            except KeyError as e:
                raise InvalidReferenceError(
                    f"Schema reference is missing key {e}",
                    suggestions=["References need 'name', 'subject' and 'version'"],
                ) from e
            except AvroregError as e:
                raise InvalidReferenceError(f"Invalid schema reference: {e}") from e
        return tuple(normalized)

    @staticmethod
    def _is_int(value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)

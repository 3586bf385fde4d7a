"""Custom avroreg exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .compatibility import CompatibilityIssue, CompatibilityLevel


class AvroregError(Exception):
    """Base exception for all avroreg-related errors.

    This is the root exception that all other avroreg exceptions inherit from.
    It provides enhanced error reporting with suggestions for resolution.

    Attributes:
        suggestions: List of suggested fixes or actions.

    Example:
        >>> raise AvroregError(
        ...     "Field 'amount' was removed without a default",
        ...     suggestions=["Add a default to 'amount' in the previous version"]
        ... )
    """

    def __init__(
        self,
        message: str,
        suggestions: list[str] | None = None,
    ):
        """Initialize an AvroregError.

        Args:
            message: The error message.
            suggestions: Optional list of suggestions to fix the error.
        """
        super().__init__(message)
        self.suggestions = suggestions or []

    def __str__(self) -> str:
        result = super().__str__()

        if self.suggestions:
            suggestions_text = "; ".join(self.suggestions)
            result += f" | {suggestions_text}"

        return result


# Schema Parsing Exceptions
class SchemaParseError(AvroregError):
    """Schema source text is not a valid Avro schema.

    Raised when the source cannot be decoded, does not describe a schema,
    or fails Avro's own validation rules (names, defaults, duplicates).
    This is always a client-input error and never causes state mutation.
    """


class TypeDefinitionError(SchemaParseError):
    """Invalid type definitions and parameters.

    Raised when a type definition has missing attributes, invalid parameters
    or other structural issues.
    """


class UnknownTypeError(TypeDefinitionError):
    """Unknown or undefined type name.

    Raised when a schema refers to a named type that was never defined in
    the schema itself or in one of its references.
    """


# Compatibility Exceptions
class CompatibilityError(AvroregError):
    """Candidate schema violates the subject's compatibility policy.

    Carries the structured list of violations so a rejected registration can
    be corrected and resubmitted.

    Attributes:
        subject: The subject the registration targeted.
        level: The compatibility level that was enforced.
        issues: The violations found, one per offending field or symbol.
        latest_id: Id of the schema the candidate was checked against.
        latest_version: Version of the schema the candidate was checked against.
    """

    def __init__(
        self,
        message: str,
        *,
        subject: str,
        level: CompatibilityLevel,
        issues: Sequence[CompatibilityIssue],
        latest_id: int | None = None,
        latest_version: int | None = None,
        suggestions: list[str] | None = None,
    ):
        super().__init__(message, suggestions=suggestions)
        self.subject = subject
        self.level = level
        self.issues = tuple(issues)
        self.latest_id = latest_id
        self.latest_version = latest_version


# Registry Exceptions
class RegistryError(AvroregError):
    """Base exception for registry operation errors."""


class NotFoundError(RegistryError):
    """Lookup by subject, version or id references something that does not exist."""


class InvalidVersionError(NotFoundError):
    """Version number is outside `[1, len(ledger)]` for the subject."""


class InvalidSubjectError(RegistryError):
    """Subject name is empty or not a string."""


class InvalidCompatibilityLevelError(RegistryError):
    """Compatibility level is not one of NONE, BACKWARD, FORWARD or FULL."""


class InvalidReferenceError(RegistryError):
    """Schema reference is malformed."""


class RegistryConfigError(AvroregError):
    """Registry configuration is invalid."""


# Warnings
class DuplicateSchemaWarning(UserWarning):
    """Identical schema content was registered again under the same subject."""

from .schema import ParsedSchema, SchemaRecord, SchemaReference
from .loaders import parse_schema, from_dict
from .compatibility import (
    CompatibilityIssue,
    CompatibilityLevel,
    CompatibilityResult,
    CompatibilityRule,
    check_compatibility,
)
from .fingerprint import compute_fingerprint
from .registries import RegistryConfig, RegistryStats, SchemaRegistry
from .exceptions import (
    AvroregError,
    CompatibilityError,
    DuplicateSchemaWarning,
    InvalidCompatibilityLevelError,
    InvalidReferenceError,
    InvalidSubjectError,
    InvalidVersionError,
    NotFoundError,
    RegistryConfigError,
    RegistryError,
    SchemaParseError,
)

__all__ = [
    "ParsedSchema",
    "SchemaRecord",
    "SchemaReference",
    "parse_schema",
    "from_dict",
    "CompatibilityIssue",
    "CompatibilityLevel",
    "CompatibilityResult",
    "CompatibilityRule",
    "check_compatibility",
    "compute_fingerprint",
    "RegistryConfig",
    "RegistryStats",
    "SchemaRegistry",
    "AvroregError",
    "CompatibilityError",
    "DuplicateSchemaWarning",
    "InvalidCompatibilityLevelError",
    "InvalidReferenceError",
    "InvalidSubjectError",
    "InvalidVersionError",
    "NotFoundError",
    "RegistryConfigError",
    "RegistryError",
    "SchemaParseError",
]

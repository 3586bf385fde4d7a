"""Content fingerprints for canonical schema text.

Fingerprints let the registry recognize an already-registered schema without
a structural diff: two submissions with the same canonical form and the same
references always hash to the same value.

Example:
    >>> from avroreg.fingerprint import compute_fingerprint
    >>> len(compute_fingerprint('"string"'))
    64
"""

from __future__ import annotations

from typing import Sequence

from fastavro.schema import fingerprint as avro_fingerprint

from .schema import SchemaReference

FINGERPRINT_ALGORITHM = "SHA-256"


def compute_fingerprint(
    canonical: str,
    references: Sequence[SchemaReference] = (),
    *,
    algorithm: str = FINGERPRINT_ALGORITHM,
) -> str:
    """Return the hex digest identifying `canonical` plus its references.

    References are part of a schema's identity: the same text importing a
    different version of a named type is a different schema. Their order is
    kept because it is the order the parser sees them in.

    Args:
        canonical: Canonical schema text.
        references: Schema references in declaration order.
        algorithm: Any algorithm accepted by `fastavro.schema.fingerprint`.

    Returns:
        The lowercase hex digest.
    """
    content = canonical
    if references:
        content += "|" + ",".join(str(ref) for ref in references)
    return avro_fingerprint(content, algorithm)

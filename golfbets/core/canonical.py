"""
golfbets: Canonical JSON Encoding — RFC 8785 (JCS)

Every fingerprint in golfbets (bet configuration, score snapshot,
audit record chaining and signing) goes through this module so that
the same inputs always hash to the same digest, whatever the dict
insertion order was.
"""

import hashlib

try:
    import jcs as _jcs
except ImportError as exc:
    raise ImportError(
        "golfbets requires the 'jcs' package for RFC 8785 canonical JSON.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc


def canonicalize(obj) -> bytes:
    """
    Encode a JSON-primitive structure to RFC 8785 canonical bytes.

    Values must be str, int, float, bool, None, list or dict.
    Convert enums to their .value and tuples to lists first.
    """
    return _jcs.canonicalize(obj)


def canonical_hash(obj) -> str:
    """Lowercase hex SHA-256 of the canonical form (64 characters)."""
    return hashlib.sha256(canonicalize(obj)).hexdigest()

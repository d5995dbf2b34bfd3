"""Exception hierarchy for UCAN decoding, validation, and issuance.

Every error raised by this package derives from :class:`UCANError`, which is
itself a :class:`ValueError` so that callers treating malformed input as a
value problem keep working. Messages are deterministic: they name the field
and render the received value as JSON where possible so that they can be
matched exactly in tests.

Taxonomy
--------
FormatError
    Malformed framing: wrong JWT segment count, bad base64url, bad JSON,
    bytes that are neither DAG-CBOR nor a UTF-8 JWT.
SchemaError
    A field has the wrong type or shape.
CapabilityGrammarError
    A capability has an invalid ``with`` or ``can``.
DIDError
    A DID cannot be parsed or decoded.
VersionError
    The ``v`` / ``ucv`` version string is not supported.
UnsupportedSignatureAlgorithmError
    Raised during verification dispatch only, never while decoding.
"""
from __future__ import annotations

import json


def describe(value: object) -> str:
    """Render *value* the way it appears in error messages.

    JSON-representable values are rendered as compact JSON (``"bob"``,
    ``8.7``, ``null``); anything else falls back to :func:`repr`.
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(value)


class UCANError(ValueError):
    """Base class for all UCAN related errors."""


class FormatError(UCANError):
    """Raised when the framing of an encoded token is malformed."""


class SchemaError(UCANError):
    """Raised when a field has an unexpected type or shape.

    Parameters
    ----------
    message:
        Human readable description.
    field:
        Name of the offending field (``"exp"``, ``"prf[0]"``, ...), if known.
    value:
        The value that was received.
    """

    def __init__(self, message: str, field: str | None = None, value: object = None) -> None:
        self.field = field
        self.value = value
        super().__init__(message)


class CapabilityGrammarError(SchemaError):
    """Raised when a capability has an invalid ``with`` or ``can`` value."""

    def __init__(self, capability: object, field: str, value: object, reason: str) -> None:
        self.capability = capability
        self.reason = reason
        super().__init__(
            f"Capability has invalid '{field}: {describe(value)}', {reason}",
            field=field,
            value=value,
        )


class AudienceFormatError(SchemaError):
    """Raised when the audience of an issued token does not expose a DID."""


class VersionError(UCANError):
    """Raised when a version string does not match the supported pattern."""

    def __init__(self, field: str, value: object) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid version '{field}: {describe(value)}'")


class DIDError(UCANError):
    """Base class for DID parsing and decoding failures.

    ``field`` is set to the token field (``iss`` / ``aud``) when the DID was
    read from a token.
    """

    field: str | None = None


class DIDFormatError(DIDError):
    """Raised when a string is not a DID (missing ``did:`` prefix)."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid DID {describe(value)}, must start with 'did:'")


class InvalidDIDError(DIDError):
    """Raised when a value cannot be normalized into a DID."""


class UnsupportedKeyEncodingError(DIDError):
    """Raised when a ``did:key`` carries a multicodec tag that is not supported."""

    def __init__(self, code: int) -> None:
        self.code = code
        super().__init__(f"Unsupported DID encoding, unknown multicode 0x{code:x}.")


class MalformedKeyError(DIDError):
    """Raised when key bytes are structurally invalid for their algorithm."""


class UncompressedKeyError(MalformedKeyError):
    """Raised when a P-256 key is given as an uncompressed point."""

    def __init__(self) -> None:
        super().__init__("Only p256-pub compressed is supported.")


class UnsupportedSignatureAlgorithmError(UCANError):
    """Raised when no verifier is available for a signature algorithm."""

    def __init__(self, code: int, algorithm: str) -> None:
        self.code = code
        self.algorithm = algorithm
        super().__init__(
            f"Unsupported signature algorithm {algorithm!r} (code 0x{code:x})"
        )


__all__ = [
    "AudienceFormatError",
    "CapabilityGrammarError",
    "DIDError",
    "DIDFormatError",
    "FormatError",
    "InvalidDIDError",
    "MalformedKeyError",
    "SchemaError",
    "UCANError",
    "UncompressedKeyError",
    "UnsupportedKeyEncodingError",
    "UnsupportedSignatureAlgorithmError",
    "VersionError",
    "describe",
]

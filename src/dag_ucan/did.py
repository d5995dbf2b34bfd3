"""DID codec — parse, encode, and decode decentralized identifiers.

Two kinds of DID are distinguished:

``did:key``
    Self-describing identifiers that embed a multicodec-tagged public key.
    The textual form is ``did:key:z<base58btc(varint(code) + key)>`` as
    specified in https://w3c-ccg.github.io/did-method-key/. Supported key
    types are Ed25519, RSA and P-256 (compressed points only).

Every other method (``did:dns``, ``did:web``, ``did:mailto``, ...)
    Kept verbatim as an :class:`OpaqueDID`. No key material is decoded and
    such a DID can never act as a verifier.

Binary form
-----------
Key DIDs are encoded as ``varint(code) + key``. Opaque DIDs are encoded as
``varint(0x0d1d) + utf8(text after "did:")``. :func:`encode` and
:func:`decode` are exact inverses for every DID produced by :func:`parse`.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union

from multiformats import multibase, varint

from dag_ucan.errors import (
    DIDError,
    DIDFormatError,
    InvalidDIDError,
    MalformedKeyError,
    UncompressedKeyError,
    UnsupportedKeyEncodingError,
)

# ---------------------------------------------------------------------------
# Multicodec tags
# ---------------------------------------------------------------------------

ED25519: int = 0xED
ED25519_KEY_SIZE: int = 32
RSA: int = 0x1205
P256: int = 0x1200
DID_CORE: int = 0x0D1D

KEY_ALGORITHMS: dict[int, str] = {
    ED25519: "ed25519-pub",
    RSA: "rsa-pub",
    P256: "p256-pub",
}

DID_PREFIX: str = "did:"
DID_KEY_PREFIX: str = "did:key:"

_P256_COMPRESSED_SIZE = 33


# ---------------------------------------------------------------------------
# DID variants
# ---------------------------------------------------------------------------


class DID(ABC):
    """A decentralized identifier."""

    @abstractmethod
    def did(self) -> str:
        """Return the canonical ``did:...`` string."""

    @abstractmethod
    def encode(self) -> bytes:
        """Return the binary (multicodec tagged) form."""

    def __str__(self) -> str:
        return self.did()


@dataclass(frozen=True)
class KeyDID(DID):
    """A ``did:key`` identifier.

    Parameters
    ----------
    code:
        Multicodec tag of the key algorithm (one of :data:`KEY_ALGORITHMS`).
    key:
        Raw public key bytes as laid out by the key's multicodec.
    """

    code: int
    key: bytes

    @property
    def algorithm(self) -> str:
        return KEY_ALGORITHMS[self.code]

    def did(self) -> str:
        return DID_KEY_PREFIX + multibase.encode(self.encode(), "base58btc")

    def encode(self) -> bytes:
        return varint.encode(self.code) + self.key

    def __repr__(self) -> str:
        return f"KeyDID({self.did()!r})"


@dataclass(frozen=True)
class OpaqueDID(DID):
    """A DID of any method other than ``key``, retained verbatim."""

    text: str

    @property
    def method(self) -> str:
        return self.text[len(DID_PREFIX):].split(":", 1)[0]

    def did(self) -> str:
        return self.text

    def encode(self) -> bytes:
        return varint.encode(DID_CORE) + self.text[len(DID_PREFIX):].encode("utf-8")

    def __repr__(self) -> str:
        return f"OpaqueDID({self.text!r})"


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def parse(text: str) -> DID:
    """Parse a DID string.

    Parameters
    ----------
    text:
        A ``did:`` string.

    Returns
    -------
    DID
        A :class:`KeyDID` for ``did:key`` strings, an :class:`OpaqueDID`
        otherwise.

    Raises
    ------
    DIDFormatError
        If *text* does not start with ``did:``.
    DIDError
        If a ``did:key`` cannot be decoded.
    """
    if not isinstance(text, str) or not text.startswith(DID_PREFIX):
        raise DIDFormatError(text)
    if not text.startswith(DID_KEY_PREFIX):
        return OpaqueDID(text)

    encoded = text[len(DID_KEY_PREFIX):]
    if not encoded.startswith("z"):
        raise DIDError(
            f"Invalid did:key {text!r}, expected a base58btc multibase value starting with 'z'"
        )
    try:
        key = multibase.decode(encoded)
    except (KeyError, ValueError) as exc:
        raise DIDError(f"Invalid did:key {text!r}: {exc}") from exc
    did = decode(key)
    if not isinstance(did, KeyDID):
        raise UnsupportedKeyEncodingError(DID_CORE)
    return did


def format(did: DID) -> str:  # noqa: A001
    """Return the canonical string form of *did*."""
    return did.did()


def encode(did: DID) -> bytes:
    """Return the binary form of *did*."""
    return did.encode()


def decode(data: bytes) -> DID:
    """Decode the binary form produced by :func:`encode`.

    Raises
    ------
    UnsupportedKeyEncodingError
        If the multicodec tag is not a supported key type or ``did:core``.
    UncompressedKeyError
        If a P-256 key is longer than a compressed point.
    MalformedKeyError
        If the key bytes are otherwise invalid.
    """
    data = bytes(data)
    try:
        code, _, rest = varint.decode_raw(data)
    except ValueError as exc:
        raise DIDError(f"Invalid DID bytes {data.hex()!r}: {exc}") from exc
    body = bytes(rest)

    if code == DID_CORE:
        try:
            suffix = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DIDError(f"Invalid DID bytes {data.hex()!r}: {exc}") from exc
        return OpaqueDID(DID_PREFIX + suffix)
    if code == P256:
        _check_p256_key(body)
    elif code not in KEY_ALGORITHMS:
        raise UnsupportedKeyEncodingError(code)
    if not body:
        raise MalformedKeyError(f"Empty {KEY_ALGORITHMS[code]} key")
    if code == ED25519 and len(body) != ED25519_KEY_SIZE:
        raise MalformedKeyError(
            f"Invalid ed25519-pub key length {len(body)}, expected {ED25519_KEY_SIZE} bytes"
        )
    return KeyDID(code=code, key=body)


def from_value(value: Union[DID, str, bytes, bytearray, memoryview, object]) -> DID:
    """Normalize *value* into a :class:`DID`.

    Accepts an existing DID (returned unchanged), a ``did:`` string, the
    binary DID form, or any principal exposing a ``did()`` method.

    Raises
    ------
    InvalidDIDError
        If a string does not start with ``did:`` or the value has an
        unsupported type.
    """
    if isinstance(value, DID):
        return value
    if isinstance(value, str):
        if not value.startswith(DID_PREFIX):
            raise InvalidDIDError(f"Invalid DID {value!r}, must start with 'did:'")
        return parse(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return decode(bytes(value))
    did_method = getattr(value, "did", None)
    if callable(did_method):
        return from_value(did_method())
    raise InvalidDIDError(f"Cannot interpret {value!r} as a DID")


def _check_p256_key(key: bytes) -> None:
    if len(key) > _P256_COMPRESSED_SIZE:
        raise UncompressedKeyError()
    if len(key) != _P256_COMPRESSED_SIZE or key[0] not in (0x02, 0x03):
        raise MalformedKeyError(
            f"Invalid p256-pub key {key.hex()!r}, expected a 33 byte compressed point"
        )


__all__ = [
    "DID",
    "DID_CORE",
    "ED25519",
    "ED25519_KEY_SIZE",
    "KEY_ALGORITHMS",
    "KeyDID",
    "OpaqueDID",
    "P256",
    "RSA",
    "decode",
    "encode",
    "format",
    "from_value",
    "parse",
]

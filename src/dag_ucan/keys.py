"""Key material — signers and verifiers for ``did:key`` principals.

This module provides thin wrappers around the ``cryptography`` package's
Ed25519, P-256 and RSA primitives that satisfy the :class:`Signer` and
:class:`Verifier` protocols consumed by :func:`dag_ucan.issue` and
:func:`dag_ucan.verify_signature`. All key material crosses the module
boundary as raw bytes so callers can store keys without depending on the
``cryptography`` types.

Signature formats follow JOSE: EdDSA signatures are the 64 raw bytes,
ES256 signatures are ``r || s`` (64 bytes), RS256 signatures are PKCS#1
v1.5 over SHA-256.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from dag_ucan import did as DID
from dag_ucan import signature as Signature
from dag_ucan.errors import DIDError, UnsupportedKeyEncodingError

_P256_COORDINATE_SIZE = 32


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class Signer(Protocol):
    """A principal able to issue tokens."""

    signature_algorithm: str
    signature_code: int

    def did(self) -> str: ...

    async def sign(self, payload: bytes) -> bytes: ...


@runtime_checkable
class Verifier(Protocol):
    """A principal able to check signatures."""

    async def verify(self, payload: bytes, signature: Signature.Signature) -> bool: ...


# ---------------------------------------------------------------------------
# Ed25519
# ---------------------------------------------------------------------------


class Ed25519Verifier:
    """Verify EdDSA signatures for an Ed25519 ``did:key``.

    Parameters
    ----------
    public_key_bytes:
        The 32-byte raw public key.
    """

    signature_algorithm = "EdDSA"
    signature_code = Signature.EdDSA

    def __init__(self, public_key_bytes: bytes) -> None:
        self._public_key = Ed25519PublicKey.from_public_bytes(public_key_bytes)
        self._did = DID.KeyDID(DID.ED25519, bytes(public_key_bytes))

    def did(self) -> str:
        return self._did.did()

    async def verify(self, payload: bytes, signature: Signature.Signature) -> bool:
        if signature.code != self.signature_code:
            return False
        try:
            self._public_key.verify(signature.raw, payload)
            return True
        except InvalidSignature:
            return False


class Ed25519Signer:
    """Sign payloads with an Ed25519 private key.

    Example
    -------
    ::

        signer = Ed25519Signer.generate()
        ucan = await dag_ucan.issue(issuer=signer, audience=signer, capabilities=[])
        assert await dag_ucan.verify_signature(ucan, signer.verifier())
    """

    signature_algorithm = "EdDSA"
    signature_code = Signature.EdDSA

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        public_bytes = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        self._verifier = Ed25519Verifier(public_bytes)

    @classmethod
    def generate(cls) -> "Ed25519Signer":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_private_bytes(cls, private_key_bytes: bytes) -> "Ed25519Signer":
        """Load a signer from the 32-byte raw private key."""
        return cls(Ed25519PrivateKey.from_private_bytes(private_key_bytes))

    def private_bytes(self) -> bytes:
        return self._private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())

    def did(self) -> str:
        return self._verifier.did()

    def verifier(self) -> Ed25519Verifier:
        return self._verifier

    async def sign(self, payload: bytes) -> bytes:
        return self._private_key.sign(payload)


# ---------------------------------------------------------------------------
# P-256
# ---------------------------------------------------------------------------


class P256Verifier:
    """Verify ES256 signatures for a P-256 ``did:key``.

    Parameters
    ----------
    public_key_bytes:
        The 33-byte compressed point.
    """

    signature_algorithm = "ES256"
    signature_code = Signature.ES256

    def __init__(self, public_key_bytes: bytes) -> None:
        self._public_key = ec.EllipticCurvePublicKey.from_encoded_point(
            ec.SECP256R1(), bytes(public_key_bytes)
        )
        self._did = DID.KeyDID(DID.P256, bytes(public_key_bytes))

    def did(self) -> str:
        return self._did.did()

    async def verify(self, payload: bytes, signature: Signature.Signature) -> bool:
        raw = signature.raw
        if signature.code != self.signature_code or len(raw) != 2 * _P256_COORDINATE_SIZE:
            return False
        r = int.from_bytes(raw[:_P256_COORDINATE_SIZE], "big")
        s = int.from_bytes(raw[_P256_COORDINATE_SIZE:], "big")
        try:
            self._public_key.verify(
                encode_dss_signature(r, s), payload, ec.ECDSA(hashes.SHA256())
            )
            return True
        except InvalidSignature:
            return False


class P256Signer:
    """Sign payloads with a P-256 private key (ES256)."""

    signature_algorithm = "ES256"
    signature_code = Signature.ES256

    def __init__(self, private_key: ec.EllipticCurvePrivateKey) -> None:
        self._private_key = private_key
        public_bytes = private_key.public_key().public_bytes(
            Encoding.X962, PublicFormat.CompressedPoint
        )
        self._verifier = P256Verifier(public_bytes)

    @classmethod
    def generate(cls) -> "P256Signer":
        return cls(ec.generate_private_key(ec.SECP256R1()))

    def did(self) -> str:
        return self._verifier.did()

    def verifier(self) -> P256Verifier:
        return self._verifier

    async def sign(self, payload: bytes) -> bytes:
        der = self._private_key.sign(payload, ec.ECDSA(hashes.SHA256()))
        r, s = decode_dss_signature(der)
        return r.to_bytes(_P256_COORDINATE_SIZE, "big") + s.to_bytes(
            _P256_COORDINATE_SIZE, "big"
        )


# ---------------------------------------------------------------------------
# RSA
# ---------------------------------------------------------------------------


class RSAVerifier:
    """Verify RS256 signatures for an RSA ``did:key``.

    Parameters
    ----------
    public_key_bytes:
        DER encoded PKCS#1 ``RSAPublicKey``.
    """

    signature_algorithm = "RS256"
    signature_code = Signature.RS256

    def __init__(self, public_key_bytes: bytes) -> None:
        public_key = serialization.load_der_public_key(bytes(public_key_bytes))
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise DIDError("rsa-pub key does not hold an RSA public key")
        self._public_key = public_key
        self._did = DID.KeyDID(DID.RSA, bytes(public_key_bytes))

    def did(self) -> str:
        return self._did.did()

    async def verify(self, payload: bytes, signature: Signature.Signature) -> bool:
        if signature.code != self.signature_code:
            return False
        try:
            self._public_key.verify(
                signature.raw, payload, padding.PKCS1v15(), hashes.SHA256()
            )
            return True
        except InvalidSignature:
            return False


class RSASigner:
    """Sign payloads with an RSA private key (RS256)."""

    signature_algorithm = "RS256"
    signature_code = Signature.RS256

    def __init__(self, private_key: rsa.RSAPrivateKey) -> None:
        self._private_key = private_key
        public_bytes = private_key.public_key().public_bytes(Encoding.DER, PublicFormat.PKCS1)
        self._verifier = RSAVerifier(public_bytes)

    @classmethod
    def generate(cls, key_size: int = 2048) -> "RSASigner":
        return cls(rsa.generate_private_key(public_exponent=65537, key_size=key_size))

    def did(self) -> str:
        return self._verifier.did()

    def verifier(self) -> RSAVerifier:
        return self._verifier

    async def sign(self, payload: bytes) -> bytes:
        return self._private_key.sign(payload, padding.PKCS1v15(), hashes.SHA256())


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

_VERIFIERS = {
    DID.ED25519: Ed25519Verifier,
    DID.P256: P256Verifier,
    DID.RSA: RSAVerifier,
}


def verifier_from_did(did: DID.DID | str) -> Ed25519Verifier | P256Verifier | RSAVerifier:
    """Build a verifier from the key embedded in a ``did:key``.

    Raises
    ------
    DIDError
        If *did* is not a ``did:key`` (opaque DIDs carry no key material).
    UnsupportedKeyEncodingError
        If the key type has no verifier.
    """
    did = DID.from_value(did)
    if not isinstance(did, DID.KeyDID):
        raise DIDError(f"{did.did()} carries no key material and cannot act as a verifier")
    try:
        factory = _VERIFIERS[did.code]
    except KeyError:
        raise UnsupportedKeyEncodingError(did.code) from None
    try:
        return factory(did.key)
    except ValueError as exc:
        raise DIDError(f"Invalid {did.algorithm} key in {did.did()}: {exc}") from exc


__all__ = [
    "Ed25519Signer",
    "Ed25519Verifier",
    "P256Signer",
    "P256Verifier",
    "RSASigner",
    "RSAVerifier",
    "Signer",
    "Verifier",
    "verifier_from_did",
]

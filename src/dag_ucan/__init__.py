"""dag-ucan — UCAN authorization tokens in DAG-CBOR and JWT form.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import dag_ucan
>>> dag_ucan.__version__
'0.1.0'

Quick start
-----------
::

    import asyncio
    import dag_ucan
    from dag_ucan.keys import Ed25519Signer

    alice = Ed25519Signer.generate()
    bob = Ed25519Signer.generate()

    ucan = asyncio.run(dag_ucan.issue(
        issuer=alice,
        audience=bob,
        capabilities=[{"with": alice.did(), "can": "store/put"}],
    ))

    token = dag_ucan.format(ucan)           # JWT text
    data = dag_ucan.encode(ucan)            # DAG-CBOR bytes
    assert dag_ucan.decode(data) == ucan
    assert dag_ucan.parse(token) == ucan
    assert asyncio.run(dag_ucan.verify_signature(ucan, alice.verifier()))
"""
from __future__ import annotations

__version__: str = "0.1.0"

from dag_ucan import did
from dag_ucan.capability import Capability
from dag_ucan.codec import decode, encode, format, parse
from dag_ucan.config import VERSION, CodecSettings
from dag_ucan.did import DID, KeyDID, OpaqueDID
from dag_ucan.errors import (
    AudienceFormatError,
    CapabilityGrammarError,
    DIDError,
    DIDFormatError,
    FormatError,
    InvalidDIDError,
    MalformedKeyError,
    SchemaError,
    UCANError,
    UncompressedKeyError,
    UnsupportedKeyEncodingError,
    UnsupportedSignatureAlgorithmError,
    VersionError,
)
from dag_ucan.issuance import issue
from dag_ucan.keys import Signer, Verifier
from dag_ucan.link import Block, Hasher, link, write
from dag_ucan.model import CBOR_CODE, RAW_CODE, UCAN, UNBOUNDED, Unbounded
from dag_ucan.signature import Signature
from dag_ucan.validity import is_expired, is_too_early, now, verify_signature

__all__ = [
    # version
    "__version__",
    "VERSION",
    # model
    "CBOR_CODE",
    "RAW_CODE",
    "UCAN",
    "UNBOUNDED",
    "Unbounded",
    "Capability",
    "Signature",
    # did
    "DID",
    "KeyDID",
    "OpaqueDID",
    "did",
    # operations
    "decode",
    "encode",
    "format",
    "is_expired",
    "is_too_early",
    "issue",
    "link",
    "now",
    "parse",
    "verify_signature",
    "write",
    # collaborators
    "Block",
    "CodecSettings",
    "Hasher",
    "Signer",
    "Verifier",
    # errors
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
]

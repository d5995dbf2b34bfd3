"""Field readers shared by issuance, CBOR decoding, and JWT parsing.

Each reader takes an untrusted value plus the field name it came from and
returns the validated, normalized value or raises a
:class:`~dag_ucan.errors.UCANError` naming the field and the received value.
Building a model from a builder call and from parsed bytes goes through the
same readers, so both paths accept and reject exactly the same values.
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Callable

from multiformats import CID, multihash

from dag_ucan import did as DID
from dag_ucan import signature as Signature
from dag_ucan.capability import (
    INT_MAX,
    INT_MIN,
    Capability,
    normalize_value,
    validate_capabilities,
)
from dag_ucan.config import VERSION_PATTERN
from dag_ucan.errors import DIDError, SchemaError, VersionError, describe
from dag_ucan.model import RAW_CODE, UNBOUNDED, Expiration


def read_version(value: object, context: str = "v") -> str:
    if not isinstance(value, str) or not VERSION_PATTERN.match(value):
        raise VersionError(context, value)
    return value


def read_integer(value: object, context: str) -> int:
    if (
        isinstance(value, bool)
        or not isinstance(value, int)
        or not INT_MIN <= value <= INT_MAX
    ):
        raise SchemaError(
            f"Expected {context} to be integer, instead got {describe(value)}",
            field=context,
            value=value,
        )
    return value


def read_optional_integer(value: object, context: str) -> int | None:
    return None if value is None else read_integer(value, context)


def read_optional_string(value: object, context: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise SchemaError(
            f"{context} has invalid value {describe(value)}", field=context, value=value
        )
    return value


def read_expiration(
    value: object, context: str = "exp", allow_infinity: bool = False
) -> Expiration:
    """Read an expiry.

    ``None`` (CBOR null / absent JWT field) means the token never expires
    and maps to :data:`~dag_ucan.model.UNBOUNDED`. ``math.inf`` means the
    same only when *allow_infinity* is set, which the builder does; decoded
    tokens must spell an unbounded expiry as null.
    """
    if value is None or value is UNBOUNDED:
        return UNBOUNDED
    if allow_infinity and isinstance(value, float) and value == math.inf:
        return UNBOUNDED
    return read_integer(value, context)


def read_did_bytes(value: object, context: str) -> DID.DID:
    """Read a DID from its binary form (CBOR representation)."""
    if isinstance(value, DID.DID):
        return value
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise SchemaError(
            f"Expected {context} to be bytes, instead got {describe(value)}",
            field=context,
            value=value,
        )
    return _with_context(DID.decode, bytes(value), context)


def read_did_string(value: object, context: str) -> DID.DID:
    """Read a DID from its string form (JWT representation)."""
    if isinstance(value, DID.DID):
        return value
    if not isinstance(value, str):
        raise SchemaError(
            f"Expected {context} to be a DID string, instead got {describe(value)}",
            field=context,
            value=value,
        )
    return _with_context(DID.parse, value, context)


def read_capabilities(value: object) -> tuple[Capability, ...]:
    return validate_capabilities(value)


def read_facts(value: object, context: str = "fct") -> tuple[Mapping[str, Any], ...]:
    """Read facts; an absent value reads as no facts."""
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise SchemaError(f"{context} must be an array", field=context, value=value)
    facts = []
    for index, fact in enumerate(value):
        path = f"{context}[{index}]"
        if not isinstance(fact, Mapping):
            raise SchemaError(
                f"{path} must be of type object, instead got {_type_name(fact)} {describe(fact)}",
                field=path,
                value=fact,
            )
        facts.append(normalize_value(fact, path))
    return tuple(facts)


def read_links(value: object, context: str = "prf") -> tuple[CID, ...]:
    """Read proof links from the CBOR representation (CID values only)."""
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise SchemaError(f"{context} must be an array", field=context, value=value)
    links = []
    for index, link in enumerate(value):
        if not isinstance(link, CID):
            path = f"{context}[{index}]"
            raise SchemaError(
                f"Expected {path} to be IPLD link, instead got {describe(link)}",
                field=path,
                value=link,
            )
        links.append(link)
    return tuple(links)


def read_proofs(value: object, context: str = "prf") -> tuple[CID, ...]:
    """Read proofs given as CIDs or strings (JWT representation, builder input)."""
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise SchemaError(f"{context} must be an array", field=context, value=value)
    return tuple(read_proof(item, f"{context}[{index}]") for index, item in enumerate(value))


def read_proof(value: object, context: str) -> CID:
    """Coerce a single proof into a CID.

    Strings containing a ``.`` are inline JWT proofs and are addressed by an
    identity multihash under the raw codec. Other strings must be CIDs.
    """
    if isinstance(value, CID):
        return value
    if isinstance(value, str):
        if "." in value:
            return inline_proof(value)
        try:
            return CID.decode(value)
        except (KeyError, ValueError) as exc:
            raise SchemaError(
                f"{context} has invalid value {describe(value)}", field=context, value=value
            ) from exc
    raise SchemaError(f"{context} has invalid value {describe(value)}", field=context, value=value)


def inline_proof(token: str) -> CID:
    """Return the identity CID embedding the JWT *token*."""
    digest = multihash.wrap(token.encode("utf-8"), "identity")
    return CID("base32", 1, "raw", digest)


def is_inline_proof(link: CID) -> bool:
    return link.codec.code == RAW_CODE and link.hashfun.name == "identity"


def read_signature(value: object) -> Signature.Signature:
    if isinstance(value, Signature.Signature):
        return value
    return Signature.decode(value)


def _with_context(reader: Callable[[Any], DID.DID], value: Any, context: str) -> DID.DID:
    try:
        return reader(value)
    except DIDError as exc:
        exc.field = context
        exc.args = (f"{context}: {exc}",)
        raise


def _type_name(value: object) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if value is None:
        return "null"
    return type(value).__name__


__all__ = [
    "inline_proof",
    "is_inline_proof",
    "read_capabilities",
    "read_did_bytes",
    "read_did_string",
    "read_expiration",
    "read_facts",
    "read_integer",
    "read_links",
    "read_optional_integer",
    "read_optional_string",
    "read_proof",
    "read_proofs",
    "read_signature",
    "read_version",
]

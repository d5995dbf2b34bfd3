"""Binary representation — UCAN as a DAG-CBOR map.

Layout
------
::

    {
      "v":   text,
      "iss": bytes,           # DID binary form
      "aud": bytes,
      "exp": int | null,      # null when the token never expires
      "fct": [map, ...],
      "att": [capability, ...],
      "prf": [CID, ...],
      "nbf": int,             # only when present
      "nnc": text,            # only when present
      "s":   bytes,           # signature envelope
    }

The DAG-CBOR encoder orders map keys canonically, so :func:`encode` is a
pure function of the model: equal models always produce equal bytes. The
signing payload is the same map without ``s``.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import dag_cbor

from dag_ucan import schema
from dag_ucan.capability import thaw
from dag_ucan.errors import FormatError
from dag_ucan.model import CBOR_CODE, UCAN, UNBOUNDED

code: int = CBOR_CODE
name: str = "dag-cbor"


def to_data(ucan: UCAN, include_signature: bool = True) -> dict[str, Any]:
    """Return the DAG-CBOR data model of *ucan*."""
    data: dict[str, Any] = {
        "v": ucan.v,
        "iss": ucan.iss.encode(),
        "aud": ucan.aud.encode(),
        "exp": None if ucan.exp is UNBOUNDED else ucan.exp,
        "fct": thaw(ucan.fct),
        "att": [capability.to_dict() for capability in ucan.att],
        "prf": list(ucan.prf),
    }
    if ucan.nbf is not None:
        data["nbf"] = ucan.nbf
    if ucan.nnc is not None:
        data["nnc"] = ucan.nnc
    if include_signature:
        data["s"] = ucan.s.encode()
    return data


def encode(ucan: UCAN) -> bytes:
    """Encode *ucan* as canonical DAG-CBOR bytes."""
    return dag_cbor.encode(to_data(ucan))


def encode_payload(ucan: UCAN) -> bytes:
    """Return the canonical bytes that the issuer signs."""
    return dag_cbor.encode(to_data(ucan, include_signature=False))


def decode_value(data: bytes) -> Any:
    """Decode raw DAG-CBOR bytes without interpreting them.

    Raises
    ------
    FormatError
        If *data* is not valid DAG-CBOR.
    """
    try:
        return dag_cbor.decode(bytes(data))
    except Exception as exc:
        raise FormatError(f"Could not decode DAG-CBOR: {exc}") from exc


def decode(data: bytes) -> UCAN:
    """Decode DAG-CBOR bytes into a CBOR-native model."""
    return from_data(decode_value(data))


def from_data(data: object) -> UCAN:
    """Validate a decoded DAG-CBOR value and build the model.

    Raises
    ------
    FormatError
        If *data* is not a map.
    SchemaError
        If any field has the wrong type or shape.
    """
    if not isinstance(data, Mapping):
        raise FormatError(f"Expected UCAN to be a DAG-CBOR map, instead got {type(data).__name__}")
    return UCAN(
        v=schema.read_version(data.get("v")),
        iss=schema.read_did_bytes(data.get("iss"), "iss"),
        aud=schema.read_did_bytes(data.get("aud"), "aud"),
        att=schema.read_capabilities(data.get("att")),
        exp=schema.read_expiration(data.get("exp")),
        nbf=schema.read_optional_integer(data.get("nbf"), "nbf"),
        nnc=schema.read_optional_string(data.get("nnc"), "nnc"),
        fct=schema.read_facts(data.get("fct")),
        prf=schema.read_links(data.get("prf")),
        s=schema.read_signature(data.get("s")),
        code=CBOR_CODE,
    )


__all__ = [
    "code",
    "decode",
    "decode_value",
    "encode",
    "encode_payload",
    "from_data",
    "name",
    "to_data",
]

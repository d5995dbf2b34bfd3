"""Textual representation — UCAN as a JWT.

Token format
------------
The token is a dot-separated string::

    base64url(header).base64url(body).base64url(signature)

- header: ``{"alg": <signature algorithm>, "ucv": <version>, "typ": "JWT"}``
- body: ``{"iss", "aud", "exp", "att", "prf", "fct", "nbf"?, "nnc"?}``;
  ``exp`` is left out entirely when the token never expires
- signature: the raw signature bytes

Segments are base64url without padding. ``prf`` entries are either inline
JWT strings or CID strings.

Caveat and fact values follow DAG-JSON: bytes are written as
``{"/": {"bytes": <base64, unpadded>}}`` and links as ``{"/": <CID string>}``,
so every value DAG-CBOR can carry survives the JSON form. Non-finite
numbers are rejected when parsing.

A model parsed from text keeps that text, and :func:`format` returns it
unchanged. Signatures cover exact bytes, so a parsed token is never
re-canonicalized.
"""
from __future__ import annotations

import base64
import binascii
import json
import math
from collections.abc import Mapping
from typing import Any

from multiformats import CID

from dag_ucan import schema
from dag_ucan import signature as Signature
from dag_ucan.errors import FormatError, SchemaError, describe
from dag_ucan.model import RAW_CODE, UCAN, UNBOUNDED

_TYPE: str = "JWT"


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------


def format(ucan: UCAN) -> str:  # noqa: A001
    """Return the JWT text of *ucan*.

    Text-native models return their original text; CBOR-native models are
    rendered from their claims.
    """
    if ucan.jwt is not None:
        return ucan.jwt
    return f"{format_sign_payload(ucan)}.{encode_segment(ucan.s.raw)}"


def format_sign_payload(ucan: UCAN) -> str:
    """Return the ``header.body`` part of the JWT."""
    return f"{format_header(ucan)}.{format_body(ucan)}"


def format_header(ucan: UCAN) -> str:
    header = {"alg": ucan.s.algorithm, "ucv": ucan.v, "typ": _TYPE}
    return encode_segment(_dump_json(header))


def format_body(ucan: UCAN) -> str:
    body: dict[str, Any] = {
        "iss": ucan.iss.did(),
        "aud": ucan.aud.did(),
    }
    if ucan.exp is not UNBOUNDED:
        body["exp"] = ucan.exp
    body["att"] = [_to_json(capability.to_dict()) for capability in ucan.att]
    body["prf"] = [format_proof(link) for link in ucan.prf]
    body["fct"] = [_to_json(fact) for fact in ucan.fct]
    if ucan.nbf is not None:
        body["nbf"] = ucan.nbf
    if ucan.nnc is not None:
        body["nnc"] = ucan.nnc
    return encode_segment(_dump_json(body))


def format_proof(link: Any) -> str:
    """Render a proof link: inline JWTs as their text, other CIDs as strings."""
    if schema.is_inline_proof(link):
        return bytes(link.raw_digest).decode("utf-8")
    return str(link)


# ---------------------------------------------------------------------------
# Parse
# ---------------------------------------------------------------------------


def parse(text: str) -> UCAN:
    """Parse JWT *text* into a text-native model.

    Raises
    ------
    FormatError
        If the framing, base64url, or JSON is malformed.
    SchemaError
        If a header or body field has the wrong type or shape.
    VersionError
        If ``ucv`` is not a supported version.
    """
    if not isinstance(text, str):
        raise FormatError(f"Expected JWT string, instead got {type(text).__name__}")
    segments = text.split(".")
    if len(segments) != 3:
        raise FormatError(
            "Expected JWT format: 3 dot-separated base64url-encoded values."
        )
    header_b64, body_b64, signature_b64 = segments

    header = _load_json(decode_segment(header_b64, "header"), "header")
    body = _load_json(decode_segment(body_b64, "body"), "body")
    raw_signature = decode_segment(signature_b64, "signature")

    typ = header.get("typ")
    if typ != _TYPE:
        raise SchemaError(
            f'Expected typ to be a "{_TYPE}" instead got {describe(typ)}',
            field="typ",
            value=typ,
        )
    version = schema.read_version(header.get("ucv"), "ucv")
    alg = header.get("alg")
    if not isinstance(alg, str):
        raise SchemaError(
            f"Expected alg to be a string, instead got {describe(alg)}", field="alg", value=alg
        )

    return UCAN(
        v=version,
        iss=schema.read_did_string(body.get("iss"), "iss"),
        aud=schema.read_did_string(body.get("aud"), "aud"),
        att=schema.read_capabilities(_from_json(body.get("att"), "att")),
        exp=schema.read_expiration(body.get("exp")),
        nbf=schema.read_optional_integer(body.get("nbf"), "nbf"),
        nnc=schema.read_optional_string(body.get("nnc"), "nnc"),
        fct=schema.read_facts(_from_json(body.get("fct"), "fct")),
        prf=schema.read_proofs(body.get("prf")),
        s=Signature.create_named(alg, raw_signature),
        code=RAW_CODE,
        jwt=text,
    )


# ---------------------------------------------------------------------------
# Segment helpers
# ---------------------------------------------------------------------------


def encode_segment(data: bytes) -> str:
    """Encode *data* as unpadded base64url."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def decode_segment(segment: str, context: str) -> bytes:
    """Decode an unpadded base64url segment.

    Raises
    ------
    FormatError
        If *segment* is not valid base64url.
    """
    try:
        return base64.b64decode(
            segment + "=" * (-len(segment) % 4), altchars=b"-_", validate=True
        )
    except (binascii.Error, ValueError) as exc:
        raise FormatError(f"Could not decode JWT {context}: {exc}") from exc


# ---------------------------------------------------------------------------
# DAG-JSON values
# ---------------------------------------------------------------------------


def _to_json(value: Any) -> Any:
    """Return the DAG-JSON form of a caveat or fact value."""
    if isinstance(value, CID):
        return {"/": str(value)}
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {"/": {"bytes": base64.b64encode(bytes(value)).rstrip(b"=").decode("ascii")}}
    if isinstance(value, Mapping):
        if list(value) == ["/"]:
            raise FormatError('Token cannot be represented as JSON: map with sole key "/"')
        return {key: _to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json(item) for item in value]
    return value


def _from_json(value: Any, context: str) -> Any:
    """Turn DAG-JSON links and bytes in *value* back into CIDs and bytes.

    Raises
    ------
    FormatError
        If a map with the reserved ``"/"`` key is neither a link nor bytes.
    """
    if isinstance(value, list):
        return [_from_json(item, f"{context}[{index}]") for index, item in enumerate(value)]
    if not isinstance(value, dict):
        return value
    if list(value) != ["/"]:
        return {key: _from_json(item, f"{context}.{key}") for key, item in value.items()}
    inner = value["/"]
    if isinstance(inner, str):
        try:
            return CID.decode(inner)
        except (KeyError, ValueError) as exc:
            raise FormatError(f"Could not decode link in {context}: {exc}") from exc
    if isinstance(inner, dict) and list(inner) == ["bytes"] and isinstance(inner["bytes"], str):
        encoded = inner["bytes"]
        try:
            return base64.b64decode(encoded + "=" * (-len(encoded) % 4), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise FormatError(f"Could not decode bytes in {context}: {exc}") from exc
    raise FormatError(f'Invalid DAG-JSON map with key "/" in {context}: {describe(value)}')


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------


def _reject_constant(name: str) -> Any:
    raise FormatError(f"Non-finite number {name} is not allowed in JWT")


def _parse_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise FormatError(f"Non-finite number {text} is not allowed in JWT")
    return value


def _dump_json(value: object) -> bytes:
    try:
        return json.dumps(
            value, separators=(",", ":"), ensure_ascii=False, allow_nan=False
        ).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise FormatError(f"Token cannot be represented as JSON: {exc}") from exc


def _load_json(data: bytes, context: str) -> Mapping[str, Any]:
    try:
        value = json.loads(
            data.decode("utf-8"),
            parse_constant=_reject_constant,
            parse_float=_parse_float,
        )
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FormatError(f"Could not decode JWT {context}: {exc}") from exc
    if not isinstance(value, dict):
        raise FormatError(f"Expected JWT {context} to be a JSON object")
    return value


__all__ = [
    "decode_segment",
    "encode_segment",
    "format",
    "format_body",
    "format_header",
    "format_proof",
    "format_sign_payload",
    "parse",
]

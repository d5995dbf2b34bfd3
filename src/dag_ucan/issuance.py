"""issue — build and sign a new UCAN.

Issuance validates every claim with the same readers used when decoding
untrusted tokens, serializes the claim set to canonical DAG-CBOR bytes,
asks the issuer to sign those bytes, and freezes the result.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any

from multiformats import CID

from dag_ucan import did as DID
from dag_ucan import schema
from dag_ucan import signature as Signature
from dag_ucan.codec import cbor
from dag_ucan.config import DEFAULT_SETTINGS, CodecSettings
from dag_ucan.errors import AudienceFormatError, DIDError, SchemaError, describe
from dag_ucan.keys import Signer
from dag_ucan.link import get_hasher, link
from dag_ucan.model import CBOR_CODE, UCAN
from dag_ucan.validity import now

logger = logging.getLogger(__name__)

_MISSING: Any = object()


async def issue(
    issuer: Signer,
    audience: object,
    capabilities: Iterable[Mapping[str, Any]] = (),
    expiration: int | float | None = _MISSING,
    not_before: int | None = None,
    nonce: str | None = None,
    facts: Iterable[Mapping[str, Any]] = (),
    proofs: Iterable[CID | str | UCAN] = (),
    lifetime: int | None = None,
    settings: CodecSettings | None = None,
) -> UCAN:
    """Issue a signed, CBOR-native UCAN.

    Parameters
    ----------
    issuer:
        The signing principal.
    audience:
        The receiving principal; anything exposing ``did()``.
    capabilities:
        Capabilities to grant, as ``{"with": ..., "can": ..., **caveats}``
        mappings.
    expiration:
        Expiry in seconds since the epoch. ``math.inf`` or ``None`` issue a
        token that never expires. Defaults to ``now() + lifetime``.
    not_before:
        Optional time before which the token is not valid.
    nonce:
        Optional nonce.
    facts:
        Facts to attach.
    proofs:
        Proof links: CIDs, CID strings, inline JWT strings, or tokens
        (linked with ``settings.hasher``).
    lifetime:
        Lifetime in seconds used when *expiration* is not given. Defaults to
        ``settings.default_lifetime``.
    settings:
        Issuance defaults, :data:`~dag_ucan.config.DEFAULT_SETTINGS` if
        omitted.

    Returns
    -------
    UCAN
        The signed token.

    Raises
    ------
    AudienceFormatError
        If *audience* does not expose a ``did:`` string.
    SchemaError
        If any claim is invalid.
    """
    settings = settings or DEFAULT_SETTINGS
    if expiration is _MISSING:
        expiration = now() + (lifetime if lifetime is not None else settings.default_lifetime)

    ucan = UCAN(
        v=settings.version,
        iss=_read_principal(issuer, "issuer"),
        aud=_read_principal(audience, "audience"),
        att=schema.read_capabilities(_as_list(capabilities, "att")),
        exp=schema.read_expiration(expiration, allow_infinity=True),
        nbf=schema.read_optional_integer(not_before, "nbf"),
        nnc=schema.read_optional_string(nonce, "nnc"),
        fct=schema.read_facts(_as_list(facts, "fct")),
        prf=await _read_proofs(proofs, settings.hasher),
        s=Signature.Signature(code=0, raw=b""),
        code=CBOR_CODE,
    )

    payload = cbor.encode_payload(ucan)
    raw = await issuer.sign(payload)
    signed = replace(ucan, s=_signature_for(issuer, raw))
    logger.info(
        "issued UCAN %s -> %s with %d capabilities",
        signed.iss,
        signed.aud,
        len(signed.att),
    )
    return signed


def _read_principal(principal: object, context: str) -> DID.DID:
    if isinstance(principal, DID.DID):
        return principal
    did_method = getattr(principal, "did", None)
    text = did_method() if callable(did_method) else None
    if not isinstance(text, str) or not text.startswith(DID.DID_PREFIX):
        message = (
            f"The {context}.did() must return a 'did:' string, instead got {describe(text)}"
            if callable(did_method)
            else f"The {context} must expose {context}.did(), instead got {describe(principal)}"
        )
        if context == "audience":
            raise AudienceFormatError(message, field="aud", value=principal)
        raise SchemaError(message, field="iss", value=principal)
    try:
        return DID.parse(text)
    except DIDError as exc:
        exc.field = "aud" if context == "audience" else "iss"
        raise


def _signature_for(issuer: Signer, raw: bytes) -> Signature.Signature:
    code = getattr(issuer, "signature_code", None)
    if code in Signature.CODE_TO_NAME:
        return Signature.create(code, raw)
    return Signature.create_named(issuer.signature_algorithm, raw)


async def _read_proofs(proofs: Iterable[CID | str | UCAN], hasher: str) -> tuple[CID, ...]:
    items = _as_list(proofs, "prf")
    if items is None:
        return ()
    if not isinstance(items, (list, tuple)):
        raise SchemaError("prf must be an array", field="prf", value=items)
    links = []
    for index, proof in enumerate(items):
        if isinstance(proof, UCAN):
            links.append(await link(proof, get_hasher(hasher)))
        else:
            links.append(schema.read_proof(proof, f"prf[{index}]"))
    return tuple(links)


def _as_list(value: object, context: str) -> object:
    if value is None or isinstance(value, (list, tuple, str, bytes, Mapping)):
        return value
    if isinstance(value, Iterable):
        return list(value)
    raise SchemaError(f"{context} must be an array", field=context, value=value)


__all__ = ["issue"]

"""Validity predicates — time bounds and signature verification.

The time predicates are pure functions of the token and a clock reading.
:func:`verify_signature` never raises: a token whose signature cannot be
checked (unknown algorithm, malformed key, crypto failure) is treated the
same as a token whose signature is wrong.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Union

from dag_ucan.codec import cbor
from dag_ucan.errors import UnsupportedSignatureAlgorithmError
from dag_ucan.keys import Verifier
from dag_ucan.model import UCAN, UNBOUNDED

logger = logging.getLogger(__name__)


def now() -> int:
    """Return the current time in whole seconds since the epoch."""
    return int(time.time())


def is_expired(ucan: UCAN, at: int | None = None) -> bool:
    """Return True when *ucan* expired before *at* (defaults to :func:`now`)."""
    if ucan.exp is UNBOUNDED:
        return False
    return ucan.exp < (now() if at is None else at)


def is_too_early(ucan: UCAN, at: int | None = None) -> bool:
    """Return True when *ucan* is not valid yet at *at* (defaults to :func:`now`)."""
    if ucan.nbf is None:
        return False
    return ucan.nbf > (now() if at is None else at)


async def verify_signature(
    ucan: UCAN,
    verifier: Union[Verifier, Mapping[int, Verifier]],
) -> bool:
    """Check the signature of *ucan*.

    The signed bytes are always recomputed from the DAG-CBOR claim set,
    whatever representation the token was decoded from.

    Parameters
    ----------
    ucan:
        The token to check.
    verifier:
        A verifier, or a mapping from signature code to verifier. A verifier
        exposing ``did()`` must belong to the token's issuer, and one
        exposing ``signature_code`` must match the signature's algorithm.

    Returns
    -------
    bool
        ``True`` only if the signature was positively verified.
    """
    signature = ucan.s
    try:
        if not signature.is_known:
            raise UnsupportedSignatureAlgorithmError(signature.code, signature.algorithm)
        if isinstance(verifier, Mapping):
            if signature.code not in verifier:
                raise UnsupportedSignatureAlgorithmError(signature.code, signature.algorithm)
            verifier = verifier[signature.code]

        expected_code = getattr(verifier, "signature_code", None)
        if expected_code is not None and expected_code != signature.code:
            logger.debug(
                "signature algorithm %s does not match verifier algorithm 0x%x",
                signature.algorithm,
                expected_code,
            )
            return False
        verifier_did = getattr(verifier, "did", None)
        if callable(verifier_did) and verifier_did() != ucan.iss.did():
            logger.debug("verifier %s is not the issuer %s", verifier_did(), ucan.iss.did())
            return False

        payload = cbor.encode_payload(ucan)
        return bool(await verifier.verify(payload, signature))
    except Exception as exc:
        logger.warning("signature of token issued by %s could not be verified: %s", ucan.iss, exc)
        return False


__all__ = ["is_expired", "is_too_early", "now", "verify_signature"]

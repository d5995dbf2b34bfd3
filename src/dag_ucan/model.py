"""UCAN — the immutable, canonical token model.

A :class:`UCAN` is built once, either by :func:`dag_ucan.issue` or by
decoding / parsing bytes, and is never mutated afterwards. The short
wire-level field names (``iss``, ``aud``, ``att``, ...) are the stored
fields; the descriptive properties (``issuer``, ``audience``,
``capabilities``, ...) are read-only projections over them.

Origin
------
Every model remembers how it was produced:

* CBOR-native models (``code == CBOR_CODE``) were issued or decoded from
  DAG-CBOR bytes. Their JWT form is derived on demand.
* Text-native models (``code == RAW_CODE``) were parsed from a JWT string.
  The original text is kept in ``jwt`` so that formatting reproduces it
  byte-for-byte.

Origin does not take part in equality: a CBOR-native and a text-native
model carrying the same claims compare equal.
"""
from __future__ import annotations

import enum
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from multiformats import CID

from dag_ucan.capability import Capability
from dag_ucan.did import DID
from dag_ucan.signature import Signature

if TYPE_CHECKING:
    from dag_ucan.link import Block, Hasher

CBOR_CODE: int = 0x71
RAW_CODE: int = 0x55


class Unbounded(enum.Enum):
    """Sentinel type for tokens that never expire."""

    UNBOUNDED = "unbounded"

    def __repr__(self) -> str:
        return "UNBOUNDED"


UNBOUNDED = Unbounded.UNBOUNDED

Expiration = Union[int, Unbounded]


@dataclass(frozen=True)
class UCAN:
    """A UCAN token.

    Parameters
    ----------
    v:
        UCAN spec version.
    iss:
        Issuer DID.
    aud:
        Audience DID.
    att:
        Granted capabilities, in order.
    exp:
        Expiry in seconds since the epoch, or :data:`UNBOUNDED`.
    s:
        Signature envelope over the claim set.
    nbf:
        Optional not-before time in seconds since the epoch.
    nnc:
        Optional nonce.
    fct:
        Facts, in order, as read-only mappings.
    prf:
        Links to proof tokens, in order.
    code:
        Content-type code of the origin representation.
    jwt:
        Original token text for text-native models.
    """

    v: str
    iss: DID
    aud: DID
    att: tuple[Capability, ...]
    exp: Expiration
    s: Signature
    nbf: int | None = None
    nnc: str | None = None
    fct: tuple[Mapping[str, Any], ...] = ()
    prf: tuple[CID, ...] = ()
    code: int = field(default=CBOR_CODE, compare=False)
    jwt: str | None = field(default=None, compare=False, repr=False)

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    @property
    def version(self) -> str:
        return self.v

    @property
    def issuer(self) -> DID:
        return self.iss

    @property
    def audience(self) -> DID:
        return self.aud

    @property
    def capabilities(self) -> tuple[Capability, ...]:
        return self.att

    @property
    def expiration(self) -> float | int:
        """Expiry time, ``math.inf`` when the token never expires."""
        return math.inf if self.exp is UNBOUNDED else self.exp

    @property
    def not_before(self) -> int | None:
        return self.nbf

    @property
    def nonce(self) -> str | None:
        return self.nnc

    @property
    def facts(self) -> tuple[Mapping[str, Any], ...]:
        return self.fct

    @property
    def proofs(self) -> tuple[CID, ...]:
        return self.prf

    @property
    def signature(self) -> Signature:
        return self.s

    @property
    def is_text_native(self) -> bool:
        return self.jwt is not None

    # ------------------------------------------------------------------
    # Representations
    # ------------------------------------------------------------------

    def encode(self) -> bytes:
        """Return the DAG-CBOR encoding of this token."""
        from dag_ucan.codec import cbor

        return cbor.encode(self)

    def format(self) -> str:
        """Return the JWT encoding of this token."""
        from dag_ucan.codec import jwt

        return jwt.format(self)

    async def link(self, hasher: "Hasher | None" = None) -> CID:
        """Return the CID addressing this token."""
        from dag_ucan.link import link

        return await link(self, hasher)

    async def write(self, hasher: "Hasher | None" = None) -> "Block":
        """Return the block (CID and bytes) for this token."""
        from dag_ucan.link import write

        return await write(self, hasher)


__all__ = [
    "CBOR_CODE",
    "RAW_CODE",
    "UCAN",
    "UNBOUNDED",
    "Expiration",
    "Unbounded",
]

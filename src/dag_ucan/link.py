"""Content addressing — CIDs for UCAN tokens.

CBOR-native tokens are addressed by a hash of their canonical DAG-CBOR
bytes under the ``dag-cbor`` codec. Text-native tokens are addressed by
their literal UTF-8 text wrapped in an ``identity`` multihash under the
``raw`` codec, so the CID embeds the token and no hashing takes place.

Hashers are passed per call. Any object implementing :class:`Hasher` can
be used; SHA-256 and SHA-512 implementations ship with the package.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from multiformats import CID, multihash

from dag_ucan.codec import cbor
from dag_ucan.model import UCAN

logger = logging.getLogger(__name__)


@runtime_checkable
class Hasher(Protocol):
    """A multihash function."""

    name: str
    code: int

    async def digest(self, data: bytes) -> bytes:
        """Return the raw (unwrapped) digest of *data*."""
        ...


class _HashlibHasher:
    def __init__(self, name: str, code: int, algorithm: str) -> None:
        self.name = name
        self.code = code
        self._algorithm = algorithm

    async def digest(self, data: bytes) -> bytes:
        return hashlib.new(self._algorithm, data).digest()

    def __repr__(self) -> str:
        return f"Hasher({self.name!r})"


sha256: Hasher = _HashlibHasher("sha2-256", 0x12, "sha256")
sha512: Hasher = _HashlibHasher("sha2-512", 0x13, "sha512")

HASHERS: dict[str, Hasher] = {sha256.name: sha256, sha512.name: sha512}


@dataclass(frozen=True)
class Block:
    """A token together with the bytes its CID addresses.

    Parameters
    ----------
    cid:
        The content identifier.
    bytes:
        The addressed bytes: DAG-CBOR for CBOR-native tokens, UTF-8 JWT
        text for text-native tokens.
    data:
        The token itself.
    """

    cid: CID
    bytes: bytes
    data: UCAN


def get_hasher(name: str) -> Hasher:
    """Look up a bundled hasher by multihash name."""
    try:
        return HASHERS[name]
    except KeyError:
        raise KeyError(
            f"Unknown hasher {name!r}. Available: {', '.join(sorted(HASHERS))}"
        ) from None


async def link(ucan: UCAN, hasher: Hasher | None = None) -> CID:
    """Return the CID addressing *ucan*."""
    block = await write(ucan, hasher)
    return block.cid


async def write(ucan: UCAN, hasher: Hasher | None = None) -> Block:
    """Return the :class:`Block` for *ucan*.

    Parameters
    ----------
    ucan:
        The token to address.
    hasher:
        Hash function for CBOR-native tokens; defaults to SHA-256. Ignored
        for text-native tokens, which use the identity multihash.
    """
    if ucan.jwt is not None:
        data = ucan.jwt.encode("utf-8")
        cid = CID("base32", 1, "raw", multihash.wrap(data, "identity"))
        logger.debug("linked text-native token as identity CID (%d bytes)", len(data))
        return Block(cid=cid, bytes=data, data=ucan)

    hasher = hasher or sha256
    data = cbor.encode(ucan)
    digest = await hasher.digest(data)
    cid = CID("base32", 1, cbor.name, multihash.wrap(digest, hasher.name))
    logger.debug("linked token as %s using %s", cid, hasher.name)
    return Block(cid=cid, bytes=data, data=ucan)


__all__ = ["HASHERS", "Block", "Hasher", "get_hasher", "link", "sha256", "sha512", "write"]

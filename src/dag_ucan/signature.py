"""Signature envelope — a raw signature tagged with its algorithm.

Binary layout (varsig)::

    varint(code) || varint(len(raw)) || raw [|| utf8(name)]

The trailing algorithm name is only present for the :data:`NON_STANDARD`
code, which carries algorithms that have no registered code (for example a
JWT whose header declares ``"alg": "whatever"``).

Decoding never rejects an unrecognised code; the envelope is kept so that
newer algorithms survive a decode / encode round trip. Only verification
dispatch refuses unknown algorithms.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from multiformats import varint

from dag_ucan.errors import SchemaError, describe

# ---------------------------------------------------------------------------
# Algorithm registry
# ---------------------------------------------------------------------------

NON_STANDARD: int = 0xD000
ES256K: int = 0xD0E7
BLS12381G1: int = 0xD0EA
BLS12381G2: int = 0xD0EB
EdDSA: int = 0xD0ED
ES256: int = 0xD01200
ES384: int = 0xD01201
ES512: int = 0xD01202
RS256: int = 0xD01205
EIP191: int = 0xD191

CODE_TO_NAME: dict[int, str] = {
    ES256K: "ES256K",
    BLS12381G1: "BLS12381G1",
    BLS12381G2: "BLS12381G2",
    EdDSA: "EdDSA",
    ES256: "ES256",
    ES384: "ES384",
    ES512: "ES512",
    RS256: "RS256",
    EIP191: "EIP191",
}
NAME_TO_CODE: dict[str, int] = {name: code for code, name in CODE_TO_NAME.items()}

_UNKNOWN_PREFIX = "unknown:0x"
_UNKNOWN_PATTERN = re.compile(r"^unknown:0x(?P<code>[0-9a-f]+)$")


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Signature:
    """A signature together with the algorithm that produced it.

    Parameters
    ----------
    code:
        Numeric algorithm tag.
    raw:
        The raw signature bytes.
    name:
        Algorithm name, only set for :data:`NON_STANDARD` signatures.
    """

    code: int
    raw: bytes
    name: str | None = None

    @property
    def algorithm(self) -> str:
        """Return the algorithm name.

        Registered codes map to their JWT ``alg`` names. Unregistered codes
        read as ``"unknown:0x<hex>"``.
        """
        if self.code == NON_STANDARD:
            return self.name or ""
        return CODE_TO_NAME.get(self.code, f"{_UNKNOWN_PREFIX}{self.code:x}")

    @property
    def is_known(self) -> bool:
        return self.code in CODE_TO_NAME

    def encode(self) -> bytes:
        data = varint.encode(self.code) + varint.encode(len(self.raw)) + self.raw
        if self.code == NON_STANDARD:
            data += (self.name or "").encode("utf-8")
        return data

    def __repr__(self) -> str:
        return f"Signature(algorithm={self.algorithm!r}, raw={self.raw.hex()!r})"


def create(code: int, raw: bytes) -> Signature:
    """Build an envelope for *raw* tagged with *code*."""
    if code == NON_STANDARD:
        raise SchemaError(
            "Non-standard signatures must be created with create_named()",
            field="s",
            value=code,
        )
    return Signature(code=code, raw=bytes(raw))


def create_named(name: str, raw: bytes) -> Signature:
    """Build an envelope for *raw* from an algorithm name.

    Registered names map to their code; ``"unknown:0x<hex>"`` names map
    back to the code they were rendered from; every other name is kept
    under :data:`NON_STANDARD`.
    """
    code = NAME_TO_CODE.get(name)
    if code is not None:
        return Signature(code=code, raw=bytes(raw))
    match = _UNKNOWN_PATTERN.match(name)
    if match:
        return Signature(code=int(match.group("code"), 16), raw=bytes(raw))
    return Signature(code=NON_STANDARD, raw=bytes(raw), name=name)


def encode(signature: Signature) -> bytes:
    return signature.encode()


def decode(data: bytes) -> Signature:
    """Decode a varsig envelope.

    Raises
    ------
    SchemaError
        If *data* is not a well-formed envelope. Unknown codes are accepted.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise SchemaError(
            f"Expected signature s, instead got {describe(data)}", field="s", value=data
        )
    data = bytes(data)
    try:
        code, _, rest = varint.decode_raw(data)
        size, _, rest = varint.decode_raw(rest)
    except ValueError as exc:
        raise SchemaError(
            f"Expected signature s, instead got malformed bytes {data.hex()!r}",
            field="s",
            value=data,
        ) from exc
    rest = bytes(rest)
    if len(rest) < size:
        raise SchemaError(
            f"Expected signature s with {size} bytes, instead got {len(rest)}",
            field="s",
            value=data,
        )
    raw, tail = rest[:size], rest[size:]
    if code == NON_STANDARD:
        try:
            name = tail.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SchemaError(
                "Expected signature s to carry a UTF-8 algorithm name",
                field="s",
                value=data,
            ) from exc
        return Signature(code=code, raw=raw, name=name)
    if tail:
        raise SchemaError(
            f"Expected signature s, instead got {len(tail)} trailing bytes",
            field="s",
            value=data,
        )
    return Signature(code=code, raw=raw)


__all__ = [
    "BLS12381G1",
    "BLS12381G2",
    "CODE_TO_NAME",
    "EIP191",
    "ES256",
    "ES256K",
    "ES384",
    "ES512",
    "EdDSA",
    "NAME_TO_CODE",
    "NON_STANDARD",
    "RS256",
    "Signature",
    "create",
    "create_named",
    "decode",
    "encode",
]

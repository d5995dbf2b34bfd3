"""Dual-format UCAN codec.

Submodules
----------
cbor
    Binary DAG-CBOR representation (content-type code ``0x71``).
jwt
    Textual JWT representation (addressed under the raw code ``0x55``).

The functions exported here dispatch between the two:

* :func:`encode` always produces DAG-CBOR bytes, re-serializing
  text-native models on demand.
* :func:`decode` accepts DAG-CBOR bytes, and falls back to UTF-8 JWT text
  for bytes that are not DAG-CBOR at all.
* :func:`format` / :func:`parse` convert to and from JWT text.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from dag_ucan.codec import cbor, jwt
from dag_ucan.errors import FormatError
from dag_ucan.model import UCAN

logger = logging.getLogger(__name__)


def encode(ucan: UCAN | Mapping[str, object]) -> bytes:
    """Encode a model (or a raw claim mapping) as DAG-CBOR bytes.

    A mapping is validated with the same rules as decoded input before
    encoding, so optional fields may be left out.
    """
    if not isinstance(ucan, UCAN):
        ucan = cbor.from_data(ucan)
    return cbor.encode(ucan)


def decode(data: bytes) -> UCAN:
    """Decode DAG-CBOR bytes, or the UTF-8 bytes of a JWT.

    Raises
    ------
    FormatError
        If *data* is neither a DAG-CBOR value nor a UTF-8 JWT.
    SchemaError
        If *data* is a DAG-CBOR value that is not a valid UCAN.
    """
    try:
        value = cbor.decode_value(data)
    except FormatError as cbor_error:
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError:
            raise cbor_error from None
        logger.debug("bytes are not DAG-CBOR, decoding as JWT text")
        return jwt.parse(text)
    return cbor.from_data(value)


def format(ucan: UCAN) -> str:  # noqa: A001
    return jwt.format(ucan)


def parse(text: str) -> UCAN:
    return jwt.parse(text)


__all__ = ["cbor", "decode", "encode", "format", "jwt", "parse"]

"""Capability — a (resource, ability, caveats) grant carried by a UCAN.

Grammar
-------
``with``
    A URI-like string with a non-empty scheme before the first ``:``
    (``mailto:*``, ``did:key:z6Mk...``, ``wnfs://host/path``), or one of
    the delegation shorthands ``my:*`` and ``as:<did>:*``.
``can``
    Either ``*`` or ``namespace/ability`` with at least two non-empty
    ``/``-separated segments (``store/put``, ``account/*``).

Any other fields are caveats. They are passed through in their original
order, as long as their values can be represented by DAG-CBOR (``None``,
bool, int between ``-2**64`` and ``2**64 - 1``, finite float, str, bytes,
lists, str-keyed maps, CID links). Bytes and links travel through the JWT
form as DAG-JSON.

Values are frozen as they are read: maps become read-only
:class:`types.MappingProxyType` views and lists become tuples, so a built
token cannot be changed in place. :func:`thaw` turns them back into plain
``dict`` and ``list`` values for the encoders.

The same validation runs when a token is issued and when one is decoded
or parsed, so built and parsed tokens obey one grammar.
"""
from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from multiformats import CID

from dag_ucan.errors import CapabilityGrammarError, SchemaError, describe

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
_AS_PATTERN = re.compile(r"^as:did:[^:]+:.+:\*$")
_CAN_PATTERN = re.compile(r"^[^/]+(/[^/]+)+$")

# DAG-CBOR major types 0 and 1 hold integers in this range.
INT_MIN: int = -(2**64)
INT_MAX: int = 2**64 - 1


@dataclass(frozen=True)
class Capability:
    """A validated capability.

    Parameters
    ----------
    with_:
        The resource the capability applies to (``with`` on the wire).
    can:
        The ability being granted.
    caveats:
        Additional fields, in their original order, as a read-only mapping.

    Examples
    --------
    >>> cap = Capability.from_dict({"with": "mailto:*", "can": "send/message"})
    >>> cap.to_dict()
    {'with': 'mailto:*', 'can': 'send/message'}
    """

    with_: str
    can: str
    caveats: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire representation."""
        return {"with": self.with_, "can": self.can, **thaw(self.caveats)}

    @classmethod
    def from_dict(cls, data: object) -> "Capability":
        """Validate *data* and build a Capability from it."""
        return validate_capability(data)

    def __str__(self) -> str:
        return f"{self.can} on {self.with_}"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_capability(data: object) -> Capability:
    """Check a single capability against the grammar.

    Parameters
    ----------
    data:
        A mapping with ``with`` and ``can`` keys, or a :class:`Capability`.

    Raises
    ------
    CapabilityGrammarError
        If ``with`` or ``can`` is invalid.
    SchemaError
        If *data* is not a mapping or a caveat value cannot be represented.
    """
    if isinstance(data, Capability):
        data = data.to_dict()
    if not isinstance(data, Mapping):
        raise SchemaError(
            f"Capability must be an object, instead got {describe(data)}",
            field="att",
            value=data,
        )

    resource = data.get("with")
    if not isinstance(resource, str):
        raise CapabilityGrammarError(data, "with", resource, "value must be a string")
    if not _is_valid_resource(resource):
        raise CapabilityGrammarError(
            data, "with", resource, "value must be a valid URI string"
        )

    ability = data.get("can")
    if not isinstance(ability, str):
        raise CapabilityGrammarError(data, "can", ability, "value must be a string")
    if ability != "*" and not _CAN_PATTERN.match(ability):
        raise CapabilityGrammarError(
            data, "can", ability, "value must have at least one path segment"
        )

    caveats: dict[str, Any] = {}
    for key, value in data.items():
        if key in ("with", "can"):
            continue
        if not isinstance(key, str):
            raise SchemaError(
                f"Capability caveat keys must be strings, instead got {key!r}",
                field="att",
                value=key,
            )
        caveats[key] = normalize_value(value, key)
    return Capability(with_=resource, can=ability, caveats=MappingProxyType(caveats))


def validate_capabilities(value: object) -> tuple[Capability, ...]:
    """Validate the ``att`` field.

    Raises
    ------
    SchemaError
        If *value* is not a list or tuple.
    """
    if not isinstance(value, (list, tuple)):
        raise SchemaError("att must be an array", field="att", value=value)
    return tuple(validate_capability(item) for item in value)


def normalize_value(value: object, path: str) -> Any:
    """Return a frozen copy of *value* restricted to representable types.

    Lists become tuples and mappings become read-only mappings, so values
    built in Python compare equal to values decoded from the wire and
    cannot be changed once they are part of a token.

    Raises
    ------
    SchemaError
        If *value* (or anything nested in it) cannot be encoded.
    """
    if value is None or isinstance(value, (bool, str, CID)):
        return value
    if isinstance(value, int):
        if not INT_MIN <= value <= INT_MAX:
            raise SchemaError(
                f"{path} has invalid value {describe(value)}", field=path, value=value
            )
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise SchemaError(
                f"{path} has invalid value {describe(value)}", field=path, value=value
            )
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, (list, tuple)):
        return tuple(
            normalize_value(item, f"{path}[{index}]") for index, item in enumerate(value)
        )
    if isinstance(value, Mapping):
        result: dict[str, Any] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise SchemaError(
                    f"{path} has invalid key {key!r}, keys must be strings",
                    field=path,
                    value=value,
                )
            result[key] = normalize_value(item, f"{path}.{key}")
        return MappingProxyType(result)
    raise SchemaError(f"{path} has invalid value {describe(value)}", field=path, value=value)


def thaw(value: Any) -> Any:
    """Return a plain ``dict`` / ``list`` copy of a value frozen by :func:`normalize_value`."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


def _is_valid_resource(resource: str) -> bool:
    if resource == "my:*":
        return True
    if resource.startswith("as:"):
        return bool(_AS_PATTERN.match(resource))
    return bool(_SCHEME_PATTERN.match(resource))


__all__ = [
    "Capability",
    "INT_MAX",
    "INT_MIN",
    "normalize_value",
    "thaw",
    "validate_capabilities",
    "validate_capability",
]

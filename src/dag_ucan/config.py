"""CodecSettings — issuance defaults for UCAN tokens.

Settings are passed explicitly to :func:`dag_ucan.issue` and the CLI; there
is no process-wide settings object. Sensible defaults are provided for all
parameters.
"""
from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

VERSION: str = "0.9.1"
VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")

DEFAULT_LIFETIME_SECONDS: int = 30

_HASHER_NAMES = ("sha2-256", "sha2-512")


class CodecSettings(BaseModel):
    """Configurable defaults used when issuing tokens.

    Parameters
    ----------
    version:
        UCAN spec version written into ``v`` / ``ucv``.
    default_lifetime:
        Seconds added to the current time when no expiration is given.
    hasher:
        Multihash name used to link tokens given as proofs to
        :func:`dag_ucan.issue` (``"sha2-256"`` or ``"sha2-512"``).
    """

    version: str = VERSION
    default_lifetime: int = Field(default=DEFAULT_LIFETIME_SECONDS, gt=0)
    hasher: str = "sha2-256"

    model_config = {"frozen": True}

    @field_validator("version")
    @classmethod
    def validate_version(cls, value: str) -> str:
        """Ensure the version is a dotted ``major.minor.patch`` triple."""
        if not VERSION_PATTERN.match(value):
            raise ValueError(f"version must look like '0.9.1', got {value!r}")
        return value

    @field_validator("hasher")
    @classmethod
    def validate_hasher(cls, value: str) -> str:
        """Ensure the hasher is one that ships with the package."""
        if value not in _HASHER_NAMES:
            raise ValueError(f"hasher must be one of {_HASHER_NAMES}, got {value!r}")
        return value

    @classmethod
    def from_file(cls, path: str | Path) -> "CodecSettings":
        """Load settings from a JSON file."""
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))


DEFAULT_SETTINGS = CodecSettings()

__all__ = [
    "DEFAULT_LIFETIME_SECONDS",
    "DEFAULT_SETTINGS",
    "VERSION",
    "VERSION_PATTERN",
    "CodecSettings",
]

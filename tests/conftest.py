"""Shared fixtures: deterministic Ed25519 principals and a token factory."""
from __future__ import annotations

import asyncio
from typing import Any

import pytest

import dag_ucan
from dag_ucan.keys import Ed25519Signer


def _signer(seed: int) -> Ed25519Signer:
    return Ed25519Signer.from_private_bytes(bytes([seed]) * 32)


@pytest.fixture()
def alice() -> Ed25519Signer:
    return _signer(1)


@pytest.fixture()
def bob() -> Ed25519Signer:
    return _signer(2)


@pytest.fixture()
def mallory() -> Ed25519Signer:
    return _signer(3)


@pytest.fixture()
def issue():  # type: ignore[no-untyped-def]
    """Return a synchronous wrapper around :func:`dag_ucan.issue`."""

    def _issue(**options: Any) -> dag_ucan.UCAN:
        return asyncio.run(dag_ucan.issue(**options))

    return _issue

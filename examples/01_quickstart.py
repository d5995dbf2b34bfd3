#!/usr/bin/env python3
"""Example: Quickstart

Demonstrates issuing a UCAN, moving it between its DAG-CBOR and JWT
representations, linking it as a proof, and verifying its signature.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install dag-ucan
"""
from __future__ import annotations

import asyncio

import dag_ucan
from dag_ucan.keys import Ed25519Signer, verifier_from_did


async def main() -> None:
    print(f"dag-ucan version: {dag_ucan.__version__}")

    # Step 1: Create two principals
    alice = Ed25519Signer.generate()
    bob = Ed25519Signer.generate()
    print(f"Alice: {alice.did()}")
    print(f"Bob:   {bob.did()}")

    # Step 2: Alice delegates a capability to Bob
    root = await dag_ucan.issue(
        issuer=alice,
        audience=bob,
        capabilities=[{"with": "mailto:alice@web.mail", "can": "msg/send"}],
        lifetime=3600,
    )
    print(f"Root token expires at {root.expiration}")

    # Step 3: Both representations carry the same claims
    token = dag_ucan.format(root)
    data = dag_ucan.encode(root)
    print(f"JWT: {token[:40]}... ({len(token)} chars)")
    print(f"DAG-CBOR: {len(data)} bytes")
    assert dag_ucan.parse(token) == dag_ucan.decode(data)

    # Step 4: Bob re-delegates, citing the root token as proof
    leaf = await dag_ucan.issue(
        issuer=bob,
        audience=alice,
        capabilities=[{"with": "mailto:alice@web.mail", "can": "msg/send"}],
        proofs=[root],
    )
    print(f"Proof link: {leaf.proofs[0]}")

    # Step 5: Verify each signature against the key embedded in the issuer DID
    for ucan in (root, leaf):
        valid = await dag_ucan.verify_signature(ucan, verifier_from_did(ucan.issuer))
        print(f"{ucan.issuer.did()[:24]}... signature valid: {valid}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    asyncio.run(main())

"""CLI entry point for dag-ucan.

Invoked as::

    dag-ucan [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m dag_ucan.cli.main

Commands
--------
version   Show version information
keygen    Generate an Ed25519 did:key
issue     Issue a signed token
inspect   Show the claims of a token
verify    Check the time bounds and signature of a token
link      Print the CID of a token
"""
from __future__ import annotations

import asyncio
import base64
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

console = Console()

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="dag-ucan")
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Logging level.",
)
def cli(log_level: str) -> None:
    """Issue, inspect and verify UCAN authorization tokens"""
    logging.basicConfig(level=getattr(logging, log_level.upper()))


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from dag_ucan import VERSION, __version__

    console.print(f"[bold]dag-ucan[/bold] v{__version__} (UCAN spec {VERSION})")


# ------------------------------------------------------------------
# keygen
# ------------------------------------------------------------------


@cli.command(name="keygen")
def keygen_command() -> None:
    """Generate an Ed25519 keypair and print its did:key."""
    from dag_ucan.keys import Ed25519Signer

    signer = Ed25519Signer.generate()
    console.print(f"DID:         {signer.did()}")
    console.print(f"Private key: {signer.private_bytes().hex()}")


# ------------------------------------------------------------------
# issue
# ------------------------------------------------------------------


@cli.command(name="issue")
@click.option("--key", "-k", required=True, help="Issuer Ed25519 private key (hex).")
@click.option("--audience", "-a", required=True, help="Audience DID.")
@click.option(
    "--capability",
    "-c",
    multiple=True,
    help="Capability as WITH=CAN (repeatable, e.g. -c mailto:*=msg/send).",
)
@click.option("--expiration", type=int, default=None, help="Expiry (seconds since epoch).")
@click.option("--no-expiration", is_flag=True, default=False, help="Issue a token that never expires.")
@click.option("--not-before", type=int, default=None, help="Not-before (seconds since epoch).")
@click.option("--nonce", default=None, help="Optional nonce.")
@click.option("--proof", "-p", multiple=True, help="Proof CID or inline JWT (repeatable).")
@click.option("--cbor", "as_cbor", is_flag=True, default=False, help="Print base64 DAG-CBOR instead of JWT.")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True),
    default=None,
    help="Path to a JSON CodecSettings file.",
)
def issue_command(
    key: str,
    audience: str,
    capability: tuple[str, ...],
    expiration: int | None,
    no_expiration: bool,
    not_before: int | None,
    nonce: str | None,
    proof: tuple[str, ...],
    as_cbor: bool,
    config_file: str | None,
) -> None:
    """Issue a signed token to AUDIENCE."""
    import math

    import dag_ucan
    from dag_ucan.config import CodecSettings
    from dag_ucan.keys import Ed25519Signer

    try:
        signer = Ed25519Signer.from_private_bytes(bytes.fromhex(key))
    except ValueError as exc:
        console.print(f"[red]Error:[/red] --key is not a valid Ed25519 private key: {exc}")
        sys.exit(1)

    capabilities = []
    for item in capability:
        resource, separator, ability = item.rpartition("=")
        if not separator:
            console.print(f"[red]Error:[/red] capability {item!r} must look like WITH=CAN")
            sys.exit(1)
        capabilities.append({"with": resource, "can": ability})

    settings = CodecSettings.from_file(config_file) if config_file else None
    options: dict[str, object] = {}
    if no_expiration:
        options["expiration"] = math.inf
    elif expiration is not None:
        options["expiration"] = expiration

    try:
        ucan = asyncio.run(
            dag_ucan.issue(
                issuer=signer,
                audience=dag_ucan.did.parse(audience),
                capabilities=capabilities,
                not_before=not_before,
                nonce=nonce,
                proofs=list(proof),
                settings=settings,
                **options,
            )
        )
    except dag_ucan.UCANError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    if as_cbor:
        click.echo(base64.b64encode(dag_ucan.encode(ucan)).decode("ascii"))
    else:
        click.echo(dag_ucan.format(ucan))


# ------------------------------------------------------------------
# inspect
# ------------------------------------------------------------------


@cli.command(name="inspect")
@click.argument("token")
def inspect_command(token: str) -> None:
    """Show the claims of TOKEN (JWT text, base64 DAG-CBOR, or @file)."""
    import dag_ucan
    from dag_ucan.capability import thaw

    ucan = _load_token(token)

    table = Table(title="UCAN", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Representation", "JWT" if ucan.is_text_native else "DAG-CBOR")
    table.add_row("Version", ucan.version)
    table.add_row("Issuer", ucan.issuer.did())
    table.add_row("Audience", ucan.audience.did())
    table.add_row("Expiration", "never" if ucan.exp is dag_ucan.UNBOUNDED else str(ucan.exp))
    table.add_row("Not before", "-" if ucan.nbf is None else str(ucan.nbf))
    table.add_row("Nonce", ucan.nonce or "-")
    table.add_row("Algorithm", ucan.signature.algorithm)
    for index, cap in enumerate(ucan.capabilities):
        table.add_row(f"att[{index}]", f"{cap.can} on {cap.with_}")
    for index, fact in enumerate(ucan.facts):
        table.add_row(f"fct[{index}]", repr(thaw(fact)))
    for index, link in enumerate(ucan.proofs):
        table.add_row(f"prf[{index}]", str(link))
    console.print(table)


# ------------------------------------------------------------------
# verify
# ------------------------------------------------------------------


@cli.command(name="verify")
@click.argument("token")
def verify_command(token: str) -> None:
    """Check the time bounds and signature of TOKEN against its issuer."""
    import dag_ucan
    from dag_ucan.keys import verifier_from_did

    ucan = _load_token(token)
    issues: list[str] = []
    passed: list[str] = []

    if dag_ucan.is_expired(ucan):
        issues.append(f"Token expired at {ucan.exp}.")
    else:
        passed.append("Token has not expired.")
    if dag_ucan.is_too_early(ucan):
        issues.append(f"Token is not valid before {ucan.nbf}.")
    else:
        passed.append("Token is within its not-before bound.")

    try:
        verifier = verifier_from_did(ucan.issuer)
    except dag_ucan.DIDError as exc:
        issues.append(f"Cannot resolve issuer key: {exc}")
    else:
        if asyncio.run(dag_ucan.verify_signature(ucan, verifier)):
            passed.append("Signature is valid.")
        else:
            issues.append("Signature verification failed.")

    for message in passed:
        console.print(f"  [green]PASS[/green] {message}")
    for message in issues:
        console.print(f"  [red]FAIL[/red] {message}")
    if issues:
        sys.exit(1)


# ------------------------------------------------------------------
# link
# ------------------------------------------------------------------


@cli.command(name="link")
@click.argument("token")
@click.option("--hasher", default="sha2-256", help="Multihash used for DAG-CBOR tokens.")
def link_command(token: str, hasher: str) -> None:
    """Print the CID of TOKEN."""
    import dag_ucan
    from dag_ucan.link import get_hasher

    ucan = _load_token(token)
    try:
        selected = get_hasher(hasher)
    except KeyError as exc:
        console.print(f"[red]Error:[/red] {exc.args[0]}")
        sys.exit(1)
    click.echo(str(asyncio.run(dag_ucan.link(ucan, selected))))


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _load_token(token: str):  # type: ignore[no-untyped-def]
    """Read a token given as JWT text, base64 DAG-CBOR, or ``@path``."""
    import dag_ucan

    if token.startswith("@"):
        token = Path(token[1:]).read_text(encoding="utf-8").strip()
    try:
        if token.count(".") == 2:
            return dag_ucan.parse(token)
        return dag_ucan.decode(base64.b64decode(token, validate=True))
    except (dag_ucan.UCANError, ValueError) as exc:
        console.print(f"[red]Error:[/red] could not read token: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    cli()

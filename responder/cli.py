"""Click CLI for signing test payloads and checking the audit log."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from responder.audit.logger import validate_audit_chain
from responder.webhook.signature import compute_signature, verify_signature


@click.group()
def cli() -> None:
    """WhatsApp responder utilities."""


@cli.command()
@click.argument("payload", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--secret", envvar="APP_SECRET", required=True, help="Meta app secret.")
def sign(payload: Path, secret: str) -> None:
    """Print the X-Hub-Signature-256 header value for a payload file."""
    click.echo(compute_signature(payload.read_bytes(), secret.encode()))


@cli.command()
@click.argument("payload", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--signature", required=True, help="Header value, e.g. sha256=<hex>.")
@click.option("--secret", envvar="APP_SECRET", required=True, help="Meta app secret.")
def verify(payload: Path, signature: str, secret: str) -> None:
    """Check a signature against a payload file (exit 1 if invalid)."""
    if verify_signature(payload.read_bytes(), signature, secret.encode()):
        click.echo("valid")
        return
    click.echo("invalid", err=True)
    sys.exit(1)


@cli.command("audit-verify")
@click.argument("log_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def audit_verify(log_path: Path) -> None:
    """Validate the hash chain of an audit log."""
    result = validate_audit_chain(log_path)
    if result.valid:
        click.echo("Audit chain intact")
        return
    click.echo(f"Audit chain broken at line {result.broken_at_line}", err=True)
    sys.exit(1)

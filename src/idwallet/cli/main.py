# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""
idwallet CLI

Commands:
- enroll: Enroll a principal with a CA and store it in a wallet
- import-msp: Store an identity from a Fabric MSP directory in a wallet
- list: List the identities held in a wallet
"""

import json
import logging
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.logging import RichHandler
from rich.table import Table

from .. import __version__
from ..ca.client import EnrollmentClient
from ..ca.endpoint import load_connection_profile
from ..exceptions import IdWalletError
from ..identity.msp import import_msp_identity
from ..observability.metrics import EnrollmentMetrics
from ..wallet.filesystem_provider import FileSystemWallet
from ..workflow import EnrollmentState, EnrollmentWorkflow

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

EXIT_FAILED = 1
EXIT_CONFIG = 2


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=err_console, show_path=False)
    root = logging.getLogger("idwallet")
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _fail(principal: str, error: IdWalletError, exit_code: int = EXIT_FAILED) -> None:
    click.echo(f'Failed to enroll "{principal}": {error.kind}: {error}', err=True)
    raise SystemExit(exit_code)


@click.group()
@click.version_option(__version__, prog_name="idwallet")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def app(verbose: bool):
    """idwallet - enroll identities with a Fabric CA and keep them in a wallet."""
    _configure_logging(verbose)


@app.command()
@click.argument("principal")
@click.option(
    "--profile", "profile_path",
    required=True,
    type=click.Path(dir_okay=False),
    help="Connection profile (YAML or JSON).",
)
@click.option("--ca", "ca_name", required=True, help="Certificate authority entry in the profile.")
@click.option(
    "--wallet", "wallet_dir",
    required=True,
    type=click.Path(file_okay=False),
    help="Wallet directory.",
)
@click.option(
    "--secret",
    envvar="IDWALLET_ENROLLMENT_SECRET",
    prompt="Enrollment secret",
    hide_input=True,
    help="Enrollment secret (or IDWALLET_ENROLLMENT_SECRET).",
)
@click.option("--msp-id", default=None, help="MSP id (default: the CA's organization).")
@click.option("--timeout", type=float, default=10.0, show_default=True, help="CA request timeout in seconds.")
@click.option("--enrollment-profile", default=None, help="CA signing profile, e.g. tls.")
@click.option("--attr", "attributes", multiple=True, help="Certificate attribute to request (repeatable).")
@click.option(
    "--metrics-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write Prometheus metrics to this file.",
)
def enroll(
    principal: str,
    profile_path: str,
    ca_name: str,
    wallet_dir: str,
    secret: str,
    msp_id: Optional[str],
    timeout: float,
    enrollment_profile: Optional[str],
    attributes: tuple,
    metrics_file: Optional[str],
):
    """Enroll PRINCIPAL with a CA and store the identity in a wallet.

    Does nothing if the wallet already holds PRINCIPAL.
    """
    try:
        profile = load_connection_profile(profile_path)
        endpoint = profile.ca_endpoint(ca_name, timeout_seconds=timeout)
        membership_id = msp_id or profile.msp_id_for_ca(ca_name)
    except IdWalletError as exc:
        _fail(principal, exc, EXIT_CONFIG)

    metrics = EnrollmentMetrics()
    workflow = EnrollmentWorkflow(
        wallet=FileSystemWallet(wallet_dir),
        client=EnrollmentClient(),
        endpoint=endpoint,
        membership_id=membership_id,
        metrics=metrics,
    )
    logger.debug("Wallet path: %s", wallet_dir)

    try:
        outcome = workflow.run(
            principal,
            secret,
            profile=enrollment_profile,
            attributes=list(attributes) or None,
        )
    except IdWalletError as exc:
        _fail(principal, exc, EXIT_CONFIG)
    finally:
        if metrics_file:
            metrics.write_textfile(metrics_file)

    if outcome.state == EnrollmentState.ALREADY_ENROLLED:
        console.print(f'An identity for "{escape(principal)}" already exists in the wallet')
    elif outcome.state == EnrollmentState.DONE:
        console.print(
            f'[green]Successfully enrolled "{escape(principal)}" and imported it into the wallet[/green]'
        )
    else:
        _fail(principal, outcome.error)


@app.command("import-msp")
@click.argument("principal")
@click.option(
    "--msp-dir",
    required=True,
    type=click.Path(exists=True, file_okay=False),
    help="MSP directory with signcerts/ and keystore/.",
)
@click.option("--msp-id", required=True, help="MSP id of the identity.")
@click.option(
    "--wallet", "wallet_dir",
    required=True,
    type=click.Path(file_okay=False),
    help="Wallet directory.",
)
def import_msp(principal: str, msp_dir: str, msp_id: str, wallet_dir: str):
    """Store the identity in an MSP directory under PRINCIPAL."""
    try:
        state = import_msp_identity(FileSystemWallet(wallet_dir), principal, msp_dir, msp_id)
    except IdWalletError as exc:
        click.echo(f'Failed to import "{principal}": {exc.kind}: {exc}', err=True)
        raise SystemExit(EXIT_FAILED)

    if state == EnrollmentState.ALREADY_ENROLLED:
        console.print(f'An identity for "{escape(principal)}" already exists in the wallet')
    else:
        console.print(f'[green]Imported "{escape(principal)}" into the wallet[/green]')


@app.command("list")
@click.option(
    "--wallet", "wallet_dir",
    required=True,
    type=click.Path(file_okay=False),
    help="Wallet directory.",
)
@click.option("--json", "json_flag", is_flag=True, help="Output as JSON.")
def list_identities(wallet_dir: str, json_flag: bool):
    """List the identities held in a wallet."""
    wallet = FileSystemWallet(wallet_dir)
    rows = []
    try:
        for label in wallet.list():
            record = wallet.get(label)
            try:
                cert = record.load_certificate()
                subject = cert.subject.rfc4514_string()
                expires = cert.not_valid_after_utc.strftime("%Y-%m-%d %H:%M:%S")
            except ValueError:
                subject, expires = "unreadable", "N/A"
            rows.append({
                "label": label,
                "msp_id": record.membership_id,
                "type": record.kind,
                "subject": subject,
                "expires": expires,
            })
    except IdWalletError as exc:
        click.echo(f"Error: {exc.kind}: {exc}", err=True)
        raise SystemExit(EXIT_FAILED)

    if json_flag:
        click.echo(json.dumps(rows, indent=2))
        return

    table = Table(box=box.ROUNDED)
    table.add_column("Label", style="cyan", no_wrap=True)
    table.add_column("MSP ID")
    table.add_column("Type")
    table.add_column("Subject")
    table.add_column("Expires", style="dim")
    for row in rows:
        table.add_row(
            escape(row["label"]), row["msp_id"], row["type"], escape(row["subject"]), row["expires"]
        )

    console.print(table)
    console.print(f"\n  Total identities: {len(rows)}\n")


def main():
    """Entry point for the ``idwallet`` console script."""
    app()


if __name__ == "__main__":
    main()

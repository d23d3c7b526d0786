"""CLI commands for deploying personal VPN hosts.

Implements the 'dovpn deploy' command group for creating, inspecting and
tearing down VPN deployments.
"""

from __future__ import annotations

import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

import click

from dovpn.cli.progress import DeploymentProgress
from dovpn.config.defaults import ENV_VAR_MAP
from dovpn.config.loader import load_settings, resolve_config_dir
from dovpn.deploy.orchestrator import Deployment, create
from dovpn.deploy.provisioners import create_provisioner
from dovpn.deploy.state import (
    get_deployment_record,
    get_state_path,
    list_deployment_records,
    update_deployment_record,
)
from dovpn.lib.errors import ConfigError, DeploymentError
from dovpn.lib.logging_config import get_logger, setup_logging
from dovpn.models.deployment import DeploymentSnapshot, DeploymentSummary
from dovpn.models.deployment_state import DeploymentRecord

logger = get_logger(__name__)


@contextmanager
def handle_deployment_errors() -> Generator[None, None, None]:
    """Context manager for consistent error handling in deployment commands.

    Exit codes:
        2: Configuration error
        3: Deployment/execution error
    """
    try:
        yield
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        click.secho("Error: Configuration error", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except DeploymentError as e:
        logger.error(f"Deployment error: {e}")
        click.secho(f"Error: {e.operation} failed", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(3)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)


@click.group(name="deploy", invoke_without_command=True)
@click.pass_context
def deploy(ctx: click.Context) -> None:
    """Deploy personal IKEv2 VPN hosts on DigitalOcean.

    Subcommands:

        run     Create a VPN host and download its client profiles
        status  List recorded deployments
        destroy Delete a deployment's machine and firewall

    Example:

        dovpn deploy run --region nyc3

        dovpn deploy run --region sfo2 --auto-configure
    """
    ctx.ensure_object(dict)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@deploy.command()
@click.option("--region", type=str, default=None, help="Region slug (e.g. nyc3)")
@click.option(
    "--token",
    type=str,
    default=None,
    help=f"DigitalOcean API token (default: ${ENV_VAR_MAP['token']})",
)
@click.option(
    "--auto-configure/--no-auto-configure",
    default=None,
    help="Add the VPN profile to this Mac once deployed",
)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for certificates and profiles (default: ~/.dovpn)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Only print the VPN address")
def run(
    region: str | None,
    token: str | None,
    auto_configure: bool | None,
    config_dir: Path | None,
    verbose: bool,
    quiet: bool,
) -> None:
    """Create a VPN host and download its client profiles."""
    setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        settings = load_settings(
            cli_values={
                "region": region,
                "token": token,
                "auto_configure": auto_configure,
                "config_dir": config_dir,
            }
        )
        state_path = get_state_path(settings.config_dir)
        progress = None if quiet else DeploymentProgress()

        deployment: Deployment | None = None

        def on_status(snapshot: DeploymentSnapshot) -> None:
            if deployment is not None:
                _record(state_path, deployment)
            if progress is not None:
                progress(snapshot)

        deployment = create(
            settings.token,
            settings.region,
            settings.auto_configure,
            settings=settings,
            on_status=on_status,
        )
        if not quiet:
            click.echo(f"Deploying {deployment.name} to {deployment.region}...")

        try:
            summary = deployment.run()
        finally:
            _record(state_path, deployment)

        if quiet:
            click.echo(summary.vpn_ip_address)
            sys.exit(0)

        _display_summary(summary)


@deploy.command()
@click.argument("name", required=False)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the deployment records (default: ~/.dovpn)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Only print names and statuses")
def status(name: str | None, config_dir: Path | None, verbose: bool, quiet: bool) -> None:
    """List recorded deployments, or show one by NAME."""
    if not quiet:
        setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        state_path = get_state_path(resolve_config_dir(config_dir))
        if name:
            record = get_deployment_record(state_path, name)
            if record is None:
                raise ConfigError(
                    field="deployment_state",
                    message=f"No deployment record found for '{name}'.",
                )
            records = [record]
        else:
            records = list_deployment_records(state_path)

        if quiet:
            for record in records:
                click.echo(f"{record.name}\t{record.status}")
            sys.exit(0)

        if not records:
            click.echo("No deployments recorded. Run `dovpn deploy run` first.")
            return

        click.echo()
        click.secho("Deployments", bold=True)
        for record in records:
            click.echo(f"  {record.name}")
            click.echo(f"    Region:    {record.region}")
            click.echo(f"    Status:    {record.status}")
            if record.ip_address:
                click.echo(f"    Address:   {record.ip_address}")
            if record.error:
                click.secho(f"    Error:     {record.error}", fg="red")
            if record.updated_at:
                click.echo(f"    Updated:   {record.updated_at.isoformat()}")
        click.echo()


@deploy.command()
@click.argument("name")
@click.option(
    "--token",
    type=str,
    default=None,
    help=f"DigitalOcean API token (default: ${ENV_VAR_MAP['token']})",
)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the deployment records (default: ~/.dovpn)",
)
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Suppress progress output")
def destroy(
    name: str,
    token: str | None,
    config_dir: Path | None,
    force: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Delete the machine and firewall recorded for deployment NAME."""
    if not quiet:
        setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        resolved_dir = resolve_config_dir(config_dir)
        state_path = get_state_path(resolved_dir)
        record = get_deployment_record(state_path, name)
        if record is None:
            raise ConfigError(
                field="deployment_state",
                message=f"No deployment record found for '{name}'.",
            )

        if not force:
            confirm = click.confirm(f"Destroy deployment '{name}'?", default=False)
            if not confirm:
                click.secho("Destroy aborted.", fg="yellow")
                sys.exit(0)

        settings = load_settings(
            cli_values={
                "token": token,
                "region": record.region,
                "config_dir": resolved_dir,
            }
        )
        provisioner = create_provisioner(settings)
        # Each id is cleared as soon as its resource is gone
        if record.firewall_id:
            provisioner.destroy_firewall(record.firewall_id)
            record = update_deployment_record(
                state_path, record.model_copy(update={"firewall_id": None})
            )
        if record.machine_id:
            provisioner.destroy_machine(record.machine_id)
            record = update_deployment_record(
                state_path, record.model_copy(update={"machine_id": None})
            )

        record = update_deployment_record(
            state_path, record.model_copy(update={"status": "deleted"})
        )

        if quiet:
            click.echo("deleted")
            sys.exit(0)

        click.echo()
        click.secho("Deployment Destroyed", fg="green", bold=True)
        click.echo(f"  Name:      {record.name}")
        click.echo(f"  Status:    {record.status}")
        click.echo()


def _record(state_path: Path, deployment: Deployment) -> None:
    """Persist the deployment's current progress to the state file."""
    update_deployment_record(
        state_path,
        DeploymentRecord(
            name=deployment.name,
            region=deployment.region,
            machine_id=deployment.machine_id or None,
            firewall_id=deployment.firewall_id or None,
            ip_address=deployment.vpn_ip_address or None,
            status=deployment.status.value,
            error=deployment.error or None,
        ),
    )


def _display_summary(summary: DeploymentSummary) -> None:
    click.echo()
    click.secho("=" * 60, fg="green")
    click.secho("  VPN Deployed!", fg="green", bold=True)
    click.secho("=" * 60, fg="green")
    click.echo()
    click.echo(f"  Name:               {summary.name}")
    click.echo(f"  VPN address:        {summary.vpn_ip_address}")
    click.echo(f"  Password:           {summary.vpn_password}")
    click.echo()
    click.secho("  Files:", bold=True)
    click.echo(f"    Apple profile:      {summary.apple_config}")
    click.echo(f"    Android profile:    {summary.android_config}")
    click.echo(f"    Client certificate: {summary.private_key}")
    click.echo(f"    CA certificate:     {summary.ca_cert}")
    click.echo(f"    Server certificate: {summary.server_cert}")
    if summary.final_public_ip:
        click.echo()
        click.echo(
            f"  Public IP changed:  {summary.initial_public_ip or 'unknown'}"
            f" -> {summary.final_public_ip}"
        )
    click.echo()

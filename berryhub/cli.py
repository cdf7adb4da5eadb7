"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import socket
from pathlib import Path

import typer

from berryhub.core.config import load_config
from berryhub.core.errors import BerryhubError
from berryhub.core.service import HubService

app = typer.Typer(help="Pair with and control devices through pluggable driver packages")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="Path to config.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config


def _build_service(ctx: typer.Context) -> HubService:
    service = HubService(load_config(ctx.obj))
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _fail(exc: BerryhubError) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


@app.command("drivers")
def list_drivers(ctx: typer.Context) -> None:
    """List loaded drivers."""
    try:
        service = _build_service(ctx)
        drivers = service.list_drivers()
        if not drivers:
            typer.echo("No drivers loaded")
            raise typer.Exit(code=1)

        for driver in drivers:
            typer.echo(f"{driver.driver_id}: {driver.display_name} [{driver.authentication_method}]")
            if driver.description:
                typer.echo(f"  {driver.description}")
            if driver.provider or driver.version:
                typer.echo(f"  provider={driver.provider or '-'} version={driver.version or '-'}")
    except BerryhubError as exc:
        raise _fail(exc) from None


@app.command("devices")
def list_devices(ctx: typer.Context, driver_id: str) -> None:
    """List devices a driver can pair with."""
    try:
        service = _build_service(ctx)
        devices = service.list_devices(driver_id)
        if not devices:
            typer.echo("No devices found")
            return

        for device in devices:
            typer.echo(f"{device.device_id} {device.name}")
    except BerryhubError as exc:
        raise _fail(exc) from None


@app.command("pair")
def pair(
    ctx: typer.Context,
    driver_id: str,
    device_id: str,
    remote_name: str = typer.Option(socket.gethostname(), "--remote-name", help="Name shown on the device"),
    pin: str | None = typer.Option(None, "--pin", help="PIN to use instead of prompting"),
) -> None:
    """Pair with a device, prompting for the PIN when the handshake needs one."""
    try:
        service = _build_service(ctx)
        session = service.start_pairing(driver_id, device_id, remote_name)
        if pin is None:
            if session.device_provides_pin:
                pin = typer.prompt("Enter the PIN shown on the device")
            else:
                pin = typer.prompt("Choose a PIN and enter it on the device")

        paired = service.finalize_pairing(
            driver_id,
            device_id,
            session.pairing_request_id,
            pin,
            session.device_provides_pin,
        )
        if not paired:
            typer.echo(f"Pairing with {device_id} failed", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Paired {device_id}")
    except BerryhubError as exc:
        raise _fail(exc) from None


@app.command("paired")
def list_paired(ctx: typer.Context) -> None:
    """List paired devices."""
    try:
        service = _build_service(ctx)
        devices = service.list_paired_devices()
        if not devices:
            typer.echo("No paired devices")
            return

        for device in devices:
            typer.echo(f"{device.id} {device.device_name} (driver={device.driver_id}, device={device.device_id})")
    except BerryhubError as exc:
        raise _fail(exc) from None


@app.command("unpair")
def unpair(ctx: typer.Context, pairing_id: str) -> None:
    """Forget a paired device."""
    try:
        service = _build_service(ctx)
        service.unpair(pairing_id)
        typer.echo(f"Unpaired {pairing_id}")
    except BerryhubError as exc:
        raise _fail(exc) from None


@app.command("commands")
def list_commands(ctx: typer.Context, pairing_id: str) -> None:
    """List commands of a paired device."""
    try:
        service = _build_service(ctx)
        commands = service.list_commands(pairing_id)
        if not commands:
            typer.echo("No commands available")
            return

        for command in commands:
            icon = f" [{command.icon}]" if command.icon else ""
            typer.echo(f"{command.command_id}: {command.name}{icon}")
    except BerryhubError as exc:
        raise _fail(exc) from None


@app.command("layout")
def show_layout(ctx: typer.Context, pairing_id: str) -> None:
    """Print the remote layout grid of a paired device."""
    try:
        service = _build_service(ctx)
        layout = service.remote_layout(pairing_id)
        typer.echo(f"Layout {layout.width}x{layout.height}")
        for row in layout.buttons:
            typer.echo(" ".join(f"{cell:>3}" for cell in row))
    except BerryhubError as exc:
        raise _fail(exc) from None


@app.command("exec")
def execute(ctx: typer.Context, pairing_id: str, command_id: int) -> None:
    """Execute a command on a paired device."""
    try:
        service = _build_service(ctx)
        service.execute_command(pairing_id, command_id)
        typer.echo(f"Executed command {command_id} on {pairing_id}")
    except BerryhubError as exc:
        raise _fail(exc) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()

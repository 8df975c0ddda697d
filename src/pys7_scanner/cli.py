#!/usr/bin/env python3
"""Command-line interface for pys7-scanner using Typer."""

import asyncio
import json
import logging
import signal
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .addresses import parse_ip_range
from .client import DEFAULT_TIMEOUT_MS, S7_PORT, get_plc_details
from .errors import InvalidRangeError
from .probe import is_port_open
from .scanner import DEFAULT_PARALLELISM, discover_devices
from .types import Address, DeviceType, DiscoveredDevice, PlcDetails

app = typer.Typer(
    name="pys7scan",
    help="Scan IP ranges for Siemens S7 devices, classify them as PLC or HMI and read PLC identity.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Shared options and helpers
# ============================================================================

IpRangeOption = Annotated[
    str,
    typer.Option(
        "--ip-range",
        "-r",
        help="Targets: address, 'start-end', CIDR, or a comma-separated mix (e.g. 192.168.1.1-192.168.1.254)",
        envvar="PYS7SCAN_IP_RANGE",
    ),
]
OutputFileOption = Annotated[
    Optional[Path],
    typer.Option("--output-file", "-o", help="Save the results as a JSON report", envvar="PYS7SCAN_OUTPUT_FILE"),
]
TimeoutOption = Annotated[
    int,
    typer.Option("--timeout", "-t", help="Timeout in milliseconds for each connection attempt", envvar="PYS7SCAN_TIMEOUT"),
]
ParallelismOption = Annotated[
    int,
    typer.Option("--parallelism", "-P", help="Number of hosts scanned concurrently", envvar="PYS7SCAN_PARALLELISM"),
]
PortOption = Annotated[
    int,
    typer.Option("--port", "-p", help="S7 (ISO-on-TCP) port", envvar="PYS7SCAN_PORT"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]

# (attribute, label) in display order
DETAIL_FIELDS: list[tuple[str, str]] = [
    ("module", "Module"),
    ("basic_hardware", "Basic hardware"),
    ("version", "Version"),
    ("system_name", "System name"),
    ("module_type", "Module type"),
    ("serial_number", "Serial number"),
    ("plant_identification", "Plant identification"),
    ("copyright", "Copyright"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def validate_timing(timeout: int, parallelism: int = 1) -> None:
    """Exit with code 2 when timeout or parallelism are out of range."""
    if timeout <= 0:
        typer.echo(f"Error: Timeout must be positive, got {timeout}", err=True)
        raise typer.Exit(2)
    if parallelism < 1:
        typer.echo(f"Error: Parallelism must be at least 1, got {parallelism}", err=True)
        raise typer.Exit(2)


def format_device(device: DiscoveredDevice) -> str:
    """One console line per device; PLCs include module, version, serial number and system name."""
    line = f"  - {str(device.address):<15} | Type: {device.device_type.value}"
    details = device.details
    if details is None:
        return line
    if details.is_placeholder:
        return f"{line} | {details.module}"
    summary = (
        ("Module", details.module),
        ("Version", details.version),
        ("Serial number", details.serial_number),
        ("System name", details.system_name),
    )
    parts = [f"{label}: {value}" for label, value in summary if value]
    return " | ".join([line, *parts]) if parts else line


def format_details(details: PlcDetails) -> list[str]:
    """Aligned label/value lines for the details command."""
    width = max(len(label) for _attr, label in DETAIL_FIELDS) + 2
    return [f"{label + ':':<{width}}{getattr(details, attr) or ''}" for attr, label in DETAIL_FIELDS]


def build_report(
    devices: list[DiscoveredDevice],
    duration_s: float,
    timestamp: datetime | None = None,
) -> dict[str, Any]:
    """Build the JSON report: scan summary plus one entry per device."""
    ts = timestamp or datetime.now(timezone.utc)
    return {
        "scan_summary": {
            "timestamp": ts.isoformat(),
            "duration_seconds": round(duration_s, 2),
            "device_count": len(devices),
            "plc_count": sum(1 for d in devices if d.device_type == DeviceType.PLC),
            "hmi_count": sum(1 for d in devices if d.device_type == DeviceType.HMI),
        },
        "discovered_devices": [d.to_dict() for d in devices],
    }


def write_report(report: dict[str, Any], path: Path) -> None:
    """Write the JSON report to ``path``."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2)


async def run_scan(
    addresses: Iterable[Address],
    timeout: int,
    parallelism: int,
) -> tuple[list[DiscoveredDevice], bool]:
    """
    Run discover_devices() with Ctrl+C wired to the scan's cancellation event.

    Returns (devices, cancelled); devices found before a Ctrl+C are kept.
    """
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
        handler_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        # Windows event loops and non-main threads cannot install signal handlers.
        handler_installed = False
    try:
        devices = await discover_devices(addresses, timeout, parallelism, cancel)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)
    return devices, cancel.is_set()


async def query_details(host: str, port: int, timeout: int) -> tuple[bool, PlcDetails | None]:
    """Return (reachable, details) for a single host."""
    if not await is_port_open(host, port, timeout):
        return False, None
    return True, await get_plc_details(host, port, timeout)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def scan(
    ip_range: IpRangeOption,
    output_file: OutputFileOption = None,
    timeout: TimeoutOption = DEFAULT_TIMEOUT_MS,
    parallelism: ParallelismOption = DEFAULT_PARALLELISM,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Scan an IP range for Siemens devices and classify them as PLC or HMI.

    Hosts answering on port 102 are candidates; an open HMI port (2308, 50523,
    1033, 5001, 5002, 5800) makes them HMIs, otherwise they are PLCs and their
    identity is read over S7comm. PLCs that refuse the identity query are
    reported as "Potential S7-1200/-1500".

    Press Ctrl+C to stop early; devices found so far are still reported.
    """
    setup_logging(verbose)
    validate_timing(timeout, parallelism)

    try:
        addresses = parse_ip_range(ip_range)
    except InvalidRangeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)

    if not json_output:
        typer.echo("Starting Siemens Device Scanner...")
        typer.echo(f"IP Range: {ip_range}")
        typer.echo(f"Timeout: {timeout}ms | Parallelism: {parallelism}")
        if output_file is not None:
            typer.echo(f"Output File: {output_file.resolve()}")
        typer.echo("---------------------------------------------")

    started = time.monotonic()
    try:
        devices, cancelled = asyncio.run(run_scan(addresses, timeout, parallelism))
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)
    duration = time.monotonic() - started

    report = build_report(devices, duration)
    if json_output:
        typer.echo(json.dumps(report, indent=2))
    else:
        typer.echo("---------------------------------------------")
        typer.echo(f"Scan complete in {duration:.2f} seconds.")
        if not devices:
            typer.echo("No devices found.")
        else:
            typer.echo(f"Found {len(devices)} device(s):")
            for device in devices:
                typer.echo(format_device(device))

    if cancelled:
        typer.echo("Scan was cancelled by the user; results are partial.", err=True)

    if output_file is not None:
        try:
            write_report(report, output_file)
        except OSError as e:
            typer.echo(f"Error: Failed to write to output file: {e}", err=True)
            raise typer.Exit(4)
        if not json_output:
            typer.echo(f"Results successfully written to {output_file}")


@app.command()
def details(
    host: Annotated[str, typer.Argument(help="PLC hostname or IP address")],
    port: PortOption = S7_PORT,
    timeout: TimeoutOption = DEFAULT_TIMEOUT_MS,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Read the identity of a single PLC (module, firmware, serial number, system name).

    Does not check HMI ports; exits with code 3 when the port does not answer.
    """
    setup_logging(verbose)
    validate_timing(timeout)

    try:
        reachable, plc_details = asyncio.run(query_details(host, port, timeout))
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)

    if not reachable:
        typer.echo(f"Error: Connection error: {host}:{port} is not reachable", err=True)
        raise typer.Exit(3)

    if plc_details is None:
        plc_details = PlcDetails.placeholder()

    if json_output:
        typer.echo(json.dumps({"host": host, "port": port, "details": plc_details.to_dict()}, indent=2))
        return
    typer.echo(f"Host: {host}:{port}")
    if plc_details.is_placeholder:
        typer.echo(f"No identity data returned ({plc_details.module})")
        return
    for line in format_details(plc_details):
        typer.echo(line)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pys7-scanner {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """pys7scan - Siemens S7 PLC/HMI discovery over ISO-on-TCP."""
    pass


if __name__ == "__main__":
    app()

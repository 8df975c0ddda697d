"""Classify hosts on the S7 port as PLC or HMI and scan address sequences with bounded fan-out."""

import asyncio
import logging
from typing import Iterable, Sequence

from .addresses import sort_devices
from .client import DEFAULT_TIMEOUT_MS, S7_PORT, get_plc_details
from .errors import ScanCancelledError
from .probe import is_port_open
from .types import Address, Classification, ClassificationResult, DiscoveredDevice, PlcDetails

logger = logging.getLogger(__name__)

# Ports that indicate a WinCC / panel runtime when open next to port 102, in probe order.
HMI_PORTS: tuple[int, ...] = (2308, 50523, 1033, 5001, 5002, 5800)

DEFAULT_PARALLELISM = 100


def _check_cancelled(cancel: asyncio.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise ScanCancelledError("Scan cancelled")


async def classify_address(
    address: Address,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    cancel: asyncio.Event | None = None,
    *,
    s7_port: int = S7_PORT,
    hmi_ports: Sequence[int] = HMI_PORTS,
) -> ClassificationResult:
    """
    Run the probe / classify / identity pipeline for one address.

    - Port 102 closed: NOT_FOUND.
    - First open HMI port (in order): HMI, no identity query.
    - Otherwise a PLC: PLC with its details, or PLC_PLACEHOLDER when the
      identity query yields nothing.

    Raises ScanCancelledError if ``cancel`` fires before the pipeline finishes,
    so a half-tested host is never classified.
    """
    _check_cancelled(cancel)
    primary_open = await is_port_open(address, s7_port, timeout_ms, cancel)
    _check_cancelled(cancel)
    if not primary_open:
        return ClassificationResult(address, Classification.NOT_FOUND)

    logger.info("[CANDIDATE] Found device at %s. Checking device type...", address)

    for port in hmi_ports:
        port_open = await is_port_open(address, port, timeout_ms, cancel)
        _check_cancelled(cancel)
        if port_open:
            logger.info("[HMI DETECTED] Host %s has HMI port %d open.", address, port)
            return ClassificationResult(address, Classification.HMI, hmi_port=port)

    details = await get_plc_details(address, s7_port, timeout_ms, cancel)
    _check_cancelled(cancel)
    if details is None:
        logger.info("[PLC] Host %s did not answer the identity query; assuming S7-1200/-1500.", address)
        return ClassificationResult(address, Classification.PLC_PLACEHOLDER, details=PlcDetails.placeholder())

    logger.info("[PLC] Host %s identified as %s.", address, details.module or details.module_type or "unknown module")
    return ClassificationResult(address, Classification.PLC, details=details)


async def discover_devices(
    addresses: Iterable[Address],
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    parallelism: int = DEFAULT_PARALLELISM,
    cancel: asyncio.Event | None = None,
    *,
    s7_port: int = S7_PORT,
    hmi_ports: Sequence[int] = HMI_PORTS,
) -> list[DiscoveredDevice]:
    """
    Scan ``addresses`` with at most ``parallelism`` hosts in flight and return devices sorted by address.

    Addresses are consumed lazily by the workers. Setting ``cancel`` stops new
    addresses from being taken and aborts in-flight connection attempts; devices
    already found are still returned. A failure while handling one address is
    logged and does not stop the scan.
    """
    if timeout_ms <= 0:
        raise ValueError(f"timeout_ms must be > 0, got {timeout_ms}")
    if parallelism < 1:
        raise ValueError(f"parallelism must be >= 1, got {parallelism}")

    found: list[DiscoveredDevice] = []
    pending = iter(addresses)

    async def worker() -> None:
        for address in pending:
            if cancel is not None and cancel.is_set():
                return
            try:
                result = await classify_address(
                    address, timeout_ms, cancel, s7_port=s7_port, hmi_ports=hmi_ports
                )
            except ScanCancelledError:
                return
            except Exception:
                logger.warning("Unexpected error while scanning %s; skipping host", address, exc_info=True)
                continue
            device = result.to_device()
            if device is not None:
                found.append(device)

    await asyncio.gather(*(worker() for _ in range(parallelism)))

    if cancel is not None and cancel.is_set():
        logger.info("Scan cancelled; returning %d device(s) found so far", len(found))
    return sort_devices(found)


def scan(
    addresses: Iterable[Address],
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    parallelism: int = DEFAULT_PARALLELISM,
    *,
    s7_port: int = S7_PORT,
    hmi_ports: Sequence[int] = HMI_PORTS,
) -> list[DiscoveredDevice]:
    """Blocking wrapper around discover_devices() for scripts that do not run an event loop."""
    return asyncio.run(
        discover_devices(addresses, timeout_ms, parallelism, s7_port=s7_port, hmi_ports=hmi_ports)
    )

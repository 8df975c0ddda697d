"""Enumerate scan targets from range text and order results by address."""

import ipaddress
from typing import Iterable, Iterator

from .errors import InvalidRangeError
from .types import Address, DiscoveredDevice


def _parse_address(text: str, range_text: str) -> Address:
    try:
        return ipaddress.ip_address(text.strip())
    except ValueError:
        raise InvalidRangeError(range_text, f"Invalid IP address: {text.strip()!r}") from None


def _parse_segment(segment: str, range_text: str) -> Iterable[Address]:
    """Turn one comma-separated segment into a lazy iterable of addresses."""
    if "/" in segment:
        try:
            network = ipaddress.ip_network(segment, strict=False)
        except ValueError:
            raise InvalidRangeError(range_text, f"Invalid network: {segment!r}") from None
        if network.num_addresses == 1:
            return [network.network_address]
        return network.hosts()

    if "-" in segment:
        parts = segment.split("-")
        if len(parts) != 2:
            raise InvalidRangeError(range_text, "Invalid IP range format. Use 'startIP-endIP'.")
        start = _parse_address(parts[0], range_text)
        end = _parse_address(parts[1], range_text)
        if start.version != end.version:
            raise InvalidRangeError(range_text, "Start and end IP addresses must be of the same family.")
        if start > end:
            raise InvalidRangeError(range_text, "Start IP cannot be greater than end IP.")
        factory = type(start)
        return (factory(value) for value in range(int(start), int(end) + 1))

    return [_parse_address(segment, range_text)]


def parse_ip_range(range_text: str) -> Iterator[Address]:
    """
    Parse target text into the addresses to scan.

    - A single address: ``192.168.0.10`` or ``fe80::1``.
    - An inclusive range: ``192.168.0.1-192.168.0.254``.
    - A CIDR block (usable hosts): ``10.0.0.0/24``.
    - Any comma-separated mix of the above.

    The whole input is validated before anything is yielded; addresses
    are then produced lazily in input order, each at most once.

    Raises InvalidRangeError for empty or malformed input.
    """
    if range_text is None or not range_text.strip():
        raise InvalidRangeError(range_text or "", "IP range cannot be empty.")

    segments: list[Iterable[Address]] = []
    for raw in range_text.split(","):
        segment = raw.strip()
        if not segment:
            raise InvalidRangeError(range_text, "Empty entry in IP range list.")
        segments.append(_parse_segment(segment, range_text))

    return _enumerate(segments)


def _enumerate(segments: list[Iterable[Address]]) -> Iterator[Address]:
    if len(segments) == 1:
        yield from segments[0]
        return
    seen: set[Address] = set()
    for segment in segments:
        for address in segment:
            if address in seen:
                continue
            seen.add(address)
            yield address


def address_sort_key(address: Address) -> tuple[int, bytes]:
    """Order by packed length (IPv4 before IPv6), then big-endian byte value."""
    packed = address.packed
    return len(packed), packed


def sort_devices(devices: Iterable[DiscoveredDevice]) -> list[DiscoveredDevice]:
    """Return devices in deterministic address order, independent of completion order."""
    return sorted(devices, key=lambda device: address_sort_key(device.address))

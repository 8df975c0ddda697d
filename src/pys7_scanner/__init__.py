"""pys7-scanner: find Siemens S7 PLCs and HMIs on a network and read PLC identity over S7comm."""

__version__ = "0.1.0"

from .addresses import address_sort_key, parse_ip_range, sort_devices
from .client import S7IdentityClient, get_plc_details
from .errors import InvalidRangeError, PyS7ScannerError, ScanCancelledError
from .probe import is_port_open
from .scanner import HMI_PORTS, classify_address, discover_devices, scan
from .szl import build_plc_details, parse_first_response, parse_second_response
from .types import (
    PLACEHOLDER_MARKER,
    Classification,
    ClassificationResult,
    DeviceType,
    DiscoveredDevice,
    PlcDetails,
)

__all__ = [
    "__version__",
    "address_sort_key",
    "parse_ip_range",
    "sort_devices",
    "S7IdentityClient",
    "get_plc_details",
    "InvalidRangeError",
    "PyS7ScannerError",
    "ScanCancelledError",
    "is_port_open",
    "HMI_PORTS",
    "classify_address",
    "discover_devices",
    "scan",
    "build_plc_details",
    "parse_first_response",
    "parse_second_response",
    "PLACEHOLDER_MARKER",
    "Classification",
    "ClassificationResult",
    "DeviceType",
    "DiscoveredDevice",
    "PlcDetails",
]

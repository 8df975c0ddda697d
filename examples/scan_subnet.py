#!/usr/bin/env python3
"""Example: scan a subnet for Siemens PLCs/HMIs and print what was found."""

import sys

from pys7_scanner import DeviceType, parse_ip_range, scan
from pys7_scanner.errors import InvalidRangeError


def main() -> None:
    targets = "192.168.0.0/24"  # change to your network
    timeout_ms = 500
    parallelism = 64

    try:
        addresses = parse_ip_range(targets)
    except InvalidRangeError as e:
        print(f"Bad range: {e}", file=sys.stderr)
        sys.exit(1)

    devices = scan(addresses, timeout_ms, parallelism)
    for device in devices:
        if device.device_type == DeviceType.HMI:
            print(f"{device.address}: HMI")
        elif device.details.is_placeholder:
            print(f"{device.address}: PLC ({device.details.module})")
        else:
            print(f"{device.address}: PLC {device.details.module} v{device.details.version} SN {device.details.serial_number}")
    print(f"{len(devices)} device(s)")


if __name__ == "__main__":
    main()

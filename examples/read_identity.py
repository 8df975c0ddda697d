#!/usr/bin/env python3
"""Example: read identity lists from one PLC with S7IdentityClient; Ctrl+C cancels the query."""

import asyncio
import signal
import sys

from pys7_scanner import S7IdentityClient
from pys7_scanner.errors import ScanCancelledError


async def main() -> None:
    host = "192.168.0.10"  # change to your PLC IP
    cancel = asyncio.Event()
    asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel.set)

    try:
        async with S7IdentityClient(host, timeout_ms=1000, cancel=cancel) as plc:
            details = await plc.read_identity()
    except ScanCancelledError:
        print("\nStopped.")
        return
    except (OSError, asyncio.TimeoutError) as e:
        print(f"Connection error: {e}", file=sys.stderr)
        sys.exit(1)

    if details is None:
        print("PLC answered but returned no identity (likely S7-1200/-1500).")
        return
    for name, value in details.to_dict().items():
        print(f"{name:<22}{value or ''}")


if __name__ == "__main__":
    asyncio.run(main())

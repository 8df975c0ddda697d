"""S7IdentityClient: COTP connect, S7 setup and the two SZL identity queries over one TCP connection."""

import asyncio
import logging
from typing import Any

from .errors import ScanCancelledError
from .probe import wait_bounded
from .szl import (
    S7_PROTOCOL_ID,
    build_plc_details,
    parse_first_response,
    parse_second_response,
)
from .types import Address, PlcDetails

logger = logging.getLogger(__name__)

S7_PORT = 102
DEFAULT_TIMEOUT_MS = 500

_READ_BUFFER_SIZE = 4096

# TPKT + COTP connection request (CR), TSAP 0x0100 -> 0x0102, TPDU size 1024
COTP_CONNECT_REQUEST = bytes([
    0x03, 0x00, 0x00, 0x16, 0x11, 0xE0, 0x00, 0x00, 0x00, 0x14, 0x00,
    0xC1, 0x02, 0x01, 0x00, 0xC2, 0x02, 0x01, 0x02, 0xC0, 0x01, 0x0A,
])

# S7 job: setup communication, PDU length 480
S7_SETUP_REQUEST = bytes([
    0x03, 0x00, 0x00, 0x19, 0x02, 0xF0, 0x80, 0x32, 0x01, 0x00, 0x00, 0x00,
    0x00, 0x00, 0x08, 0x00, 0x00, 0xF0, 0x00, 0x00, 0x01, 0x00, 0x01, 0x01, 0xE0,
])

# S7 userdata: read SZL-ID 0x0011 (module identification), index 0x0001
SZL_MODULE_ID_REQUEST = bytes([
    0x03, 0x00, 0x00, 0x21, 0x02, 0xF0, 0x80, 0x32, 0x07, 0x00, 0x00, 0x00,
    0x00, 0x00, 0x08, 0x00, 0x08, 0x00, 0x01, 0x12, 0x04, 0x11, 0x44, 0x01,
    0x00, 0xFF, 0x09, 0x00, 0x04, 0x00, 0x11, 0x00, 0x01,
])

# S7 userdata: read SZL-ID 0x001C (component identification), index 0x0001
SZL_COMPONENT_ID_REQUEST = bytes([
    0x03, 0x00, 0x00, 0x21, 0x02, 0xF0, 0x80, 0x32, 0x07, 0x00, 0x00, 0x00,
    0x00, 0x00, 0x08, 0x00, 0x08, 0x00, 0x01, 0x12, 0x04, 0x11, 0x44, 0x01,
    0x00, 0xFF, 0x09, 0x00, 0x04, 0x00, 0x1C, 0x00, 0x01,
])

COTP_CONNECT_CONFIRM = 0xD0

COTP_RESPONSE_MIN_LENGTH = 22
SETUP_RESPONSE_MIN_LENGTH = 25
MODULE_RESPONSE_MIN_LENGTH = 125
COMPONENT_RESPONSE_MIN_LENGTH = 180


class S7IdentityClient:
    """
    Minimal S7 client that only asks a PLC who it is.

    Every write/read is bounded by ``timeout_ms`` and aborted when ``cancel`` is set.
    Network errors propagate from the methods; use get_plc_details() for the
    folded "details or None" behaviour.
    """

    def __init__(
        self,
        host: Address | str,
        port: int = S7_PORT,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        cancel: asyncio.Event | None = None,
    ) -> None:
        self._host = str(host)
        self._port = port
        self._timeout_ms = timeout_ms
        self._cancel = cancel
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    async def connect(self) -> None:
        """Open the TCP connection to the PLC."""
        if self._writer is None:
            self._reader, self._writer = await wait_bounded(
                asyncio.open_connection(self._host, self._port),
                self._timeout_ms,
                self._cancel,
            )

    async def close(self) -> None:
        """Close the TCP connection."""
        if self._writer is not None:
            writer = self._writer
            self._reader = None
            self._writer = None
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug("Error closing S7 connection to %s:%d: %s", self._host, self._port, e)

    async def __aenter__(self) -> "S7IdentityClient":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def exchange(self, request: bytes, min_length: int) -> bytes | None:
        """
        Send one request telegram and read the reply with a single bounded read.

        Returns None if the read times out or returns fewer than ``min_length`` bytes.
        """
        if self._reader is None or self._writer is None:
            await self.connect()
        self._writer.write(request)
        await wait_bounded(self._writer.drain(), self._timeout_ms, self._cancel)
        try:
            response = await wait_bounded(self._reader.read(_READ_BUFFER_SIZE), self._timeout_ms, self._cancel)
        except asyncio.TimeoutError:
            logger.debug("No reply from %s:%d within %d ms", self._host, self._port, self._timeout_ms)
            return None
        if len(response) < min_length:
            logger.debug(
                "Short reply from %s:%d: %d bytes, expected at least %d",
                self._host,
                self._port,
                len(response),
                min_length,
            )
            return None
        return response

    async def read_identity(self) -> PlcDetails | None:
        """Run the handshake and both SZL queries; None if the PLC offers no identity."""
        response = await self.exchange(COTP_CONNECT_REQUEST, COTP_RESPONSE_MIN_LENGTH)
        if response is None or response[5] != COTP_CONNECT_CONFIRM:
            logger.debug("%s: COTP connection not confirmed", self._host)
            return None

        response = await self.exchange(S7_SETUP_REQUEST, SETUP_RESPONSE_MIN_LENGTH)
        if response is None or response[7] != S7_PROTOCOL_ID:
            logger.debug("%s: S7 communication setup rejected", self._host)
            return None

        response = await self.exchange(SZL_MODULE_ID_REQUEST, MODULE_RESPONSE_MIN_LENGTH)
        module = parse_first_response(response)

        response = await self.exchange(SZL_COMPONENT_ID_REQUEST, COMPONENT_RESPONSE_MIN_LENGTH)
        component = parse_second_response(response)

        return build_plc_details(module, component)


async def get_plc_details(
    address: Address | str,
    port: int = S7_PORT,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    cancel: asyncio.Event | None = None,
) -> PlcDetails | None:
    """
    Query a PLC's identity; any network failure or cancellation yields None.

    None is also returned for PLCs that answer but report no module, serial number
    or system name (typically S7-1200/S7-1500, which reset the legacy query).
    """
    client = S7IdentityClient(address, port=port, timeout_ms=timeout_ms, cancel=cancel)
    try:
        async with client:
            return await client.read_identity()
    except (
        OSError,
        ValueError,
        OverflowError,
        EOFError,
        asyncio.TimeoutError,
        asyncio.IncompleteReadError,
        ScanCancelledError,
    ) as e:
        logger.debug("Identity query to %s:%d failed: %s", address, port, type(e).__name__)
        return None

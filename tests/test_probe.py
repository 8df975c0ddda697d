"""Tests for the TCP port probe and bounded waits (loopback sockets, patched connects)."""

import asyncio
import socket
import time
from ipaddress import ip_address
from unittest.mock import MagicMock, patch

import pytest

from pys7_scanner.errors import ScanCancelledError
from pys7_scanner.probe import is_port_open, wait_bounded


async def _hang(*args, **kwargs):
    await asyncio.sleep(3600)


def _unused_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.mark.asyncio
async def test_open_port_returns_true() -> None:
    loop = asyncio.get_running_loop()
    seen: asyncio.Future[bytes] = loop.create_future()

    async def on_connect(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        # The checker never sends anything; it only connects and hangs up.
        seen.set_result(await reader.read())
        writer.close()

    server = await asyncio.start_server(on_connect, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        assert await is_port_open(ip_address("127.0.0.1"), port, 1000) is True
        assert await asyncio.wait_for(seen, timeout=5) == b""
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_closed_port_returns_false() -> None:
    assert await is_port_open("127.0.0.1", _unused_port(), 1000) is False


@pytest.mark.asyncio
async def test_timeout_returns_false_promptly() -> None:
    with patch("asyncio.open_connection", _hang):
        started = time.monotonic()
        assert await is_port_open("192.0.2.1", 102, 50) is False
    assert time.monotonic() - started < 2


@pytest.mark.asyncio
async def test_cancel_event_aborts_attempt() -> None:
    cancel = asyncio.Event()
    asyncio.get_running_loop().call_later(0.05, cancel.set)
    with patch("asyncio.open_connection", _hang):
        started = time.monotonic()
        assert await is_port_open("192.0.2.1", 102, 10_000, cancel) is False
    assert time.monotonic() - started < 2


@pytest.mark.asyncio
async def test_wait_bounded_returns_result() -> None:
    async def answer() -> int:
        return 42

    assert await wait_bounded(answer(), 1000) == 42
    assert await wait_bounded(answer(), 1000, asyncio.Event()) == 42


@pytest.mark.asyncio
async def test_wait_bounded_raises_timeout() -> None:
    with pytest.raises(asyncio.TimeoutError):
        await wait_bounded(asyncio.sleep(3600), 20, asyncio.Event())


@pytest.mark.asyncio
async def test_wait_bounded_raises_when_cancelled() -> None:
    cancel = asyncio.Event()
    cancel.set()
    with pytest.raises(ScanCancelledError):
        await wait_bounded(asyncio.sleep(3600), 10_000, cancel)


@pytest.mark.asyncio
async def test_wait_bounded_propagates_errors() -> None:
    async def refuse() -> None:
        raise ConnectionRefusedError()

    with pytest.raises(ConnectionRefusedError):
        await wait_bounded(refuse(), 1000, asyncio.Event())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("host", "port"),
    [
        ("127.0.0.1", 70000),
        ("127.0.0.1", -1),
        ("a..b", 102),
        ("x" * 64 + ".example", 102),
    ],
)
async def test_unusable_target_returns_false(host: str, port: int) -> None:
    assert await is_port_open(host, port, 500) is False


def _connect_that_finishes_late(writer: MagicMock):
    async def connect():
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            # The socket came up in the same loop turn the caller gave up.
            return MagicMock(spec=asyncio.StreamReader), writer

    return connect()


@pytest.mark.asyncio
@pytest.mark.parametrize("with_cancel_event", [False, True])
async def test_wait_bounded_closes_late_connection(with_cancel_event: bool) -> None:
    writer = MagicMock(spec=asyncio.StreamWriter)
    cancel = asyncio.Event() if with_cancel_event else None
    with pytest.raises(asyncio.TimeoutError):
        await wait_bounded(_connect_that_finishes_late(writer), 20, cancel)
    for _ in range(5):
        await asyncio.sleep(0)
    writer.close.assert_called_once_with()


@pytest.mark.asyncio
async def test_wait_bounded_closes_connection_when_cancelled() -> None:
    writer = MagicMock(spec=asyncio.StreamWriter)
    cancel = asyncio.Event()
    cancel.set()
    with pytest.raises(ScanCancelledError):
        await wait_bounded(_connect_that_finishes_late(writer), 10_000, cancel)
    for _ in range(5):
        await asyncio.sleep(0)
    writer.close.assert_called_once_with()

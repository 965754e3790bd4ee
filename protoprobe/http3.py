"""
HTTP/3 (QUIC) probing.

A pinned HTTP/3 attempt must never fall back to TCP: the QUIC handshake
offers only the ``h3`` ALPN token, and any failure to complete it is a
failure of the attempt. The transport is provided by aioquic, imported
lazily so a missing install surfaces as HTTP3NotAvailableError rather
than an import failure of the whole package.
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from collections.abc import Iterable
from contextlib import AsyncExitStack
from typing import Any

from .errors import HTTP3NotAvailableError, ProtocolError, TLSNegotiationError
from .models import Response
from .utils import header_text

log = logging.getLogger(__name__)

_aioquic_available: bool | None = None

_SKIPPED_HEADERS = frozenset({"host", "connection", "keep-alive", "transfer-encoding", "upgrade"})


def is_http3_available() -> bool:
    """Check if HTTP/3 support is available (aioquic installed)."""
    global _aioquic_available
    if _aioquic_available is None:
        try:
            import aioquic  # noqa: F401

            _aioquic_available = True
        except ImportError:
            _aioquic_available = False
    return _aioquic_available


def _get_aioquic() -> dict[str, Any]:
    """Import and return aioquic modules, raising helpful error if unavailable."""
    if not is_http3_available():
        raise HTTP3NotAvailableError(
            "HTTP/3 support requires aioquic. Install with: pip install aioquic"
        )

    from aioquic.asyncio import connect as quic_connect
    from aioquic.asyncio.protocol import QuicConnectionProtocol
    from aioquic.h3.connection import H3_ALPN, H3Connection
    from aioquic.h3.events import DataReceived, HeadersReceived
    from aioquic.quic.configuration import QuicConfiguration
    from aioquic.quic.events import ConnectionTerminated

    return {
        "quic_connect": quic_connect,
        "QuicConnectionProtocol": QuicConnectionProtocol,
        "H3Connection": H3Connection,
        "H3_ALPN": H3_ALPN,
        "QuicConfiguration": QuicConfiguration,
        "DataReceived": DataReceived,
        "HeadersReceived": HeadersReceived,
        "ConnectionTerminated": ConnectionTerminated,
    }


class H3ResponseHandler:
    """Collects the response events of one request stream."""

    def __init__(self, stream_id: int):
        self.stream_id = stream_id
        self.status_code = 0
        self.headers: list[tuple[str, str]] = []
        self.complete = False
        self.error: Exception | None = None
        self._waiter: asyncio.Future | None = None

    def feed_event(self, event: Any, mods: dict[str, Any]) -> None:
        """Process an H3 event."""
        DataReceived = mods["DataReceived"]
        HeadersReceived = mods["HeadersReceived"]

        if isinstance(event, HeadersReceived) and event.stream_id == self.stream_id:
            for name, value in event.headers:
                name_str = header_text(name)
                value_str = header_text(value)
                if name_str == ":status":
                    self.status_code = int(value_str)
                elif not name_str.startswith(":"):
                    self.headers.append((name_str, value_str))
            # A HEAD response may end with its header frame.
            if event.stream_ended or self.status_code >= 200:
                self._mark_complete()

        elif isinstance(event, DataReceived) and event.stream_id == self.stream_id:
            if event.stream_ended:
                self._mark_complete()

    def fail(self, error: Exception) -> None:
        self.error = error
        self._mark_complete()

    def _mark_complete(self) -> None:
        self.complete = True
        if self._waiter and not self._waiter.done():
            self._waiter.set_result(None)

    async def wait_complete(self, timeout: float) -> None:
        """Wait for response to complete."""
        if not self.complete:
            self._waiter = asyncio.get_running_loop().create_future()
            try:
                await asyncio.wait_for(self._waiter, timeout=timeout)
            except TimeoutError as exc:
                raise ProtocolError("HTTP/3 response timeout") from exc
        if self.error is not None:
            raise self.error


def _client_protocol_class(mods: dict[str, Any]) -> type:
    """Build the QUIC protocol subclass that routes H3 events to handlers."""
    QuicConnectionProtocol = mods["QuicConnectionProtocol"]
    H3Connection = mods["H3Connection"]
    ConnectionTerminated = mods["ConnectionTerminated"]

    class H3ClientProtocol(QuicConnectionProtocol):  # type: ignore[misc, valid-type]
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__(*args, **kwargs)
            self.http = H3Connection(self._quic)
            self.handlers: dict[int, H3ResponseHandler] = {}

        def quic_event_received(self, event: Any) -> None:
            if isinstance(event, ConnectionTerminated):
                error = ProtocolError(
                    f"QUIC connection terminated: {event.error_code} {event.reason_phrase}"
                )
                for handler in self.handlers.values():
                    handler.fail(error)
                return
            for h3_event in self.http.handle_event(event):
                handler = self.handlers.get(getattr(h3_event, "stream_id", None))
                if handler is not None:
                    handler.feed_event(h3_event, mods)

    return H3ClientProtocol


class HTTP3Protocol:
    """
    Async HTTP/3 client for a single origin using aioquic.

    ``connect`` completes the QUIC handshake with ALPN ``h3`` only;
    ``request`` sends one header-only request on a fresh stream.
    """

    def __init__(
        self,
        host: str,
        port: int = 443,
        verify: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.verify = verify
        self.timeout = timeout

        self._protocol: Any = None
        self._stack: AsyncExitStack | None = None
        self._mods: dict[str, Any] = {}

    async def connect(self) -> None:
        """Establish the QUIC connection and initialize HTTP/3."""
        self._mods = _get_aioquic()
        QuicConfiguration = self._mods["QuicConfiguration"]
        quic_connect = self._mods["quic_connect"]

        config = QuicConfiguration(
            is_client=True,
            alpn_protocols=list(self._mods["H3_ALPN"]),
            verify_mode=ssl.CERT_REQUIRED if self.verify else ssl.CERT_NONE,
            server_name=self.host,
        )
        config.idle_timeout = self.timeout

        stack = AsyncExitStack()
        try:
            async with asyncio.timeout(self.timeout):
                self._protocol = await stack.enter_async_context(
                    quic_connect(
                        self.host,
                        self.port,
                        configuration=config,
                        create_protocol=_client_protocol_class(self._mods),
                    )
                )
        except TimeoutError as exc:
            await stack.aclose()
            raise TLSNegotiationError(
                f"QUIC handshake with {self.host}:{self.port} timed out after {self.timeout} seconds"
            ) from exc
        except OSError as exc:
            # aioquic reports a refused or aborted handshake as ConnectionError.
            await stack.aclose()
            raise TLSNegotiationError(f"QUIC handshake failed: {exc or type(exc).__name__}") from exc
        self._stack = stack
        log.debug("QUIC connection established to %s:%s", self.host, self.port)

    async def request(
        self,
        method: str,
        authority: str,
        path: str,
        headers: Iterable[tuple[str, str]],
    ) -> Response:
        if self._protocol is None:
            await self.connect()
        protocol = self._protocol

        h3_headers: list[tuple[bytes, bytes]] = [
            (b":method", method.encode()),
            (b":scheme", b"https"),
            (b":authority", authority.encode()),
            (b":path", path.encode()),
        ]
        for name, value in headers:
            name_lower = name.lower()
            if name_lower in _SKIPPED_HEADERS:
                continue
            h3_headers.append((name_lower.encode(), value.encode()))

        stream_id = protocol._quic.get_next_available_stream_id()
        handler = H3ResponseHandler(stream_id)
        protocol.handlers[stream_id] = handler
        try:
            protocol.http.send_headers(stream_id=stream_id, headers=h3_headers, end_stream=True)
            protocol.transmit()
            await handler.wait_complete(self.timeout)
        finally:
            protocol.handlers.pop(stream_id, None)

        if not handler.status_code:
            raise ProtocolError("HTTP/3 stream ended without response")
        return Response(handler.status_code, "", "3", handler.headers)

    async def close(self) -> None:
        """Close the QUIC connection."""
        stack, self._stack = self._stack, None
        self._protocol = None
        if stack is not None:
            await stack.aclose()

    async def __aenter__(self) -> HTTP3Protocol:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

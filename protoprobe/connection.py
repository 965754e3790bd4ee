from __future__ import annotations

import asyncio
import logging
import ssl
from collections.abc import Iterable, Sequence

from .errors import ConnectionError, ProtocolError, TLSNegotiationError
from .http2 import HTTP2Connection
from .models import Response

log = logging.getLogger(__name__)

MAX_HEADER_LINES = 256


class Connection:
    """
    Single-use TCP/TLS connection for one header-only exchange.

    The ALPN offer is pinned by the caller. When TLS selects ``h2`` the
    exchange runs over HTTP/2; otherwise (no ALPN selection, or a cleartext
    target) it runs as HTTP/1.1 and reports whatever version the status
    line carries.
    """

    def __init__(
        self,
        host: str,
        port: int,
        scheme: str,
        alpn: Sequence[str],
        timeout: float = 10.0,
        verify: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.scheme = scheme
        self.alpn = list(alpn)
        self.timeout = timeout
        self.verify = verify
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.negotiated_protocol: str | None = None
        self.closed = True

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self.verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        if self.alpn:
            try:
                context.set_alpn_protocols(self.alpn)
            except NotImplementedError:
                # Without ALPN the server cannot pick h2; HTTP/1.1 is all we get.
                pass
        return context

    async def connect(self) -> None:
        ssl_ctx = self._ssl_context() if self.scheme == "https" else None
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(
                    self.host,
                    self.port,
                    ssl=ssl_ctx,
                    server_hostname=self.host if ssl_ctx else None,
                ),
                timeout=self.timeout,
            )
        except TimeoutError as exc:
            raise ConnectionError(
                f"Connection to {self.host}:{self.port} timed out after {self.timeout} seconds"
            ) from exc
        except ssl.SSLError as exc:
            raise TLSNegotiationError(f"TLS handshake failed: {exc}") from exc
        except OSError as exc:
            raise ConnectionError(f"TCP connection failed: {exc}") from exc

        self.negotiated_protocol = None
        ssl_obj = self.writer.get_extra_info("ssl_object")
        if ssl_obj is not None:
            self.negotiated_protocol = ssl_obj.selected_alpn_protocol()
        self.closed = False
        log.debug(
            "Connected to %s:%s (alpn offered=%s selected=%s)",
            self.host,
            self.port,
            self.alpn,
            self.negotiated_protocol,
        )

    async def head(
        self,
        authority: str,
        path: str,
        headers: Iterable[tuple[str, str]],
    ) -> Response:
        if self.closed or self.reader is None or self.writer is None:
            await self.connect()
        assert self.reader is not None and self.writer is not None

        if self.negotiated_protocol == "h2":
            h2conn = HTTP2Connection(self.reader, self.writer)
            return await h2conn.request("HEAD", authority, path, headers)
        return await self._head_http11(path, headers)

    async def _head_http11(
        self, path: str, headers: Iterable[tuple[str, str]]
    ) -> Response:
        assert self.reader is not None and self.writer is not None
        lines = [f"HEAD {path} HTTP/1.1\r\n".encode("ascii")]
        for name, value in headers:
            lines.append(f"{name}: {value}\r\n".encode("latin-1"))
        lines.append(b"\r\n")
        try:
            self.writer.writelines(lines)
            await self.writer.drain()
        except OSError as exc:
            raise ConnectionError(f"Send failed: {exc}") from exc

        while True:
            response = await self._read_head()
            # Interim 1xx responses precede the real one.
            if not 100 <= response.status_code < 200 or response.status_code == 101:
                return response

    async def _read_head(self) -> Response:
        assert self.reader is not None
        status_line = await self.reader.readline()
        if not status_line:
            raise ProtocolError("Empty reply from server")
        try:
            # e.g., HTTP/1.1 200 OK
            parts = status_line.decode("latin-1").strip().split(" ", 2)
            if not parts[0].upper().startswith("HTTP/"):
                raise ValueError(parts[0])
            version = parts[0].split("/", 1)[1]
            status_code = int(parts[1])
            reason = parts[2] if len(parts) > 2 else ""
        except (ValueError, IndexError) as exc:
            raise ProtocolError(f"Malformed status line: {status_line!r}") from exc

        headers: list[tuple[str, str]] = []
        for _ in range(MAX_HEADER_LINES):
            line = await self.reader.readline()
            if line in (b"\r\n", b"\n", b""):
                break
            try:
                name, value = line.split(b":", 1)
            except ValueError as exc:
                raise ProtocolError(f"Malformed header line: {line!r}") from exc
            headers.append(
                (name.decode("latin-1").strip(), value.decode("latin-1").strip())
            )
        else:
            raise ProtocolError("Too many response header lines")

        return Response(status_code, reason, version, headers)

    async def close(self) -> None:
        writer, self.writer, self.reader = self.writer, None, None
        self.closed = True
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, ssl.SSLError):
            # Peer already went away; nothing left to release.
            pass

    async def __aenter__(self) -> Connection:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

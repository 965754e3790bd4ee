from __future__ import annotations

import asyncio
from collections.abc import Iterable

import h2.connection
import h2.events
import h2.exceptions

from .errors import ProtocolError
from .models import Response
from .utils import header_text

# Connection-specific headers are illegal in HTTP/2 (RFC 9113 8.2.2).
_SKIPPED_HEADERS = frozenset({"host", "connection", "keep-alive", "transfer-encoding", "upgrade"})


class HTTP2Connection:
    """
    Minimal single-stream HTTP/2 client over an already negotiated TLS stream.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.reader = reader
        self.writer = writer
        self.conn = h2.connection.H2Connection()
        self.conn.initiate_connection()
        self.writer.write(self.conn.data_to_send())

    async def request(
        self,
        method: str,
        authority: str,
        path: str,
        headers: Iterable[tuple[str, str]],
    ) -> Response:
        stream_id = self.conn.get_next_available_stream_id()
        request_headers = [
            (":method", method),
            (":authority", authority),
            (":scheme", "https"),
            (":path", path),
        ]
        request_headers.extend(
            (name.lower(), value)
            for name, value in headers
            if name.lower() not in _SKIPPED_HEADERS
        )
        try:
            self.conn.send_headers(stream_id, request_headers, end_stream=True)
        except h2.exceptions.H2Error as exc:
            raise ProtocolError(f"HTTP/2 protocol error: {exc}") from exc
        await self._flush()

        status = 0
        resp_headers: list[tuple[str, str]] = []

        while True:
            data = await self.reader.read(65536)
            if not data:
                break
            try:
                events = self.conn.receive_data(data)
            except h2.exceptions.H2Error as exc:
                # Frames the peer got wrong; the connection is unusable.
                raise ProtocolError(f"HTTP/2 protocol error: {exc}") from exc
            await self._flush()
            for event in events:
                if isinstance(event, h2.events.ResponseReceived):
                    for name, value in event.headers:
                        name_str = header_text(name)
                        value_str = header_text(value)
                        if name_str == ":status":
                            status = int(value_str)
                        elif not name_str.startswith(":"):
                            resp_headers.append((name_str, value_str))
                elif isinstance(event, h2.events.DataReceived):
                    # HEAD carries no body, but keep the window open regardless.
                    self.conn.acknowledge_received_data(
                        event.flow_controlled_length, event.stream_id
                    )
                elif isinstance(event, h2.events.StreamEnded):
                    if event.stream_id == stream_id and status:
                        return Response(status, "", "2", resp_headers)
                elif isinstance(event, h2.events.StreamReset):
                    raise ProtocolError(f"HTTP/2 stream reset: {event.error_code}")
                elif isinstance(event, h2.events.ConnectionTerminated):
                    raise ProtocolError(f"HTTP/2 connection terminated: {event.error_code}")
        if status:
            # Graceful close after the headers arrived.
            return Response(status, "", "2", resp_headers)
        raise ProtocolError("Connection closed before HTTP/2 stream ended")

    async def _flush(self) -> None:
        data = self.conn.data_to_send()
        if not data:
            return
        self.writer.write(data)
        await self.writer.drain()

from __future__ import annotations

import asyncio
import logging
import ssl
from urllib.parse import urljoin

from .config import ProbeConfig
from .connection import Connection
from .errors import ProbeError, ProtocolError
from .http3 import HTTP3Protocol
from .models import HeaderBlock, ProbeAttempt, ProbeMode, Response
from .utils import ascii_host, authority, delimiter_safe, parse_url

log = logging.getLogger(__name__)


def describe_error(exc: BaseException) -> str:
    """Single-field error text: the message, or the exception name when empty."""
    text = str(exc).strip() or type(exc).__name__
    return delimiter_safe(text)


class Prober:
    """
    Issues single, bounded HEAD attempts pinned to one protocol.

    Every attempt follows redirects with the same pin, collects the headers
    of every hop into one HeaderBlock, and never raises for network,
    TLS or protocol failures: those come back as a failed ProbeAttempt.

    Args:
        config: Timeout, user agent, redirect limit and TLS verification.
    """

    def __init__(self, config: ProbeConfig | None = None) -> None:
        self.config = config or ProbeConfig()

    async def probe(self, url: str, mode: ProbeMode) -> ProbeAttempt:
        headers = HeaderBlock()
        try:
            async with asyncio.timeout(self.config.timeout):
                response, effective_url = await self._follow(url, mode, headers)
        except TimeoutError:
            error = f"Operation timed out after {self.config.timeout:g} seconds"
            return self._failed(url, mode, headers, error)
        except (ProbeError, OSError, ssl.SSLError, ValueError) as exc:
            return self._failed(url, mode, headers, describe_error(exc))

        error = ""
        if mode.pinned and response.http_version != mode.expected_version:
            error = (
                f"protocol mismatch: negotiated HTTP/{response.http_version}; "
                f"expected HTTP/{mode.expected_version}"
            )
        attempt = ProbeAttempt(
            mode=mode,
            transport_failed=False,
            http_version=response.http_version,
            status_code=response.status_code,
            effective_url=effective_url,
            headers=headers,
            error=error,
        )
        log.debug(
            "%s [%s] -> HTTP/%s %s (%s)",
            url,
            mode.tag,
            attempt.http_version,
            attempt.status_code,
            "ok" if attempt.succeeded or not mode.pinned else "mismatch",
        )
        return attempt

    def _failed(
        self, url: str, mode: ProbeMode, headers: HeaderBlock, error: str
    ) -> ProbeAttempt:
        log.debug("%s [%s] failed: %s", url, mode.tag, error)
        return ProbeAttempt(
            mode=mode,
            transport_failed=True,
            headers=headers,
            error=error,
        )

    async def _follow(
        self, url: str, mode: ProbeMode, headers: HeaderBlock
    ) -> tuple[Response, str]:
        current = url
        for _ in range(self.config.max_redirects + 1):
            response = await self._exchange(current, mode)
            headers.extend(response.raw_headers)
            if not response.is_redirect:
                return response, current
            current = urljoin(current, response.headers["location"])
        raise ProtocolError(
            f"Maximum ({self.config.max_redirects}) redirects followed"
        )

    async def _exchange(self, url: str, mode: ProbeMode) -> Response:
        parsed, host, port, path = parse_url(url)
        host = ascii_host(host)
        request_authority = authority(host, port, parsed.scheme)
        request_headers = [
            ("Host", request_authority),
            ("User-Agent", self.config.user_agent),
            ("Accept", "*/*"),
        ]

        if mode.uses_quic:
            if parsed.scheme != "https":
                raise ProtocolError("HTTP/3 requires https")
            async with HTTP3Protocol(
                host, port, verify=self.config.verify, timeout=self.config.timeout
            ) as proto:
                return await proto.request("HEAD", request_authority, path, request_headers)

        async with Connection(
            host,
            port,
            parsed.scheme,
            mode.alpn,
            timeout=self.config.timeout,
            verify=self.config.verify,
        ) as conn:
            return await conn.head(request_authority, path, request_headers)

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum


class ProbeMode(Enum):
    """
    Protocol pin applied to a single probe attempt.

    Each member carries the ALPN offer used on the wire, the version string
    the attempt must negotiate to count as a success, and the label used in
    the fallback chain. The diagnostic mode has no expected version: it is
    only run to harvest headers once every pinned tier has failed.
    """

    PINNED_V3 = ("h3only", ("h3",), "3", "h3")
    PINNED_V2 = ("h2", ("h2",), "2", "h2")
    PINNED_V1_1 = ("h1", ("http/1.1",), "1.1", "h1.1")
    DIAGNOSTIC = ("auto", ("h2", "http/1.1"), None, "auto")

    def __init__(
        self,
        tag: str,
        alpn: tuple[str, ...],
        expected_version: str | None,
        label: str,
    ) -> None:
        self.tag = tag
        self.alpn = alpn
        self.expected_version = expected_version
        self.label = label

    @property
    def pinned(self) -> bool:
        return self.expected_version is not None

    @property
    def uses_quic(self) -> bool:
        return self is ProbeMode.PINNED_V3


PINNED_TIERS: tuple[ProbeMode, ...] = (
    ProbeMode.PINNED_V3,
    ProbeMode.PINNED_V2,
    ProbeMode.PINNED_V1_1,
)


REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


class TierStatus(str, Enum):
    SUCCESS = "success"
    FAIL = "fail"
    NOT_ATTEMPTED = "n/a"


class FinalProtocol(str, Enum):
    H3 = "h3"
    H2 = "h2"
    HTTP1_1 = "http/1.1"
    FAIL = "fail"


class Response:
    """
    Header-only HTTP response from a single hop. Header order is preserved.
    """

    def __init__(
        self,
        status_code: int,
        reason: str,
        http_version: str,
        headers: Iterable[tuple[str, str]],
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.http_version = http_version
        self.raw_headers: list[tuple[str, str]] = list(headers)

    @property
    def headers(self) -> dict[str, str]:
        # Last-write wins while keeping access case-insensitive for callers.
        out: dict[str, str] = {}
        for name, value in self.raw_headers:
            out[name.lower()] = value
        return out

    @property
    def is_redirect(self) -> bool:
        return self.status_code in REDIRECT_STATUSES and "location" in self.headers

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}] HTTP/{self.http_version}>"


class HeaderBlock:
    """
    In-memory capture of the response headers seen during one attempt.

    Headers from every redirect hop are appended in arrival order. The block
    is owned by a single attempt and must be closed once inspected; a closed
    block reads as empty.
    """

    def __init__(self, headers: Iterable[tuple[str, str]] | None = None) -> None:
        self._headers: list[tuple[str, str]] = list(headers or [])
        self.closed = False

    def extend(self, headers: Iterable[tuple[str, str]]) -> None:
        if self.closed:
            raise ValueError("header block is closed")
        self._headers.extend(headers)

    def get_all(self, name: str) -> list[str]:
        key = name.lower()
        return [value for hname, value in self._headers if hname.lower() == key]

    def lines(self) -> list[str]:
        return [f"{name}: {value}" for name, value in self._headers]

    def close(self) -> None:
        self._headers.clear()
        self.closed = True

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._headers))

    def __len__(self) -> int:
        return len(self._headers)

    def __enter__(self) -> HeaderBlock:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"{len(self._headers)} headers"
        return f"<HeaderBlock [{state}]>"


@dataclass(frozen=True)
class ProbeAttempt:
    """
    Outcome of one network attempt.

    Fields:
        mode            : The pin applied to the attempt.
        transport_failed: True when the exchange never produced a response.
        http_version    : Negotiated version ("3", "2", "1.1"); empty on failure.
        status_code     : Final HTTP status; None on failure.
        effective_url   : URI after redirects; empty on failure.
        headers         : Header block captured across all hops, if any.
        error           : Diagnostic text, delimiter-safe; empty on success.
    """

    mode: ProbeMode
    transport_failed: bool
    http_version: str = ""
    status_code: int | None = None
    effective_url: str = ""
    headers: HeaderBlock | None = None
    error: str = ""

    def __post_init__(self) -> None:
        if self.transport_failed:
            if self.http_version or self.status_code is not None:
                raise ValueError("failed transport cannot carry a version or status")
        elif not self.http_version:
            raise ValueError("completed transport must report a negotiated version")

    @property
    def succeeded(self) -> bool:
        """True only if the transport completed on exactly the pinned version."""
        if self.transport_failed or not self.mode.pinned:
            return False
        return self.http_version == self.mode.expected_version

    def release(self) -> None:
        if self.headers is not None:
            self.headers.close()


@dataclass(frozen=True)
class ResultRecord:
    """One classified row per probed host."""

    url: str
    effective_url: str
    final_protocol: FinalProtocol
    http3_attempt: TierStatus
    http2_attempt: TierStatus
    http1_attempt: TierStatus
    fallback_chain: str
    http3_advertised: bool
    response_code: int | None
    error: str = ""

    def __post_init__(self) -> None:
        tiers = (self.http3_attempt, self.http2_attempt, self.http1_attempt)
        if (self.final_protocol is FinalProtocol.H3) != (
            self.http3_attempt is TierStatus.SUCCESS
        ):
            raise ValueError("final protocol h3 requires a successful v3 tier")
        if (self.final_protocol is FinalProtocol.FAIL) != all(
            t is TierStatus.FAIL for t in tiers
        ):
            raise ValueError("final protocol fail requires every tier to have failed")

    @property
    def tiers(self) -> tuple[TierStatus, TierStatus, TierStatus]:
        return (self.http3_attempt, self.http2_attempt, self.http1_attempt)

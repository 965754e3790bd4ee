class ProbeError(Exception):
    """Base error for protoprobe."""


class ConnectionError(ProbeError):
    """Raised when a DNS lookup or TCP connection fails."""


class TLSNegotiationError(ConnectionError):
    """Raised when the TLS or QUIC handshake does not complete."""


class ProtocolError(ProbeError):
    """Raised when the server speaks something other than what was pinned."""


class HTTP3NotAvailableError(ProbeError):
    """Raised when HTTP/3 is requested but aioquic is not installed."""


class InputSourceError(ProbeError):
    """Raised when the host list cannot be read. Aborts the run."""


class ReportError(ProbeError):
    """Raised when the report sink cannot be written. Aborts the run."""

"""Tests for protoprobe.errors module."""

import pytest

from protoprobe.errors import (
    ConnectionError,
    HTTP3NotAvailableError,
    InputSourceError,
    ProbeError,
    ProtocolError,
    ReportError,
    TLSNegotiationError,
)


class TestErrorHierarchy:
    """Tests for error class hierarchy."""

    def test_probe_error_is_exception(self):
        """Test ProbeError inherits from Exception."""
        assert issubclass(ProbeError, Exception)

    def test_connection_error_inherits_probe_error(self):
        """Test ConnectionError inherits from ProbeError."""
        assert issubclass(ConnectionError, ProbeError)

    def test_connection_error_shadows_builtin(self):
        """Test ConnectionError is not the builtin OSError subclass."""
        assert not issubclass(ConnectionError, OSError)

    def test_tls_negotiation_error_inherits_connection_error(self):
        """Test TLSNegotiationError inherits from ConnectionError."""
        assert issubclass(TLSNegotiationError, ConnectionError)
        assert issubclass(TLSNegotiationError, ProbeError)

    @pytest.mark.parametrize(
        "error_class",
        [ProtocolError, HTTP3NotAvailableError, InputSourceError, ReportError],
    )
    def test_inherits_probe_error(self, error_class):
        """Test the remaining errors inherit from ProbeError."""
        assert issubclass(error_class, ProbeError)
        assert not issubclass(error_class, ConnectionError)


class TestErrorRaising:
    """Tests for raising and catching errors."""

    def test_catch_tls_as_connection_error(self):
        """Test TLSNegotiationError can be caught as ConnectionError."""
        with pytest.raises(ConnectionError, match="TLS handshake failed"):
            raise TLSNegotiationError("TLS handshake failed")

    def test_catch_all_as_probe_error(self):
        """Test any error can be caught as ProbeError."""
        for error in (ProtocolError("x"), ReportError("x"), InputSourceError("x")):
            with pytest.raises(ProbeError):
                raise error

"""Tests for protoprobe.models module."""

import pytest

from protoprobe.models import (
    PINNED_TIERS,
    FinalProtocol,
    HeaderBlock,
    ProbeAttempt,
    ProbeMode,
    Response,
    ResultRecord,
    TierStatus,
)


class TestProbeMode:
    """Tests for the ProbeMode enumeration."""

    def test_expected_versions(self):
        """Test each pinned mode expects its own version string."""
        assert ProbeMode.PINNED_V3.expected_version == "3"
        assert ProbeMode.PINNED_V2.expected_version == "2"
        assert ProbeMode.PINNED_V1_1.expected_version == "1.1"
        assert ProbeMode.DIAGNOSTIC.expected_version is None

    def test_alpn_is_pinned(self):
        """Test pinned modes offer a single ALPN token."""
        assert ProbeMode.PINNED_V3.alpn == ("h3",)
        assert ProbeMode.PINNED_V2.alpn == ("h2",)
        assert ProbeMode.PINNED_V1_1.alpn == ("http/1.1",)

    def test_diagnostic_is_unpinned(self):
        """Test the diagnostic mode is not pinned and offers both TCP protocols."""
        assert not ProbeMode.DIAGNOSTIC.pinned
        assert set(ProbeMode.DIAGNOSTIC.alpn) == {"h2", "http/1.1"}

    def test_only_v3_uses_quic(self):
        """Test only the v3 pin goes over QUIC."""
        assert [m for m in ProbeMode if m.uses_quic] == [ProbeMode.PINNED_V3]

    def test_pinned_tiers_order(self):
        """Test tiers are ordered from most to least preferred."""
        assert [m.label for m in PINNED_TIERS] == ["h3", "h2", "h1.1"]


class TestResponse:
    """Tests for the header-only Response class."""

    def test_headers_case_insensitive(self):
        """Test header lookup is case-insensitive."""
        resp = Response(200, "OK", "1.1", [("Alt-Svc", 'h3=":443"')])
        assert resp.headers["alt-svc"] == 'h3=":443"'

    def test_is_redirect_requires_location(self):
        """Test a 3xx without Location is not followed."""
        assert Response(301, "", "2", [("Location", "/next")]).is_redirect
        assert not Response(301, "", "2", []).is_redirect
        assert not Response(304, "", "2", [("Location", "/next")]).is_redirect

    def test_repr(self):
        """Test repr shows status and version."""
        assert repr(Response(204, "", "3", [])) == "<Response [204] HTTP/3>"


class TestHeaderBlock:
    """Tests for the scoped header buffer."""

    def test_get_all_collects_every_hop(self):
        """Test repeated headers from several hops are all returned."""
        block = HeaderBlock([("Alt-Svc", "clear")])
        block.extend([("alt-svc", 'h3=":443"')])
        assert block.get_all("ALT-SVC") == ["clear", 'h3=":443"']

    def test_lines(self):
        """Test header lines render as name: value."""
        block = HeaderBlock([("Server", "nginx")])
        assert block.lines() == ["Server: nginx"]

    def test_close_releases_headers(self):
        """Test closing empties the block."""
        block = HeaderBlock([("Server", "nginx")])
        block.close()
        assert block.closed
        assert len(block) == 0
        assert block.get_all("server") == []

    def test_extend_after_close_raises(self):
        """Test a closed block rejects new headers."""
        block = HeaderBlock()
        block.close()
        with pytest.raises(ValueError):
            block.extend([("a", "b")])

    def test_context_manager_closes(self):
        """Test the block closes on context exit."""
        with HeaderBlock([("a", "b")]) as block:
            assert len(block) == 1
        assert block.closed


class TestProbeAttempt:
    """Tests for ProbeAttempt invariants and success determination."""

    def test_failed_transport_cannot_carry_version(self):
        """Test a failed transport with a version is rejected."""
        with pytest.raises(ValueError):
            ProbeAttempt(ProbeMode.PINNED_V2, transport_failed=True, http_version="2")

    def test_failed_transport_cannot_carry_status(self):
        """Test a failed transport with a status is rejected."""
        with pytest.raises(ValueError):
            ProbeAttempt(ProbeMode.PINNED_V2, transport_failed=True, status_code=200)

    def test_completed_transport_needs_version(self):
        """Test a completed transport must report a version."""
        with pytest.raises(ValueError):
            ProbeAttempt(ProbeMode.PINNED_V2, transport_failed=False, status_code=200)

    def test_succeeded_on_exact_version(self):
        """Test success requires the pinned version exactly."""
        attempt = ProbeAttempt(
            ProbeMode.PINNED_V2, transport_failed=False, http_version="2", status_code=200
        )
        assert attempt.succeeded

    def test_downgrade_is_not_success(self):
        """Test a completed exchange on another version fails the tier."""
        attempt = ProbeAttempt(
            ProbeMode.PINNED_V2, transport_failed=False, http_version="1.1", status_code=200
        )
        assert not attempt.succeeded

    def test_transport_failure_is_not_success(self):
        """Test a failed transport never succeeds."""
        attempt = ProbeAttempt(ProbeMode.PINNED_V1_1, transport_failed=True, error="refused")
        assert not attempt.succeeded

    def test_diagnostic_never_succeeds(self):
        """Test the diagnostic attempt is never a tier success."""
        attempt = ProbeAttempt(
            ProbeMode.DIAGNOSTIC, transport_failed=False, http_version="2", status_code=200
        )
        assert not attempt.succeeded

    def test_release_closes_headers(self):
        """Test release closes the captured header block."""
        block = HeaderBlock([("a", "b")])
        attempt = ProbeAttempt(ProbeMode.PINNED_V3, transport_failed=True, headers=block)
        attempt.release()
        assert block.closed

    def test_release_without_headers(self):
        """Test release tolerates attempts with no header block."""
        ProbeAttempt(ProbeMode.PINNED_V3, transport_failed=True).release()

    def test_attempt_is_immutable(self):
        """Test attempts cannot be modified after construction."""
        attempt = ProbeAttempt(ProbeMode.PINNED_V3, transport_failed=True)
        with pytest.raises(AttributeError):
            attempt.error = "changed"


def _record(**overrides):
    fields = dict(
        url="https://example.com",
        effective_url="https://example.com/",
        final_protocol=FinalProtocol.H2,
        http3_attempt=TierStatus.FAIL,
        http2_attempt=TierStatus.SUCCESS,
        http1_attempt=TierStatus.NOT_ATTEMPTED,
        fallback_chain="h3->h2",
        http3_advertised=False,
        response_code=200,
    )
    fields.update(overrides)
    return ResultRecord(**fields)


class TestResultRecord:
    """Tests for ResultRecord invariants."""

    def test_valid_record(self):
        """Test a consistent record constructs."""
        record = _record()
        assert record.tiers == (TierStatus.FAIL, TierStatus.SUCCESS, TierStatus.NOT_ATTEMPTED)

    def test_h3_requires_v3_success(self):
        """Test h3 classification without a v3 success is rejected."""
        with pytest.raises(ValueError):
            _record(final_protocol=FinalProtocol.H3)

    def test_v3_success_requires_h3(self):
        """Test a v3 success must classify as h3."""
        with pytest.raises(ValueError):
            _record(http3_attempt=TierStatus.SUCCESS)

    def test_fail_requires_all_tiers_failed(self):
        """Test fail classification requires three failed tiers."""
        with pytest.raises(ValueError):
            _record(final_protocol=FinalProtocol.FAIL)

    def test_all_failed_requires_fail(self):
        """Test three failed tiers must classify as fail."""
        with pytest.raises(ValueError):
            _record(http2_attempt=TierStatus.FAIL, http1_attempt=TierStatus.FAIL)

    def test_enum_values_render(self):
        """Test enum values match the report vocabulary."""
        assert FinalProtocol.HTTP1_1.value == "http/1.1"
        assert TierStatus.NOT_ATTEMPTED.value == "n/a"

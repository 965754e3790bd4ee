"""Pytest configuration and fixtures."""

import pytest

from protoprobe.models import HeaderBlock, ProbeAttempt, ProbeMode


def make_attempt(
    mode,
    ok=True,
    version=None,
    status=200,
    url="https://example.com/",
    headers=None,
    error="",
):
    """Build a ProbeAttempt; ``ok`` completes the transport on ``version``."""
    block = HeaderBlock(headers or [])
    if not ok:
        return ProbeAttempt(
            mode=mode,
            transport_failed=True,
            headers=block,
            error=error or f"{mode.tag} failed",
        )
    return ProbeAttempt(
        mode=mode,
        transport_failed=False,
        http_version=version or mode.expected_version or "2",
        status_code=status,
        effective_url=url,
        headers=block,
        error=error,
    )


class FakeProber:
    """Returns scripted attempts per mode and records every call."""

    def __init__(self, script):
        self.script = dict(script)
        self.calls = []
        self.issued = []

    async def probe(self, url, mode):
        self.calls.append((url, mode))
        outcome = self.script.get(mode)
        if callable(outcome):
            attempt = outcome(url)
        elif outcome is None:
            attempt = make_attempt(mode, ok=False, error="connection refused")
        else:
            attempt = outcome
        self.issued.append(attempt)
        return attempt


@pytest.fixture
def fake_prober():
    """Factory for FakeProber instances."""
    return FakeProber


@pytest.fixture
def h2_only_script():
    """v3 fails, v2 succeeds with status 200 and no Alt-Svc."""
    return {
        ProbeMode.PINNED_V3: make_attempt(ProbeMode.PINNED_V3, ok=False, error="QUIC handshake failed"),
        ProbeMode.PINNED_V2: make_attempt(ProbeMode.PINNED_V2, url="https://example.com/"),
    }

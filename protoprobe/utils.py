from __future__ import annotations

from urllib.parse import urlparse

DEFAULT_PORTS = {"http": 80, "https": 443}


def parse_url(url: str):
    parsed = urlparse(url)
    if parsed.scheme not in DEFAULT_PORTS:
        raise ValueError(f"Unsupported URL scheme: {parsed.scheme or '(none)'}")
    host = parsed.hostname or ""
    if not host:
        raise ValueError(f"URL has no host: {url}")
    port = parsed.port or DEFAULT_PORTS[parsed.scheme]
    path = parsed.path or "/"
    if parsed.query:
        path = f"{path}?{parsed.query}"
    return parsed, host, port, path


def ascii_host(host: str) -> str:
    """Punycode form of an internationalized hostname; ASCII hosts pass through."""
    if host.isascii():
        return host
    return host.encode("idna").decode("ascii")


def authority(host: str, port: int, scheme: str) -> str:
    """Host header / :authority value, with the port only when non-default."""
    host = ascii_host(host)
    name = f"[{host}]" if ":" in host else host
    if port == DEFAULT_PORTS.get(scheme):
        return name
    return f"{name}:{port}"


def header_text(value: bytes | str) -> str:
    # Header bytes outside ASCII (obs-text) are kept as latin-1, like HTTP/1.1.
    return value.decode("latin-1") if isinstance(value, bytes) else value


def delimiter_safe(text: str) -> str:
    """Collapse newlines and swap commas for semicolons so text fits one field."""
    return " ".join(text.replace(",", ";").split())

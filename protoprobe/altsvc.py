"""
Alt-Svc inspection.

Servers announce HTTP/3 endpoints through the Alt-Svc response header
(RFC 7838), e.g. ``h3=":443"; ma=86400, h3-29=":443"; ma=86400``. Only a
protocol id that is exactly ``h3`` or a draft id ``h3-<digits>`` counts;
ids that merely start with ``h3`` (``h3000``, ``h3x``) do not.
"""

from __future__ import annotations

import re

from .models import HeaderBlock

H3_TOKEN = re.compile(r"h3(?:-\d+)?", re.IGNORECASE)
_DELIMITERS = re.compile(r"[,;]")


def alt_svc_protocols(header_value: str) -> list[str]:
    """
    Return the protocol ids named by an Alt-Svc value, in order.

    Each comma or semicolon separated entry contributes the text before its
    ``=``. Parameters such as ``ma=86400`` are returned too; callers match
    on the ids they care about.
    """
    protocols: list[str] = []
    for entry in _DELIMITERS.split(header_value):
        entry = entry.strip()
        if not entry or entry.lower() == "clear":
            continue
        proto = entry.split("=", 1)[0].strip().strip('"')
        if proto:
            protocols.append(proto)
    return protocols


def value_advertises_http3(header_value: str) -> bool:
    return any(H3_TOKEN.fullmatch(proto) for proto in alt_svc_protocols(header_value))


def advertises_http3(headers: HeaderBlock | None) -> bool:
    """
    True when any Alt-Svc header in the block advertises an HTTP/3 endpoint.

    A missing or closed block is not an error; it simply advertises nothing.
    """
    if headers is None or headers.closed:
        return False
    for value in headers.get_all("alt-svc"):
        if value_advertises_http3(value.replace("\r", " ").replace("\n", " ")):
            return True
    return False

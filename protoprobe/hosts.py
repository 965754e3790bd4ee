from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator
from pathlib import Path

from .errors import InputSourceError

COMMENT_MARKER = "#"
DEFAULT_SCHEME = "https://"


def normalize_host(line: str) -> str | None:
    """
    Turn one line of the host list into a probe target.

    Returns None for blank lines and comments. Lines without an http(s)
    scheme get ``https://`` prepended; anything else is passed through.
    """
    raw = line.strip()
    if not raw or raw.startswith(COMMENT_MARKER):
        return None
    if raw.lower().startswith(("http://", "https://")):
        return raw
    return DEFAULT_SCHEME + raw


def iter_hosts(lines: Iterable[str]) -> Iterator[str]:
    for line in lines:
        url = normalize_host(line)
        if url is not None:
            yield url


def read_hosts(path: str | Path) -> list[str]:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise InputSourceError(f"Cannot read host list {p}: {exc}") from exc
    return list(iter_hosts(text.splitlines()))


def extract_domains(csv_path: str | Path, column: int = 1) -> Iterator[str]:
    """
    Yield one domain per row of a ranking CSV such as ``rank,domain``.

    The first row is treated as a header and skipped.
    """
    p = Path(csv_path)
    if not p.is_file():
        raise InputSourceError(f"CSV file not found: {p}")
    return _iter_column(p, column)


def _iter_column(p: Path, column: int) -> Iterator[str]:
    with p.open(newline="", encoding="utf-8", errors="replace") as f:
        reader = csv.reader(f)
        next(reader, None)
        for row in reader:
            if len(row) <= column:
                continue
            value = row[column].replace('"', "").strip()
            if value:
                yield value


def write_domains(domains: Iterable[str], out_path: str | Path) -> int:
    count = 0
    with Path(out_path).open("w", encoding="utf-8") as f:
        for domain in domains:
            f.write(f"{domain}\n")
            count += 1
    return count

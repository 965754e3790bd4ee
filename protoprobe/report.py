from __future__ import annotations

import csv
import threading
from pathlib import Path
from typing import IO

from .errors import ReportError
from .models import ResultRecord

FIELDS: tuple[str, ...] = (
    "url",
    "effective_url",
    "final_protocol",
    "http3_attempt",
    "http2_attempt",
    "http1_attempt",
    "fallback_chain",
    "http3_advertised",
    "response_code",
    "error",
)


def record_to_row(record: ResultRecord) -> list[str]:
    return [
        record.url,
        record.effective_url,
        record.final_protocol.value,
        record.http3_attempt.value,
        record.http2_attempt.value,
        record.http1_attempt.value,
        record.fallback_chain,
        "true" if record.http3_advertised else "false",
        "" if record.response_code is None else str(record.response_code),
        record.error,
    ]


class ReportWriter:
    """
    Append-only CSV sink, one fully quoted row per host.

    Rows are written whole under a lock and flushed immediately, so
    concurrent producers never interleave and an interrupted run keeps
    every row it finished. Any write failure raises ReportError.
    """

    def __init__(self, stream: IO[str], write_header: bool = True) -> None:
        self._stream = stream
        self._writer = csv.writer(stream, quoting=csv.QUOTE_ALL, lineterminator="\n")
        self._lock = threading.Lock()
        self.rows_written = 0
        if write_header:
            self._emit(",".join(FIELDS) + "\n")

    @classmethod
    def open(cls, path: str | Path) -> ReportWriter:
        """Create (or truncate) the report file and write the header row."""
        try:
            stream = Path(path).open("w", newline="", encoding="utf-8")
        except OSError as exc:
            raise ReportError(f"Cannot open report {path}: {exc}") from exc
        return cls(stream)

    def write(self, record: ResultRecord) -> None:
        row = record_to_row(record)
        with self._lock:
            try:
                self._writer.writerow(row)
                self._stream.flush()
            except (OSError, ValueError) as exc:
                raise ReportError(f"Cannot write report row: {exc}") from exc
            self.rows_written += 1

    def _emit(self, text: str) -> None:
        try:
            self._stream.write(text)
            self._stream.flush()
        except (OSError, ValueError) as exc:
            raise ReportError(f"Cannot write report header: {exc}") from exc

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> ReportWriter:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

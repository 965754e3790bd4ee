from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from .config import ProbeConfig
from .errors import ReportError
from .hosts import read_hosts
from .http3 import is_http3_available
from .orchestrator import FallbackOrchestrator, SupportsProbe
from .probe import Prober
from .report import ReportWriter

log = logging.getLogger(__name__)


async def probe_hosts(
    urls: Iterable[str],
    writer: ReportWriter,
    config: ProbeConfig | None = None,
    prober: SupportsProbe | None = None,
) -> int:
    """
    Run the fallback cascade for every URL and write one row per URL.

    At most ``config.concurrency`` hosts are in flight at once. Rows are
    written as hosts finish. Returns the number of rows written.
    """
    cfg = config or ProbeConfig()
    orchestrator = FallbackOrchestrator(prober or Prober(cfg))
    semaphore = asyncio.Semaphore(cfg.concurrency)

    async def one(url: str) -> None:
        async with semaphore:
            record = await orchestrator.run(url)
            writer.write(record)

    before = writer.rows_written
    if cfg.concurrency == 1:
        for url in urls:
            await one(url)
    else:
        try:
            async with asyncio.TaskGroup() as group:
                for url in urls:
                    group.create_task(one(url))
        except ExceptionGroup as errors:
            # A dead sink aborts the run; surface it as the plain error.
            failed, _ = errors.split(ReportError)
            if failed is None:
                raise
            raise failed.exceptions[0] from None
    return writer.rows_written - before


def run_probe(
    input_path: str | Path,
    output_path: str | Path,
    config: ProbeConfig | None = None,
) -> int:
    """
    Probe every host listed in ``input_path`` and write the CSV report.

    Raises InputSourceError before any probing if the list cannot be read,
    and ReportError if the report cannot be written.
    """
    cfg = config or ProbeConfig()
    urls = read_hosts(input_path)
    if not is_http3_available():
        log.warning("aioquic is not installed; every HTTP/3 attempt will fail")
    log.info("Probing %d hosts (timeout=%gs, concurrency=%d)", len(urls), cfg.timeout, cfg.concurrency)

    with ReportWriter.open(output_path) as writer:
        count = asyncio.run(probe_hosts(urls, writer, cfg))
    log.info("Wrote %d rows to %s", count, output_path)
    return count

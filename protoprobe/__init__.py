__version__ = "0.1.0"

from protoprobe.altsvc import advertises_http3
from protoprobe.config import ProbeConfig
from protoprobe.hosts import normalize_host, read_hosts
from protoprobe.http3 import is_http3_available
from protoprobe.models import (
    FinalProtocol,
    HeaderBlock,
    ProbeAttempt,
    ProbeMode,
    ResultRecord,
    TierStatus,
)
from protoprobe.orchestrator import FallbackOrchestrator
from protoprobe.probe import Prober
from protoprobe.report import ReportWriter
from protoprobe.runner import probe_hosts, run_probe

__all__ = [
    "__version__",
    "advertises_http3",
    "ProbeConfig",
    "normalize_host",
    "read_hosts",
    "is_http3_available",
    "FinalProtocol",
    "HeaderBlock",
    "ProbeAttempt",
    "ProbeMode",
    "ResultRecord",
    "TierStatus",
    "FallbackOrchestrator",
    "Prober",
    "ReportWriter",
    "probe_hosts",
    "run_probe",
]

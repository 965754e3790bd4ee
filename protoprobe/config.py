from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace

from . import __version__

ENV_PREFIX = "PROTOPROBE_"
DEFAULT_USER_AGENT = f"protoprobe/{__version__}"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"Expected a boolean, got {raw!r}")


@dataclass(frozen=True)
class ProbeConfig:
    """
    Settings shared by every probe attempt of a run.

    Each field can be overridden from the environment as
    ``PROTOPROBE_<FIELD>`` (e.g. ``PROTOPROBE_TIMEOUT=5``).
    """

    # Seconds allowed for one attempt, redirects included.
    timeout: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT
    max_redirects: int = 10
    # Hosts probed at once; 1 keeps report rows in input order.
    concurrency: int = 1
    verify: bool = True

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_redirects < 0:
            raise ValueError("max_redirects cannot be negative")
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ProbeConfig:
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            if f.type == "float":
                overrides[f.name] = float(raw)
            elif f.type == "int":
                overrides[f.name] = int(raw)
            elif f.type == "bool":
                overrides[f.name] = _parse_bool(raw)
            else:
                overrides[f.name] = raw
        return cls(**overrides)

    def with_overrides(self, **changes: object) -> ProbeConfig:
        """Return a copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

"""
Protocol fallback cascade.

Each host walks a fixed state machine::

    START -> TRY_V3 -success-> DONE_H3
                    -fail----> TRY_V2 -success-> DONE_H2
                                      -fail----> TRY_V1_1 -success-> DONE_H1
                                                          -fail----> TRY_DIAGNOSTIC -> DONE_FAIL

One probe attempt is made per TRY_* state, so a host costs at most four
network attempts and the diagnostic attempt only happens once every pinned
tier has failed.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from contextlib import ExitStack
from enum import Enum
from typing import Protocol

from .altsvc import advertises_http3
from .models import (
    PINNED_TIERS,
    FinalProtocol,
    ProbeAttempt,
    ProbeMode,
    ResultRecord,
    TierStatus,
)

log = logging.getLogger(__name__)

CHAIN_SEPARATOR = "->"
ERROR_SEPARATOR = "; "


class State(Enum):
    START = "start"
    TRY_V3 = "try_v3"
    TRY_V2 = "try_v2"
    TRY_V1_1 = "try_v1.1"
    TRY_DIAGNOSTIC = "try_diagnostic"
    DONE_H3 = "done_h3"
    DONE_H2 = "done_h2"
    DONE_H1 = "done_h1"
    DONE_FAIL = "done_fail"

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_PROTOCOLS


STATE_MODES: dict[State, ProbeMode] = {
    State.TRY_V3: ProbeMode.PINNED_V3,
    State.TRY_V2: ProbeMode.PINNED_V2,
    State.TRY_V1_1: ProbeMode.PINNED_V1_1,
    State.TRY_DIAGNOSTIC: ProbeMode.DIAGNOSTIC,
}

TERMINAL_PROTOCOLS: dict[State, FinalProtocol] = {
    State.DONE_H3: FinalProtocol.H3,
    State.DONE_H2: FinalProtocol.H2,
    State.DONE_H1: FinalProtocol.HTTP1_1,
    State.DONE_FAIL: FinalProtocol.FAIL,
}

# state -> (next on success, next on failure)
_TRANSITIONS: dict[State, tuple[State, State]] = {
    State.START: (State.TRY_V3, State.TRY_V3),
    State.TRY_V3: (State.DONE_H3, State.TRY_V2),
    State.TRY_V2: (State.DONE_H2, State.TRY_V1_1),
    State.TRY_V1_1: (State.DONE_H1, State.TRY_DIAGNOSTIC),
    State.TRY_DIAGNOSTIC: (State.DONE_FAIL, State.DONE_FAIL),
}


def next_state(state: State, succeeded: bool = False) -> State:
    """Advance the cascade; only the outcome of the current TRY_* state matters."""
    try:
        on_success, on_failure = _TRANSITIONS[state]
    except KeyError:
        raise ValueError(f"{state.name} is terminal") from None
    return on_success if succeeded else on_failure


def tier_statuses(
    attempts: Mapping[ProbeMode, ProbeAttempt],
) -> tuple[TierStatus, TierStatus, TierStatus]:
    statuses = []
    for mode in PINNED_TIERS:
        attempt = attempts.get(mode)
        if attempt is None:
            statuses.append(TierStatus.NOT_ATTEMPTED)
        elif attempt.succeeded:
            statuses.append(TierStatus.SUCCESS)
        else:
            statuses.append(TierStatus.FAIL)
    return statuses[0], statuses[1], statuses[2]


def fallback_chain(tiers: Sequence[TierStatus]) -> str:
    """
    Render the tiers walked, e.g. ``h3->h2`` or ``h3->h2->h1.1->fail``.

    The chain stops at the first successful tier; when no tier succeeded it
    ends with ``fail``.
    """
    labels: list[str] = []
    for mode, status in zip(PINNED_TIERS, tiers):
        if status is TierStatus.NOT_ATTEMPTED:
            break
        labels.append(mode.label)
        if status is TierStatus.SUCCESS:
            return CHAIN_SEPARATOR.join(labels)
    labels.append("fail")
    return CHAIN_SEPARATOR.join(labels)


class SupportsProbe(Protocol):
    async def probe(self, url: str, mode: ProbeMode) -> ProbeAttempt: ...


class FallbackOrchestrator:
    """
    Runs the cascade for one host at a time and classifies the outcome.

    Header blocks of every attempt are released before ``run`` returns, on
    every path, so nothing captured for one host outlives it.
    """

    def __init__(self, prober: SupportsProbe) -> None:
        self.prober = prober

    async def run(self, url: str) -> ResultRecord:
        attempts: dict[ProbeMode, ProbeAttempt] = {}
        with ExitStack() as cleanup:
            state = next_state(State.START)
            while not state.terminal:
                mode = STATE_MODES[state]
                attempt = await self.prober.probe(url, mode)
                cleanup.callback(attempt.release)
                attempts[mode] = attempt
                state = next_state(state, attempt.succeeded)
            record = self._finalize(url, state, attempts)
        log.info(
            "%s: %s (%s)%s",
            url,
            record.final_protocol.value,
            record.fallback_chain,
            ", h3 advertised" if record.http3_advertised else "",
        )
        return record

    def _finalize(
        self,
        url: str,
        state: State,
        attempts: Mapping[ProbeMode, ProbeAttempt],
    ) -> ResultRecord:
        final_protocol = TERMINAL_PROTOCOLS[state]
        tiers = tier_statuses(attempts)

        if final_protocol is FinalProtocol.FAIL:
            deciding = attempts.get(ProbeMode.DIAGNOSTIC)
            error = ERROR_SEPARATOR.join(
                attempts[mode].error
                for mode in (*PINNED_TIERS, ProbeMode.DIAGNOSTIC)
                if mode in attempts and attempts[mode].error
            )
        else:
            deciding = next(a for a in attempts.values() if a.succeeded)
            error = ""

        return ResultRecord(
            url=url,
            effective_url=deciding.effective_url if deciding else "",
            final_protocol=final_protocol,
            http3_attempt=tiers[0],
            http2_attempt=tiers[1],
            http1_attempt=tiers[2],
            fallback_chain=fallback_chain(tiers),
            http3_advertised=advertises_http3(deciding.headers if deciding else None),
            response_code=deciding.status_code if deciding else None,
            error=error,
        )

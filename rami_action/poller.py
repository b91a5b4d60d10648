"""Bounded polling of the review status endpoint."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from rami_action.schema import ReviewOutcome, ReviewStatus, StatusQuery

DEFAULT_MAX_WAIT_SECONDS = 300.0
DEFAULT_POLL_INTERVAL_SECONDS = 15.0

logger = logging.getLogger(__name__)


class StatusSource(Protocol):
    """Anything that can answer a status query."""

    def get_status(self, query: StatusQuery) -> ReviewOutcome: ...


class ProgressLog(Protocol):
    """Sink for operator-facing progress messages."""

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...


class PollState(StrEnum):
    """Poller states."""

    POLLING = "polling"
    DONE = "done"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class PollConfig:
    """Timing limits for one polling run."""

    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS

    def __post_init__(self) -> None:
        if not math.isfinite(self.max_wait_seconds):
            raise ValueError("max_wait_seconds must be finite.")
        if not math.isfinite(self.poll_interval_seconds):
            raise ValueError("poll_interval_seconds must be finite.")
        if self.max_wait_seconds < 0:
            raise ValueError("max_wait_seconds must be non-negative.")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive.")


@dataclass(frozen=True, slots=True)
class PollResult:
    """Final poller state with the last outcome observed."""

    state: PollState
    outcome: ReviewOutcome
    attempts: int
    elapsed_seconds: float

    @property
    def timed_out(self) -> bool:
        return self.state is PollState.TIMED_OUT


class StatusPoller:
    """Poll ``get_status`` until the review is terminal or the budget runs out.

    Call failures are not caught: only non-terminal successful responses are
    retried. ``clock`` and ``sleep`` are injectable so tests can drive the
    loop without real delays.
    """

    def __init__(
        self,
        source: StatusSource,
        config: PollConfig | None = None,
        *,
        sink: ProgressLog,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._source = source
        self._config = config or PollConfig()
        self._sink = sink
        self._clock = clock
        self._sleep = sleep
        self.state = PollState.POLLING
        self.attempts = 0

    def run(self, query: StatusQuery) -> PollResult:
        """Poll until DONE or TIMED_OUT."""
        started_at = self._clock()
        max_wait = self._config.max_wait_seconds
        interval = self._config.poll_interval_seconds
        while True:
            self.state = PollState.POLLING
            self.attempts += 1
            outcome = self._source.get_status(query)
            if outcome.is_terminal:
                return self._finish(PollState.DONE, outcome, started_at)

            elapsed = self._clock() - started_at
            if elapsed >= max_wait:
                self._sink.warning(f"Review did not complete within {max_wait:g} seconds")
                return self._finish(PollState.TIMED_OUT, outcome, started_at)

            remaining = round(max_wait - elapsed)
            phase = "not started yet" if outcome.status is ReviewStatus.NOT_FOUND else "in progress"
            self._sink.info(
                f"Review {phase} (attempt {self.attempts}). "
                f"Waiting {interval:g}s before retry ({remaining}s remaining)..."
            )
            self._sleep(interval)

    def _finish(self, state: PollState, outcome: ReviewOutcome, started_at: float) -> PollResult:
        self.state = state
        elapsed = self._clock() - started_at
        logger.debug("Polling finished state=%s attempts=%d", state, self.attempts)
        self._sink.info(f"Poll completed after {self.attempts} attempt(s)")
        return PollResult(
            state=state,
            outcome=outcome,
            attempts=self.attempts,
            elapsed_seconds=elapsed,
        )

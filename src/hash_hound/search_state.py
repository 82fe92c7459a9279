from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

from hash_hound.digest_codec import TargetDigest


class EngineState(str, Enum):
    """Lifecycle of one search run.

    IDLE:      No run in flight.
    RUNNING:   The scanning worker is reading candidates.
    MATCHED:   A candidate hashed to the target.
    EXHAUSTED: Every line was tried without a match.
    CANCELLED: The caller cancelled the run.
    FAILED:    Reading the dictionary failed mid-run.
    """
    IDLE = "idle"
    RUNNING = "running"
    MATCHED = "matched"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
    FAILED = "failed"


# ---------- Immutable snapshot (for UI/events) ----------
@dataclass(frozen=True, slots=True)
class ProgressTick:
    """Read-only copy of the search counters at one point in time."""

    version: int
    attempts_made: int
    total_candidates: Optional[int]
    elapsed: float
    malformed_lines: int = 0
    state: EngineState = EngineState.RUNNING

    @property
    def percent(self) -> Optional[float]:
        if self.total_candidates is None:
            return None
        if self.total_candidates == 0:
            return 100.0
        return min(self.attempts_made / self.total_candidates * 100, 100.0)

    @property
    def rate(self) -> float:
        """Attempts per second."""
        if self.elapsed <= 0:
            return 0.0
        return self.attempts_made / self.elapsed


# ---------- Mutable working state (for the scan loop) ----------
@dataclass(slots=True)
class SearchState:
    """Counters owned by the scanning worker for the duration of a run."""

    attempts_made: int = 0
    malformed_lines: int = 0
    total_candidates: Optional[int] = None
    running: bool = False
    version: int = 0
    started_at: float = 0.0
    stopped_at: Optional[float] = None

    def start(self) -> None:
        self.attempts_made = 0
        self.malformed_lines = 0
        self.version = 0
        self.stopped_at = None
        self.started_at = time.perf_counter()
        self.running = True

    def stop(self) -> None:
        self.stopped_at = time.perf_counter()
        self.running = False

    @property
    def elapsed(self) -> float:
        if not self.started_at:
            return 0.0
        end = self.stopped_at if self.stopped_at is not None else time.perf_counter()
        return end - self.started_at

    def snapshot(self, state: EngineState = EngineState.RUNNING) -> ProgressTick:
        self.version += 1
        return ProgressTick(
            version=self.version,
            attempts_made=self.attempts_made,
            total_candidates=self.total_candidates,
            elapsed=self.elapsed,
            malformed_lines=self.malformed_lines,
            state=state,
        )


# ---------- Terminal outcomes ----------
@dataclass(frozen=True, slots=True)
class Matched:
    candidate: str
    digest: TargetDigest
    line_number: int
    tick: ProgressTick
    state: EngineState = field(default=EngineState.MATCHED, init=False)


@dataclass(frozen=True, slots=True)
class Exhausted:
    tick: ProgressTick
    state: EngineState = field(default=EngineState.EXHAUSTED, init=False)


@dataclass(frozen=True, slots=True)
class Cancelled:
    tick: ProgressTick
    state: EngineState = field(default=EngineState.CANCELLED, init=False)


@dataclass(frozen=True, slots=True)
class Failed:
    reason: str
    tick: ProgressTick
    state: EngineState = field(default=EngineState.FAILED, init=False)


type SearchOutcome = Matched | Exhausted | Cancelled | Failed


class CancelToken:
    """Cancellation flag shared between the caller and the scanning worker."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def event(self) -> threading.Event:
        return self._event


# ---------- Consumer interfaces ----------
class ProgressReporter(Protocol):
    """Receives progress ticks synchronously on the scanning thread.

    The scan waits for each call to return. Consumers that may be slow should
    read `SearchHandle.progress` instead, which never holds up the scan.
    """

    def __call__(self, tick: ProgressTick) -> None: ...


class ResultSink(Protocol):
    """Receives the terminal outcome exactly once."""

    def __call__(self, outcome: SearchOutcome) -> None: ...

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

import structlog

from hash_hound.candidate_source import CandidateSource, count_lines
from hash_hound.config import CountMode, SearchSettings
from hash_hound.digest_codec import TargetDigest
from hash_hound.errors import AlreadyRunning
from hash_hound.hash_matcher import HashMatcher
from hash_hound.search_state import (
    CancelToken,
    Cancelled,
    EngineState,
    Exhausted,
    Failed,
    Matched,
    ProgressReporter,
    ProgressTick,
    ResultSink,
    SearchOutcome,
    SearchState,
)
from hash_hound.state_queue import SingleSlotQueue

log = structlog.get_logger(__name__)

type TotalSource = int | Future[Optional[int]] | None


def _resolve_total(total: TotalSource) -> Optional[int]:
    """Current best known candidate total, without waiting on a running count."""
    if total is None or isinstance(total, int):
        return total
    if not total.done() or total.cancelled() or total.exception() is not None:
        return None
    return total.result()


def run_search(
    target: TargetDigest,
    source: CandidateSource,
    state: SearchState,
    cancel_token: CancelToken,
    progress: SingleSlotQueue[ProgressTick],
    *,
    progress_interval: int,
    total: TotalSource = None,
    reporter: Optional[ProgressReporter] = None,
) -> SearchOutcome:
    """
    Scan `source` in file order for the first line whose MD5 equals `target`.
    - cancel_token is checked before every candidate
    - a tick is published every `progress_interval` attempts, plus one at the
      start and one at the end
    - lines that are not valid UTF-8 count as attempts but are never hashed
    Returns the terminal outcome. OSError while reading becomes Failed.
    `reporter` is called inline; `progress` is the path that never blocks.
    """

    def emit(tick: ProgressTick) -> None:
        progress.publish(tick)
        if reporter is not None:
            reporter(tick)

    matcher = HashMatcher(target)
    matches = matcher.matches
    is_cancelled = cancel_token.event.is_set

    state.total_candidates = _resolve_total(total)
    state.start()
    emit(state.snapshot())
    next_tick = progress_interval

    try:
        for line in source.lines():
            if is_cancelled():
                state.stop()
                tick = state.snapshot(EngineState.CANCELLED)
                emit(tick)
                return Cancelled(tick)

            state.attempts_made += 1
            if line.text is None:
                state.malformed_lines += 1
                log.debug("skipping malformed line", line=line.number)
            elif matches(line.raw):
                state.stop()
                tick = state.snapshot(EngineState.MATCHED)
                emit(tick)
                return Matched(line.text, target, line.number, tick)

            if state.attempts_made >= next_tick:
                next_tick += progress_interval
                if state.total_candidates is None:
                    state.total_candidates = _resolve_total(total)
                emit(state.snapshot())

    except OSError as e:
        state.stop()
        tick = state.snapshot(EngineState.FAILED)
        emit(tick)
        return Failed(f"I/O error reading {source.path}: {e}", tick)

    # Every line has been read, so the exact total is now known.
    state.total_candidates = state.attempts_made
    state.stop()
    tick = state.snapshot(EngineState.EXHAUSTED)
    emit(tick)
    return Exhausted(tick)


@dataclass
class SearchHandle:
    """Caller-side view of one run: cancel it, read progress, wait for the outcome."""

    cancel_token: CancelToken
    progress: SingleSlotQueue[ProgressTick] = field(default_factory=SingleSlotQueue)
    future: Optional[Future[SearchOutcome]] = None
    total: TotalSource = None

    def cancel(self) -> None:
        self.cancel_token.cancel()

    def done(self) -> bool:
        return self.future is not None and self.future.done()

    def result(self, timeout: Optional[float] = None) -> SearchOutcome:
        """Block until the run finishes. Re-raises internal errors from the worker."""
        return self.future.result(timeout)

    @property
    def total_candidates(self) -> Optional[int]:
        return _resolve_total(self.total)

    @property
    def state(self) -> EngineState:
        if not self.done():
            return EngineState.RUNNING
        if self.future.exception() is not None:
            return EngineState.FAILED
        return self.future.result().state


class SearchEngine:
    """Runs one dictionary search at a time on a worker thread."""

    def __init__(self, settings: Optional[SearchSettings] = None) -> None:
        self.settings = settings or SearchSettings()
        self.last_outcome: Optional[SearchOutcome] = None
        self._lock = threading.Lock()
        self._state = EngineState.IDLE
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="hash-hound")

    @property
    def state(self) -> EngineState:
        with self._lock:
            return self._state

    def __enter__(self) -> SearchEngine:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def _ensure_idle(self) -> None:
        if self._state is EngineState.RUNNING:
            raise AlreadyRunning("a search is already running; cancel it or wait for it to finish")

    def start(
        self,
        target: TargetDigest,
        source: CandidateSource,
        *,
        cancel_token: Optional[CancelToken] = None,
        reporter: Optional[ProgressReporter] = None,
        sink: Optional[ResultSink] = None,
    ) -> SearchHandle:
        """Begin scanning `source` for `target` and return immediately.

        The engine takes ownership of `source` and closes it when the run ends.
        Progress is published to `handle.progress` without waiting on readers;
        `reporter`, if given, runs inline on the scanning thread.
        """
        with self._lock:
            self._ensure_idle()

        handle = SearchHandle(cancel_token=cancel_token or CancelToken())
        count_cancel = threading.Event()

        try:
            match self.settings.count_mode:
                case CountMode.BLOCKING:
                    handle.total = count_lines(source.path, self.settings.buffer_size, handle.cancel_token.event)
                case CountMode.BACKGROUND:
                    handle.total = self._executor.submit(
                        count_lines, source.path, self.settings.buffer_size, count_cancel
                    )
                case CountMode.OFF:
                    handle.total = None
        except BaseException:
            source.close()
            raise

        with self._lock:
            if self._state is EngineState.RUNNING:
                count_cancel.set()
                raise AlreadyRunning("a search is already running; cancel it or wait for it to finish")
            self._state = EngineState.RUNNING

        log.info(
            "search started",
            target=target.hex(),
            dictionary=str(source.path),
            total=handle.total_candidates,
            count_mode=self.settings.count_mode.value,
        )
        try:
            handle.future = self._executor.submit(self._run, target, source, handle, count_cancel, reporter)
        except RuntimeError:
            with self._lock:
                self._state = EngineState.IDLE
            count_cancel.set()
            source.close()
            raise

        if sink is not None:
            def deliver(future: Future[SearchOutcome]) -> None:
                if not future.cancelled() and future.exception() is None:
                    sink(future.result())

            handle.future.add_done_callback(deliver)
        return handle

    def cancel(self, handle: SearchHandle) -> None:
        """Request cancellation. Safe to call repeatedly and from any thread."""
        if not handle.cancel_token.cancelled:
            log.info("cancellation requested")
        handle.cancel()

    def search(self, target: TargetDigest, source: CandidateSource, **kwargs) -> SearchOutcome:
        """Run a search and wait for its outcome."""
        return self.start(target, source, **kwargs).result()

    def _run(
        self,
        target: TargetDigest,
        source: CandidateSource,
        handle: SearchHandle,
        count_cancel: threading.Event,
        reporter: Optional[ProgressReporter],
    ) -> SearchOutcome:
        outcome: Optional[SearchOutcome] = None
        try:
            with source:
                outcome = run_search(
                    target,
                    source,
                    SearchState(),
                    handle.cancel_token,
                    handle.progress,
                    progress_interval=self.settings.progress_interval,
                    total=handle.total,
                    reporter=reporter,
                )
            self._log_outcome(outcome)
            return outcome
        except Exception:
            log.exception("search aborted by internal error")
            raise
        finally:
            # Always close the queue so the UI can exit.
            handle.progress.close()
            count_cancel.set()
            with self._lock:
                self._state = EngineState.IDLE
                self.last_outcome = outcome

    @staticmethod
    def _log_outcome(outcome: SearchOutcome) -> None:
        match outcome:
            case Matched(candidate=candidate, line_number=line_number, tick=tick):
                log.info("match found", candidate=candidate, line=line_number, attempts=tick.attempts_made)
            case Exhausted(tick=tick):
                log.info("dictionary exhausted", attempts=tick.attempts_made, malformed=tick.malformed_lines)
            case Cancelled(tick=tick):
                log.info("search cancelled", attempts=tick.attempts_made)
            case Failed(reason=reason, tick=tick):
                log.error("search failed", reason=reason, attempts=tick.attempts_made)

import io
import threading

import pytest
from rich.console import Console

from hash_hound.digest_codec import digest_of
from hash_hound.search_state import (
    Cancelled,
    EngineState,
    Exhausted,
    Failed,
    Matched,
    ProgressTick,
)
from hash_hound.state_queue import SingleSlotQueue
from hash_hound.ui import (
    RunInfo,
    advance_clock,
    format_count,
    format_elapsed,
    outcome_message,
    render,
    summary_table,
    ui_loop,
)

INFO = RunInfo(target_hex=digest_of("world").hex(), dictionary="words.txt")


def render_text(renderable) -> str:
    console = Console(record=True, width=120)
    console.print(renderable)
    return console.export_text()


def tick(**kwargs) -> ProgressTick:
    values = dict(version=1, attempts_made=1234, total_candidates=10_000, elapsed=2.0)
    values.update(kwargs)
    return ProgressTick(**values)


class TestFormatting:
    """Test suite for display helpers"""

    @pytest.mark.parametrize("seconds,expected", [
        (0, "00:00:00"),
        (59.9, "00:00:59"),
        (3725, "01:02:05"),
        (90_000, "25:00:00"),
    ])
    def test_format_elapsed(self, seconds, expected):
        assert format_elapsed(seconds) == expected

    def test_format_count(self):
        assert format_count(1234567) == "1,234,567"
        assert format_count(None) == "unknown"


class TestProgressTick:
    """Test suite for derived tick values"""

    def test_percent(self):
        assert tick(attempts_made=2500).percent == 25.0

    def test_percent_unknown_total(self):
        assert tick(total_candidates=None).percent is None

    def test_percent_empty_dictionary(self):
        assert tick(attempts_made=0, total_candidates=0).percent == 100.0

    def test_percent_capped(self):
        """A stale estimate never shows more than 100%"""
        assert tick(attempts_made=20_000).percent == 100.0

    def test_rate(self):
        assert tick(attempts_made=1000, elapsed=2.0).rate == 500.0
        assert tick(elapsed=0.0).rate == 0.0


class TestRender:
    """Test suite for the live panel"""

    def test_waiting(self):
        assert "Waiting for first update" in render_text(render(INFO, None, show_logs=False))

    def test_progress(self):
        text = render_text(render(INFO, tick(), show_logs=False))
        assert INFO.target_hex in text
        assert "1,234" in text
        assert "10,000" in text
        assert "00:00:02" in text
        assert "12.3%" in text

    def test_unknown_total(self):
        text = render_text(render(INFO, tick(total_candidates=None), show_logs=False))
        assert "unknown" in text
        assert "?%" in text

    def test_malformed_shown(self):
        text = render_text(render(INFO, tick(malformed_lines=3), show_logs=False))
        assert "Malformed" in text

    def test_with_log_panel(self):
        assert "Logs" in render_text(render(INFO, tick()))


class TestOutcomeMessage:
    """Test suite for the final message"""

    def test_matched(self):
        outcome = Matched("wo[b]rld", digest_of("wo[b]rld"), 2, tick(state=EngineState.MATCHED))
        text = render_text(outcome_message(outcome, INFO.target_hex))
        assert "Match found!" in text
        assert "wo[b]rld" in text
        assert INFO.target_hex in text

    def test_exhausted(self):
        assert "No match found" in render_text(outcome_message(Exhausted(tick()), INFO.target_hex))

    def test_cancelled(self):
        assert "cancelled" in render_text(outcome_message(Cancelled(tick()), INFO.target_hex))

    def test_failed(self):
        text = render_text(outcome_message(Failed("I/O error reading x", tick()), INFO.target_hex))
        assert "I/O error reading x" in text

    def test_summary(self):
        text = render_text(summary_table(Exhausted(tick())))
        assert "1,234" in text
        assert "617/s" in text


class TestUiLoop:
    """Test suite for the live loop"""

    def test_returns_last_tick_when_queue_closes(self):
        q: SingleSlotQueue[ProgressTick] = SingleSlotQueue()
        q.publish(tick(version=1))
        q.publish(tick(version=2, state=EngineState.EXHAUSTED))
        q.close()
        console = Console(file=io.StringIO(), width=120)
        last = ui_loop(q, INFO, console=console)
        assert last.version == 2
        assert last.state is EngineState.EXHAUSTED

    def test_elapsed_keeps_moving_between_ticks(self):
        """A stalled scan still shows a running clock"""
        q: SingleSlotQueue[ProgressTick] = SingleSlotQueue()
        q.publish(tick(attempts_made=0, elapsed=0.0))
        closer = threading.Timer(2.4, q.close)
        closer.start()
        output = io.StringIO()
        try:
            last = ui_loop(q, INFO, console=Console(file=output, width=120))
        finally:
            closer.cancel()
        assert last.elapsed == 0.0
        assert "00:00:02" in output.getvalue()


class TestAdvanceClock:
    """Test suite for the live elapsed estimate"""

    def test_running_tick_advances(self):
        advanced = advance_clock(tick(elapsed=2.0), received_at=10.0, now=13.5)
        assert advanced.elapsed == 5.5
        assert advanced.attempts_made == 1234

    def test_finished_tick_is_frozen(self):
        final = tick(state=EngineState.MATCHED)
        assert advance_clock(final, received_at=10.0, now=100.0) is final

    def test_no_tick_yet(self):
        assert advance_clock(None, received_at=10.0, now=11.0) is None

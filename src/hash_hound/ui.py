import logging
import time
from dataclasses import dataclass, replace
from typing import Optional

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table

from hash_hound.config import UI_REFRESH_PER_SECOND
from hash_hound.logging_config import LOG_BUFFER
from hash_hound.search_state import (
    Cancelled,
    EngineState,
    Exhausted,
    Failed,
    Matched,
    ProgressTick,
    SearchOutcome,
)
from hash_hound.state_queue import SingleSlotQueue

LOG_LINES_VISIBLE = 8

LEVEL_STYLE = {
    logging.DEBUG: "dim",
    logging.INFO: "",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "bold red",
}


@dataclass(frozen=True, slots=True)
class RunInfo:
    """Static facts about the run shown above the counters."""

    target_hex: str
    dictionary: str


def format_elapsed(seconds: float) -> str:
    """hh:mm:ss, hours keep growing past 24."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_count(value: Optional[int]) -> str:
    if value is None:
        return "unknown"
    return f"{value:,}"


def render_log_panel(title: str, max_lines: int) -> Panel:
    """Render exactly max_lines log entries (cropped to width, no wrap)."""
    items = list(LOG_BUFFER)[-max_lines:]
    if len(items) < max_lines:
        items = [("", "")] * (max_lines - len(items)) + items

    grid = Table.grid(padding=(0, 0))
    grid.add_column(no_wrap=True, overflow="crop")
    for lvl, msg in items:
        style = LEVEL_STYLE.get(lvl, "")
        grid.add_row(f"[{style}]{escape(msg)}[/{style}]" if style else escape(msg))
    return Panel(grid, title=title, padding=(0, 1))


def render(info: RunInfo, tick: Optional[ProgressTick], show_logs: bool = True):
    """Render the search progress snapshot."""
    if tick is None:
        body = Panel("Waiting for first update…", title="hash-hound", border_style="dim")
        return Group(body, render_log_panel("Logs", LOG_LINES_VISIBLE)) if show_logs else body

    table = Table.grid(padding=(0, 2))
    table.add_column("Field", style="cyan", justify="right", no_wrap=True)
    table.add_column("Value", no_wrap=True, overflow="ellipsis")
    table.add_row("Target", f"[bold]{info.target_hex}[/bold]")
    table.add_row("Dictionary", escape(info.dictionary))
    table.add_row("Words", format_count(tick.total_candidates))
    table.add_row("Attempts", f"{tick.attempts_made:,}")
    table.add_row("Elapsed", format_elapsed(tick.elapsed))
    table.add_row("Rate", f"{tick.rate:,.0f}/s")
    if tick.malformed_lines:
        table.add_row("Malformed", f"[yellow]{tick.malformed_lines:,}[/yellow]")

    percent = tick.percent
    if percent is None:
        bar = ProgressBar(total=None, width=40)
        percent_text = "  ?%"
    else:
        bar = ProgressBar(total=100, completed=percent, width=40)
        percent_text = f"{percent:5.1f}%"
    bar_row = Table.grid(padding=(0, 1))
    bar_row.add_row(bar, percent_text)

    body = Panel(Group(table, bar_row), title=f"hash-hound  |  {tick.state.value}", padding=(1, 1))
    if show_logs:
        return Group(body, render_log_panel("Logs", LOG_LINES_VISIBLE))
    return body


def advance_clock(tick: Optional[ProgressTick], received_at: float, now: float) -> Optional[ProgressTick]:
    """The tick as it would read at `now`, while the run is still going."""
    if tick is None or tick.state is not EngineState.RUNNING:
        return tick
    return replace(tick, elapsed=tick.elapsed + max(now - received_at, 0.0))


def ui_loop(state_queue: SingleSlotQueue[ProgressTick], info: RunInfo, console: Optional[Console] = None) -> Optional[ProgressTick]:
    """Redraw on every tick until the queue closes. Returns the last tick seen."""
    last: Optional[ProgressTick] = None
    received_at = time.perf_counter()
    with Live(render(info, None), refresh_per_second=UI_REFRESH_PER_SECOND, console=console, screen=False) as live:
        while True:
            # Wake up periodically so the log panel and elapsed time stay fresh.
            try:
                tick = state_queue.get(timeout=1 / UI_REFRESH_PER_SECOND)
            except TimeoutError:
                live.update(render(info, advance_clock(last, received_at, time.perf_counter())))
                continue
            if tick is None:
                break
            last = tick
            received_at = time.perf_counter()
            live.update(render(info, tick))
    return last


def outcome_message(outcome: SearchOutcome, target_hex: str) -> str:
    """Final message printed once the run is over."""
    match outcome:
        case Matched(candidate=candidate):
            return (
                "[bold green]Match found![/bold green]\n"
                f"Your hash:\n  {target_hex}\n"
                f"matches the word:\n  [bold]{escape(candidate)}[/bold]"
            )
        case Exhausted():
            return "[yellow]No match found in the dictionary.[/yellow]"
        case Cancelled():
            return "[yellow]Search cancelled.[/yellow]"
        case Failed(reason=reason):
            return f"[red]Search failed:[/red] {escape(reason)}"
    raise ValueError(f"Unknown outcome: {outcome!r}")


def summary_table(outcome: SearchOutcome) -> Table:
    tick = outcome.tick
    t = Table(show_header=False, show_edge=False, padding=(0, 2))
    t.add_column("Field", style="cyan", justify="right")
    t.add_column("Value")
    t.add_row("Attempts", f"{tick.attempts_made:,}")
    t.add_row("Words", format_count(tick.total_candidates))
    t.add_row("Elapsed", format_elapsed(tick.elapsed))
    t.add_row("Rate", f"{tick.rate:,.0f}/s")
    if tick.malformed_lines:
        t.add_row("Malformed", f"{tick.malformed_lines:,}")
    return t

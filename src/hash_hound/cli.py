from pathlib import Path
from typing import Optional

import click
import structlog
from rich.console import Console

from hash_hound.candidate_source import CandidateSource, count_lines
from hash_hound.config import (
    DEFAULT_LOG_LEVEL,
    LOG_LEVELS,
    MAX_LINE_LENGTH,
    PROGRESS_INTERVAL,
    CountMode,
    SearchSettings,
)
from hash_hound.digest_codec import TargetDigest, digest_of, parse
from hash_hound.errors import DictionaryNotFound, DictionaryUnreadable, InvalidDigestFormat
from hash_hound.logging_config import setup_logging
from hash_hound.search_engine import SearchEngine, SearchHandle
from hash_hound.search_state import CancelToken, Cancelled, EngineState, ProgressTick, SearchOutcome
from hash_hound.state_queue import SingleSlotQueue
from hash_hound.ui import RunInfo, format_elapsed, outcome_message, summary_table, ui_loop

log = structlog.get_logger(__name__)

EXIT_CODES = {
    EngineState.MATCHED: 0,
    EngineState.EXHAUSTED: 1,
    EngineState.FAILED: 1,
    EngineState.CANCELLED: 130,
}


@click.group()
def cli():
    pass


def plain_loop(state_queue: SingleSlotQueue[ProgressTick]) -> Optional[ProgressTick]:
    """Log each tick instead of drawing a live panel."""
    last = None
    while True:
        tick = state_queue.get()
        if tick is None:
            return last
        last = tick
        percent = "?" if tick.percent is None else f"{tick.percent:.1f}"
        log.info(
            "progress",
            attempts=tick.attempts_made,
            total=tick.total_candidates,
            percent=percent,
            elapsed=format_elapsed(tick.elapsed),
        )


def wait_for_outcome(engine: SearchEngine, handle: SearchHandle) -> SearchOutcome:
    """Block until the run ends. Repeated Ctrl+C keeps cancelling instead of aborting."""
    while True:
        try:
            return handle.result()
        except KeyboardInterrupt:
            engine.cancel(handle)


def run(engine: SearchEngine, target: TargetDigest, source: CandidateSource, info: RunInfo, use_ui: bool) -> SearchOutcome:
    """Start a search and follow it until it ends. Ctrl+C cancels it at any point."""
    cancel_token = CancelToken()
    try:
        # A blocking count runs on this thread, inside start().
        handle = engine.start(target, source, cancel_token=cancel_token)
    except KeyboardInterrupt:
        cancel_token.cancel()
        log.info("search cancelled before it started")
        return Cancelled(ProgressTick(0, 0, None, 0.0, state=EngineState.CANCELLED))

    try:
        if use_ui:
            ui_loop(handle.progress, info)
        else:
            plain_loop(handle.progress)
    except KeyboardInterrupt:
        engine.cancel(handle)
    return wait_for_outcome(engine, handle)


@cli.command()
@click.argument("target")
@click.argument("dictionary", type=click.Path(path_type=Path))
@click.option(
    "--progress-interval", "-n",
    type=click.IntRange(min=1),
    default=PROGRESS_INTERVAL,
    show_default=True,
    help="Attempts between progress updates.",
)
@click.option(
    "--count-mode",
    type=click.Choice([m.value for m in CountMode]),
    default=CountMode.BACKGROUND.value,
    show_default=True,
    help="How to count dictionary words for the percentage.",
)
@click.option(
    "--max-line-length",
    type=click.IntRange(min=1),
    default=MAX_LINE_LENGTH,
    show_default=True,
    help="Longer dictionary lines are skipped as malformed.",
)
@click.option("--no-ui", is_flag=True, help="Log progress lines instead of the live panel.")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default=DEFAULT_LOG_LEVEL, show_default=True)
@click.option("--log-dir", type=click.Path(file_okay=False, path_type=Path), help="Also write logs to this directory.")
def crack(
    target: str,
    dictionary: Path,
    progress_interval: int,
    count_mode: str,
    max_line_length: int,
    no_ui: bool,
    log_level: str,
    log_dir: Optional[Path],
):
    """Search DICTIONARY for the word whose MD5 digest is TARGET."""
    setup_logging(log_level, log_dir, ui=not no_ui)
    settings = SearchSettings(
        progress_interval=progress_interval,
        count_mode=CountMode(count_mode),
        max_line_length=max_line_length,
    )

    try:
        target_digest = parse(target)
        source = CandidateSource.open(dictionary, settings.buffer_size, settings.max_line_length)
    except (InvalidDigestFormat, DictionaryNotFound, DictionaryUnreadable) as e:
        raise click.ClickException(str(e)) from e

    info = RunInfo(target_hex=target_digest.hex(), dictionary=str(dictionary))
    with SearchEngine(settings) as engine:
        outcome = run(engine, target_digest, source, info, use_ui=not no_ui)

    console = Console()
    console.print(outcome_message(outcome, target_digest.hex()))
    console.print(summary_table(outcome))
    click.get_current_context().exit(EXIT_CODES[outcome.state])


@cli.command()
@click.argument("words", nargs=-1, required=True)
def digest(words: tuple[str, ...]):
    """Print the MD5 digest of each WORD, as the dictionary would hash it."""
    for word in words:
        click.echo(f"{digest_of(word).hex()}  {word}")


@cli.command()
@click.argument("dictionary", type=click.Path(path_type=Path))
def count(dictionary: Path):
    """Print the number of candidate lines in DICTIONARY."""
    try:
        total = count_lines(dictionary)
    except (DictionaryNotFound, DictionaryUnreadable) as e:
        raise click.ClickException(str(e)) from e
    click.echo(total)


if __name__ == "__main__":
    cli()

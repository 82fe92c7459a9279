from __future__ import annotations

import threading
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

import structlog

from hash_hound.config import BUFFER_SIZE, MAX_LINE_LENGTH
from hash_hound.errors import DictionaryNotFound, DictionaryUnreadable, SourceConsumed

log = structlog.get_logger(__name__)

UTF8_BOM = b"\xef\xbb\xbf"


@dataclass(frozen=True, slots=True)
class CandidateLine:
    """One dictionary line. `text` is None when the line is not valid UTF-8 or is too long.

    For an over-long line `raw` holds only the bytes read before it was cut off.
    """

    number: int
    raw: bytes
    text: Optional[str]

    @property
    def malformed(self) -> bool:
        return self.text is None


def _strip_newline(line: bytes) -> bytes:
    if line.endswith(b"\r\n"):
        return line[:-2]
    if line.endswith(b"\n"):
        return line[:-1]
    return line


def _open_binary(path: Path, buffer_size: int) -> BinaryIO:
    try:
        return open(path, "rb", buffering=buffer_size)
    except FileNotFoundError as e:
        raise DictionaryNotFound(f"Dictionary not found: {path}") from e
    except (IsADirectoryError, PermissionError) as e:
        raise DictionaryUnreadable(f"Dictionary is not readable: {path} ({e.strerror})") from e
    except OSError as e:
        raise DictionaryUnreadable(f"Could not open dictionary {path}: {e}") from e


class CandidateSource:
    """Single-pass reader over a newline delimited dictionary file.

    The file is opened eagerly so a missing or unreadable dictionary is
    reported before any search starts. Use as a context manager, or let the
    search engine close it when the run ends.
    """

    def __init__(
        self,
        path: Path,
        handle: BinaryIO,
        buffer_size: int = BUFFER_SIZE,
        max_line_length: int = MAX_LINE_LENGTH,
    ):
        self.path = path
        self.buffer_size = buffer_size
        self.max_line_length = max_line_length
        self._handle = handle
        self._consumed = False

    @classmethod
    def open(
        cls,
        path: str | Path,
        buffer_size: int = BUFFER_SIZE,
        max_line_length: int = MAX_LINE_LENGTH,
    ) -> CandidateSource:
        path = Path(path)
        if path.is_dir():
            raise DictionaryUnreadable(f"Dictionary is a directory: {path}")
        handle = _open_binary(path, buffer_size)
        log.debug("dictionary opened", path=str(path), buffer_size=buffer_size)
        return cls(path, handle, buffer_size, max_line_length)

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()
            log.debug("dictionary closed", path=str(self.path))

    def __enter__(self) -> CandidateSource:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[CandidateLine]:
        return self.lines()

    def lines(self) -> Iterator[CandidateLine]:
        """Yield dictionary lines in file order.

        OSError raised by the underlying read propagates to the caller. A line
        that fails to decode as UTF-8, or is longer than `max_line_length`
        bytes, is yielded with text=None instead; at most `max_line_length`
        bytes of a line are held in memory.
        """
        if self._consumed:
            raise SourceConsumed(f"{self.path} was already read; open it again for a new run")
        self._consumed = True
        return self._iter_lines()

    def _skip_rest_of_line(self) -> None:
        while True:
            chunk = self._handle.readline(self.buffer_size)
            if not chunk or chunk.endswith(b"\n"):
                return

    def _iter_lines(self) -> Iterator[CandidateLine]:
        limit = self.max_line_length
        # Room for a CRLF terminator after a line of exactly `limit` bytes.
        read_size = limit + 2
        for number, line in enumerate(iter(partial(self._handle.readline, read_size), b""), start=1):
            cut = len(line) == read_size and not line.endswith(b"\n")
            if cut:
                self._skip_rest_of_line()
            raw = _strip_newline(line)
            if number == 1 and raw.startswith(UTF8_BOM):
                raw = raw[len(UTF8_BOM):]
            if cut or len(raw) > limit:
                log.debug("line too long", line=number, limit=limit)
                yield CandidateLine(number, raw, None)
                continue
            try:
                text = raw.decode("utf-8")
            except UnicodeDecodeError:
                text = None
            yield CandidateLine(number, raw, text)


def count_lines(
    path: str | Path,
    buffer_size: int = BUFFER_SIZE,
    cancel: Optional[threading.Event] = None,
) -> Optional[int]:
    """Count the lines CandidateSource would yield for `path`.

    Reads in chunks of `buffer_size * 16` bytes. Returns None if `cancel` is
    set before the count finishes.
    """
    chunk_size = max(buffer_size, 1) * 16
    total = 0
    last = b""
    with _open_binary(Path(path), buffer_size) as f:
        while True:
            if cancel is not None and cancel.is_set():
                return None
            chunk = f.read(chunk_size)
            if not chunk:
                break
            total += chunk.count(b"\n")
            last = chunk

    # A final line without a trailing newline is still a line.
    if last and not last.endswith(b"\n"):
        total += 1
    return total

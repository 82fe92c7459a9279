"""
Configuration for hash_hound.
"""
from enum import Enum

from pydantic import BaseModel, Field

# Progress cadence, in attempts between ticks.
PROGRESS_INTERVAL = 50_000

# Read buffer for the dictionary file.
BUFFER_SIZE = 8192

# Longest dictionary line kept in memory, in bytes. Longer lines are malformed.
MAX_LINE_LENGTH = 64 * 1024

# Live UI redraws, roughly every 100 ms.
UI_REFRESH_PER_SECOND = 10

LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]
DEFAULT_LOG_LEVEL = "info"


class CountMode(str, Enum):
    """How the total number of candidates is obtained.

    BACKGROUND: Count on a second worker while the search runs.
    BLOCKING:   Count before the search starts.
    OFF:        Do not count; the total stays unknown until exhaustion.
    """
    BACKGROUND = "background"
    BLOCKING = "blocking"
    OFF = "off"


class SearchSettings(BaseModel):
    """Tunables for one search run."""

    progress_interval: int = Field(default=PROGRESS_INTERVAL, ge=1)
    buffer_size: int = Field(default=BUFFER_SIZE, ge=512)
    max_line_length: int = Field(default=MAX_LINE_LENGTH, ge=1)
    count_mode: CountMode = CountMode.BACKGROUND

    model_config = {"frozen": True}

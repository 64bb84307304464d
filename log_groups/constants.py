"""Constants used across the log-groups package."""

from __future__ import annotations

from .config import ParserConfig

DEFAULT_CONFIG = ParserConfig()

# Group marks
GROUP_START_OPEN = DEFAULT_CONFIG.start_open_marker
GROUP_START_CLOSE = DEFAULT_CONFIG.start_close_marker
GROUP_END_OPEN = DEFAULT_CONFIG.end_open_marker
GROUP_END_CLOSE = DEFAULT_CONFIG.end_close_marker

# Group property names, in the order a group defines them
START_MARK = "start_mark"
OUTPUT = "output"
END_MARK = "end_mark"

DEFAULT_CHUNK_SIZE = DEFAULT_CONFIG.chunk_size

"""Helpers for writing group marks into a stream."""

from __future__ import annotations

import json
import sys
from collections.abc import Mapping
from typing import Any, TextIO

from .config import ParserConfig


def make_start_group_mark(
    meta: Mapping[str, Any] | None = None, config: ParserConfig | None = None
) -> str:
    """Render the marks that open a group.

    Args:
        meta: Start metadata; merged over ``{"mark": "start"}``.
        config: Supplies the marker literals. Defaults to a new `ParserConfig`.

    Returns:
        str: Start-open marker, JSON metadata, start-close marker.

    Examples:
        make_start_group_mark({"suite": "discover"})
        # '@{open#StartLogGroup}{"mark": "start", "suite": "discover"}@{close#StartLogGroup}'
    """
    config = config or ParserConfig()
    payload = json.dumps({"mark": "start", **(meta or {})})
    return f"{config.start_open_marker}{payload}{config.start_close_marker}"


def make_end_group_mark(
    meta: Mapping[str, Any] | None = None, config: ParserConfig | None = None
) -> str:
    """Render the marks that close a group; see `make_start_group_mark`."""
    config = config or ParserConfig()
    payload = json.dumps({"mark": "end", **(meta or {})})
    return f"{config.end_open_marker}{payload}{config.end_close_marker}"


def start_group(
    meta: Mapping[str, Any] | None = None,
    stream: TextIO | None = None,
    config: ParserConfig | None = None,
) -> None:
    (stream or sys.stdout).write(make_start_group_mark(meta, config))


def end_group(
    meta: Mapping[str, Any] | None = None,
    stream: TextIO | None = None,
    config: ParserConfig | None = None,
) -> None:
    (stream or sys.stdout).write(make_end_group_mark(meta, config))

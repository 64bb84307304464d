"""
log-groups: rebuild nested log groups from marks embedded in an output stream.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    pytest -s | log-groups --tree groups.json

Library Usage:
    from log_groups import GroupTreeBuilder, Parser

    out = []
    parser = Parser(sink=out.append)
    builder = GroupTreeBuilder(parser)
    parser.feed(captured_bytes)
    parser.close()
    tree = builder.tree()
"""

from .binding import StreamBinding, bind_to_stdout, bind_to_stream
from .config import ConfigError, ParserConfig
from .constants import GROUP_END_CLOSE, GROUP_END_OPEN, GROUP_START_CLOSE, GROUP_START_OPEN
from .exceptions import (
    FormatError,
    ParseError,
    ProtocolError,
    UnexpectedTokenError,
    UnterminatedGroupError,
)
from .group import Group
from .mapper import GroupTreeBuilder
from .marks import end_group, make_end_group_mark, make_start_group_mark, start_group
from .models import GroupSnapshot, GroupTree, Mark, ParserState
from .parser import Parser
from .scanner import TokenScanner

__version__ = "0.1.0"

__all__ = [
    # Core functionality
    "Parser",
    "TokenScanner",
    "Group",
    "GroupTreeBuilder",
    # Stream integration
    "StreamBinding",
    "bind_to_stream",
    "bind_to_stdout",
    # Producing marks
    "make_start_group_mark",
    "make_end_group_mark",
    "start_group",
    "end_group",
    "GROUP_START_OPEN",
    "GROUP_START_CLOSE",
    "GROUP_END_OPEN",
    "GROUP_END_CLOSE",
    # Data models
    "GroupSnapshot",
    "GroupTree",
    "Mark",
    "ParserState",
    "ParserConfig",
    # Exceptions
    "ConfigError",
    "FormatError",
    "ParseError",
    "ProtocolError",
    "UnexpectedTokenError",
    "UnterminatedGroupError",
    # Version
    "__version__",
]

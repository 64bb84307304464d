"""Group parsing over a marked-up output stream."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable

from .config import ParserConfig, normalize_config, validate_config
from .constants import END_MARK, OUTPUT, START_MARK
from .exceptions import ParseError, ProtocolError, UnexpectedTokenError, UnterminatedGroupError
from .group import Group
from .models import EXPECTED_MARKS, Mark, ParserState
from .scanner import TokenScanner

logger = logging.getLogger(__name__)

Sink = Callable[[bytes], object]
Listener = Callable[[Group], object]


def _stdout_sink(chunk: bytes) -> None:
    stream = sys.stdout
    buffer = getattr(stream, "buffer", None)
    if buffer is None:
        stream.write(chunk.decode(stream.encoding or "utf-8", errors="replace"))
        return
    stream.flush()
    buffer.write(chunk)
    buffer.flush()


class Parser:
    """Rebuild nested groups from group marks embedded in a stream.

    A group is written as::

        START_OPEN {json start mark} START_CLOSE output END_OPEN {json end mark} END_CLOSE

    where the output may contain further complete groups. Bytes outside any
    group go to `sink` unchanged; bytes inside a group become that group's
    ``output`` property. Listeners registered with `subscribe` are told when a
    group's start mark is complete and when the whole group has closed.

    A mark that the grammar does not allow, or a start/end mark that is not
    valid JSON, closes the parser: the raw text of any groups still open and
    whatever has not been scanned yet are written to the sink, and the error
    is re-raised. After that, and after `close`, input passes straight
    through to the sink.

    Args:
        sink: Callable receiving the bytes that are not part of any group.
            Defaults to the binary buffer of `sys.stdout`.
        config: Marker literals, encoding, and unterminated-group policy.

    Examples:
        with Parser(sink=out.append) as parser:
            parser.feed(make_start_group_mark({"suite": "io"}))
            parser.feed("reading...\\n")
            parser.feed(make_end_group_mark({"ok": True}))
    """

    def __init__(self, sink: Sink | None = None, config: ParserConfig | None = None):
        config = normalize_config(config or ParserConfig())
        validate_config(config)

        self.config = config
        self._sink = sink or _stdout_sink
        self._markers = config.markers()
        self._literals = {
            mark: literal.encode(config.encoding) for mark, literal in self._markers.items()
        }
        self._scanner = TokenScanner(
            self._literals.items(), on_flush=self._on_flush, on_token=self._on_token
        )
        self._state = ParserState.IDLE
        self._stack: list[Group] = []
        # raw bytes of the outermost open group, replayed if the stream ends inside it
        self._unparsed = bytearray()
        self._group_start_listeners: list[Listener] = []
        self._group_end_listeners: list[Listener] = []
        self._close_listeners: list[Callable[[], object]] = []

    def __enter__(self) -> Parser:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @property
    def state(self) -> ParserState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is ParserState.CLOSED

    @property
    def depth(self) -> int:
        """Number of groups currently open."""
        return len(self._stack)

    @property
    def current_group(self) -> Group | None:
        return self._stack[-1] if self._stack else None

    @property
    def expected(self) -> tuple[Mark, ...]:
        return EXPECTED_MARKS[self._state]

    def subscribe(
        self,
        group_start: Listener | None = None,
        group_end: Listener | None = None,
        close: Callable[[], object] | None = None,
    ) -> None:
        """Register listeners for group events.

        Args:
            group_start: Called with a group once its start mark is parsed.
            group_end: Called with a group once it has closed and left the stack.
            close: Called once the parser stops interpreting marks, whether
                through `close` or after a fault.
        """
        if group_start is not None:
            self._group_start_listeners.append(group_start)
        if group_end is not None:
            self._group_end_listeners.append(group_end)
        if close is not None:
            self._close_listeners.append(close)

    def unsubscribe(
        self,
        group_start: Listener | None = None,
        group_end: Listener | None = None,
        close: Callable[[], object] | None = None,
    ) -> None:
        if group_start is not None:
            self._group_start_listeners.remove(group_start)
        if group_end is not None:
            self._group_end_listeners.remove(group_end)
        if close is not None:
            self._close_listeners.remove(close)

    def feed(self, chunk: bytes | bytearray | str) -> None:
        """Scan a chunk of the stream.

        Args:
            chunk: Bytes, or text encoded with the configured encoding.

        Raises:
            UnexpectedTokenError: If a mark violates the group grammar.
            FormatError: If a start or end mark is not valid JSON.
        """
        if isinstance(chunk, str):
            chunk = chunk.encode(self.config.encoding)

        if self.closed:
            if chunk:
                self._sink(bytes(chunk))
            return

        try:
            self._scanner.feed(chunk)
        except (ParseError, ProtocolError) as error:
            self._fault(error)
            raise

    def write(self, chunk: bytes | bytearray | str) -> int:
        """File-like alias of `feed`; returns the length of `chunk`."""
        self.feed(chunk)
        return len(chunk)

    def flush(self) -> None:
        """Present for file-like use; pending input may still form a mark."""

    def close(self) -> None:
        """Stop interpreting marks and write unparsed input to the sink.

        Raises:
            UnterminatedGroupError: If groups are still open and the
                configuration sets ``on_unterminated = "raise"``.
        """
        if self.closed:
            return

        depth = len(self._stack)
        remaining = self._scanner.drain()
        if depth:
            remaining = bytes(self._unparsed) + remaining
        self._shutdown(remaining)

        if depth:
            if self.config.on_unterminated == "raise":
                raise UnterminatedGroupError(depth)
            logger.warning(
                "Stream closed with %d unterminated group(s); wrote them out unparsed", depth
            )

    def _fault(self, error: Exception) -> None:
        logger.debug("Parser closed after error: %s", error)
        remaining = self._scanner.drain()
        if isinstance(error, UnexpectedTokenError):
            remaining = error.token.encode(self.config.encoding) + remaining
        if self._stack:
            remaining = bytes(self._unparsed) + remaining
        self._shutdown(remaining)

    def _shutdown(self, remaining: bytes) -> None:
        self._state = ParserState.CLOSED
        self._stack.clear()
        self._unparsed.clear()
        if remaining:
            self._sink(remaining)
        for listener in list(self._close_listeners):
            listener()

    def _on_flush(self, chunk: bytes) -> None:
        if not self._stack:
            self._sink(chunk)
            return
        self._unparsed += chunk
        self._stack[-1].write(chunk)

    def _on_token(self, mark: Mark) -> None:
        if mark not in self.expected:
            raise UnexpectedTokenError(
                self._markers[mark], [self._markers[allowed] for allowed in self.expected]
            )

        self._unparsed += self._literals[mark]

        if mark is Mark.START_OPEN:
            self._open_group()
        elif mark is Mark.START_CLOSE:
            self._begin_body()
        elif mark is Mark.END_OPEN:
            self._begin_end_mark()
        elif mark is Mark.END_CLOSE:
            self._close_group()

    def _open_group(self) -> None:
        group = Group(self.current_group, encoding=self.config.encoding)
        self._stack.append(group)
        group.start_property(START_MARK, is_json=True)
        self._state = ParserState.START_MARK

    def _begin_body(self) -> None:
        group = self._stack[-1]
        group.finish_property(START_MARK)
        self._state = ParserState.BODY
        group.start_property(OUTPUT)
        logger.debug("Group started at depth %d: %r", len(self._stack), group.start_mark)
        self._emit(self._group_start_listeners, group)

    def _begin_end_mark(self) -> None:
        group = self._stack[-1]
        group.finish_property(OUTPUT)
        group.start_property(END_MARK, is_json=True)
        self._state = ParserState.END_MARK

    def _close_group(self) -> None:
        group = self._stack[-1]
        group.finish_property(END_MARK)
        self._stack.pop()
        if self._stack:
            self._state = ParserState.BODY
        else:
            self._state = ParserState.IDLE
            self._unparsed.clear()
        logger.debug("Group ended at depth %d: %r", len(self._stack) + 1, group.end_mark)
        self._emit(self._group_end_listeners, group)

    @staticmethod
    def _emit(listeners: list[Listener], group: Group) -> None:
        for listener in list(listeners):
            listener(group)

"""Incremental marker scanning over a byte stream."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Hashable, Iterable


class TokenScanner:
    """Split incoming bytes into plain spans and marker tokens.

    Chunks may be split anywhere, even in the middle of a marker. The scanner
    keeps the shortest tail of unclassified input that could still grow into
    a marker, so the flushed bytes and token events are the same however the
    input is chunked.

    `feed` is safe to call from inside the callbacks: the chunk is queued and
    the scan loop that is already running picks it up before returning.

    Args:
        tokens: Pairs of ``(kind, literal)``. Earlier pairs win when two
            literals match at the same index.
        on_flush: Called with each span of bytes known not to be part of a token.
        on_token: Called with the kind of each token found, in stream order.

    Examples:
        scanner = TokenScanner([("open", b"<<"), ("close", b">>")], out.append, kinds.append)
        scanner.feed(b"a<")
        scanner.feed(b"<b>>")
    """

    def __init__(
        self,
        tokens: Iterable[tuple[Hashable, bytes]],
        on_flush: Callable[[bytes], None],
        on_token: Callable[[Hashable], None],
    ):
        self._tokens = tuple((kind, bytes(literal)) for kind, literal in tokens)
        if not self._tokens:
            raise ValueError("at least one token literal is required")
        if any(not literal for _, literal in self._tokens):
            raise ValueError("token literals must not be empty")

        self._on_flush = on_flush
        self._on_token = on_token
        self._window = bytearray()
        self._queue: deque[bytes] = deque()
        self._scanning = False

    @property
    def max_token_length(self) -> int:
        return max(len(literal) for _, literal in self._tokens)

    @property
    def pending(self) -> bytes:
        """Bytes held back because they may begin a token."""
        return bytes(self._window)

    def feed(self, chunk: bytes) -> None:
        """Queue `chunk` and scan until every queued chunk is processed.

        Args:
            chunk: Bytes to scan; may be empty.
        """
        self._queue.append(bytes(chunk))
        if self._scanning:
            return

        self._scanning = True
        try:
            while self._queue:
                self._window += self._queue.popleft()
                self._scan()
        finally:
            self._scanning = False

    def drain(self) -> bytes:
        """Remove and return all unscanned input, window first, then the queue."""
        remaining = bytes(self._window) + b"".join(self._queue)
        self._window.clear()
        self._queue.clear()
        return remaining

    def _scan(self) -> None:
        while True:
            match = self._find_earliest()
            if match is None:
                self._trim()
                return

            index, kind, literal = match
            self._flush(bytes(self._window[:index]))
            del self._window[: index + len(literal)]
            self._on_token(kind)

    def _find_earliest(self) -> tuple[int, Hashable, bytes] | None:
        earliest = None
        for kind, literal in self._tokens:
            index = self._window.find(literal)
            if index < 0:
                continue
            # strict comparison keeps the earliest-declared token on ties
            if earliest is None or index < earliest[0]:
                earliest = (index, kind, literal)
        return earliest

    def _partial_token_length(self) -> int:
        """Length of the longest window suffix that is a strict token prefix."""
        window = self._window
        keep = 0
        for _, literal in self._tokens:
            for size in range(min(len(literal) - 1, len(window)), keep, -1):
                if window.endswith(literal[:size]):
                    keep = size
                    break
        return keep

    def _trim(self) -> None:
        flush_end = len(self._window) - self._partial_token_length()
        if flush_end <= 0:
            return
        chunk = bytes(self._window[:flush_end])
        del self._window[:flush_end]
        self._flush(chunk)

    def _flush(self, chunk: bytes) -> None:
        if chunk:
            self._on_flush(chunk)

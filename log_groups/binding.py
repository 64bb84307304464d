"""Attach a parser to an existing text stream such as ``sys.stdout``."""

from __future__ import annotations

import atexit
import codecs
import logging
import sys
from typing import Any, TextIO

from .config import ParserConfig
from .parser import Parser

logger = logging.getLogger(__name__)

_MISSING = object()


class StreamBinding:
    """Route everything written to `stream` through a `Parser`.

    While installed, ``stream.write`` feeds the parser; text outside groups
    reaches the stream through its original ``write``. Closing the binding
    closes the parser and puts the original ``write`` back.

    Args:
        stream: Text stream whose ``write`` attribute can be replaced.
        config: Parser configuration.

    Examples:
        with bind_to_stream(sys.stdout) as binding:
            builder = GroupTreeBuilder(binding.parser)
            run_tests()
        report(builder.tree())
    """

    def __init__(self, stream: TextIO, config: ParserConfig | None = None):
        self.stream = stream
        self._original_write = stream.write
        # a write set on the instance itself is put back as is; otherwise the attribute is deleted
        self._own_write: Any = getattr(stream, "__dict__", {}).get("write", _MISSING)
        self.parser = Parser(sink=self._write_through, config=config)
        self._decoder = codecs.getincrementaldecoder(self.parser.config.encoding)(errors="replace")
        self.installed = False

    def __enter__(self) -> StreamBinding:
        if not self.installed:
            self.install()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def install(self) -> None:
        if self.installed:
            raise RuntimeError("binding is already installed")
        self.stream.write = self._write
        self.installed = True
        logger.debug("Bound parser to %r", self.stream)

    def close(self) -> None:
        """Close the parser, then restore the stream's original ``write``."""
        try:
            self.parser.close()
            tail = self._decoder.decode(b"", final=True)
            if tail:
                self._original_write(tail)
        finally:
            self._restore()

    def _restore(self) -> None:
        if not self.installed:
            return
        if self._own_write is _MISSING:
            del self.stream.write
        else:
            self.stream.write = self._own_write
        self.installed = False
        logger.debug("Restored original write on %r", self.stream)

    def _write(self, text: str) -> int:
        return self.parser.write(text)

    def _write_through(self, chunk: bytes) -> None:
        text = self._decoder.decode(chunk)
        if text:
            self._original_write(text)


def bind_to_stream(stream: TextIO, config: ParserConfig | None = None) -> StreamBinding:
    """Install a `StreamBinding` on `stream` and return it."""
    binding = StreamBinding(stream, config)
    binding.install()
    return binding


def bind_to_stdout(config: ParserConfig | None = None) -> StreamBinding:
    """Bind ``sys.stdout`` and close the binding when the interpreter exits."""
    binding = bind_to_stream(sys.stdout, config)
    atexit.register(binding.close)
    return binding

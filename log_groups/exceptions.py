"""Package-specific exception types."""

from __future__ import annotations

from collections.abc import Sequence


class ParseError(ValueError):
    """Base class for errors caused by the content of a parsed stream.

    Any `ParseError` raised while scanning is fatal to the parser instance.
    """


class UnexpectedTokenError(ParseError):
    """Raised when a marker arrives that the group grammar does not allow.

    Args:
        token: Literal text of the offending marker.
        expected: Literal text of the markers that were allowed instead.
    """

    def __init__(self, token: str, expected: Sequence[str]):
        self.token = token
        self.expected = tuple(expected)
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        if not self.expected:
            return f"Unexpected token {self.token}, no tokens expected"
        return f"Unexpected token {self.token}, expected one of {', '.join(self.expected)}"


class FormatError(ParseError):
    """Raised when a property marked as JSON does not hold valid JSON.

    Args:
        property_name: Name of the property being finished.
        text: Decoded text that failed to parse.
    """

    def __init__(self, property_name: str, text: str):
        self.property_name = property_name
        self.text = text
        super().__init__(f"Property `{property_name}` is not valid JSON: {text!r}")


class UnterminatedGroupError(ParseError):
    """Raised when a stream closes while groups are still open.

    Args:
        depth: Number of groups left open.
    """

    def __init__(self, depth: int):
        self.depth = depth
        super().__init__(f"Stream closed with {depth} unterminated group(s)")


class ProtocolError(RuntimeError):
    """Raised when a group's property protocol is misused.

    Always a bug in the code driving the group, never in the stream.
    """

"""Groups and their property accumulation protocol."""

from __future__ import annotations

import json
from typing import Any

from .exceptions import FormatError, ProtocolError
from .models import PendingProperty


class Group:
    """One nested region of a stream.

    Values are attached with a three-step protocol: `start_property` opens a
    named accumulator, `write` appends bytes to it, and `finish_property`
    decodes the bytes and stores the result. Only one property can be open
    at a time and every name can be defined once. Finished properties read
    like attributes::

        group.start_property("start_mark", is_json=True)
        group.write(b'{"suite": "parser"}')
        group.finish_property("start_mark")
        group.start_mark  # {"suite": "parser"}

    Args:
        parent: Group enclosing this one, or None at the top level. The
            reference is only used to place the group in a tree.
        encoding: Codec used to encode text chunks and decode finished values.
    """

    def __init__(self, parent: Group | None = None, encoding: str = "utf-8"):
        self._parent = parent
        self._encoding = encoding
        self._properties: dict[str, Any] = {}
        self._pending: PendingProperty | None = None

    def __getattr__(self, name: str) -> Any:
        # only reached when normal attribute lookup fails
        properties = self.__dict__.get("_properties", {})
        if name in properties:
            return properties[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __repr__(self) -> str:
        names = ", ".join(self._properties)
        return f"<Group properties=[{names}] pending={self.pending!r}>"

    @property
    def parent(self) -> Group | None:
        return self._parent

    @property
    def pending(self) -> str | None:
        """Name of the property currently open, if any."""
        return self._pending.name if self._pending is not None else None

    @property
    def defined_properties(self) -> tuple[str, ...]:
        return tuple(self._properties)

    def get(self, name: str, default: Any = None) -> Any:
        return self._properties.get(name, default)

    def start_property(self, name: str, is_json: bool = False) -> None:
        """Open an empty accumulator for `name`.

        Raises:
            ProtocolError: If another property is open, `name` is already
                defined, or `name` shadows a `Group` attribute.
        """
        if self._pending is not None:
            raise ProtocolError(
                f"property `{self._pending.name}` has to be finished before "
                f"`{name}` can be started"
            )
        if name in self._properties:
            raise ProtocolError(f"property `{name}` is already defined")
        if _is_reserved(name):
            raise ProtocolError(f"property name `{name}` is reserved")

        self._pending = PendingProperty(name=name, is_json=is_json)

    def write(self, chunk: bytes | str) -> None:
        """Append `chunk` to the open property.

        Raises:
            ProtocolError: If no property is open.
        """
        if self._pending is None:
            raise ProtocolError("no pending property to write in group")
        if isinstance(chunk, str):
            chunk = chunk.encode(self._encoding)
        self._pending.buffer += chunk

    def finish_property(self, name: str) -> Any:
        """Decode the open property and store it under `name`.

        Returns:
            The stored value: the decoded text, or the parsed JSON value when
            the property was started with ``is_json=True``.

        Raises:
            ProtocolError: If no property is open or `name` is not the open one.
            FormatError: If a JSON property does not hold valid JSON.
        """
        pending = self._pending
        if pending is None:
            raise ProtocolError("group does not have a pending property to finish")
        if pending.name != name:
            raise ProtocolError(
                f"cannot finish property `{name}` while `{pending.name}` is pending"
            )

        value: Any = pending.buffer.decode(self._encoding, errors="replace")
        if pending.is_json:
            try:
                value = json.loads(value)
            except json.JSONDecodeError as error:
                raise FormatError(name, value) from error

        self._properties[name] = value
        self._pending = None
        return value

    def serialize(self) -> dict[str, Any]:
        """Return finished properties in the order they were defined."""
        return dict(self._properties)


def _is_reserved(name: str) -> bool:
    return name.startswith("_") or hasattr(Group, name)

"""Data models for log-groups."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from types import MappingProxyType
from typing import Any


class Mark(Enum):
    """Roles of the four group-delimiting marker tokens.

    Declaration order is also the tie-break order when two markers could
    match at the same index.

    Attributes:
        START_OPEN: Opens a group and its JSON start mark.
        START_CLOSE: Closes the start mark; the group body follows.
        END_OPEN: Ends the group body and opens the JSON end mark.
        END_CLOSE: Closes the end mark and the group.
    """

    START_OPEN = auto()
    START_CLOSE = auto()
    END_OPEN = auto()
    END_CLOSE = auto()

    @property
    def field_name(self) -> str:
        """Name of the `ParserConfig` field holding this marker's literal."""
        return f"{self.name.lower()}_marker"


class ParserState(Enum):
    """Parser states, one per position in the group grammar.

    Attributes:
        IDLE: Between groups at the top level.
        START_MARK: Reading a group's JSON start mark.
        BODY: Capturing a group's output; nested groups may open here.
        END_MARK: Reading a group's JSON end mark.
        CLOSED: No further marks are interpreted; input passes through.
    """

    IDLE = auto()
    START_MARK = auto()
    BODY = auto()
    END_MARK = auto()
    CLOSED = auto()


EXPECTED_MARKS: dict[ParserState, tuple[Mark, ...]] = {
    ParserState.IDLE: (Mark.START_OPEN,),
    ParserState.START_MARK: (Mark.START_CLOSE,),
    ParserState.BODY: (Mark.START_OPEN, Mark.END_OPEN),
    ParserState.END_MARK: (Mark.END_CLOSE,),
    ParserState.CLOSED: (),
}


@dataclass
class PendingProperty:
    """A group property that has been started but not finished.

    Attributes:
        name: Property name.
        is_json: Whether the accumulated text is parsed as JSON when finished.
        buffer: Bytes received so far, in arrival order.
    """

    name: str
    is_json: bool = False
    buffer: bytearray = field(default_factory=bytearray)


# Property names as they appear in exported JSON trees
EXPORTED_KEYS = {"start_mark": "startMark", "end_mark": "endMark"}


@dataclass(frozen=True)
class GroupSnapshot:
    """Immutable view of a closed group and the groups nested in it.

    Attributes:
        properties: Finished group properties in definition order.
        children: Snapshots of the groups that closed inside this one.
    """

    properties: Mapping[str, Any]
    children: tuple[GroupSnapshot, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))
        object.__setattr__(self, "children", tuple(self.children))

    def __getitem__(self, name: str) -> Any:
        return self.properties[name]

    @property
    def start_mark(self) -> Any:
        return self.properties.get("start_mark")

    @property
    def output(self) -> Any:
        return self.properties.get("output")

    @property
    def end_mark(self) -> Any:
        return self.properties.get("end_mark")

    def to_dict(self) -> dict[str, Any]:
        """Return plain, JSON-serializable data for this snapshot.

        ``start_mark`` and ``end_mark`` are exported as ``startMark`` and
        ``endMark``, the names producers of group marks use.
        """
        return {
            **{EXPORTED_KEYS.get(name, name): value for name, value in self.properties.items()},
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class GroupTree:
    """Root of a group tree.

    Attributes:
        children: Snapshots of the top-level groups, in closing order.
        root: Always True; marks this node as the tree root.
    """

    children: tuple[GroupSnapshot, ...] = ()
    root: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "children": [child.to_dict() for child in self.children],
        }

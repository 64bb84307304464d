"""Assemble closed groups into a tree."""

from __future__ import annotations

from .group import Group
from .models import GroupSnapshot, GroupTree
from .parser import Parser


class GroupTreeBuilder:
    """Collect the groups a parser closes into a `GroupTree`.

    Groups close innermost first, so by the time a group ends every child it
    will ever have is already collected under it. The builder only listens;
    it never changes how the parser behaves. Groups that are still open when
    the parser closes are left out of the tree, along with their children.

    Args:
        parser: Parser whose ``group_end`` events are collected.

    Examples:
        parser = Parser(sink=out.append)
        builder = GroupTreeBuilder(parser)
        parser.feed(stream_bytes)
        builder.tree().children[0].start_mark
    """

    def __init__(self, parser: Parser):
        self._top_level: list[GroupSnapshot] = []
        self._children_by_parent: dict[Group, list[GroupSnapshot]] = {}
        parser.subscribe(group_end=self.on_group_end, close=self.on_close)

    def children_of(self, group: Group) -> list[GroupSnapshot]:
        return self._children_by_parent.setdefault(group, [])

    def on_group_end(self, group: Group) -> None:
        snapshot = GroupSnapshot(
            properties=group.serialize(),
            children=tuple(self._children_by_parent.pop(group, ())),
        )
        if group.parent is not None:
            self.children_of(group.parent).append(snapshot)
        else:
            self._top_level.append(snapshot)

    def on_close(self) -> None:
        # groups left open by a fault or an unterminated stream never end
        self._children_by_parent.clear()

    def tree(self) -> GroupTree:
        return GroupTree(children=tuple(self._top_level))

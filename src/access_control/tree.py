"""Immutable access-object tree.

The tree is static reference data provisioned by ``load_access_objects``. It is
loaded into an arena keyed by object name plus a parent -> children index, and
exposed as frozen nodes so a loaded tree can be shared without copying.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

from .models import AccessObject, Action

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionNode:
    name: str
    type: str
    description: str = ""


@dataclass(frozen=True)
class AccessObjectNode:
    """An access object with its actions and (recursively) its children."""

    name: str
    type: str
    parent_name: str | None = None
    actions: tuple[ActionNode, ...] = ()
    children: tuple["AccessObjectNode", ...] = field(default=(), repr=False)


@dataclass(frozen=True)
class _Record:
    name: str
    type: str
    parent_name: str | None
    actions: tuple[ActionNode, ...]


class AccessObjectTree:
    """Read-only view over the access-object hierarchy."""

    def __init__(self, records: Iterable[_Record]):
        self._records: dict[str, _Record] = {}
        self._children: dict[str | None, list[str]] = {}
        for record in records:
            self._records[record.name] = record
            self._children.setdefault(record.parent_name, []).append(record.name)

        self._nodes: dict[str, AccessObjectNode] = {}
        self._roots = tuple(self._build(name, set()) for name in self._root_names())

        unreachable = sorted(set(self._records) - set(self._nodes))
        if unreachable:
            logger.warning("Access objects unreachable from any root are ignored: %s", unreachable)

        self._action_index: dict[str, AccessObjectNode] = {}
        for node in self.walk():
            for action in node.actions:
                self._action_index[action.name] = node

    def _root_names(self) -> list[str]:
        # Objects whose parent is missing are treated as roots too.
        roots = list(self._children.get(None, []))
        for parent_name, names in self._children.items():
            if parent_name is not None and parent_name not in self._records:
                logger.warning("Access objects %s reference missing parent %s", names, parent_name)
                roots.extend(names)
        return roots

    def _build(self, name: str, path: set[str]) -> AccessObjectNode:
        record = self._records[name]
        path = path | {name}
        children = tuple(
            self._build(child, path) for child in self._children.get(name, []) if child not in path
        )
        node = AccessObjectNode(
            name=record.name,
            type=record.type,
            parent_name=record.parent_name,
            actions=record.actions,
            children=children,
        )
        self._nodes[name] = node
        return node

    @classmethod
    def load(cls) -> "AccessObjectTree":
        """Build the tree from the database in two queries."""
        actions_by_object: dict[int, list[ActionNode]] = {}
        for object_id, name, action_type, description in Action.objects.order_by(
            "position", "id"
        ).values_list("access_object_id", "name", "type", "description"):
            actions_by_object.setdefault(object_id, []).append(ActionNode(name, action_type, description))

        records = [
            _Record(name, object_type, parent_name, tuple(actions_by_object.get(pk, ())))
            for pk, name, object_type, parent_name in AccessObject.objects.order_by(
                "position", "id"
            ).values_list("id", "name", "type", "parent__name")
        ]
        return cls(records)

    @classmethod
    def from_definitions(cls, definitions: Iterable[Mapping]) -> "AccessObjectTree":
        """Build a tree from nested definitions.

        Each definition is ``{"name", "type", "actions": [{"name", "type",
        "description"}], "children": [...]}``.
        """
        records: list[_Record] = []

        def visit(definition: Mapping, parent_name: str | None) -> None:
            actions = tuple(
                ActionNode(item["name"], item["type"], item.get("description", ""))
                for item in definition.get("actions", ())
            )
            records.append(_Record(definition["name"], definition["type"], parent_name, actions))
            for child in definition.get("children", ()):
                visit(child, definition["name"])

        for definition in definitions:
            visit(definition, None)
        return cls(records)

    def get_tree(self) -> tuple[AccessObjectNode, ...]:
        return self._roots

    def walk(self) -> Iterator[AccessObjectNode]:
        """Yield every reachable node depth-first in structural order."""
        stack = list(reversed(self._roots))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def get(self, name: str) -> AccessObjectNode | None:
        return self._nodes.get(name)

    def find_action(self, action_name: str) -> AccessObjectNode | None:
        """Return the object exposing ``action_name`` or None."""
        return self._action_index.get(action_name)

    def all_action_names(self) -> frozenset[str]:
        return frozenset(self._action_index)

    def __len__(self) -> int:
        return len(self._nodes)


__all__ = ["AccessObjectTree", "AccessObjectNode", "ActionNode"]

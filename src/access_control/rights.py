"""Effective rights evaluation.

Direct and inherited grants are reported as two separate flags: revoking an
action on a child role can never remove a grant held by one of its ancestors,
and the console needs to show which of the two applies.
"""

from dataclasses import dataclass

from .grants import GrantStore
from .roles import RoleGraph
from .tree import AccessObjectNode, AccessObjectTree


@dataclass(frozen=True)
class ActionGrant:
    action_name: str
    action_type: str
    action_description: str
    own_grant: bool
    parent_grant: bool


@dataclass(frozen=True)
class EvaluatedObject:
    object_name: str
    object_type: str
    actions: tuple[ActionGrant, ...]
    children: tuple["EvaluatedObject", ...]


@dataclass(frozen=True)
class FlatGrant:
    object_name: str
    object_parent_name: str | None
    object_type: str
    action_name: str
    action_type: str
    action_description: str
    own_grant: bool
    parent_grant: bool


class RightsEvaluator:
    """Annotate the access-object tree with a role's grant status."""

    @staticmethod
    def _grant_sets(role_name: str) -> tuple[set[str], set[str]]:
        chain = RoleGraph.get_ancestor_chain(role_name)
        grants = GrantStore.get_direct_grants_for(chain)
        own = grants[role_name]
        inherited: set[str] = set()
        for ancestor in chain[1:]:
            inherited |= grants[ancestor]
        return own, inherited

    @classmethod
    def evaluate(cls, role_name: str, tree: AccessObjectTree | None = None) -> list[EvaluatedObject]:
        """Return the whole tree with ``own_grant``/``parent_grant`` per action.

        Raises ``UnknownRole`` before any work if the role does not exist.
        Grants on actions that are not part of the tree are not reported.
        """
        own, inherited = cls._grant_sets(role_name)
        tree = tree or AccessObjectTree.load()
        return [cls._annotate(node, own, inherited) for node in tree.get_tree()]

    @classmethod
    def _annotate(cls, node: AccessObjectNode, own: set[str], inherited: set[str]) -> EvaluatedObject:
        return EvaluatedObject(
            object_name=node.name,
            object_type=node.type,
            actions=tuple(
                ActionGrant(
                    action_name=action.name,
                    action_type=action.type,
                    action_description=action.description,
                    own_grant=action.name in own,
                    parent_grant=action.name in inherited,
                )
                for action in node.actions
            ),
            children=tuple(cls._annotate(child, own, inherited) for child in node.children),
        )

    @classmethod
    def effective_actions(cls, role_name: str) -> set[str]:
        """Return every action the role holds directly or by inheritance."""
        own, inherited = cls._grant_sets(role_name)
        return own | inherited

    @staticmethod
    def flatten(evaluated: list[EvaluatedObject]) -> list[FlatGrant]:
        """One row per action, depth-first, carrying the owning object's parent."""
        rows: list[FlatGrant] = []

        def visit(item: EvaluatedObject, parent_name: str | None) -> None:
            for action in item.actions:
                rows.append(
                    FlatGrant(
                        object_name=item.object_name,
                        object_parent_name=parent_name,
                        object_type=item.object_type,
                        action_name=action.action_name,
                        action_type=action.action_type,
                        action_description=action.action_description,
                        own_grant=action.own_grant,
                        parent_grant=action.parent_grant,
                    )
                )
            for child in item.children:
                visit(child, item.object_name)

        for root in evaluated:
            visit(root, None)
        return rows


__all__ = ["RightsEvaluator", "ActionGrant", "EvaluatedObject", "FlatGrant"]

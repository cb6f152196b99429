"""Role hierarchy service.

``RoleGraph`` is the sole authority over role existence and the single-parent
inheritance forest. Hierarchy queries load the ``(name, parent)`` pairs in one
query and walk them in memory with a visited set, so corrupted data (a parent
cycle written behind the ORM's back) surfaces as ``CycleDetected`` instead of
an endless loop.
"""

import logging
from collections import deque

from django.conf import settings
from django.db import IntegrityError, transaction

from .errors import (
    CycleDetected,
    DuplicateRole,
    RoleHasChildren,
    RoleInUse,
    UnknownParent,
    UnknownRole,
)
from .models import Role

logger = logging.getLogger(__name__)

DELETE_POLICIES = ("reject", "reparent", "cascade")

UNSET = object()


class RoleGraph:
    """Create, query, re-parent, and delete roles."""

    @staticmethod
    def _parent_map() -> dict[str, str | None]:
        return dict(Role.objects.order_by("id").values_list("name", "parent__name"))

    @staticmethod
    def _lock_parent_map() -> dict[str, str | None]:
        """Lock every role row and return the parent map read under that lock.

        Must run inside a transaction. Every hierarchy write calls this before
        its existence and cycle checks.
        """
        rows = list(Role.objects.select_for_update().order_by("id").values_list("id", "name", "parent_id"))
        names = {pk: name for pk, name, _ in rows}
        return {name: names.get(parent_id) for _, name, parent_id in rows}

    @classmethod
    def _walk_up(cls, name: str, parents: dict[str, str | None]) -> list[str]:
        if name not in parents:
            raise UnknownRole(name)

        chain: list[str] = []
        visited: set[str] = set()
        current: str | None = name
        while current is not None:
            if current in visited:
                logger.warning("Cycle in role hierarchy while walking up from %s at %s", name, current)
                raise CycleDetected(current)
            visited.add(current)
            chain.append(current)
            current = parents.get(current)
        return chain

    @classmethod
    def get_role(cls, name: str) -> Role:
        """Return the role called ``name`` or raise ``UnknownRole``."""
        try:
            return Role.objects.select_related("parent").get(name=name)
        except Role.DoesNotExist:
            raise UnknownRole(name) from None

    @staticmethod
    def list_roles():
        return Role.objects.select_related("parent").order_by("id")

    @classmethod
    def create_role(cls, name: str, description: str = "", parent_name: str | None = None) -> Role:
        """Create a role under an optional existing parent."""
        with transaction.atomic():
            parents = cls._lock_parent_map()
            if name in parents:
                raise DuplicateRole(name)

            parent = None
            if parent_name:
                if parent_name not in parents:
                    raise UnknownParent(parent_name)
                # Refuse to grow a tree whose chain is already corrupt.
                cls._walk_up(parent_name, parents)
                parent = Role.objects.get(name=parent_name)

            try:
                role = Role.objects.create(name=name, description=description, parent=parent)
            except IntegrityError:
                # Lost a race against a concurrent create of the same name.
                raise DuplicateRole(name) from None

        logger.info("Role %s created (parent=%s)", name, parent_name)
        return role

    @classmethod
    def get_ancestor_chain(cls, name: str) -> list[str]:
        """Return ``[name, parent, grandparent, ..., root]``."""
        return cls._walk_up(name, cls._parent_map())

    @classmethod
    def get_children(cls, name: str) -> set[str]:
        """Return the names of the immediate children of ``name``."""
        if not Role.objects.filter(name=name).exists():
            raise UnknownRole(name)
        return set(Role.objects.filter(parent__name=name).values_list("name", flat=True))

    @classmethod
    def get_descendants(cls, name: str) -> list[str]:
        """Return every descendant of ``name`` breadth-first, excluding itself."""
        parents = cls._parent_map()
        if name not in parents:
            raise UnknownRole(name)
        return cls._descendants(name, parents)

    @staticmethod
    def _descendants(name: str, parents: dict[str, str | None]) -> list[str]:
        children: dict[str, list[str]] = {}
        for child, parent in parents.items():
            if parent is not None:
                children.setdefault(parent, []).append(child)

        found: list[str] = []
        seen = {name}
        queue = deque([name])
        while queue:
            for child in children.get(queue.popleft(), []):
                if child in seen:
                    continue
                seen.add(child)
                found.append(child)
                queue.append(child)
        return found

    @classmethod
    def get_family(cls, name: str) -> list[tuple[str, str | None]]:
        """Return ``(name, parent_name)`` for every node of the tree holding ``name``.

        The list starts at the root of the role's ancestor chain and continues
        breadth-first through all of the root's descendants, siblings in
        insertion order. Clients rebuild the hierarchy by matching parent names.
        """
        parents = cls._parent_map()
        root = cls._walk_up(name, parents)[-1]
        return [(root, None)] + [(child, parents[child]) for child in cls._descendants(root, parents)]

    @classmethod
    def update_role(cls, name: str, description: str | None = None, parent_name=UNSET) -> Role:
        """Update a role's description and/or move it under another parent.

        Pass ``parent_name=None`` to turn the role into a root. Moving a role
        below itself or one of its descendants raises ``CycleDetected``.
        """
        with transaction.atomic():
            parents = cls._lock_parent_map()
            if name not in parents:
                raise UnknownRole(name)
            role = Role.objects.get(name=name)
            update_fields = ["updated_at"]

            if description is not None:
                role.description = description
                update_fields.append("description")

            if parent_name is not UNSET:
                role.parent = cls._resolve_new_parent(name, parent_name, parents)
                update_fields.append("parent")

            role.save(update_fields=update_fields)

        if parent_name is not UNSET:
            logger.info("Role %s re-parented under %s", name, parent_name)
        return role

    @classmethod
    def _resolve_new_parent(cls, name: str, parent_name: str | None, parents: dict[str, str | None]) -> Role | None:
        if not parent_name:
            return None
        if parent_name not in parents:
            raise UnknownParent(parent_name)
        if name in cls._walk_up(parent_name, parents):
            raise CycleDetected(name)
        return Role.objects.get(name=parent_name)

    @classmethod
    def delete_role(cls, name: str, policy: str | None = None) -> None:
        """Delete a role according to the configured child-handling policy.

        ``reject`` refuses while children exist, ``reparent`` moves the
        children to the deleted role's parent, ``cascade`` removes the whole
        subtree. Grants of every deleted role go with it.
        """
        policy = policy or getattr(settings, "RBAC_ROLE_DELETE_POLICY", "reject")
        if policy not in DELETE_POLICIES:
            raise ValueError(f"Unknown role delete policy: {policy}")

        with transaction.atomic():
            parents = cls._lock_parent_map()
            if name not in parents:
                raise UnknownRole(name)
            role = Role.objects.select_related("parent").get(name=name)
            children = list(Role.objects.filter(parent=role).order_by("id"))

            if policy == "cascade":
                doomed = [name] + cls._descendants(name, parents)
            else:
                doomed = [name]

            if children and policy == "reject":
                raise RoleHasChildren(name, [child.name for child in children])

            in_use = Role.objects.filter(name__in=doomed, users__isnull=False).values_list("name", flat=True)
            blocked = sorted(set(in_use))
            if blocked:
                raise RoleInUse(blocked[0])

            if policy == "reparent":
                Role.objects.filter(parent=role).update(parent=role.parent)
            elif policy == "cascade":
                # Delete leaves first so PROTECT on ``parent`` never fires.
                for doomed_name in reversed(doomed[1:]):
                    Role.objects.filter(name=doomed_name).delete()

            role.delete()

        logger.info("Role %s deleted (policy=%s, removed=%s)", name, policy, doomed)


__all__ = ["RoleGraph", "DELETE_POLICIES", "UNSET"]

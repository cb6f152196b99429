"""Grant storage and validated grant reassignment."""

import logging
from collections.abc import Iterable

from django.db import transaction

from .errors import GrantConflict, UnknownAction, UnknownRole
from .models import Grant, Role
from .roles import RoleGraph
from .tree import AccessObjectTree

logger = logging.getLogger(__name__)


class GrantStore:
    """Per-role sets of directly granted action names."""

    @staticmethod
    def get_direct_grants(role_name: str) -> set[str]:
        """Return the role's direct grants; unknown roles simply have none."""
        return set(Grant.objects.filter(role__name=role_name).values_list("action_id", flat=True))

    @staticmethod
    def get_direct_grants_for(role_names: Iterable[str]) -> dict[str, set[str]]:
        """Return direct grants for several roles in a single query."""
        names = list(role_names)
        grants: dict[str, set[str]] = {name: set() for name in names}
        for role_name, action_name in Grant.objects.filter(role__name__in=names).values_list(
            "role__name", "action_id"
        ):
            grants[role_name].add(action_name)
        return grants

    @staticmethod
    def get_version(role_name: str) -> int:
        try:
            return Role.objects.values_list("grants_version", flat=True).get(name=role_name)
        except Role.DoesNotExist:
            raise UnknownRole(role_name) from None

    @staticmethod
    def _lock_role(role_name: str) -> Role:
        """Fetch the role row with a write lock; must run inside a transaction."""
        try:
            return Role.objects.select_for_update().get(name=role_name)
        except Role.DoesNotExist:
            raise UnknownRole(role_name) from None

    @classmethod
    def replace_grants(
        cls, role_name: str, action_names: Iterable[str], expected_version: int | None = None
    ) -> int:
        """Replace the role's whole direct grant set and return the new version.

        The delete, insert, and version bump commit together or not at all,
        while the role row stays locked against concurrent replacements.
        """
        wanted = set(action_names)
        with transaction.atomic():
            role = cls._lock_role(role_name)
            if expected_version is not None and expected_version != role.grants_version:
                raise GrantConflict(role_name, expected_version, role.grants_version)
            return cls._replace_locked(role, wanted)

    @staticmethod
    def _replace_locked(role: Role, wanted: set[str]) -> int:
        current = set(Grant.objects.filter(role=role).values_list("action_id", flat=True))
        removed = current - wanted
        added = wanted - current

        if removed:
            Grant.objects.filter(role=role, action_id__in=removed).delete()
        if added:
            Grant.objects.bulk_create([Grant(role=role, action_id=name) for name in sorted(added)])

        role.grants_version += 1
        role.save(update_fields=["grants_version", "updated_at"])
        logger.debug(
            "Grants of role %s now at version %s (+%s -%s)",
            role.name,
            role.grants_version,
            len(added),
            len(removed),
        )
        return role.grants_version


class GrantReassigner:
    """Validate and commit direct grant changes for a role."""

    @staticmethod
    def _validate(role_name: str, action_names: set[str], tree: AccessObjectTree | None) -> None:
        # Role first: an unknown role is reported even if actions are bad too.
        RoleGraph.get_role(role_name)
        tree = tree or AccessObjectTree.load()
        unknown = action_names - tree.all_action_names()
        if unknown:
            raise UnknownAction(unknown)

    @classmethod
    def reassign(
        cls,
        role_name: str,
        action_names: Iterable[str],
        expected_version: int | None = None,
        actor=None,
        tree: AccessObjectTree | None = None,
    ) -> int:
        """Replace ``role_name``'s direct grants with exactly ``action_names``."""
        wanted = set(action_names)
        cls._validate(role_name, wanted, tree)
        version = GrantStore.replace_grants(role_name, wanted, expected_version=expected_version)
        logger.info(
            "Grants of role %s reassigned to %d action(s) by %s (version %s)",
            role_name,
            len(wanted),
            getattr(actor, "login", None) or "system",
            version,
        )
        return version

    @classmethod
    def grant(cls, role_name: str, action_name: str, actor=None) -> int:
        """Add one action to the role's direct grants."""
        return cls._modify(role_name, action_name, add=True, actor=actor)

    @classmethod
    def revoke(cls, role_name: str, action_name: str, actor=None) -> int:
        """Remove one action from the role's direct grants.

        Revoking only touches this role: a grant inherited from an ancestor
        stays in effect.
        """
        return cls._modify(role_name, action_name, add=False, actor=actor)

    @classmethod
    def _modify(cls, role_name: str, action_name: str, add: bool, actor) -> int:
        if add:
            cls._validate(role_name, {action_name}, None)
        else:
            RoleGraph.get_role(role_name)

        # Read, modify, and replace under the same row lock so two concurrent
        # single-action edits of one role cannot lose each other's update.
        with transaction.atomic():
            role = GrantStore._lock_role(role_name)
            current = set(Grant.objects.filter(role=role).values_list("action_id", flat=True))
            wanted = current | {action_name} if add else current - {action_name}
            if wanted == current:
                return role.grants_version
            version = GrantStore._replace_locked(role, wanted)

        logger.info(
            "Action %s %s role %s by %s (version %s)",
            action_name,
            "granted to" if add else "revoked from",
            role_name,
            getattr(actor, "login", None) or "system",
            version,
        )
        return version


__all__ = ["GrantStore", "GrantReassigner"]

"""Role hierarchy tests: creation, ancestor chains, families, and deletion policies."""

from __future__ import annotations

from unittest import mock

from django.test import TestCase, override_settings

from access_control.errors import (
    CycleDetected,
    DuplicateRole,
    RoleHasChildren,
    RoleInUse,
    UnknownParent,
    UnknownRole,
)
from access_control.grants import GrantReassigner, GrantStore
from access_control.models import Role
from access_control.roles import RoleGraph
from tests.utils import create_user, load_publishing_objects


class RoleGraphTests(TestCase):
    """RoleGraph create/query behavior on a small forest.

    admin
    ├── editor
    │   └── author
    └── reviewer
    guest
    """

    @classmethod
    def setUpTestData(cls):
        RoleGraph.create_role("admin", "Administrators")
        RoleGraph.create_role("editor", parent_name="admin")
        RoleGraph.create_role("author", parent_name="editor")
        RoleGraph.create_role("reviewer", parent_name="admin")
        RoleGraph.create_role("guest")

    def test_create_role_sets_parent(self):
        role = RoleGraph.create_role("intern", "Temporary", parent_name="author")
        self.assertEqual(role.parent.name, "author")
        self.assertEqual(role.description, "Temporary")

    def test_create_duplicate_role_fails(self):
        with self.assertRaises(DuplicateRole):
            RoleGraph.create_role("admin")

    def test_create_with_unknown_parent_fails(self):
        with self.assertRaises(UnknownParent):
            RoleGraph.create_role("orphan", parent_name="nobody")
        self.assertFalse(Role.objects.filter(name="orphan").exists())

    def test_ancestor_chain_starts_with_role_and_ends_at_root(self):
        self.assertEqual(RoleGraph.get_ancestor_chain("author"), ["author", "editor", "admin"])
        self.assertEqual(RoleGraph.get_ancestor_chain("guest"), ["guest"])

    def test_ancestor_chain_of_unknown_role_fails(self):
        with self.assertRaises(UnknownRole):
            RoleGraph.get_ancestor_chain("ghost")

    def test_ancestor_chain_detects_corrupted_cycle(self):
        """A cycle written behind the service's back is reported, not looped on."""
        admin = Role.objects.get(name="admin")
        Role.objects.filter(pk=admin.pk).update(parent=Role.objects.get(name="author"))

        with self.assertRaises(CycleDetected):
            RoleGraph.get_ancestor_chain("editor")

    def test_children_are_one_level_only(self):
        self.assertEqual(RoleGraph.get_children("admin"), {"editor", "reviewer"})
        self.assertEqual(RoleGraph.get_children("author"), set())

    def test_children_of_unknown_role_fails(self):
        with self.assertRaises(UnknownRole):
            RoleGraph.get_children("ghost")

    def test_family_lists_whole_tree_from_root(self):
        family = RoleGraph.get_family("author")
        self.assertEqual(
            family,
            [("admin", None), ("editor", "admin"), ("reviewer", "admin"), ("author", "editor")],
        )

    def test_family_of_lone_root(self):
        self.assertEqual(RoleGraph.get_family("guest"), [("guest", None)])

    def test_update_description_and_reparent(self):
        RoleGraph.update_role("reviewer", description="Reviews drafts", parent_name="editor")
        self.assertEqual(RoleGraph.get_ancestor_chain("reviewer"), ["reviewer", "editor", "admin"])
        self.assertEqual(Role.objects.get(name="reviewer").description, "Reviews drafts")

    def test_reparent_to_none_makes_root(self):
        RoleGraph.update_role("editor", parent_name=None)
        self.assertEqual(RoleGraph.get_ancestor_chain("author"), ["author", "editor"])

    def test_reparent_under_descendant_is_rejected(self):
        with self.assertRaises(CycleDetected):
            RoleGraph.update_role("admin", parent_name="author")
        with self.assertRaises(CycleDetected):
            RoleGraph.update_role("editor", parent_name="editor")
        self.assertIsNone(Role.objects.get(name="admin").parent)

    def test_reparent_to_unknown_parent_fails(self):
        with self.assertRaises(UnknownParent):
            RoleGraph.update_role("editor", parent_name="nobody")

    def test_crossing_moves_cannot_close_a_loop(self):
        """The cycle check runs on the hierarchy as it stands once the lock is held.

        ``select_for_update`` only blocks on PostgreSQL; here the competing move
        is committed from inside the lock call, which is where a second writer
        would finish while the first one waits.
        """
        RoleGraph.create_role("alpha")
        RoleGraph.create_role("beta")
        lock = RoleGraph._lock_parent_map
        calls = []

        def move_beta_first():
            if not calls:
                calls.append("beta")
                RoleGraph.update_role("beta", parent_name="alpha")
            return lock()

        with mock.patch.object(RoleGraph, "_lock_parent_map", side_effect=move_beta_first):
            with self.assertRaises(CycleDetected):
                RoleGraph.update_role("alpha", parent_name="beta")

        self.assertEqual(calls, ["beta"])
        # The competing move ran in this transaction, so it rolled back with it.
        self.assertEqual(RoleGraph.get_ancestor_chain("alpha"), ["alpha"])
        self.assertEqual(RoleGraph.get_ancestor_chain("beta"), ["beta"])

    def test_hierarchy_writes_take_the_lock(self):
        lock = RoleGraph._lock_parent_map
        with mock.patch.object(RoleGraph, "_lock_parent_map", side_effect=lock) as locked:
            RoleGraph.create_role("intern", parent_name="author")
            RoleGraph.update_role("intern", parent_name="reviewer")
            RoleGraph.delete_role("intern")

        self.assertEqual(locked.call_count, 3)


class RoleDeletionTests(TestCase):
    """Deletion under the reject, reparent, and cascade policies."""

    @classmethod
    def setUpTestData(cls):
        load_publishing_objects()
        RoleGraph.create_role("admin")
        RoleGraph.create_role("editor", parent_name="admin")
        RoleGraph.create_role("author", parent_name="editor")
        GrantReassigner.reassign("editor", {"edit", "publish"})

    def test_delete_leaf_role_removes_its_grants(self):
        GrantReassigner.reassign("author", {"read"})
        RoleGraph.delete_role("author")
        self.assertFalse(Role.objects.filter(name="author").exists())
        self.assertEqual(GrantStore.get_direct_grants("author"), set())

    def test_delete_role_with_children_is_rejected_by_default(self):
        with self.assertRaises(RoleHasChildren) as ctx:
            RoleGraph.delete_role("editor")

        self.assertEqual(ctx.exception.children, ["author"])
        self.assertTrue(Role.objects.filter(name="editor").exists())
        self.assertEqual(GrantStore.get_direct_grants("editor"), {"edit", "publish"})

    def test_reparent_policy_moves_children_to_grandparent(self):
        RoleGraph.delete_role("editor", policy="reparent")
        self.assertEqual(RoleGraph.get_ancestor_chain("author"), ["author", "admin"])

    @override_settings(RBAC_ROLE_DELETE_POLICY="cascade")
    def test_cascade_policy_from_settings_removes_subtree(self):
        RoleGraph.delete_role("editor")
        self.assertEqual(list(Role.objects.values_list("name", flat=True)), ["admin"])

    def test_delete_unknown_role_fails(self):
        with self.assertRaises(UnknownRole):
            RoleGraph.delete_role("ghost")

    def test_delete_role_assigned_to_users_fails(self):
        create_user("writer", "WriterPass123", Role.objects.get(name="author"))
        with self.assertRaises(RoleInUse):
            RoleGraph.delete_role("author")
        with self.assertRaises(RoleInUse):
            RoleGraph.delete_role("editor", policy="cascade")
        self.assertEqual(Role.objects.count(), 3)

    def test_unknown_policy_is_a_programming_error(self):
        with self.assertRaises(ValueError):
            RoleGraph.delete_role("author", policy="shred")

"""Shared helpers for tests (RBAC seeding, operator creation, fake Redis)."""

from __future__ import annotations

from typing import Dict, Tuple
from unittest import mock

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from access_control.models import Role
from authentication.managers import UserManager
from authentication.services import TokenService
from scripts.management.commands.load_access_objects import load_definitions
from scripts.management.commands.seed_rbac import (
    create_seed_grants,
    create_seed_objects,
    create_seed_roles,
)

User = get_user_model()

# A small publishing app used by the rights scenarios.
PUBLISHING_OBJECTS = [
    {
        "name": "cms",
        "type": "APP",
        "actions": [{"name": "cms_open", "type": "r", "description": "Open the CMS"}],
        "children": [
            {
                "name": "articles_tab",
                "type": "TAB",
                "actions": [
                    {"name": "read", "type": "r", "description": "Read articles"},
                    {"name": "edit", "type": "w", "description": "Edit articles"},
                ],
                "children": [
                    {
                        "name": "publish_button",
                        "type": "BUTTON",
                        "actions": [{"name": "publish", "type": "s", "description": "Publish an article"}],
                    }
                ],
            },
            {
                "name": "media_tab",
                "type": "TAB",
                "actions": [{"name": "upload", "type": "w", "description": "Upload media"}],
            },
        ],
    },
    {
        "name": "reports",
        "type": "APP",
        "actions": [{"name": "export", "type": "s", "description": "Export reports"}],
    },
]


class FakeRedis:
    """Minimal Redis stub supporting the commands used by TokenService."""

    def __init__(self):
        self._store: Dict[str, str] = {}

    def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        """Mimic Redis SETEX; TTL is ignored in tests, value stored in-memory."""
        self._store[key] = value

    def get(self, key: str):
        return self._store.get(key)


class FakeRedisMixin:
    """Patch every Redis client lookup with one in-memory fake per test class."""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls.fake_redis = FakeRedis()
        cls.redis_patchers = [
            mock.patch("core.redis_client.get_redis_client", return_value=cls.fake_redis),
            mock.patch("authentication.services.get_redis_client", return_value=cls.fake_redis),
        ]
        for patcher in cls.redis_patchers:
            patcher.start()

    @classmethod
    def tearDownClass(cls):
        for patcher in cls.redis_patchers:
            patcher.stop()
        super().tearDownClass()


def seed_rbac_basics() -> Dict[str, Role]:
    """Create the seeded role chain, console objects, and baseline grants.

    Delegates to the same helpers used by the ``seed_rbac`` management command
    to keep RBAC setup logic in a single place.
    """

    roles = create_seed_roles()
    create_seed_objects()
    create_seed_grants(roles)
    return roles


def load_publishing_objects() -> Dict[str, int]:
    return load_definitions(PUBLISHING_OBJECTS)


def create_user(login: str, password: str, role: Role, **extra):
    """Create an operator with a bcrypt-hashed password for tests."""

    extra.setdefault("email", f"{login}@test.com")
    return User.objects.create(
        login=login,
        password_hash=UserManager.hash_password(password),
        role=role,
        **extra,
    )


def auth_client(user) -> Tuple[APIClient, str]:
    """Return an APIClient carrying a fresh access token for ``user``."""

    token, _ = TokenService.generate_tokens(user)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client, token


def find_object(items, name):
    """Depth-first search of a rendered nested tree for ``objectName``."""

    for item in items:
        if item["objectName"] == name:
            return item
        found = find_object(item.get("children", []), name)
        if found is not None:
            return found
    return None


def action_flags(items) -> Dict[str, Tuple[bool, bool]]:
    """Map every actionName in a rendered nested tree to (ownGrant, parentGrant)."""

    flags: Dict[str, Tuple[bool, bool]] = {}
    for item in items:
        for action in item.get("actions", []):
            flags[action["actionName"]] = (action["ownGrant"], action["parentGrant"])
        flags.update(action_flags(item.get("children", [])))
    return flags

"""Seed roles, the console's access objects, baseline grants, and demo operators."""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from access_control.grants import GrantReassigner
from access_control.models import AccessObject, Role
from authentication.managers import UserManager
from .load_access_objects import load_definitions

SEED_ROLES = [
    # (name, description, parent)
    ("Guest", "Read-only visitor.", None),
    ("User", "Regular account holder.", "Guest"),
    ("Admin", "Role and rights administrator.", "User"),
]

SEED_OBJECTS = [
    {
        "name": "console",
        "type": "APP",
        "actions": [{"name": "console_open", "type": "r", "description": "Open the account console"}],
        "children": [
            {
                "name": "profile",
                "type": "TAB",
                "actions": [
                    {"name": "profile_read", "type": "r", "description": "View own profile"},
                    {"name": "profile_edit", "type": "w", "description": "Edit own profile"},
                ],
            },
            {
                "name": "devices",
                "type": "TAB",
                "actions": [
                    {"name": "devices_read", "type": "r", "description": "List signed-in devices"},
                    {"name": "devices_revoke", "type": "w", "description": "Sign out a device"},
                ],
            },
            {
                "name": "roles",
                "type": "TAB",
                "actions": [
                    {"name": "role_admin_read", "type": "r", "description": "View roles and rights"},
                    {"name": "role_admin_write", "type": "w", "description": "Change roles and rights"},
                ],
                "children": [
                    {
                        "name": "role_delete_button",
                        "type": "BUTTON",
                        "actions": [{"name": "role_delete", "type": "s", "description": "Delete a role"}],
                    }
                ],
            },
        ],
    }
]

SEED_GRANTS = {
    "Guest": ["console_open", "profile_read"],
    "User": ["profile_edit", "devices_read", "devices_revoke"],
    "Admin": ["role_admin_read", "role_admin_write", "role_delete"],
}

DEMO_USERS = [
    # (login, email, password, role, is_superuser)
    ("admin", "admin@example.com", "adminpass", "Admin", True),
    ("user", "user@example.com", "userpass", "User", False),
    ("guest", "guest@example.com", "guestpass", "Guest", False),
]


def create_seed_roles() -> dict[str, Role]:
    """Create the base role chain if missing and return a name->Role map."""
    roles: dict[str, Role] = {}
    for name, description, parent in SEED_ROLES:
        role, _ = Role.objects.get_or_create(
            name=name,
            defaults={"description": description, "parent": roles.get(parent)},
        )
        roles[name] = role
    return roles


def create_seed_objects() -> dict[str, int]:
    """Provision the console's own access objects."""
    return load_definitions(SEED_OBJECTS, strict=True)


def create_seed_grants(roles: dict[str, Role]) -> None:
    """Replace each base role's direct grants with the seed set."""
    for name, actions in SEED_GRANTS.items():
        GrantReassigner.reassign(roles[name].name, actions)


class Command(BaseCommand):
    """Management command to seed roles, access objects, grants, and operators."""

    help = (
        "Seed the Guest -> User -> Admin role chain, the console access objects, "
        "baseline grants, and demo operators. Use --reset to clear seeded data first."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Remove seeded operators, roles, and console access objects before seeding.",
        )

    def handle(self, *args, **options):
        if options.get("reset"):
            self._reset_seeded_data()

        self.stdout.write("Seeding RBAC data...")
        roles = create_seed_roles()
        create_seed_objects()
        create_seed_grants(roles)
        self._create_demo_users(roles)
        self.stdout.write(self.style.SUCCESS("RBAC seed completed."))

    def _reset_seeded_data(self) -> None:
        """Remove only what this command creates."""
        self.stdout.write("Resetting previously seeded RBAC data...")

        User = get_user_model()
        User.objects.filter(login__in=[login for login, *_ in DEMO_USERS]).delete()

        # Children before parents: Role.parent is PROTECT.
        for name, _, _ in reversed(SEED_ROLES):
            Role.objects.filter(name=name).delete()
        AccessObject.objects.filter(name__in=[item["name"] for item in SEED_OBJECTS]).delete()

        self.stdout.write(self.style.WARNING("Seeded RBAC data cleared."))

    @staticmethod
    def _create_demo_users(roles: dict[str, Role]) -> None:
        User = get_user_model()
        for login, email, password, role_name, is_superuser in DEMO_USERS:
            User.objects.get_or_create(
                login=login,
                defaults={
                    "email": email,
                    "role": roles[role_name],
                    "password_hash": UserManager.hash_password(password),
                    "is_superuser": is_superuser,
                },
            )

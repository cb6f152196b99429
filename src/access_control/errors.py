"""Structured failures raised by the access-control core.

Every error carries a stable ``kind`` string and the HTTP status the transport
layer should use. The core only raises; ``core.exceptions`` maps these onto the
response envelope.
"""

from collections.abc import Iterable


class AccessControlError(Exception):
    """Base class for all access-control failures."""

    kind = "AccessControlError"
    status_code = 400
    default_message = "Access control error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnknownRole(AccessControlError):
    kind = "UnknownRole"
    status_code = 404

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Role '{name}' does not exist.")


class DuplicateRole(AccessControlError):
    kind = "DuplicateRole"
    status_code = 409

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Role '{name}' already exists.")


class UnknownParent(AccessControlError):
    kind = "UnknownParent"
    status_code = 400

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Parent role '{name}' does not exist.")


class CycleDetected(AccessControlError):
    kind = "CycleDetected"
    status_code = 409

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Role hierarchy cycle detected at '{name}'.")


class RoleHasChildren(AccessControlError):
    kind = "RoleHasChildren"
    status_code = 409

    def __init__(self, name: str, children: Iterable[str]):
        self.name = name
        self.children = sorted(children)
        super().__init__(
            f"Role '{name}' cannot be deleted while it has child roles: {', '.join(self.children)}."
        )


class RoleInUse(AccessControlError):
    kind = "RoleInUse"
    status_code = 409

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Role '{name}' is still assigned to users.")


class UnknownAction(AccessControlError):
    """One or more action names are not part of the access-object tree."""

    kind = "UnknownAction"
    status_code = 400

    def __init__(self, names: Iterable[str]):
        self.names = sorted(names)
        super().__init__(f"Unknown action(s): {', '.join(self.names)}.")


class GrantConflict(AccessControlError):
    kind = "GrantConflict"
    status_code = 409

    def __init__(self, role_name: str, expected: int, actual: int):
        self.role_name = role_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Grants of role '{role_name}' were modified concurrently "
            f"(expected version {expected}, current version {actual})."
        )


class AccessDenied(AccessControlError):
    """The caller is authenticated but lacks the required action."""

    kind = "AccessDenied"
    status_code = 403
    default_message = "You do not have permission to perform this action on this resource."


__all__ = [
    "AccessControlError",
    "UnknownRole",
    "DuplicateRole",
    "UnknownParent",
    "CycleDetected",
    "RoleHasChildren",
    "RoleInUse",
    "UnknownAction",
    "GrantConflict",
    "AccessDenied",
]

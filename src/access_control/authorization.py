"""Explicit caller context and action-based authorization."""

from dataclasses import dataclass

from .errors import AccessDenied, UnknownRole
from .rights import RightsEvaluator


@dataclass(frozen=True)
class AccessContext:
    """Identity of the caller, resolved by the authentication layer."""

    user_id: str
    login: str
    role_name: str | None
    is_superuser: bool = False

    @classmethod
    def from_user(cls, user) -> "AccessContext":
        # getattr keeps this usable with AbstractBaseUser-typed objects.
        return cls(
            user_id=str(user.pk),
            login=getattr(user, "login", ""),
            role_name=getattr(getattr(user, "role", None), "name", None),
            is_superuser=bool(getattr(user, "is_superuser", False)),
        )


def authorize(context: AccessContext, action_name: str, allow_superuser: bool = False) -> None:
    """Raise ``AccessDenied`` unless the caller's role holds ``action_name``.

    A caller whose role has vanished is denied rather than reported as
    ``UnknownRole``, so authorization failures never look like lookups.
    """
    if allow_superuser and context.is_superuser:
        return
    if context.role_name is None:
        raise AccessDenied()
    try:
        effective = RightsEvaluator.effective_actions(context.role_name)
    except UnknownRole:
        raise AccessDenied() from None
    if action_name not in effective:
        raise AccessDenied()


__all__ = ["AccessContext", "authorize"]

"""RBAC permission class checking the caller's effective actions."""

from django.conf import settings
from rest_framework import permissions

from .authorization import AccessContext, authorize

ACCESS_MODES = ("read", "write", "delete")


class RBACPermission(permissions.BasePermission):
    """Require the action mapped to the view's access mode.

    Views declare either ``access_mode`` or, for viewsets, ``access_modes``
    keyed by viewset action. The mode selects ``settings.RBAC_READ_ACTION``,
    ``settings.RBAC_WRITE_ACTION`` or ``settings.RBAC_DELETE_ACTION``; the
    caller's role must hold that action directly or through an ancestor.

    If ``settings.ALLOW_SUPERUSER_BYPASS`` is True, superusers pass every check.
    """

    message = "You do not have permission to perform this action on this resource."

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if not user or not getattr(user, "is_authenticated", False):
            # DRF turns this into 401 because no authenticator succeeded.
            return False

        modes = getattr(view, "access_modes", None)
        if modes is not None and getattr(view, "action", None) is None:
            # Unrouted method on a viewset; let the view answer 405.
            return True

        mode = self._get_mode(view)
        if mode is None:
            return False

        context = AccessContext.from_user(user)
        request.access_context = context
        authorize(
            context,
            self._action_for(mode),
            allow_superuser=getattr(settings, "ALLOW_SUPERUSER_BYPASS", False),
        )
        return True

    @staticmethod
    def _get_mode(view) -> str | None:
        modes = getattr(view, "access_modes", None)
        if modes is not None:
            return modes.get(view.action)
        return getattr(view, "access_mode", None)

    @staticmethod
    def _action_for(mode: str) -> str:
        if mode == "read":
            return settings.RBAC_READ_ACTION
        if mode == "delete":
            return settings.RBAC_DELETE_ACTION
        return settings.RBAC_WRITE_ACTION


__all__ = ["ACCESS_MODES", "RBACPermission"]

"""System checks for RBAC configuration."""

from django.conf import settings
from django.core.checks import Error, register

from access_control.permissions import ACCESS_MODES, RBACPermission
from access_control.roles import DELETE_POLICIES

HANDLER_ACTIONS = {
    "get": ("list", "retrieve"),
    "post": ("create",),
    "put": ("update",),
    "patch": ("partial_update",),
    "delete": ("destroy",),
}


@register()
def rbac_views_declare_access_modes(app_configs, **kwargs):
    """Ensure RBAC-protected views declare how each handler is guarded.

    Plain views need ``access_mode``; viewsets need an ``access_modes`` entry
    for every standard handler they implement and every extra ``@action``.
    """
    errors: list[Error] = []

    # Import here to avoid circular imports at module load time.
    from access_control.views import RBAC_VIEWS

    for view_cls in RBAC_VIEWS:
        if RBACPermission not in getattr(view_cls, "permission_classes", []):
            continue

        modes = getattr(view_cls, "access_modes", None)
        if modes is None:
            if getattr(view_cls, "access_mode", None) not in ACCESS_MODES:
                errors.append(
                    Error(
                        f"{view_cls.__name__} uses RBACPermission but does not "
                        f"define access_mode as one of {', '.join(ACCESS_MODES)}.",
                        obj=view_cls,
                        id="access_control.E001",
                    )
                )
            continue

        required = [
            name
            for names in HANDLER_ACTIONS.values()
            for name in names
            if hasattr(view_cls, name)
        ]
        if hasattr(view_cls, "get_extra_actions"):
            required += [extra.__name__ for extra in view_cls.get_extra_actions()]
        missing = [name for name in required if modes.get(name) not in ACCESS_MODES]
        if missing:
            errors.append(
                Error(
                    f"{view_cls.__name__} has no access mode for: {', '.join(missing)}.",
                    obj=view_cls,
                    id="access_control.E001",
                )
            )

    return errors


@register()
def rbac_settings_are_valid(app_configs, **kwargs):
    """Validate the RBAC knobs read from the environment."""
    errors: list[Error] = []

    policy = getattr(settings, "RBAC_ROLE_DELETE_POLICY", "reject")
    if policy not in DELETE_POLICIES:
        errors.append(
            Error(
                f"RBAC_ROLE_DELETE_POLICY must be one of {', '.join(DELETE_POLICIES)}; got '{policy}'.",
                id="access_control.E002",
            )
        )

    for name in ("RBAC_READ_ACTION", "RBAC_WRITE_ACTION", "RBAC_DELETE_ACTION"):
        if not getattr(settings, name, None):
            errors.append(Error(f"{name} must be set.", id="access_control.E003"))

    return errors

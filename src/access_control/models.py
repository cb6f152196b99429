"""RBAC models: Role, AccessObject, Action, and Grant."""

from django.db import models


class Role(models.Model):
    """A role in the single-parent inheritance forest."""

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )
    # Bumped on every replacement of the direct grant set.
    grants_version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name


class AccessObject(models.Model):
    """Node of the access-object tree (application, tab, or button)."""

    class Type(models.TextChoices):
        APP = "APP", "Application"
        TAB = "TAB", "Tab"
        BUTTON = "BUTTON", "Button"

    name = models.CharField(max_length=100, unique=True)
    type = models.CharField(max_length=10, choices=Type.choices)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="children",
    )
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["position", "id"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name


class Action(models.Model):
    """Named action exposed by exactly one access object."""

    class Type(models.TextChoices):
        READ = "r", "Read"
        WRITE = "w", "Write"
        SPECIAL = "s", "Special"

    name = models.CharField(max_length=100, unique=True)
    type = models.CharField(max_length=1, choices=Type.choices)
    description = models.TextField(blank=True)
    access_object = models.ForeignKey(AccessObject, on_delete=models.CASCADE, related_name="actions")
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["position", "id"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name


class Grant(models.Model):
    """A role directly grants an action."""

    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name="grants")
    action = models.ForeignKey(
        Action,
        to_field="name",
        db_column="action_name",
        on_delete=models.CASCADE,
        related_name="grants",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("role", "action")

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.role.name} -> {self.action_id}"


__all__ = ["Role", "AccessObject", "Action", "Grant"]

"""Serializers for the rights and role administration API.

Field names are camelCase to match the console's wire format.
"""

from rest_framework import serializers

from .models import Role

# Path segments routed before /roles/{name} under /roles and /admin/roles.
RESERVED_ROLE_NAMES = frozenset({"tree", "get_tree"})


class EvaluateRequestSerializer(serializers.Serializer):
    roleName = serializers.CharField(max_length=100)
    format = serializers.ChoiceField(choices=["nested", "flat"], default="nested", required=False)


class ReassignRequestSerializer(serializers.Serializer):
    roleName = serializers.CharField(max_length=100)
    actionNames = serializers.ListField(child=serializers.CharField(max_length=100), allow_empty=True)
    expectedVersion = serializers.IntegerField(min_value=0, required=False)


class SingleActionRequestSerializer(serializers.Serializer):
    roleName = serializers.CharField(max_length=100)
    actionName = serializers.CharField(max_length=100)


class ActionGrantSerializer(serializers.Serializer):
    actionName = serializers.CharField(source="action_name")
    actionType = serializers.CharField(source="action_type")
    actionDescription = serializers.CharField(source="action_description")
    ownGrant = serializers.BooleanField(source="own_grant")
    parentGrant = serializers.BooleanField(source="parent_grant")


class NestedTreeItemSerializer(serializers.Serializer):
    """Render an ``EvaluatedObject`` and its subtree."""

    objectName = serializers.CharField(source="object_name")
    objectType = serializers.CharField(source="object_type")
    actions = ActionGrantSerializer(many=True)
    children = serializers.SerializerMethodField()

    def get_children(self, obj) -> list[dict]:
        return NestedTreeItemSerializer(obj.children, many=True).data


class FlatTreeItemSerializer(serializers.Serializer):
    objectName = serializers.CharField(source="object_name")
    objectParentName = serializers.CharField(source="object_parent_name", allow_null=True)
    objectType = serializers.CharField(source="object_type")
    actionName = serializers.CharField(source="action_name")
    actionType = serializers.CharField(source="action_type")
    actionDescription = serializers.CharField(source="action_description")
    ownGrant = serializers.BooleanField(source="own_grant")
    parentGrant = serializers.BooleanField(source="parent_grant")


class ActionSerializer(serializers.Serializer):
    actionName = serializers.CharField(source="name")
    actionType = serializers.CharField(source="type")
    actionDescription = serializers.CharField(source="description")


class AccessObjectSerializer(serializers.Serializer):
    """Render an ``AccessObjectNode`` without grant annotations."""

    objectName = serializers.CharField(source="name")
    objectType = serializers.CharField(source="type")
    actions = ActionSerializer(many=True)
    children = serializers.SerializerMethodField()

    def get_children(self, obj) -> list[dict]:
        return AccessObjectSerializer(obj.children, many=True).data


class RoleSerializer(serializers.ModelSerializer):
    """List representation: ``{name, description}``."""

    class Meta:
        model = Role
        fields = ["name", "description"]
        read_only_fields = fields


class RoleDetailSerializer(serializers.ModelSerializer):
    parentName = serializers.SerializerMethodField()
    grantsVersion = serializers.IntegerField(source="grants_version")

    class Meta:
        model = Role
        fields = ["name", "description", "parentName", "grantsVersion"]
        read_only_fields = fields

    def get_parentName(self, obj) -> str | None:
        return obj.parent.name if obj.parent_id else None


class RoleCreateSerializer(serializers.Serializer):
    """Input for role creation; ``permissions`` seeds the direct grant set."""

    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    parentName = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)
    permissions = serializers.ListField(child=serializers.CharField(max_length=100), required=False)

    @staticmethod
    def validate_name(value):
        # Names must stay addressable as a single /roles/{name} path segment.
        if "/" in value:
            raise serializers.ValidationError("Role names cannot contain '/'.")
        if value in RESERVED_ROLE_NAMES:
            raise serializers.ValidationError(f"'{value}' is a reserved name.")
        return value


class RoleUpdateSerializer(serializers.Serializer):
    """Input for role updates; absent fields are left unchanged."""

    description = serializers.CharField(required=False, allow_blank=True)
    parentName = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)
    permissions = serializers.ListField(child=serializers.CharField(max_length=100), required=False)

    def validate(self, attrs):
        """Reject attempts to rename a role through this endpoint."""
        if "name" in getattr(self, "initial_data", {}) and self.initial_data["name"] != self.context.get("name"):
            raise serializers.ValidationError("Roles cannot be renamed.")
        return attrs


class RoleTreeRequestSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)


class RoleTreeNodeSerializer(serializers.Serializer):
    name = serializers.CharField()
    parentName = serializers.CharField(allow_null=True)


__all__ = [
    "EvaluateRequestSerializer",
    "ReassignRequestSerializer",
    "SingleActionRequestSerializer",
    "NestedTreeItemSerializer",
    "FlatTreeItemSerializer",
    "AccessObjectSerializer",
    "RoleSerializer",
    "RoleDetailSerializer",
    "RoleCreateSerializer",
    "RoleUpdateSerializer",
    "RoleTreeRequestSerializer",
    "RoleTreeNodeSerializer",
]

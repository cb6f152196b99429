"""Endpoints for rights evaluation, grant reassignment, and role administration."""

from django.db import transaction
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status
from rest_framework.decorators import action

from core.response import BaseAPIView, BaseViewSet, api_response
from .grants import GrantReassigner
from .permissions import RBACPermission
from .rights import RightsEvaluator
from .roles import UNSET, RoleGraph
from .serializers import (
    AccessObjectSerializer,
    EvaluateRequestSerializer,
    FlatTreeItemSerializer,
    NestedTreeItemSerializer,
    ReassignRequestSerializer,
    RoleCreateSerializer,
    RoleDetailSerializer,
    RoleSerializer,
    RoleTreeNodeSerializer,
    RoleTreeRequestSerializer,
    RoleUpdateSerializer,
    SingleActionRequestSerializer,
)
from .tree import AccessObjectTree


def _actor(request):
    return getattr(request, "access_context", None)


class RightsEvaluateView(BaseAPIView):
    """Compute the annotated access-object tree for a role."""

    permission_classes = [RBACPermission]
    access_mode = "read"

    @extend_schema(request=EvaluateRequestSerializer, responses=NestedTreeItemSerializer(many=True))
    def post(self, request):
        serializer = EvaluateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        evaluated = RightsEvaluator.evaluate(serializer.validated_data["roleName"])
        if serializer.validated_data["format"] == "flat":
            return api_response(FlatTreeItemSerializer(RightsEvaluator.flatten(evaluated), many=True).data)
        return api_response(NestedTreeItemSerializer(evaluated, many=True).data)


class RightsReassignView(BaseAPIView):
    """Replace a role's whole direct grant set."""

    permission_classes = [RBACPermission]
    access_mode = "write"

    @extend_schema(request=ReassignRequestSerializer, responses=None)
    def post(self, request):
        serializer = ReassignRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        GrantReassigner.reassign(
            data["roleName"],
            data["actionNames"],
            expected_version=data.get("expectedVersion"),
            actor=_actor(request),
        )
        return api_response(None)


class RightsGrantView(BaseAPIView):
    """Grant a single action to a role."""

    permission_classes = [RBACPermission]
    access_mode = "write"

    @extend_schema(request=SingleActionRequestSerializer, responses=None)
    def post(self, request):
        serializer = SingleActionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        GrantReassigner.grant(
            serializer.validated_data["roleName"],
            serializer.validated_data["actionName"],
            actor=_actor(request),
        )
        return api_response(None)


class RightsRevokeView(BaseAPIView):
    """Revoke a single directly granted action from a role."""

    permission_classes = [RBACPermission]
    access_mode = "write"

    @extend_schema(request=SingleActionRequestSerializer, responses=None)
    def post(self, request):
        serializer = SingleActionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        GrantReassigner.revoke(
            serializer.validated_data["roleName"],
            serializer.validated_data["actionName"],
            actor=_actor(request),
        )
        return api_response(None)


class AccessObjectTreeView(BaseAPIView):
    """Return the access-object tree without grant annotations."""

    permission_classes = [RBACPermission]
    access_mode = "read"

    @extend_schema(responses=AccessObjectSerializer(many=True))
    def get(self, request):
        tree = AccessObjectTree.load()
        return api_response(AccessObjectSerializer(tree.get_tree(), many=True).data)


class RoleViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    BaseViewSet,
):
    """Role administration: list, create, inspect, update, delete, family tree."""

    permission_classes = [RBACPermission]
    serializer_class = RoleSerializer
    lookup_field = "name"
    lookup_value_regex = "[^/]+"
    access_modes = {
        "list": "read",
        "retrieve": "read",
        "tree": "read",
        "create": "write",
        "update": "write",
        "partial_update": "write",
        "destroy": "delete",
    }

    def get_queryset(self):
        return RoleGraph.list_roles()

    def get_serializer_class(self):
        if self.action == "retrieve":
            return RoleDetailSerializer
        return RoleSerializer

    def get_object(self):
        return RoleGraph.get_role(self.kwargs[self.lookup_field])

    @extend_schema(request=RoleCreateSerializer, responses={201: RoleDetailSerializer})
    def create(self, request):
        serializer = RoleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        # The role and its initial grants appear together or not at all.
        with transaction.atomic():
            role = RoleGraph.create_role(
                data["name"],
                description=data.get("description", ""),
                parent_name=data.get("parentName") or None,
            )
            if data.get("permissions"):
                GrantReassigner.reassign(role.name, data["permissions"], actor=_actor(request))

        role.refresh_from_db()
        return api_response(RoleDetailSerializer(role).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=RoleUpdateSerializer, responses=RoleDetailSerializer)
    def update(self, request, name=None, partial=False):
        serializer = RoleUpdateSerializer(data=request.data, context={"name": name})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        with transaction.atomic():
            RoleGraph.update_role(
                name,
                description=data.get("description"),
                parent_name=(data.get("parentName") or None) if "parentName" in data else UNSET,
            )
            if "permissions" in data:
                GrantReassigner.reassign(name, data["permissions"], actor=_actor(request))

        return api_response(RoleDetailSerializer(RoleGraph.get_role(name)).data)

    def partial_update(self, request, name=None):
        return self.update(request, name=name, partial=True)

    @extend_schema(responses=None)
    def destroy(self, request, name=None):
        RoleGraph.delete_role(name)
        return api_response(None)

    @extend_schema(request=RoleTreeRequestSerializer, responses=RoleTreeNodeSerializer(many=True))
    @action(detail=False, methods=["post"], url_path="tree")
    def tree(self, request):
        serializer = RoleTreeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        family = RoleGraph.get_family(serializer.validated_data["name"])
        nodes = [{"name": name, "parentName": parent} for name, parent in family]
        return api_response(RoleTreeNodeSerializer(nodes, many=True).data)


RBAC_VIEWS = [
    RightsEvaluateView,
    RightsReassignView,
    RightsGrantView,
    RightsRevokeView,
    AccessObjectTreeView,
    RoleViewSet,
]

__all__ = [
    "RightsEvaluateView",
    "RightsReassignView",
    "RightsGrantView",
    "RightsRevokeView",
    "AccessObjectTreeView",
    "RoleViewSet",
    "RBAC_VIEWS",
]

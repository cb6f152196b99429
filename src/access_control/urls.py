"""Routing for rights and role administration endpoints."""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import (
    AccessObjectTreeView,
    RightsEvaluateView,
    RightsGrantView,
    RightsReassignView,
    RightsRevokeView,
    RoleViewSet,
)

router = SimpleRouter(trailing_slash=False)
router.register(r"roles", RoleViewSet, basename="role")

role_list = RoleViewSet.as_view({"get": "list", "post": "create"})
role_tree = RoleViewSet.as_view({"post": "tree"})
role_detail = RoleViewSet.as_view(
    {"get": "retrieve", "put": "update", "patch": "partial_update", "delete": "destroy"}
)

# Paths used by earlier console builds.
legacy_urlpatterns = [
    path("access_object/calculate_rights", RightsEvaluateView.as_view(), name="legacy-rights-evaluate"),
    path("right/reassign", RightsReassignView.as_view(), name="legacy-rights-reassign"),
    path("roles", role_list, name="legacy-role-list"),
    path("roles/get_tree", role_tree, name="legacy-role-tree"),
    path("roles/<str:name>", role_detail, name="legacy-role-detail"),
]

urlpatterns = [
    path("rights/evaluate", RightsEvaluateView.as_view(), name="rights-evaluate"),
    path("rights/reassign", RightsReassignView.as_view(), name="rights-reassign"),
    path("rights/grant", RightsGrantView.as_view(), name="rights-grant"),
    path("rights/revoke", RightsRevokeView.as_view(), name="rights-revoke"),
    path("access-objects", AccessObjectTreeView.as_view(), name="access-object-tree"),
    path("admin/", include(legacy_urlpatterns)),
    path("", include(router.urls)),
]

from __future__ import annotations

import logging

from django.db.models import Count
from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from apps.stories.models import BusinessVertical, Tag
from identity.models import UserRole

from .permissions import IsAdminRole, ReadOnlyOrAdmin
from .serializers import BusinessVerticalSerializer, TagSerializer, UserRoleSerializer

logger = logging.getLogger(__name__)


class TagViewSet(viewsets.ModelViewSet):
    queryset = Tag.objects.order_by("name")
    serializer_class = TagSerializer
    permission_classes = (IsAuthenticated, ReadOnlyOrAdmin)
    rbac_resource = "tags"

    def perform_destroy(self, instance: Tag) -> None:  # type: ignore[override]
        logger.info("Tag %s supprimé (%s associations)", instance.name, instance.story_tags.count())
        instance.delete()


class BusinessVerticalViewSet(viewsets.ModelViewSet):
    """Secteurs d'activité ; la suppression détache les stories et profils (SET_NULL)."""

    serializer_class = BusinessVerticalSerializer
    permission_classes = (IsAuthenticated, ReadOnlyOrAdmin)
    rbac_resource = "business_verticals"

    def get_queryset(self):  # type: ignore[override]
        return BusinessVertical.objects.annotate(story_count=Count("stories")).order_by("name")


class UserRoleViewSet(viewsets.ReadOnlyModelViewSet):
    """Lecture seule : les rôles ne s'écrivent que via la promotion admin."""

    queryset = UserRole.objects.select_related("user").order_by("created_at")
    serializer_class = UserRoleSerializer
    permission_classes = (IsAuthenticated, IsAdminRole)
    rbac_resource = "user_roles"

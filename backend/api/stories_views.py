from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.http import HttpRequest
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ModelViewSet

from apps.stories.authoring import create_adhoc_tag, save_story
from apps.stories.directory import (
    StoryFilters,
    browse,
    fetch_rows,
    story_queryset,
    to_row,
)
from apps.stories.models import Story
from identity.models import Profile

from .permissions import QuickCreateTagPermission, StoryPermission
from .serializers import (
    QuickTagSerializer,
    StoryRowSerializer,
    StoryWriteSerializer,
    TagSerializer,
)

logger = logging.getLogger(__name__)


class StoriesViewSet(ModelViewSet):
    """
    Annuaire et écriture des stories.

    GET /api/stories/ : liste filtrée/triée + facettes (tags, secteurs)
    GET /api/stories/<uuid>/ : détail dénormalisé
    POST /api/stories/ : création (tags remplacés en bloc)
    PUT|PATCH /api/stories/<uuid>/ : modification par l'auteur ou un admin
    DELETE /api/stories/<uuid>/ : suppression par l'auteur ou un admin
    """

    permission_classes = [IsAuthenticated, StoryPermission]
    serializer_class = StoryWriteSerializer

    def get_queryset(self):  # type: ignore[override]
        return story_queryset()

    def list(self, request: HttpRequest, *args, **kwargs):  # type: ignore[override]
        author = request.user if request.query_params.get("scope") == "mine" else None
        filters = StoryFilters.from_params(request.query_params)
        page = browse(filters, author=author)
        return Response(
            {
                "count": len(page.rows),
                "total": page.total,
                "results": StoryRowSerializer(page.rows, many=True).data,
                "facets": page.facets,
            },
            status=status.HTTP_200_OK,
        )

    def retrieve(self, request: HttpRequest, *args, **kwargs):  # type: ignore[override]
        story = self.get_object()
        return Response(StoryRowSerializer(to_row(story)).data)

    def create(self, request: HttpRequest, *args, **kwargs):  # type: ignore[override]
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        story = save_story(author=request.user, data=serializer.to_story_input())
        story = story_queryset().get(pk=story.pk)
        data = StoryRowSerializer(to_row(story)).data
        data["detail"] = "Story publiée."
        return Response(data, status=status.HTTP_201_CREATED)

    def update(self, request: HttpRequest, *args, **kwargs):  # type: ignore[override]
        partial = kwargs.pop("partial", False)
        story = self.get_object()
        serializer = self.get_serializer(story, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        save_story(author=story.author, data=serializer.to_story_input(story), story=story)
        story = story_queryset().get(pk=story.pk)
        data = StoryRowSerializer(to_row(story)).data
        data["detail"] = "Story mise à jour."
        return Response(data, status=status.HTTP_200_OK)

    def perform_destroy(self, instance: Story) -> None:  # type: ignore[override]
        logger.info("Story %s supprimée par %s", instance.pk, self.request.user.pk)
        instance.delete()


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def dashboard(request: HttpRequest) -> Response:
    """GET /api/dashboard/ : compteurs, stories récentes et dernières stories de l'utilisateur."""
    config = getattr(settings, "STORIES_CONFIG", {})
    recent_count = int(config.get("dashboard_recent", 5))
    mine_count = int(config.get("dashboard_mine", 3))

    rows = fetch_rows()
    mine = [row for row in rows if row.author_id == request.user.pk]
    users = (
        get_user_model()
        .objects.exclude(profile__status=Profile.Status.DELETED)
        .count()
    )
    return Response(
        {
            "totals": {
                "stories": len(rows),
                "my_stories": len(mine),
                "users": users,
            },
            "recent_stories": StoryRowSerializer(rows[:recent_count], many=True).data,
            "my_recent_stories": StoryRowSerializer(mine[:mine_count], many=True).data,
        }
    )


@api_view(["POST"])
@permission_classes([IsAuthenticated, QuickCreateTagPermission])
def quick_create_tag(request: HttpRequest) -> Response:
    """POST /api/tags/quick-create/ : tag créé à la volée, 409 si le nom existe déjà."""
    serializer = QuickTagSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    tag = create_adhoc_tag(serializer.validated_data["name"])
    data = TagSerializer(tag).data
    data["detail"] = f"Tag « {tag.name} » créé."
    return Response(data, status=status.HTTP_201_CREATED)

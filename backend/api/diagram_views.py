from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.diagrams.renderer import from_data_url
from apps.diagrams.services import attach_upload, clear_diagram, generate_for_story
from apps.diagrams.templates import describe_templates
from apps.stories.models import Story
from core.utils.file_namer import FileNamer

from .permissions import StoryPermission, can_modify_story
from .serializers import DiagramGenerateSerializer

logger = logging.getLogger(__name__)


def _editable_story(request: HttpRequest, story_id) -> Story:
    story = get_object_or_404(Story, pk=story_id)
    if not can_modify_story(request, story, "update"):
        raise PermissionDenied(StoryPermission.message)
    return story


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def diagram_templates(request: HttpRequest) -> Response:
    """GET /api/diagrams/templates/ : modèles de kill chain et leurs phases."""
    return Response({"templates": describe_templates()})


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def generate_diagram(request: HttpRequest, story_id) -> Response:
    """POST /api/stories/<uuid>/diagram/generate/ {template?, mode}"""
    story = _editable_story(request, story_id)

    serializer = DiagramGenerateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        template = generate_for_story(
            story,
            template=serializer.validated_data.get("template") or None,
            mode=serializer.validated_data["mode"],
        )
    except ValueError as exc:
        raise ValidationError({"template": [str(exc)]}) from exc
    return Response(
        {
            "detail": "Diagramme généré.",
            "template": template.value,
            "diagram_url": story.diagram_url,
        },
        status=status.HTTP_200_OK,
    )


@api_view(["POST"])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def upload_diagram(request: HttpRequest, story_id) -> Response:
    """POST /api/stories/<uuid>/diagram/upload/ (multipart, champ "file", PNG ≤ 10 Mo)"""
    story = _editable_story(request, story_id)

    attach_upload(story, request.FILES.get("file"))
    return Response(
        {"detail": "Diagramme importé.", "diagram_url": story.diagram_url},
        status=status.HTTP_200_OK,
    )


@api_view(["GET", "DELETE"])
@permission_classes([IsAuthenticated])
def story_diagram(request: HttpRequest, story_id):
    """GET : téléchargement du PNG ; DELETE : retrait du diagramme."""
    if request.method == "DELETE":
        story = _editable_story(request, story_id)
        clear_diagram(story)
        return Response({"detail": "Diagramme retiré."}, status=status.HTTP_200_OK)

    story = get_object_or_404(Story, pk=story_id)
    if not story.diagram_url:
        return Response(
            {"detail": "Aucun diagramme pour cette story."},
            status=status.HTTP_404_NOT_FOUND,
        )
    if story.diagram_url.startswith("http"):
        return Response({"diagram_url": story.diagram_url}, status=status.HTTP_200_OK)

    try:
        png = from_data_url(story.diagram_url)
    except ValueError as exc:
        logger.warning("Diagramme illisible pour la story %s: %s", story.pk, exc)
        return Response(
            {"detail": "Diagramme illisible."}, status=status.HTTP_404_NOT_FOUND
        )
    naming = FileNamer().for_story_diagram(story)
    response = HttpResponse(png, content_type=naming.content_type)
    response["Content-Disposition"] = f'attachment; filename="{naming.filename}"'
    return response

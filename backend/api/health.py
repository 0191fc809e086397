from __future__ import annotations

import logging

from django import get_version
from django.db import DatabaseError, connection
from django.utils import timezone
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps.stories.models import Story

logger = logging.getLogger(__name__)


@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def health(request):
    db_status = "ok"
    stories = None
    try:
        connection.ensure_connection()
        stories = Story.objects.count()
    except DatabaseError:
        logger.exception("Base de données indisponible")
        db_status = "error"
    return Response(
        {
            "status": "healthy" if db_status == "ok" else "degraded",
            "db": db_status,
            "stories": stories,
            "django": get_version(),
            "timestamp": timezone.now().isoformat(),
        },
        status=200 if db_status == "ok" else 503,
    )

from __future__ import annotations

import logging

from django.db import DatabaseError, IntegrityError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.diagrams.upload import DiagramUploadError
from apps.stories.authoring import StoryValidationError, TagAlreadyExistsError
from identity.services import (
    IdentityServiceError,
    NotAdminError,
    PasswordResetError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

GENERIC_STORAGE_ERROR = "Une erreur est survenue lors de l'enregistrement. Réessayez plus tard."


def api_exception_handler(exc, context):
    """
    Handler DRF : exceptions DRF d'abord, puis erreurs métier et erreurs de stockage.

    Les erreurs prévues des services ne remontent jamais en 500.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else "?"

    if isinstance(exc, TagAlreadyExistsError):
        return Response(
            {"detail": "Ce tag existe déjà.", "tag": str(exc.tag.pk)},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, (StoryValidationError, DiagramUploadError, PasswordResetError)):
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, NotAdminError):
        return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)
    if isinstance(exc, UserNotFoundError):
        return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, IdentityServiceError):
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, IntegrityError):
        logger.warning("Conflit d'intégrité dans %s: %s", view_name, exc)
        return Response(
            {"detail": "Cette ressource existe déjà ou référence une donnée absente."},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, DatabaseError):
        logger.exception("Erreur base de données dans %s", view_name)
        return Response(
            {"detail": GENERIC_STORAGE_ERROR},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return None

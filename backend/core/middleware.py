from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import jwt
from django.http import HttpRequest, JsonResponse
from rest_framework_simplejwt.settings import api_settings

from identity.models import Profile

logger = logging.getLogger(__name__)


def _bearer_token(request: HttpRequest) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header.replace("Bearer ", "", 1).strip()
    return token or None


def _decode_jwt_payload(token: str) -> Optional[Dict[str, Any]]:
    """Décode et vérifie le jeton d'accès ; None si signature ou expiration invalide."""
    try:
        payload = jwt.decode(
            token,
            api_settings.SIGNING_KEY,
            algorithms=[api_settings.ALGORITHM],
            options={"verify_aud": False},
        )
    except jwt.InvalidTokenError:
        return None
    if payload.get(api_settings.TOKEN_TYPE_CLAIM) != "access":
        return None
    return payload


class AccountStatusMiddleware:
    """Refuse les requêtes portant un jeton valide d'un compte bloqué ou supprimé."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request: HttpRequest):
        token = _bearer_token(request)
        if token is None:
            return self.get_response(request)

        payload = _decode_jwt_payload(token)
        if payload is None:
            # Laisse l'authentification DRF répondre 401 avec son propre message.
            return self.get_response(request)

        request.jwt_payload = payload
        user_id = payload.get(api_settings.USER_ID_CLAIM)
        profile = Profile.objects.filter(user_id=user_id).only("status").first()
        if profile is not None and not profile.is_usable:
            logger.warning("Requête refusée pour le compte %s (%s)", user_id, profile.status)
            return JsonResponse(
                {"detail": "Compte désactivé. Contactez un administrateur."},
                status=403,
            )
        return self.get_response(request)

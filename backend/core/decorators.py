from __future__ import annotations

import logging
from functools import wraps
from typing import Callable, TypeVar

from django.http import HttpRequest, JsonResponse
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken

from identity.services import is_admin

F = TypeVar("F", bound=Callable[..., object])

logger = logging.getLogger(__name__)


def bearer_admin_required(view_func: F) -> F:
    """
    Décorateur des fonctions privilégiées : jeton Bearer valide et rôle admin.

    L'identité est résolue à partir du jeton, jamais depuis le corps de la requête.
    Réponses d'erreur au format {"error": ...}.
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args, **kwargs):
        authenticator = JWTAuthentication()
        try:
            result = authenticator.authenticate(request)
        except (InvalidToken, AuthenticationFailed) as exc:
            logger.info("Jeton refusé sur %s: %s", request.path, exc)
            return JsonResponse({"error": "Jeton invalide ou expiré."}, status=401)
        if result is None:
            return JsonResponse({"error": "En-tête Authorization manquant."}, status=401)

        user, _token = result
        if not is_admin(user):
            logger.warning("Accès non admin refusé sur %s pour %s", request.path, user.pk)
            return JsonResponse(
                {"error": "Accès refusé : privilèges administrateur requis."}, status=403
            )
        request.actor = user
        return view_func(request, *args, **kwargs)

    return wrapper  # type: ignore[return-value]

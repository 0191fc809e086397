from __future__ import annotations

import json
import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from core.decorators import bearer_admin_required
from identity.services import PasswordResetError, RequestMeta, reset_password

from .serializers import PasswordResetFunctionSerializer

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
@bearer_admin_required
def admin_reset_password(request: HttpRequest) -> JsonResponse:
    """
    POST /functions/admin-reset-password/ {userId, newPassword}

    Fonction sans état : l'appelant est revérifié côté serveur, le mot de passe
    est modifié puis une entrée PASSWORD_RESET est ajoutée au journal d'audit.
    """
    actor = request.actor
    logger.info("Réinitialisation demandée par %s", actor.pk)

    try:
        body = json.loads(request.body or b"{}")
    except (ValueError, UnicodeDecodeError):
        return JsonResponse({"error": "Corps JSON invalide."}, status=400)
    if not isinstance(body, dict):
        return JsonResponse({"error": "Corps JSON invalide."}, status=400)

    serializer = PasswordResetFunctionSerializer(data=body)
    if not serializer.is_valid():
        return JsonResponse(
            {"error": "userId et newPassword sont requis.", "fields": serializer.errors},
            status=400,
        )

    target_id = serializer.validated_data["userId"]
    try:
        reset_password(
            actor=actor,
            target_id=target_id,
            new_password=serializer.validated_data["newPassword"],
            meta=RequestMeta.from_request(request),
        )
    except PasswordResetError as exc:
        logger.warning("Réinitialisation échouée pour %s: %s", target_id, exc)
        return JsonResponse({"error": str(exc)}, status=400)

    logger.info("Réinitialisation terminée pour %s", target_id)
    return JsonResponse(
        {"success": True, "message": "Mot de passe réinitialisé avec succès."}
    )

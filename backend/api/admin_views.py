from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction
from django.http import HttpRequest
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.stories.directory import StoryFilters, browse, story_queryset
from identity.models import AuditLog, Profile
from identity.services import (
    RequestMeta,
    create_admin_user,
    find_user_by_email,
    generate_temp_password,
    record_audit,
    reset_password as reset_user_password,
    set_profile_status,
)

from .permissions import IsAdminRole
from .serializers import (
    AdminUserSerializer,
    AuditLogSerializer,
    PromoteByEmailSerializer,
    StoryRowSerializer,
)

logger = logging.getLogger(__name__)


class AdminUsersViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Console d'administration des utilisateurs.

    GET /api/admin/users/ : profils + rôle résolu (?include_deleted=1 pour les supprimés)
    POST /api/admin/users/<user_id>/promote/ : promotion admin (opération privilégiée)
    POST /api/admin/users/promote-by-email/ : promotion par email
    POST /api/admin/users/<user_id>/block/ | unblock/ : changement de statut
    DELETE /api/admin/users/<user_id>/ : suppression logique
    POST /api/admin/users/<user_id>/reset-password/ : mot de passe temporaire
    """

    serializer_class = AdminUserSerializer
    permission_classes = [IsAuthenticated, IsAdminRole]
    rbac_resource = "profiles"
    rbac_rules = {
        "promote": ("user_roles", "grant"),
        "promote_by_email": ("user_roles", "grant"),
        "block": ("profiles", "block"),
        "unblock": ("profiles", "block"),
        "destroy": ("profiles", "delete"),
        "reset_password": ("profiles", "reset_password"),
    }
    lookup_field = "user_id"
    lookup_url_kwarg = "user_id"

    def get_queryset(self):  # type: ignore[override]
        queryset = Profile.objects.select_related("user", "user__user_role").order_by(
            "-created_at"
        )
        include_deleted = self.request.query_params.get("include_deleted") in {"1", "true"}
        if self.action == "list" and not include_deleted:
            queryset = queryset.exclude(status=Profile.Status.DELETED)
        return queryset

    def _respond(self, profile: Profile, detail: str) -> Response:
        profile = self.get_queryset().get(pk=profile.pk)
        data = AdminUserSerializer(profile).data
        data["detail"] = detail
        return Response(data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def promote(self, request: HttpRequest, user_id=None):
        profile = self.get_object()
        create_admin_user(
            actor=request.user, target=profile.user, meta=RequestMeta.from_request(request)
        )
        return self._respond(profile, f"{profile.email} est maintenant administrateur.")

    @action(detail=False, methods=["post"], url_path="promote-by-email")
    def promote_by_email(self, request: HttpRequest):
        serializer = PromoteByEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data["email"].strip()
        if not email:
            return Response(
                {"detail": "Email requis."}, status=status.HTTP_400_BAD_REQUEST
            )
        target = find_user_by_email(email)
        if target is None:
            return Response(
                {"detail": "Aucun utilisateur trouvé avec cet email."},
                status=status.HTTP_404_NOT_FOUND,
            )
        create_admin_user(
            actor=request.user, target=target, meta=RequestMeta.from_request(request)
        )
        return self._respond(target.profile, f"{email} est maintenant administrateur.")

    @action(detail=True, methods=["post"])
    def block(self, request: HttpRequest, user_id=None):
        profile = self._set_status(request, Profile.Status.BLOCKED)
        return self._respond(profile, "Utilisateur bloqué.")

    @action(detail=True, methods=["post"])
    def unblock(self, request: HttpRequest, user_id=None):
        profile = self._set_status(request, Profile.Status.ACTIVE)
        return self._respond(profile, "Utilisateur débloqué.")

    def destroy(self, request: HttpRequest, user_id=None):
        profile = self._set_status(request, Profile.Status.DELETED)
        return self._respond(profile, "Utilisateur supprimé.")

    def _set_status(self, request: HttpRequest, new_status: str) -> Profile:
        profile = self.get_object()
        if profile.user_id == request.user.pk and new_status != Profile.Status.ACTIVE:
            raise ValidationError({"detail": "Impossible de modifier son propre statut."})
        return set_profile_status(
            actor=request.user,
            target=profile.user,
            status=new_status,
            meta=RequestMeta.from_request(request),
        )

    @action(detail=True, methods=["post"], url_path="reset-password")
    def reset_password(self, request: HttpRequest, user_id=None):
        """Mot de passe temporaire renvoyé une seule fois, jamais stocké en clair."""
        profile = self.get_object()
        temporary = generate_temp_password()
        reset_user_password(
            actor=request.user,
            target_id=profile.user_id,
            new_password=temporary,
            meta=RequestMeta.from_request(request),
        )
        response = Response(
            {
                "detail": "Mot de passe réinitialisé. Communiquez-le de façon sécurisée.",
                "temporary_password": temporary,
            },
            status=status.HTTP_200_OK,
        )
        response["Cache-Control"] = "no-store"
        return response


class AdminStoriesViewSet(viewsets.ViewSet):
    """Modération : toutes les stories, recherche étendue à l'email de l'auteur."""

    permission_classes = [IsAuthenticated, IsAdminRole]
    rbac_resource = "stories"
    rbac_action = "moderate"
    lookup_value_regex = "[0-9a-f-]{36}"

    def list(self, request: HttpRequest):
        filters = StoryFilters.from_params(request.query_params, include_email=True)
        page = browse(filters)
        return Response(
            {
                "count": len(page.rows),
                "total": page.total,
                "results": StoryRowSerializer(
                    page.rows, many=True, context={"include_email": True}
                ).data,
            }
        )

    def destroy(self, request: HttpRequest, pk=None):
        story = story_queryset().filter(pk=pk).first()
        if story is None:
            return Response(
                {"detail": "Story introuvable."}, status=status.HTTP_404_NOT_FOUND
            )
        snapshot = {
            "title": story.title,
            "author": str(story.author_id),
            "tags": sorted(tag.name for tag in story.tags.all()),
        }
        story_id = story.pk
        with transaction.atomic():
            story.delete()
            record_audit(
                actor=request.user,
                action="STORY_DELETED",
                table_name="stories",
                record_id=story_id,
                old_values=snapshot,
                meta=RequestMeta.from_request(request),
            )
        return Response({"detail": "Story supprimée."}, status=status.HTTP_200_OK)


class AuditLogViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Journal d'audit en lecture seule, du plus récent au plus ancien."""

    serializer_class = AuditLogSerializer
    permission_classes = [IsAuthenticated, IsAdminRole]
    rbac_resource = "audit_logs"

    def get_queryset(self):  # type: ignore[override]
        page_size = int(getattr(settings, "STORIES_CONFIG", {}).get("audit_page_size", 50))
        try:
            limit = int(self.request.query_params.get("limit", page_size))
        except (TypeError, ValueError):
            limit = page_size
        limit = max(1, min(limit, page_size))
        return AuditLog.objects.select_related("actor").order_by("-created_at")[:limit]

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from django.contrib import admin, messages
from django.db.models import QuerySet

from .models import AuditLog, Profile, UserRole
from .services import RequestMeta, set_profile_status

logger = logging.getLogger(__name__)


class RoleFilter(admin.SimpleListFilter):
    title = "rôle"
    parameter_name = "role"

    def lookups(self, request, model_admin) -> List[Tuple[str, str]]:  # type: ignore[override]
        return list(UserRole.Role.choices)

    def queryset(self, request, queryset: QuerySet[Profile]) -> QuerySet[Profile]:
        value = self.value()
        if not value:
            return queryset
        if value == UserRole.Role.USER:
            return queryset.exclude(user__user_role__role=UserRole.Role.ADMIN)
        return queryset.filter(user__user_role__role=value)


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("email", "display_name", "department", "business_vertical", "status")
    search_fields = ("email", "display_name", "department")
    list_filter = ("status", RoleFilter, "business_vertical")
    readonly_fields = ("user", "email", "status", "created_at", "updated_at")
    actions = ["block_users", "unblock_users"]

    def _apply_status(self, request, queryset: QuerySet[Profile], status: str) -> int:
        meta = RequestMeta.from_request(request)
        count = 0
        for profile in queryset.select_related("user"):
            if profile.user_id == request.user.pk:
                continue
            set_profile_status(actor=request.user, target=profile.user, status=status, meta=meta)
            count += 1
        return count

    def block_users(self, request, queryset: QuerySet[Profile]) -> None:
        count = self._apply_status(request, queryset, Profile.Status.BLOCKED)
        logger.warning("%s compte(s) bloqué(s) depuis l'admin Django", count)
        self.message_user(request, f"{count} compte(s) bloqué(s).", level=messages.WARNING)

    block_users.short_description = "Bloquer les comptes sélectionnés"  # type: ignore[attr-defined]

    def unblock_users(self, request, queryset: QuerySet[Profile]) -> None:
        count = self._apply_status(request, queryset, Profile.Status.ACTIVE)
        self.message_user(request, f"{count} compte(s) débloqué(s).")

    unblock_users.short_description = "Débloquer les comptes sélectionnés"  # type: ignore[attr-defined]


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    """Lecture seule : la promotion passe par identity.services.create_admin_user."""

    list_display = ("user", "role", "created_at")
    search_fields = ("user__email",)
    list_filter = ("role",)

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj: Optional[UserRole] = None) -> bool:
        return False


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "table_name", "record_id", "actor", "ip_address")
    search_fields = ("action", "table_name", "record_id", "actor__email")
    list_filter = ("action", "table_name")

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj: Optional[AuditLog] = None) -> bool:
        return False

    def has_delete_permission(self, request, obj: Optional[AuditLog] = None) -> bool:
        return False

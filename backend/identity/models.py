from __future__ import annotations

import uuid

from auditlog.registry import auditlog
from django.conf import settings
from django.db import models


class Profile(models.Model):
    """PROFILES - Attributs d'identité d'un utilisateur authentifié."""

    class Status(models.TextChoices):
        ACTIVE = "active", "Actif"
        BLOCKED = "blocked", "Bloqué"
        DELETED = "deleted", "Supprimé"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile"
    )
    display_name = models.CharField(max_length=150, blank=True)
    email = models.EmailField(blank=True)
    department = models.CharField(max_length=150, blank=True)
    business_vertical = models.ForeignKey(
        "stories.BusinessVertical",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="profiles",
    )
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.ACTIVE
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "profiles"

    def __str__(self) -> str:
        return f"{self.display_name} <{self.email}>"

    @property
    def is_usable(self) -> bool:
        return self.status == self.Status.ACTIVE


class UserRole(models.Model):
    """USER_ROLES - Rôle unique par utilisateur, écrit uniquement par le service privilégié."""

    class Role(models.TextChoices):
        ADMIN = "admin", "Administrateur"
        USER = "user", "Utilisateur"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="user_role"
    )
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.USER)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "user_roles"

    def __str__(self) -> str:
        return f"{self.user_id} -> {self.role}"


class AuditLogQuerySet(models.QuerySet):
    def update(self, **kwargs):  # type: ignore[override]
        raise PermissionError("Le journal d'audit est en ajout seul.")

    def delete(self):  # type: ignore[override]
        raise PermissionError("Le journal d'audit est en ajout seul.")


class AuditLog(models.Model):
    """AUDIT_LOGS - Journal applicatif des actions privilégiées (ajout seul)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_entries",
    )
    action = models.CharField(max_length=64)
    table_name = models.CharField(max_length=128, blank=True)
    record_id = models.CharField(max_length=64, blank=True)
    old_values = models.JSONField(null=True, blank=True)
    new_values = models.JSONField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        db_table = "audit_logs"
        ordering = ("-created_at",)

    def __str__(self) -> str:
        return f"{self.action} {self.table_name}:{self.record_id}"

    def save(self, *args, **kwargs) -> None:
        if not self._state.adding:
            raise PermissionError("Une entrée d'audit ne peut pas être modifiée.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Une entrée d'audit ne peut pas être supprimée.")


auditlog.register(Profile)
auditlog.register(UserRole)

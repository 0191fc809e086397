from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.http import HttpRequest

from identity.models import AuditLog, Profile, UserRole

logger = logging.getLogger(__name__)

TEMP_PASSWORD_CHARS = (
    "ABCDEFGHJKMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz23456789!@#$%^&*"
)
TEMP_PASSWORD_LENGTH = 12


class IdentityServiceError(Exception):
    """Erreur de base des opérations d'identité."""


class NotAdminError(IdentityServiceError):
    pass


class UserNotFoundError(IdentityServiceError):
    pass


class PasswordResetError(IdentityServiceError):
    pass


@dataclass(frozen=True)
class RequestMeta:
    ip_address: Optional[str] = None
    user_agent: str = ""

    @classmethod
    def from_request(cls, request: Optional[HttpRequest]) -> "RequestMeta":
        if request is None:
            return cls()
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
        ip_address = forwarded.split(",")[0].strip() if forwarded else None
        ip_address = ip_address or request.META.get("REMOTE_ADDR") or None
        return cls(
            ip_address=ip_address,
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
        )


def resolve_role(user) -> str:
    """Rôle effectif d'un utilisateur, "user" en l'absence de ligne user_roles."""
    if user is None or not getattr(user, "is_authenticated", False):
        return UserRole.Role.USER
    role = UserRole.objects.filter(user_id=user.pk).values_list("role", flat=True).first()
    return role or UserRole.Role.USER


def is_admin(user) -> bool:
    return resolve_role(user) == UserRole.Role.ADMIN


def get_or_create_profile(user) -> Profile:
    profile, _ = Profile.objects.get_or_create(
        user=user,
        defaults={
            "email": user.email,
            "display_name": (user.email or user.get_username()).split("@")[0],
        },
    )
    return profile


def record_audit(
    *,
    actor,
    action: str,
    table_name: str = "",
    record_id: Any = "",
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
    meta: Optional[RequestMeta] = None,
) -> AuditLog:
    meta = meta or RequestMeta()
    entry = AuditLog.objects.create(
        actor=actor if getattr(actor, "pk", None) else None,
        action=action,
        table_name=table_name,
        record_id=str(record_id) if record_id is not None else "",
        old_values=old_values,
        new_values=new_values,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    logger.info("Audit %s sur %s:%s", action, table_name, record_id)
    return entry


def find_user_by_email(email: str):
    """Recherche d'un utilisateur par email de profil (insensible à la casse)."""
    email = (email or "").strip()
    if not email:
        return None
    profile = (
        Profile.objects.select_related("user")
        .filter(email__iexact=email)
        .exclude(status=Profile.Status.DELETED)
        .first()
    )
    return profile.user if profile else None


def get_target_user(user_id):
    user_model = get_user_model()
    try:
        return user_model.objects.get(pk=user_id)
    except (user_model.DoesNotExist, ValueError, TypeError, DjangoValidationError) as exc:
        raise UserNotFoundError("Utilisateur introuvable.") from exc


def create_admin_user(*, actor, target, meta: Optional[RequestMeta] = None) -> UserRole:
    """
    Opération privilégiée de promotion administrateur.

    Seul chemin d'écriture de user_roles : l'appelant est revérifié côté
    serveur, aucune mise à jour directe de la table n'est exposée.
    """
    if not is_admin(actor):
        logger.warning("Promotion refusée pour %s (non admin)", getattr(actor, "pk", None))
        raise NotAdminError("Privilèges administrateur requis.")

    with transaction.atomic():
        role, created = UserRole.objects.select_for_update().get_or_create(
            user=target, defaults={"role": UserRole.Role.ADMIN}
        )
        previous = None if created else role.role
        if not created and role.role != UserRole.Role.ADMIN:
            UserRole.objects.filter(pk=role.pk).update(role=UserRole.Role.ADMIN)
            role.role = UserRole.Role.ADMIN
        record_audit(
            actor=actor,
            action="ADMIN_CREATED",
            table_name=UserRole._meta.db_table,
            record_id=target.pk,
            old_values={"role": previous} if previous else None,
            new_values={"role": UserRole.Role.ADMIN},
            meta=meta,
        )
    return role


def set_profile_status(
    *, actor, target, status: str, meta: Optional[RequestMeta] = None
) -> Profile:
    if not is_admin(actor):
        raise NotAdminError("Privilèges administrateur requis.")
    if status not in Profile.Status.values:
        raise IdentityServiceError(f"Statut inconnu: {status}")

    profile = get_or_create_profile(target)
    previous = profile.status
    profile.status = status
    profile.save(update_fields=["status", "updated_at"])

    action = {
        Profile.Status.ACTIVE: "USER_UNBLOCKED",
        Profile.Status.BLOCKED: "USER_BLOCKED",
        Profile.Status.DELETED: "USER_DELETED",
    }[Profile.Status(status)]
    record_audit(
        actor=actor,
        action=action,
        table_name=Profile._meta.db_table,
        record_id=target.pk,
        old_values={"status": previous},
        new_values={"status": status},
        meta=meta,
    )
    return profile


def generate_temp_password(length: int = TEMP_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(TEMP_PASSWORD_CHARS) for _ in range(length))


def reset_password(
    *, actor, target_id, new_password: str, meta: Optional[RequestMeta] = None
) -> AuditLog:
    """Réinitialise le mot de passe d'un autre utilisateur et journalise l'action."""
    if not is_admin(actor):
        raise NotAdminError("Accès refusé : privilèges administrateur requis.")

    try:
        target = get_target_user(target_id)
    except UserNotFoundError as exc:
        raise PasswordResetError(str(exc)) from exc

    try:
        validate_password(new_password, user=target)
    except DjangoValidationError as exc:
        raise PasswordResetError(" ".join(exc.messages)) from exc

    with transaction.atomic():
        target.set_password(new_password)
        target.save(update_fields=["password"])
        entry = record_audit(
            actor=actor,
            action="PASSWORD_RESET",
            table_name=target._meta.db_table,
            record_id=target.pk,
            new_values={"reset_by_admin": True},
            meta=meta,
        )
    logger.info("Mot de passe réinitialisé pour %s par %s", target.pk, actor.pk)
    return entry

from __future__ import annotations

from typing import Optional, Tuple

from django.http import HttpRequest
from rest_framework.permissions import SAFE_METHODS, BasePermission

from core.rbac.checker import checker
from identity.services import resolve_role

_METHOD_ACTIONS = {
    "GET": "read",
    "HEAD": "read",
    "OPTIONS": "read",
    "POST": "create",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}


def request_role(request: HttpRequest) -> str:
    """Rôle résolu côté serveur, mis en cache sur la requête."""
    cached: Optional[str] = getattr(request, "_resolved_role", None)
    if cached is None:
        cached = resolve_role(request.user)
        request._resolved_role = cached
    return cached


class RolePermission(BasePermission):
    """
    Permission basée sur la matrice RBAC pour la ressource de la vue.

    La vue déclare `rbac_resource` et, pour ses actions personnalisées,
    `rbac_rules = {"promote": ("user_roles", "grant"), ...}`. À défaut, l'action
    RBAC est déduite de la méthode HTTP.
    """

    resource: Optional[str] = None
    action: Optional[str] = None

    def _rule(self, request: HttpRequest, view) -> Tuple[Optional[str], str]:
        rules = getattr(view, "rbac_rules", None) or {}
        view_action = getattr(view, "action", None)
        if view_action in rules:
            return rules[view_action]
        resource = self.resource or getattr(view, "rbac_resource", None)
        action = (
            self.action
            or getattr(view, "rbac_action", None)
            or _METHOD_ACTIONS.get(request.method, "read")
        )
        return resource, action

    def has_permission(self, request: HttpRequest, view) -> bool:  # type: ignore[override]
        if not request.user or not request.user.is_authenticated:
            return False
        resource, action = self._rule(request, view)
        if resource is None:
            return True
        return checker.can(role=request_role(request), action=action, resource=resource)


class IsAdminRole(RolePermission):
    """
    Console d'administration : rôle lu dans user_roles (jamais depuis le client)
    puis confronté à la matrice. Une vue sans ressource déclarée est refusée.
    """

    message = "Privilèges administrateur requis."

    def has_permission(self, request: HttpRequest, view) -> bool:  # type: ignore[override]
        resource, _ = self._rule(request, view)
        if resource is None:
            return False
        return super().has_permission(request, view)


class QuickCreateTagPermission(RolePermission):
    resource = "tags"
    action = "quick_create"


class ReadOnlyOrAdmin(RolePermission):
    """Lecture pour tout utilisateur authentifié, écriture selon la matrice (admin)."""

    message = "Modification réservée aux administrateurs."


class StoryPermission(RolePermission):
    """
    Stories : lecture et création pour tous, modification et suppression
    par l'auteur (permission objet django-guardian) ou un admin.
    """

    resource = "stories"
    message = "Seul l'auteur ou un administrateur peut modifier cette story."

    def has_object_permission(self, request: HttpRequest, view, obj) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return True
        return can_modify_story(request, obj, _METHOD_ACTIONS.get(request.method, "update"))


def can_modify_story(request: HttpRequest, story, action: str = "update") -> bool:
    decision = checker.decision(role=request_role(request), action=action, resource="stories")
    if not decision.allowed:
        return False
    if not decision.owner_only:
        return True
    perm = "stories.delete_story" if action == "delete" else "stories.change_story"
    return request.user.has_perm(perm, story) or story.author_id == request.user.pk

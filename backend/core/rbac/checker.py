from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

ADMIN = "admin"
USER = "user"

# Portée par rôle : "any" = toutes les lignes, "own" = lignes dont l'acteur est l'auteur.
SCOPE_ANY = "any"
SCOPE_OWN = "own"


@dataclass(frozen=True)
class ActionDecision:
    allowed: bool
    owner_only: bool


class RBACChecker:
    """Vérifie les permissions par rôle (admin/user) sur les tables de l'application."""

    def __init__(self, matrix: Optional[Dict[str, Dict[str, Dict[str, str]]]] = None):
        self._matrix = matrix or self._default_matrix()

    def can(self, *, role: str, action: str, resource: str) -> bool:
        return role in self._matrix.get(resource, {}).get(action, {})

    def decision(self, *, role: str, action: str, resource: str) -> ActionDecision:
        scope = self._matrix.get(resource, {}).get(action, {}).get(role)
        return ActionDecision(allowed=scope is not None, owner_only=scope == SCOPE_OWN)

    def roles_for(self, *, action: str, resource: str) -> Iterable[str]:
        return tuple(self._matrix.get(resource, {}).get(action, {}))

    @staticmethod
    def _default_matrix() -> Dict[str, Dict[str, Dict[str, str]]]:
        both_any = {ADMIN: SCOPE_ANY, USER: SCOPE_ANY}
        admin_only = {ADMIN: SCOPE_ANY}
        return {
            "stories": {
                "read": both_any,
                "create": both_any,
                "update": {ADMIN: SCOPE_ANY, USER: SCOPE_OWN},
                "delete": {ADMIN: SCOPE_ANY, USER: SCOPE_OWN},
                "moderate": admin_only,
            },
            "tags": {
                "read": both_any,
                "create": admin_only,
                "quick_create": both_any,
                "update": admin_only,
                "delete": admin_only,
            },
            "business_verticals": {
                "read": both_any,
                "create": admin_only,
                "update": admin_only,
                "delete": admin_only,
            },
            "profiles": {
                "read": admin_only,
                "block": admin_only,
                "delete": admin_only,
                "reset_password": admin_only,
            },
            "user_roles": {
                "read": admin_only,
                "grant": admin_only,
            },
            "audit_logs": {
                "read": admin_only,
            },
        }


checker = RBACChecker()

"""
Politique d'autorisation centralisée.

Un rôle donne droit à un ensemble de couples (resource, action). "*" vaut
pour toutes les ressources / actions. Les routes déclarent ce dont elles ont
besoin via `require_permission(action, resource)` (voir api/deps.py) au lieu
de tester le rôle elles-mêmes.
"""
from __future__ import annotations

from koloa.app.db.models.core_types import Role
from koloa.app.db.models.models_v1 import User
from koloa.services.errors import PermissionDeniedError

ANY = "*"

DEFAULT_GRANTS: dict[Role, set[tuple[str, str]]] = {
    Role.admin: {(ANY, ANY)},
    Role.user: {
        ("inventory", ANY),
        ("orders", "read"),
        ("orders", "create"),
        ("orders", "confirm"),
        ("orders", "receive"),
        ("orders", "cancel"),
    },
}


class PermissionPolicy:
    def __init__(self, grants: dict[Role, set[tuple[str, str]]] | None = None):
        self.grants = grants if grants is not None else DEFAULT_GRANTS

    def allows(self, role: Role, action: str, resource: str) -> bool:
        granted = self.grants.get(role, set())
        return any(
            res in (resource, ANY) and act in (action, ANY)
            for res, act in granted
        )

    def check(self, user: User, action: str, resource: str) -> None:
        if not self.allows(user.role, action, resource):
            raise PermissionDeniedError("You do not have permission to perform this action")


default_policy = PermissionPolicy()

"""
Politique d'accès : une seule fonction (rôle, action) → autorisé.

L'authentification est faite en amont ; la couche d'auth transmet le rôle de
l'appelant dans l'en-tête X-User-Role. Les routers n'implémentent aucune règle
eux-mêmes : ils déclarent l'action via require_permission.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException

from app.models.enums import Role

logger = logging.getLogger(__name__)

ROLE_LEVELS = {
    Role.SUPERADMIN.value: 5,
    Role.ADMIN.value: 4,
    Role.LEAD_INSTRUCTOR.value: 3,
    Role.INSTRUCTOR.value: 2,
    Role.GUEST.value: 1,
}

# Rôle minimal requis pour chaque action
ACTION_MIN_ROLE = {
    "view_overview": Role.INSTRUCTOR,
    "view_compliance": Role.INSTRUCTOR,
    "manage_compliance": Role.LEAD_INSTRUCTOR,
    "manage_roster": Role.LEAD_INSTRUCTOR,
    "manage_internships": Role.LEAD_INSTRUCTOR,
    "complete_closeout": Role.ADMIN,
    "send_alert_digest": Role.ADMIN,
}


def has_min_role(role: Optional[str], min_role: Role) -> bool:
    return ROLE_LEVELS.get(role, 0) >= ROLE_LEVELS[min_role.value]


def is_allowed(role: Optional[str], action: str) -> bool:
    """Vrai si le rôle peut effectuer l'action. Rôle ou action inconnus → refusé."""
    min_role = ACTION_MIN_ROLE.get(action)
    if min_role is None:
        return False
    return has_min_role(role, min_role)


def require_permission(action: str):
    """
    Dépendance FastAPI : lève 403 si le rôle de l'appelant ne permet pas l'action.
    Retourne le rôle pour les endpoints qui veulent le tracer.
    """
    if action not in ACTION_MIN_ROLE:
        raise ValueError(f"Action inconnue : {action}")

    def dependency(x_user_role: Optional[str] = Header(default=None)) -> str:
        if not is_allowed(x_user_role, action):
            logger.warning("Accès refusé : rôle %r pour l'action %s", x_user_role, action)
            raise HTTPException(status_code=403, detail="Accès refusé.")
        return x_user_role

    return dependency

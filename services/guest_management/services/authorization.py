"""Autorización de operaciones sobre invitados por rol y propiedad"""
from enum import Enum
from typing import Optional
import logging

from shared.auth.principal import Principal
from shared.database.models import Guest
from shared.utils.results import ErrorCode, ServiceError

logger = logging.getLogger(__name__)


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    LIST = "list"
    UPDATE = "update"
    DELETE = "delete"
    REGISTER_ENTRY = "register_entry"
    REGISTER_GIFT = "register_gift"
    VERIFY = "verify"
    STATS = "stats"


# Alcance por rol y acción:
#   "any"   -> permitido sobre cualquier invitado
#   "owner" -> solo sobre invitados creados por el principal
#   ausente -> denegado
CAPABILITIES = {
    "admin": {action: "any" for action in Action},
    "staff": {
        Action.CREATE: "any",
        Action.READ: "owner",
        Action.LIST: "owner",
        Action.UPDATE: "owner",
        Action.DELETE: "owner",
        Action.REGISTER_ENTRY: "owner",
        Action.REGISTER_GIFT: "owner",
        Action.VERIFY: "any",
        Action.STATS: "any",
    },
}

DENIAL_MESSAGES = {
    Action.CREATE: "No tiene permisos para gestionar invitados",
    Action.READ: "No autorizado para ver este invitado",
    Action.UPDATE: "No autorizado para actualizar este invitado",
    Action.DELETE: "No autorizado para eliminar este invitado",
}
DEFAULT_DENIAL_MESSAGE = "No tiene permisos para acceder a este invitado"


def authorize(role: str, action: Action, is_owner: bool) -> bool:
    """Decidir si un rol puede ejecutar una acción, según sea dueño o no del invitado"""
    scope = CAPABILITIES.get(role, {}).get(action)
    if scope == "any":
        return True
    if scope == "owner":
        return is_owner
    return False


def requires_owner_scope(role: str, action: Action) -> bool:
    """True si el rol solo ve sus propios invitados para esta acción (p.ej. list de staff)"""
    return CAPABILITIES.get(role, {}).get(action) == "owner"


def check_guest_access(
    principal: Principal,
    action: Action,
    guest: Optional[Guest] = None
) -> Optional[ServiceError]:
    """
    Evaluar acceso del principal a un invitado ya cargado.

    El invitado inexistente se reporta antes (NotFound) en el servicio; aquí
    solo se decide propiedad/rol.

    Returns:
        None si se permite, ServiceError(FORBIDDEN) si se deniega
    """
    is_owner = guest is not None and guest.created_by == principal.user_id
    if authorize(principal.role, action, is_owner):
        return None

    logger.warning(
        f"Acceso denegado: usuario {principal.user_id} (rol {principal.role}) "
        f"acción {action.value} sobre invitado {guest.id if guest is not None else '-'}"
    )
    return ServiceError(
        code=ErrorCode.FORBIDDEN,
        message=DENIAL_MESSAGES.get(action, DEFAULT_DENIAL_MESSAGE),
    )

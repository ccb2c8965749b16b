# ==============================================================================
# RESOLUTOR DE ROLES - Punto único de normalización
# ==============================================================================
# El backend entrega el rol de varias formas:
#   - string plano:            {"role": "JEFE_AREA"}
#   - objeto con nombre:       {"role": {"id": "...", "name": "ADMIN"}}
#   - ausente (solo roleId):   {"roleId": "SUPERVISOR"}
#
# Este módulo convierte cualquiera de esas formas en un UserRole UNA sola vez,
# en el borde de la API. El resto del código compara contra UserRole y nunca
# vuelve a inspeccionar la forma del campo.
#
# Vocabulario:
#   Backend  → ADMIN | JEFE_AREA | AREA_MANAGER | SUPERVISOR | BODEGUERO
#   Frontend → ADMIN | JEFE | SUPERVISOR
# ==============================================================================

from enum import Enum
from typing import Any, Optional


class UserRole(str, Enum):
    """Roles del panel (vocabulario frontend)."""
    ADMIN = "ADMIN"
    JEFE = "JEFE"              # Jefe de área: acotado a sus áreas
    SUPERVISOR = "SUPERVISOR"  # Acotado a sus bodegas


# Backend → frontend. BODEGUERO y SUPERVISOR colapsan en SUPERVISOR.
BACKEND_TO_FRONTEND = {
    "ADMIN": UserRole.ADMIN,
    "JEFE_AREA": UserRole.JEFE,
    "AREA_MANAGER": UserRole.JEFE,
    "JEFE": UserRole.JEFE,
    "SUPERVISOR": UserRole.SUPERVISOR,
    "BODEGUERO": UserRole.SUPERVISOR,
}

# Frontend → backend. JEFE vuelve siempre a JEFE_AREA.
FRONTEND_TO_BACKEND = {
    UserRole.ADMIN: "ADMIN",
    UserRole.JEFE: "JEFE_AREA",
    UserRole.SUPERVISOR: "SUPERVISOR",
}


def _field(user_like: Any, name: str) -> Any:
    """Lee un campo de un dict o de un objeto con atributos."""
    if user_like is None:
        return None
    if isinstance(user_like, dict):
        return user_like.get(name)
    return getattr(user_like, name, None)


def resolve_role(user_like: Any) -> str:
    """
    Obtiene el token de rol canónico (mayúsculas) de un usuario.
    
    Args:
        user_like: dict del backend, entidad User o cualquier objeto con
                   atributo 'role' (string, {name} o Enum) o 'roleId'
    
    Returns:
        Token en mayúsculas tal como viene del backend, o '' si no hay rol
    """
    raw = _field(user_like, "role")
    if isinstance(raw, Enum):
        raw = raw.value
    elif isinstance(raw, dict):
        raw = raw.get("name")
    elif raw is not None and not isinstance(raw, str):
        raw = getattr(raw, "name", None)

    if not raw:
        raw = _field(user_like, "roleId") or _field(user_like, "role_id")

    if not raw:
        return ""
    return str(raw).strip().upper()


def map_backend_role_to_frontend(role: Optional[str]) -> str:
    """
    Traduce un rol del backend al vocabulario del panel.
    
    Roles desconocidos quedan en SUPERVISOR (el rol con menos privilegios).
    """
    token = (role or "").strip().upper()
    return BACKEND_TO_FRONTEND.get(token, UserRole.SUPERVISOR).value


def map_frontend_role_to_backend(role: Any) -> str:
    """Traduce un rol del panel al nombre que espera el backend."""
    return FRONTEND_TO_BACKEND[to_user_role(role)]


def to_user_role(raw: Any) -> UserRole:
    """
    Construye el UserRole a partir de cualquier representación.
    
    Acepta un UserRole, un string (backend o frontend) o un objeto
    usuario completo.
    """
    if isinstance(raw, UserRole):
        return raw
    if isinstance(raw, str):
        token = raw
    else:
        token = resolve_role(raw)
    return UserRole(map_backend_role_to_frontend(token))

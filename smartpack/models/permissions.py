# ==============================================================================
# PERMISOS POR ROL
# ==============================================================================
# Tabla estática rol → permisos que usa el panel para mostrar/ocultar
# acciones. La autoridad real está en el backend.
# ==============================================================================

from typing import Any, Iterable

from smartpack.models.roles import UserRole, to_user_role


# Todos los permisos conocidos
ALL_PERMISSIONS = frozenset([
    "dashboard.view",
    "users.view", "users.create", "users.edit",
    "areas.view", "areas.create", "areas.edit",
    "warehouses.view", "warehouses.create", "warehouses.edit",
    "boxes.view", "boxes.create", "boxes.edit", "boxes.export",
    "products.view", "products.create", "products.edit",
])

ROLE_PERMISSIONS = {
    UserRole.ADMIN: ALL_PERMISSIONS,
    UserRole.JEFE: frozenset([
        "dashboard.view",
        "users.view", "users.create", "users.edit",
        "areas.view", "areas.edit",
        "warehouses.view", "warehouses.create", "warehouses.edit",
        "boxes.view", "boxes.create", "boxes.edit", "boxes.export",
        "products.view", "products.create", "products.edit",
    ]),
    # Sin acceso a usuarios; solo lectura de áreas y bodegas
    UserRole.SUPERVISOR: frozenset([
        "dashboard.view",
        "areas.view",
        "warehouses.view",
        "boxes.view", "boxes.create", "boxes.edit",
        "products.view", "products.create", "products.edit",
    ]),
}


def has_permission(role: Any, permission: str) -> bool:
    """
    Verifica si un rol tiene un permiso.
    
    Args:
        role: UserRole, string de rol (backend o frontend) u objeto usuario
        permission: Nombre del permiso ('users.create', etc.)
    """
    if role is None or role == "":
        return False
    return permission in ROLE_PERMISSIONS[to_user_role(role)]


def has_all_permissions(role: Any, permissions: Iterable[str]) -> bool:
    return all(has_permission(role, p) for p in permissions)


def has_any_permission(role: Any, permissions: Iterable[str]) -> bool:
    return any(has_permission(role, p) for p in permissions)

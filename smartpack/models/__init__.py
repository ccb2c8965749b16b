# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del panel
# ==============================================================================
# Entidades (dataclasses), roles, permisos, validaciones locales y el
# libro append-only de asignaciones. Nada en esta capa toca la red.
# ==============================================================================

from .roles import (
    UserRole,
    resolve_role,
    to_user_role,
    map_backend_role_to_frontend,
    map_frontend_role_to_backend,
)

from .entities import (
    # Usuarios
    User,
    UserStatus,
    AssignmentDetail,

    # Áreas y bodegas
    Area,
    AreaStatus,
    NodeType,
    Warehouse,
    WarehouseStatus,
    WarehouseSupervisor,

    # Asignaciones e historiales
    Assignment,
    AssignmentType,
    AssignmentAction,
    AssignmentEntityType,
    AssignmentHistoryEntry,
    EnablementAction,
    UserEnablementHistoryEntry,
    AuditAction,
    AuditEntityType,
    AuditLogEntry,

    # Cajas
    Box,
    BoxStatus,
    BoxType,
    BoxHistoryEvent,

    # Productos
    Product,
    ProductKind,

    PaginatedResult,
)

from .result import Result, MutationError, success, failure
from .permissions import has_permission, has_all_permissions, has_any_permission
from .validators import ValidationError, AreaHierarchyError
from .assignment_ledger import AssignmentLedger

__all__ = [
    'UserRole', 'resolve_role', 'to_user_role',
    'map_backend_role_to_frontend', 'map_frontend_role_to_backend',
    'User', 'UserStatus', 'AssignmentDetail',
    'Area', 'AreaStatus', 'NodeType',
    'Warehouse', 'WarehouseStatus', 'WarehouseSupervisor',
    'Assignment', 'AssignmentType', 'AssignmentAction', 'AssignmentEntityType',
    'AssignmentHistoryEntry', 'EnablementAction', 'UserEnablementHistoryEntry',
    'AuditAction', 'AuditEntityType', 'AuditLogEntry',
    'Box', 'BoxStatus', 'BoxType', 'BoxHistoryEvent', 'Product', 'ProductKind',
    'PaginatedResult',
    'Result', 'MutationError', 'success', 'failure',
    'has_permission', 'has_all_permissions', 'has_any_permission',
    'ValidationError', 'AreaHierarchyError',
    'AssignmentLedger',
]

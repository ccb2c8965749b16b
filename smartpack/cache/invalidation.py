# ==============================================================================
# TABLA DE INVALIDACIÓN - mutación → claves afectadas
# ==============================================================================
# Tabla declarativa: cada mutación lista las claves de caché que pueden haber
# quedado obsoletas. Toda mutación del panel DEBE tener su entrada; la
# completitud se verifica en las pruebas (tests/test_cache_sync.py).
#
# Las funciones reciben los IDs involucrados como kwargs:
#   area_id, warehouse_id, user_id, box_id, product_id,
#   old_area_id, new_area_id (flujo consolidado de bodega)
# Un ID ausente omite la clave de detalle correspondiente.
# ==============================================================================

from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from smartpack.cache.query_cache import QueryCache
from smartpack.cache.query_keys import (
    AreaKeys,
    AssignmentHistoryKeys,
    AuditLogKeys,
    BoxKeys,
    EnablementHistoryKeys,
    ProductKeys,
    QueryKey,
    UserKeys,
    WarehouseKeys,
    WarehouseSupervisorKeys,
)


class Mutation(str, Enum):
    """Mutaciones que el panel puede ejecutar."""
    # Asignaciones (casos de uso base)
    ASSIGN_MANAGER_TO_AREA = "ASSIGN_MANAGER_TO_AREA"
    REMOVE_MANAGER_FROM_AREA = "REMOVE_MANAGER_FROM_AREA"
    ASSIGN_WAREHOUSE_TO_AREA = "ASSIGN_WAREHOUSE_TO_AREA"
    REMOVE_WAREHOUSE_FROM_AREA = "REMOVE_WAREHOUSE_FROM_AREA"
    ASSIGN_SUPERVISOR_TO_WAREHOUSE = "ASSIGN_SUPERVISOR_TO_WAREHOUSE"
    REMOVE_SUPERVISOR_FROM_WAREHOUSE = "REMOVE_SUPERVISOR_FROM_WAREHOUSE"
    REMOVE_ASSIGNMENT = "REMOVE_ASSIGNMENT"

    # Flujos compuestos
    WAREHOUSE_ASSIGNMENTS = "WAREHOUSE_ASSIGNMENTS"
    SYNC_USER_ASSIGNMENTS = "SYNC_USER_ASSIGNMENTS"
    LOG_ASSIGNMENT_CHANGE = "LOG_ASSIGNMENT_CHANGE"

    # Usuarios
    TOGGLE_USER_STATUS = "TOGGLE_USER_STATUS"
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"

    # Áreas y bodegas
    CREATE_AREA = "CREATE_AREA"
    UPDATE_AREA = "UPDATE_AREA"
    CREATE_WAREHOUSE = "CREATE_WAREHOUSE"
    UPDATE_WAREHOUSE = "UPDATE_WAREHOUSE"

    # Cajas
    CREATE_BOX = "CREATE_BOX"
    UPDATE_BOX = "UPDATE_BOX"
    MOVE_BOX = "MOVE_BOX"
    CHANGE_BOX_STATUS = "CHANGE_BOX_STATUS"
    DEACTIVATE_BOX = "DEACTIVATE_BOX"
    UPDATE_BOX_CONTENTS = "UPDATE_BOX_CONTENTS"

    # Productos
    CREATE_PRODUCT = "CREATE_PRODUCT"
    UPDATE_PRODUCT = "UPDATE_PRODUCT"


def _detail(key_fn: Callable[[str], QueryKey], entity_id: Optional[str]) -> List[QueryKey]:
    return [key_fn(entity_id)] if entity_id else []


# ═══════════════════════════════════════════════════════════════════════════════
# ENTRADAS DE LA TABLA
# ═══════════════════════════════════════════════════════════════════════════════

def _area_manager_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    return [AreaKeys.all()] + _detail(AreaKeys.detail, ids.get("area_id"))


def _area_warehouse_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    # warehouse.areaId también cambia: se invalidan ambos lados
    return (
        [AreaKeys.all()]
        + _detail(AreaKeys.detail, ids.get("area_id"))
        + [WarehouseKeys.all()]
        + _detail(WarehouseKeys.detail, ids.get("warehouse_id"))
    )


def _no_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    # Caso de uso base de supervisor: la invalidación queda en manos del flujo llamador
    return []


def _remove_assignment_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    # Solo se conoce el ID de la asignación: se invalidan todas las vistas de relaciones
    return [AreaKeys.all(), WarehouseKeys.all(), UserKeys.all(), WarehouseSupervisorKeys.all()]


def _warehouse_assignments_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    warehouse_id = ids.get("warehouse_id")
    return (
        [WarehouseKeys.all()]
        + _detail(WarehouseKeys.detail, warehouse_id)
        + [UserKeys.all()]
        + _detail(WarehouseSupervisorKeys.by_warehouse, warehouse_id)
        + _detail(AreaKeys.detail, ids.get("old_area_id"))
        + _detail(AreaKeys.detail, ids.get("new_area_id"))
    )


def _sync_user_assignments_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    user_id = ids.get("user_id")
    return (
        [UserKeys.all()]
        + _detail(UserKeys.detail, user_id)
        + [AreaKeys.all(), WarehouseKeys.all(), WarehouseSupervisorKeys.all()]
        + _detail(AssignmentHistoryKeys.by_user, user_id)
    )


def _assignment_history_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    return _detail(AssignmentHistoryKeys.by_user, ids.get("user_id"))


def _toggle_user_status_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    user_id = ids.get("user_id")
    return (
        [UserKeys.all()]
        + _detail(UserKeys.detail, user_id)
        + _detail(EnablementHistoryKeys.by_user, user_id)
        + [EnablementHistoryKeys.global_all(), AuditLogKeys.all()]
    )


def _user_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    return [UserKeys.all()] + _detail(UserKeys.detail, ids.get("user_id"))


def _area_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    return [AreaKeys.all()] + _detail(AreaKeys.detail, ids.get("area_id"))


def _warehouse_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    return [WarehouseKeys.all()] + _detail(WarehouseKeys.detail, ids.get("warehouse_id"))


def _box_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    return [BoxKeys.all()] + _detail(BoxKeys.detail, ids.get("box_id"))


def _moved_box_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    # La ocupación de la bodega de origen y destino cambia
    return _box_keys(ids) + [WarehouseKeys.all()]



def _product_keys(ids: Dict[str, Any]) -> List[QueryKey]:
    return [ProductKeys.all()] + _detail(ProductKeys.detail, ids.get("product_id"))

INVALIDATION_MAP: Dict[Mutation, Callable[[Dict[str, Any]], List[QueryKey]]] = {
    Mutation.ASSIGN_MANAGER_TO_AREA: _area_manager_keys,
    Mutation.REMOVE_MANAGER_FROM_AREA: _area_manager_keys,
    Mutation.ASSIGN_WAREHOUSE_TO_AREA: _area_warehouse_keys,
    Mutation.REMOVE_WAREHOUSE_FROM_AREA: _area_warehouse_keys,
    Mutation.ASSIGN_SUPERVISOR_TO_WAREHOUSE: _no_keys,
    Mutation.REMOVE_SUPERVISOR_FROM_WAREHOUSE: _no_keys,
    Mutation.REMOVE_ASSIGNMENT: _remove_assignment_keys,
    Mutation.WAREHOUSE_ASSIGNMENTS: _warehouse_assignments_keys,
    Mutation.SYNC_USER_ASSIGNMENTS: _sync_user_assignments_keys,
    Mutation.LOG_ASSIGNMENT_CHANGE: _assignment_history_keys,
    Mutation.TOGGLE_USER_STATUS: _toggle_user_status_keys,
    Mutation.CREATE_USER: _user_keys,
    Mutation.UPDATE_USER: _user_keys,
    Mutation.CREATE_AREA: _area_keys,
    Mutation.UPDATE_AREA: _area_keys,
    Mutation.CREATE_WAREHOUSE: _warehouse_keys,
    Mutation.UPDATE_WAREHOUSE: _warehouse_keys,
    Mutation.CREATE_BOX: _box_keys,
    Mutation.UPDATE_BOX: _box_keys,
    Mutation.MOVE_BOX: _moved_box_keys,
    Mutation.CHANGE_BOX_STATUS: _box_keys,
    Mutation.DEACTIVATE_BOX: _box_keys,
    Mutation.UPDATE_BOX_CONTENTS: _box_keys,
    Mutation.CREATE_PRODUCT: _product_keys,
    Mutation.UPDATE_PRODUCT: _product_keys,
}


def keys_for(mutation: Mutation, **ids: Any) -> List[QueryKey]:
    """
    Claves afectadas por una mutación, sin duplicados y en orden.

    Raises:
        KeyError: Si la mutación no está en la tabla
    """
    seen = []
    for key in INVALIDATION_MAP[mutation](ids):
        if key not in seen:
            seen.append(key)
    return seen


def apply(cache: QueryCache, mutation: Mutation, **ids: Any) -> List[QueryKey]:
    """Invalida en cache todas las claves de la mutación y las retorna."""
    keys = keys_for(mutation, **ids)
    cache.invalidate_many(keys)
    return keys

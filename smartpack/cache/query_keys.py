# ==============================================================================
# CLAVES DE CONSULTA - Construcción única de claves de caché
# ==============================================================================
# Cada clave es una tupla: (entidad, tenant, [id | 'sub-clave', valor...]).
# La MISMA función construye la clave para leer y para invalidar; una clave
# armada a mano en otro lugar no coincidiría y la invalidación fallaría
# en silencio.
#
# La invalidación es por prefijo: invalidar ('areas', tenant) invalida
# también ('areas', tenant, 'a1').
# ==============================================================================

from typing import Any, Dict, Tuple

from smartpack import config

QueryKey = Tuple[Any, ...]

TENANT = config.TENANT_ID


def freeze_filters(filters: Dict[str, Any] = None) -> Tuple[Tuple[str, Any], ...]:
    """Filtros → tupla ordenada y hashable (se omiten valores vacíos)."""
    return tuple(sorted(
        (k, v) for k, v in (filters or {}).items() if v is not None and v != ""
    ))


class AreaKeys:
    @staticmethod
    def all() -> QueryKey:
        return ("areas", TENANT)

    @staticmethod
    def detail(area_id: str) -> QueryKey:
        return ("areas", TENANT, area_id)


class UserKeys:
    @staticmethod
    def all() -> QueryKey:
        return ("users", TENANT)

    @staticmethod
    def by_role(role_name: str) -> QueryKey:
        return ("users", TENANT, "role", role_name)

    @staticmethod
    def by_area(area_id: str) -> QueryKey:
        return ("users", TENANT, "area", area_id)

    @staticmethod
    def detail(user_id: str) -> QueryKey:
        return ("users", TENANT, user_id)


class WarehouseKeys:
    @staticmethod
    def all() -> QueryKey:
        return ("warehouses", TENANT)

    @staticmethod
    def by_area(area_id: str) -> QueryKey:
        return ("warehouses", TENANT, "area", area_id)

    @staticmethod
    def detail(warehouse_id: str) -> QueryKey:
        return ("warehouses", TENANT, warehouse_id)


class WarehouseSupervisorKeys:
    @staticmethod
    def all() -> QueryKey:
        return ("warehouse-supervisors", TENANT)

    @staticmethod
    def by_warehouse(warehouse_id: str) -> QueryKey:
        return ("warehouse-supervisors", TENANT, warehouse_id)


class EnablementHistoryKeys:
    @staticmethod
    def all() -> QueryKey:
        return ("user-enablement-history", TENANT)

    @staticmethod
    def by_user(user_id: str) -> QueryKey:
        return ("user-enablement-history", TENANT, "user", user_id)

    @staticmethod
    def by_user_page(user_id: str, page: int = 1, limit: int = None) -> QueryKey:
        return EnablementHistoryKeys.by_user(user_id) + (page, limit)

    @staticmethod
    def global_all() -> QueryKey:
        return ("user-enablement-history", TENANT, "global")

    @staticmethod
    def global_filtered(filters: Dict[str, Any] = None) -> QueryKey:
        return EnablementHistoryKeys.global_all() + (freeze_filters(filters),)


class AssignmentHistoryKeys:
    @staticmethod
    def by_user(user_id: str) -> QueryKey:
        return ("assignment-history", TENANT, "user", user_id)


class AuditLogKeys:
    @staticmethod
    def all() -> QueryKey:
        return ("audit-logs", TENANT)

    @staticmethod
    def filtered(filters: Dict[str, Any] = None) -> QueryKey:
        return AuditLogKeys.all() + (freeze_filters(filters),)


class BoxKeys:
    @staticmethod
    def all() -> QueryKey:
        return ("boxes", TENANT)

    @staticmethod
    def list(filters: Dict[str, Any] = None) -> QueryKey:
        return ("boxes", TENANT, "list", freeze_filters(filters))

    @staticmethod
    def detail(box_id: str) -> QueryKey:
        return ("boxes", TENANT, box_id)

    @staticmethod
    def by_qr(qr_code: str) -> QueryKey:
        return ("boxes", TENANT, "qr", qr_code)

    @staticmethod
    def history(box_id: str) -> QueryKey:
        return ("boxes", TENANT, box_id, "history")


class ProductKeys:
    @staticmethod
    def all() -> QueryKey:
        return ("products", TENANT)

    @staticmethod
    def list(kind: str = None) -> QueryKey:
        return ("products", TENANT, "list", kind)

    @staticmethod
    def detail(product_id: str) -> QueryKey:
        return ("products", TENANT, product_id)

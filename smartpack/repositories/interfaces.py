# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
# Contratos (protocolos) de cada repositorio. Los servicios dependen de estas
# interfaces, no de las implementaciones: así se intercambian la versión
# REST (Api*) y la versión en memoria (InMemoryAssignmentRepository, fakes
# de pruebas) sin tocar la lógica.
# ==============================================================================

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from smartpack.models.entities import (
    Area,
    Assignment,
    AssignmentHistoryEntry,
    AssignmentType,
    AuditLogEntry,
    Box,
    PaginatedResult,
    Product,
    User,
    Warehouse,
    WarehouseSupervisor,
)


@runtime_checkable
class IAreaRepository(Protocol):
    """Áreas: listado, detalle y CRUD."""

    def find_all(self) -> List[Area]: ...

    def find_by_id(self, area_id: str) -> Optional[Area]: ...

    def create(self, data: Dict[str, Any]) -> Area: ...

    def update(self, area_id: str, data: Dict[str, Any]) -> Area: ...


@runtime_checkable
class IUserRepository(Protocol):
    """Usuarios: listados por área/rol, CRUD, estado y unicidad."""

    def find_all(self) -> List[User]: ...

    def find_by_id(self, user_id: str) -> Optional[User]: ...

    def find_by_area(self, area_id: str) -> List[User]: ...

    def create(self, data: Dict[str, Any]) -> User: ...

    def update(self, user_id: str, data: Dict[str, Any]) -> User: ...

    def update_status(self, user_id: str, status: str, reason: str = None) -> User: ...

    def validate_unique(self, rut: str = None, email: str = None,
                        exclude_user_id: str = None) -> Dict[str, Any]: ...


@runtime_checkable
class IWarehouseRepository(Protocol):
    """Bodegas y sus supervisores."""

    def find_all(self) -> List[Warehouse]: ...

    def find_by_id(self, warehouse_id: str) -> Optional[Warehouse]: ...

    def find_supervisors(self, warehouse_id: str) -> List[WarehouseSupervisor]: ...


@runtime_checkable
class IAssignmentRepository(Protocol):
    """
    Relaciones de asignación.
    Remover = revocar (isActive=false, revokedAt), nunca borrar.
    """

    def find_all(self, filters: Dict[str, Any] = None) -> List[Assignment]: ...

    def find_active(self, type: AssignmentType, user_id: str = None, area_id: str = None,
                    warehouse_id: str = None) -> Optional[Assignment]: ...

    def assign_manager_to_area(self, area_id: str, manager_id: str) -> Any: ...

    def remove_manager_from_area(self, area_id: str, manager_id: str) -> Any: ...

    def assign_warehouse_to_area(self, area_id: str, warehouse_id: str) -> Any: ...

    def remove_warehouse_from_area(self, area_id: str, warehouse_id: str) -> Any: ...

    def assign_supervisor_to_warehouse(self, warehouse_id: str, supervisor_id: str) -> Any: ...

    def remove_supervisor_from_warehouse(self, warehouse_id: str, supervisor_id: str) -> Any: ...

    def remove_assignment(self, assignment_id: str) -> Any: ...


@runtime_checkable
class IBoxRepository(Protocol):
    """Cajas."""

    def find_all(self, page: int = 1, limit: int = 20, search: str = None,
                 status: str = None, warehouse_id: str = None) -> PaginatedResult: ...

    def find_by_id(self, box_id: str) -> Optional[Box]: ...

    def find_by_qr(self, qr_code: str) -> Optional[Box]: ...


@runtime_checkable
class IProductRepository(Protocol):
    """Catálogo de productos."""

    def find_all(self, kind: str = None) -> List[Product]: ...

    def find_by_id(self, product_id: str) -> Optional[Product]: ...

    def create(self, data: Dict[str, Any]) -> Product: ...

    def update(self, product_id: str, data: Dict[str, Any]) -> Product: ...

@runtime_checkable
class IAssignmentHistoryRepository(Protocol):
    def find_by_user(self, user_id: str) -> List[AssignmentHistoryEntry]: ...

    def create(self, entry: Dict[str, Any]) -> AssignmentHistoryEntry: ...


@runtime_checkable
class IAuditLogRepository(Protocol):
    def create(self, entry: Dict[str, Any]) -> AuditLogEntry: ...


@runtime_checkable
class IEnablementHistoryRepository(Protocol):
    def find_by_user(self, user_id: str, page: int = 1, limit: int = None) -> PaginatedResult: ...

    def find_all(self, filters: Dict[str, Any] = None) -> PaginatedResult: ...

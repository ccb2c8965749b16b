# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a la API REST
# ==============================================================================
# Esta capa encapsula todo el acceso al backend. Los servicios solo ven
# entidades del dominio, nunca DTOs ni URLs.
#
# ESTRUCTURA:
# ├── api_client.py             → Cliente HTTP (requests), ApiError, 401
# ├── interfaces.py             → Protocolos/Interfaces
# ├── base.py                   → ApiRepository (lecturas tolerantes a fallos)
# ├── area_repository.py        → /areas
# ├── user_repository.py        → /users
# ├── warehouse_repository.py   → /warehouses
# ├── assignment_repository.py  → asignaciones área/bodega/supervisor
# ├── memory_repository.py      → asignaciones en memoria (libro append-only)
# ├── box_repository.py         → /boxes
# ├── product_repository.py     → /products
# └── history_repository.py     → historiales y auditoría
# ==============================================================================

from .interfaces import (
    IAreaRepository,
    IUserRepository,
    IWarehouseRepository,
    IAssignmentRepository,
    IBoxRepository,
    IProductRepository,
    IAssignmentHistoryRepository,
    IAuditLogRepository,
    IEnablementHistoryRepository,
)

from .api_client import ApiClient, ApiError, SessionExpiredError
from .base import ApiRepository
from .area_repository import AreaRepository
from .user_repository import UserRepository
from .warehouse_repository import WarehouseRepository
from .assignment_repository import AssignmentRepository
from .memory_repository import InMemoryAssignmentRepository
from .box_repository import BoxRepository
from .product_repository import ProductRepository
from .history_repository import (
    AssignmentHistoryRepository,
    AuditLogRepository,
    EnablementHistoryRepository,
)

__all__ = [
    'IAreaRepository', 'IUserRepository', 'IWarehouseRepository',
    'IAssignmentRepository', 'IBoxRepository', 'IProductRepository',
    'IAssignmentHistoryRepository',
    'IAuditLogRepository', 'IEnablementHistoryRepository',
    'ApiClient', 'ApiError', 'SessionExpiredError', 'ApiRepository',
    'AreaRepository', 'UserRepository', 'WarehouseRepository',
    'AssignmentRepository', 'InMemoryAssignmentRepository', 'BoxRepository',
    'ProductRepository',
    'AssignmentHistoryRepository', 'AuditLogRepository', 'EnablementHistoryRepository',
]

# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio del panel
# ==============================================================================
# Las rutas solo orquestan request → servicio → response.
# ==============================================================================

from .assignment_usecases import (
    AssignManagerToArea,
    RemoveManagerToArea,
    AssignWarehouseToArea,
    RemoveWarehouseFromArea,
    AssignSupervisorToWarehouse,
    RemoveSupervisorToWarehouse,
    RemoveAssignment,
)
from .mutation_service import MutationService
from .batch import BatchOperation, BatchOutcome, BatchReport, BatchRunner
from .visibility_service import Actor, OutOfScopeError, RoleEscalationError, VisibilityService
from .area_service import AreaService, AreaNotFoundError, LeafAreaRequiredError, build_tree
from .user_service import UserService, UniquenessConflictError, UserNotFoundError
from .warehouse_service import WarehouseService
from .warehouse_assignments_service import (
    WarehouseAssignmentsService,
    WarehouseAssignmentsReport,
    WarehouseNotFoundError,
)
from .box_service import BoxService
from .product_service import ProductService, validate_product_input
from .history_service import HistoryService
from .auth_service import AuthService, InvalidAuthResponseError

__all__ = [
    'AssignManagerToArea', 'RemoveManagerToArea', 'AssignWarehouseToArea',
    'RemoveWarehouseFromArea', 'AssignSupervisorToWarehouse',
    'RemoveSupervisorToWarehouse', 'RemoveAssignment',
    'MutationService',
    'BatchOperation', 'BatchOutcome', 'BatchReport', 'BatchRunner',
    'Actor', 'OutOfScopeError', 'RoleEscalationError', 'VisibilityService',
    'AreaService', 'AreaNotFoundError', 'LeafAreaRequiredError', 'build_tree',
    'UserService', 'UniquenessConflictError', 'UserNotFoundError',
    'WarehouseService',
    'WarehouseAssignmentsService', 'WarehouseAssignmentsReport', 'WarehouseNotFoundError',
    'BoxService', 'ProductService', 'validate_product_input', 'HistoryService',
    'AuthService', 'InvalidAuthResponseError',
]

# ==============================================================================
# CAPA DE CACHÉ - Lecturas cacheadas e invalidación declarativa
# ==============================================================================

from .query_keys import (
    QueryKey,
    AreaKeys,
    UserKeys,
    WarehouseKeys,
    WarehouseSupervisorKeys,
    EnablementHistoryKeys,
    AssignmentHistoryKeys,
    AuditLogKeys,
    BoxKeys,
    ProductKeys,
)
from .query_cache import QueryCache
from .invalidation import Mutation, INVALIDATION_MAP, keys_for, apply

__all__ = [
    'QueryKey', 'AreaKeys', 'UserKeys', 'WarehouseKeys', 'WarehouseSupervisorKeys',
    'EnablementHistoryKeys', 'AssignmentHistoryKeys', 'AuditLogKeys', 'BoxKeys',
    'ProductKeys',
    'QueryCache', 'Mutation', 'INVALIDATION_MAP', 'keys_for', 'apply',
]

# ==============================================================================
# SERVICIO DE HISTORIALES (habilitación global y auditoría)
# ==============================================================================

from typing import Any, Dict, List

from smartpack.cache.query_cache import QueryCache
from smartpack.cache.query_keys import AuditLogKeys, EnablementHistoryKeys
from smartpack.models.entities import AuditLogEntry, PaginatedResult

ENABLEMENT_FILTERS = ("userId", "performedById", "action", "from", "to", "page", "limit")
AUDIT_FILTERS = ("entityType", "entityId", "performedBy", "limit", "offset")


class HistoryService:

    def __init__(self, cache: QueryCache, enablement_repo, audit_repo):
        self.cache = cache
        self.enablement_repo = enablement_repo
        self.audit_repo = audit_repo

    def enablement_history(self, filters: Dict[str, Any] = None) -> PaginatedResult:
        """Historial global de habilitaciones (todas las páginas bajo global_all)."""
        filters = {k: v for k, v in (filters or {}).items()
                   if k in ENABLEMENT_FILTERS and v not in (None, "")}
        return self.cache.fetch(EnablementHistoryKeys.global_filtered(filters),
                                lambda: self.enablement_repo.find_all(filters))

    def audit_logs(self, filters: Dict[str, Any] = None) -> List[AuditLogEntry]:
        filters = {k: v for k, v in (filters or {}).items()
                   if k in AUDIT_FILTERS and v not in (None, "")}
        return self.cache.fetch(
            AuditLogKeys.filtered(filters),
            lambda: self.audit_repo.find_all(
                entity_type=filters.get("entityType"),
                entity_id=filters.get("entityId"),
                performed_by=filters.get("performedBy"),
                limit=filters.get("limit"),
                offset=filters.get("offset"),
            ),
        )

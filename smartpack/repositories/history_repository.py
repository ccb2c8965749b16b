# ==============================================================================
# REPOSITORIOS DE HISTORIAL Y AUDITORÍA
# ==============================================================================
#   AssignmentHistoryRepository    → /assignment-history
#   AuditLogRepository             → /audit-logs
#   EnablementHistoryRepository    → /enablement-history, /users/{id}/enablement-history
# ==============================================================================

import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any, Dict, List

from smartpack import config
from smartpack.models.entities import (
    AssignmentHistoryEntry,
    AuditLogEntry,
    PaginatedResult,
    UserEnablementHistoryEntry,
)
from smartpack.repositories.api_client import ApiError, SessionExpiredError
from smartpack.repositories.base import ApiRepository, logger


# ==============================================================================
# HISTORIAL DE ASIGNACIONES
# ==============================================================================

class AssignmentHistoryRepository(ApiRepository):
    """
    Historial de asignaciones por usuario.

    Si el backend no expone /assignment-history (404), las entradas nuevas se
    guardan en un buffer local acotado y se sirven desde ahí.
    """

    list_keys = ("history", "entries")
    LOCAL_LIMIT = 100

    def __init__(self, client, tenant_id: str = config.TENANT_ID):
        super().__init__(client, tenant_id)
        self._local = deque(maxlen=self.LOCAL_LIMIT)
        self._lock = threading.Lock()

    def _local_for(self, user_id: str) -> List[AssignmentHistoryEntry]:
        with self._lock:
            return [e for e in self._local if e.user_id == user_id]

    def find_by_user(self, user_id: str) -> List[AssignmentHistoryEntry]:
        try:
            response = self.client.get(f"/assignment-history/user/{user_id}",
                                       params={"tenantId": self.tenant_id})
        except SessionExpiredError:
            raise
        except ApiError as e:
            if e.status_code == 404:
                logger.info("📦 /assignment-history no disponible, usando historial local")
                return self._local_for(user_id)
            logger.warning("⚠️ Error leyendo historial de asignaciones: %s", e.message)
            return []
        return [AssignmentHistoryEntry.from_dict(i) for i in self._extract_list(response)]

    def create(self, entry: Dict[str, Any]) -> AssignmentHistoryEntry:
        payload = dict(entry)
        payload.setdefault("tenantId", self.tenant_id)
        payload.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        try:
            response = self.client.post("/assignment-history", json=payload)
        except ApiError as e:
            if e.status_code != 404:
                raise
            logger.info("📦 /assignment-history no disponible, guardando localmente")
            local = AssignmentHistoryEntry.from_dict(
                {"id": f"local_{uuid.uuid4().hex[:12]}", **payload}
            )
            with self._lock:
                self._local.append(local)
            return local
        return AssignmentHistoryEntry.from_dict(self._extract_item(response) or payload)


# ==============================================================================
# AUDITORÍA
# ==============================================================================

class AuditLogRepository(ApiRepository):
    """Log de auditoría (entityType, entityId, performedBy, limit, offset)."""

    list_keys = ("logs", "auditLogs")

    def find_all(self, entity_type: str = None, entity_id: str = None,
                 performed_by: str = None, limit: int = None,
                 offset: int = None) -> List[AuditLogEntry]:
        params = {"entityType": entity_type, "entityId": entity_id,
                  "performedBy": performed_by, "limit": limit, "offset": offset}
        return self._read_list("/audit-logs", AuditLogEntry.from_dict, params=params)

    def create(self, entry: Dict[str, Any]) -> AuditLogEntry:
        payload = dict(entry)
        payload.setdefault("tenantId", self.tenant_id)
        response = self.client.post("/audit-logs", json=payload)
        return AuditLogEntry.from_dict(self._extract_item(response) or {"id": "", **payload})


# ==============================================================================
# HISTORIAL DE HABILITACIÓN
# ==============================================================================

class EnablementHistoryRepository(ApiRepository):
    """Quién habilitó/deshabilitó a quién, cuándo y por qué."""

    def _page(self, path: str, params: Dict[str, Any], page: int, limit) -> PaginatedResult:
        try:
            response = self.client.get(path, params=params)
        except SessionExpiredError:
            raise
        except ApiError as e:
            logger.warning("⚠️ Error leyendo %s: %s", path, e.message)
            return PaginatedResult(page=page, limit=limit)
        items = [UserEnablementHistoryEntry.from_dict(i) for i in self._extract_list(response)]
        meta = response if isinstance(response, dict) else {}
        return PaginatedResult(items=items, total=int(meta.get("total", len(items))),
                               page=int(meta.get("page", page)), limit=meta.get("limit", limit))

    def find_by_user(self, user_id: str, page: int = 1, limit: int = None) -> PaginatedResult:
        return self._page(f"/users/{user_id}/enablement-history",
                          {"page": page, "limit": limit}, page, limit)

    def find_all(self, filters: Dict[str, Any] = None) -> PaginatedResult:
        """
        Historial global.

        Args:
            filters: userId, performedById, action, from, to, page, limit
        """
        filters = dict(filters or {})
        params = {}
        for key in ("userId", "performedById", "action", "from", "to", "page", "limit"):
            value = filters.get(key)
            if isinstance(value, datetime):
                value = value.isoformat()
            params[key] = value
        page = int(filters.get("page") or 1)
        return self._page("/enablement-history", params, page, filters.get("limit"))

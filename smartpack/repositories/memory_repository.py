# ==============================================================================
# REPOSITORIO DE ASIGNACIONES EN MEMORIA
# ==============================================================================
# Misma interfaz que AssignmentRepository, respaldada por el libro
# append-only. Sirve para trabajar sin backend y para pruebas.
# ==============================================================================

from typing import Any, Dict, List, Optional

from smartpack.models.assignment_ledger import AssignmentLedger
from smartpack.models.entities import Assignment, AssignmentType


class InMemoryAssignmentRepository:
    """Implementa IAssignmentRepository sobre AssignmentLedger."""

    def __init__(self, ledger: AssignmentLedger = None):
        self.ledger = ledger or AssignmentLedger()

    # =========================================================================
    # LECTURAS (historial completo, incluye revocadas)
    # =========================================================================

    def find_all(self, filters: Dict[str, Any] = None) -> List[Assignment]:
        filters = filters or {}
        rows = self.ledger.history(
            user_id=filters.get("userId"),
            area_id=filters.get("areaId"),
            warehouse_id=filters.get("warehouseId"),
        )
        if "isActive" in filters:
            rows = [a for a in rows if a.is_active == bool(filters["isActive"])]
        return rows

    def find_by_user(self, user_id: str) -> List[Assignment]:
        return self.ledger.history(user_id=user_id)

    def find_by_area(self, area_id: str) -> List[Assignment]:
        return self.ledger.history(area_id=area_id)

    def find_by_warehouse(self, warehouse_id: str) -> List[Assignment]:
        return self.ledger.history(warehouse_id=warehouse_id)

    def find_active(self, type: AssignmentType, user_id: str = None, area_id: str = None,
                    warehouse_id: str = None) -> Optional[Assignment]:
        return self.ledger.find_active(type, user_id=user_id, area_id=area_id,
                                       warehouse_id=warehouse_id)

    # =========================================================================
    # ESCRITURAS
    # =========================================================================

    def _revoke_pair(self, type: AssignmentType, **pair) -> Optional[Assignment]:
        current = self.ledger.find_active(type, **pair)
        if current is None:
            return None
        return self.ledger.revoke(current.id)

    def assign_manager_to_area(self, area_id: str, manager_id: str) -> Assignment:
        return self.ledger.assign(AssignmentType.AREA_MANAGER, user_id=manager_id, area_id=area_id)

    def remove_manager_from_area(self, area_id: str, manager_id: str) -> Optional[Assignment]:
        return self._revoke_pair(AssignmentType.AREA_MANAGER, user_id=manager_id, area_id=area_id)

    def assign_warehouse_to_area(self, area_id: str, warehouse_id: str) -> Assignment:
        return self.ledger.assign(AssignmentType.AREA_WAREHOUSE, area_id=area_id,
                                  warehouse_id=warehouse_id)

    def remove_warehouse_from_area(self, area_id: str, warehouse_id: str) -> Optional[Assignment]:
        return self._revoke_pair(AssignmentType.AREA_WAREHOUSE, area_id=area_id,
                                 warehouse_id=warehouse_id)

    def assign_supervisor_to_warehouse(self, warehouse_id: str, supervisor_id: str) -> Assignment:
        return self.ledger.assign(AssignmentType.WAREHOUSE_SUPERVISOR, user_id=supervisor_id,
                                  warehouse_id=warehouse_id)

    def remove_supervisor_from_warehouse(self, warehouse_id: str,
                                         supervisor_id: str) -> Optional[Assignment]:
        return self._revoke_pair(AssignmentType.WAREHOUSE_SUPERVISOR, user_id=supervisor_id,
                                 warehouse_id=warehouse_id)

    def remove_assignment(self, assignment_id: str) -> Assignment:
        return self.ledger.revoke(assignment_id)

# ==============================================================================
# REPOSITORIO DE ASIGNACIONES
# ==============================================================================
# Relaciones muchos-a-muchos materializadas por el backend:
#   área ↔ jefe           POST/DELETE /areas/{id}/managers[/{managerId}]
#   área ↔ bodega         POST/DELETE /areas/{id}/warehouses[/{warehouseId}]
#   bodega ↔ supervisor   POST /warehouses/{id}/supervisors
#                         DELETE /assignments/{assignmentId}
#
# Remover NO borra la fila: el backend la deja con isActive=false y revokedAt.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from smartpack.models.entities import Assignment, AssignmentType
from smartpack.repositories.base import ApiRepository

logger = logging.getLogger(__name__)


def _first_active(assignments: List[Assignment], type: AssignmentType, user_id: str = None,
                  area_id: str = None, warehouse_id: str = None) -> Optional[Assignment]:
    for a in assignments:
        if not a.is_active or a.type != type:
            continue
        if user_id is not None and a.user_id != user_id:
            continue
        if area_id is not None and a.area_id != area_id:
            continue
        if warehouse_id is not None and a.warehouse_id != warehouse_id:
            continue
        return a
    return None


class AssignmentRepository(ApiRepository):
    """Acceso a las relaciones de asignación."""

    list_keys = ("assignments",)

    # =========================================================================
    # LECTURAS
    # =========================================================================

    def find_all(self, filters: Dict[str, Any] = None) -> List[Assignment]:
        return self._read_list("/assignments", Assignment.from_dict, params=filters)

    def find_by_user(self, user_id: str) -> List[Assignment]:
        return [a for a in self.find_all() if a.user_id == user_id]

    def find_by_area(self, area_id: str) -> List[Assignment]:
        return [a for a in self.find_all() if a.area_id == area_id]

    def find_by_warehouse(self, warehouse_id: str) -> List[Assignment]:
        return [a for a in self.find_all() if a.warehouse_id == warehouse_id]

    def find_active(self, type: AssignmentType, user_id: str = None, area_id: str = None,
                    warehouse_id: str = None) -> Optional[Assignment]:
        """Asignación activa que calza exactamente con el par indicado."""
        return _first_active(self.find_all(), type, user_id, area_id, warehouse_id)

    # =========================================================================
    # ESCRITURAS
    # =========================================================================

    def assign_manager_to_area(self, area_id: str, manager_id: str) -> Any:
        return self.client.post(f"/areas/{area_id}/managers", json={"managerId": manager_id})

    def remove_manager_from_area(self, area_id: str, manager_id: str) -> Any:
        return self.client.delete(f"/areas/{area_id}/managers/{manager_id}")

    def assign_warehouse_to_area(self, area_id: str, warehouse_id: str) -> Any:
        return self.client.post(f"/areas/{area_id}/warehouses", json={"warehouseId": warehouse_id})

    def remove_warehouse_from_area(self, area_id: str, warehouse_id: str) -> Any:
        return self.client.delete(f"/areas/{area_id}/warehouses/{warehouse_id}")

    def assign_supervisor_to_warehouse(self, warehouse_id: str, supervisor_id: str) -> Any:
        return self.client.post(
            f"/warehouses/{warehouse_id}/supervisors", json={"supervisorId": supervisor_id}
        )

    def remove_supervisor_from_warehouse(self, warehouse_id: str, supervisor_id: str) -> Any:
        """
        Busca la asignación activa y la revoca por ID.

        La búsqueda es parte de la escritura: si GET /assignments falla, el
        ApiError se propaga. Sin fila activa no hay nada que revocar y la
        operación termina sin llamadas (el supervisor ya no está en la bodega).
        """
        rows = self._extract_list(self.client.get("/assignments"))
        assignment = _first_active(
            [Assignment.from_dict(r) for r in rows], AssignmentType.WAREHOUSE_SUPERVISOR,
            user_id=supervisor_id, warehouse_id=warehouse_id,
        )
        if assignment is None:
            logger.warning("⚠️ Sin asignación activa del supervisor %s en bodega %s",
                           supervisor_id, warehouse_id)
            return None
        return self.remove_assignment(assignment.id)

    def remove_assignment(self, assignment_id: str) -> Any:
        return self.client.delete(f"/assignments/{assignment_id}")

# ==============================================================================
# REPOSITORIO DE ÁREAS
# ==============================================================================

from typing import Any, Dict, List, Optional

from smartpack.models.entities import Area
from smartpack.repositories.base import ApiRepository


class AreaRepository(ApiRepository):
    """Acceso a /areas. Las asignaciones viven en AssignmentRepository."""

    list_keys = ("areas",)

    def find_all(self) -> List[Area]:
        return self._read_list("/areas", Area.from_dict)

    def find_by_id(self, area_id: str) -> Optional[Area]:
        """Detalle de área, con managers y warehouses si el backend los incluye."""
        return self._read_item(f"/areas/{area_id}", Area.from_dict)

    def create(self, data: Dict[str, Any]) -> Area:
        payload = {
            "name": data["name"],
            "level": data.get("level", 0),
            "parentId": data.get("parentId") or None,
            "status": data.get("status", "ACTIVO"),
            "description": data.get("description"),
            "tenantId": self.tenant_id,
        }
        return Area.from_dict(self._extract_item(self.client.post("/areas", json=payload)))

    def update(self, area_id: str, data: Dict[str, Any]) -> Area:
        allowed = ("name", "level", "parentId", "status", "description")
        payload = {k: v for k, v in data.items() if k in allowed}
        response = self.client.put(f"/areas/{area_id}", json=payload)
        return Area.from_dict(self._extract_item(response) or {"id": area_id, **payload})

    def delete(self, area_id: str) -> None:
        self.client.delete(f"/areas/{area_id}")

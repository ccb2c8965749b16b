# ==============================================================================
# REPOSITORIO DE BODEGAS
# ==============================================================================

from typing import Any, Dict, List, Optional

from smartpack.models.entities import Warehouse, WarehouseSupervisor
from smartpack.repositories.base import ApiRepository


class WarehouseRepository(ApiRepository):
    """Acceso a /warehouses."""

    list_keys = ("warehouses",)

    def find_all(self) -> List[Warehouse]:
        return self._read_list("/warehouses", Warehouse.from_dict)

    def find_by_id(self, warehouse_id: str) -> Optional[Warehouse]:
        return self._read_item(f"/warehouses/{warehouse_id}", Warehouse.from_dict)

    def find_by_area(self, area_id: str) -> List[Warehouse]:
        return [w for w in self.find_all() if w.area_id == str(area_id)]

    def find_supervisors(self, warehouse_id: str) -> List[WarehouseSupervisor]:
        supervisors = self._read_list(
            f"/warehouses/{warehouse_id}/supervisors", WarehouseSupervisor.from_dict
        )
        for s in supervisors:
            s.warehouse_id = s.warehouse_id or str(warehouse_id)
        return supervisors

    def create(self, data: Dict[str, Any]) -> Warehouse:
        payload = {
            "name": data["name"],
            "maxCapacityKg": data.get("maxCapacityKg", data.get("capacityKg", 900)),
            "isEnabled": data.get("isEnabled", True),
        }
        return Warehouse.from_dict(
            self._extract_item(self.client.post("/warehouses", json=payload))
        )

    def update(self, warehouse_id: str, data: Dict[str, Any]) -> Warehouse:
        allowed = ("name", "maxCapacityKg", "isEnabled")
        payload = {k: v for k, v in data.items() if k in allowed}
        response = self.client.put(f"/warehouses/{warehouse_id}", json=payload)
        return Warehouse.from_dict(self._extract_item(response) or {"id": warehouse_id, **payload})

# ==============================================================================
# REPOSITORIO DE CAJAS
# ==============================================================================

from typing import Any, Dict, Optional

from smartpack.models.entities import Box, BoxHistoryEvent, PaginatedResult
from smartpack.repositories.api_client import ApiError, SessionExpiredError
from smartpack.repositories.base import ApiRepository, logger


class BoxRepository(ApiRepository):
    """Acceso a /boxes (listado paginado, QR, movimientos, contenido)."""

    list_keys = ("boxes",)

    def _page(self, response: Any, mapper, page: int, limit: Optional[int]) -> PaginatedResult:
        items = [mapper(item) for item in self._extract_list(response)]
        meta = response if isinstance(response, dict) else {}
        return PaginatedResult(
            items=items,
            total=int(meta.get("total", len(items))),
            page=int(meta.get("page", page)),
            limit=meta.get("limit", limit),
        )

    # =========================================================================
    # LECTURAS
    # =========================================================================

    def find_all(self, page: int = 1, limit: int = 20, search: str = None,
                 status: str = None, warehouse_id: str = None) -> PaginatedResult:
        """Listado paginado; página vacía si la API falla."""
        params = {"page": page, "limit": limit, "search": search,
                  "status": status, "warehouseId": warehouse_id}
        try:
            response = self.client.get("/boxes", params=params)
        except SessionExpiredError:
            raise
        except ApiError as e:
            logger.warning("⚠️ Error leyendo /boxes (%s): %s", e.status_code, e.message)
            return PaginatedResult(page=page, limit=limit)
        return self._page(response, Box.from_dict, page, limit)

    def find_by_id(self, box_id: str) -> Optional[Box]:
        return self._read_item(f"/boxes/{box_id}", Box.from_dict)

    def find_by_qr(self, qr_code: str) -> Optional[Box]:
        """Busca por QR. Un 404 significa 'no existe' y retorna None."""
        try:
            response = self.client.get(f"/boxes/qr/{qr_code}")
        except SessionExpiredError:
            raise
        except ApiError as e:
            if e.status_code != 404:
                logger.warning("⚠️ Error buscando caja por QR %s: %s", qr_code, e.message)
            return None
        item = self._extract_item(response)
        return Box.from_dict(item) if item else None

    def history(self, box_id: str, page: int = 1, limit: int = 20,
                event_type: str = None) -> PaginatedResult:
        params = {"page": page, "limit": limit, "eventType": event_type}
        try:
            response = self.client.get(f"/boxes/{box_id}/history", params=params)
        except SessionExpiredError:
            raise
        except ApiError as e:
            logger.warning("⚠️ Error leyendo historial de caja %s: %s", box_id, e.message)
            return PaginatedResult(page=page, limit=limit)
        return self._page(response, BoxHistoryEvent.from_dict, page, limit)

    # =========================================================================
    # ESCRITURAS
    # =========================================================================

    def _box(self, response: Any) -> Box:
        return Box.from_dict(self._extract_item(response) or {})

    def create(self, data: Dict[str, Any]) -> Box:
        return self._box(self.client.post("/boxes", json=data))

    def update(self, box_id: str, data: Dict[str, Any]) -> Box:
        # qrCode no es modificable
        payload = {k: v for k, v in data.items() if k != "qrCode"}
        return self._box(self.client.patch(f"/boxes/{box_id}", json=payload))

    def move(self, box_id: str, warehouse_id: str, reason: str = None) -> Box:
        payload = {"warehouseId": warehouse_id}
        if reason:
            payload["reason"] = reason
        return self._box(self.client.patch(f"/boxes/{box_id}/move", json=payload))

    def change_status(self, box_id: str, status: str) -> Box:
        return self._box(self.client.patch(f"/boxes/{box_id}/status", json={"status": status}))

    def deactivate(self, box_id: str) -> Box:
        return self._box(self.client.patch(f"/boxes/{box_id}/deactivate", json={}))

    def add_equipment(self, box_id: str, equipment_id: str, quantity: int = 1) -> Any:
        return self.client.post(f"/boxes/{box_id}/equipments",
                                json={"equipmentId": equipment_id, "quantity": quantity})

    def remove_equipment(self, box_id: str, equipment_id: str) -> Any:
        return self.client.delete(f"/boxes/{box_id}/equipments/{equipment_id}")

    def add_material(self, box_id: str, material_id: str, quantity: float = 1) -> Any:
        return self.client.post(f"/boxes/{box_id}/materials",
                                json={"materialId": material_id, "quantity": quantity})

    def remove_material(self, box_id: str, material_id: str) -> Any:
        return self.client.delete(f"/boxes/{box_id}/materials/{material_id}")

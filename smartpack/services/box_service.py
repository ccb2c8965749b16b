# ==============================================================================
# SERVICIO DE CAJAS
# ==============================================================================
# Orquestación delgada sobre el repositorio de cajas: lecturas cacheadas y
# escrituras seguidas de la invalidación de la tabla.
# ==============================================================================

import logging
from typing import Any, Dict, Optional

from smartpack.cache.invalidation import Mutation
from smartpack.cache.query_cache import QueryCache
from smartpack.cache.query_keys import BoxKeys
from smartpack.models.entities import Box, BoxStatus, PaginatedResult
from smartpack.models.validators import ValidationError
from smartpack.services.mutation_service import MutationService

logger = logging.getLogger(__name__)


class BoxService:

    def __init__(self, cache: QueryCache, mutations: MutationService, box_repo):
        self.cache = cache
        self.mutations = mutations
        self.box_repo = box_repo

    # =========================================================================
    # LECTURAS
    # =========================================================================

    def list_boxes(self, page: int = 1, limit: int = 20, search: str = None,
                   status: str = None, warehouse_id: str = None) -> PaginatedResult:
        filters = {"page": page, "limit": limit, "search": search,
                   "status": status, "warehouseId": warehouse_id}
        return self.cache.fetch(
            BoxKeys.list(filters),
            lambda: self.box_repo.find_all(page=page, limit=limit, search=search,
                                           status=status, warehouse_id=warehouse_id),
        )

    def get_box(self, box_id: str) -> Optional[Box]:
        return self.cache.fetch(BoxKeys.detail(box_id), lambda: self.box_repo.find_by_id(box_id))

    def find_by_qr(self, qr_code: str) -> Optional[Box]:
        return self.cache.fetch(BoxKeys.by_qr(qr_code), lambda: self.box_repo.find_by_qr(qr_code))

    def history(self, box_id: str, page: int = 1, limit: int = 20) -> PaginatedResult:
        return self.cache.fetch(BoxKeys.history(box_id) + (page, limit),
                                lambda: self.box_repo.history(box_id, page, limit))

    # =========================================================================
    # ESCRITURAS
    # =========================================================================

    def create_box(self, data: Dict[str, Any]) -> Box:
        if not (data.get("qrCode") or "").strip():
            raise ValidationError({"qrCode": "El código QR es obligatorio"})
        box = self.box_repo.create(data)
        self.mutations.invalidate(Mutation.CREATE_BOX, box_id=box.id)
        return box

    def update_box(self, box_id: str, data: Dict[str, Any]) -> Box:
        box = self.box_repo.update(box_id, data)
        self.mutations.invalidate(Mutation.UPDATE_BOX, box_id=box_id)
        return box

    def move_box(self, box_id: str, warehouse_id: str, reason: str = None) -> Box:
        if not warehouse_id:
            raise ValidationError({"warehouseId": "Debe seleccionar la bodega de destino"})
        box = self.box_repo.move(box_id, warehouse_id, reason)
        self.mutations.invalidate(Mutation.MOVE_BOX, box_id=box_id)
        logger.info("📦 Caja %s movida a bodega %s", box_id, warehouse_id)
        return box

    def change_status(self, box_id: str, status: str) -> Box:
        try:
            status = BoxStatus(str(status or "").upper())
        except ValueError:
            raise ValidationError({"status": "Estado de caja inválido"})
        box = self.box_repo.change_status(box_id, status.value)
        self.mutations.invalidate(Mutation.CHANGE_BOX_STATUS, box_id=box_id)
        return box

    def deactivate(self, box_id: str) -> Box:
        box = self.box_repo.deactivate(box_id)
        self.mutations.invalidate(Mutation.DEACTIVATE_BOX, box_id=box_id)
        return box

    def add_equipment(self, box_id: str, equipment_id: str, quantity: int = 1) -> Any:
        result = self.box_repo.add_equipment(box_id, equipment_id, quantity)
        self.mutations.invalidate(Mutation.UPDATE_BOX_CONTENTS, box_id=box_id)
        return result

    def remove_equipment(self, box_id: str, equipment_id: str) -> Any:
        result = self.box_repo.remove_equipment(box_id, equipment_id)
        self.mutations.invalidate(Mutation.UPDATE_BOX_CONTENTS, box_id=box_id)
        return result

    def add_material(self, box_id: str, material_id: str, quantity: float = 1) -> Any:
        result = self.box_repo.add_material(box_id, material_id, quantity)
        self.mutations.invalidate(Mutation.UPDATE_BOX_CONTENTS, box_id=box_id)
        return result

    def remove_material(self, box_id: str, material_id: str) -> Any:
        result = self.box_repo.remove_material(box_id, material_id)
        self.mutations.invalidate(Mutation.UPDATE_BOX_CONTENTS, box_id=box_id)
        return result

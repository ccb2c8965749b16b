# ==============================================================================
# SERVICIO DE BODEGAS
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from smartpack.cache.invalidation import Mutation
from smartpack.cache.query_cache import QueryCache
from smartpack.cache.query_keys import WarehouseKeys, WarehouseSupervisorKeys
from smartpack.models.entities import Warehouse, WarehouseSupervisor
from smartpack.models.validators import ValidationError
from smartpack.services.mutation_service import MutationService

logger = logging.getLogger(__name__)

MAX_CAPACITY_KG = 900


class WarehouseService:
    """Lecturas cacheadas y formularios de bodegas."""

    def __init__(self, cache: QueryCache, mutations: MutationService, warehouse_repo):
        self.cache = cache
        self.mutations = mutations
        self.warehouse_repo = warehouse_repo

    def get_warehouse(self, warehouse_id: str) -> Optional[Warehouse]:
        return self.cache.fetch(WarehouseKeys.detail(warehouse_id),
                                lambda: self.warehouse_repo.find_by_id(warehouse_id))

    def supervisors(self, warehouse_id: str) -> List[WarehouseSupervisor]:
        """Supervisores con asignación activa en la bodega."""
        rows = self.cache.fetch(WarehouseSupervisorKeys.by_warehouse(warehouse_id),
                                lambda: self.warehouse_repo.find_supervisors(warehouse_id))
        return [s for s in rows if s.is_active]

    @staticmethod
    def _validate(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        errors = {}
        cleaned = dict(data)
        if not partial or "name" in data:
            name = (data.get("name") or "").strip()
            if len(name) < 2:
                errors["name"] = "Nombre debe tener al menos 2 caracteres"
            cleaned["name"] = name
        if "maxCapacityKg" in data:
            try:
                capacity = float(data["maxCapacityKg"])
            except (TypeError, ValueError):
                capacity = -1
            if not 0 < capacity <= MAX_CAPACITY_KG:
                errors["maxCapacityKg"] = f"La capacidad debe estar entre 1 y {MAX_CAPACITY_KG} kg"
            else:
                cleaned["maxCapacityKg"] = capacity
        if errors:
            raise ValidationError(errors)
        return cleaned

    def create_warehouse(self, data: Dict[str, Any]) -> Warehouse:
        warehouse = self.warehouse_repo.create(self._validate(data))
        self.mutations.invalidate(Mutation.CREATE_WAREHOUSE, warehouse_id=warehouse.id)
        logger.info("✅ Bodega creada: %s", warehouse.name)
        return warehouse

    def update_warehouse(self, warehouse_id: str, data: Dict[str, Any]) -> Warehouse:
        warehouse = self.warehouse_repo.update(warehouse_id, self._validate(data, partial=True))
        self.mutations.invalidate(Mutation.UPDATE_WAREHOUSE, warehouse_id=warehouse_id)
        return warehouse

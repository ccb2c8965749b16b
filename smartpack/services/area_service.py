# ==============================================================================
# SERVICIO DE ÁREAS
# ==============================================================================
# Árbol de áreas, formularios y relaciones área↔jefe / área↔bodega.
#
# REGLA DE HOJA: solo un área SIN sub-áreas puede tener bodegas. Se verifica
# antes de cualquier llamada de escritura.
# ==============================================================================

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from smartpack.cache.invalidation import Mutation
from smartpack.cache.query_cache import QueryCache
from smartpack.cache.query_keys import AreaKeys
from smartpack.models.entities import Area
from smartpack.models.validators import (
    AreaHierarchyError,
    ValidationError,
    derive_area_level,
    validate_area_input,
)
from smartpack.services.assignment_usecases import (
    AssignManagerToArea,
    AssignWarehouseToArea,
    RemoveManagerToArea,
    RemoveWarehouseFromArea,
)
from smartpack.services.mutation_service import MutationService

logger = logging.getLogger(__name__)


class LeafAreaRequiredError(Exception):
    """Se intentó ligar una bodega a un área que tiene sub-áreas."""

    def __init__(self, area: Area):
        self.area = area
        super().__init__(
            f'El área "{area.name}" tiene sub-áreas; solo las áreas sin sub-áreas '
            f'pueden tener bodegas'
        )


class AreaNotFoundError(Exception):
    pass


def build_tree(areas: List[Area]) -> List[Area]:
    """
    Arma el árbol de áreas a partir de una lista plana (por parentId).

    Retorna copias: las áreas cacheadas no se modifican.
    Un área cuyo padre no está en la lista se trata como raíz.
    """
    by_parent: Dict[Optional[str], List[Area]] = {}
    ids = {a.id for a in areas}
    for area in areas:
        parent = area.parent_id if area.parent_id in ids else None
        by_parent.setdefault(parent, []).append(area)

    def _node(area: Area) -> Area:
        children = [_node(c) for c in by_parent.get(area.id, [])]
        return replace(area, children=children,
                       sub_areas_count=max(area.sub_areas_count, len(children)))

    return [_node(a) for a in by_parent.get(None, [])]


class AreaService:
    """
    Uso:
        service = AreaService(cache, mutations, area_repo, assignment_repo)
        service.create_area({'name': 'Bodega Norte', 'parentId': 'a1'})
        service.assign_warehouse('a2', 'w1')
    """

    def __init__(self, cache: QueryCache, mutations: MutationService,
                 area_repo, assignment_repo):
        self.cache = cache
        self.mutations = mutations
        self.area_repo = area_repo
        self.assignment_repo = assignment_repo

    # =========================================================================
    # LECTURAS
    # =========================================================================

    def list_areas(self) -> List[Area]:
        return self.cache.fetch(AreaKeys.all(), self.area_repo.find_all)

    def get_area(self, area_id: str) -> Optional[Area]:
        return self.cache.fetch(AreaKeys.detail(area_id),
                                lambda: self.area_repo.find_by_id(area_id))

    def get_tree(self, areas: List[Area] = None) -> List[Area]:
        return build_tree(self.list_areas() if areas is None else areas)

    def _require(self, area_id: str) -> Area:
        area = self.get_area(area_id)
        if area is None:
            raise AreaNotFoundError(f"Área {area_id} no encontrada")
        return area

    def is_leaf(self, area: Area) -> bool:
        """Hoja según el detalle Y según la lista (algún área con parentId = area.id)."""
        if not area.is_leaf:
            return False
        return not any(a.parent_id == area.id for a in self.list_areas())

    # =========================================================================
    # FORMULARIOS
    # =========================================================================

    def _parent_level(self, parent_id: Optional[str]) -> Optional[int]:
        if not parent_id:
            return None
        parent = self.get_area(parent_id)
        if parent is None:
            raise AreaHierarchyError({"parentId": "Área padre no encontrada"})
        return parent.level

    def create_area(self, data: Dict[str, Any]) -> Area:
        """
        Crea un área con el nivel derivado del padre.

        Raises:
            ValidationError: Campos inválidos
            AreaHierarchyError: Nivel incoherente con el padre
        """
        data = dict(data)
        parent_id = data.get("parentId") or None
        parent_level = self._parent_level(parent_id)
        data["parentId"] = parent_id
        data.setdefault("level", derive_area_level(parent_level))
        cleaned = validate_area_input(data, parent_level)

        area = self.area_repo.create(cleaned)
        self.mutations.invalidate(Mutation.CREATE_AREA, area_id=area.id)
        if parent_id:
            self.cache.invalidate(AreaKeys.detail(parent_id))
        logger.info("✅ Área creada: %s (nivel %s)", area.name, area.level)
        return area

    def update_area(self, area_id: str, data: Dict[str, Any]) -> Area:
        data = dict(data)
        parent_level = None
        if "parentId" in data:
            parent_id = data.get("parentId") or None
            if parent_id == area_id:
                raise AreaHierarchyError({"parentId": "Un área no puede ser su propio padre"})
            data["parentId"] = parent_id
            parent_level = self._parent_level(parent_id)
            data.setdefault("level", derive_area_level(parent_level))
        cleaned = validate_area_input(data, parent_level, partial=True)

        area = self.area_repo.update(area_id, cleaned)
        self.mutations.invalidate(Mutation.UPDATE_AREA, area_id=area_id)
        return area

    # =========================================================================
    # RELACIONES
    # =========================================================================

    def assign_manager(self, area_id: str, manager_id: str) -> Any:
        return self.mutations.run(
            Mutation.ASSIGN_MANAGER_TO_AREA, AssignManagerToArea(self.assignment_repo),
            area_id, manager_id, area_id=area_id, user_id=manager_id,
        )

    def remove_manager(self, area_id: str, manager_id: str) -> Any:
        return self.mutations.run(
            Mutation.REMOVE_MANAGER_FROM_AREA, RemoveManagerToArea(self.assignment_repo),
            area_id, manager_id, area_id=area_id, user_id=manager_id,
        )

    def assign_warehouse(self, area_id: str, warehouse_id: str) -> Any:
        """
        Liga una bodega a un área hoja.

        Raises:
            ValidationError: Falta warehouse_id
            AreaNotFoundError: El área no existe
            LeafAreaRequiredError: El área tiene sub-áreas (no se llama al backend)
            MutationError: El backend rechazó la asignación
        """
        if not warehouse_id:
            raise ValidationError({"warehouseId": "Debe seleccionar una bodega"})
        area = self._require(area_id)
        if not self.is_leaf(area):
            logger.warning("🚫 Área %s no es hoja, se rechaza bodega %s", area_id, warehouse_id)
            raise LeafAreaRequiredError(area)
        return self.mutations.run(
            Mutation.ASSIGN_WAREHOUSE_TO_AREA, AssignWarehouseToArea(self.assignment_repo),
            area_id, warehouse_id, area_id=area_id, warehouse_id=warehouse_id,
        )

    def remove_warehouse(self, area_id: str, warehouse_id: str) -> Any:
        return self.mutations.run(
            Mutation.REMOVE_WAREHOUSE_FROM_AREA, RemoveWarehouseFromArea(self.assignment_repo),
            area_id, warehouse_id, area_id=area_id, warehouse_id=warehouse_id,
        )

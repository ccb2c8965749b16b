# ==============================================================================
# ASIGNACIONES CONSOLIDADAS DE UNA BODEGA
# ==============================================================================
# Un solo "Guardar" para el área dueña y los supervisores de una bodega:
#
#   0. Alcance: la bodega debe ser gestionable por el actor (ADMIN, o JEFE
#      dueño del área actual); se valida antes de la primera escritura
#   1. Área: si cambió, se remueve la anterior y se asigna la nueva
#      (en ese orden; una bodega tiene a lo más un área). Si la remoción
#      falla, la nueva área NO se asigna y se reportan ambos errores
#   2. Supervisores desmarcados: se remueven (lote)
#   3. Supervisores nuevos: se asignan (lote)
#   4. Se invalida el set completo de claves del flujo, haya o no errores
#
# Los errores se acumulan y se reportan juntos; lo que sí se guardó queda.
# ==============================================================================

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from smartpack.cache.invalidation import Mutation
from smartpack.models.entities import User, Warehouse, WarehouseSupervisor
from smartpack.models.validators import ValidationError
from smartpack.performance_logger import profile_function
from smartpack.services.area_service import AreaService, LeafAreaRequiredError
from smartpack.services.assignment_usecases import (
    AssignSupervisorToWarehouse,
    AssignWarehouseToArea,
    RemoveAssignment,
    RemoveSupervisorToWarehouse,
    RemoveWarehouseFromArea,
)
from smartpack.services.batch import BatchOperation, BatchReport, BatchRunner
from smartpack.services.mutation_service import MutationService
from smartpack.services.visibility_service import Actor, OutOfScopeError, VisibilityService
from smartpack.services.warehouse_service import WarehouseService

logger = logging.getLogger(__name__)

NO_CHANGES_TITLE = "Sin cambios"
NO_CHANGES_MESSAGE = "No se realizaron modificaciones."
UPDATED_TITLE = "✅ Asignaciones actualizadas"
PARTIAL_TITLE = "⚠️ Completado con errores"


class WarehouseNotFoundError(Exception):
    pass


@dataclass
class WarehouseAssignmentsReport(BatchReport):
    area_changed: bool = False
    supervisors_changed: bool = False

    def to_dict(self):
        data = super().to_dict()
        data.update({"areaChanged": self.area_changed,
                     "supervisorsChanged": self.supervisors_changed})
        return data


def summarize(report: WarehouseAssignmentsReport, warehouse_name: str) -> None:
    """Completa título y mensaje de la notificación."""
    if not report.area_changed and not report.supervisors_changed and not report.errors:
        report.title, report.message = NO_CHANGES_TITLE, NO_CHANGES_MESSAGE
    elif not report.errors:
        changes = []
        if report.area_changed:
            changes.append("área")
        if report.supervisors_changed:
            changes.append("supervisores")
        report.title = UPDATED_TITLE
        report.message = (f"Se actualizaron las asignaciones de {' y '.join(changes)} "
                          f'para la bodega "{warehouse_name}".')
    else:
        report.title = PARTIAL_TITLE
        report.message = ("Algunos cambios se guardaron, pero hubo problemas: "
                          f"{', '.join(report.errors)}.")


class WarehouseAssignmentsService:
    """
    Uso:
        service.save(actor, 'w1', area_id='a2', supervisor_ids=['u1', 'u3'])
    """

    def __init__(self, mutations: MutationService, assignment_repo,
                 warehouse_service: WarehouseService, area_service: AreaService,
                 visibility: VisibilityService, batch_runner: BatchRunner = None):
        self.mutations = mutations
        self.assignment_repo = assignment_repo
        self.warehouse_service = warehouse_service
        self.area_service = area_service
        self.visibility = visibility
        self.batch_runner = batch_runner or BatchRunner()

    def _check_inputs(self, actor: Actor, warehouse: Warehouse, area_id: Optional[str],
                      to_add: List[str], candidates: Dict[str, User]) -> None:
        """Valida todo antes de la primera llamada de escritura."""
        if not self.visibility.can_manage_warehouse(actor, warehouse):
            logger.warning("🚫 %s intentó editar la bodega %s fuera de su alcance",
                           actor.user_id, warehouse.id)
            raise OutOfScopeError("No tienes permisos sobre esta bodega")
        errors = {}
        unknown = [i for i in to_add if i not in candidates]
        if unknown:
            errors["supervisorIds"] = f"Supervisores no disponibles: {', '.join(unknown)}"
        if area_id and not self.visibility.can_manage_area(actor, area_id):
            errors["areaId"] = "No puedes asignar bodegas a esta área"
        if errors:
            raise ValidationError(errors)
        if area_id:
            area = self.area_service.get_area(area_id)
            if area is None:
                raise ValidationError({"areaId": "Área no encontrada"})
            if not self.area_service.is_leaf(area):
                raise LeafAreaRequiredError(area)

    @profile_function(name="Guardar asignaciones de bodega")
    def save(self, actor: Actor, warehouse_id: str, area_id: Optional[str],
             supervisor_ids: List[str],
             current_area_assignment_id: str = None) -> WarehouseAssignmentsReport:
        """
        Guarda área y supervisores de la bodega.

        Args:
            actor: Quién guarda
            warehouse_id: Bodega editada
            area_id: Área seleccionada (None/'' = sin área)
            supervisor_ids: IDs de supervisores seleccionados
            current_area_assignment_id: ID de la asignación área↔bodega vigente

        Returns:
            Reporte con título/mensaje de la notificación y los errores

        Raises:
            WarehouseNotFoundError: La bodega no existe
            OutOfScopeError: La bodega no es gestionable por el actor
            ValidationError: Área o supervisores fuera de alcance
            LeafAreaRequiredError: El área elegida tiene sub-áreas
        """
        warehouse = self.warehouse_service.get_warehouse(warehouse_id)
        if warehouse is None:
            raise WarehouseNotFoundError(f"Bodega {warehouse_id} no encontrada")

        new_area_id = area_id or None
        old_area_id = warehouse.area_id or None
        current: List[WarehouseSupervisor] = self.warehouse_service.supervisors(warehouse_id)
        current_ids = [s.user_id for s in current]
        selected = list(dict.fromkeys(supervisor_ids or []))
        to_add = [i for i in selected if i not in current_ids]
        to_remove = [s for s in current if s.user_id not in selected]
        candidates = {u.id: u for u in self.visibility.supervisor_candidates(actor)}

        area_changed = new_area_id != old_area_id
        self._check_inputs(actor, warehouse, new_area_id if area_changed else None,
                          to_add, candidates)

        report = WarehouseAssignmentsReport()

        # 1. Área (secuencial: remover antes de asignar)
        if area_changed:
            old_removed = True
            if old_area_id:
                if current_area_assignment_id:
                    result = RemoveAssignment(self.assignment_repo)(current_area_assignment_id)
                else:
                    result = RemoveWarehouseFromArea(self.assignment_repo)(old_area_id, warehouse_id)
                if not result.ok:
                    old_removed = False
                    report.add_error("No se pudo remover el área anterior")
            if not old_removed:
                if new_area_id:
                    report.add_error("No se pudo asignar el área seleccionada")
            elif new_area_id:
                result = AssignWarehouseToArea(self.assignment_repo)(new_area_id, warehouse_id)
                if result.ok:
                    report.area_changed = True
                else:
                    report.add_error("No se pudo asignar el área seleccionada")
            else:
                report.area_changed = True

        # 2. Supervisores desmarcados
        remove_assignment = RemoveAssignment(self.assignment_repo)
        remove_supervisor = RemoveSupervisorToWarehouse(self.assignment_repo)
        removals = []
        for s in to_remove:
            if s.assignment_id:
                fn = (lambda a=s.assignment_id: remove_assignment(a).unwrap())
            else:
                fn = (lambda u=s.user_id: remove_supervisor(warehouse_id, u).unwrap())
            removals.append(BatchOperation(f"remove:{s.user_id}",
                                           f"No se pudo remover a {s.full_name}", fn))
        outcomes = self.batch_runner.run(removals)
        report.extend(outcomes)

        # 3. Supervisores nuevos
        assign_supervisor = AssignSupervisorToWarehouse(self.assignment_repo)
        additions = []
        for user_id in to_add:
            user = candidates[user_id]
            additions.append(BatchOperation(
                f"add:{user_id}", f"No se pudo asignar a {user.name} {user.last_name}",
                lambda u=user_id: assign_supervisor(warehouse_id, u).unwrap(),
            ))
        added = self.batch_runner.run(additions)
        report.extend(added)
        report.supervisors_changed = any(o.ok for o in outcomes + added)

        summarize(report, warehouse.name)

        # 4. Invalidación del flujo completo
        self.mutations.invalidate(Mutation.WAREHOUSE_ASSIGNMENTS, warehouse_id=warehouse_id,
                                  old_area_id=old_area_id, new_area_id=new_area_id)
        logger.info("📦 Bodega %s: %s", warehouse_id, report.title)
        return report

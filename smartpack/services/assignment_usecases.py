# ==============================================================================
# CASOS DE USO DE ASIGNACIÓN
# ==============================================================================
# Todos tienen la misma forma:
#   - Entrada: dos identificadores (ej: area_id, manager_id)
#   - Exactamente UNA llamada al repositorio; sin reintentos, sin estado local
#     y sin acción compensatoria
#   - Salida: Result → success(valor) o failure(mensaje)
#
# La expiración de sesión NO se convierte en failure: se propaga para que la
# app complete la redirección al login.
# ==============================================================================

import logging
from abc import ABC, abstractmethod
from typing import Any

from smartpack.models.result import Result, failure, success
from smartpack.repositories.api_client import ApiError, SessionExpiredError

logger = logging.getLogger(__name__)


class AssignmentUseCase(ABC):
    """
    Base de los casos de uso de asignación.

    Las subclases definen default_error y _call(repo, first_id, second_id).
    """

    default_error = "Error en la asignación"

    def __init__(self, assignment_repo):
        """
        Args:
            assignment_repo: Implementación de IAssignmentRepository
        """
        self.assignment_repo = assignment_repo

    @abstractmethod
    def _call(self, *ids: str) -> Any:
        pass

    def execute(self, *ids: str) -> Result:
        """
        Ejecuta la llamada y envuelve el resultado.

        Returns:
            success(respuesta del backend) o failure(mensaje para el usuario)

        Raises:
            SessionExpiredError: Si el 401 inició la redirección al login
        """
        try:
            return success(self._call(*ids))
        except SessionExpiredError:
            raise
        except ApiError as e:
            logger.warning("⚠️ %s %s falló: %s", type(self).__name__, ids, e.message)
            return failure(e.message or self.default_error)

    __call__ = execute


class AssignManagerToArea(AssignmentUseCase):
    default_error = "Error al asignar jefe al área"

    def _call(self, area_id: str, manager_id: str) -> Any:
        return self.assignment_repo.assign_manager_to_area(area_id, manager_id)


class RemoveManagerToArea(AssignmentUseCase):
    default_error = "Error al remover jefe de área"

    def _call(self, area_id: str, manager_id: str) -> Any:
        return self.assignment_repo.remove_manager_from_area(area_id, manager_id)


class AssignWarehouseToArea(AssignmentUseCase):
    default_error = "Error al asignar bodega al área"

    def _call(self, area_id: str, warehouse_id: str) -> Any:
        return self.assignment_repo.assign_warehouse_to_area(area_id, warehouse_id)


class RemoveWarehouseFromArea(AssignmentUseCase):
    default_error = "Error al remover bodega del área"

    def _call(self, area_id: str, warehouse_id: str) -> Any:
        return self.assignment_repo.remove_warehouse_from_area(area_id, warehouse_id)


class AssignSupervisorToWarehouse(AssignmentUseCase):
    default_error = "Error al asignar supervisor a la bodega"

    def _call(self, warehouse_id: str, supervisor_id: str) -> Any:
        return self.assignment_repo.assign_supervisor_to_warehouse(warehouse_id, supervisor_id)


class RemoveSupervisorToWarehouse(AssignmentUseCase):
    default_error = "Error al remover supervisor de la bodega"

    def _call(self, warehouse_id: str, supervisor_id: str) -> Any:
        return self.assignment_repo.remove_supervisor_from_warehouse(warehouse_id, supervisor_id)


class RemoveAssignment(AssignmentUseCase):
    """Revoca una asignación por su ID (una sola entrada)."""

    default_error = "Error al remover asignación"

    def _call(self, assignment_id: str) -> Any:
        return self.assignment_repo.remove_assignment(assignment_id)


# ==============================================================================
# SERVICIO DE USUARIOS
# ==============================================================================
# Toda la lógica de negocio de usuarios vive aquí, NO en las rutas:
#   - Validación local del formulario (nunca llega a la red si falla)
#   - Unicidad de RUT/email con un round trip dedicado
#   - Guardia de escalamiento de rol (JEFE → solo SUPERVISOR) y de alcance
#     (un JEFE solo toca a los usuarios y bodegas de sus áreas)
#   - Habilitar/deshabilitar con auditoría best-effort
#   - Sincronización de asignaciones por diff (lote acumular-y-reportar)
#     e historial de asignaciones
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional, Tuple

from smartpack import config
from smartpack.cache.invalidation import Mutation
from smartpack.cache.query_cache import QueryCache
from smartpack.cache.query_keys import (
    AreaKeys,
    AssignmentHistoryKeys,
    EnablementHistoryKeys,
    UserKeys,
    WarehouseKeys,
)
from smartpack.models.entities import (
    AssignmentAction,
    AssignmentEntityType,
    AssignmentHistoryEntry,
    AuditAction,
    AuditEntityType,
    PaginatedResult,
    User,
    UserStatus,
)
from smartpack.models.result import Result, failure, success
from smartpack.models.roles import UserRole
from smartpack.models.validators import ValidationError, validate_user_input
from smartpack.performance_logger import profile_function
from smartpack.repositories.api_client import ApiError, SessionExpiredError
from smartpack.services.assignment_usecases import (
    AssignManagerToArea,
    AssignSupervisorToWarehouse,
    RemoveManagerToArea,
    RemoveSupervisorToWarehouse,
)
from smartpack.services.batch import BatchOperation, BatchReport, BatchRunner
from smartpack.services.mutation_service import MutationService
from smartpack.services.visibility_service import Actor, VisibilityService, ensure_can_assign_role

logger = logging.getLogger(__name__)


class UniquenessConflictError(ValidationError):
    """RUT o email ya registrados por otro usuario."""
    pass


class UserNotFoundError(Exception):
    pass


def _diff(previous: List[str], current: List[str]) -> Tuple[List[str], List[str]]:
    """(agregados, removidos) preservando el orden de cada lista."""
    added = [i for i in current if i not in previous]
    removed = [i for i in previous if i not in current]
    return added, removed


class UserService:
    """
    Servicio para gestión de usuarios.

    Responsabilidades:
    - CRUD de usuarios con validación y unicidad
    - Protección contra escalamiento de rol
    - Cambio de estado con auditoría
    - Asignaciones de áreas (JEFE) y bodegas (SUPERVISOR)
    """

    def __init__(self, cache: QueryCache, mutations: MutationService, user_repo,
                 assignment_repo, audit_repo=None, assignment_history_repo=None,
                 enablement_repo=None, area_repo=None, warehouse_repo=None,
                 batch_runner: BatchRunner = None, visibility: VisibilityService = None):
        """
        Args:
            cache: Caché de consultas compartida
            mutations: Canal de mutaciones (invalidación)
            user_repo: Repositorio de usuarios
            assignment_repo: Repositorio de asignaciones
            audit_repo: Log de auditoría (opcional, best-effort)
            assignment_history_repo: Historial de asignaciones (opcional)
            enablement_repo: Historial de habilitación (opcional)
            area_repo: Para resolver nombres de áreas
            warehouse_repo: Para resolver nombres de bodegas
            batch_runner: Ejecutor de lotes
            visibility: Reglas de alcance (sin ella solo se valida el rol)
        """
        self.cache = cache
        self.mutations = mutations
        self.user_repo = user_repo
        self.assignment_repo = assignment_repo
        self.audit_repo = audit_repo
        self.assignment_history_repo = assignment_history_repo
        self.enablement_repo = enablement_repo
        self.area_repo = area_repo
        self.warehouse_repo = warehouse_repo
        self.batch_runner = batch_runner or BatchRunner()
        self.visibility = visibility

    # =========================================================================
    # LECTURAS
    # =========================================================================

    def get_user(self, user_id: str) -> Optional[User]:
        return self.cache.fetch(UserKeys.detail(user_id),
                                lambda: self.user_repo.find_by_id(user_id))

    def _require(self, user_id: str) -> User:
        user = self.get_user(user_id)
        if user is None:
            raise UserNotFoundError("Usuario no encontrado")
        return user

    def enablement_history(self, user_id: str, page: int = 1,
                           limit: int = None) -> PaginatedResult:
        if self.enablement_repo is None:
            return PaginatedResult(page=page, limit=limit)
        return self.cache.fetch(
            EnablementHistoryKeys.by_user_page(user_id, page, limit),
            lambda: self.enablement_repo.find_by_user(user_id, page, limit),
        )

    def assignment_history(self, user_id: str) -> List[AssignmentHistoryEntry]:
        if self.assignment_history_repo is None:
            return []
        return self.cache.fetch(AssignmentHistoryKeys.by_user(user_id),
                                lambda: self.assignment_history_repo.find_by_user(user_id))

    def _area_name(self, area_id: str) -> str:
        if self.area_repo is None:
            return area_id
        areas = self.cache.fetch(AreaKeys.all(), self.area_repo.find_all)
        return next((a.name for a in areas if a.id == area_id), area_id)

    def _warehouse_name(self, warehouse_id: str) -> str:
        if self.warehouse_repo is None:
            return warehouse_id
        warehouses = self.cache.fetch(WarehouseKeys.all(), self.warehouse_repo.find_all)
        return next((w.name for w in warehouses if w.id == warehouse_id), warehouse_id)

    # =========================================================================
    # ALCANCE
    # =========================================================================

    def _ensure_manageable(self, actor: Actor, target: User) -> UserRole:
        if self.visibility is None:
            return ensure_can_assign_role(actor, target.role, target)
        return self.visibility.ensure_can_manage_user(actor, target)

    def _ensure_assignment_scope(self, actor: Actor, role: UserRole,
                                 areas: List[str], warehouses: List[str],
                                 previous_areas: List[str] = (),
                                 previous_warehouses: List[str] = ()) -> None:
        """Solo se valida lo que cambia; lo ya asignado no se toca."""
        if self.visibility is None:
            return
        if role == UserRole.JEFE:
            added, removed = _diff(list(previous_areas), areas)
            self.visibility.ensure_assignments_in_scope(actor, area_ids=added + removed)
        elif role == UserRole.SUPERVISOR:
            added, removed = _diff(list(previous_warehouses), warehouses)
            self.visibility.ensure_assignments_in_scope(actor, warehouse_ids=added + removed)

    # =========================================================================
    # UNICIDAD
    # =========================================================================

    def validate_unique(self, rut: str = None, email: str = None,
                        exclude_user_id: str = None) -> Dict[str, Any]:
        return self.user_repo.validate_unique(rut=rut, email=email,
                                              exclude_user_id=exclude_user_id)

    def ensure_unique(self, rut: str = None, email: str = None,
                      exclude_user_id: str = None) -> None:
        """
        Raises:
            UniquenessConflictError: Con los campos en conflicto
        """
        if not rut and not email:
            return
        result = self.validate_unique(rut, email, exclude_user_id)
        errors = {}
        if rut and not result["rutAvailable"]:
            errors["rut"] = "El RUT ya está registrado"
        if email and not result["emailAvailable"]:
            errors["email"] = "El email ya está registrado"
        if errors:
            raise UniquenessConflictError(errors)

    # =========================================================================
    # CREAR / ACTUALIZAR
    # =========================================================================

    def create_user(self, actor: Actor, data: Dict[str, Any]) -> Tuple[User, BatchReport]:
        """
        Crea un usuario y sus asignaciones iniciales.

        Returns:
            (usuario creado, reporte de asignaciones)

        Raises:
            ValidationError: Formulario inválido
            RoleEscalationError: Rol fuera del alcance del actor
            OutOfScopeError: Áreas o bodegas iniciales fuera de su alcance
            UniquenessConflictError: RUT o email duplicados
        """
        cleaned = validate_user_input(data)
        role = ensure_can_assign_role(actor, cleaned["role"])
        areas = list(data.get("areas") or [])
        warehouses = list(data.get("warehouses") or [])
        self._ensure_assignment_scope(actor, role, areas, warehouses)
        self.ensure_unique(cleaned.get("rut"), cleaned.get("email"))

        user = self.user_repo.create(cleaned)
        self.mutations.invalidate(Mutation.CREATE_USER, user_id=user.id)
        logger.info("✅ Usuario creado: %s (%s)", user.email, role.value)

        report = self.sync_assignments(actor, user, role, areas=areas, warehouses=warehouses)
        return user, report

    def update_user(self, actor: Actor, user_id: str,
                    data: Dict[str, Any]) -> Tuple[User, Optional[BatchReport]]:
        """
        Actualiza datos del usuario y, si vienen, sincroniza sus asignaciones.

        Raises:
            UserNotFoundError: El usuario no existe
            ValidationError / RoleEscalationError / UniquenessConflictError
            OutOfScopeError: Usuario, áreas o bodegas fuera del alcance del actor
        """
        target = self._require(user_id)
        self._ensure_manageable(actor, target)
        fields = {k: v for k, v in data.items() if k not in ("areas", "warehouses")}
        cleaned = validate_user_input(fields, partial=True)
        role = ensure_can_assign_role(actor, cleaned.get("role", target.role), target)
        areas = list(data.get("areas", target.areas) or [])
        warehouses = list(data.get("warehouses", target.warehouses) or [])
        self._ensure_assignment_scope(actor, role, areas, warehouses,
                                      target.areas, target.warehouses)

        rut = cleaned.get("rut") if cleaned.get("rut") != target.rut else None
        email = cleaned.get("email") if cleaned.get("email") != target.email else None
        self.ensure_unique(rut, email, exclude_user_id=user_id)

        user = self.user_repo.update(user_id, cleaned) if cleaned else target
        self.mutations.invalidate(Mutation.UPDATE_USER, user_id=user_id)

        report = None
        if "areas" in data or "warehouses" in data:
            report = self.sync_assignments(
                actor, user, role, areas=areas, warehouses=warehouses,
                previous_areas=list(target.areas),
                previous_warehouses=list(target.warehouses),
            )
        return user, report

    # =========================================================================
    # ESTADO
    # =========================================================================

    def toggle_status(self, actor: Actor, user_id: str, new_status: str = None,
                      reason: str = None) -> Result:
        """
        Habilita o deshabilita un usuario.

        La auditoría es best-effort: si falla, el cambio de estado se mantiene.

        Args:
            actor: Quién realiza el cambio
            user_id: Usuario destino
            new_status: HABILITADO/DESHABILITADO (default: invierte el actual)
            reason: Motivo (queda en el historial de habilitación)

        Returns:
            success(User) o failure(mensaje)

        Raises:
            RoleEscalationError / OutOfScopeError: target fuera del alcance del actor
        """
        try:
            current = self._require(user_id)
        except UserNotFoundError as e:
            return failure(str(e))
        self._ensure_manageable(actor, current)

        if new_status is None:
            new_status = (UserStatus.DESHABILITADO if current.is_enabled
                          else UserStatus.HABILITADO)
        try:
            new_status = UserStatus(str(getattr(new_status, "value", new_status)).upper())
        except ValueError:
            return failure("Estado inválido")

        try:
            updated = self.user_repo.update_status(user_id, new_status.value, reason)
        except SessionExpiredError:
            raise
        except ApiError as e:
            return failure(e.message or "Error al cambiar estado del usuario")

        enabled = new_status == UserStatus.HABILITADO
        self._audit(
            entity_id=user_id,
            entity_name=updated.full_name,
            action=AuditAction.USER_ENABLED if enabled else AuditAction.USER_DISABLED,
            performed_by=actor.user_id,
            details={
                "previousStatus": (UserStatus.DESHABILITADO if enabled
                                   else UserStatus.HABILITADO).value,
                "newStatus": new_status.value,
                "reason": reason,
            },
        )
        self.mutations.invalidate(Mutation.TOGGLE_USER_STATUS, user_id=user_id)
        return success(updated)

    def _audit(self, entity_id: str, entity_name: str, action: AuditAction,
               performed_by: str, details: Dict[str, Any]) -> None:
        if self.audit_repo is None:
            return
        try:
            self.audit_repo.create({
                "entityType": AuditEntityType.USER.value,
                "entityId": entity_id,
                "entityName": entity_name,
                "action": action.value,
                "performedBy": performed_by,
                "details": details,
                "tenantId": config.TENANT_ID,
            })
            logger.info("✅ Auditoría registrada: %s %s", action.value, entity_id)
        except SessionExpiredError:
            raise
        except ApiError as e:
            logger.error("⚠️ Error al registrar auditoría: %s", e.message)

    # =========================================================================
    # ASIGNACIONES
    # =========================================================================

    @profile_function(name="Sincronizar asignaciones de usuario")
    def sync_assignments(self, actor: Actor, user: User, role: UserRole,
                         areas: List[str], warehouses: List[str],
                         previous_areas: List[str] = None,
                         previous_warehouses: List[str] = None) -> BatchReport:
        """
        Aplica el diff de asignaciones según el rol efectivo del usuario.

        JEFE → áreas (área↔jefe). SUPERVISOR → bodegas (bodega↔supervisor).
        Cada alta/baja es una operación del lote; los fallos se acumulan.

        Returns:
            BatchReport con título y mensaje para la notificación

        Raises:
            OutOfScopeError: Un cambio cae fuera del alcance del actor (nada se escribe)
        """
        previous_areas = previous_areas or []
        previous_warehouses = previous_warehouses or []
        self._ensure_assignment_scope(actor, role, areas, warehouses,
                                      previous_areas, previous_warehouses)
        operations: List[BatchOperation] = []
        changes: List[str] = []
        applied_areas: Tuple[List[str], List[str]] = ([], [])
        applied_warehouses: Tuple[List[str], List[str]] = ([], [])

        if role == UserRole.JEFE:
            added, removed = _diff(previous_areas, areas)
            assign = AssignManagerToArea(self.assignment_repo)
            remove = RemoveManagerToArea(self.assignment_repo)
            for area_id in added:
                name = self._area_name(area_id)
                operations.append(BatchOperation(
                    f"area+{area_id}", f"No se pudo asignar el área {name}",
                    lambda a=area_id: assign(a, user.id).unwrap(),
                ))
            for area_id in removed:
                name = self._area_name(area_id)
                operations.append(BatchOperation(
                    f"area-{area_id}", f"No se pudo remover el área {name}",
                    lambda a=area_id: remove(a, user.id).unwrap(),
                ))
            applied_areas = (added, removed)

        elif role == UserRole.SUPERVISOR:
            added, removed = _diff(previous_warehouses, warehouses)
            assign = AssignSupervisorToWarehouse(self.assignment_repo)
            remove = RemoveSupervisorToWarehouse(self.assignment_repo)
            for warehouse_id in added:
                name = self._warehouse_name(warehouse_id)
                operations.append(BatchOperation(
                    f"warehouse+{warehouse_id}", f"No se pudo asignar la bodega {name}",
                    lambda w=warehouse_id: assign(w, user.id).unwrap(),
                ))
            for warehouse_id in removed:
                name = self._warehouse_name(warehouse_id)
                operations.append(BatchOperation(
                    f"warehouse-{warehouse_id}", f"No se pudo remover la bodega {name}",
                    lambda w=warehouse_id: remove(w, user.id).unwrap(),
                ))
            applied_warehouses = (added, removed)

        report = BatchReport()
        report.extend(self.batch_runner.run(operations))
        done = set(report.succeeded)

        area_added = [a for a in applied_areas[0] if f"area+{a}" in done]
        area_removed = [a for a in applied_areas[1] if f"area-{a}" in done]
        wh_added = [w for w in applied_warehouses[0] if f"warehouse+{w}" in done]
        wh_removed = [w for w in applied_warehouses[1] if f"warehouse-{w}" in done]

        for label, ids, resolve in (
            ("Áreas agregadas", area_added, self._area_name),
            ("Áreas removidas", area_removed, self._area_name),
            ("Bodegas agregadas", wh_added, self._warehouse_name),
            ("Bodegas removidas", wh_removed, self._warehouse_name),
        ):
            if ids:
                changes.append(f"{label}: {', '.join(resolve(i) for i in ids)}")

        if operations:
            self.mutations.invalidate(Mutation.SYNC_USER_ASSIGNMENTS, user_id=user.id)
            self.log_assignment_change(
                actor, user.id,
                previous_areas=area_removed, new_areas=area_added,
                previous_warehouses=wh_removed, new_warehouses=wh_added,
            )

        if report.has_errors:
            report.title = "⚠️ Completado con errores"
            report.message = ("Algunos cambios se guardaron, pero hubo problemas: "
                              f"{', '.join(report.errors)}.")
        else:
            report.title = "Éxito"
            report.message = "; ".join(changes)
        return report

    def log_assignment_change(self, actor: Actor, user_id: str,
                              previous_areas: List[str], new_areas: List[str],
                              previous_warehouses: List[str],
                              new_warehouses: List[str]) -> List[AssignmentHistoryEntry]:
        """
        Registra en el historial las áreas/bodegas agregadas y removidas.

        Un fallo al registrar no revierte las asignaciones: se loguea y sigue.
        """
        if self.assignment_history_repo is None:
            return []

        entries = []
        plan = []
        added, removed = _diff(previous_areas, new_areas)
        plan += [(AssignmentEntityType.AREA, AssignmentAction.ASSIGNED, i) for i in added]
        plan += [(AssignmentEntityType.AREA, AssignmentAction.REMOVED, i) for i in removed]
        added, removed = _diff(previous_warehouses, new_warehouses)
        plan += [(AssignmentEntityType.WAREHOUSE, AssignmentAction.ASSIGNED, i) for i in added]
        plan += [(AssignmentEntityType.WAREHOUSE, AssignmentAction.REMOVED, i) for i in removed]

        for entity_type, action, entity_id in plan:
            name = (self._area_name(entity_id) if entity_type == AssignmentEntityType.AREA
                    else self._warehouse_name(entity_id))
            try:
                entries.append(self.assignment_history_repo.create({
                    "userId": user_id,
                    "entityId": entity_id,
                    "entityName": name,
                    "entityType": entity_type.value,
                    "action": action.value,
                    "performedBy": actor.user_id,
                    "performedByName": actor.name,
                }))
            except SessionExpiredError:
                raise
            except ApiError as e:
                logger.warning("⚠️ No se pudo registrar historial de %s: %s", entity_id, e.message)

        if plan:
            self.mutations.invalidate(Mutation.LOG_ASSIGNMENT_CHANGE, user_id=user_id)
        return entries

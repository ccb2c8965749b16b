# ==============================================================================
# FILTRO DE VISIBILIDAD - Qué puede ver y asignar cada rol
# ==============================================================================
#   ADMIN       → todas las áreas y bodegas activas, todos los usuarios
#   JEFE        → solo sus áreas asignadas y las bodegas de esas áreas;
#                 usuarios = supervisores miembros de sus áreas (sin duplicados)
#   SUPERVISOR  → sin lista de usuarios; áreas/bodegas de sus bodegas
#                 asignadas, solo lectura
#
# Candidatos a jefe de un área: usuarios JEFE habilitados SIN asignación
# activa a esa misma área.
#
# Escalamiento de rol: un JEFE solo puede crear/editar usuarios SUPERVISOR.
# Alcance: un JEFE solo actúa sobre los usuarios que ve y sobre las bodegas
# de sus áreas. Ambas cosas se validan aquí antes de enviar nada al backend.
# ==============================================================================

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from smartpack.cache.query_cache import QueryCache
from smartpack.cache.query_keys import AreaKeys, UserKeys, WarehouseKeys
from smartpack.models.entities import Area, User, Warehouse
from smartpack.models.roles import UserRole, to_user_role

logger = logging.getLogger(__name__)


class RoleEscalationError(Exception):
    """El usuario intenta otorgar o editar un rol fuera de su alcance."""
    pass


class OutOfScopeError(RoleEscalationError):
    """Usuario, área o bodega fuera del alcance del actor."""
    pass


@dataclass(frozen=True)
class Actor:
    """
    Usuario que ejecuta la acción, con el alcance ya resuelto.

    Attributes:
        user_id: ID del usuario autenticado
        role: Rol del panel
        area_ids: Áreas asignadas (JEFE)
        warehouse_ids: Bodegas asignadas (SUPERVISOR)
        name: Nombre para historiales
    """
    user_id: str
    role: UserRole
    area_ids: FrozenSet[str] = field(default_factory=frozenset)
    warehouse_ids: FrozenSet[str] = field(default_factory=frozenset)
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_jefe(self) -> bool:
        return self.role == UserRole.JEFE

    @property
    def is_supervisor(self) -> bool:
        return self.role == UserRole.SUPERVISOR

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(
            user_id=user.id,
            role=user.role,
            area_ids=frozenset(user.areas),
            warehouse_ids=frozenset(user.warehouses),
            name=user.full_name,
        )

    @classmethod
    def from_session(cls, data: Dict[str, Any]) -> "Actor":
        """Construye el actor desde lo guardado en la sesión al hacer login."""
        return cls(
            user_id=str(data.get("id") or ""),
            role=to_user_role(data.get("role") or ""),
            area_ids=frozenset(data.get("areas") or []),
            warehouse_ids=frozenset(data.get("warehouses") or []),
            name=data.get("name") or "",
        )


# ═══════════════════════════════════════════════════════════════════════════════
# REGLAS PURAS
# ═══════════════════════════════════════════════════════════════════════════════

def filter_areas(actor: Actor, areas: Iterable[Area],
                 warehouses: Iterable[Warehouse] = (),
                 include_inactive: bool = False) -> List[Area]:
    """
    Áreas que el actor puede ver.

    Args:
        actor: Usuario que consulta
        areas: Todas las áreas conocidas
        warehouses: Bodegas (para resolver las áreas de un SUPERVISOR)
        include_inactive: True para listados de administración
    """
    areas = [a for a in areas if include_inactive or a.is_active]
    if actor.is_admin:
        return areas
    if actor.is_jefe:
        return [a for a in areas if a.id in actor.area_ids]
    owning = {w.area_id for w in warehouses if w.id in actor.warehouse_ids and w.area_id}
    return [a for a in areas if a.id in owning]


def filter_warehouses(actor: Actor, warehouses: Iterable[Warehouse],
                      include_inactive: bool = False) -> List[Warehouse]:
    warehouses = [w for w in warehouses if include_inactive or w.is_enabled]
    if actor.is_admin:
        return warehouses
    if actor.is_jefe:
        return [w for w in warehouses if w.area_id in actor.area_ids]
    return [w for w in warehouses if w.id in actor.warehouse_ids]


def filter_manager_candidates(users: Iterable[User], area_id: str) -> List[User]:
    """JEFE habilitados que aún no tienen asignación activa al área."""
    return [
        u for u in users
        if u.role == UserRole.JEFE
        and u.is_enabled
        and not u.has_active_area_assignment(area_id)
    ]


def filter_supervisor_candidates(users: Iterable[User]) -> List[User]:
    return [u for u in users if u.role == UserRole.SUPERVISOR and u.is_enabled]


def assignable_roles(actor: Actor) -> List[UserRole]:
    """Roles que el actor puede otorgar al crear o editar un usuario."""
    if actor.is_admin:
        return [UserRole.ADMIN, UserRole.JEFE, UserRole.SUPERVISOR]
    if actor.is_jefe:
        return [UserRole.SUPERVISOR]
    return []


def ensure_can_assign_role(actor: Actor, role: Any, target: Optional[User] = None) -> UserRole:
    """
    Verifica que el actor pueda otorgar role (y editar a target, si existe).

    Returns:
        El rol normalizado

    Raises:
        RoleEscalationError: Si el rol o el usuario destino están fuera de alcance
    """
    wanted = to_user_role(role)
    allowed = assignable_roles(actor)
    if wanted not in allowed:
        logger.warning("🚫 %s (%s) intentó otorgar rol %s",
                       actor.user_id, actor.role.value, wanted.value)
        raise RoleEscalationError(f"No tienes permisos para asignar el rol {wanted.value}")
    if target is not None and target.role not in allowed:
        raise RoleEscalationError(
            f"No tienes permisos para modificar usuarios con rol {target.role.value}"
        )
    return wanted


# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIO (lecturas cacheadas + reglas)
# ═══════════════════════════════════════════════════════════════════════════════

class VisibilityService:
    """
    Aplica las reglas de visibilidad sobre lecturas cacheadas.

    Uso:
        visibility = VisibilityService(cache, area_repo, warehouse_repo, user_repo)
        visibility.visible_users(actor)
    """

    def __init__(self, cache: QueryCache, area_repo, warehouse_repo, user_repo):
        self.cache = cache
        self.area_repo = area_repo
        self.warehouse_repo = warehouse_repo
        self.user_repo = user_repo

    def _all_areas(self) -> List[Area]:
        return self.cache.fetch(AreaKeys.all(), self.area_repo.find_all)

    def _all_warehouses(self) -> List[Warehouse]:
        return self.cache.fetch(WarehouseKeys.all(), self.warehouse_repo.find_all)

    def _all_users(self) -> List[User]:
        return self.cache.fetch(UserKeys.all(), self.user_repo.find_all)

    def _area_members(self, area_id: str) -> List[User]:
        return self.cache.fetch(UserKeys.by_area(area_id),
                                lambda: self.user_repo.find_by_area(area_id))

    def visible_areas(self, actor: Actor, include_inactive: bool = False) -> List[Area]:
        warehouses = self._all_warehouses() if actor.is_supervisor else ()
        return filter_areas(actor, self._all_areas(), warehouses, include_inactive)

    def visible_warehouses(self, actor: Actor, include_inactive: bool = False) -> List[Warehouse]:
        return filter_warehouses(actor, self._all_warehouses(), include_inactive)

    def visible_users(self, actor: Actor) -> List[User]:
        """
        Lista de usuarios del panel.

        Para un JEFE se consulta cada área asignada y se conservan solo los
        SUPERVISOR, sin duplicados y en el orden en que aparecen.
        """
        if actor.is_admin:
            return self._all_users()
        if not actor.is_jefe:
            return []

        seen = set()
        result = []
        for area_id in sorted(actor.area_ids):
            for user in self._area_members(area_id):
                if user.role != UserRole.SUPERVISOR or user.id in seen:
                    continue
                seen.add(user.id)
                result.append(user)
        return result

    def can_manage_area(self, actor: Actor, area_id: str) -> bool:
        return actor.is_admin or (actor.is_jefe and area_id in actor.area_ids)

    def manager_candidates(self, actor: Actor, area_id: str) -> List[User]:
        if not self.can_manage_area(actor, area_id):
            return []
        return filter_manager_candidates(self._all_users(), area_id)

    def supervisor_candidates(self, actor: Actor) -> List[User]:
        return filter_supervisor_candidates(self.visible_users(actor))

    # =========================================================================
    # ALCANCE DE ESCRITURA
    # =========================================================================

    def can_manage_warehouse(self, actor: Actor, warehouse: Warehouse) -> bool:
        """ADMIN cualquier bodega; JEFE las de sus áreas; SUPERVISOR ninguna."""
        if actor.is_supervisor:
            return False
        return bool(filter_warehouses(actor, [warehouse], include_inactive=True))

    def ensure_can_manage_user(self, actor: Actor, target: User) -> UserRole:
        """
        Verifica que el actor pueda modificar a target (datos, estado o asignaciones).

        Returns:
            El rol actual de target

        Raises:
            RoleEscalationError: El rol de target está fuera de alcance
            OutOfScopeError: Un JEFE sobre un usuario que no ve
        """
        role = ensure_can_assign_role(actor, target.role, target)
        if actor.is_jefe and target.id not in {u.id for u in self.visible_users(actor)}:
            logger.warning("🚫 %s intentó modificar al usuario %s fuera de sus áreas",
                           actor.user_id, target.id)
            raise OutOfScopeError("No tienes permisos para modificar este usuario")
        return role

    def ensure_assignments_in_scope(self, actor: Actor, area_ids: Iterable[str] = (),
                                    warehouse_ids: Iterable[str] = ()) -> None:
        """
        Raises:
            OutOfScopeError: Alguna área o bodega está fuera del alcance del actor
        """
        if actor.is_admin:
            return
        area_ids = list(area_ids)
        warehouse_ids = list(warehouse_ids)
        outside = [a for a in area_ids if not self.can_manage_area(actor, a)]
        if warehouse_ids:
            allowed = set()
            if actor.is_jefe:
                allowed = {w.id for w in self.visible_warehouses(actor, include_inactive=True)}
            outside += [w for w in warehouse_ids if w not in allowed]
        if outside:
            logger.warning("🚫 %s intentó asignar fuera de su alcance: %s",
                           actor.user_id, ", ".join(outside))
            raise OutOfScopeError("No tienes permisos sobre: " + ", ".join(outside))

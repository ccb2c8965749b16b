# ==============================================================================
# LIBRO DE ASIGNACIONES - Event store append-only
# ==============================================================================
# Cada relación (área↔jefe, área↔bodega, bodega↔supervisor) se registra como
# eventos ASSIGN / REVOKE que NUNCA se borran ni se reescriben.
#
# El estado actual (qué asignaciones siguen activas) es una proyección que se
# reconstruye reproduciendo los eventos en orden:
#   ASSIGN  → nueva fila con is_active=True
#   REVOKE  → la fila queda con is_active=False y revoked_at fijado
#
# Así el historial completo sigue consultable después de cada remoción.
# ==============================================================================

import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from smartpack.models.entities import Assignment, AssignmentType


EVENT_ASSIGN = "ASSIGN"
EVENT_REVOKE = "REVOKE"


@dataclass(frozen=True)
class LedgerEvent:
    """Evento inmutable del libro."""
    seq: int
    event: str
    assignment_id: str
    type: AssignmentType
    at: str
    user_id: Optional[str] = None
    area_id: Optional[str] = None
    warehouse_id: Optional[str] = None
    performed_by: Optional[str] = None


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AssignmentLedger:
    """
    Libro append-only de asignaciones.

    Uso:
        ledger = AssignmentLedger()
        a = ledger.assign(AssignmentType.AREA_MANAGER, user_id='u1', area_id='a1')
        ledger.revoke(a.id)
        ledger.history(area_id='a1')   # sigue conteniendo la fila, inactiva
    """

    def __init__(self, clock: Callable[[], str] = None,
                 id_factory: Callable[[], str] = None):
        """
        Args:
            clock: Función que retorna la marca de tiempo ISO (inyectable en tests)
            id_factory: Generador de IDs de asignación
        """
        self._clock = clock or _utc_now
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._events: List[LedgerEvent] = []
        self._lock = threading.RLock()

    # =========================================================================
    # ESCRITURA (solo append)
    # =========================================================================

    def assign(self, type: AssignmentType, user_id: str = None, area_id: str = None,
               warehouse_id: str = None, performed_by: str = None) -> Assignment:
        """
        Registra una asignación.

        Si ya existe una asignación ACTIVA para el mismo par, se retorna esa
        sin registrar un evento nuevo.
        """
        with self._lock:
            existing = self.find_active(type, user_id=user_id, area_id=area_id,
                                        warehouse_id=warehouse_id)
            if existing is not None:
                return existing
            event = LedgerEvent(
                seq=len(self._events) + 1,
                event=EVENT_ASSIGN,
                assignment_id=self._id_factory(),
                type=type,
                at=self._clock(),
                user_id=user_id,
                area_id=area_id,
                warehouse_id=warehouse_id,
                performed_by=performed_by,
            )
            self._events.append(event)
            return self._project()[event.assignment_id]

    def revoke(self, assignment_id: str, performed_by: str = None) -> Assignment:
        """
        Revoca una asignación por ID.

        Raises:
            KeyError: Si la asignación no existe
        """
        with self._lock:
            records = self._project()
            if assignment_id not in records:
                raise KeyError(assignment_id)
            current = records[assignment_id]
            if not current.is_active:
                return current
            self._events.append(LedgerEvent(
                seq=len(self._events) + 1,
                event=EVENT_REVOKE,
                assignment_id=assignment_id,
                type=current.type,
                at=self._clock(),
                user_id=current.user_id,
                area_id=current.area_id,
                warehouse_id=current.warehouse_id,
                performed_by=performed_by,
            ))
            return self._project()[assignment_id]

    # =========================================================================
    # PROYECCIÓN (estado derivado)
    # =========================================================================

    def _project(self) -> Dict[str, Assignment]:
        records: Dict[str, Assignment] = {}
        for ev in self._events:
            if ev.event == EVENT_ASSIGN:
                records[ev.assignment_id] = Assignment(
                    id=ev.assignment_id,
                    type=ev.type,
                    user_id=ev.user_id,
                    area_id=ev.area_id,
                    warehouse_id=ev.warehouse_id,
                    assigned_at=ev.at,
                    revoked_at=None,
                    is_active=True,
                )
            elif ev.event == EVENT_REVOKE:
                records[ev.assignment_id] = replace(
                    records[ev.assignment_id], is_active=False, revoked_at=ev.at
                )
        return records

    @property
    def events(self) -> Tuple[LedgerEvent, ...]:
        with self._lock:
            return tuple(self._events)

    def history(self, type: AssignmentType = None, user_id: str = None,
                area_id: str = None, warehouse_id: str = None) -> List[Assignment]:
        """Todas las asignaciones (activas y revocadas) que calzan con el filtro."""
        with self._lock:
            rows = list(self._project().values())
        return [
            a for a in rows
            if (type is None or a.type == type)
            and (user_id is None or a.user_id == user_id)
            and (area_id is None or a.area_id == area_id)
            and (warehouse_id is None or a.warehouse_id == warehouse_id)
        ]

    def active(self, type: AssignmentType = None, user_id: str = None,
               area_id: str = None, warehouse_id: str = None) -> List[Assignment]:
        return [
            a for a in self.history(type, user_id, area_id, warehouse_id)
            if a.is_active
        ]

    def find_active(self, type: AssignmentType, user_id: str = None,
                    area_id: str = None, warehouse_id: str = None) -> Optional[Assignment]:
        rows = self.active(type, user_id, area_id, warehouse_id)
        return rows[0] if rows else None

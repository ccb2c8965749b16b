# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio tal como lo ve el panel.
# from_dict() acepta el DTO del backend (camelCase, formas variables) y
# to_dict() produce la forma que devuelven las rutas JSON de la app.
#
# Las fechas se mantienen como strings ISO 8601, igual que las entrega la API.
# ==============================================================================

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from enum import Enum

from smartpack.models.roles import UserRole, to_user_role


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class UserStatus(str, Enum):
    """Estado de habilitación de un usuario."""
    HABILITADO = "HABILITADO"
    DESHABILITADO = "DESHABILITADO"


class AreaStatus(str, Enum):
    """Estado de un área."""
    ACTIVO = "ACTIVO"
    INACTIVO = "INACTIVO"


class NodeType(str, Enum):
    """Posición del área dentro del árbol."""
    ROOT = "ROOT"    # Área principal (nivel 0)
    CHILD = "CHILD"  # Sub-área


class WarehouseStatus(str, Enum):
    """Estado de una bodega."""
    ACTIVO = "ACTIVO"
    INACTIVO = "INACTIVO"


class AssignmentType(str, Enum):
    """Tipos de relación materializados por el backend."""
    AREA_MANAGER = "AREA_MANAGER"                  # JEFE asignado a un área
    WAREHOUSE_SUPERVISOR = "WAREHOUSE_SUPERVISOR"  # SUPERVISOR asignado a una bodega
    AREA_WAREHOUSE = "AREA_WAREHOUSE"              # Bodega ligada a un área


class AssignmentAction(str, Enum):
    """Acciones del historial de asignaciones."""
    ASSIGNED = "ASSIGNED"
    REMOVED = "REMOVED"


class AssignmentEntityType(str, Enum):
    """Entidad destino de una asignación de usuario."""
    AREA = "AREA"
    WAREHOUSE = "WAREHOUSE"


class EnablementAction(str, Enum):
    """Acciones del historial de habilitación."""
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


class AuditAction(str, Enum):
    """Acciones registradas en el log de auditoría."""
    USER_ENABLED = "USER_ENABLED"
    USER_DISABLED = "USER_DISABLED"
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    AREA_CREATED = "AREA_CREATED"
    AREA_UPDATED = "AREA_UPDATED"
    AREA_STATUS_CHANGED = "AREA_STATUS_CHANGED"
    ASSIGNMENT_CREATED = "ASSIGNMENT_CREATED"
    ASSIGNMENT_REVOKED = "ASSIGNMENT_REVOKED"


class AuditEntityType(str, Enum):
    """Entidades auditables."""
    USER = "USER"
    AREA = "AREA"
    WAREHOUSE = "WAREHOUSE"
    ASSIGNMENT = "ASSIGNMENT"


class BoxStatus(str, Enum):
    """Estados de una caja."""
    ACTIVA = "ACTIVA"
    INACTIVA = "INACTIVA"
    EN_USO = "EN_USO"


class BoxType(str, Enum):
    """Tamaños de caja."""
    PEQUENA = "PEQUEÑA"
    NORMAL = "NORMAL"
    GRANDE = "GRANDE"


class ProductKind(str, Enum):
    """Tipos de producto del catálogo."""
    EQUIPMENT = "EQUIPMENT"
    MATERIAL = "MATERIAL"
    SPARE_PART = "SPARE_PART"


def _enum(cls, value, default):
    """Convierte un valor a Enum, usando default si no es válido."""
    if isinstance(value, cls):
        return value
    try:
        return cls(str(value).upper()) if value is not None else default
    except ValueError:
        return default


def _ids(items) -> List[str]:
    """Normaliza una lista de ids o de objetos {id} a lista de strings."""
    result = []
    for item in items or []:
        if isinstance(item, dict):
            item = item.get("id")
        if item is not None:
            result.append(str(item))
    return result


def _active_flag(data: Dict[str, Any], default: bool = True) -> bool:
    """Lee isActive/isEnabled, que el backend usa indistintamente."""
    for key in ("isActive", "isEnabled", "is_active"):
        if key in data and data[key] is not None:
            return bool(data[key])
    return default


# ==============================================================================
# ENTIDADES DE USUARIO
# ==============================================================================

@dataclass
class AssignmentDetail:
    """
    Fila de asignación usuario↔área o usuario↔bodega.

    Remover una asignación NO la borra: queda con is_active=False y
    revoked_at fijado, preservando el historial.

    Attributes:
        id: ID de la asignación
        target_id: ID del área o bodega asignada
        target_name: Nombre del área o bodega (si el backend lo incluye)
        assigned_by: ID de quien asignó
        assigned_at: Fecha de asignación (ISO)
        revoked_at: Fecha de revocación o None si sigue activa
        is_active: Estado actual de la relación
    """
    id: str
    target_id: str
    user_id: Optional[str] = None
    target_name: Optional[str] = None
    assigned_by: Optional[str] = None
    assigned_at: Optional[str] = None
    revoked_at: Optional[str] = None
    is_active: bool = True

    def to_dict(self, target_key: str = "areaId") -> Dict[str, Any]:
        """Convierte a diccionario (areaId o warehouseId según el tipo)."""
        return {
            "id": self.id,
            "userId": self.user_id,
            target_key: self.target_id,
            "name": self.target_name,
            "assignedBy": self.assigned_by,
            "assignedAt": self.assigned_at,
            "revokedAt": self.revoked_at,
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], target: str = "area") -> "AssignmentDetail":
        """
        Crea instancia desde el DTO del backend.

        Args:
            data: Fila de asignación
            target: 'area' o 'warehouse' (define qué campo es el destino)
        """
        nested = data.get(target) or {}
        target_id = data.get(f"{target}Id") or nested.get("id")
        return cls(
            id=str(data.get("id", "")),
            target_id=str(target_id) if target_id is not None else "",
            user_id=data.get("userId"),
            target_name=nested.get("name"),
            assigned_by=data.get("assignedBy"),
            assigned_at=data.get("assignedAt"),
            revoked_at=data.get("revokedAt"),
            is_active=_active_flag(data),
        )


@dataclass
class User:
    """
    Representa un usuario del panel.

    Solo uno de {areas, warehouses} es relevante según el rol:
    JEFE → areas, SUPERVISOR → warehouses, ADMIN → ninguno.
    """
    id: str
    name: str
    last_name: str = ""
    email: str = ""
    rut: str = ""
    phone: str = ""
    role: UserRole = UserRole.SUPERVISOR
    status: UserStatus = UserStatus.HABILITADO
    areas: List[str] = field(default_factory=list)
    warehouses: List[str] = field(default_factory=list)
    area_assignments: List[AssignmentDetail] = field(default_factory=list)
    warehouse_assignments: List[AssignmentDetail] = field(default_factory=list)
    tenant_id: Optional[str] = None
    reason: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.last_name}".strip()

    @property
    def is_enabled(self) -> bool:
        return self.status == UserStatus.HABILITADO

    def has_active_area_assignment(self, area_id: str) -> bool:
        """True si tiene una asignación ACTIVA a exactamente esa área."""
        return any(
            a.target_id == str(area_id) and a.is_active
            for a in self.area_assignments
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para respuestas JSON."""
        return {
            "id": self.id,
            "name": self.name,
            "lastName": self.last_name,
            "email": self.email,
            "rut": self.rut,
            "phone": self.phone,
            "role": self.role.value,
            "status": self.status.value,
            "areas": list(self.areas),
            "warehouses": list(self.warehouses),
            "areaAssignments": [a.to_dict("areaId") for a in self.area_assignments],
            "warehouseAssignments": [
                a.to_dict("warehouseId") for a in self.warehouse_assignments
            ],
            "tenantId": self.tenant_id,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        """
        Crea instancia desde el DTO del backend.

        El backend usa firstName y el rol puede venir como string, {name}
        o solo roleId; el rol se resuelve aquí una única vez.
        """
        if data.get("status"):
            status = _enum(UserStatus, data.get("status"), UserStatus.HABILITADO)
        else:
            status = UserStatus.HABILITADO if _active_flag(data) else UserStatus.DESHABILITADO

        area_assignments = [
            AssignmentDetail.from_dict(a, "area") for a in data.get("areaAssignments") or []
        ]
        warehouse_assignments = [
            AssignmentDetail.from_dict(a, "warehouse")
            for a in data.get("warehouseAssignments") or []
        ]

        areas = _ids(data.get("areas"))
        if not areas and area_assignments:
            areas = [a.target_id for a in area_assignments if a.is_active]
        warehouses = _ids(data.get("warehouses"))
        if not warehouses and warehouse_assignments:
            warehouses = [a.target_id for a in warehouse_assignments if a.is_active]

        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or data.get("firstName") or "",
            last_name=data.get("lastName") or "",
            email=data.get("email") or "",
            rut=data.get("rut") or "",
            phone=data.get("phone") or "",
            role=to_user_role(data),
            status=status,
            areas=areas,
            warehouses=warehouses,
            area_assignments=area_assignments,
            warehouse_assignments=warehouse_assignments,
            tenant_id=data.get("tenantId"),
            reason=data.get("reason"),
        )


# ==============================================================================
# ENTIDADES DE ÁREAS Y BODEGAS
# ==============================================================================

@dataclass
class Warehouse:
    """
    Bodega física, opcionalmente ligada a un área.

    Attributes:
        capacity_kg: Capacidad declarada
        current_capacity_kg: Capacidad ocupada (si el backend la informa)
        area_id: Área dueña de la bodega
    """
    id: str
    name: str
    capacity_kg: float = 0.0
    current_capacity_kg: Optional[float] = None
    status: WarehouseStatus = WarehouseStatus.ACTIVO
    area_id: Optional[str] = None
    area_name: Optional[str] = None
    supervisor_id: Optional[str] = None
    tenant_id: Optional[str] = None

    @property
    def is_enabled(self) -> bool:
        return self.status == WarehouseStatus.ACTIVO

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para respuestas JSON."""
        return {
            "id": self.id,
            "name": self.name,
            "capacityKg": self.capacity_kg,
            "currentCapacityKg": self.current_capacity_kg,
            "status": self.status.value,
            "isEnabled": self.is_enabled,
            "areaId": self.area_id,
            "areaName": self.area_name,
            "supervisorId": self.supervisor_id,
            "tenantId": self.tenant_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Warehouse":
        """Crea instancia desde el DTO del backend."""
        area = data.get("area") or {}
        if data.get("status"):
            status = _enum(WarehouseStatus, data.get("status"), WarehouseStatus.ACTIVO)
        else:
            status = WarehouseStatus.ACTIVO if _active_flag(data) else WarehouseStatus.INACTIVO
        capacity = data.get("capacityKg")
        if capacity is None:
            capacity = data.get("maxCapacityKg", 0)
        area_id = data.get("areaId") or area.get("id")
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            capacity_kg=float(capacity or 0),
            current_capacity_kg=data.get("currentCapacityKg"),
            status=status,
            area_id=str(area_id) if area_id else None,
            area_name=data.get("areaName") or area.get("name"),
            supervisor_id=data.get("supervisorId"),
            tenant_id=data.get("tenantId"),
        )


@dataclass
class Area:
    """
    Unidad organizacional en un árbol.

    Invariante: level == parent.level + 1 cuando hay parent_id, y 0 cuando no.
    Solo las áreas hoja (sin hijos) pueden recibir bodegas directamente.
    """
    id: str
    name: str
    level: int = 0
    parent_id: Optional[str] = None
    status: AreaStatus = AreaStatus.ACTIVO
    node_type: NodeType = NodeType.ROOT
    tenant_id: Optional[str] = None
    description: Optional[str] = None
    children: List["Area"] = field(default_factory=list)
    managers_count: int = 0
    warehouses_count: int = 0
    sub_areas_count: int = 0
    managers: List[User] = field(default_factory=list)
    warehouses: List[Warehouse] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_leaf(self) -> bool:
        """Hoja = sin hijos cargados y sin sub-áreas según el contador."""
        return not self.children and self.sub_areas_count == 0

    @property
    def is_active(self) -> bool:
        return self.status == AreaStatus.ACTIVO

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario (recursivo sobre children)."""
        return {
            "id": self.id,
            "name": self.name,
            "level": self.level,
            "parentId": self.parent_id,
            "status": self.status.value,
            "nodeType": self.node_type.value,
            "tenantId": self.tenant_id,
            "description": self.description,
            "children": [c.to_dict() for c in self.children],
            "managersCount": self.managers_count,
            "warehousesCount": self.warehouses_count,
            "subAreasCount": self.sub_areas_count,
            "managers": [m.to_dict() for m in self.managers],
            "warehouses": [w.to_dict() for w in self.warehouses],
            "isLeaf": self.is_leaf,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Area":
        """Crea instancia desde el DTO del backend."""
        parent = data.get("parent") or {}
        parent_id = data.get("parentId") or parent.get("id")
        if data.get("status"):
            status = _enum(AreaStatus, data.get("status"), AreaStatus.ACTIVO)
        else:
            status = AreaStatus.ACTIVO if _active_flag(data) else AreaStatus.INACTIVO
        default_node = NodeType.CHILD if parent_id else NodeType.ROOT
        children = [cls.from_dict(c) for c in data.get("children") or []]

        # El detalle puede traer managers como usuarios o como filas de asignación
        managers = []
        for item in data.get("managers") or []:
            managers.append(User.from_dict(item.get("user") or item.get("manager") or item))
        warehouses = []
        for item in data.get("warehouses") or []:
            warehouses.append(Warehouse.from_dict(item.get("warehouse") or item))

        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            level=int(data.get("level") or 0),
            parent_id=str(parent_id) if parent_id else None,
            status=status,
            node_type=_enum(NodeType, data.get("nodeType"), default_node),
            tenant_id=data.get("tenantId"),
            description=data.get("description"),
            children=children,
            managers_count=int(data.get("managersCount") or 0),
            warehouses_count=int(data.get("warehousesCount") or 0),
            sub_areas_count=int(data.get("subAreasCount") or len(children)),
            managers=managers,
            warehouses=warehouses,
        )


@dataclass
class WarehouseSupervisor:
    """Supervisor asignado a una bodega (fila de /warehouses/{id}/supervisors)."""
    user_id: str
    warehouse_id: Optional[str] = None
    assignment_id: Optional[str] = None
    name: str = ""
    last_name: str = ""
    email: str = ""
    assigned_at: Optional[str] = None
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.last_name}".strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "warehouseId": self.warehouse_id,
            "assignmentId": self.assignment_id,
            "name": self.name,
            "lastName": self.last_name,
            "email": self.email,
            "assignedAt": self.assigned_at,
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WarehouseSupervisor":
        person = data.get("supervisor") or data.get("user") or {}
        user_id = data.get("supervisorId") or data.get("userId") or person.get("id") or data.get("id")
        nested = bool(person)
        return cls(
            user_id=str(user_id or ""),
            warehouse_id=data.get("warehouseId"),
            assignment_id=data.get("id") if nested else data.get("assignmentId"),
            name=person.get("firstName") or person.get("name") or data.get("firstName") or data.get("name") or "",
            last_name=person.get("lastName") or data.get("lastName") or "",
            email=person.get("email") or data.get("email") or "",
            assigned_at=data.get("assignedAt"),
            is_active=_active_flag(data),
        )


# ==============================================================================
# ASIGNACIONES E HISTORIALES
# ==============================================================================

@dataclass
class Assignment:
    """Relación materializada por el backend (área↔jefe, área↔bodega, bodega↔supervisor)."""
    id: str
    type: AssignmentType
    user_id: Optional[str] = None
    area_id: Optional[str] = None
    warehouse_id: Optional[str] = None
    assigned_at: Optional[str] = None
    revoked_at: Optional[str] = None
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "userId": self.user_id,
            "areaId": self.area_id,
            "warehouseId": self.warehouse_id,
            "assignedAt": self.assigned_at,
            "revokedAt": self.revoked_at,
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assignment":
        return cls(
            id=str(data.get("id", "")),
            type=_enum(AssignmentType, data.get("type"), AssignmentType.AREA_MANAGER),
            user_id=data.get("userId"),
            area_id=data.get("areaId"),
            warehouse_id=data.get("warehouseId"),
            assigned_at=data.get("assignedAt"),
            revoked_at=data.get("revokedAt"),
            is_active=_active_flag(data),
        )


@dataclass
class AssignmentHistoryEntry:
    """Entrada del historial de asignaciones de un usuario."""
    id: str
    user_id: str
    entity_id: str
    entity_name: str
    entity_type: AssignmentEntityType
    action: AssignmentAction
    performed_by_id: Optional[str] = None
    performed_by_name: Optional[str] = None
    performed_by_email: Optional[str] = None
    timestamp: Optional[str] = None
    revoked_at: Optional[str] = None
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "entityId": self.entity_id,
            "entityName": self.entity_name,
            "entityType": self.entity_type.value,
            "action": self.action.value,
            "performedById": self.performed_by_id,
            "performedByName": self.performed_by_name,
            "performedByEmail": self.performed_by_email,
            "timestamp": self.timestamp,
            "revokedAt": self.revoked_at,
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssignmentHistoryEntry":
        return cls(
            id=str(data.get("id", "")),
            user_id=str(data.get("userId", "")),
            entity_id=str(data.get("entityId", "")),
            entity_name=data.get("entityName") or "",
            entity_type=_enum(AssignmentEntityType, data.get("entityType"), AssignmentEntityType.AREA),
            action=_enum(AssignmentAction, data.get("action"), AssignmentAction.ASSIGNED),
            performed_by_id=data.get("performedById"),
            performed_by_name=data.get("performedByName"),
            performed_by_email=data.get("performedByEmail"),
            timestamp=data.get("timestamp") or data.get("createdAt"),
            revoked_at=data.get("revokedAt"),
            is_active=_active_flag(data),
        )


@dataclass
class UserEnablementHistoryEntry:
    """Cambio de habilitación de un usuario (quién, cuándo, por qué)."""
    id: str
    user_id: str
    action: EnablementAction
    performed_by_id: Optional[str] = None
    reason: Optional[str] = None
    occurred_at: Optional[str] = None
    user: Optional[Dict[str, Any]] = None
    performer: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "action": self.action.value,
            "performedById": self.performed_by_id,
            "reason": self.reason,
            "occurredAt": self.occurred_at,
            "user": self.user,
            "performer": self.performer,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserEnablementHistoryEntry":
        return cls(
            id=str(data.get("id", "")),
            user_id=str(data.get("userId", "")),
            action=_enum(EnablementAction, data.get("action"), EnablementAction.ENABLED),
            performed_by_id=data.get("performedById"),
            reason=data.get("reason"),
            occurred_at=data.get("occurredAt"),
            user=data.get("user"),
            performer=data.get("performer"),
        )


@dataclass
class AuditLogEntry:
    """Registro de auditoría."""
    id: str
    entity_type: AuditEntityType
    entity_id: str
    action: AuditAction
    performed_by: str
    entity_name: Optional[str] = None
    performed_by_name: Optional[str] = None
    performed_at: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    tenant_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "entityType": self.entity_type.value,
            "entityId": self.entity_id,
            "entityName": self.entity_name,
            "action": self.action.value,
            "performedBy": self.performed_by,
            "performedByName": self.performed_by_name,
            "performedAt": self.performed_at,
            "details": self.details,
            "tenantId": self.tenant_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditLogEntry":
        return cls(
            id=str(data.get("id", "")),
            entity_type=_enum(AuditEntityType, data.get("entityType"), AuditEntityType.USER),
            entity_id=str(data.get("entityId", "")),
            action=_enum(AuditAction, data.get("action"), AuditAction.USER_UPDATED),
            performed_by=str(data.get("performedBy", "")),
            entity_name=data.get("entityName"),
            performed_by_name=data.get("performedByName"),
            performed_at=data.get("performedAt"),
            details=data.get("details") or {},
            tenant_id=data.get("tenantId"),
        )


# ==============================================================================
# ENTIDADES DE CAJAS
# ==============================================================================

@dataclass
class BoxHistoryEvent:
    """Evento del historial de una caja (creada, movida, cambio de estado...)."""
    id: str
    box_id: str
    event_type: str
    timestamp: Optional[str] = None
    user_id: Optional[str] = None
    description: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "boxId": self.box_id,
            "eventType": self.event_type,
            "timestamp": self.timestamp,
            "userId": self.user_id,
            "description": self.description,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoxHistoryEvent":
        return cls(
            id=str(data.get("id", "")),
            box_id=str(data.get("boxId", "")),
            event_type=data.get("eventType") or "UPDATED",
            timestamp=data.get("timestamp") or data.get("createdAt"),
            user_id=data.get("userId"),
            description=data.get("description"),
            metadata=data.get("metadata") or {},
        )


@dataclass
class Box:
    """
    Contenedor rastreable por QR.

    Attributes:
        qr_code: Identificador único, NO modificable
        current_weight_kg: Peso/contenido actual
        warehouse_id: Bodega donde está la caja
    """
    id: str
    qr_code: str
    type: BoxType = BoxType.NORMAL
    status: BoxStatus = BoxStatus.ACTIVA
    current_weight_kg: float = 0.0
    warehouse_id: Optional[str] = None
    warehouse: Optional[Warehouse] = None
    description: Optional[str] = None
    history: List[BoxHistoryEvent] = field(default_factory=list)
    tenant_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "qrCode": self.qr_code,
            "type": self.type.value,
            "status": self.status.value,
            "currentWeightKg": self.current_weight_kg,
            "warehouseId": self.warehouse_id,
            "warehouse": self.warehouse.to_dict() if self.warehouse else None,
            "description": self.description,
            "history": [h.to_dict() for h in self.history],
            "tenantId": self.tenant_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Box":
        warehouse = data.get("warehouse")
        return cls(
            id=str(data.get("id", "")),
            qr_code=data.get("qrCode") or "",
            type=_enum(BoxType, data.get("type"), BoxType.NORMAL),
            status=_enum(BoxStatus, data.get("status"), BoxStatus.ACTIVA),
            current_weight_kg=float(data.get("currentWeightKg") or 0),
            warehouse_id=data.get("warehouseId") or (warehouse or {}).get("id"),
            warehouse=Warehouse.from_dict(warehouse) if warehouse else None,
            description=data.get("description"),
            history=[BoxHistoryEvent.from_dict(h) for h in data.get("history") or []],
            tenant_id=data.get("tenantId"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


# ==============================================================================
# ENTIDADES DE PRODUCTOS
# ==============================================================================

@dataclass
class Product:
    """
    Ítem del catálogo: equipo, material o repuesto.

    Attributes:
        sku: Lo genera el backend; puede faltar
        monetary_value: Valor tal como lo entrega la API (string decimal)
        unit_of_measure_id: Requerido para MATERIAL
        model: Requerido para EQUIPMENT
    """
    id: str
    name: str
    kind: ProductKind = ProductKind.MATERIAL
    description: Optional[str] = None
    sku: Optional[str] = None
    model: Optional[str] = None
    unit_of_measure_id: Optional[str] = None
    is_hazardous: bool = False
    currency_id: Optional[str] = None
    monetary_value: Optional[str] = None
    is_active: bool = True
    provider_id: Optional[str] = None
    project_id: Optional[str] = None
    category_ids: List[str] = field(default_factory=list)
    tenant_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "description": self.description,
            "sku": self.sku,
            "model": self.model,
            "unitOfMeasureId": self.unit_of_measure_id,
            "isHazardous": self.is_hazardous,
            "currencyId": self.currency_id,
            "monetaryValue": self.monetary_value,
            "isActive": self.is_active,
            "status": "ACTIVO" if self.is_active else "INACTIVO",
            "providerId": self.provider_id,
            "projectId": self.project_id,
            "categoryIds": self.category_ids,
            "tenantId": self.tenant_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        # Formas antiguas: type en vez de kind, status en vez de isActive, price numérico
        value = data.get("monetaryValue")
        if value is None and data.get("price") is not None:
            value = str(data["price"])
        if "status" in data and "isActive" not in data:
            active = str(data["status"]).upper() != "INACTIVO"
        else:
            active = _active_flag(data)
        currency = data.get("currency")
        currency_id = data.get("currencyId")
        if not currency_id and isinstance(currency, dict):
            currency_id = currency.get("id")
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or data.get("description") or "",
            kind=_enum(ProductKind, data.get("kind") or data.get("type"), ProductKind.MATERIAL),
            description=data.get("description"),
            sku=data.get("sku"),
            model=data.get("model"),
            unit_of_measure_id=data.get("unitOfMeasureId"),
            is_hazardous=bool(data.get("isHazardous", False)),
            currency_id=currency_id,
            monetary_value=value,
            is_active=active,
            provider_id=data.get("providerId"),
            project_id=data.get("projectId"),
            category_ids=_ids(data.get("categoryIds") or data.get("categories")),
            tenant_id=data.get("tenantId"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


# ==============================================================================
# PAGINACIÓN
# ==============================================================================

@dataclass
class PaginatedResult:
    """Página de resultados {data, total, page, limit}."""
    items: List[Any] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: Optional[int] = None

    @property
    def total_pages(self) -> int:
        if not self.limit:
            return 1
        return max(1, -(-self.total // self.limit))

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": [i.to_dict() if hasattr(i, "to_dict") else i for i in self.items],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }

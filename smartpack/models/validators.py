# ==============================================================================
# VALIDACIONES LOCALES - Nunca llegan a la red
# ==============================================================================
# Errores a nivel de campo para formularios de usuario y área.
# Todas las funciones validate_* lanzan ValidationError con {campo: mensaje}.
# ==============================================================================

import re
from typing import Any, Dict, Optional

from smartpack.models.roles import BACKEND_TO_FRONTEND, UserRole


class ValidationError(Exception):
    """Error de validación local (por campo)."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class AreaHierarchyError(ValidationError):
    """El nivel del área no es coherente con su padre."""
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# RUT CHILENO (módulo 11)
# ═══════════════════════════════════════════════════════════════════════════════

RUT_FORMAT_ERROR = "Formato de RUT inválido"
RUT_CHECK_DIGIT_ERROR = "RUT chileno no válido (verificar dígito verificador)"

_RUT_CLEAN_RE = re.compile(r"^\d{6,8}[0-9K]$")


def clean_rut(rut: str) -> str:
    """Quita puntos y guiones: '12.345.678-5' → '123456785'."""
    return re.sub(r"[.\-]", "", rut or "").upper()


def compute_check_digit(body: str) -> str:
    """Calcula el dígito verificador de un cuerpo de RUT."""
    total = 0
    multiplier = 2
    for digit in reversed(body):
        total += int(digit) * multiplier
        multiplier = 2 if multiplier == 7 else multiplier + 1
    remainder = 11 - (total % 11)
    if remainder == 11:
        return "0"
    if remainder == 10:
        return "K"
    return str(remainder)


def is_valid_rut(rut: str) -> bool:
    """True si el RUT tiene formato válido y dígito verificador correcto."""
    cleaned = clean_rut(rut)
    if not _RUT_CLEAN_RE.match(cleaned):
        return False
    return compute_check_digit(cleaned[:-1]) == cleaned[-1]


def format_rut(raw: str) -> str:
    """
    Formatea un RUT progresivamente: '123456785' → '12.345.678-5'.

    Con 1 a 3 caracteres no formatea; con 4 agrega solo el guion.
    """
    cleaned = re.sub(r"[^\dkK]", "", raw or "").upper()
    if len(cleaned) <= 3:
        return cleaned
    body, dv = cleaned[:-1], cleaned[-1]
    if len(cleaned) == 4:
        return f"{body}-{dv}"
    groups = []
    while body:
        groups.insert(0, body[-3:])
        body = body[:-3]
    return f"{'.'.join(groups)}-{dv}"


def validate_rut(rut: str) -> str:
    """
    Valida un RUT y retorna su forma formateada.

    Raises:
        ValidationError: {'rut': mensaje} si el formato o el dígito fallan
    """
    cleaned = clean_rut(rut)
    if not _RUT_CLEAN_RE.match(cleaned):
        raise ValidationError({"rut": RUT_FORMAT_ERROR})
    if compute_check_digit(cleaned[:-1]) != cleaned[-1]:
        raise ValidationError({"rut": RUT_CHECK_DIGIT_ERROR})
    return format_rut(cleaned)


# ═══════════════════════════════════════════════════════════════════════════════
# USUARIOS
# ═══════════════════════════════════════════════════════════════════════════════

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^(\+?56)?9\d{8}$")


def validate_user_input(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Valida el formulario de usuario.

    Args:
        data: Campos del formulario (name, lastName, email, rut, phone, role)
        partial: True en edición (solo se validan los campos presentes)

    Returns:
        Copia de data con rut formateado y role normalizado

    Raises:
        ValidationError: Con todos los campos inválidos a la vez
    """
    errors = {}
    cleaned = dict(data)

    for key, label in (("name", "Nombre"), ("lastName", "Apellido")):
        if partial and key not in data:
            continue
        value = (data.get(key) or "").strip()
        if len(value) < 2:
            errors[key] = f"{label} debe tener al menos 2 caracteres"
        elif len(value) > 50:
            errors[key] = f"{label} no puede tener más de 50 caracteres"
        else:
            cleaned[key] = value

    if not partial or "email" in data:
        email = (data.get("email") or "").strip()
        if not _EMAIL_RE.match(email) or len(email) > 100:
            errors["email"] = "Email inválido"
        else:
            cleaned["email"] = email.lower()

    if not partial or "rut" in data:
        try:
            cleaned["rut"] = validate_rut(data.get("rut") or "")
        except ValidationError as e:
            errors.update(e.errors)

    phone = (data.get("phone") or "").replace(" ", "")
    if phone and not _PHONE_RE.match(phone):
        errors["phone"] = "Teléfono inválido (Ej: +56912345678)"

    if not partial or "role" in data:
        role = data.get("role")
        if isinstance(role, UserRole):
            cleaned["role"] = role
        elif str(role or "").strip().upper() in BACKEND_TO_FRONTEND:
            cleaned["role"] = BACKEND_TO_FRONTEND[str(role).strip().upper()]
        else:
            errors["role"] = "Rol inválido"

    if errors:
        raise ValidationError(errors)
    return cleaned


# ═══════════════════════════════════════════════════════════════════════════════
# ÁREAS
# ═══════════════════════════════════════════════════════════════════════════════

AREA_MIN_LEVEL = 0
AREA_MAX_LEVEL = 10


def derive_area_level(parent_level: Optional[int]) -> int:
    """Nivel que corresponde a un área: 0 sin padre, padre + 1 con padre."""
    if parent_level is None:
        return 0
    return int(parent_level) + 1


def validate_area_hierarchy(level: int, parent_id: Optional[str],
                            parent_level: Optional[int] = None) -> None:
    """
    Verifica la invariante de niveles del árbol de áreas.

    Raises:
        AreaHierarchyError: Si level no coincide con el padre
    """
    if parent_id is None:
        if level != 0:
            raise AreaHierarchyError({
                "level": "Las áreas principales (nivel 0) no deben tener padre",
            })
        return
    if parent_level is None:
        raise AreaHierarchyError({"parentId": "Área padre no encontrada"})
    if level != parent_level + 1:
        raise AreaHierarchyError({
            "level": f"El nivel debe ser {parent_level + 1} (nivel del padre + 1)",
        })


def validate_area_input(data: Dict[str, Any], parent_level: Optional[int] = None,
                        partial: bool = False) -> Dict[str, Any]:
    """
    Valida el formulario de área.

    Args:
        data: name, level, parentId, status
        parent_level: Nivel del padre (si parentId viene informado)
        partial: True en edición

    Returns:
        Copia de data con name recortado y level entero
    """
    errors = {}
    cleaned = dict(data)

    if not partial or "name" in data:
        name = (data.get("name") or "").strip()
        if len(name) < 2:
            errors["name"] = "Nombre debe tener al menos 2 caracteres"
        elif len(name) > 100:
            errors["name"] = "Nombre no puede tener más de 100 caracteres"
        else:
            cleaned["name"] = name

    if "level" in data:
        try:
            level = int(data.get("level"))
        except (TypeError, ValueError):
            level = None
        if level is None or not AREA_MIN_LEVEL <= level <= AREA_MAX_LEVEL:
            errors["level"] = f"Nivel debe estar entre {AREA_MIN_LEVEL} y {AREA_MAX_LEVEL}"
        else:
            cleaned["level"] = level

    status = data.get("status")
    if status is not None and str(status).upper() not in ("ACTIVO", "INACTIVO"):
        errors["status"] = "Estado inválido"

    if errors:
        raise ValidationError(errors)

    if "level" in cleaned and (not partial or "parentId" in data):
        validate_area_hierarchy(cleaned["level"], cleaned.get("parentId") or None, parent_level)
    return cleaned

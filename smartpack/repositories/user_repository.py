# ==============================================================================
# REPOSITORIO DE USUARIOS
# ==============================================================================
# Mapea el DTO del backend (firstName, role {name} / roleId) al User del panel
# y el rol del panel (JEFE) al nombre del backend (JEFE_AREA).
# ==============================================================================

from typing import Any, Dict, List, Optional

from smartpack.models.entities import User
from smartpack.models.roles import map_frontend_role_to_backend, to_user_role
from smartpack.repositories.base import ApiRepository


class UserRepository(ApiRepository):
    """Acceso a /users."""

    list_keys = ("users",)

    # =========================================================================
    # LECTURAS
    # =========================================================================

    def find_all(self) -> List[User]:
        return self._read_list("/users", User.from_dict)

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self._read_item(f"/users/{user_id}", User.from_dict)

    def find_by_area(self, area_id: str) -> List[User]:
        """Miembros de un área (GET /users/area/{areaId})."""
        return self._read_list(f"/users/area/{area_id}", User.from_dict)

    def find_by_role(self, role: Any) -> List[User]:
        wanted = to_user_role(role)
        return [u for u in self.find_all() if u.role == wanted]

    def me(self) -> Optional[User]:
        return self._read_item("/users/me", User.from_dict)

    # =========================================================================
    # ESCRITURAS
    # =========================================================================

    def _to_backend(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Campos del formulario → payload del backend (sin areas/warehouses)."""
        payload = {}
        mapping = {"name": "firstName", "lastName": "lastName", "email": "email",
                   "status": "status", "reason": "reason", "password": "password"}
        for key, backend_key in mapping.items():
            if key in data:
                payload[backend_key] = data[key]
        for key in ("rut", "phone"):
            if key in data:
                payload[key] = data[key] or None
        if data.get("role"):
            payload["role"] = map_frontend_role_to_backend(data["role"])
        return payload

    def create(self, data: Dict[str, Any]) -> User:
        payload = self._to_backend(data)
        payload["tenantId"] = self.tenant_id
        return User.from_dict(self._extract_item(self.client.post("/users", json=payload)))

    def update(self, user_id: str, data: Dict[str, Any]) -> User:
        response = self.client.put(f"/users/{user_id}", json=self._to_backend(data))
        item = self._extract_item(response)
        if not item:
            item = {"id": user_id, **data}
        return User.from_dict(item)

    def update_status(self, user_id: str, status: str, reason: str = None) -> User:
        payload = {"status": status}
        if reason:
            payload["reason"] = reason
        return self.update(user_id, payload)

    def validate_unique(self, rut: str = None, email: str = None,
                        exclude_user_id: str = None) -> Dict[str, Any]:
        """
        Verifica disponibilidad de RUT y email.

        Returns:
            {'rutAvailable': bool, 'emailAvailable': bool, 'isValid': bool}
        """
        payload = {"rut": rut, "email": email, "excludeUserId": exclude_user_id}
        response = self.client.post(
            "/users/validate-unique", json={k: v for k, v in payload.items() if v}
        ) or {}
        result = {
            "rutAvailable": response.get("rutAvailable", True),
            "emailAvailable": response.get("emailAvailable", True),
        }
        result["isValid"] = response.get(
            "isValid", result["rutAvailable"] and result["emailAvailable"]
        )
        return result



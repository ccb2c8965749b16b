# ==============================================================================
# SERVICIO DE AUTENTICACIÓN
# ==============================================================================
# El backend es dueño de las credenciales: aquí solo se intercambia
# email/password por un token y se guarda en el almacén de sesión junto con
# el perfil resuelto (rol canónico, áreas y bodegas).
#
# El backend puede responder { token | access_token | accessToken, user }.
# ==============================================================================

import logging
from typing import Any, Dict, Optional

from smartpack.models.entities import User
from smartpack.models.validators import ValidationError
from smartpack.repositories.api_client import ApiClient, ApiError
from smartpack.services.visibility_service import Actor

logger = logging.getLogger(__name__)

TOKEN_KEYS = ("token", "access_token", "accessToken")


class InvalidAuthResponseError(ApiError):
    """El backend respondió 2xx pero sin token o sin usuario."""

    def __init__(self, message: str):
        super().__init__(message, 502, "Bad Gateway")


class AuthService:
    """
    Uso:
        auth = AuthService(client, user_repo, token_store)
        user = auth.login('ana@kreatech.cl', 'secreto')
        actor = auth.current_actor()
    """

    def __init__(self, client: ApiClient, user_repo, token_store=None):
        self.client = client
        self.user_repo = user_repo
        self._token_store = token_store

    @property
    def token_store(self):
        return self._token_store or self.client.token_store

    # =========================================================================
    # LOGIN / LOGOUT
    # =========================================================================

    def login(self, email: str, password: str) -> User:
        """
        Autentica contra /auth/login y guarda token y perfil.

        Raises:
            ValidationError: Faltan credenciales
            ApiError: Credenciales rechazadas u otro error del backend
            InvalidAuthResponseError: Respuesta sin token o sin usuario
        """
        errors = {}
        if not (email or "").strip():
            errors["email"] = "Email es obligatorio"
        if not password:
            errors["password"] = "Contraseña es obligatoria"
        if errors:
            raise ValidationError(errors)

        response = self.client.post(
            "/auth/login", json={"email": email.strip().lower(), "password": password},
            auth=False,
        )
        if not isinstance(response, dict):
            response = {}

        token = next((response.get(k) for k in TOKEN_KEYS if response.get(k)), None)
        if not token:
            logger.error("❌ Login sin token. Claves recibidas: %s", list(response.keys()))
            raise InvalidAuthResponseError("No se recibió token de autenticación")
        if not response.get("user"):
            logger.error("❌ Login sin usuario. Claves recibidas: %s", list(response.keys()))
            raise InvalidAuthResponseError("No se recibió información del usuario")

        self.token_store.set("token", token)
        user = self.user_repo.me() or User.from_dict(response["user"])
        self._remember(user)
        self.client.session_manager.mark_navigation_complete()
        logger.info("🔐 Login exitoso: %s (%s)", user.email, user.role.value)
        return user

    def logout(self) -> None:
        self.token_store.clear()
        logger.info("🚪 Sesión cerrada")

    def _remember(self, user: User) -> None:
        self.token_store.set("user", {
            "id": user.id,
            "name": user.full_name,
            "email": user.email,
            "role": user.role.value,
            "areas": list(user.areas),
            "warehouses": list(user.warehouses),
        })
        self.token_store.set("role", user.role.value)
        self.token_store.set("email", user.email)

    # =========================================================================
    # SESIÓN ACTUAL
    # =========================================================================

    def is_authenticated(self) -> bool:
        return bool(self.token_store.get("token"))

    def session_user(self) -> Optional[Dict[str, Any]]:
        return self.token_store.get("user")

    def current_actor(self) -> Optional[Actor]:
        data = self.session_user()
        return Actor.from_session(data) if data else None

    def current_user(self) -> Optional[User]:
        """Perfil fresco desde /users/me; actualiza lo guardado en sesión."""
        user = self.user_repo.me()
        if user is not None:
            self._remember(user)
        return user

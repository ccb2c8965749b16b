# ==============================================================================
# CLIENTE HTTP - Acceso a la API REST de SmartPack
# ==============================================================================
# Única puerta hacia el backend. Todas las respuestas no-2xx se normalizan a
# ApiError(message, status_code, error). Los 401 de llamadas autenticadas
# pasan por el SessionManager; el de un login es un rechazo de credenciales.
# ==============================================================================

import logging
import time
from typing import Any, Dict, Optional

import requests

from smartpack import config
from smartpack.performance_logger import profile_api_call
from smartpack.session_manager import SessionManager

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Error en la solicitud"
UNPARSEABLE_ERROR_MESSAGE = "Error al procesar la solicitud"


class ApiError(Exception):
    """
    Error normalizado de la API.

    Attributes:
        message: Mensaje para el usuario
        status_code: Status HTTP (0 si no hubo respuesta)
        error: Código/nombre de error del backend (ej: 'Bad Request')
    """

    def __init__(self, message: str, status_code: int = 0, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "statusCode": self.status_code, "error": self.error}


class SessionExpiredError(ApiError):
    """401 que disparó la expiración de la sesión del navegador."""

    def __init__(self, message: str, redirect_to: str = config.LOGIN_PATH,
                 delay_ms: int = config.SESSION_REDIRECT_DELAY_MS):
        super().__init__(message, 401, "Unauthorized")
        self.redirect_to = redirect_to
        self.delay_ms = delay_ms


class ApiClient:
    """
    Cliente JSON sobre requests.Session.

    Uso:
        client = ApiClient(token_store=MemoryTokenStore('abc'))
        areas = client.get('/areas')
        client.post('/areas/a1/managers', json={'managerId': 'u1'})
    """

    def __init__(self, base_url: str = None, session: requests.Session = None,
                 token_store=None, session_manager: SessionManager = None,
                 timeout: Optional[float] = config.REQUEST_TIMEOUT):
        """
        Args:
            base_url: URL base del backend (default SMARTPACK_API_URL)
            session: Sesión HTTP (inyectable en tests)
            token_store: De dónde leer el Bearer token
            session_manager: Gestor de expiración (default: singleton)
            timeout: Timeout por request; None = sin límite
        """
        self.base_url = (base_url or config.API_URL).rstrip("/")
        self.session = session or requests.Session()
        self._session_manager = session_manager
        self._token_store = token_store
        self.timeout = timeout

    @property
    def session_manager(self) -> SessionManager:
        return self._session_manager or SessionManager.get_instance()

    @property
    def token_store(self):
        return self._token_store or self.session_manager.token_store

    # =========================================================================
    # MÉTODOS HTTP
    # =========================================================================

    def get(self, path: str, params: Dict[str, Any] = None, auth: bool = True) -> Any:
        return self.request("GET", path, params=params, auth=auth)

    def post(self, path: str, json: Any = None, auth: bool = True) -> Any:
        return self.request("POST", path, json=json, auth=auth)

    def put(self, path: str, json: Any = None, auth: bool = True) -> Any:
        return self.request("PUT", path, json=json, auth=auth)

    def patch(self, path: str, json: Any = None, auth: bool = True) -> Any:
        return self.request("PATCH", path, json=json, auth=auth)

    def delete(self, path: str, auth: bool = True) -> Any:
        return self.request("DELETE", path, auth=auth)

    # =========================================================================
    # NÚCLEO
    # =========================================================================

    def _headers(self, auth: bool) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if auth:
            token = self.token_store.get("token")
            if token:
                headers["Authorization"] = f"Bearer {token}"
            else:
                logger.warning("⚠️ Se requiere autenticación pero no hay token guardado")
        return headers

    def request(self, method: str, path: str, params: Dict[str, Any] = None,
                json: Any = None, auth: bool = True) -> Any:
        """
        Ejecuta una solicitud y retorna el JSON decodificado (None si no hay cuerpo).

        Raises:
            SessionExpiredError: 401 que inició la redirección al login
            ApiError: Cualquier otra respuesta no-2xx o fallo de red
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None and v != ""}
        url = f"{self.base_url}{path}"
        start = time.perf_counter()
        try:
            response = self.session.request(
                method, url, params=params or None, json=json,
                headers=self._headers(auth), timeout=self.timeout,
            )
        except requests.RequestException as e:
            profile_api_call(method, path, (time.perf_counter() - start) * 1000, 0)
            logger.error("❌ Sin respuesta de %s %s: %s", method, path, e)
            raise ApiError(f"No se pudo conectar con el servidor: {e}", 0, "NetworkError") from e

        profile_api_call(method, path, (time.perf_counter() - start) * 1000, response.status_code)
        return self._handle_response(path, response, auth)

    def _handle_response(self, path: str, response: requests.Response, auth: bool = True) -> Any:
        if 200 <= response.status_code < 300:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError:
                return response.text

        error = self._normalize_error(response)
        # Sin credenciales (login) un 401 es un rechazo, no una sesión vencida
        if response.status_code == 401 and auth:
            instruction = self.session_manager.handle_unauthorized(path, 401)
            if instruction is not None:
                redirect_to, delay_ms = instruction
                raise SessionExpiredError(error.message, redirect_to, delay_ms)
        raise error

    @staticmethod
    def _normalize_error(response: requests.Response) -> ApiError:
        """Convierte una respuesta no-2xx en ApiError(message, statusCode, error)."""
        try:
            body = response.json()
        except ValueError:
            return ApiError(UNPARSEABLE_ERROR_MESSAGE, response.status_code)

        if not isinstance(body, dict):
            return ApiError(DEFAULT_ERROR_MESSAGE, response.status_code)
        message = body.get("message")
        if isinstance(message, list):
            message = "; ".join(str(m) for m in message)
        return ApiError(message or DEFAULT_ERROR_MESSAGE, response.status_code, body.get("error"))

# ==============================================================================
# GESTOR DE SESIÓN - Expiración de sesión y guardia anti-redirecciones
# ==============================================================================
# Estado explícito con ciclo de vida definido:
#
#   init()                      → al iniciar la app (marca loaded_at)
#   handle_unauthorized(path)   → ante un 401 del backend
#   mark_navigation_complete()  → tras una navegación exitosa (resetea guardia)
#
# Ante un 401 (excepto en /auth/profile):
#   1. Si estamos dentro de la ventana de gracia (3 s desde init) → se ignora
#      (tolera carreras con el redirect de OAuth)
#   2. Si esa sesión ya tiene una redirección en curso → se ignora
#      (evita tormentas)
#   3. Si no: limpia credenciales, emite 'session-expired' y retorna la
#      instrucción de redirección a /login con su retardo
#
# La ventana de gracia es del proceso. La marca de redirección en curso vive
# en el almacén de token, o sea en la sesión Flask de cada navegador: el 401
# de un usuario no cambia lo que ve otro.
# ==============================================================================

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from smartpack import config

logger = logging.getLogger(__name__)

SESSION_EXPIRED_EVENT = "session-expired"
REDIRECTING_KEY = "redirecting"


# ═══════════════════════════════════════════════════════════════════════════════
# ALMACENES DE TOKEN
# ═══════════════════════════════════════════════════════════════════════════════

class MemoryTokenStore:
    """Guarda el token en memoria (scripts, tests, workers)."""

    def __init__(self, token: str = None):
        self._data: Dict[str, Any] = {}
        if token:
            self._data["token"] = token

    def get(self, key: str = "token") -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def discard(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class FlaskSessionTokenStore:
    """
    Guarda las credenciales en la sesión Flask del request actual.
    Todas las claves llevan el prefijo 'smartpack:'.
    """

    def _key(self, key: str) -> str:
        return config.STORAGE_PREFIX + key

    def get(self, key: str = "token") -> Any:
        from flask import has_request_context, session
        if not has_request_context():
            return None
        return session.get(self._key(key))

    def set(self, key: str, value: Any) -> None:
        from flask import session
        session[self._key(key)] = value

    def discard(self, key: str) -> None:
        from flask import has_request_context, session
        if has_request_context() and self._key(key) in session:
            session.pop(self._key(key))

    def clear(self) -> None:
        from flask import has_request_context, session
        if not has_request_context():
            return
        for key in [k for k in session.keys() if k.startswith(config.STORAGE_PREFIX)]:
            session.pop(key, None)


# ═══════════════════════════════════════════════════════════════════════════════
# GESTOR DE SESIÓN (Singleton)
# ═══════════════════════════════════════════════════════════════════════════════

class SessionManager:
    """
    Dueño de la guardia de expiración de sesión.

    Uso:
        manager = SessionManager.get_instance()
        manager.init()
        manager.on('session-expired', lambda payload: ...)
    """

    _instance: Optional["SessionManager"] = None

    def __init__(self, token_store=None, clock: Callable[[], float] = None,
                 grace_seconds: float = config.SESSION_GRACE_SECONDS,
                 redirect_delay_ms: int = config.SESSION_REDIRECT_DELAY_MS):
        """
        Args:
            token_store: Almacén de credenciales (default: sesión Flask)
            clock: Reloj monotónico en segundos (inyectable en tests)
            grace_seconds: Ventana de gracia tras init()
            redirect_delay_ms: Retardo antes de redirigir al login
        """
        self.token_store = token_store or FlaskSessionTokenStore()
        self._clock = clock or time.monotonic
        self.grace_seconds = grace_seconds
        self.redirect_delay_ms = redirect_delay_ms
        self.loaded_at: Optional[float] = None
        self._listeners: Dict[str, List[Callable]] = {}
        self._lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> "SessionManager":
        if cls._instance is None:
            cls._instance = cls()
            cls._instance.init()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Descarta el singleton (útil en tests)."""
        cls._instance = None

    # =========================================================================
    # CICLO DE VIDA
    # =========================================================================

    def init(self) -> None:
        """Marca el inicio de la app; abre la ventana de gracia."""
        with self._lock:
            self.loaded_at = self._clock()

    @property
    def is_redirecting(self) -> bool:
        """True si la sesión actual ya inició su redirección al login."""
        return bool(self.token_store.get(REDIRECTING_KEY))

    def mark_navigation_complete(self) -> None:
        """Una navegación de esta sesión terminó bien: se permite otra redirección."""
        with self._lock:
            if self.is_redirecting:
                self.token_store.discard(REDIRECTING_KEY)

    def in_grace_window(self) -> bool:
        if self.loaded_at is None:
            return False
        return (self._clock() - self.loaded_at) < self.grace_seconds

    # =========================================================================
    # EVENTOS
    # =========================================================================

    def on(self, event: str, callback: Callable[[dict], None]) -> None:
        with self._lock:
            self._listeners.setdefault(event, []).append(callback)

    def off(self, event: str, callback: Callable[[dict], None]) -> None:
        with self._lock:
            if callback in self._listeners.get(event, []):
                self._listeners[event].remove(callback)

    def emit(self, event: str, payload: dict) -> None:
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(payload)
            except Exception:
                logger.exception("❌ Error en listener de '%s'", event)

    # =========================================================================
    # 401
    # =========================================================================

    def clear_credentials(self) -> None:
        self.token_store.clear()

    def handle_unauthorized(self, path: str, status_code: int = 401) -> Optional[Tuple[str, int]]:
        """
        Procesa una respuesta no autorizada del backend.

        Args:
            path: Endpoint que respondió (ej: '/areas')
            status_code: Status HTTP recibido

        Returns:
            (ruta_login, retardo_ms) si se inició la redirección, None si se ignoró
        """
        if status_code != 401 or path.split("?", 1)[0] == config.PROFILE_PATH:
            return None

        with self._lock:
            if self.in_grace_window():
                logger.info("⏳ 401 en %s dentro de la ventana de gracia, se ignora", path)
                return None
            if self.is_redirecting:
                return None
            self.clear_credentials()
            self.token_store.set(REDIRECTING_KEY, True)

        logger.warning("🔒 Sesión expirada (401 en %s), redirigiendo a %s", path, config.LOGIN_PATH)
        self.emit(SESSION_EXPIRED_EVENT, {"path": path})
        return config.LOGIN_PATH, self.redirect_delay_ms

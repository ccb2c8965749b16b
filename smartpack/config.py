# ==============================================================================
# CONFIGURACIÓN - Variables de entorno y constantes del cliente
# ==============================================================================
# Se leen UNA sola vez al importar el módulo.
#
# Variables soportadas:
#   SMARTPACK_API_URL     → URL base de la API REST (default http://localhost:3000)
#   SMARTPACK_SECRET_KEY  → Clave de sesión Flask (obligatoria en producción)
#   PRODUCTION_MODE       → 1/true/yes para modo producción
#   ENABLE_PROFILING      → 0/false para desactivar el profiling en archivos
#   SMARTPACK_OFFLINE_ASSIGNMENTS → 1 para usar el libro de asignaciones en memoria
#   SMARTPACK_BATCH_WORKERS       → threads por lote de asignaciones (default 4)
# ==============================================================================

import os


def _env_flag(name, default=False):
    """Interpreta una variable de entorno como booleano."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ═══════════════════════════════════════════════════════════════════════════════
# API REST
# ═══════════════════════════════════════════════════════════════════════════════
API_URL = os.environ.get("SMARTPACK_API_URL", "http://localhost:3000").rstrip("/")

# Sin timeout del lado del cliente: las solicitudes corren hasta completar o fallar
REQUEST_TIMEOUT = None

# ═══════════════════════════════════════════════════════════════════════════════
# TENANT Y ALMACENAMIENTO
# ═══════════════════════════════════════════════════════════════════════════════
# Tenant fijo: la multi-tenencia existe solo como constante en este cliente
TENANT_ID = "kreatech-demo"

# Prefijo de todas las claves guardadas en la sesión
STORAGE_PREFIX = "smartpack:"

# ═══════════════════════════════════════════════════════════════════════════════
# MODO PRODUCCIÓN Y SESIONES
# ═══════════════════════════════════════════════════════════════════════════════
PRODUCTION_MODE = _env_flag("PRODUCTION_MODE", False)

_DEFAULT_SECRET = "smartpack_dev_secret_key_change_in_production"
SECRET_KEY = os.environ.get("SMARTPACK_SECRET_KEY") or _DEFAULT_SECRET

# Ventana de gracia tras cargar la app (tolera carreras del redirect OAuth)
SESSION_GRACE_SECONDS = 3

# Espera antes de redirigir al login cuando expira la sesión
SESSION_REDIRECT_DELAY_MS = 1500

# Los 401 de este endpoint NO disparan la expiración global de sesión
PROFILE_PATH = "/auth/profile"
LOGIN_PATH = "/login"

# ═══════════════════════════════════════════════════════════════════════════════
# CACHÉ DE CONSULTAS
# ═══════════════════════════════════════════════════════════════════════════════
CACHE_STALE_SECONDS = 300

# ═══════════════════════════════════════════════════════════════════════════════
# ASIGNACIONES
# ═══════════════════════════════════════════════════════════════════════════════
OFFLINE_ASSIGNMENTS = _env_flag("SMARTPACK_OFFLINE_ASSIGNMENTS", False)
BATCH_MAX_WORKERS = int(os.environ.get("SMARTPACK_BATCH_WORKERS", "4"))

# ═══════════════════════════════════════════════════════════════════════════════
# PROFILING
# ═══════════════════════════════════════════════════════════════════════════════
ENABLE_PROFILING = _env_flag("ENABLE_PROFILING", True)

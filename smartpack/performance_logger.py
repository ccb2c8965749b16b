# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide rendimiento de rutas del panel, llamadas a la API REST y funciones
# clave. Guarda logs legibles en logs/ para análisis humano.
#
# ACTIVAR/DESACTIVAR: variable de entorno ENABLE_PROFILING (ver config.py)
# DIRECTORIO: variable de entorno SMARTPACK_LOGS_DIR (default smartpack/logs)
# ==============================================================================

import logging
import os
import threading
import time
from collections import defaultdict
from datetime import datetime
from functools import wraps

from smartpack import config

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

ENABLE_PROFILING = config.ENABLE_PROFILING

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = 300   # Advertencia si supera 300ms
THRESHOLD_CRITICAL = 700  # Crítico si supera 700ms

LOGS_DIR = os.environ.get(
    'SMARTPACK_LOGS_DIR', os.path.join(os.path.dirname(__file__), 'logs')
)

PERFORMANCE_LOG = os.path.join(LOGS_DIR, 'performance.log')
SLOW_ROUTES_LOG = os.path.join(LOGS_DIR, 'slow_routes.log')
SLOW_FUNCTIONS_LOG = os.path.join(LOGS_DIR, 'slow_functions.log')
API_CALLS_LOG = os.path.join(LOGS_DIR, 'api_calls.log')

# Mapeo de rutas a nombres legibles (para logs más humanos)
ROUTE_NAMES = {
    # Autenticación
    'POST /api/auth/login': 'Iniciar sesión',
    'POST /api/auth/logout': 'Cerrar sesión',
    'GET /api/auth/me': 'Ver perfil',

    # Áreas
    'GET /api/areas': 'Listar áreas',
    'GET /api/areas/tree': 'Ver árbol de áreas',
    'POST /api/areas': 'Crear área',
    'GET /api/areas/<area_id>': 'Ver detalle de área',
    'PUT /api/areas/<area_id>': 'Editar área',
    'GET /api/areas/<area_id>/manager-candidates': 'Ver jefes asignables',
    'POST /api/areas/<area_id>/managers': 'Asignar jefe a área',
    'DELETE /api/areas/<area_id>/managers/<manager_id>': 'Remover jefe de área',
    'POST /api/areas/<area_id>/warehouses': 'Asignar bodega a área',
    'DELETE /api/areas/<area_id>/warehouses/<warehouse_id>': 'Remover bodega de área',

    # Bodegas
    'GET /api/warehouses': 'Listar bodegas',
    'POST /api/warehouses': 'Crear bodega',
    'GET /api/warehouses/<warehouse_id>': 'Ver detalle de bodega',
    'PUT /api/warehouses/<warehouse_id>': 'Editar bodega',
    'GET /api/warehouses/<warehouse_id>/supervisors': 'Ver supervisores de bodega',
    'GET /api/warehouses/supervisor-candidates': 'Ver supervisores asignables',
    'PUT /api/warehouses/<warehouse_id>/assignments': 'Guardar asignaciones de bodega',

    # Usuarios
    'GET /api/users': 'Listar usuarios visibles',
    'POST /api/users': 'Crear usuario',
    'GET /api/users/<user_id>': 'Ver usuario',
    'PUT /api/users/<user_id>': 'Editar usuario',
    'PATCH /api/users/<user_id>/status': 'Habilitar/deshabilitar usuario',
    'POST /api/users/validate-unique': 'Validar RUT/email',
    'PUT /api/users/<user_id>/assignments': 'Sincronizar asignaciones',
    'GET /api/users/<user_id>/enablement-history': 'Historial de habilitación',
    'GET /api/users/<user_id>/assignment-history': 'Historial de asignaciones',
    'GET /api/enablement-history': 'Historial global de habilitación',

    # Auditoría
    'GET /api/audit-logs': 'Ver registro de actividad',

    # Cajas
    'GET /api/boxes': 'Listar cajas',
    'GET /api/boxes/<box_id>': 'Ver caja',
    'GET /api/boxes/qr/<qr_code>': 'Buscar caja por QR',
    'PATCH /api/boxes/<box_id>/move': 'Mover caja',
    'PATCH /api/boxes/<box_id>/status': 'Cambiar estado de caja',
}


# ═══════════════════════════════════════════════════════════════════════════
# ESTADÍSTICAS (en memoria)
# ═══════════════════════════════════════════════════════════════════════════

# Estructura: {nombre: {calls: int, total_time: float, max_time: float}}
_function_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0})
_api_stats = defaultdict(lambda: {'calls': 0, 'errors': 0, 'total_time': 0.0, 'max_time': 0.0})
_stats_lock = threading.Lock()
_write_lock = threading.Lock()
# ═══════════════════════════════════════════════════════════════════════════
# ESCRITURA DE BLOQUES
# ═══════════════════════════════════════════════════════════════════════════

RULE = '─' * 40


def _now():
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _block(header, fields):
    """
    Arma una entrada de log legible.

    Ejemplo: _block('⚠️ [API]', [('Llamada', 'GET /areas'), ('Tiempo', '812 ms')])
    """
    lines = ['', f"{header} {_now()}", RULE]
    lines += [f"{label}: {value}" for label, value in fields]
    lines += [RULE, '']
    return '\n'.join(lines)


def _append(filepath, content):
    with _write_lock:
        try:
            os.makedirs(LOGS_DIR, exist_ok=True)
            with open(filepath, 'a', encoding='utf-8') as f:
                f.write(content)
        except OSError as e:
            logger.warning("⚠️ No se pudo escribir %s: %s", filepath, e)


def _action_name(method, path, rule=None):
    """Nombre legible: primero por path exacto, luego por la regla de Flask."""
    for candidate in (path, rule):
        if candidate and f"{method} {candidate}" in ROUTE_NAMES:
            return ROUTE_NAMES[f"{method} {candidate}"]
    return f"{method} {path}"


def _severity(time_ms):
    """(emoji, etiqueta) según los umbrales; None si es rápido."""
    if time_ms >= THRESHOLD_CRITICAL:
        return '🔴', 'CRÍTICO'
    if time_ms >= THRESHOLD_WARNING:
        return '⚠️', 'LENTO'
    return None


def _record(stats_table, name, elapsed_ms, failed=False):
    with _stats_lock:
        stats = stats_table[name]
        stats['calls'] += 1
        stats['total_time'] += elapsed_ms
        stats['max_time'] = max(stats['max_time'], elapsed_ms)
        if failed and 'errors' in stats:
            stats['errors'] += 1


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ RUTAS DEL PANEL (hooks Flask)
# ═══════════════════════════════════════════════════════════════════════════

def log_route(method, path, rule, time_ms, user=None):
    """
    Registra una ruta en performance.log y, si fue lenta, en slow_routes.log.

    Args:
        method: GET, POST, etc.
        path: Ruta solicitada (/api/areas/a1)
        rule: Regla de Flask (/api/areas/<area_id>)
        time_ms: Tiempo en milisegundos
        user: Email del usuario de la sesión (opcional)
    """
    if not ENABLE_PROFILING:
        return

    action = _action_name(method, path, rule)
    who = user or 'anónimo'
    _append(PERFORMANCE_LOG, _block('[PERFORMANCE]', [
        ('Acción', action), ('Usuario', who), ('Ruta', f"{method} {path}"),
        ('Tiempo', f"{time_ms:.0f} ms"),
    ]))

    severity = _severity(time_ms)
    if severity:
        emoji, label = severity
        _append(SLOW_ROUTES_LOG, _block(f"{emoji} [RUTA {label}]", [
            ('Acción', action), ('Usuario', who),
            ('Tiempo', f"{time_ms:.0f} ms (umbrales: {THRESHOLD_WARNING}/{THRESHOLD_CRITICAL} ms)"),
        ]))


def init_profiling(app):
    """
    Registra before_request/after_request para medir cada ruta.

    Uso:
        from smartpack.performance_logger import init_profiling
        init_profiling(app)
    """
    if not ENABLE_PROFILING:
        return

    from flask import g, request, session

    @app.before_request
    def _start_timer():
        g.profiling_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.pop('profiling_started', None)
        if started is not None and not request.path.startswith('/static'):
            log_route(
                request.method,
                request.path,
                str(request.url_rule) if request.url_rule else None,
                (time.perf_counter() - started) * 1000,
                session.get(config.STORAGE_PREFIX + 'email'),
            )
        return response


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ LLAMADAS A LA API REST
# ═══════════════════════════════════════════════════════════════════════════

def profile_api_call(method, path, time_ms, status_code):
    """
    Registra una llamada al backend REST.

    Todas suman a las estadísticas; a api_calls.log solo van las lentas y
    las fallidas (status >= 400, o 0 si no hubo respuesta).
    """
    if not ENABLE_PROFILING:
        return

    failed = not status_code or status_code >= 400
    _record(_api_stats, f"{method} {path}", time_ms, failed=failed)

    severity = _severity(time_ms)
    if failed or severity:
        emoji = '❌' if failed else severity[0]
        _append(API_CALLS_LOG, _block(f"{emoji} [API]", [
            ('Llamada', f"{method} {path}"),
            ('Status', status_code or 'sin respuesta'),
            ('Tiempo', f"{time_ms:.0f} ms"),
        ]))


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ FUNCIONES CLAVE (decorador)
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Mide una función de servicio.

    Uso:
        @profile_function
        def visible_users(...): ...

        @profile_function(name="Guardar asignaciones de bodega")
        def save(...): ...
    """
    def decorator(fn):
        if not ENABLE_PROFILING:
            return fn

        label = name or fn.__qualname__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed = (time.perf_counter() - started) * 1000
                _record(_function_stats, label, elapsed)
                severity = _severity(elapsed)
                if severity:
                    _append(SLOW_FUNCTIONS_LOG, _block(f"{severity[0]} [{severity[1]}]", [
                        ('Función', label), ('Tiempo', f"{elapsed:.0f} ms"),
                    ]))

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
# 4️⃣ ESTADÍSTICAS Y REPORTE
# ═══════════════════════════════════════════════════════════════════════════

def _summary(stats_table):
    with _stats_lock:
        rows = {}
        for key, stats in stats_table.items():
            row = {
                'calls': stats['calls'],
                'avg_time': round(stats['total_time'] / stats['calls'], 2) if stats['calls'] else 0,
                'max_time': round(stats['max_time'], 2),
            }
            if 'errors' in stats:
                row['errors'] = stats['errors']
            rows[key] = row
        return rows


def get_function_stats():
    """{nombre: {calls, avg_time, max_time}} de las funciones perfiladas."""
    return _summary(_function_stats)


def get_api_stats():
    """{'GET /areas': {calls, errors, avg_time, max_time}}"""
    return _summary(_api_stats)


def write_function_stats_report():
    """Vuelca funciones y endpoints, del más lento al más rápido, en slow_functions.log"""
    if not ENABLE_PROFILING:
        return

    rows = {**get_function_stats(), **get_api_stats()}
    if not rows:
        return

    parts = [_block('📊 [REPORTE DE RENDIMIENTO]', [('Entradas', len(rows))])]
    for key, data in sorted(rows.items(), key=lambda kv: kv[1]['avg_time'], reverse=True):
        severity = _severity(data['avg_time'])
        if severity:
            key = f"{key} {severity[0]} {severity[1]}"
        elif data['max_time'] >= THRESHOLD_CRITICAL:
            key = f"{key} ⚡ PICOS ALTOS"
        fields = [('Llamadas', data['calls'])]
        if 'errors' in data:
            fields.append(('Errores', data['errors']))
        fields += [('Promedio', f"{data['avg_time']:.0f} ms"),
                   ('Máximo', f"{data['max_time']:.0f} ms")]
        parts.append('\n'.join(f"│ {line}" for line in
                               [key] + [f"{label}: {value}" for label, value in fields]))
    _append(SLOW_FUNCTIONS_LOG, '\n'.join(parts) + '\n')


def reset_stats():
    with _stats_lock:
        _function_stats.clear()
        _api_stats.clear()


__all__ = [
    'ENABLE_PROFILING',
    'init_profiling',
    'log_route',
    'profile_function',
    'profile_api_call',
    'get_function_stats',
    'get_api_stats',
    'write_function_stats_report',
    'reset_stats',
]

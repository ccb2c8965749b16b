from flask import Flask, request, session, g
from functools import wraps
from werkzeug.exceptions import Forbidden, HTTPException
import logging
import atexit

from smartpack import config

# Sistema de profiling interno
from smartpack.performance_logger import init_profiling, write_function_stats_report

# ═══════════════════════════════════════════════════════════════════════════
# CONTENEDOR DE DEPENDENCIAS - Servicios y Repositorios
# ═══════════════════════════════════════════════════════════════════════════
# Las rutas solo orquestan request → servicio → response.
# La lógica de negocio vive en services/, el acceso a la API en repositories/.
# ═══════════════════════════════════════════════════════════════════════════
from smartpack.app_container import get_container

from smartpack.models.permissions import has_permission
from smartpack.models.result import MutationError
from smartpack.models.validators import ValidationError
from smartpack.repositories.api_client import ApiError, SessionExpiredError
from smartpack.services import (
    AreaNotFoundError,
    LeafAreaRequiredError,
    RoleEscalationError,
    UniquenessConflictError,
    UserNotFoundError,
    WarehouseNotFoundError,
)
from smartpack.session_manager import SESSION_EXPIRED_EVENT, SessionManager

logger = logging.getLogger(__name__)

app = Flask(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# INICIALIZAR SISTEMA DE PROFILING
# ═══════════════════════════════════════════════════════════════════════════
# Mide rendimiento de rutas, llamadas a la API y funciones. Logs en logs/
# Para desactivar: ENABLE_PROFILING=0
init_profiling(app)


@atexit.register
def _write_stats_report():
    write_function_stats_report()


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN DE SESIONES
# ═══════════════════════════════════════════════════════════════════════════════
# SECRET_KEY: En producción DEBE definirse via variable de entorno
# Comando: export SMARTPACK_SECRET_KEY="tu_clave_secreta_muy_larga_y_aleatoria"
if config.PRODUCTION_MODE and config.SECRET_KEY == config._DEFAULT_SECRET:
    logger.warning("⚠️ PRODUCTION_MODE activo sin SMARTPACK_SECRET_KEY definida")

app.secret_key = config.SECRET_KEY

app.config.update(
    SESSION_COOKIE_HTTPONLY=True,      # Protege contra XSS
    SESSION_COOKIE_SECURE=config.PRODUCTION_MODE,
    SESSION_COOKIE_SAMESITE='Lax',     # Protección CSRF básica
    PERMANENT_SESSION_LIFETIME=86400,  # 24 horas
)


def _on_session_expired(payload):
    logger.warning("🔒 Evento %s (%s)", SESSION_EXPIRED_EVENT, payload.get("path"))


SessionManager.get_instance().on(SESSION_EXPIRED_EVENT, _on_session_expired)


# ═══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def container():
    return get_container()


def to_int(v, default=None):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _body():
    return request.get_json(silent=True) or {}


def _error(message, status, **extra):
    payload = {"ok": False, "error": message}
    payload.update(extra)
    return payload, status


def _ok(**data):
    return {"ok": True, **data}


def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        auth = container().auth_service
        actor = auth.current_actor() if auth.is_authenticated() else None
        if actor is None:
            return _error("Debes iniciar sesión.", 401, redirect=config.LOGIN_PATH)
        g.actor = actor
        return f(*args, **kwargs)
    return wrapper


def permission_required(permission):
    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not has_permission(g.actor.role, permission):
                raise Forbidden(f"Permiso denegado ({permission})")
            return f(*args, **kwargs)
        return wrapper
    return deco


# ═══════════════════════════════════════════════════════════════════════════════
# MANEJO DE ERRORES
# ═══════════════════════════════════════════════════════════════════════════════

@app.errorhandler(ValidationError)
def handle_validation_error(e):
    return _error(str(e), 400, fields=e.errors)


@app.errorhandler(UniquenessConflictError)
def handle_uniqueness_conflict(e):
    return _error(str(e), 409, fields=e.errors)


@app.errorhandler(RoleEscalationError)
def handle_role_escalation(e):
    return _error(str(e), 403)


@app.errorhandler(LeafAreaRequiredError)
def handle_leaf_area_required(e):
    return _error(str(e), 422)


@app.errorhandler(MutationError)
def handle_mutation_error(e):
    return _error(str(e), 400)


@app.errorhandler(AreaNotFoundError)
@app.errorhandler(UserNotFoundError)
@app.errorhandler(WarehouseNotFoundError)
def handle_not_found(e):
    return _error(str(e), 404)


@app.errorhandler(SessionExpiredError)
def handle_session_expired(e):
    session.clear()
    return _error(e.message, 401, redirect=e.redirect_to, delayMs=e.delay_ms)


@app.errorhandler(ApiError)
def handle_api_error(e):
    return _error(e.message, e.status_code or 502, statusCode=e.status_code, code=e.error)


@app.errorhandler(HTTPException)
def handle_http_exception(e):
    return _error(e.description, e.code)


@app.after_request
def mark_navigation(response):
    # Una respuesta exitosa habilita una nueva redirección por sesión expirada
    if response.status_code < 400:
        container().session_manager.mark_navigation_complete()
    return response


@app.after_request
def set_security_headers(response):
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
    if request.is_secure:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


# ═══════════════════════════════════════════════════════════════════════════════
# AUTENTICACIÓN
# ═══════════════════════════════════════════════════════════════════════════════

@app.route("/api/auth/login", methods=["POST"])
def api_login():
    data = _body()
    user = container().auth_service.login(data.get("email"), data.get("password"))
    return _ok(user=user.to_dict())


@app.route("/api/auth/logout", methods=["POST"])
def api_logout():
    container().auth_service.logout()
    session.clear()
    return _ok()


@app.route("/api/auth/me", methods=["GET"])
@login_required
def api_me():
    user = container().auth_service.current_user()
    if user is None:
        return _ok(user=container().auth_service.session_user())
    return _ok(user=user.to_dict())


# ═══════════════════════════════════════════════════════════════════════════════
# ÁREAS
# ═══════════════════════════════════════════════════════════════════════════════

@app.route("/api/areas", methods=["GET"])
@login_required
@permission_required("areas.view")
def api_list_areas():
    include_inactive = request.args.get("includeInactive") in ("1", "true")
    areas = container().visibility_service.visible_areas(g.actor, include_inactive)
    return _ok(areas=[a.to_dict() for a in areas])


@app.route("/api/areas/tree", methods=["GET"])
@login_required
@permission_required("areas.view")
def api_area_tree():
    include_inactive = request.args.get("includeInactive") in ("1", "true")
    areas = container().visibility_service.visible_areas(g.actor, include_inactive)
    tree = container().area_service.get_tree(areas)
    return _ok(tree=[a.to_dict() for a in tree])


@app.route("/api/areas", methods=["POST"])
@login_required
@permission_required("areas.create")
def api_create_area():
    area = container().area_service.create_area(_body())
    return _ok(area=area.to_dict()), 201


@app.route("/api/areas/<area_id>", methods=["GET"])
@login_required
@permission_required("areas.view")
def api_get_area(area_id):
    area = container().area_service.get_area(area_id)
    if area is None:
        return _error("Área no encontrada", 404)
    return _ok(area=area.to_dict())


@app.route("/api/areas/<area_id>", methods=["PUT"])
@login_required
@permission_required("areas.edit")
def api_update_area(area_id):
    area = container().area_service.update_area(area_id, _body())
    return _ok(area=area.to_dict())


@app.route("/api/areas/<area_id>/manager-candidates", methods=["GET"])
@login_required
@permission_required("areas.edit")
def api_manager_candidates(area_id):
    users = container().visibility_service.manager_candidates(g.actor, area_id)
    return _ok(users=[u.to_dict() for u in users])


def _require_area_scope(area_id):
    if not container().visibility_service.can_manage_area(g.actor, area_id):
        raise Forbidden("No tienes acceso a esta área")


def _require_warehouse_scope(warehouse_id, allow_unassigned=False):
    """Un JEFE solo toca bodegas de sus áreas (o sin área, al asignarlas)."""
    if g.actor.is_admin:
        return
    warehouse = container().warehouse_service.get_warehouse(warehouse_id)
    if warehouse is None:
        raise WarehouseNotFoundError(f"Bodega {warehouse_id} no encontrada")
    if allow_unassigned and not warehouse.area_id:
        return
    if not container().visibility_service.can_manage_warehouse(g.actor, warehouse):
        raise Forbidden("No tienes acceso a esta bodega")


@app.route("/api/areas/<area_id>/managers", methods=["POST"])
@login_required
@permission_required("areas.edit")
def api_assign_manager(area_id):
    _require_area_scope(area_id)
    manager_id = _body().get("managerId")
    if not manager_id:
        raise ValidationError({"managerId": "Debe seleccionar un jefe"})
    result = container().area_service.assign_manager(area_id, manager_id)
    return _ok(message="Jefe asignado correctamente", result=result)


@app.route("/api/areas/<area_id>/managers/<manager_id>", methods=["DELETE"])
@login_required
@permission_required("areas.edit")
def api_remove_manager(area_id, manager_id):
    _require_area_scope(area_id)
    container().area_service.remove_manager(area_id, manager_id)
    return _ok(message="Jefe removido correctamente")


@app.route("/api/areas/<area_id>/warehouses", methods=["POST"])
@login_required
@permission_required("areas.edit")
def api_assign_warehouse(area_id):
    _require_area_scope(area_id)
    warehouse_id = _body().get("warehouseId")
    if warehouse_id:
        _require_warehouse_scope(warehouse_id, allow_unassigned=True)
    result = container().area_service.assign_warehouse(area_id, warehouse_id)
    return _ok(message="Bodega asignada correctamente", result=result)


@app.route("/api/areas/<area_id>/warehouses/<warehouse_id>", methods=["DELETE"])
@login_required
@permission_required("areas.edit")
def api_remove_warehouse(area_id, warehouse_id):
    _require_area_scope(area_id)
    container().area_service.remove_warehouse(area_id, warehouse_id)
    return _ok(message="Bodega removida correctamente")


# ═══════════════════════════════════════════════════════════════════════════════
# BODEGAS
# ═══════════════════════════════════════════════════════════════════════════════

@app.route("/api/warehouses", methods=["GET"])
@login_required
@permission_required("warehouses.view")
def api_list_warehouses():
    include_inactive = request.args.get("includeInactive") in ("1", "true")
    warehouses = container().visibility_service.visible_warehouses(g.actor, include_inactive)
    return _ok(warehouses=[w.to_dict() for w in warehouses])


@app.route("/api/warehouses", methods=["POST"])
@login_required
@permission_required("warehouses.create")
def api_create_warehouse():
    warehouse = container().warehouse_service.create_warehouse(_body())
    return _ok(warehouse=warehouse.to_dict()), 201


@app.route("/api/warehouses/supervisor-candidates", methods=["GET"])
@login_required
@permission_required("warehouses.edit")
def api_supervisor_candidates():
    users = container().visibility_service.supervisor_candidates(g.actor)
    return _ok(users=[u.to_dict() for u in users])


@app.route("/api/warehouses/<warehouse_id>", methods=["GET"])
@login_required
@permission_required("warehouses.view")
def api_get_warehouse(warehouse_id):
    warehouse = container().warehouse_service.get_warehouse(warehouse_id)
    if warehouse is None:
        return _error("Bodega no encontrada", 404)
    return _ok(warehouse=warehouse.to_dict())


@app.route("/api/warehouses/<warehouse_id>", methods=["PUT"])
@login_required
@permission_required("warehouses.edit")
def api_update_warehouse(warehouse_id):
    _require_warehouse_scope(warehouse_id)
    warehouse = container().warehouse_service.update_warehouse(warehouse_id, _body())
    return _ok(warehouse=warehouse.to_dict())


@app.route("/api/warehouses/<warehouse_id>/supervisors", methods=["GET"])
@login_required
@permission_required("warehouses.view")
def api_warehouse_supervisors(warehouse_id):
    supervisors = container().warehouse_service.supervisors(warehouse_id)
    return _ok(supervisors=[s.to_dict() for s in supervisors])


@app.route("/api/warehouses/<warehouse_id>/assignments", methods=["PUT"])
@login_required
@permission_required("warehouses.edit")
def api_save_warehouse_assignments(warehouse_id):
    data = _body()
    report = container().warehouse_assignments_service.save(
        g.actor,
        warehouse_id,
        area_id=data.get("areaId"),
        supervisor_ids=data.get("supervisorIds") or [],
        current_area_assignment_id=data.get("currentAreaAssignmentId"),
    )
    return _ok(report=report.to_dict())


# ═══════════════════════════════════════════════════════════════════════════════
# USUARIOS
# ═══════════════════════════════════════════════════════════════════════════════

@app.route("/api/users", methods=["GET"])
@login_required
@permission_required("users.view")
def api_list_users():
    users = container().visibility_service.visible_users(g.actor)
    return _ok(users=[u.to_dict() for u in users])


@app.route("/api/users", methods=["POST"])
@login_required
@permission_required("users.create")
def api_create_user():
    user, report = container().user_service.create_user(g.actor, _body())
    return _ok(user=user.to_dict(), report=report.to_dict()), 201


@app.route("/api/users/validate-unique", methods=["POST"])
@login_required
@permission_required("users.create")
def api_validate_unique():
    data = _body()
    result = container().user_service.validate_unique(
        rut=data.get("rut"), email=data.get("email"),
        exclude_user_id=data.get("excludeUserId"),
    )
    return _ok(**result)


@app.route("/api/users/<user_id>", methods=["GET"])
@login_required
@permission_required("users.view")
def api_get_user(user_id):
    user = container().user_service.get_user(user_id)
    if user is None:
        return _error("Usuario no encontrado", 404)
    return _ok(user=user.to_dict())


@app.route("/api/users/<user_id>", methods=["PUT"])
@login_required
@permission_required("users.edit")
def api_update_user(user_id):
    user, report = container().user_service.update_user(g.actor, user_id, _body())
    return _ok(user=user.to_dict(), report=report.to_dict() if report else None)


@app.route("/api/users/<user_id>/status", methods=["PATCH"])
@login_required
@permission_required("users.edit")
def api_toggle_user_status(user_id):
    data = _body()
    result = container().user_service.toggle_status(
        g.actor, user_id, new_status=data.get("status"), reason=data.get("reason")
    )
    user = result.unwrap()
    message = ("Usuario habilitado correctamente" if user.is_enabled
               else "Usuario deshabilitado correctamente")
    return _ok(user=user.to_dict(), message=message)


@app.route("/api/users/<user_id>/assignments", methods=["PUT"])
@login_required
@permission_required("users.edit")
def api_sync_user_assignments(user_id):
    data = _body()
    service = container().user_service
    target = service.get_user(user_id)
    if target is None:
        return _error("Usuario no encontrado", 404)
    role = container().visibility_service.ensure_can_manage_user(g.actor, target)
    report = service.sync_assignments(
        g.actor, target, role,
        areas=list(data.get("areas", target.areas) or []),
        warehouses=list(data.get("warehouses", target.warehouses) or []),
        previous_areas=list(target.areas),
        previous_warehouses=list(target.warehouses),
    )
    return _ok(report=report.to_dict())


@app.route("/api/users/<user_id>/enablement-history", methods=["GET"])
@login_required
@permission_required("users.view")
def api_user_enablement_history(user_id):
    page = to_int(request.args.get("page"), 1)
    limit = to_int(request.args.get("limit"))
    result = container().user_service.enablement_history(user_id, page, limit)
    return _ok(**result.to_dict())


@app.route("/api/users/<user_id>/assignment-history", methods=["GET"])
@login_required
@permission_required("users.view")
def api_user_assignment_history(user_id):
    entries = container().user_service.assignment_history(user_id)
    return _ok(history=[e.to_dict() for e in entries])


@app.route("/api/enablement-history", methods=["GET"])
@login_required
@permission_required("users.view")
def api_enablement_history():
    filters = request.args.to_dict()
    for key in ("page", "limit"):
        if key in filters:
            filters[key] = to_int(filters[key])
    result = container().history_service.enablement_history(filters)
    return _ok(**result.to_dict())


# ═══════════════════════════════════════════════════════════════════════════════
# AUDITORÍA
# ═══════════════════════════════════════════════════════════════════════════════

@app.route("/api/audit-logs", methods=["GET"])
@login_required
@permission_required("users.view")
def api_audit_logs():
    filters = request.args.to_dict()
    for key in ("limit", "offset"):
        if key in filters:
            filters[key] = to_int(filters[key])
    logs = container().history_service.audit_logs(filters)
    return _ok(logs=[entry.to_dict() for entry in logs])


# ═══════════════════════════════════════════════════════════════════════════════
# CAJAS
# ═══════════════════════════════════════════════════════════════════════════════

@app.route("/api/boxes", methods=["GET"])
@login_required
@permission_required("boxes.view")
def api_list_boxes():
    result = container().box_service.list_boxes(
        page=to_int(request.args.get("page"), 1),
        limit=to_int(request.args.get("limit"), 20),
        search=request.args.get("search"),
        status=request.args.get("status"),
        warehouse_id=request.args.get("warehouseId"),
    )
    return _ok(**result.to_dict())


@app.route("/api/boxes/qr/<qr_code>", methods=["GET"])
@login_required
@permission_required("boxes.view")
def api_box_by_qr(qr_code):
    box = container().box_service.find_by_qr(qr_code)
    if box is None:
        return _error("Caja no encontrada", 404)
    return _ok(box=box.to_dict())


@app.route("/api/boxes/<box_id>", methods=["GET"])
@login_required
@permission_required("boxes.view")
def api_get_box(box_id):
    box = container().box_service.get_box(box_id)
    if box is None:
        return _error("Caja no encontrada", 404)
    return _ok(box=box.to_dict())


@app.route("/api/boxes/<box_id>/move", methods=["PATCH"])
@login_required
@permission_required("boxes.edit")
def api_move_box(box_id):
    data = _body()
    box = container().box_service.move_box(box_id, data.get("warehouseId"), data.get("reason"))
    return _ok(box=box.to_dict())


@app.route("/api/boxes/<box_id>/status", methods=["PATCH"])
@login_required
@permission_required("boxes.edit")
def api_change_box_status(box_id):
    box = container().box_service.change_status(box_id, _body().get("status"))
    return _ok(box=box.to_dict())


# ═══════════════════════════════════════════════════════════════════════════════
# PRODUCTOS
# ═══════════════════════════════════════════════════════════════════════════════

@app.route("/api/products", methods=["GET"])
@login_required
@permission_required("products.view")
def api_list_products():
    products = container().product_service.list_products(kind=request.args.get("kind"))
    return _ok(products=[p.to_dict() for p in products])


@app.route("/api/products", methods=["POST"])
@login_required
@permission_required("products.create")
def api_create_product():
    product = container().product_service.create_product(_body())
    return _ok(product=product.to_dict()), 201


@app.route("/api/products/<product_id>", methods=["GET"])
@login_required
@permission_required("products.view")
def api_get_product(product_id):
    product = container().product_service.get_product(product_id)
    if product is None:
        return _error("Producto no encontrado", 404)
    return _ok(product=product.to_dict())


@app.route("/api/products/<product_id>", methods=["PUT", "PATCH"])
@login_required
@permission_required("products.edit")
def api_update_product(product_id):
    product = container().product_service.update_product(product_id, _body())
    return _ok(product=product.to_dict())


if __name__ == "__main__":
    import os
    # Configuración para desarrollo local
    # En producción usar WSGI (gunicorn, waitress, etc.)
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))

    logging.basicConfig(level=logging.DEBUG if DEBUG else logging.INFO)
    if not DEBUG:
        print(f"\n{'='*50}")
        print(f"  Panel SmartPack en http://{HOST}:{PORT}")
        print(f"  API REST: {config.API_URL}")
        print(f"{'='*50}\n")

    app.run(host=HOST, port=PORT, debug=DEBUG)

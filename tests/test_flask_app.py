# -*- coding: utf-8 -*-
"""
API JSON del panel: login, permisos, errores y cabeceras de seguridad
"""
import pytest

from conftest import API, FakeHttpSession, FakeResponse, area_dto, user_dto, warehouse_dto
from smartpack.app_container import AppContainer
from smartpack.repositories.api_client import ApiClient
from smartpack.session_manager import SessionManager

from smartpack.main import app


@pytest.fixture
def http():
    http = FakeHttpSession()
    http.add('POST', '/auth/login', {'token': 'jwt-1', 'user': {'id': 'u0'}})
    http.add('GET', '/users/me', user_dto('u0', 'Admin', 'Demo', 'ADMIN'))
    http.add('GET', '/areas', [area_dto('a1', 'Norte'), area_dto('a3', 'Padre'),
                               area_dto('a4', 'Hija', 1, 'a3')])
    http.add('GET', '/areas/a3', area_dto('a3', 'Padre'))
    return http


@pytest.fixture
def client(http):
    manager = SessionManager(grace_seconds=0)
    manager.init()
    SessionManager._instance = manager
    AppContainer(client=ApiClient(base_url=API, session=http))
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


def login(client, http, role='ADMIN', **extra):
    http.add('GET', '/users/me', user_dto('u0', 'Admin', 'Demo', role, **extra))
    response = client.post('/api/auth/login',
                           json={'email': 'admin@kreatech.cl', 'password': 'secreto'})
    assert response.status_code == 200
    return response


# ═══════════════════════════════════════════════════════════════════════════════
# SESIÓN
# ═══════════════════════════════════════════════════════════════════════════════

def test_login_then_me(client, http):
    response = login(client, http)
    assert response.get_json()['user']['role'] == 'ADMIN'

    me = client.get('/api/auth/me').get_json()
    assert me['ok'] is True
    assert me['user']['email'] == 'admin@kreatech.cl'
    assert http.calls_to('POST', '/auth/login')[0]['headers'].get('Authorization') is None
    assert http.calls_to('GET', '/users/me')[-1]['headers']['Authorization'] == 'Bearer jwt-1'


def test_routes_require_login(client):
    response = client.get('/api/areas')
    assert response.status_code == 401
    assert response.get_json() == {'ok': False, 'error': 'Debes iniciar sesión.',
                                   'redirect': '/login'}


def test_login_without_credentials_is_a_field_error(client, http):
    response = client.post('/api/auth/login', json={})
    assert response.status_code == 400
    assert set(response.get_json()['fields']) == {'email', 'password'}
    assert http.calls == []


def test_logout_clears_the_session(client, http):
    login(client, http)
    assert client.post('/api/auth/logout').status_code == 200
    assert client.get('/api/auth/me').status_code == 401


def test_backend_401_redirects_to_login(client, http):
    login(client, http)
    http.add('GET', '/areas', {'message': 'Unauthorized'}, status=401)

    response = client.get('/api/areas')

    assert response.status_code == 401
    body = response.get_json()
    assert body['redirect'] == '/login'
    assert body['delayMs'] == 1500
    assert client.get('/api/auth/me').status_code == 401


def test_backend_401_redirects_every_open_session(client, http):
    login(client, http)
    other = app.test_client()
    login(other, http)
    http.add('GET', '/areas', {'message': 'Unauthorized'}, status=401)

    first = client.get('/api/areas')
    second = other.get('/api/areas')

    assert first.status_code == 401
    assert first.get_json()['redirect'] == '/login'
    assert second.status_code == 401
    assert second.get_json()['redirect'] == '/login'
    assert other.get('/api/auth/me').status_code == 401
    assert client.get('/api/auth/me').status_code == 401


def test_wrong_password_is_not_a_session_expiry(client, http):
    http.add('POST', '/auth/login', {'message': 'Credenciales inválidas'}, status=401)
    response = client.post('/api/auth/login',
                           json={'email': 'admin@kreatech.cl', 'password': 'malo'})
    assert response.status_code == 401
    body = response.get_json()
    assert body['error'] == 'Credenciales inválidas'
    assert 'redirect' not in body


def test_security_headers(client):
    response = client.get('/api/auth/me')
    assert response.headers['X-Frame-Options'] == 'DENY'
    assert response.headers['X-Content-Type-Options'] == 'nosniff'
    assert 'Strict-Transport-Security' not in response.headers


# ═══════════════════════════════════════════════════════════════════════════════
# PERMISOS Y ERRORES DE DOMINIO
# ═══════════════════════════════════════════════════════════════════════════════

def test_supervisor_cannot_create_areas(client, http):
    login(client, http, role='SUPERVISOR')
    response = client.post('/api/areas', json={'name': 'Nueva'})
    assert response.status_code == 403
    assert http.calls_to('POST', '/areas') == []


def test_non_leaf_area_rejects_warehouse_without_calling_backend(client, http):
    login(client, http)
    response = client.post('/api/areas/a3/warehouses', json={'warehouseId': 'w1'})
    assert response.status_code == 422
    assert http.calls_to('POST', '/areas/a3/warehouses') == []


def test_jefe_outside_area_scope_is_forbidden(client, http):
    login(client, http, role='JEFE_AREA', areas=['a1'])
    response = client.post('/api/areas/a3/managers', json={'managerId': 'u7'})
    assert response.status_code == 403


def test_invalid_user_form_returns_fields(client, http):
    login(client, http)
    response = client.post('/api/users', json={'name': 'A', 'email': 'no-es-email',
                                               'role': 'SUPERVISOR'})
    assert response.status_code == 400
    fields = response.get_json()['fields']
    assert {'name', 'lastName', 'email', 'rut'} <= set(fields)
    assert http.calls_to('POST', '/users') == []


def test_backend_error_keeps_its_status(client, http):
    login(client, http)
    http.add('PUT', '/areas/a1', {'message': 'Nombre duplicado', 'error': 'Conflict'},
             status=409)
    response = client.put('/api/areas/a1', json={'name': 'Norte'})
    assert response.status_code == 409
    assert response.get_json()['error'] == 'Nombre duplicado'


# ═══════════════════════════════════════════════════════════════════════════════
# ASIGNACIONES DE BODEGA
# ═══════════════════════════════════════════════════════════════════════════════

def test_save_warehouse_assignments_returns_report(client, http):
    login(client, http)
    http.add('GET', '/warehouses/w1', warehouse_dto('w1', 'Bodega Central', area_id='a1'))
    http.add('GET', '/warehouses/w1/supervisors', [])
    http.add('GET', '/users', [user_dto('s1', 'Sofía', 'Rojas', 'SUPERVISOR')])
    http.add('POST', '/warehouses/w1/supervisors', {'id': 'as1'}, status=201)

    response = client.put('/api/warehouses/w1/assignments',
                          json={'areaId': 'a1', 'supervisorIds': ['s1']})

    assert response.status_code == 200
    report = response.get_json()['report']
    assert report['title'] == '✅ Asignaciones actualizadas'
    assert report['supervisorsChanged'] is True
    assert report['areaChanged'] is False
    assert report['errors'] == []
    assert http.calls_to('POST', '/warehouses/w1/supervisors')[0]['json'] == {
        'supervisorId': 's1'}


def test_jefe_cannot_save_a_warehouse_of_another_area(client, http):
    login(client, http, role='JEFE_AREA', areas=['a1'])
    http.add('GET', '/warehouses/w9', warehouse_dto('w9', 'Bodega Puerto', area_id='a3'))
    http.add('GET', '/warehouses/w9/supervisors', [])

    response = client.put('/api/warehouses/w9/assignments',
                          json={'areaId': 'a1', 'supervisorIds': []})

    assert response.status_code == 403
    assert [c for c in http.calls if c['method'] in ('POST', 'PUT', 'PATCH', 'DELETE')
            and c['path'] != '/auth/login'] == []


# ═══════════════════════════════════════════════════════════════════════════════
# ALCANCE SOBRE USUARIOS
# ═══════════════════════════════════════════════════════════════════════════════

def test_jefe_cannot_disable_an_admin(client, http):
    login(client, http, role='JEFE_AREA', areas=['a1'])
    http.add('GET', '/users/u9', user_dto('u9', 'Root', 'Admin', 'ADMIN'))

    response = client.patch('/api/users/u9/status', json={'status': 'DESHABILITADO'})

    assert response.status_code == 403
    assert http.calls_to('PUT', '/users/u9') == []


def test_jefe_cannot_resync_a_user_outside_its_areas(client, http):
    login(client, http, role='JEFE_AREA', areas=['a1'])
    http.add('GET', '/users/s9', user_dto('s9', 'Pia', 'Soto', 'SUPERVISOR',
                                          warehouses=['w9']))
    http.add('GET', '/users/area/a1', [])

    response = client.put('/api/users/s9/assignments', json={'warehouses': []})

    assert response.status_code == 403
    assert http.calls_to('GET', '/assignments') == []


# ═══════════════════════════════════════════════════════════════════════════════
# PRODUCTOS
# ═══════════════════════════════════════════════════════════════════════════════

def test_supervisor_creates_a_product(client, http):
    login(client, http, role='SUPERVISOR')
    http.add_handler('POST', '/products', lambda json: FakeResponse(201, dict(json, id='p1')))

    response = client.post('/api/products', json={
        'name': 'Taladro', 'kind': 'EQUIPMENT', 'model': 'TX-1',
        'currencyId': 'cur-clp', 'monetaryValue': '99990'})

    assert response.status_code == 201
    assert response.get_json()['product']['kind'] == 'EQUIPMENT'


def test_product_form_errors_and_unknown_product(client, http):
    login(client, http)
    response = client.post('/api/products', json={'kind': 'MATERIAL'})
    assert response.status_code == 400
    assert {'name', 'unitOfMeasureId', 'currencyId', 'monetaryValue'} <= set(
        response.get_json()['fields'])
    assert http.calls_to('POST', '/products') == []

    assert client.get('/api/products/p404').status_code == 404

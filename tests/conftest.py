# -*- coding: utf-8 -*-
"""
Fixtures compartidas: backend REST falso, cliente falso y reinicio de singletons.
"""
import os
import sys
import threading

# Sin archivos de profiling durante las pruebas
os.environ['ENABLE_PROFILING'] = '0'

# Asegurar que el proyecto esté en el path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from smartpack.app_container import AppContainer
from smartpack.cache.query_cache import QueryCache
from smartpack.repositories.api_client import ApiError
from smartpack.session_manager import MemoryTokenStore, SessionManager

API = 'http://api.test'


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP FALSO (reemplaza requests.Session)
# ═══════════════════════════════════════════════════════════════════════════════

class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ''
        has_body = payload is not None or bool(text)
        self.content = b'{}' if has_body else b''

    def json(self):
        if self._payload is None:
            raise ValueError('No JSON object could be decoded')
        return self._payload


class FakeHttpSession:
    """
    Responde por (método, path). Una respuesta puede ser FakeResponse o
    una función (json) -> FakeResponse.
    """

    def __init__(self, base_url=API):
        self.base_url = base_url
        self.routes = {}
        self.calls = []
        self._lock = threading.Lock()

    def add(self, method, path, payload=None, status=200, text=None):
        self.routes[(method, path)] = FakeResponse(status, payload, text)

    def add_handler(self, method, path, handler):
        self.routes[(method, path)] = handler

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = url[len(self.base_url):]
        with self._lock:
            self.calls.append({'method': method, 'path': path, 'params': params,
                               'json': json, 'headers': headers or {}})
        response = self.routes.get((method, path))
        if response is None:
            return FakeResponse(404, {'message': 'Not Found', 'error': 'Not Found'})
        if callable(response):
            return response(json)
        return response

    def calls_to(self, method, path=None):
        return [c for c in self.calls
                if c['method'] == method and (path is None or c['path'] == path)]


# ═══════════════════════════════════════════════════════════════════════════════
# CLIENTE FALSO (misma interfaz que ApiClient)
# ═══════════════════════════════════════════════════════════════════════════════

class FakeApiClient:
    """
    Responde por (método, path) sin pasar por HTTP.

    Una respuesta puede ser un valor, una excepción (se lanza) o una
    función (json) -> valor.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self.token_store = MemoryTokenStore('tok')
        self.session_manager = SessionManager(token_store=self.token_store)
        self._lock = threading.Lock()

    def request(self, method, path, params=None, json=None, auth=True):
        with self._lock:
            self.calls.append((method, path, json))
        response = self.responses.get((method, path))
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(json)
        return response

    def get(self, path, params=None, auth=True):
        return self.request('GET', path, params=params, auth=auth)

    def post(self, path, json=None, auth=True):
        return self.request('POST', path, json=json, auth=auth)

    def put(self, path, json=None, auth=True):
        return self.request('PUT', path, json=json, auth=auth)

    def patch(self, path, json=None, auth=True):
        return self.request('PATCH', path, json=json, auth=auth)

    def delete(self, path, auth=True):
        return self.request('DELETE', path, auth=auth)

    def writes(self):
        return [c for c in self.calls if c[0] != 'GET']


def api_error(status=400, message='Bad Request'):
    return ApiError(message, status, 'Bad Request')


@pytest.fixture(autouse=True)
def reset_singletons():
    SessionManager.reset_instance()
    AppContainer.reset_instance()
    yield
    AppContainer.reset_instance()
    SessionManager.reset_instance()


@pytest.fixture
def fake_client():
    return FakeApiClient()


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def container(fake_client, cache):
    return AppContainer(client=fake_client, cache=cache)


# ═══════════════════════════════════════════════════════════════════════════════
# DATOS DE PRUEBA
# ═══════════════════════════════════════════════════════════════════════════════

def user_dto(id, first, last, role, areas=(), warehouses=(), status='HABILITADO', **extra):
    data = {'id': id, 'firstName': first, 'lastName': last,
            'email': f'{first.lower()}@kreatech.cl', 'role': {'name': role},
            'status': status, 'areas': list(areas), 'warehouses': list(warehouses)}
    data.update(extra)
    return data


def area_dto(id, name, level=0, parent_id=None, status='ACTIVO', **extra):
    data = {'id': id, 'name': name, 'level': level, 'parentId': parent_id, 'status': status}
    data.update(extra)
    return data


def warehouse_dto(id, name, area_id=None, status='ACTIVO'):
    return {'id': id, 'name': name, 'maxCapacityKg': 900, 'areaId': area_id, 'status': status}

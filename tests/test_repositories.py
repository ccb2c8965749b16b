# -*- coding: utf-8 -*-
"""
Repositorios: formas del backend y política de errores lectura/escritura
"""
import pytest

from conftest import api_error, user_dto
from smartpack.models.entities import AssignmentEntityType, AuditAction
from smartpack.models.roles import UserRole
from smartpack.repositories import (
    ApiError,
    AreaRepository,
    AssignmentHistoryRepository,
    AuditLogRepository,
    BoxRepository,
    EnablementHistoryRepository,
    SessionExpiredError,
    UserRepository,
    WarehouseRepository,
)


# ═══════════════════════════════════════════════════════════════════════════════
# LECTURAS
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize('response', [
    [{'id': 'a1', 'name': 'Norte'}],
    {'data': [{'id': 'a1', 'name': 'Norte'}]},
    {'areas': [{'id': 'a1', 'name': 'Norte'}]},
])
def test_list_shapes(fake_client, response):
    fake_client.responses[('GET', '/areas')] = response
    assert [a.id for a in AreaRepository(fake_client).find_all()] == ['a1']


def test_unexpected_list_shape_is_empty(fake_client):
    fake_client.responses[('GET', '/areas')] = {'total': 3}
    assert AreaRepository(fake_client).find_all() == []


def test_failed_reads_degrade_to_empty(fake_client):
    fake_client.responses[('GET', '/warehouses')] = api_error(500, 'Error interno')
    fake_client.responses[('GET', '/warehouses/w1')] = api_error(404, 'No encontrada')
    repo = WarehouseRepository(fake_client)
    assert repo.find_all() == []
    assert repo.find_by_id('w1') is None


def test_session_expiry_escapes_reads(fake_client):
    fake_client.responses[('GET', '/users')] = SessionExpiredError('Unauthorized')
    with pytest.raises(SessionExpiredError):
        UserRepository(fake_client).find_all()


def test_failed_writes_propagate(fake_client):
    fake_client.responses[('PUT', '/areas/a1')] = api_error(400, 'Nombre duplicado')
    with pytest.raises(ApiError) as exc:
        AreaRepository(fake_client).update('a1', {'name': 'Norte'})
    assert exc.value.message == 'Nombre duplicado'


def test_item_wrapped_in_data(fake_client):
    fake_client.responses[('GET', '/users/me')] = {'data': user_dto('u1', 'Ana', 'Pérez', 'ADMIN')}
    me = UserRepository(fake_client).me()
    assert me.full_name == 'Ana Pérez'
    assert me.role == UserRole.ADMIN


# ═══════════════════════════════════════════════════════════════════════════════
# USUARIOS
# ═══════════════════════════════════════════════════════════════════════════════

def test_user_payload_uses_backend_vocabulary(fake_client):
    fake_client.responses[('POST', '/users')] = lambda json: dict(json, id='u9')
    user = UserRepository(fake_client).create({
        'name': 'Luis', 'lastName': 'Mora', 'email': 'luis@kreatech.cl',
        'rut': '12.345.678-5', 'phone': '', 'role': UserRole.JEFE,
        'areas': ['a1'],
    })
    payload = fake_client.calls[0][2]
    assert payload['firstName'] == 'Luis'
    assert payload['role'] == 'JEFE_AREA'
    assert payload['phone'] is None
    assert payload['tenantId'] == 'kreatech-demo'
    assert 'areas' not in payload
    assert user.role == UserRole.JEFE


def test_validate_unique_defaults_to_available(fake_client):
    fake_client.responses[('POST', '/users/validate-unique')] = {'rutAvailable': False}
    result = UserRepository(fake_client).validate_unique(rut='12.345.678-5')
    assert result == {'rutAvailable': False, 'emailAvailable': True, 'isValid': False}
    assert fake_client.calls[0][2] == {'rut': '12.345.678-5'}


# ═══════════════════════════════════════════════════════════════════════════════
# HISTORIALES Y CAJAS
# ═══════════════════════════════════════════════════════════════════════════════

def test_assignment_history_falls_back_to_local_buffer(fake_client):
    fake_client.responses[('POST', '/assignment-history')] = api_error(404, 'Not Found')
    fake_client.responses[('GET', '/assignment-history/user/u1')] = api_error(404, 'Not Found')
    repo = AssignmentHistoryRepository(fake_client)

    entry = repo.create({'userId': 'u1', 'entityId': 'a1', 'entityName': 'Norte',
                         'entityType': 'AREA', 'action': 'ASSIGNED'})
    assert entry.id.startswith('local_')
    history = repo.find_by_user('u1')
    assert [h.entity_name for h in history] == ['Norte']
    assert history[0].entity_type == AssignmentEntityType.AREA
    assert repo.find_by_user('u2') == []


def test_assignment_history_other_errors_propagate_on_write(fake_client):
    fake_client.responses[('POST', '/assignment-history')] = api_error(500, 'Error')
    with pytest.raises(ApiError):
        AssignmentHistoryRepository(fake_client).create({'userId': 'u1'})


def test_audit_log_create_and_filters(fake_client):
    fake_client.responses[('POST', '/audit-logs')] = lambda json: dict(json, id='l1')
    entry = AuditLogRepository(fake_client).create({
        'entityType': 'USER', 'entityId': 'u1', 'action': 'USER_DISABLED',
        'performedBy': 'u0', 'details': {'reason': 'vacaciones'},
    })
    assert entry.action == AuditAction.USER_DISABLED
    assert entry.details == {'reason': 'vacaciones'}


def test_enablement_history_page(fake_client):
    fake_client.responses[('GET', '/users/u1/enablement-history')] = {
        'data': [{'id': 'e1', 'userId': 'u1', 'action': 'DISABLED', 'reason': 'x'}],
        'total': 11, 'page': 2, 'limit': 10,
    }
    page = EnablementHistoryRepository(fake_client).find_by_user('u1', page=2, limit=10)
    assert page.total == 11
    assert page.total_pages == 2
    assert page.has_prev and not page.has_next
    assert page.items[0].reason == 'x'


def test_enablement_history_failure_is_empty_page(fake_client):
    fake_client.responses[('GET', '/enablement-history')] = api_error(500, 'Error')
    page = EnablementHistoryRepository(fake_client).find_all({'page': 3})
    assert page.items == [] and page.page == 3


def test_box_by_unknown_qr_is_none(fake_client):
    fake_client.responses[('GET', '/boxes/qr/QR-404')] = api_error(404, 'Not Found')
    assert BoxRepository(fake_client).find_by_qr('QR-404') is None


def test_box_list_is_paginated(fake_client):
    fake_client.responses[('GET', '/boxes')] = {
        'data': [{'id': 'b1', 'qrCode': 'QR-1', 'status': 'ACTIVA'}], 'total': 1,
    }
    page = BoxRepository(fake_client).find_all(page=1, limit=20)
    assert page.items[0].qr_code == 'QR-1'
    assert page.to_dict()['totalPages'] == 1

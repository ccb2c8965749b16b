# -*- coding: utf-8 -*-
"""
Servicio de usuarios: unicidad, guardia de rol, estado y asignaciones
"""
import pytest

from conftest import api_error, area_dto, user_dto, warehouse_dto
from smartpack.cache.query_keys import UserKeys
from smartpack.models.entities import User
from smartpack.models.roles import UserRole
from smartpack.models.validators import ValidationError
from smartpack.services import (
    Actor,
    InvalidAuthResponseError,
    OutOfScopeError,
    RoleEscalationError,
    UniquenessConflictError,
)

ADMIN = Actor('u0', UserRole.ADMIN, name='Admin Demo')
JEFE = Actor('j1', UserRole.JEFE, area_ids=frozenset({'a1'}))

NEW_SUPERVISOR = {
    'name': 'Luis', 'lastName': 'Mora', 'email': 'Luis@Kreatech.cl',
    'rut': '12.345.678-5', 'phone': '', 'role': 'SUPERVISOR',
}


@pytest.fixture
def backend(fake_client):
    fake_client.responses.update({
        ('POST', '/users/validate-unique'): {},
        ('POST', '/users'): lambda json: dict(json, id='u9'),
        ('GET', '/areas'): [area_dto('a1', 'Norte'), area_dto('a2', 'Sur'),
                            area_dto('a3', 'Centro')],
        ('GET', '/warehouses'): [warehouse_dto('w1', 'Bodega Central'),
                                 warehouse_dto('w2', 'Bodega Puerto')],
        ('GET', '/users/u1'): user_dto('u1', 'Ana', 'Pérez', 'SUPERVISOR'),
        ('POST', '/assignment-history'): lambda json: dict(json, id='h1'),
    })
    return fake_client


def _history_posts(client):
    return [c[2] for c in client.calls if c[:2] == ('POST', '/assignment-history')]


# ═══════════════════════════════════════════════════════════════════════════════
# UNICIDAD
# ═══════════════════════════════════════════════════════════════════════════════

def test_duplicate_rut_and_email_are_field_errors(container, backend):
    backend.responses[('POST', '/users/validate-unique')] = {
        'rutAvailable': False, 'emailAvailable': False,
    }
    with pytest.raises(UniquenessConflictError) as exc:
        container.user_service.ensure_unique('12.345.678-5', 'ana@kreatech.cl')
    assert exc.value.errors == {'rut': 'El RUT ya está registrado',
                                'email': 'El email ya está registrado'}


def test_nothing_to_check_skips_the_round_trip(container, backend):
    container.user_service.ensure_unique()
    assert backend.calls == []


# ═══════════════════════════════════════════════════════════════════════════════
# CREAR
# ═══════════════════════════════════════════════════════════════════════════════

def test_jefe_cannot_create_an_admin(container, backend):
    with pytest.raises(RoleEscalationError):
        container.user_service.create_user(JEFE, dict(NEW_SUPERVISOR, role='ADMIN'))
    assert backend.writes() == []


def test_invalid_form_never_reaches_the_network(container, backend):
    with pytest.raises(ValidationError) as exc:
        container.user_service.create_user(ADMIN, dict(NEW_SUPERVISOR, rut='12.345.678-9'))
    assert 'rut' in exc.value.errors
    assert backend.calls == []


def test_create_supervisor_with_warehouses_reports_the_failed_one(container, backend):
    backend.responses[('POST', '/warehouses/w1/supervisors')] = {'id': 'as1'}
    backend.responses[('POST', '/warehouses/w2/supervisors')] = api_error(500, 'Error interno')

    user, report = container.user_service.create_user(
        ADMIN, dict(NEW_SUPERVISOR, warehouses=['w1', 'w2']))

    assert user.id == 'u9'
    assert user.role == UserRole.SUPERVISOR
    payload = [c[2] for c in backend.calls if c[:2] == ('POST', '/users')][0]
    assert payload['email'] == 'luis@kreatech.cl'
    assert payload['role'] == 'SUPERVISOR'

    assert report.errors == ['No se pudo asignar la bodega Bodega Puerto']
    assert report.title == '⚠️ Completado con errores'
    assert 'No se pudo asignar la bodega Bodega Puerto' in report.message

    history = _history_posts(backend)
    assert [(h['entityId'], h['action']) for h in history] == [('w1', 'ASSIGNED')]
    assert history[0]['entityName'] == 'Bodega Central'
    assert history[0]['performedByName'] == 'Admin Demo'


def test_create_admin_has_no_assignment_batch(container, backend):
    user, report = container.user_service.create_user(
        ADMIN, dict(NEW_SUPERVISOR, role='ADMIN', areas=['a1']))
    assert user.role == UserRole.ADMIN
    assert report.outcomes == []
    assert report.title == 'Éxito'
    assert _history_posts(backend) == []


# ═══════════════════════════════════════════════════════════════════════════════
# SINCRONIZAR ASIGNACIONES
# ═══════════════════════════════════════════════════════════════════════════════

def test_jefe_areas_are_synced_by_diff(container, backend):
    jefe = User.from_dict(user_dto('j2', 'Rosa', 'Vera', 'JEFE_AREA', areas=['a3']))
    backend.responses[('POST', '/areas/a1/managers')] = {'id': 'as1'}
    backend.responses[('POST', '/areas/a2/managers')] = {'id': 'as2'}

    report = container.user_service.sync_assignments(
        ADMIN, jefe, UserRole.JEFE, areas=['a1', 'a2'], warehouses=['w1'],
        previous_areas=['a3'])

    assert ('DELETE', '/areas/a3/managers/j2', None) in backend.calls
    assert not any('/warehouses/' in c[1] for c in backend.writes())
    assert report.title == 'Éxito'
    assert 'Áreas agregadas: Norte, Sur' in report.message
    assert 'Áreas removidas: Centro' in report.message
    actions = sorted((h['entityId'], h['action']) for h in _history_posts(backend))
    assert actions == [('a1', 'ASSIGNED'), ('a2', 'ASSIGNED'), ('a3', 'REMOVED')]


def test_failed_area_is_named_and_not_logged(container, backend):
    jefe = User.from_dict(user_dto('j2', 'Rosa', 'Vera', 'JEFE_AREA'))
    backend.responses[('POST', '/areas/a1/managers')] = api_error(500, '')

    report = container.user_service.sync_assignments(
        ADMIN, jefe, UserRole.JEFE, areas=['a1'], warehouses=[])

    assert report.errors == ['No se pudo asignar el área Norte']
    assert report.title == '⚠️ Completado con errores'
    assert _history_posts(backend) == []


def test_history_failure_does_not_undo_assignments(container, backend):
    jefe = User.from_dict(user_dto('j2', 'Rosa', 'Vera', 'JEFE_AREA'))
    backend.responses[('POST', '/areas/a1/managers')] = {'id': 'as1'}
    backend.responses[('POST', '/assignment-history')] = api_error(500, 'Error')

    report = container.user_service.sync_assignments(
        ADMIN, jefe, UserRole.JEFE, areas=['a1'], warehouses=[])
    assert report.title == 'Éxito'
    assert not report.errors


# ═══════════════════════════════════════════════════════════════════════════════
# HABILITAR / DESHABILITAR
# ═══════════════════════════════════════════════════════════════════════════════

def test_disable_user_writes_audit_entry(container, backend):
    backend.responses[('PUT', '/users/u1')] = user_dto('u1', 'Ana', 'Pérez', 'SUPERVISOR',
                                                       status='DESHABILITADO')
    backend.responses[('POST', '/audit-logs')] = lambda json: dict(json, id='l1')
    container.user_service.get_user('u1')

    result = container.user_service.toggle_status(ADMIN, 'u1', reason='Licencia médica')

    assert result.ok
    assert result.value.is_enabled is False
    assert ('PUT', '/users/u1', {'status': 'DESHABILITADO', 'reason': 'Licencia médica'}) \
        in backend.calls
    audit = [c[2] for c in backend.calls if c[:2] == ('POST', '/audit-logs')][0]
    assert audit['action'] == 'USER_DISABLED'
    assert audit['entityName'] == 'Ana Pérez'
    assert audit['details'] == {'previousStatus': 'HABILITADO', 'newStatus': 'DESHABILITADO',
                                'reason': 'Licencia médica'}
    assert UserKeys.detail('u1') not in container.cache


def test_audit_failure_keeps_the_status_change(container, backend):
    backend.responses[('PUT', '/users/u1')] = user_dto('u1', 'Ana', 'Pérez', 'SUPERVISOR')
    backend.responses[('POST', '/audit-logs')] = api_error(500, 'Error')

    result = container.user_service.toggle_status(ADMIN, 'u1', new_status='habilitado')
    assert result.ok
    assert result.value.is_enabled


def test_toggle_failures_become_messages(container, backend):
    backend.responses[('GET', '/users/u404')] = api_error(404, 'Not Found')
    result = container.user_service.toggle_status(ADMIN, 'u404')
    assert not result.ok and result.error == 'Usuario no encontrado'

    backend.responses[('PUT', '/users/u1')] = api_error(400, '')
    result = container.user_service.toggle_status(ADMIN, 'u1', new_status='DESHABILITADO')
    assert result.error == 'Error al cambiar estado del usuario'

    result = container.user_service.toggle_status(ADMIN, 'u1', new_status='SUSPENDIDO')
    assert result.error == 'Estado inválido'


# ═══════════════════════════════════════════════════════════════════════════════
# LOGIN
# ═══════════════════════════════════════════════════════════════════════════════

def test_login_requires_both_fields(container, backend):
    with pytest.raises(ValidationError) as exc:
        container.auth_service.login('  ', '')
    assert set(exc.value.errors) == {'email', 'password'}
    assert backend.calls == []


def test_login_without_token_is_rejected(container, backend):
    backend.responses[('POST', '/auth/login')] = {'user': {'id': 'u1'}}
    with pytest.raises(InvalidAuthResponseError) as exc:
        container.auth_service.login('ana@kreatech.cl', 'secreto')
    assert exc.value.message == 'No se recibió token de autenticación'


def test_login_stores_token_and_profile(container, backend):
    backend.token_store.clear()
    backend.responses[('POST', '/auth/login')] = {
        'access_token': 'jwt-1', 'user': {'id': 'u2'},
    }
    backend.responses[('GET', '/users/me')] = user_dto('u2', 'Rosa', 'Vera', 'JEFE_AREA',
                                                       areas=['a1'])

    user = container.auth_service.login(' Rosa@Kreatech.cl ', 'secreto')

    assert ('POST', '/auth/login', {'email': 'rosa@kreatech.cl', 'password': 'secreto'}) \
        in backend.calls
    assert user.role == UserRole.JEFE
    assert container.auth_service.is_authenticated()
    actor = container.auth_service.current_actor()
    assert actor.role == UserRole.JEFE
    assert actor.area_ids == frozenset({'a1'})


# ═══════════════════════════════════════════════════════════════════════════════
# ALCANCE DEL JEFE SOBRE OTROS USUARIOS
# ═══════════════════════════════════════════════════════════════════════════════

def test_jefe_cannot_disable_an_admin(container, backend):
    backend.responses[('GET', '/users/u9')] = user_dto('u9', 'Root', 'Admin', 'ADMIN')
    with pytest.raises(RoleEscalationError):
        container.user_service.toggle_status(JEFE, 'u9', new_status='DESHABILITADO')
    assert backend.writes() == []


def test_jefe_cannot_disable_a_supervisor_outside_its_areas(container, backend):
    backend.responses[('GET', '/users/area/a1')] = []
    with pytest.raises(OutOfScopeError):
        container.user_service.toggle_status(JEFE, 'u1')
    assert backend.writes() == []


def test_jefe_disables_a_supervisor_of_its_area(container, backend):
    backend.responses[('GET', '/users/area/a1')] = [user_dto('u1', 'Ana', 'Pérez', 'SUPERVISOR')]
    backend.responses[('PUT', '/users/u1')] = user_dto('u1', 'Ana', 'Pérez', 'SUPERVISOR',
                                                       status='DESHABILITADO')
    result = container.user_service.toggle_status(JEFE, 'u1')
    assert result.ok
    assert ('PUT', '/users/u1', {'status': 'DESHABILITADO'}) in backend.calls


def test_jefe_cannot_edit_a_supervisor_outside_its_areas(container, backend):
    backend.responses[('GET', '/users/area/a1')] = []
    with pytest.raises(OutOfScopeError):
        container.user_service.update_user(JEFE, 'u1', {'phone': '+56911112222'})
    assert backend.writes() == []


def test_jefe_cannot_link_a_warehouse_of_another_area(container, backend):
    backend.responses[('GET', '/warehouses')] = [
        warehouse_dto('w1', 'Bodega Central', area_id='a1'),
        warehouse_dto('w2', 'Bodega Puerto', area_id='a3'),
    ]
    supervisor = User.from_dict(user_dto('u1', 'Ana', 'Pérez', 'SUPERVISOR'))

    with pytest.raises(OutOfScopeError) as exc:
        container.user_service.sync_assignments(
            JEFE, supervisor, UserRole.SUPERVISOR, areas=[], warehouses=['w1', 'w2'])
    assert 'w2' in str(exc.value)
    assert backend.writes() == []


def test_jefe_cannot_create_a_supervisor_in_a_foreign_warehouse(container, backend):
    backend.responses[('GET', '/warehouses')] = [
        warehouse_dto('w2', 'Bodega Puerto', area_id='a3'),
    ]
    with pytest.raises(OutOfScopeError):
        container.user_service.create_user(JEFE, dict(NEW_SUPERVISOR, warehouses=['w2']))
    assert backend.calls == [('GET', '/warehouses', None)]


def test_failed_assignment_lookup_is_reported_on_removal(container, backend):
    supervisor = User.from_dict(user_dto('u1', 'Ana', 'Pérez', 'SUPERVISOR',
                                         warehouses=['w1']))
    backend.responses[('GET', '/assignments')] = api_error(500, 'Error interno')

    report = container.user_service.sync_assignments(
        ADMIN, supervisor, UserRole.SUPERVISOR, areas=[], warehouses=[],
        previous_warehouses=['w1'])

    assert report.errors == ['No se pudo remover la bodega Bodega Central']
    assert report.title == '⚠️ Completado con errores'
    assert _history_posts(backend) == []

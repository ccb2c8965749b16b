# -*- coding: utf-8 -*-
"""
Visibilidad por rol, candidatos y guardia de escalamiento de rol
"""
import pytest

from conftest import area_dto, user_dto, warehouse_dto
from smartpack.models.entities import User
from smartpack.models.roles import UserRole
from smartpack.services import Actor, RoleEscalationError
from smartpack.services.visibility_service import (
    assignable_roles,
    ensure_can_assign_role,
    filter_manager_candidates,
)

ADMIN = Actor('u0', UserRole.ADMIN, name='Admin')
JEFE = Actor('j1', UserRole.JEFE, area_ids=frozenset({'a1', 'a2'}), name='Jefa Norte')
SUPERVISOR = Actor('s1', UserRole.SUPERVISOR, warehouse_ids=frozenset({'w2'}))


@pytest.fixture
def backend(fake_client):
    fake_client.responses.update({
        ('GET', '/areas'): [
            area_dto('a1', 'Norte'),
            area_dto('a2', 'Sur'),
            area_dto('a3', 'Centro'),
            area_dto('a4', 'Cerrada', status='INACTIVO'),
        ],
        ('GET', '/warehouses'): [
            warehouse_dto('w1', 'Bodega 1', area_id='a1'),
            warehouse_dto('w2', 'Bodega 2', area_id='a2'),
            warehouse_dto('w3', 'Bodega 3', area_id='a3'),
        ],
        ('GET', '/users'): [
            user_dto('j1', 'Jefa', 'Norte', 'JEFE_AREA', areas=['a1', 'a2']),
            user_dto('j2', 'Jefe', 'Libre', 'JEFE_AREA'),
            user_dto('j3', 'Jefe', 'Inactivo', 'JEFE_AREA', status='DESHABILITADO'),
            user_dto('s1', 'Sofía', 'Rojas', 'SUPERVISOR'),
        ],
        # s2 es miembro de ambas áreas del jefe
        ('GET', '/users/area/a1'): [
            user_dto('j1', 'Jefa', 'Norte', 'JEFE_AREA'),
            user_dto('s1', 'Sofía', 'Rojas', 'SUPERVISOR'),
            user_dto('s2', 'Pedro', 'Soto', 'BODEGUERO'),
        ],
        ('GET', '/users/area/a2'): [
            user_dto('s2', 'Pedro', 'Soto', 'BODEGUERO'),
            user_dto('s3', 'Marta', 'Díaz', 'SUPERVISOR'),
        ],
    })
    return fake_client


# ═══════════════════════════════════════════════════════════════════════════════
# ÁREAS Y BODEGAS
# ═══════════════════════════════════════════════════════════════════════════════

def test_admin_sees_all_active_areas(container, backend):
    ids = [a.id for a in container.visibility_service.visible_areas(ADMIN)]
    assert ids == ['a1', 'a2', 'a3']
    ids = [a.id for a in container.visibility_service.visible_areas(ADMIN, include_inactive=True)]
    assert 'a4' in ids


def test_jefe_sees_only_assigned_areas_and_their_warehouses(container, backend):
    visibility = container.visibility_service
    assert [a.id for a in visibility.visible_areas(JEFE)] == ['a1', 'a2']
    assert [w.id for w in visibility.visible_warehouses(JEFE)] == ['w1', 'w2']


def test_supervisor_sees_areas_owning_their_warehouses(container, backend):
    visibility = container.visibility_service
    assert [w.id for w in visibility.visible_warehouses(SUPERVISOR)] == ['w2']
    assert [a.id for a in visibility.visible_areas(SUPERVISOR)] == ['a2']
    assert not visibility.can_manage_area(SUPERVISOR, 'a2')


# ═══════════════════════════════════════════════════════════════════════════════
# USUARIOS
# ═══════════════════════════════════════════════════════════════════════════════

def test_jefe_user_list_is_deduplicated_supervisors_of_their_areas(container, backend):
    users = container.visibility_service.visible_users(JEFE)
    assert [u.id for u in users] == ['s1', 's2', 's3']
    assert all(u.role == UserRole.SUPERVISOR for u in users)
    assert ('GET', '/users', None) not in backend.calls


def test_supervisor_gets_no_user_list(container, backend):
    assert container.visibility_service.visible_users(SUPERVISOR) == []
    assert backend.calls == []


def test_admin_user_list_is_cached(container, backend):
    container.visibility_service.visible_users(ADMIN)
    container.visibility_service.visible_users(ADMIN)
    assert backend.calls.count(('GET', '/users', None)) == 1


# ═══════════════════════════════════════════════════════════════════════════════
# CANDIDATOS
# ═══════════════════════════════════════════════════════════════════════════════

def test_manager_candidates_exclude_active_assignment_to_same_area():
    assigned = User.from_dict(user_dto('j1', 'Jefa', 'Norte', 'JEFE_AREA', areaAssignments=[
        {'id': 'as1', 'areaId': 'a1', 'isActive': True}]))
    revoked = User.from_dict(user_dto('j2', 'Jefe', 'Antiguo', 'JEFE_AREA', areaAssignments=[
        {'id': 'as2', 'areaId': 'a1', 'isActive': False, 'revokedAt': '2024-01-01'}]))
    other_area = User.from_dict(user_dto('j3', 'Jefe', 'Sur', 'JEFE_AREA', areaAssignments=[
        {'id': 'as3', 'areaId': 'a2', 'isActive': True}]))
    disabled = User.from_dict(user_dto('j4', 'Jefe', 'Off', 'JEFE_AREA', status='DESHABILITADO'))
    supervisor = User.from_dict(user_dto('s1', 'Sofía', 'Rojas', 'SUPERVISOR'))

    candidates = filter_manager_candidates(
        [assigned, revoked, other_area, disabled, supervisor], 'a1')
    assert [u.id for u in candidates] == ['j2', 'j3']


def test_manager_candidates_respect_area_scope(container, backend):
    visibility = container.visibility_service
    assert [u.id for u in visibility.manager_candidates(ADMIN, 'a3')] == ['j1', 'j2']
    assert visibility.manager_candidates(JEFE, 'a3') == []


def test_supervisor_candidates_come_from_visible_users(container, backend):
    ids = [u.id for u in container.visibility_service.supervisor_candidates(JEFE)]
    assert ids == ['s1', 's2', 's3']


# ═══════════════════════════════════════════════════════════════════════════════
# ESCALAMIENTO DE ROL
# ═══════════════════════════════════════════════════════════════════════════════

def test_assignable_roles_by_actor():
    assert assignable_roles(ADMIN) == [UserRole.ADMIN, UserRole.JEFE, UserRole.SUPERVISOR]
    assert assignable_roles(JEFE) == [UserRole.SUPERVISOR]
    assert assignable_roles(SUPERVISOR) == []


def test_jefe_cannot_grant_admin_or_jefe():
    with pytest.raises(RoleEscalationError) as exc:
        ensure_can_assign_role(JEFE, 'ADMIN')
    assert 'ADMIN' in str(exc.value)
    with pytest.raises(RoleEscalationError):
        ensure_can_assign_role(JEFE, 'JEFE_AREA')
    assert ensure_can_assign_role(JEFE, 'BODEGUERO') == UserRole.SUPERVISOR


def test_jefe_cannot_edit_an_admin():
    target = User(id='u9', name='Root', role=UserRole.ADMIN)
    with pytest.raises(RoleEscalationError):
        ensure_can_assign_role(JEFE, 'SUPERVISOR', target)
    assert ensure_can_assign_role(ADMIN, 'SUPERVISOR', target) == UserRole.SUPERVISOR


def test_actor_from_session():
    actor = Actor.from_session({'id': 'j1', 'role': 'JEFE', 'areas': ['a1'], 'name': 'Jefa'})
    assert actor.is_jefe
    assert actor.area_ids == frozenset({'a1'})

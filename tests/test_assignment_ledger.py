# -*- coding: utf-8 -*-
"""
Libro de asignaciones: remover conserva el historial
"""
import itertools

import pytest

from smartpack.models.assignment_ledger import EVENT_ASSIGN, EVENT_REVOKE, AssignmentLedger
from smartpack.models.entities import AssignmentType
from smartpack.repositories import InMemoryAssignmentRepository
from smartpack.services import AssignManagerToArea, RemoveManagerToArea, RemoveSupervisorToWarehouse


@pytest.fixture
def ledger():
    ticks = itertools.count(1)
    ids = itertools.count(1)
    return AssignmentLedger(clock=lambda: f"t{next(ticks)}",
                            id_factory=lambda: f"as{next(ids)}")


def test_revoked_row_stays_in_history(ledger):
    a = ledger.assign(AssignmentType.AREA_MANAGER, user_id='u1', area_id='a1')
    revoked = ledger.revoke(a.id)

    assert revoked.is_active is False
    assert revoked.revoked_at == 't2'
    history = ledger.history(area_id='a1')
    assert [(h.id, h.is_active) for h in history] == [('as1', False)]
    assert ledger.active(area_id='a1') == []


def test_events_are_append_only(ledger):
    a = ledger.assign(AssignmentType.WAREHOUSE_SUPERVISOR, user_id='s1', warehouse_id='w1')
    ledger.revoke(a.id)
    ledger.assign(AssignmentType.WAREHOUSE_SUPERVISOR, user_id='s1', warehouse_id='w1')

    assert [e.event for e in ledger.events] == [EVENT_ASSIGN, EVENT_REVOKE, EVENT_ASSIGN]
    rows = ledger.history(warehouse_id='w1')
    assert [r.is_active for r in rows] == [False, True]


def test_assigning_an_active_pair_twice_is_a_no_op(ledger):
    first = ledger.assign(AssignmentType.AREA_WAREHOUSE, area_id='a1', warehouse_id='w1')
    second = ledger.assign(AssignmentType.AREA_WAREHOUSE, area_id='a1', warehouse_id='w1')
    assert first.id == second.id
    assert len(ledger.events) == 1


def test_revoking_twice_keeps_first_revocation(ledger):
    a = ledger.assign(AssignmentType.AREA_MANAGER, user_id='u1', area_id='a1')
    ledger.revoke(a.id)
    again = ledger.revoke(a.id)
    assert again.revoked_at == 't2'
    assert len(ledger.events) == 2


def test_revoking_unknown_assignment_raises(ledger):
    with pytest.raises(KeyError):
        ledger.revoke('nope')


def test_in_memory_repository_keeps_history_after_removal(ledger):
    repo = InMemoryAssignmentRepository(ledger)
    assert AssignManagerToArea(repo)('a1', 'u1').ok
    assert RemoveManagerToArea(repo)('a1', 'u1').ok

    rows = repo.find_by_area('a1')
    assert len(rows) == 1
    assert rows[0].user_id == 'u1'
    assert rows[0].is_active is False
    assert rows[0].revoked_at is not None
    assert repo.find_all({'isActive': True}) == []


def test_removing_missing_pair_is_harmless(ledger):
    repo = InMemoryAssignmentRepository(ledger)
    result = RemoveSupervisorToWarehouse(repo)('w1', 's1')
    assert result.ok
    assert result.value is None
    assert ledger.events == ()

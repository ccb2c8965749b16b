# -*- coding: utf-8 -*-
"""
Caché de consultas y tabla de invalidación
"""
import pytest

from smartpack.cache import invalidation
from smartpack.cache.invalidation import INVALIDATION_MAP, Mutation, keys_for
from smartpack.cache.query_cache import QueryCache
from smartpack.cache.query_keys import (
    AreaKeys,
    AuditLogKeys,
    BoxKeys,
    EnablementHistoryKeys,
    UserKeys,
    WarehouseKeys,
    WarehouseSupervisorKeys,
    freeze_filters,
)
from smartpack.models.result import MutationError, failure, success
from smartpack.services import MutationService


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_every_mutation_has_an_entry():
    assert set(INVALIDATION_MAP) == set(Mutation)


@pytest.mark.parametrize('mutation', list(Mutation))
def test_every_entry_builds_keys_with_and_without_ids(mutation):
    keys_for(mutation)
    keys = keys_for(mutation, area_id='a1', warehouse_id='w1', user_id='u1', box_id='b1',
                    product_id='p1', old_area_id='a0', new_area_id='a2')
    assert len(keys) == len(set(keys))


def test_warehouse_area_link_invalidates_both_sides():
    keys = keys_for(Mutation.ASSIGN_WAREHOUSE_TO_AREA, area_id='a1', warehouse_id='w1')
    assert AreaKeys.all() in keys
    assert AreaKeys.detail('a1') in keys
    assert WarehouseKeys.all() in keys
    assert WarehouseKeys.detail('w1') in keys


def test_consolidated_warehouse_flow_covers_old_and_new_area():
    keys = keys_for(Mutation.WAREHOUSE_ASSIGNMENTS, warehouse_id='w1',
                    old_area_id='a1', new_area_id='a2')
    assert WarehouseSupervisorKeys.by_warehouse('w1') in keys
    assert AreaKeys.detail('a1') in keys
    assert AreaKeys.detail('a2') in keys
    assert UserKeys.all() in keys


def test_toggle_status_reaches_history_and_audit():
    keys = keys_for(Mutation.TOGGLE_USER_STATUS, user_id='u1')
    assert EnablementHistoryKeys.by_user('u1') in keys
    assert EnablementHistoryKeys.global_all() in keys
    assert AuditLogKeys.all() in keys


def test_filters_freeze_to_the_same_key():
    assert freeze_filters({'b': 1, 'a': 2, 'c': ''}) == (('a', 2), ('b', 1))
    assert BoxKeys.list({'page': 1, 'search': None}) == BoxKeys.list({'page': 1})


# ═══════════════════════════════════════════════════════════════════════════════
# QUERY CACHE
# ═══════════════════════════════════════════════════════════════════════════════

def test_fetch_reuses_fresh_entries_and_reloads_stale_ones():
    clock = Clock()
    cache = QueryCache(stale_seconds=10, clock=clock)
    loads = []

    def loader():
        loads.append(1)
        return len(loads)

    assert cache.fetch(AreaKeys.all(), loader) == 1
    assert cache.fetch(AreaKeys.all(), loader) == 1
    clock.now = 11
    assert cache.peek(AreaKeys.all()) is None
    assert cache.fetch(AreaKeys.all(), loader) == 2


def test_prefix_invalidation_drops_details():
    cache = QueryCache()
    cache.fetch(AreaKeys.all(), lambda: [])
    cache.fetch(AreaKeys.detail('a1'), lambda: 'a1')
    cache.fetch(WarehouseKeys.all(), lambda: [])

    assert cache.invalidate(AreaKeys.all()) == 2
    assert cache.keys() == [WarehouseKeys.all()]


def test_value_loaded_during_invalidation_is_not_stored():
    cache = QueryCache()

    def loader():
        cache.invalidate(UserKeys.all())
        return ['viejo']

    assert cache.fetch(UserKeys.all(), loader) == ['viejo']
    assert UserKeys.all() not in cache


# ═══════════════════════════════════════════════════════════════════════════════
# CANAL DE MUTACIONES
# ═══════════════════════════════════════════════════════════════════════════════

def test_successful_mutation_invalidates_its_keys():
    cache = QueryCache()
    cache.fetch(AreaKeys.detail('a1'), lambda: 'a1')
    cache.fetch(BoxKeys.all(), lambda: [])

    value = MutationService(cache).run(Mutation.ASSIGN_MANAGER_TO_AREA,
                                       lambda *ids: success(ids), 'a1', 'u1', area_id='a1')
    assert value == ('a1', 'u1')
    assert AreaKeys.detail('a1') not in cache
    assert BoxKeys.all() in cache


def test_failed_mutation_raises_and_keeps_cache():
    cache = QueryCache()
    cache.fetch(AreaKeys.detail('a1'), lambda: 'a1')

    with pytest.raises(MutationError) as exc:
        MutationService(cache).run(Mutation.ASSIGN_MANAGER_TO_AREA,
                                   lambda *ids: failure('Error al asignar jefe al área'),
                                   'a1', 'u1', area_id='a1')
    assert str(exc.value) == 'Error al asignar jefe al área'
    assert AreaKeys.detail('a1') in cache


def test_apply_returns_invalidated_keys():
    cache = QueryCache()
    keys = invalidation.apply(cache, Mutation.MOVE_BOX, box_id='b1')
    assert BoxKeys.detail('b1') in keys
    assert WarehouseKeys.all() in keys

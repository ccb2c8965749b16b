# -*- coding: utf-8 -*-
"""
Catálogo de productos: repositorio, reglas de alta por tipo y caché
"""
import pytest

from conftest import api_error
from smartpack.cache.query_keys import ProductKeys
from smartpack.models.entities import ProductKind
from smartpack.models.validators import ValidationError
from smartpack.repositories import ApiError, IProductRepository, ProductRepository

MATERIAL = {
    'name': '  Cable UTP  ', 'kind': 'material', 'unitOfMeasureId': 'uom-m',
    'currencyId': 'cur-clp', 'monetaryValue': '1200.50', 'sku': 'IGNORADO',
}


def product_dto(id, name, kind='MATERIAL', **extra):
    data = {'id': id, 'name': name, 'kind': kind, 'isActive': True,
            'currencyId': 'cur-clp', 'monetaryValue': '10.00'}
    data.update(extra)
    return data


# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIO
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize('response', [
    [product_dto('p1', 'Taladro', 'EQUIPMENT')],
    {'data': [product_dto('p1', 'Taladro', 'EQUIPMENT')]},
    {'products': [product_dto('p1', 'Taladro', 'EQUIPMENT')]},
])
def test_product_list_shapes(fake_client, response):
    fake_client.responses[('GET', '/products')] = response
    products = ProductRepository(fake_client).find_all()
    assert [(p.id, p.kind) for p in products] == [('p1', ProductKind.EQUIPMENT)]


def test_repository_matches_its_interface(fake_client):
    assert isinstance(ProductRepository(fake_client), IProductRepository)


def test_legacy_product_shape(fake_client):
    fake_client.responses[('GET', '/products/p2')] = {'data': {
        'id': 'p2', 'description': 'Guantes', 'type': 'SPARE_PART',
        'status': 'INACTIVO', 'price': 4.5, 'currency': {'id': 'cur-usd'},
        'categories': [{'id': 'c1'}, 'c2'],
    }}
    product = ProductRepository(fake_client).find_by_id('p2')
    assert product.name == 'Guantes'
    assert product.kind == ProductKind.SPARE_PART
    assert product.is_active is False
    assert product.to_dict()['status'] == 'INACTIVO'
    assert product.monetary_value == '4.5'
    assert product.currency_id == 'cur-usd'
    assert product.category_ids == ['c1', 'c2']


def test_missing_product_is_none(fake_client):
    fake_client.responses[('GET', '/products/p404')] = api_error(404, 'Not Found')
    assert ProductRepository(fake_client).find_by_id('p404') is None


def test_update_sends_only_known_fields(fake_client):
    fake_client.responses[('PATCH', '/products/p1')] = lambda json: dict(json, id='p1')
    ProductRepository(fake_client).update('p1', {'name': 'Nuevo', 'sku': 'X', 'foo': 1})
    assert fake_client.calls == [('PATCH', '/products/p1', {'name': 'Nuevo'})]


# ═══════════════════════════════════════════════════════════════════════════════
# REGLAS DE ALTA
# ═══════════════════════════════════════════════════════════════════════════════

def test_material_is_created_without_sku(container, fake_client):
    fake_client.responses[('POST', '/products')] = lambda json: dict(json, id='p9')

    product = container.product_service.create_product(MATERIAL)

    assert product.id == 'p9'
    assert product.name == 'Cable UTP'
    payload = fake_client.calls[0][2]
    assert payload['kind'] == 'MATERIAL'
    assert 'sku' not in payload


@pytest.mark.parametrize('data, field, message', [
    (dict(MATERIAL, name=' '), 'name', 'El nombre del producto es requerido'),
    (dict(MATERIAL, unitOfMeasureId=None), 'unitOfMeasureId',
     'La unidad de medida es requerida para materiales'),
    (dict(MATERIAL, kind='EQUIPMENT'), 'model', 'El modelo es requerido para equipos'),
    (dict(MATERIAL, currencyId=''), 'currencyId', 'La moneda es requerida'),
    (dict(MATERIAL, monetaryValue=None), 'monetaryValue', 'El valor monetario es requerido'),
    (dict(MATERIAL, kind='MUEBLE'), 'kind', 'Tipo de producto inválido'),
])
def test_invalid_product_never_reaches_the_network(container, fake_client, data, field, message):
    with pytest.raises(ValidationError) as exc:
        container.product_service.create_product(data)
    assert exc.value.errors[field] == message
    assert fake_client.calls == []


def test_spare_part_needs_no_model(container, fake_client):
    fake_client.responses[('POST', '/products')] = lambda json: dict(json, id='p3')
    product = container.product_service.create_product(dict(MATERIAL, kind='SPARE_PART'))
    assert product.kind == ProductKind.SPARE_PART


def test_failed_create_propagates(container, fake_client):
    fake_client.responses[('POST', '/products')] = api_error(409, 'Producto duplicado')
    with pytest.raises(ApiError) as exc:
        container.product_service.create_product(MATERIAL)
    assert exc.value.message == 'Producto duplicado'


# ═══════════════════════════════════════════════════════════════════════════════
# CACHÉ
# ═══════════════════════════════════════════════════════════════════════════════

def test_update_invalidates_list_and_detail(container, fake_client, cache):
    fake_client.responses[('GET', '/products')] = [product_dto('p1', 'Cable')]
    fake_client.responses[('GET', '/products/p1')] = product_dto('p1', 'Cable')
    fake_client.responses[('PATCH', '/products/p1')] = product_dto('p1', 'Cable CAT6')
    service = container.product_service

    service.list_products()
    service.get_product('p1')
    assert ProductKeys.list(None) in cache
    assert ProductKeys.detail('p1') in cache

    updated = service.update_product('p1', {'name': 'Cable CAT6'})

    assert updated.name == 'Cable CAT6'
    assert ProductKeys.list(None) not in cache
    assert ProductKeys.detail('p1') not in cache


def test_list_filter_by_kind_is_validated(container, fake_client):
    with pytest.raises(ValidationError):
        container.product_service.list_products(kind='MUEBLE')
    fake_client.responses[('GET', '/products')] = []
    assert container.product_service.list_products(kind='equipment') == []

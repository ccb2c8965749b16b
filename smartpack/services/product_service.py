# ==============================================================================
# SERVICIO DE PRODUCTOS
# ==============================================================================
# Catálogo de equipos, materiales y repuestos. Las reglas de alta dependen
# del tipo: un MATERIAL exige unidad de medida y un EQUIPMENT exige modelo.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from smartpack.cache.invalidation import Mutation
from smartpack.cache.query_cache import QueryCache
from smartpack.cache.query_keys import ProductKeys
from smartpack.models.entities import Product, ProductKind
from smartpack.models.validators import ValidationError
from smartpack.services.mutation_service import MutationService

logger = logging.getLogger(__name__)


def _kind(value: Any) -> Optional[ProductKind]:
    try:
        return ProductKind(str(value or "").upper())
    except ValueError:
        return None


def validate_product_input(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Valida el formulario de alta de producto.

    Returns:
        Copia de data con name recortado y kind normalizado

    Raises:
        ValidationError: Con un mensaje por campo
    """
    errors = {}
    name = (data.get("name") or "").strip()
    if not name:
        errors["name"] = "El nombre del producto es requerido"

    kind = _kind(data.get("kind"))
    if kind is None:
        errors["kind"] = "Tipo de producto inválido"
    elif kind == ProductKind.MATERIAL and not data.get("unitOfMeasureId"):
        errors["unitOfMeasureId"] = "La unidad de medida es requerida para materiales"
    elif kind == ProductKind.EQUIPMENT and not (data.get("model") or "").strip():
        errors["model"] = "El modelo es requerido para equipos"

    if not data.get("currencyId"):
        errors["currencyId"] = "La moneda es requerida"
    if data.get("monetaryValue") in (None, ""):
        errors["monetaryValue"] = "El valor monetario es requerido"

    if errors:
        raise ValidationError(errors)
    cleaned = dict(data, name=name, kind=kind.value)
    cleaned.pop("sku", None)
    return cleaned


class ProductService:

    def __init__(self, cache: QueryCache, mutations: MutationService, product_repo):
        self.cache = cache
        self.mutations = mutations
        self.product_repo = product_repo

    def list_products(self, kind: str = None) -> List[Product]:
        if kind is not None:
            parsed = _kind(kind)
            if parsed is None:
                raise ValidationError({"kind": "Tipo de producto inválido"})
            kind = parsed.value
        return self.cache.fetch(ProductKeys.list(kind),
                                lambda: self.product_repo.find_all(kind=kind))

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.cache.fetch(ProductKeys.detail(product_id),
                                lambda: self.product_repo.find_by_id(product_id))

    def create_product(self, data: Dict[str, Any]) -> Product:
        product = self.product_repo.create(validate_product_input(data))
        self.mutations.invalidate(Mutation.CREATE_PRODUCT, product_id=product.id)
        logger.info("✅ Producto creado: %s (%s)", product.name, product.kind.value)
        return product

    def update_product(self, product_id: str, data: Dict[str, Any]) -> Product:
        if "name" in data and not (data.get("name") or "").strip():
            raise ValidationError({"name": "El nombre del producto es requerido"})
        product = self.product_repo.update(product_id, data)
        self.mutations.invalidate(Mutation.UPDATE_PRODUCT, product_id=product_id)
        return product

# ==============================================================================
# REPOSITORIO DE PRODUCTOS
# ==============================================================================

from typing import Any, Dict, List, Optional

from smartpack.models.entities import Product
from smartpack.repositories.base import ApiRepository

# Campos que acepta el backend en POST/PATCH /products
PRODUCT_FIELDS = (
    "name", "kind", "description", "model", "unitOfMeasureId", "isHazardous",
    "currencyId", "monetaryValue", "isActive", "providerId", "projectId", "categoryIds",
)


def _payload(data: Dict[str, Any]) -> Dict[str, Any]:
    # Solo campos conocidos y presentes; el SKU lo genera el backend
    return {k: data[k] for k in PRODUCT_FIELDS if k in data}


class ProductRepository(ApiRepository):
    """Acceso a /products (catálogo de equipos, materiales y repuestos)."""

    list_keys = ("products",)

    def find_all(self, kind: str = None) -> List[Product]:
        return self._read_list("/products", Product.from_dict, params={"kind": kind})

    def find_by_id(self, product_id: str) -> Optional[Product]:
        return self._read_item(f"/products/{product_id}", Product.from_dict)

    def _product(self, response: Any) -> Product:
        return Product.from_dict(self._extract_item(response) or {})

    def create(self, data: Dict[str, Any]) -> Product:
        return self._product(self.client.post("/products", json=_payload(data)))

    def update(self, product_id: str, data: Dict[str, Any]) -> Product:
        return self._product(self.client.patch(f"/products/{product_id}", json=_payload(data)))

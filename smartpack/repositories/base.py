# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común para acceso a la API REST
# ==============================================================================
# Política de errores (asimetría a propósito):
#   - LECTURAS: ante un ApiError se registra el error y se retorna un valor
#     seguro ([] o None). Una vista con lista fallida se muestra vacía.
#   - ESCRITURAS: el ApiError se propaga; un fallo de escritura debe verse.
# La expiración de sesión (SessionExpiredError) se propaga siempre.
# ==============================================================================

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from smartpack import config
from smartpack.repositories.api_client import ApiClient, ApiError, SessionExpiredError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ApiRepository:
    """
    Clase base para los repositorios sobre la API.

    Las subclases definen list_keys: nombres alternativos bajo los que el
    backend puede envolver una lista (ej: ('areas',) para {areas: [...]}).
    """

    list_keys: Sequence[str] = ()

    def __init__(self, client: ApiClient, tenant_id: str = config.TENANT_ID):
        """
        Args:
            client: Cliente HTTP compartido
            tenant_id: Tenant fijo de la instalación
        """
        self.client = client
        self.tenant_id = tenant_id

    # =========================================================================
    # EXTRACCIÓN DE FORMAS DEL BACKEND
    # =========================================================================

    def _extract_list(self, response: Any) -> List[Dict[str, Any]]:
        """
        Obtiene la lista de un response que puede ser:
          - array directo:       [item, ...]
          - objeto con data:     {data: [item, ...]}
          - objeto con entidad:  {areas: [item, ...]}
        """
        if isinstance(response, list):
            return response
        if isinstance(response, dict):
            if isinstance(response.get("data"), list):
                return response["data"]
            for key in self.list_keys:
                if isinstance(response.get(key), list):
                    return response[key]
        logger.error("❌ Estructura inesperada en respuesta de %s: %r",
                     type(self).__name__, type(response).__name__)
        return []

    @staticmethod
    def _extract_item(response: Any) -> Optional[Dict[str, Any]]:
        """Obtiene un objeto de un response directo o envuelto en {data: {...}}."""
        if isinstance(response, dict):
            inner = response.get("data")
            if isinstance(inner, dict):
                return inner
            return response
        return None

    # =========================================================================
    # LECTURAS TOLERANTES A FALLOS
    # =========================================================================

    def _read_list(self, path: str, mapper: Callable[[Dict[str, Any]], T],
                   params: Dict[str, Any] = None) -> List[T]:
        """GET de una lista; [] si la API falla."""
        try:
            response = self.client.get(path, params=params)
        except SessionExpiredError:
            raise
        except ApiError as e:
            logger.warning("⚠️ Error leyendo %s (%s): %s", path, e.status_code, e.message)
            return []
        return [mapper(item) for item in self._extract_list(response)]

    def _read_item(self, path: str, mapper: Callable[[Dict[str, Any]], T],
                   params: Dict[str, Any] = None) -> Optional[T]:
        """GET de un objeto; None si la API falla o no existe."""
        try:
            response = self.client.get(path, params=params)
        except SessionExpiredError:
            raise
        except ApiError as e:
            logger.warning("⚠️ Error leyendo %s (%s): %s", path, e.status_code, e.message)
            return None
        item = self._extract_item(response)
        return mapper(item) if item else None

# ==============================================================================
# CANAL DE MUTACIONES
# ==============================================================================
# Ejecuta un caso de uso y, solo si terminó bien, invalida las claves que la
# tabla declarativa asocia a la mutación. Un Result con ok=False se convierte
# en MutationError para que la ruta lo muestre como notificación.
# ==============================================================================

import logging
from typing import Any

from smartpack.cache import invalidation
from smartpack.cache.invalidation import Mutation
from smartpack.cache.query_cache import QueryCache
from smartpack.models.result import MutationError, Result

logger = logging.getLogger(__name__)


class MutationService:
    """
    Uso:
        mutations = MutationService(cache)
        mutations.run(Mutation.ASSIGN_MANAGER_TO_AREA,
                      AssignManagerToArea(repo), 'a1', 'u1', area_id='a1')
    """

    def __init__(self, cache: QueryCache):
        self.cache = cache

    def run(self, mutation: Mutation, use_case, *args: Any, **ids: Any) -> Any:
        """
        Args:
            mutation: Entrada de INVALIDATION_MAP a aplicar
            use_case: Callable que retorna Result
            *args: Argumentos posicionales del caso de uso
            **ids: IDs para construir las claves de detalle

        Returns:
            El value del Result

        Raises:
            MutationError: Si el caso de uso retornó ok=False
        """
        result: Result = use_case(*args)
        if not result.ok:
            logger.warning("⚠️ Mutación %s falló: %s", mutation.value, result.error)
            raise MutationError(result.error)
        keys = invalidation.apply(self.cache, mutation, **ids)
        logger.info("🔄 %s: %d claves invalidadas", mutation.value, len(keys))
        return result.value

    def invalidate(self, mutation: Mutation, **ids: Any) -> None:
        """Invalida sin caso de uso (flujos compuestos que ya ejecutaron sus llamadas)."""
        keys = invalidation.apply(self.cache, mutation, **ids)
        logger.info("🔄 %s: %d claves invalidadas", mutation.value, len(keys))

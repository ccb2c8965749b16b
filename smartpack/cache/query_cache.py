# ==============================================================================
# CACHÉ DE CONSULTAS - Único recurso mutable compartido
# ==============================================================================
# Caché en memoria de lecturas del backend, con tiempo de vigencia.
#
# Reglas:
#   - Las lecturas pasan por fetch(key, loader)
#   - Los handlers NUNCA escriben resultados a mano: después de una mutación
#     solo se invalida, forzando un refetch en la próxima lectura
#   - Thread-safe con RLock
# ==============================================================================

import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Tuple

from smartpack import config
from smartpack.cache.query_keys import QueryKey

logger = logging.getLogger(__name__)


class QueryCache:
    """
    Caché de consultas con invalidación por prefijo.

    Uso:
        cache = QueryCache()
        areas = cache.fetch(AreaKeys.all(), area_repo.find_all)
        cache.invalidate(AreaKeys.all())
    """

    def __init__(self, stale_seconds: float = config.CACHE_STALE_SECONDS,
                 clock: Callable[[], float] = None):
        """
        Args:
            stale_seconds: Vigencia de cada entrada
            clock: Reloj monotónico (inyectable en tests)
        """
        self.stale_seconds = stale_seconds
        self._clock = clock or time.monotonic
        self._entries: Dict[QueryKey, Tuple[Any, float]] = {}
        self._generation = 0
        self._lock = threading.RLock()

    def _is_fresh(self, fetched_at: float) -> bool:
        return (self._clock() - fetched_at) < self.stale_seconds

    def fetch(self, key: QueryKey, loader: Callable[[], Any]) -> Any:
        """
        Retorna el valor cacheado si está vigente; si no, llama a loader.

        Si la clave se invalida mientras loader corre, el resultado se
        entrega pero no se guarda.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry[1]):
                return entry[0]
            generation = self._generation

        value = loader()

        with self._lock:
            if generation == self._generation:
                self._entries[key] = (value, self._clock())
        return value

    def peek(self, key: QueryKey) -> Any:
        """Valor cacheado vigente o None (sin cargar)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry[1]):
                return entry[0]
            return None

    def __contains__(self, key: QueryKey) -> bool:
        with self._lock:
            return key in self._entries

    def keys(self) -> List[QueryKey]:
        with self._lock:
            return list(self._entries.keys())

    def invalidate(self, prefix: QueryKey) -> int:
        """
        Elimina todas las entradas cuya clave empieza con prefix.

        Returns:
            Cantidad de entradas eliminadas
        """
        prefix = tuple(prefix)
        with self._lock:
            self._generation += 1
            doomed = [k for k in self._entries if k[:len(prefix)] == prefix]
            for k in doomed:
                del self._entries[k]
        if doomed:
            logger.debug("🗑️ Caché invalidada %s (%d entradas)", prefix, len(doomed))
        return len(doomed)

    def invalidate_many(self, prefixes: Iterable[QueryKey]) -> int:
        return sum(self.invalidate(p) for p in prefixes)

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries.clear()

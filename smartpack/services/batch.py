# ==============================================================================
# LOTES - Acumular y reportar
# ==============================================================================
# Un lote ejecuta varias operaciones independientes (ej: agregar 3
# supervisores a una bodega) en un pool de threads.
#
#   - Cada fallo se captura por separado y se acumula con su mensaje
#   - El lote NO aborta ante el primer error
#   - Los éxitos quedan hechos (no hay rollback)
#   - La expiración de sesión no se acumula: se propaga al terminar el lote
#   - El orden del reporte es el de envío, no el de término
#
# Cada operación corre dentro de una copia del contexto del request, así la
# sesión Flask (token) sigue disponible en los threads del pool.
# ==============================================================================

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from smartpack import config
from smartpack.repositories.api_client import SessionExpiredError

logger = logging.getLogger(__name__)


@dataclass
class BatchOperation:
    """
    Operación de un lote.

    Attributes:
        label: Qué se intenta (para logs y reporte)
        error_message: Mensaje para el usuario si falla
        fn: Callable sin argumentos que ejecuta la llamada
    """
    label: str
    error_message: str
    fn: Callable[[], Any]


@dataclass
class BatchOutcome:
    label: str
    ok: bool
    value: Any = None
    error: Optional[str] = None


@dataclass
class BatchReport:
    """Resumen agregado de uno o más lotes."""
    outcomes: List[BatchOutcome] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    title: str = ""
    message: str = ""

    @property
    def succeeded(self) -> List[str]:
        return [o.label for o in self.outcomes if o.ok]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def extend(self, outcomes: List[BatchOutcome]) -> None:
        self.outcomes.extend(outcomes)
        self.errors.extend(o.error for o in outcomes if not o.ok)

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "message": self.message,
            "errors": list(self.errors),
            "succeeded": self.succeeded,
            "hasErrors": self.has_errors,
        }


class BatchRunner:
    """
    Uso:
        runner = BatchRunner()
        outcomes = runner.run([
            BatchOperation('u1', 'No se pudo asignar a Ana Pérez', lambda: ...),
            BatchOperation('u2', 'No se pudo asignar a Juan Soto', lambda: ...),
        ])
    """

    def __init__(self, max_workers: int = config.BATCH_MAX_WORKERS):
        self.max_workers = max_workers

    @staticmethod
    def _execute(op: BatchOperation) -> BatchOutcome:
        try:
            return BatchOutcome(label=op.label, ok=True, value=op.fn())
        except SessionExpiredError:
            raise
        except Exception as e:
            logger.warning("⚠️ Operación '%s' falló: %s", op.label, e)
            return BatchOutcome(label=op.label, ok=False, error=op.error_message)

    def run(self, operations: List[BatchOperation]) -> List[BatchOutcome]:
        """
        Ejecuta todas las operaciones y espera a que terminen.

        Returns:
            Un BatchOutcome por operación, en el orden de envío
        """
        if not operations:
            return []
        workers = max(1, min(self.max_workers, len(operations)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="smartpack-batch") as pool:
            futures = [
                pool.submit(contextvars.copy_context().run, self._execute, op)
                for op in operations
            ]
            outcomes = [f.result() for f in futures]

        failed = sum(1 for o in outcomes if not o.ok)
        if failed:
            logger.warning("⚠️ Lote terminado: %d ok, %d con error",
                           len(outcomes) - failed, failed)
        else:
            logger.info("✅ Lote terminado: %d operaciones", len(outcomes))
        return outcomes

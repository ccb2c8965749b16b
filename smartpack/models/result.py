# ==============================================================================
# RESULT - Resultado uniforme de los casos de uso
# ==============================================================================
# {ok: True, value: T} o {ok: False, error: str}.
# Quien recibe un Result DEBE revisar ok antes de usar value.
# ==============================================================================

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class MutationError(Exception):
    """Un caso de uso terminó con ok=False; el mensaje va al usuario."""
    pass


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    def unwrap(self) -> T:
        """Retorna value o lanza MutationError con el mensaje de error."""
        if not self.ok:
            raise MutationError(self.error or "Error desconocido")
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            value = self.value.to_dict() if hasattr(self.value, "to_dict") else self.value
            return {"ok": True, "value": value}
        return {"ok": False, "error": self.error}


def success(value: Any = None) -> Result:
    return Result(ok=True, value=value)


def failure(error: str) -> Result:
    return Result(ok=False, error=error)

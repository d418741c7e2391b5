from __future__ import annotations

from contextlib import AbstractContextManager
from contextvars import ContextVar, Token
import logging
import time
import uuid

_CORRELATION_ID: ContextVar[str | None] = ContextVar("correlation_id", default=None)

logger = logging.getLogger(__name__)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def get_correlation_id() -> str | None:
    return _CORRELATION_ID.get()


def set_correlation_id(correlation_id: str | None) -> Token[str | None]:
    return _CORRELATION_ID.set(correlation_id)


def reset_correlation_id(token: Token[str | None]) -> None:
    _CORRELATION_ID.reset(token)


class OperationContext(AbstractContextManager["OperationContext"]):
    """Asigna un correlation_id a una operación (drain, importación, exportación).

    Los handlers JSONL leen el id desde el ContextVar, de modo que todas las
    líneas emitidas dentro del bloque quedan agrupadas sin pasar el id a mano.
    """

    def __init__(self, operation_name: str) -> None:
        self.operation_name = operation_name
        self.correlation_id = generate_correlation_id()
        self._token: Token[str | None] | None = None
        self._started = 0.0

    def __enter__(self) -> "OperationContext":
        self._token = set_correlation_id(self.correlation_id)
        self._started = time.perf_counter()
        logger.debug("operation_started name=%s", self.operation_name)
        return self

    def __exit__(self, exc_type: object, exc: object, exc_tb: object) -> None:
        elapsed_ms = (time.perf_counter() - self._started) * 1000
        logger.debug(
            "operation_finished name=%s elapsed_ms=%.1f failed=%s",
            self.operation_name,
            elapsed_ms,
            exc_type is not None,
        )
        if self._token is not None:
            reset_correlation_id(self._token)
        return None

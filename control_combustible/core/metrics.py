from __future__ import annotations

from functools import wraps
from threading import Lock
from time import perf_counter
from typing import Any, Callable


class MetricsRegistry:
    """Contadores y tiempos en memoria; el motor de sync escribe desde su hilo."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: dict[str, int] = {}
        self._timings: dict[str, list[float]] = {}

    def contador(self, nombre: str) -> int:
        with self._lock:
            return self._counters.get(nombre, 0)

    def incrementar(self, nombre: str, valor: int = 1) -> None:
        if valor == 0:
            return
        with self._lock:
            self._counters[nombre] = self._counters.get(nombre, 0) + valor

    def registrar_tiempo(self, nombre: str, milisegundos: float) -> None:
        with self._lock:
            self._timings.setdefault(nombre, []).append(milisegundos)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()

    def snapshot(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            counters = dict(self._counters)
            timings = {name: list(values) for name, values in self._timings.items()}
        return {
            "counters": counters,
            "timings_ms": {
                name: {
                    "count": len(values),
                    "last": values[-1] if values else 0.0,
                    "avg": (sum(values) / len(values)) if values else 0.0,
                }
                for name, values in timings.items()
            },
        }


metrics_registry = MetricsRegistry()


def medir_tiempo(nombre_metrica: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            inicio = perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                metrics_registry.registrar_tiempo(nombre_metrica, (perf_counter() - inicio) * 1000)

        return wrapper

    return decorator

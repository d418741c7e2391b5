from __future__ import annotations

import logging
import socket
from typing import Sequence

logger = logging.getLogger(__name__)

DEFAULT_TARGETS: tuple[tuple[str, int], ...] = (
    ("8.8.8.8", 53),
    ("sheets.googleapis.com", 443),
)


class SocketConnectivityProbe:
    def __init__(
        self,
        targets: Sequence[tuple[str, int]] = DEFAULT_TARGETS,
        *,
        timeout_seconds: float = 3.0,
    ) -> None:
        self._targets = tuple(targets)
        self._timeout_seconds = timeout_seconds

    def is_online(self) -> bool:
        for host, port in self._targets:
            try:
                socket.create_connection((host, port), timeout=self._timeout_seconds).close()
            except OSError:
                logger.debug("Sin conexión con %s:%s", host, port)
                continue
            return True
        return False

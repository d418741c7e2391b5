from __future__ import annotations

from datetime import datetime, timezone


def now_iso() -> str:
    """Marca de tiempo UTC ISO-8601 con sufijo Z; ordena lexicográficamente."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")
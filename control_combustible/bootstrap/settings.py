from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

APP_DIR_NAME = "ControlCombustible"
DEFAULT_SYNC_INTERVAL_SECONDS = 30
DEFAULT_MAX_RETRIES = 5
DEFAULT_HTTP_TIMEOUT_SECONDS = 60


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def resolve_appdata_dir() -> Path:
    env_dir = os.environ.get("LOCALAPPDATA")
    if env_dir:
        base_dir = Path(env_dir)
    else:
        base_dir = Path.home() / ".local" / "share"
    return base_dir / APP_DIR_NAME


def resolve_log_dir() -> Path:
    candidates: list[Path] = []
    env_dir = os.environ.get("CONTROL_COMBUSTIBLE_LOG_DIR")
    if env_dir:
        candidates.append(Path(env_dir))
    candidates.append(project_root() / "logs")
    candidates.append(Path(tempfile.gettempdir()) / APP_DIR_NAME / "logs")

    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
            test_file = candidate / "_write_test.tmp"
            test_file.write_text("ok", encoding="utf-8")
            test_file.unlink(missing_ok=True)
            return candidate
        except OSError:
            continue

    fallback = project_root()
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback


def _positive_int_env(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    try:
        value = int(raw_value)
    except ValueError:
        logger.warning("Valor no numérico en %s=%r; se usa %s", name, raw_value, default)
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class Settings:
    db_path: Path | None
    config_dir: Path
    sync_interval_seconds: int = DEFAULT_SYNC_INTERVAL_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    http_timeout_seconds: int = DEFAULT_HTTP_TIMEOUT_SECONDS


def load_settings() -> Settings:
    db_path_env = os.environ.get("CONTROL_COMBUSTIBLE_DB_PATH", "").strip()
    return Settings(
        db_path=Path(db_path_env) if db_path_env else None,
        config_dir=resolve_appdata_dir(),
        sync_interval_seconds=_positive_int_env("CONTROL_COMBUSTIBLE_SYNC_INTERVAL", DEFAULT_SYNC_INTERVAL_SECONDS),
        max_retries=_positive_int_env("CONTROL_COMBUSTIBLE_MAX_RETRIES", DEFAULT_MAX_RETRIES),
        http_timeout_seconds=_positive_int_env("CONTROL_COMBUSTIBLE_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SECONDS),
    )

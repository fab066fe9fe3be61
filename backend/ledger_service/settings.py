from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    database_url: str | None
    max_retries: int
    store_timeout_seconds: float
    log_level: str

    @property
    def uses_sql(self) -> bool:
        return self.database_url is not None


def _env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_int(name: str, default: int, *, minimum: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number (got {raw!r})") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0 (got {value})")
    return value


def load_settings() -> Settings:
    # 1) env var, 2) default: backend/data
    data_env = _env("LEDGER_DATA_DIR")
    if data_env:
        data_dir = Path(data_env).expanduser()
    else:
        # ledger_service/settings.py -> ledger_service/ -> backend/
        data_dir = Path(__file__).resolve().parents[1] / "data"

    log_level = (_env("LEDGER_LOG_LEVEL") or "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ValueError(f"LEDGER_LOG_LEVEL is not a logging level (got {log_level!r})")

    return Settings(
        data_dir=data_dir,
        database_url=_env("LEDGER_DATABASE_URL"),
        max_retries=_env_int("LEDGER_MAX_RETRIES", 5, minimum=1),
        store_timeout_seconds=_env_float("LEDGER_STORE_TIMEOUT_SECONDS", 10.0),
        log_level=log_level,
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not any(getattr(h, "_ledger_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        handler._ledger_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level)

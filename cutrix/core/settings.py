from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


@dataclass(frozen=True)
class Settings:
    store_url: str = ""
    store_token: str = ""
    store_timeout: float = 10.0
    log_level: str = "INFO"
    admin_name: str = ""
    admin_password: str = ""
    cors_origins: tuple[str, ...] = ("http://localhost:3000", "http://127.0.0.1:3000")


def _load_defaults(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fp:
        return yaml.safe_load(fp) or {}


def load_settings(path: Path | None = None) -> Settings:
    """Read ``defaults.yaml`` and apply environment overrides."""

    data = _load_defaults(path or CONFIG_DIR / "defaults.yaml")
    store = data.get("store") or {}
    logging_section = data.get("logging") or {}
    cors = data.get("cors") or {}
    bootstrap = data.get("bootstrap") or {}

    store_url = os.getenv("CUTRIX_STORE_URL") or str(store.get("url") or "")
    store_token = os.getenv("CUTRIX_STORE_TOKEN") or str(store.get("token") or "")
    timeout_raw = os.getenv("CUTRIX_STORE_TIMEOUT") or store.get("timeout_seconds") or 10
    try:
        store_timeout = float(timeout_raw)
    except (TypeError, ValueError):
        store_timeout = 10.0
    log_level = os.getenv("CUTRIX_LOG_LEVEL") or str(logging_section.get("level") or "INFO")
    admin_name = os.getenv("CUTRIX_ADMIN_NAME") or str(bootstrap.get("admin_name") or "")
    admin_password = os.getenv("CUTRIX_ADMIN_PASSWORD") or str(bootstrap.get("admin_password") or "")

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = [str(origin) for origin in cors.get("origins") or []]
    if not origins:
        origins = list(Settings.cors_origins)

    return Settings(
        store_url=store_url,
        store_token=store_token,
        store_timeout=store_timeout,
        log_level=log_level.upper(),
        admin_name=admin_name,
        admin_password=admin_password,
        cors_origins=tuple(origins),
    )

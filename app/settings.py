"""Environment-driven configuration for the hub."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

DEFAULT_API_URL = "https://api.airtable.com/v0"


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    api_key: str
    base_id: str
    api_url: str = DEFAULT_API_URL
    poll_ms: int = 10000
    max_records: int = 50
    http_timeout_s: float = 30.0
    use_memory: bool = False
    cors_origins: frozenset = field(default_factory=frozenset)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and bool(self.base_id)


def load_settings(env_file: Path | None = None) -> Settings:
    _load_env_file(env_file or ROOT / "app" / ".env")
    return Settings(
        api_key=os.getenv("AIRTABLE_API_KEY", "").strip(),
        base_id=os.getenv("AIRTABLE_BASE_ID", "").strip(),
        api_url=(os.getenv("AIRTABLE_API_URL", "").strip() or DEFAULT_API_URL).rstrip("/"),
        poll_ms=_int_env("HUB_POLL_MS", 10000),
        max_records=_int_env("HUB_MAX_RECORDS", 50),
        http_timeout_s=float(_int_env("HUB_HTTP_TIMEOUT_S", 30)),
        use_memory=os.getenv("HUB_USE_MEMORY", "0").strip() == "1",
        cors_origins=frozenset(
            origin.strip().rstrip("/")
            for origin in os.getenv("HUB_CORS_ORIGINS", "").split(",")
            if origin.strip()
        ),
    )

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class GatewayConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    api_prefix: str = "/api"
    rate_limit_max: int = 100
    rate_limit_window_s: float = 60.0
    cors_allow_origins: tuple[str, ...] = ("*",)
    max_body_bytes: int = 100 * 1024


def _read_int(e: dict[str, Any], name: str, default: int) -> int:
    raw = (e.get(name) or "").strip()
    try:
        return int(raw) if raw else default
    except Exception:
        return default


def _read_float(e: dict[str, Any], name: str, default: float) -> float:
    raw = (e.get(name) or "").strip()
    try:
        value = float(raw) if raw else default
    except Exception:
        return default
    return value if value > 0 else default


def _read_origins(e: dict[str, Any]) -> tuple[str, ...]:
    raw = (e.get("CORS_ALLOW_ORIGINS") or "").strip()
    if not raw:
        return ("*",)
    return tuple(o.strip() for o in raw.split(",") if o.strip()) or ("*",)


def _read_prefix(e: dict[str, Any]) -> str:
    raw = (e.get("API_PREFIX") or "/api").strip().rstrip("/")
    if raw and not raw.startswith("/"):
        raw = "/" + raw
    return raw


def load_config(env: dict[str, str] | None = None) -> GatewayConfig:
    e: dict[str, Any] = dict(os.environ)
    if env:
        e.update(env)
    return GatewayConfig(
        host=e.get("HOST", "0.0.0.0"),
        port=_read_int(e, "PORT", 3000),
        api_prefix=_read_prefix(e),
        # Zero disables rate limiting
        rate_limit_max=max(0, _read_int(e, "RATE_LIMIT_MAX", 100)),
        rate_limit_window_s=_read_float(e, "RATE_LIMIT_WINDOW_S", 60.0),
        cors_allow_origins=_read_origins(e),
        max_body_bytes=max(1, _read_int(e, "MAX_BODY_BYTES", 100 * 1024)),
    )


__all__ = ["GatewayConfig", "load_config"]

# src/soldracula/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

Json = Dict[str, Any]

# Ledger JSON-RPC endpoint per network profile.
NETWORK_PROFILES: Dict[str, str] = {
    "dev": "http://localhost:8899",
    "prod": "https://api.devnet.solana.com",
}

_ALLOWED_MODES = set(NETWORK_PROFILES)


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_float(v: Any, default: float) -> float:
    try:
        return float(v)
    except Exception:
        return float(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


@dataclass(frozen=True)
class ServiceConfig:
    mode: str  # "dev" | "prod"

    rpc_url: str
    story_api_url: str
    storage_network: str

    # Secret key file (JSON array of 64 ints). Empty when not booting runtime.
    wallet_path: str

    dedup_ttl_s: int
    confirm_timeout_s: float
    http_timeout_s: float

    # Opt-in per-asset mutual exclusion. Off reproduces the baseline race
    # between concurrent requests for the same asset.
    serialize_asset_appends: bool

    cors_origins: str

    api_host: str
    api_port: int

    log_level: str
    metrics_enabled: bool


def _check_url(name: str, url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ValueError(f"{name} must be an http(s) URL; got: {url!r}")


def validate_service_config(cfg: ServiceConfig) -> None:
    """Fail-fast validation for operator config."""

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {sorted(_ALLOWED_MODES)}; got: {cfg.mode!r}")

    _check_url("rpc_url", cfg.rpc_url)
    _check_url("story_api_url", cfg.story_api_url)

    if int(cfg.dedup_ttl_s) <= 0:
        raise ValueError(f"dedup_ttl_s must be > 0; got: {cfg.dedup_ttl_s}")

    if float(cfg.confirm_timeout_s) <= 0:
        raise ValueError(f"confirm_timeout_s must be > 0; got: {cfg.confirm_timeout_s}")

    if float(cfg.http_timeout_s) <= 0:
        raise ValueError(f"http_timeout_s must be > 0; got: {cfg.http_timeout_s}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")


def default_service_config(mode: str = "prod") -> ServiceConfig:
    m = (mode or "prod").strip().lower()
    return ServiceConfig(
        mode=m,
        rpc_url=NETWORK_PROFILES.get(m, NETWORK_PROFILES["prod"]),
        story_api_url="http://127.0.0.1:9100",
        storage_network="devnet",
        wallet_path="",
        dedup_ttl_s=60 * 60,
        confirm_timeout_s=60.0,
        http_timeout_s=30.0,
        serialize_asset_appends=False,
        cors_origins="",
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
        metrics_enabled=False,
    )


def _apply_overrides(base: ServiceConfig, raw: Json) -> ServiceConfig:
    mode = _as_str(raw.get("mode"), base.mode).strip().lower()

    # Switching profile moves the default endpoint along with it unless the
    # endpoint itself is overridden.
    rpc_default = base.rpc_url
    if mode != base.mode and base.rpc_url == NETWORK_PROFILES.get(base.mode):
        rpc_default = NETWORK_PROFILES.get(mode, base.rpc_url)

    return replace(
        base,
        mode=mode,
        rpc_url=_as_str(raw.get("rpc_url"), rpc_default),
        story_api_url=_as_str(raw.get("story_api_url"), base.story_api_url).rstrip("/"),
        storage_network=_as_str(raw.get("storage_network"), base.storage_network),
        wallet_path=_as_str(raw.get("wallet_path"), base.wallet_path),
        dedup_ttl_s=_as_int(raw.get("dedup_ttl_s"), base.dedup_ttl_s),
        confirm_timeout_s=_as_float(raw.get("confirm_timeout_s"), base.confirm_timeout_s),
        http_timeout_s=_as_float(raw.get("http_timeout_s"), base.http_timeout_s),
        serialize_asset_appends=_as_bool(raw.get("serialize_asset_appends"), base.serialize_asset_appends),
        cors_origins=_as_str(raw.get("cors_origins"), base.cors_origins),
        api_host=_as_str(raw.get("api_host"), base.api_host),
        api_port=_as_int(raw.get("api_port"), base.api_port),
        log_level=_as_str(raw.get("log_level"), base.log_level).strip().upper(),
        metrics_enabled=_as_bool(raw.get("metrics_enabled"), base.metrics_enabled),
    )


def read_service_config_file(path: str, base: Optional[ServiceConfig] = None) -> ServiceConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("service config must be a JSON object")
    return _apply_overrides(base or default_service_config(), raw)


def _env_overrides() -> Json:
    env = os.environ
    raw: Json = {
        "mode": env.get("SOLDRACULA_MODE"),
        "rpc_url": env.get("SOLDRACULA_RPC_URL"),
        "story_api_url": env.get("SOLDRACULA_STORY_API_URL"),
        "storage_network": env.get("SOLDRACULA_STORAGE_NETWORK"),
        # ANCHOR_WALLET is the conventional variable for the keypair file.
        "wallet_path": env.get("SOLDRACULA_WALLET_PATH") or env.get("ANCHOR_WALLET"),
        "dedup_ttl_s": env.get("SOLDRACULA_DEDUP_TTL_S"),
        "confirm_timeout_s": env.get("SOLDRACULA_CONFIRM_TIMEOUT_S"),
        "http_timeout_s": env.get("SOLDRACULA_HTTP_TIMEOUT_S"),
        "serialize_asset_appends": env.get("SOLDRACULA_SERIALIZE_ASSET_APPENDS"),
        "cors_origins": env.get("SOLDRACULA_CORS_ORIGINS"),
        "api_host": env.get("SOLDRACULA_API_HOST"),
        "api_port": env.get("SOLDRACULA_API_PORT"),
        "log_level": env.get("SOLDRACULA_LOG_LEVEL"),
        "metrics_enabled": env.get("SOLDRACULA_METRICS_ENABLED"),
    }
    return {k: v for k, v in raw.items() if v is not None}


def load_service_config(*, config_path: Optional[str] = None) -> ServiceConfig:
    """Resolve config once: defaults, then JSON file, then environment."""
    cfg = default_service_config()

    p = config_path or os.environ.get("SOLDRACULA_CONFIG_PATH")
    if p:
        cfg = read_service_config_file(p, cfg)

    cfg = _apply_overrides(cfg, _env_overrides())
    validate_service_config(cfg)
    return cfg


def parse_cors_origins(cfg: ServiceConfig) -> List[str]:
    """Parse CORS origins with production-safe defaults.

    Policy:
      - empty -> any origin in dev mode, CORS disabled in prod mode
      - wildcard "*" is rejected in prod mode
    """
    raw = (cfg.cors_origins or "").strip()
    if not raw:
        return ["*"] if cfg.mode == "dev" else []

    origins = [o.strip() for o in raw.split(",") if o.strip()]

    if "*" in origins:
        if cfg.mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in SOLDRACULA_CORS_ORIGINS."
            )
        return ["*"]

    return origins

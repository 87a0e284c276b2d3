from __future__ import annotations

import json

import pytest

from soldracula.config import (
    NETWORK_PROFILES,
    default_service_config,
    load_service_config,
    parse_cors_origins,
)

_ENV = [
    "SOLDRACULA_MODE",
    "SOLDRACULA_RPC_URL",
    "SOLDRACULA_CONFIG_PATH",
    "SOLDRACULA_DEDUP_TTL_S",
    "SOLDRACULA_WALLET_PATH",
    "ANCHOR_WALLET",
    "SOLDRACULA_SERIALIZE_ASSET_APPENDS",
    "SOLDRACULA_CORS_ORIGINS",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for k in _ENV:
        monkeypatch.delenv(k, raising=False)


def test_defaults_are_prod_profile() -> None:
    cfg = load_service_config()
    assert cfg.mode == "prod"
    assert cfg.rpc_url == NETWORK_PROFILES["prod"]
    assert cfg.dedup_ttl_s == 3600
    assert cfg.serialize_asset_appends is False


def test_dev_mode_switches_endpoint(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOLDRACULA_MODE", "dev")
    assert load_service_config().rpc_url == "http://localhost:8899"


def test_explicit_rpc_url_wins_over_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOLDRACULA_MODE", "dev")
    monkeypatch.setenv("SOLDRACULA_RPC_URL", "https://rpc.example.com")
    assert load_service_config().rpc_url == "https://rpc.example.com"


def test_anchor_wallet_is_honoured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANCHOR_WALLET", "/keys/id.json")
    assert load_service_config().wallet_path == "/keys/id.json"

    monkeypatch.setenv("SOLDRACULA_WALLET_PATH", "/keys/other.json")
    assert load_service_config().wallet_path == "/keys/other.json"


def test_config_file_then_env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "soldracula.json"
    p.write_text(json.dumps({"mode": "dev", "dedup_ttl_s": 120, "serialize_asset_appends": True}), encoding="utf-8")
    monkeypatch.setenv("SOLDRACULA_CONFIG_PATH", str(p))
    monkeypatch.setenv("SOLDRACULA_DEDUP_TTL_S", "90")

    cfg = load_service_config()
    assert cfg.mode == "dev"
    assert cfg.rpc_url == NETWORK_PROFILES["dev"]
    assert cfg.serialize_asset_appends is True
    assert cfg.dedup_ttl_s == 90


@pytest.mark.parametrize(
    "env,value",
    [
        ("SOLDRACULA_MODE", "staging"),
        ("SOLDRACULA_DEDUP_TTL_S", "0"),
        ("SOLDRACULA_RPC_URL", "ftp://ledger"),
    ],
)
def test_invalid_config_fails_fast(monkeypatch: pytest.MonkeyPatch, env: str, value: str) -> None:
    monkeypatch.setenv(env, value)
    with pytest.raises(ValueError):
        load_service_config()


def test_cors_wildcard_rejected_in_prod() -> None:
    from dataclasses import replace

    prod = replace(default_service_config("prod"), cors_origins="*")
    with pytest.raises(RuntimeError):
        parse_cors_origins(prod)

    dev = replace(default_service_config("dev"), cors_origins="*")
    assert parse_cors_origins(dev) == ["*"]

    explicit = replace(prod, cors_origins="https://a.example, https://b.example")
    assert parse_cors_origins(explicit) == ["https://a.example", "https://b.example"]


def test_cors_default_is_open_in_dev_and_closed_in_prod() -> None:
    assert parse_cors_origins(default_service_config("dev")) == ["*"]
    assert parse_cors_origins(default_service_config("prod")) == []


def test_dotenv_loads_once_without_overriding(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    import soldracula.env as env_mod

    p = tmp_path / ".env"
    p.write_text("SOLDRACULA_MODE=dev\nSOLDRACULA_DEDUP_TTL_S=42\n", encoding="utf-8")

    monkeypatch.setattr(env_mod, "_LOADED", False)
    monkeypatch.setenv("SOLDRACULA_DEDUP_TTL_S", "7")
    # Register SOLDRACULA_MODE with monkeypatch so the value loaded from the file is undone.
    monkeypatch.setenv("SOLDRACULA_MODE", "prod")
    monkeypatch.delenv("SOLDRACULA_MODE")

    assert env_mod.load_dotenv_if_present(str(p)) is True
    assert env_mod.load_dotenv_if_present(str(p)) is False

    cfg = load_service_config()
    assert cfg.mode == "dev"
    assert cfg.dedup_ttl_s == 7

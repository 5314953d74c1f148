"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``WALLETLEDGER_``, nested via ``__``)
2. YAML config file (``config_path`` or ``WALLETLEDGER_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from decimal import Decimal
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_PREFIX = "WALLETLEDGER_"


def _section(name: str) -> SettingsConfigDict:
    """Settings for one config section, read from ``WALLETLEDGER_<NAME>__*``."""
    return SettingsConfigDict(env_prefix=f"{ENV_PREFIX}{name.upper()}__", case_sensitive=False)


# ---------------------------------------------------------------------------
# Choices
# ---------------------------------------------------------------------------


class CacheEngine(enum.StrEnum):
    """Supported persisted-state backends."""

    MEMORY = "memory"
    REDIS = "redis"


# ---------------------------------------------------------------------------
# Section configs
# ---------------------------------------------------------------------------


class BackendConfig(BaseSettings):
    """Backend ledger API settings."""

    model_config = _section("backend")

    url: str = "http://localhost:3000/api"
    timeout: float = 30.0


def _default_fallback_rates() -> dict[str, Decimal]:
    return {
        "usd": Decimal("3000"),
        "inr": Decimal("250000"),
        "eur": Decimal("2800"),
        "gbp": Decimal("2400"),
    }


class RatesConfig(BaseSettings):
    """Exchange rate provider settings."""

    model_config = _section("rates")

    url: str = "https://api.coingecko.com/api/v3"
    base_asset: str = "ethereum"
    vs_currencies: list[str] = Field(default_factory=lambda: ["usd", "inr", "eur", "gbp"])
    fallback_rates: dict[str, Decimal] = Field(
        default_factory=_default_fallback_rates,
        description="Rates installed (marked stale) when the provider is unreachable",
    )
    timeout: float = 10.0


class ChainConfig(BaseSettings):
    """Transferred asset settings."""

    model_config = _section("chain")

    currency: str = "ETH"
    decimals: int = Field(default=18, ge=0, le=36)


class SignerConfig(BaseSettings):
    """JSON-RPC signer settings."""

    model_config = _section("signer")

    rpc_url: str = "http://localhost:8545"
    receipt_poll_interval: float = 2.0


class CacheConfig(BaseSettings):
    """Persisted local state settings."""

    model_config = _section("cache")

    engine: CacheEngine = Field(
        default=CacheEngine.MEMORY,
        description="Cache backend: memory or redis",
    )
    url: str = "redis://localhost:6379/0"
    max_connections: int = 10
    key_prefix: str = "wallet_ledger:"


class HistoryConfig(BaseSettings):
    """Transaction history settings."""

    model_config = _section("history")

    limit: int = Field(default=5, ge=1)


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = _section("metrics")

    enabled: bool = True


class TaskConfig(BaseSettings):
    """Background task settings."""

    model_config = _section("task")

    enabled: bool = True
    rates_refresh_period: float = 60.0


class NotificationsConfig(BaseSettings):
    """Notification fan-out settings."""

    model_config = _section("notifications")

    enabled: bool = True


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _read_yaml(path: str | Path) -> dict[str, Any]:
    """Return the mapping stored in *path*; a missing or non-mapping file yields ``{}``."""
    p = Path(path)
    if not p.is_file():
        return {}
    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}


def _overlay(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *override* onto *base*; None in *override* keeps *base*."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _overlay(merged[key], value)
        elif value is not None:
            merged[key] = value
    return merged


class AppConfig(BaseSettings):
    """Top-level configuration.

    Sources, highest priority first: ``WALLETLEDGER_*`` environment
    variables, the YAML file named by ``config_path``, built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    version: str = "0.1.0"
    config_path: str = ""

    backend: BackendConfig = Field(default_factory=BackendConfig)
    rates: RatesConfig = Field(default_factory=RatesConfig)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    signer: SignerConfig = Field(default_factory=SignerConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    task: TaskConfig = Field(default_factory=TaskConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)

    @model_validator(mode="before")
    @classmethod
    def _apply_config_file(cls, values: dict[str, Any]) -> dict[str, Any]:
        config_path = values.get("config_path")
        if not config_path:
            return values
        return _overlay(_read_yaml(config_path), values)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Load ``AppConfig`` with *path* as the YAML layer."""
        return cls(config_path=str(path))

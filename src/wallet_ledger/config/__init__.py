"""Configuration — pydantic-settings tree with YAML overlay."""

from wallet_ledger.config.settings import AppConfig, CacheEngine

__all__ = ["AppConfig", "CacheEngine"]

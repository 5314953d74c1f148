"""Persisted local state: named fields in one record, in memory or in a Redis hash."""

from wallet_ledger.cache.client import CacheClient

__all__ = ["CacheClient"]

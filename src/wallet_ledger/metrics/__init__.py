"""Prometheus metrics for wallet flows."""

from __future__ import annotations

from wallet_ledger.metrics.collector import WalletMetrics

__all__ = ["WalletMetrics"]

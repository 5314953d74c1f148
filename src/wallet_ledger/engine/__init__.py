"""Engine — composition root wiring clients, state and workflows."""

from wallet_ledger.engine.client import WalletLedgerEngine

__all__ = ["WalletLedgerEngine"]

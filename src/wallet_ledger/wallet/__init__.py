"""Wallet — canonical identity state, reconciliation and signature binding."""

from wallet_ledger.wallet.binding import BindingProtocol
from wallet_ledger.wallet.identity import IdentityReconciler
from wallet_ledger.wallet.models import (
    BindingState,
    IdentitySource,
    SignatureBinding,
    WalletIdentity,
)
from wallet_ledger.wallet.state import WalletState

__all__ = [
    "BindingProtocol",
    "BindingState",
    "IdentityReconciler",
    "IdentitySource",
    "SignatureBinding",
    "WalletIdentity",
    "WalletState",
]

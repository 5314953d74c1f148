"""Error taxonomy — base class, external collaborator errors, pre-defined instances."""

from wallet_ledger.errors.external_errors import (
    InsufficientFundsError,
    LedgerError,
    RatesError,
    SignerError,
    SignerUnavailableError,
    UserRejectedError,
)
from wallet_ledger.errors.wallet_errors import WalletError

__all__ = [
    "InsufficientFundsError",
    "LedgerError",
    "RatesError",
    "SignerError",
    "SignerUnavailableError",
    "UserRejectedError",
    "WalletError",
]

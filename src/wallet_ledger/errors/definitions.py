"""Pre-defined error instances."""

from __future__ import annotations

from wallet_ledger.errors.wallet_errors import WalletError

# -- Session ---------------------------------------------------------------

ErrMissingSession = WalletError(
    "missing authentication token", status_code=401, code="missing-session"
)
ErrSessionExpired = WalletError(
    "session expired, please log in again", status_code=401, code="session-expired"
)

# -- Validation ------------------------------------------------------------

ErrIdentityMissing = WalletError(
    "no wallet is connected to this account", status_code=400, code="identity-missing"
)
ErrInvalidAddress = WalletError(
    "recipient is not a valid address", status_code=400, code="invalid-address"
)
ErrInvalidAmount = WalletError(
    "amount must be a positive number", status_code=400, code="invalid-amount"
)

# -- Binding ---------------------------------------------------------------

ErrWalletAlreadyConnected = WalletError(
    "a wallet is already connected to this account",
    status_code=409,
    code="wallet-already-connected",
)
ErrBindingInProgress = WalletError(
    "a wallet connection is already in progress", status_code=409, code="binding-in-progress"
)
ErrAddressAlreadyBound = WalletError(
    "this wallet address is already linked to another account",
    status_code=409,
    code="address-already-bound",
)
ErrBindingFailed = WalletError(
    "failed to connect wallet to account", status_code=502, code="binding-failed"
)

# -- Payment ---------------------------------------------------------------

ErrPaymentInProgress = WalletError(
    "another payment is already in progress", status_code=409, code="payment-busy"
)
ErrTransferReverted = WalletError(
    "transaction failed on-chain", status_code=422, code="transfer-reverted"
)

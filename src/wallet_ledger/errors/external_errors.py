"""Errors raised by the external collaborators: ledger backend, signer, rate provider."""

from __future__ import annotations

from wallet_ledger.errors.wallet_errors import WalletError

# Status-derived codes for ledger responses
_LEDGER_CODES = {
    401: "session-expired",
    404: "not-found",
    409: "conflict",
}


class LedgerError(WalletError):
    """Error from the backend ledger API (HTTP status or transport failure)."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(
            message,
            status_code=status_code,
            code=_LEDGER_CODES.get(status_code, "ledger-error"),
        )

    @property
    def is_unauthorized(self) -> bool:
        """True when the backend rejected the bearer credential."""
        return self.status_code == 401

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class RatesError(WalletError):
    """Error from the exchange rate provider."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code="rates-error")


class SignerError(WalletError):
    """Base error for the external signer capability."""

    def __init__(self, message: str, *, code: str = "signer-error") -> None:
        super().__init__(message, status_code=502, code=code)


class SignerUnavailableError(SignerError):
    """No signer is installed, reachable, or exposing an account."""

    def __init__(self, message: str = "no wallet signer is available") -> None:
        super().__init__(message, code="signer-unavailable")


class UserRejectedError(SignerError):
    """The user declined the signature or transfer request."""

    def __init__(self, message: str = "request was declined in the wallet") -> None:
        super().__init__(message, code="user-declined")


class InsufficientFundsError(SignerError):
    """The signing account cannot cover the transfer value plus fees."""

    def __init__(self, message: str = "insufficient funds for transfer") -> None:
        super().__init__(message, code="insufficient-funds")

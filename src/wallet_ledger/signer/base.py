"""Signer capability contract.

The signer is external: it owns the keys, asks the user for approval and
talks to the network. This package only consumes it. Implementations raise
:class:`~wallet_ledger.errors.external_errors.SignerUnavailableError`,
:class:`~wallet_ledger.errors.external_errors.UserRejectedError` and
:class:`~wallet_ledger.errors.external_errors.InsufficientFundsError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

RECEIPT_STATUS_SUCCESS = 1


@dataclass(frozen=True)
class TransferReceipt:
    """Execution receipt of a broadcast transfer.

    Attributes:
        tx_hash: Transaction hash (hex).
        status: Execution status; 1 means success.
        block_number: Block that included the transaction.
    """

    tx_hash: str
    status: int
    block_number: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == RECEIPT_STATUS_SUCCESS

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> TransferReceipt:
        """Create a receipt from an ``eth_getTransactionReceipt`` result."""
        return cls(
            tx_hash=data.get("transactionHash", ""),
            status=_hex_to_int(data.get("status")),
            block_number=_hex_to_int(data.get("blockNumber")),
        )


@runtime_checkable
class Signer(Protocol):
    """External signing capability.

    Every coroutine may suspend indefinitely while the user decides; callers
    impose no timeout.
    """

    @property
    def is_available(self) -> bool:
        """Whether the capability is installed and reachable right now."""
        ...

    async def get_active_account(self) -> str | None:
        """Return the currently selected account, or None."""
        ...

    async def sign_message(self, message: str, address: str) -> str:
        """Sign *message* with *address* and return the signature (hex)."""
        ...

    async def send_transfer(self, to_address: str, value: int) -> str:
        """Broadcast a transfer of exactly *value* smallest units; return the tx hash."""
        ...

    async def wait_for_receipt(self, tx_hash: str) -> TransferReceipt:
        """Suspend until the transfer is included and return its receipt."""
        ...

    async def get_balance(self, address: str) -> int:
        """Return the balance of *address* in smallest units."""
        ...


def _hex_to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(str(value), 16)

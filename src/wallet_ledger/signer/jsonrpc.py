"""JSON-RPC signer: delegates signing and broadcast to an Ethereum node or wallet bridge.

Uses the standard methods:
- eth_accounts: active account
- personal_sign: message signature
- eth_sendTransaction: value transfer (the endpoint signs and broadcasts)
- eth_getTransactionReceipt: confirmation
- eth_getBalance: balance

Key material never passes through this client.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import TYPE_CHECKING, Any

import httpx

from wallet_ledger.errors.external_errors import (
    InsufficientFundsError,
    SignerError,
    SignerUnavailableError,
    UserRejectedError,
)
from wallet_ledger.signer.base import TransferReceipt

if TYPE_CHECKING:
    from wallet_ledger.config.settings import SignerConfig

logger = logging.getLogger(__name__)

# EIP-1193 provider error codes
_USER_REJECTED = 4001
_UNAVAILABLE_CODES = frozenset({4100, 4200, 4900, 4901})


class _TransientSignerError(SignerUnavailableError):
    """Network failure or 5xx from the endpoint; worth retrying while polling."""


class JsonRpcSigner:
    """Async JSON-RPC client implementing the :class:`Signer` protocol.

    Usage::

        signer = JsonRpcSigner(config.signer)
        await signer.connect()
        try:
            tx_hash = await signer.send_transfer("0x...", 10**18)
            receipt = await signer.wait_for_receipt(tx_hash)
        finally:
            await signer.close()
    """

    def __init__(
        self,
        config: SignerConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._config.rpc_url,
            headers={"Content-Type": "application/json"},
            timeout=None,  # approval prompts may take arbitrarily long
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_available(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Signer protocol
    # ------------------------------------------------------------------

    async def get_active_account(self) -> str | None:
        accounts = await self._call("eth_accounts", [])
        if isinstance(accounts, list) and accounts:
            return str(accounts[0])
        return None

    async def sign_message(self, message: str, address: str) -> str:
        payload = "0x" + message.encode("utf-8").hex()
        return str(await self._call("personal_sign", [payload, address]))

    async def send_transfer(self, to_address: str, value: int) -> str:
        sender = await self.get_active_account()
        if sender is None:
            raise SignerUnavailableError("signer has no active account")
        tx = {"from": sender, "to": to_address, "value": hex(value)}
        return str(await self._call("eth_sendTransaction", [tx]))

    async def wait_for_receipt(self, tx_hash: str) -> TransferReceipt:
        """Poll for the receipt until the transaction is included.

        There is no deadline. Network failures and 5xx answers are logged and
        retried. A closed signer, a disconnected provider and RPC errors
        propagate.
        """
        while True:
            try:
                result = await self._call("eth_getTransactionReceipt", [tx_hash])
            except _TransientSignerError as exc:
                logger.warning("Receipt poll for %s failed, retrying: %s", tx_hash, exc.message)
                result = None
            if isinstance(result, dict):
                return TransferReceipt.from_rpc(result)
            await asyncio.sleep(self._config.receipt_poll_interval)

    async def get_balance(self, address: str) -> int:
        result = await self._call("eth_getBalance", [address, "latest"])
        return int(str(result), 16)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            raise SignerUnavailableError("signer not connected")
        return self._client

    async def _call(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call and return its ``result``.

        Raises:
            SignerUnavailableError: Transport failure or provider disconnected.
            UserRejectedError: The user declined (EIP-1193 code 4001).
            InsufficientFundsError: The node reports insufficient funds.
            SignerError: Any other RPC error.
        """
        client = self._ensure_connected()
        request = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await client.post("", json=request)
        except httpx.HTTPError as exc:
            raise _TransientSignerError(f"signer unreachable: {exc}") from exc

        if response.is_server_error:
            raise _TransientSignerError(f"signer {method} failed ({response.status_code})")
        if not response.is_success:
            raise SignerUnavailableError(f"signer {method} failed ({response.status_code})")
        try:
            body = response.json()
        except ValueError as exc:
            raise SignerError(f"signer {method} returned invalid JSON") from exc

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            self._raise_rpc_error(method, error)
        return body.get("result") if isinstance(body, dict) else None

    @staticmethod
    def _raise_rpc_error(method: str, error: Any) -> None:
        if not isinstance(error, dict):
            raise SignerError(f"signer {method} failed: {error}")
        code = error.get("code")
        message = str(error.get("message", "unknown error"))
        if code == _USER_REJECTED:
            raise UserRejectedError(message)
        if code in _UNAVAILABLE_CODES:
            raise SignerUnavailableError(message)
        if "insufficient funds" in message.lower():
            raise InsufficientFundsError(message)
        raise SignerError(f"signer {method} failed: {message}")

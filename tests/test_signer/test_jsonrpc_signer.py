"""Tests for the JSON-RPC signer, using an httpx mock transport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from wallet_ledger.config.settings import SignerConfig
from wallet_ledger.errors.external_errors import (
    InsufficientFundsError,
    SignerError,
    SignerUnavailableError,
    UserRejectedError,
)
from wallet_ledger.signer.base import Signer, TransferReceipt
from wallet_ledger.signer.jsonrpc import JsonRpcSigner

ACCOUNT = "0x" + "a" * 40
RECIPIENT = "0x" + "b" * 40
TX = "0x" + "e" * 64

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _rpc(handlers: dict):
    """Build a JSON-RPC handler dispatching on method name.

    Each value is either a result or a callable ``(params) -> response dict``.
    """
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        entry = handlers[body["method"]]
        payload = entry(body["params"]) if callable(entry) else {"result": entry}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **payload})

    return handler, seen


async def _signer(handler) -> JsonRpcSigner:
    signer = JsonRpcSigner(
        SignerConfig(rpc_url="http://node.test", receipt_poll_interval=0),
        transport=httpx.MockTransport(handler),
    )
    await signer.connect()
    return signer


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_implements_protocol(self) -> None:
        assert isinstance(JsonRpcSigner(SignerConfig()), Signer)

    async def test_available_only_when_connected(self) -> None:
        signer = JsonRpcSigner(SignerConfig())
        assert signer.is_available is False
        await signer.connect()
        assert signer.is_available is True
        await signer.close()
        assert signer.is_available is False

    async def test_call_when_closed(self) -> None:
        signer = JsonRpcSigner(SignerConfig())
        with pytest.raises(SignerUnavailableError):
            await signer.get_active_account()


# ---------------------------------------------------------------------------
# Methods
# ---------------------------------------------------------------------------


class TestMethods:
    async def test_active_account(self) -> None:
        handler, _ = _rpc({"eth_accounts": [ACCOUNT]})
        signer = await _signer(handler)
        assert await signer.get_active_account() == ACCOUNT
        await signer.close()

    async def test_no_accounts(self) -> None:
        handler, _ = _rpc({"eth_accounts": []})
        signer = await _signer(handler)
        assert await signer.get_active_account() is None
        await signer.close()

    async def test_sign_message_hex_encodes(self) -> None:
        handler, seen = _rpc({"personal_sign": "0xsig"})
        signer = await _signer(handler)
        assert await signer.sign_message("hi", ACCOUNT) == "0xsig"
        assert seen[0]["params"] == ["0x6869", ACCOUNT]
        await signer.close()

    async def test_send_transfer(self) -> None:
        handler, seen = _rpc({"eth_accounts": [ACCOUNT], "eth_sendTransaction": TX})
        signer = await _signer(handler)
        assert await signer.send_transfer(RECIPIENT, 10**18) == TX
        tx = seen[-1]["params"][0]
        assert tx == {"from": ACCOUNT, "to": RECIPIENT, "value": "0xde0b6b3a7640000"}
        await signer.close()

    async def test_send_transfer_without_account(self) -> None:
        handler, _ = _rpc({"eth_accounts": []})
        signer = await _signer(handler)
        with pytest.raises(SignerUnavailableError):
            await signer.send_transfer(RECIPIENT, 1)
        await signer.close()

    async def test_get_balance(self) -> None:
        handler, seen = _rpc({"eth_getBalance": "0x64"})
        signer = await _signer(handler)
        assert await signer.get_balance(ACCOUNT) == 100
        assert seen[0]["params"] == [ACCOUNT, "latest"]
        await signer.close()

    async def test_wait_for_receipt_polls_until_included(self) -> None:
        answers = iter([None, None, {"transactionHash": TX, "status": "0x1", "blockNumber": "0x10"}])
        handler, seen = _rpc({"eth_getTransactionReceipt": lambda params: {"result": next(answers)}})
        signer = await _signer(handler)
        receipt = await signer.wait_for_receipt(TX)
        assert receipt == TransferReceipt(tx_hash=TX, status=1, block_number=16)
        assert receipt.succeeded
        assert len(seen) == 3
        await signer.close()

    async def test_reverted_receipt(self) -> None:
        handler, _ = _rpc({"eth_getTransactionReceipt": {"transactionHash": TX, "status": "0x0"}})
        signer = await _signer(handler)
        receipt = await signer.wait_for_receipt(TX)
        assert not receipt.succeeded
        await signer.close()

    async def test_wait_for_receipt_retries_server_errors(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ReadTimeout("slow", request=request)
            if calls == 2:
                return httpx.Response(502)
            body = json.loads(request.content)
            result = {"transactionHash": TX, "status": "0x1"}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

        signer = await _signer(handler)
        receipt = await signer.wait_for_receipt(TX)
        assert receipt.succeeded
        assert calls == 3
        await signer.close()

    async def test_wait_for_receipt_stops_when_signer_closed(self) -> None:
        polled = asyncio.Event()

        def pending(params: list) -> dict:
            polled.set()
            return {"result": None}

        handler, _ = _rpc({"eth_getTransactionReceipt": pending})
        signer = JsonRpcSigner(
            SignerConfig(rpc_url="http://node.test", receipt_poll_interval=0.01),
            transport=httpx.MockTransport(handler),
        )
        await signer.connect()
        waiting = asyncio.create_task(signer.wait_for_receipt(TX))
        await asyncio.wait_for(polled.wait(), timeout=1)

        await signer.close()

        with pytest.raises(SignerUnavailableError, match="not connected"):
            await asyncio.wait_for(waiting, timeout=1)

    @pytest.mark.parametrize("code", [4900, 4901])
    async def test_wait_for_receipt_stops_when_provider_disconnects(self, code: int) -> None:
        handler, seen = _rpc({"eth_getTransactionReceipt": _error(code, "disconnected")})
        signer = await _signer(handler)
        with pytest.raises(SignerUnavailableError, match="disconnected"):
            await asyncio.wait_for(signer.wait_for_receipt(TX), timeout=1)
        assert len(seen) == 1
        await signer.close()


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def _error(code: int, message: str):
    return lambda params: {"error": {"code": code, "message": message}}


class TestErrorMapping:
    async def test_user_rejected(self) -> None:
        handler, _ = _rpc({"personal_sign": _error(4001, "User denied message signature")})
        signer = await _signer(handler)
        with pytest.raises(UserRejectedError):
            await signer.sign_message("hi", ACCOUNT)
        await signer.close()

    @pytest.mark.parametrize("code", [4100, 4200, 4900, 4901])
    async def test_provider_unavailable(self, code: int) -> None:
        handler, _ = _rpc({"eth_accounts": _error(code, "disconnected")})
        signer = await _signer(handler)
        with pytest.raises(SignerUnavailableError):
            await signer.get_active_account()
        await signer.close()

    async def test_insufficient_funds(self) -> None:
        handler, _ = _rpc(
            {
                "eth_accounts": [ACCOUNT],
                "eth_sendTransaction": _error(-32000, "insufficient funds for gas * price + value"),
            }
        )
        signer = await _signer(handler)
        with pytest.raises(InsufficientFundsError):
            await signer.send_transfer(RECIPIENT, 10**30)
        await signer.close()

    async def test_other_rpc_error(self) -> None:
        handler, _ = _rpc({"eth_getBalance": _error(-32602, "invalid params")})
        signer = await _signer(handler)
        with pytest.raises(SignerError, match="invalid params") as exc_info:
            await signer.get_balance("bad")
        assert type(exc_info.value) is SignerError
        await signer.close()

    async def test_http_failure_is_unavailable(self) -> None:
        signer = await _signer(lambda r: httpx.Response(503))
        with pytest.raises(SignerUnavailableError):
            await signer.get_active_account()
        await signer.close()

    async def test_transport_failure_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        signer = await _signer(handler)
        with pytest.raises(SignerUnavailableError):
            await signer.get_active_account()
        await signer.close()

    async def test_non_object_error(self) -> None:
        handler, _ = _rpc({"eth_accounts": lambda params: {"error": "backend exploded"}})
        signer = await _signer(handler)
        with pytest.raises(SignerError, match="backend exploded") as exc_info:
            await signer.get_active_account()
        assert type(exc_info.value) is SignerError
        await signer.close()

"""Signer — external signing capability contract and JSON-RPC implementation."""

from wallet_ledger.signer.base import Signer, TransferReceipt
from wallet_ledger.signer.jsonrpc import JsonRpcSigner

__all__ = ["JsonRpcSigner", "Signer", "TransferReceipt"]

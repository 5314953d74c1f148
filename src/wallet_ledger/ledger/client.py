"""Backend ledger HTTP client.

Async client for the backend API:
- POST /auth/login, POST /auth/signup: obtain a bearer token
- GET /wallet/balances: addresses bound to the account
- GET /wallet/addresses/{phone}: addresses bound to another user
- POST /wallet/connect: submit a signed ownership challenge
- POST /payments, GET /payments: record and list payments
- GET /payments/tx/{hash}: public transaction lookup
- PATCH/DELETE /account/...: account management
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from wallet_ledger.errors.definitions import ErrMissingSession
from wallet_ledger.errors.external_errors import LedgerError
from wallet_ledger.ledger.models import (
    ConnectWalletResponse,
    LedgerRecord,
    PaymentRecordResponse,
    PaymentTransaction,
    Session,
)

if TYPE_CHECKING:
    from wallet_ledger.config.settings import BackendConfig

logger = logging.getLogger(__name__)


class LedgerClient:
    """Async HTTP client for the backend ledger API.

    Authenticated calls take an explicit :class:`Session`. A missing session
    or empty token fails locally with ``ErrMissingSession`` and nothing is
    sent over the wire.

    Usage::

        ledger = LedgerClient(config.backend)
        await ledger.connect()
        try:
            session = await ledger.login("a@b.c", "secret")
            addresses = await ledger.get_wallet_addresses(session)
        finally:
            await ledger.close()
    """

    def __init__(
        self,
        config: BackendConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the ledger client.

        Args:
            config: Backend configuration (url, timeout).
            transport: Optional httpx transport override (used by tests).
        """
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._config.url.rstrip("/"),
            headers={"Accept": "application/json"},
            timeout=self._config.timeout,
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Session:
        """Log in and return a session carrying the bearer token.

        Raises:
            LedgerError: On HTTP or transport errors.
        """
        data = await self._json(
            "POST", "/auth/login", "login", json={"email": email, "password": password}
        )
        return Session(access_token=self._token(data, "login"), email=email)

    async def signup(
        self,
        username: str,
        email: str,
        phone_number: str,
        password: str,
    ) -> Session:
        """Register a new account and return its session.

        Raises:
            LedgerError: On HTTP or transport errors (409 if the user exists).
        """
        payload = {
            "username": username,
            "email": email,
            "phone_number": phone_number,
            "password": password,
        }
        data = await self._json("POST", "/auth/signup", "signup", json=payload)
        return Session(
            access_token=self._token(data, "signup"),
            username=username,
            email=email,
            phone_number=phone_number,
        )

    # ------------------------------------------------------------------
    # Wallet
    # ------------------------------------------------------------------

    async def get_wallet_addresses(self, session: Session | None) -> list[str]:
        """Return the addresses the backend holds for the session's account.

        A 404 means "no wallet bound" and yields an empty list.
        """
        headers = self._auth_headers(session)
        data = await self._json("GET", "/wallet/balances", "wallet_balances", headers=headers)
        if data is None:
            return []
        return [str(item) for item in self._as_list(data, "wallet_balances") if item]

    async def get_addresses_by_phone(self, session: Session | None, phone_number: str) -> list[str]:
        """Return the addresses bound to the account registered under *phone_number*."""
        headers = self._auth_headers(session)
        path = f"/wallet/addresses/{quote(phone_number, safe='')}"
        data = await self._json("GET", path, "wallet_addresses", headers=headers)
        if data is None:
            return []
        addresses: list[str] = []
        for item in self._as_list(data, "wallet_addresses"):
            address = item.get("address") if isinstance(item, dict) else item
            if address:
                addresses.append(str(address))
        return addresses

    async def connect_wallet(
        self,
        session: Session | None,
        message: str,
        signature: str,
    ) -> ConnectWalletResponse:
        """Submit a signed ownership challenge.

        Raises:
            LedgerError: 401 when the session expired, 409 when the address is
                already bound, other statuses for generic failures.
        """
        headers = self._auth_headers(session)
        data = await self._json(
            "POST",
            "/wallet/connect",
            "connect_wallet",
            headers=headers,
            json={"message": message, "signature": signature},
        )
        return ConnectWalletResponse.from_dict(self._as_dict(data, "connect_wallet"))

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def create_payment(
        self,
        session: Session | None,
        *,
        amount: str,
        currency: str,
        description: str,
        to_address: str,
        transaction_hash: str,
    ) -> PaymentRecordResponse:
        """Record a confirmed payment, keyed by its on-chain transaction hash.

        The hash doubles as the ``Idempotency-Key`` header so a retried
        submission cannot create a second record.
        """
        headers = self._auth_headers(session)
        headers["Idempotency-Key"] = transaction_hash
        payload = {
            "amount": amount,
            "currency": currency,
            "description": description,
            "to_address": to_address,
            "transaction_hash": transaction_hash,
        }
        logger.debug("Recording payment %s to %s", transaction_hash, to_address)
        data = await self._json("POST", "/payments", "create_payment", headers=headers, json=payload)
        if data is None:
            # Bare 201/204: accepted without echoing the record
            return PaymentRecordResponse(transaction_hash=transaction_hash, status="")
        return PaymentRecordResponse.from_dict(self._as_dict(data, "create_payment"))

    async def list_payments(self, session: Session | None) -> list[LedgerRecord]:
        """Return the account's payment records in backend order."""
        headers = self._auth_headers(session)
        data = await self._json("GET", "/payments", "list_payments", headers=headers)
        if data is None:
            return []
        if isinstance(data, dict):
            data = data.get("payments", [])
        return [
            LedgerRecord.from_dict(item)
            for item in self._as_list(data, "list_payments")
            if isinstance(item, dict)
        ]

    async def get_transaction(self, transaction_hash: str) -> PaymentTransaction | None:
        """Look up a transaction by hash; None if the backend does not know it."""
        data = await self._json(
            "GET", f"/payments/tx/{quote(transaction_hash, safe='')}", "get_transaction"
        )
        if data is None:
            return None
        return PaymentTransaction.from_dict(self._as_dict(data, "get_transaction"))

    # ------------------------------------------------------------------
    # Account management
    # ------------------------------------------------------------------

    async def change_password(
        self, session: Session | None, old_password: str, new_password: str
    ) -> str:
        headers = self._auth_headers(session)
        data = await self._json(
            "PATCH",
            "/account/change-password",
            "change_password",
            headers=headers,
            json={"old_password": old_password, "new_password": new_password},
        )
        return self._message(data)

    async def update_email(self, session: Session | None, email: str, password: str) -> str:
        headers = self._auth_headers(session)
        data = await self._json(
            "PATCH",
            "/account/update-email",
            "update_email",
            headers=headers,
            json={"email": email, "password": password},
        )
        return self._message(data)

    async def delete_account(self, session: Session | None, password: str) -> str:
        headers = self._auth_headers(session)
        data = await self._json(
            "DELETE",
            "/account/delete",
            "delete_account",
            headers=headers,
            json={"password": password},
        )
        return self._message(data)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            msg = "Ledger client not connected. Call connect() first."
            raise LedgerError(msg, status_code=500)
        return self._client

    @staticmethod
    def _auth_headers(session: Session | None) -> dict[str, str]:
        """Build the bearer header, failing locally when there is no credential."""
        if session is None or not session.is_authenticated:
            raise ErrMissingSession
        return {"Authorization": f"Bearer {session.access_token}"}

    async def _json(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        headers: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and decode its JSON body.

        Returns None for 404 on reads ("not found" is not an error) and for
        empty 2xx bodies.

        Raises:
            LedgerError: On transport errors and non-2xx statuses.
        """
        client = self._ensure_connected()
        try:
            response = await client.request(method, path, headers=headers, json=json)
        except httpx.HTTPError as exc:
            raise LedgerError(f"Ledger {operation} failed: {exc}") from exc

        if response.status_code == 404 and method == "GET":
            return None
        if not response.is_success:
            self._raise_for_status(response, operation)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise LedgerError(f"Ledger {operation} returned invalid JSON") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str) -> None:
        """Raise a LedgerError from a non-2xx response."""
        status = response.status_code
        try:
            body = response.json()
            detail = body.get("detail", body.get("message", response.text))
        except Exception:
            detail = response.text

        error_map = {
            401: "Session expired or invalid credentials",
            409: f"Conflict: {detail}",
        }
        message = error_map.get(status, f"Ledger {operation} failed ({status}): {detail}")
        raise LedgerError(message, status_code=status)

    @staticmethod
    def _token(data: Any, operation: str) -> str:
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise LedgerError(f"Ledger {operation} response has no access_token")
        return str(token)

    @staticmethod
    def _message(data: Any) -> str:
        return str(data.get("message", "")) if isinstance(data, dict) else ""

    @staticmethod
    def _as_list(data: Any, operation: str) -> list[Any]:
        if not isinstance(data, list):
            raise LedgerError(f"Ledger {operation} returned an unexpected payload")
        return data

    @staticmethod
    def _as_dict(data: Any, operation: str) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise LedgerError(f"Ledger {operation} returned an unexpected payload")
        return data

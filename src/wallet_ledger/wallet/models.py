"""Wallet identity and binding models."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from wallet_ledger.utils.address import same_address


class IdentitySource(enum.StrEnum):
    """Where the canonical address came from."""

    PERSISTED = "persisted"
    BACKEND = "backend"
    SIGNER = "signer"


@dataclass(frozen=True)
class WalletIdentity:
    """The canonical wallet address of the current user.

    Attributes:
        address: Canonical address.
        source: Which source produced it.
        verified: True when the backend vouches for it.
        signer_address: The signer's active account at resolution time, kept
            only as a comparison signal.
    """

    address: str
    source: IdentitySource
    verified: bool = False
    signer_address: str | None = None

    @property
    def signer_mismatch(self) -> bool:
        """True when the signer reports a different active account."""
        return self.signer_address is not None and not same_address(
            self.signer_address, self.address
        )


class BindingState(enum.StrEnum):
    """Signature binding handshake states."""

    IDLE = "Idle"
    CHALLENGE_ISSUED = "ChallengeIssued"
    SIGNED = "Signed"
    SUBMITTED = "Submitted"
    BOUND = "Bound"
    REJECTED = "Rejected"


@dataclass
class SignatureBinding:
    """One connect attempt's challenge and signature. Never reused."""

    challenge_message: str
    signing_address: str
    signature: str = ""
    consumed: bool = False

    def consume(self) -> tuple[str, str]:
        """Mark the binding as submitted and return ``(message, signature)``.

        Raises:
            RuntimeError: If already consumed or not yet signed.
        """
        if self.consumed:
            msg = "Signature binding already submitted"
            raise RuntimeError(msg)
        if not self.signature:
            msg = "Signature binding has no signature"
            raise RuntimeError(msg)
        self.consumed = True
        return self.challenge_message, self.signature

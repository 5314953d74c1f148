"""Address syntax helpers for 20-byte hex account addresses."""

from __future__ import annotations

import re

_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")


def is_valid_address(address: object) -> bool:
    """Check that *address* is ``0x`` followed by 40 hex characters."""
    return isinstance(address, str) and _ADDRESS_RE.fullmatch(address) is not None


def normalize_address(address: str) -> str:
    """Lower-case form used for comparisons."""
    return address.strip().lower()


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address equality; ``None`` never matches."""
    if not a or not b:
        return False
    return normalize_address(a) == normalize_address(b)

"""wallet-ledger — client-side wallet orchestration against a backend ledger."""

__version__ = "0.1.0"

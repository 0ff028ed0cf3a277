from typing import Protocol


class StorageFailure(RuntimeError):
    """Ledger I/O failed. Retryable; says nothing about replay state."""


class ReplayGuard(Protocol):
    """Ledger of consumed (window, session) pairs."""

    def is_consumed(self, window: int, session: str) -> bool:
        ...

    def try_consume(self, window: int, session: str, timestamp: int) -> bool:
        """Insert the record iff absent, atomically. True if this call inserted it."""
        ...

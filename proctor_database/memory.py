from threading import Lock
from typing import Dict, Tuple


class InMemoryReplayGuard:
    """
    Process-local ledger: a dict behind one mutex.

    Good for a single-process deployment and for tests. Every record is lost
    on restart, so after a restart a session can redeem the current window
    again.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._records: Dict[Tuple[int, str], int] = {}

    def is_consumed(self, window: int, session: str) -> bool:
        with self._lock:
            return (window, session) in self._records

    def try_consume(self, window: int, session: str, timestamp: int) -> bool:
        key = (window, session)
        with self._lock:
            if key in self._records:
                return False
            self._records[key] = int(timestamp)
            return True

    def count(self) -> int:
        with self._lock:
            return len(self._records)

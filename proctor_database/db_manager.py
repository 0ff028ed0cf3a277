import logging
import sqlite3

from .guard import StorageFailure
from .setup_database import setup_database

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_SECONDS = 5.0


class SqliteReplayGuard:
    """
    Consumption ledger backed by SQLite.

    The (window, session) primary key does the replay check: `try_consume`
    is a single INSERT OR IGNORE, so two concurrent requests for the same
    pair cannot both insert, whichever process or thread they run in.
    """

    def __init__(self, path: str, ensure_schema: bool = True) -> None:
        self.path = path
        if ensure_schema:
            try:
                setup_database(path)
            except (sqlite3.Error, OSError) as e:
                raise StorageFailure(f"cannot initialise ledger at {path}: {e}") from e

    def get_db_connection(self) -> sqlite3.Connection:
        """Open a connection to the ledger"""
        try:
            return sqlite3.connect(self.path, timeout=BUSY_TIMEOUT_SECONDS)
        except sqlite3.Error as e:
            raise StorageFailure(f"cannot open ledger: {e}") from e

    def is_consumed(self, window: int, session: str) -> bool:
        conn = self.get_db_connection()
        try:
            row = conn.execute(
                'SELECT 1 FROM used_codes WHERE "window" = ? AND session = ?',
                (window, session),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageFailure(f"ledger lookup failed: {e}") from e
        finally:
            conn.close()
        return row is not None

    def try_consume(self, window: int, session: str, timestamp: int) -> bool:
        conn = self.get_db_connection()
        try:
            with conn:
                cursor = conn.execute(
                    'INSERT OR IGNORE INTO used_codes ("window", session, consumed_at) VALUES (?, ?, ?)',
                    (window, session, int(timestamp)),
                )
            inserted = cursor.rowcount == 1
        except sqlite3.Error as e:
            raise StorageFailure(f"ledger insert failed: {e}") from e
        finally:
            conn.close()
        if not inserted:
            logger.debug("Window %s already consumed by session %s...", window, session[:8])
        return inserted

    def count(self) -> int:
        """Number of consumption records in the ledger."""
        conn = self.get_db_connection()
        try:
            (total,) = conn.execute("SELECT COUNT(*) FROM used_codes").fetchone()
        except sqlite3.Error as e:
            raise StorageFailure(f"ledger count failed: {e}") from e
        finally:
            conn.close()
        return total

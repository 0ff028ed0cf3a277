import logging
import os
import sqlite3

logger = logging.getLogger(__name__)

# "window" is quoted: it is a keyword in SQLite >= 3.25
USED_CODES_SCHEMA = '''
CREATE TABLE IF NOT EXISTS used_codes (
    "window" INTEGER NOT NULL,
    session TEXT NOT NULL,
    consumed_at INTEGER NOT NULL,
    PRIMARY KEY ("window", session)
)
'''


def setup_database(path: str) -> None:
    """Create the consumption ledger (idempotent)."""

    # Make sure the parent directory exists
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    conn = sqlite3.connect(path)
    try:
        conn.execute('PRAGMA journal_mode = WAL')
        conn.execute(USED_CODES_SCHEMA)
        conn.commit()
    finally:
        conn.close()
    logger.info("Ledger ready at %s", path)


if __name__ == "__main__":
    from proctor_core.config import Settings, configure_logging

    configure_logging()
    setup_database(Settings.from_env().database_file)

import pytest

from proctor_backend import create_app
from proctor_core.config import Settings
from proctor_core.verification import VerificationService
from proctor_database import InMemoryReplayGuard, SqliteReplayGuard, StorageFailure

SEED = b"test-seed"

# 30_010 s since the epoch: window 1000 for a 30 s step, 20 s left
WINDOW_1000_MS = 30_010_000

# compute_code(b"test-seed", counter) for 6 digits, computed independently
CODES = {
    999: "729391",
    1000: "165774",
    1001: "111254",
    1002: "500093",
}


class BrokenGuard:
    """Ledger whose storage is down."""

    def is_consumed(self, window, session):
        raise StorageFailure("disk I/O error")

    def try_consume(self, window, session, timestamp):
        raise StorageFailure("disk I/O error")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's environment out of Settings."""
    for field in Settings.model_fields.values():
        monkeypatch.delenv(field.alias, raising=False)


@pytest.fixture
def now_ms():
    return WINDOW_1000_MS


@pytest.fixture
def memory_guard():
    return InMemoryReplayGuard()


@pytest.fixture
def sqlite_guard(tmp_path):
    return SqliteReplayGuard(str(tmp_path / "ledger" / "used_codes.db"))


@pytest.fixture
def service(memory_guard):
    return VerificationService(SEED, memory_guard, step_seconds=30, drift_steps=1, digits=6)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        secret=SEED,
        database_file=str(tmp_path / "used_codes.db"),
        static_root=str(tmp_path / "static"),
    )


@pytest.fixture
def app(settings, memory_guard, now_ms):
    app = create_app(settings, memory_guard)
    app.config["TESTING"] = True
    app.config["PROCTOR_CLOCK"] = lambda: now_ms
    return app


@pytest.fixture
def client(app):
    return app.test_client()

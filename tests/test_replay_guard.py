import sqlite3
import threading

import pytest

from proctor_database import InMemoryReplayGuard, SqliteReplayGuard, StorageFailure, setup_database


@pytest.fixture(params=["memory_guard", "sqlite_guard"])
def guard(request):
    return request.getfixturevalue(request.param)


def test_fresh_pair_is_not_consumed(guard):
    assert guard.is_consumed(1000, "sid-a") is False


def test_try_consume_inserts_once(guard):
    assert guard.try_consume(1000, "sid-a", 30_010_000) is True
    assert guard.is_consumed(1000, "sid-a") is True
    assert guard.try_consume(1000, "sid-a", 30_011_000) is False


def test_pairs_are_independent(guard):
    guard.try_consume(1000, "sid-a", 30_010_000)
    assert guard.is_consumed(1000, "sid-b") is False
    assert guard.is_consumed(1001, "sid-a") is False
    assert guard.try_consume(1001, "sid-a", 30_040_000) is True
    assert guard.count() == 2


def test_concurrent_consumers_only_one_wins(guard):
    workers = 8
    barrier = threading.Barrier(workers)
    results = []
    lock = threading.Lock()

    def consume():
        barrier.wait()
        inserted = guard.try_consume(1000, "sid-race", 30_010_000)
        with lock:
            results.append(inserted)

    threads = [threading.Thread(target=consume) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == [False] * (workers - 1) + [True]


def test_sqlite_ledger_survives_reopen(tmp_path):
    path = str(tmp_path / "used_codes.db")
    SqliteReplayGuard(path).try_consume(1000, "sid-a", 30_010_000)

    reopened = SqliteReplayGuard(path)
    assert reopened.is_consumed(1000, "sid-a") is True
    assert reopened.try_consume(1000, "sid-a", 30_020_000) is False


def test_sqlite_record_keeps_first_timestamp(tmp_path):
    path = str(tmp_path / "used_codes.db")
    guard = SqliteReplayGuard(path)
    guard.try_consume(1000, "sid-a", 30_010_000)
    guard.try_consume(1000, "sid-a", 30_020_000)

    conn = sqlite3.connect(path)
    try:
        rows = conn.execute('SELECT "window", session, consumed_at FROM used_codes').fetchall()
    finally:
        conn.close()
    assert rows == [(1000, "sid-a", 30_010_000)]


def test_setup_database_is_idempotent(tmp_path):
    path = str(tmp_path / "nested" / "used_codes.db")
    setup_database(path)
    setup_database(path)
    assert SqliteReplayGuard(path, ensure_schema=False).count() == 0


def test_unopenable_ledger_raises_storage_failure(tmp_path):
    # a directory cannot be opened as a database file
    with pytest.raises(StorageFailure):
        SqliteReplayGuard(str(tmp_path))


def test_missing_schema_raises_storage_failure(tmp_path):
    guard = SqliteReplayGuard(str(tmp_path / "empty.db"), ensure_schema=False)
    with pytest.raises(StorageFailure):
        guard.is_consumed(1000, "sid-a")
    with pytest.raises(StorageFailure):
        guard.try_consume(1000, "sid-a", 30_010_000)


def test_memory_guard_starts_empty_after_restart():
    first = InMemoryReplayGuard()
    first.try_consume(1000, "sid-a", 30_010_000)
    assert InMemoryReplayGuard().is_consumed(1000, "sid-a") is False

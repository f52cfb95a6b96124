from __future__ import annotations

import threading
from unittest.mock import MagicMock

from posindex.db.duckdb_store import get_connection
from posindex.db.duckdb_unit_of_work import DuckDbUnitOfWork
from posindex.db.postgres_unit_of_work import PostgresUnitOfWork


def test_duckdb_unit_of_work_commit_persists(tmp_path) -> None:
    db_path = tmp_path / "uow.duckdb"
    uow = DuckDbUnitOfWork(lambda: get_connection(db_path))
    conn = uow.begin()
    conn.execute("CREATE TABLE IF NOT EXISTS uow_test (id INTEGER)")
    conn.execute("INSERT INTO uow_test VALUES (1)")
    uow.commit()
    uow.close()

    conn = get_connection(db_path)
    try:
        row = conn.execute("SELECT COUNT(*) FROM uow_test").fetchone()
        assert row[0] == 1
    finally:
        conn.close()


def test_duckdb_unit_of_work_rollback_discards(tmp_path) -> None:
    db_path = tmp_path / "uow.duckdb"
    conn = get_connection(db_path)
    try:
        conn.execute("CREATE TABLE IF NOT EXISTS uow_test (id INTEGER)")
        conn.execute("INSERT INTO uow_test VALUES (1)")
    finally:
        conn.close()

    uow = DuckDbUnitOfWork(lambda: get_connection(db_path))
    conn = uow.begin()
    conn.execute("INSERT INTO uow_test VALUES (2)")
    uow.rollback()
    uow.close()

    conn = get_connection(db_path)
    try:
        row = conn.execute("SELECT COUNT(*) FROM uow_test").fetchone()
        assert row[0] == 1
    finally:
        conn.close()


def test_duckdb_unit_of_work_holds_write_lock_until_commit(tmp_path) -> None:
    lock = threading.Lock()
    uow = DuckDbUnitOfWork(lambda: get_connection(tmp_path / "lock.duckdb"), write_lock=lock)
    uow.begin()
    assert lock.locked()
    uow.commit()
    assert not lock.locked()
    uow.close()
    assert not lock.locked()


def test_duckdb_unit_of_work_close_rolls_back_and_releases(tmp_path) -> None:
    lock = threading.Lock()
    uow = DuckDbUnitOfWork(lambda: get_connection(tmp_path / "lock.duckdb"), write_lock=lock)
    conn = uow.begin()
    conn.execute("CREATE TABLE t (id INTEGER)")
    uow.close()
    assert not lock.locked()

    conn = get_connection(tmp_path / "lock.duckdb")
    try:
        tables = conn.execute(
            "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = 't'"
        ).fetchone()
        assert tables[0] == 0
    finally:
        conn.close()


def test_postgres_unit_of_work_begins_transaction() -> None:
    conn = MagicMock()
    conn.autocommit = True
    release = MagicMock()
    uow = PostgresUnitOfWork(lambda: conn, release=release)
    resolved = uow.begin()
    assert resolved is conn
    assert conn.autocommit is False
    uow.commit()
    conn.commit.assert_called_once()
    uow.close()
    release.assert_called_once_with(conn)
    conn.close.assert_not_called()


def test_postgres_unit_of_work_close_rolls_back_active_transaction() -> None:
    conn = MagicMock()
    uow = PostgresUnitOfWork(lambda: conn)
    uow.begin()
    uow.close()
    conn.rollback.assert_called_once()
    conn.close.assert_called_once()
    conn.commit.assert_not_called()

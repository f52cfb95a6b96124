"""DuckDB unit-of-work implementation."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass

import duckdb

from posindex.ports.unit_of_work import UnitOfWork


@dataclass
class DuckDbUnitOfWork(UnitOfWork[duckdb.DuckDBPyConnection]):
    """Manage a DuckDB session with explicit transaction boundaries.

    When ``write_lock`` is set the lock is held from ``begin`` until the
    transaction ends, since DuckDB admits one writer at a time.
    """

    connection_factory: Callable[[], duckdb.DuckDBPyConnection]
    write_lock: threading.Lock | None = None
    _conn: duckdb.DuckDBPyConnection | None = None
    _active: bool = False
    _locked: bool = False

    def begin(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            self._conn = self.connection_factory()
        if not self._active:
            if self.write_lock is not None and not self._locked:
                self.write_lock.acquire()
                self._locked = True
            self._conn.execute("BEGIN TRANSACTION")
            self._active = True
        return self._conn

    def commit(self) -> None:
        if self._conn is None or not self._active:
            return
        try:
            self._conn.execute("COMMIT")
        finally:
            self._active = False
            self._release_lock()

    def rollback(self) -> None:
        if self._conn is None or not self._active:
            return
        try:
            self._conn.execute("ROLLBACK")
        finally:
            self._active = False
            self._release_lock()

    def close(self) -> None:
        if self._conn is None:
            self._release_lock()
            return
        if self._active:
            self.rollback()
        self._conn.close()
        self._conn = None
        self._release_lock()

    def _release_lock(self) -> None:
        if self._locked and self.write_lock is not None:
            self._locked = False
            self.write_lock.release()

"""Postgres unit-of-work implementation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from psycopg2.extensions import connection as PgConnection  # noqa: N812

from posindex.ports.unit_of_work import UnitOfWork


@dataclass
class PostgresUnitOfWork(UnitOfWork[PgConnection]):
    """Manage a Postgres session with explicit transaction boundaries.

    Connections come from ``connection_factory`` and go back through
    ``release`` (a pool's ``putconn``) or are closed when no release hook is
    given.
    """

    connection_factory: Callable[[], PgConnection]
    release: Callable[[PgConnection], None] | None = None
    _conn: PgConnection | None = None
    _active: bool = False

    def begin(self) -> PgConnection:
        if self._conn is None:
            self._conn = self.connection_factory()
            self._conn.autocommit = False
        self._active = True
        return self._conn

    def commit(self) -> None:
        if self._conn is None or not self._active:
            return
        self._conn.commit()
        self._active = False

    def rollback(self) -> None:
        if self._conn is None or not self._active:
            return
        self._conn.rollback()
        self._active = False

    def close(self) -> None:
        if self._conn is None:
            return
        if self._active:
            self.rollback()
        conn, self._conn = self._conn, None
        if self.release is not None:
            self.release(conn)
        else:
            conn.close()

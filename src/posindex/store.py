"""Backend-neutral game store built on units of work and repositories."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import duckdb
import psycopg2

from posindex.config import Settings
from posindex.db.duckdb_game_repository import game_repository
from posindex.db.duckdb_store import get_connection, init_schema
from posindex.db.duckdb_unit_of_work import DuckDbUnitOfWork
from posindex.db.postgres_game_repository import postgres_game_repository
from posindex.db.postgres_store import build_connection_pool, init_postgres_schema
from posindex.db.postgres_unit_of_work import PostgresUnitOfWork
from posindex.errors import StoreError, StoreUnavailableError
from posindex.ports.repositories import GameRepository
from posindex.ports.unit_of_work import UnitOfWorkFactory
from posindex.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DATABASE_ERRORS: tuple[type[BaseException], ...] = (duckdb.Error, psycopg2.Error)


@dataclass
class GameStore:
    """Run repository handlers inside one unit of work each."""

    backend: str
    unit_of_work_factory: UnitOfWorkFactory[Any]
    repository_factory: Callable[[Any], GameRepository]
    closers: list[Callable[[], None]] = field(default_factory=list)

    def run(self, handler: Callable[[GameRepository], T], *, write: bool = False) -> T:
        """Execute ``handler`` with a repository, committing on success.

        Raises ``StoreError`` when the unit cannot start (for example an
        exhausted pool) or when the database fails inside it. Only that unit is
        affected. Other exceptions from ``handler`` roll back and propagate
        unchanged.
        """
        uow = self.unit_of_work_factory(write)
        try:
            conn = uow.begin()
        except DATABASE_ERRORS as exc:
            uow.close()
            raise StoreError(f"{self.backend} could not start a unit of work: {exc}") from exc
        try:
            result = handler(self.repository_factory(conn))
        except DATABASE_ERRORS as exc:
            uow.rollback()
            raise StoreError(f"{self.backend} unit of work failed: {exc}") from exc
        except Exception:
            uow.rollback()
            raise
        else:
            try:
                uow.commit()
            except DATABASE_ERRORS as exc:
                raise StoreError(f"{self.backend} commit failed: {exc}") from exc
        finally:
            uow.close()
        return result

    def read(self, handler: Callable[[GameRepository], T]) -> T:
        return self.run(handler, write=False)

    def write(self, handler: Callable[[GameRepository], T]) -> T:
        return self.run(handler, write=True)

    def close(self) -> None:
        while self.closers:
            self.closers.pop()()


def duckdb_store(db_path: Any) -> GameStore:
    """Open (and initialise) a DuckDB-backed store at ``db_path``."""
    try:
        root = get_connection(db_path)
        init_schema(root)
    except duckdb.Error as exc:
        raise StoreUnavailableError(f"cannot open DuckDB at {db_path}: {exc}") from exc
    write_lock = threading.Lock()
    cursor_lock = threading.Lock()

    def _cursor() -> duckdb.DuckDBPyConnection:
        with cursor_lock:
            return root.cursor()

    def _unit_of_work(write: bool) -> DuckDbUnitOfWork:
        return DuckDbUnitOfWork(_cursor, write_lock=write_lock if write else None)

    return GameStore(
        backend="duckdb",
        unit_of_work_factory=_unit_of_work,
        repository_factory=game_repository,
        closers=[root.close],
    )


def postgres_store(settings: Settings) -> GameStore:
    """Open a pooled Postgres-backed store and ensure its schema exists."""
    try:
        pool = build_connection_pool(settings)
    except (ValueError, psycopg2.Error) as exc:
        raise StoreUnavailableError(f"cannot connect to Postgres: {exc}") from exc
    conn = pool.getconn()
    try:
        init_postgres_schema(conn)
        conn.commit()
    except psycopg2.Error as exc:
        conn.rollback()
        pool.putconn(conn)
        pool.closeall()
        raise StoreUnavailableError(f"cannot initialise Postgres schema: {exc}") from exc
    pool.putconn(conn)

    def _unit_of_work(write: bool) -> PostgresUnitOfWork:
        return PostgresUnitOfWork(pool.getconn, release=pool.putconn)

    return GameStore(
        backend="postgres",
        unit_of_work_factory=_unit_of_work,
        repository_factory=postgres_game_repository,
        closers=[pool.closeall],
    )


def open_store(settings: Settings) -> GameStore:
    """Return the store selected by ``settings.backend``."""
    if settings.backend == "postgres":
        logger.debug("Using Postgres backend")
        return postgres_store(settings)
    logger.debug("Using DuckDB backend at %s", settings.duckdb_path)
    return duckdb_store(settings.duckdb_path)


__all__ = ["GameStore", "duckdb_store", "open_store", "postgres_store"]

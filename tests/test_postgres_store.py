from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

import psycopg2

from posindex.config import Settings
from posindex.db.postgres_store import (
    POSTGRES_SCHEMA_STATEMENTS,
    _connection_kwargs,
    build_connection_pool,
    init_postgres_schema,
)
from posindex.errors import StoreUnavailableError
from posindex.store import postgres_store


def _settings(**values) -> Settings:
    settings = Settings(backend="postgres", postgres_dsn=None, postgres_host=None, postgres_db=None)
    for name, value in values.items():
        setattr(settings, name, value)
    return settings


class PostgresStoreTests(unittest.TestCase):
    def test_connection_kwargs_prefers_dsn(self) -> None:
        settings = _settings(postgres_dsn="postgresql://u:p@h/db", postgres_host="ignored")
        self.assertEqual(_connection_kwargs(settings), {"dsn": "postgresql://u:p@h/db"})

    def test_connection_kwargs_from_parts(self) -> None:
        settings = _settings(postgres_host="localhost", postgres_db="chess", postgres_user="u")
        kwargs = _connection_kwargs(settings)
        self.assertEqual(kwargs["host"], "localhost")
        self.assertEqual(kwargs["dbname"], "chess")
        self.assertEqual(kwargs["user"], "u")

    def test_connection_kwargs_none_without_config(self) -> None:
        self.assertIsNone(_connection_kwargs(_settings()))

    def test_init_schema_runs_every_statement(self) -> None:
        conn = MagicMock()
        cursor = conn.cursor.return_value.__enter__.return_value
        init_postgres_schema(conn)
        self.assertEqual(cursor.execute.call_count, len(POSTGRES_SCHEMA_STATEMENTS))

    def test_pool_is_sized_to_concurrency(self) -> None:
        settings = _settings(postgres_dsn="postgresql://h/db", max_concurrent_games=8)
        with patch("posindex.db.postgres_store.ThreadedConnectionPool") as pool_cls:
            build_connection_pool(settings)
        pool_cls.assert_called_once_with(1, 8, dsn="postgresql://h/db")

    def test_pool_requires_configuration(self) -> None:
        with self.assertRaises(ValueError):
            build_connection_pool(_settings())

    def test_store_unavailable_when_connect_fails(self) -> None:
        settings = _settings(postgres_dsn="postgresql://h/db")
        with patch(
            "posindex.db.postgres_store.ThreadedConnectionPool",
            side_effect=psycopg2.OperationalError("refused"),
        ):
            with self.assertRaises(StoreUnavailableError):
                postgres_store(settings)

    def test_store_runs_units_on_pooled_connections(self) -> None:
        settings = _settings(postgres_dsn="postgresql://h/db")
        pool = MagicMock()
        conn = MagicMock()
        pool.getconn.return_value = conn
        cursor = conn.cursor.return_value.__enter__.return_value
        cursor.fetchone.return_value = (3,)
        with patch("posindex.db.postgres_store.ThreadedConnectionPool", return_value=pool):
            store = postgres_store(settings)
        self.assertEqual(store.read(lambda repo: repo.count_games()), 3)
        self.assertEqual(pool.putconn.call_count, 2)
        store.close()
        pool.closeall.assert_called_once()


if __name__ == "__main__":
    unittest.main()

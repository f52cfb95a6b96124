"""Database backends for the position index."""

from posindex.db.duckdb_game_repository import DuckDbGameRepository  # noqa: F401
from posindex.db.duckdb_unit_of_work import DuckDbUnitOfWork  # noqa: F401
from posindex.db.postgres_game_repository import PostgresGameRepository  # noqa: F401
from posindex.db.postgres_unit_of_work import PostgresUnitOfWork  # noqa: F401

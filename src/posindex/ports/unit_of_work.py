"""Transaction boundary shared by the DuckDB and Postgres backends."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, TypeVar

ConnT_co = TypeVar("ConnT_co", covariant=True)


class UnitOfWork(Protocol[ConnT_co]):
    """One connection and one transaction.

    A game is ingested inside exactly one unit, so its players, game row and
    move rows commit or roll back together.
    """

    def begin(self) -> ConnT_co:
        """Acquire a connection, open a transaction, and return the connection."""

    def commit(self) -> None:
        """Commit the open transaction; a no-op when none is open."""

    def rollback(self) -> None:
        """Discard the open transaction; a no-op when none is open."""

    def close(self) -> None:
        """Roll back anything still open and give the connection back."""


# Called with ``True`` for units that write, so single-writer backends can
# serialise them.
UnitOfWorkFactory = Callable[[bool], UnitOfWork[ConnT_co]]

"""Port interfaces for the posindex application."""

from posindex.ports.repositories import GameRepository, MoveRow, PlayerRepository  # noqa: F401
from posindex.ports.unit_of_work import UnitOfWork, UnitOfWorkFactory  # noqa: F401

"""Storage module for dragonsheet persistence.

Provides the PersistenceGateway contract and two implementations:
- InMemoryGateway (dictionaries, for tests and local runs)
- SQLiteGateway (characters, catalogs and encounters in SQLite)
"""

from dragonsheet.storage.database import SQLiteGateway
from dragonsheet.storage.gateway import PersistenceGateway
from dragonsheet.storage.memory import InMemoryGateway

__all__ = [
    "PersistenceGateway",
    "InMemoryGateway",
    "SQLiteGateway",
]

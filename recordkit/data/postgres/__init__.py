from .manager import DatabaseManager
from .store import PostgresStore

__all__ = ["DatabaseManager", "PostgresStore"]

"""
Relational stores: the table/selection/row contract and its implementations.
"""

from .base import RelationalStore, Row, Selection
from .memory import MemoryStore

__all__ = [
    "RelationalStore",
    "Row",
    "Selection",
    "MemoryStore",
]

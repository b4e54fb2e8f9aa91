# recordkit/stores.py - store re-exports and a config-driven factory
import logging

from recordkit.config import (
    MemoryStoreConfig,
    PostgresStoreConfig,
    StoreConfigBase,
)
from recordkit.data.base import RelationalStore, Row, Selection
from recordkit.data.memory import MemoryStore
from recordkit.data.postgres.manager import DatabaseManager
from recordkit.data.postgres.store import PostgresStore

logger = logging.getLogger(__name__)

__all__ = [
    "RelationalStore",
    "Row",
    "Selection",
    "MemoryStore",
    "PostgresStore",
    "create_store",
]


def create_store(config: StoreConfigBase) -> RelationalStore:
    """Build the store described by ``config``. Call once at process start."""
    if isinstance(config, MemoryStoreConfig):
        logger.debug("Creating in-memory store")
        return MemoryStore(
            primary_keys=config.primary_keys,
            default_primary_key=config.default_primary_key,
            auto_increment=config.auto_increment,
        )
    if isinstance(config, PostgresStoreConfig):
        logger.debug(f"Creating postgres store (pool {config.min_size}-{config.max_size})")
        db = DatabaseManager(
            config.dsn,
            min_size=config.min_size,
            max_size=config.max_size,
            timeout=config.timeout,
        )
        return PostgresStore(
            db,
            primary_keys=config.primary_keys,
            default_primary_key=config.default_primary_key,
        )
    raise ValueError(f"Unsupported store kind: {config.kind}")

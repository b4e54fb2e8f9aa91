"""
recordkit: active record models with change tracking, casts, accessors and
lazily resolved relationships over a pluggable relational store.
"""

from recordkit.config import MemoryStoreConfig, PostgresStoreConfig, StoreKind
from recordkit.errors import (
    ConnectionUninitialized,
    DeletedMutation,
    PersistenceError,
    RecordError,
    TypeMismatch,
    UnpersistedAccess,
    UnpersistedDeletion,
    UnpersistedError,
    UnpersistedRelation,
    UnsupportedOperation,
)
from recordkit.orm import (
    FluentOp,
    Model,
    PivotedQueryBuilder,
    QueryBuilder,
    accessor,
    mutator,
    relationship,
)
from recordkit.stores import MemoryStore, PostgresStore, create_store

__all__ = [
    "MemoryStoreConfig",
    "PostgresStoreConfig",
    "StoreKind",
    "ConnectionUninitialized",
    "DeletedMutation",
    "PersistenceError",
    "RecordError",
    "TypeMismatch",
    "UnpersistedAccess",
    "UnpersistedDeletion",
    "UnpersistedError",
    "UnpersistedRelation",
    "UnsupportedOperation",
    "FluentOp",
    "Model",
    "PivotedQueryBuilder",
    "QueryBuilder",
    "accessor",
    "mutator",
    "relationship",
    "MemoryStore",
    "PostgresStore",
    "create_store",
]

"""
Active record models on top of a relational store.

Models declare their table, attribute metadata and relationships; rows are
read through QueryBuilders and hydrated into models lazily.
"""

from .attributes import AttributeSpec, Relation, accessor, mutator, relationship
from .entity import Entity
from .model import Model
from .pivoted import PivotedQueryBuilder
from .query_builder import FluentOp, QueryBuilder
from .registry import ModelRegistry
from .repo import Repo

__all__ = [
    "AttributeSpec",
    "Relation",
    "accessor",
    "mutator",
    "relationship",
    "Entity",
    "Model",
    "PivotedQueryBuilder",
    "FluentOp",
    "QueryBuilder",
    "ModelRegistry",
    "Repo",
]

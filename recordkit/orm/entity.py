from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Self, Tuple

from pydantic_core import to_jsonable_python

from recordkit.casts import cast_value, is_cast_kind, to_datetime
from recordkit.data.base import RelationalStore, Row
from recordkit.errors import (
    ConnectionUninitialized,
    DeletedMutation,
    PersistenceError,
    TypeMismatch,
    UnpersistedAccess,
    UnpersistedDeletion,
)
from recordkit.orm.attributes import AttributeSpec, Relation, build_schema
from recordkit.orm.query_builder import QueryBuilder
from recordkit.orm.registry import ModelRegistry
from recordkit.orm.relations import EntityRelations

logger = logging.getLogger(__name__)

_PLAIN = AttributeSpec()


class Entity(EntityRelations):
    """
    The entity half of a model: one row, its pending changes and the
    attribute pipeline.

    Reading an attribute goes relationship -> pending change -> stored row
    -> junction row -> ``ATTRIBUTES`` default, then date formatting,
    accessor and cast. Writing goes cast -> mutator -> pending change.
    """

    TABLE_NAME: ClassVar[str]
    PRIMARY_KEY: ClassVar[str] = "id"
    # Primary key is generated by the database
    INCREMENTING: ClassVar[bool] = True

    TIMESTAMPS: ClassVar[bool] = True
    CREATED_AT: ClassVar[str] = "creation_date"
    UPDATED_AT: ClassVar[str] = "last_update"
    DATE_FORMAT: ClassVar[str] = "%A, %d-%b-%y %H:%M:%S %Z"

    ATTRIBUTES: ClassVar[Dict[str, Any]] = {}  # default values
    DATES: ClassVar[List[str]] = []
    CASTS: ClassVar[Dict[str, str]] = {}
    HIDDEN: ClassVar[List[str]] = []

    _bound_store: ClassVar[Optional[RelationalStore]] = None
    _schema: ClassVar[Dict[str, AttributeSpec]] = {}
    _relations: ClassVar[Dict[str, Relation]] = {}

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        for attribute, kind in cls.CASTS.items():
            if not is_cast_kind(kind):
                raise ValueError(
                    f"Unknown cast type '{kind}' for {cls.__name__}.{attribute}"
                )
            # DATES already render as DATE_FORMAT strings
            if attribute in cls.DATES and kind in ("date", "datetime"):
                raise ValueError(
                    f"{cls.__name__}.{attribute} is listed in DATES, drop its '{kind}' cast"
                )
        cls._schema = build_schema(cls.CASTS, cls.DATES, cls)
        cls._relations = Relation.get_relations(cls)

        if getattr(cls, "TABLE_NAME", None):
            ModelRegistry().register_model(cls.__name__, cls)

    def __init__(
        self,
        row: Optional[Row] = None,
        pivot: Optional[Row] = None,
        *,
        store: Optional[RelationalStore] = None,
        **attributes: Any,
    ):
        if row is not None and row.table_name != self.TABLE_NAME:
            raise TypeMismatch(
                f"Cannot implicitly cast data from table {row.table_name} "
                f"to {self.__class__.__name__} ({self.TABLE_NAME})."
            )

        self._store = store if store is not None else self.bound_store()
        self._row = row
        self._pivot = pivot
        self._changes: Dict[str, Any] = {}
        self._deleted = False

        for name, value in attributes.items():
            self.set(name, value)

    @classmethod
    def bound_store(cls) -> RelationalStore:
        if cls._bound_store is None:
            raise ConnectionUninitialized(
                f"No store bound to {cls.__name__}. Call bind(store) at startup."
            )
        return cls._bound_store

    # ---------- state ----------

    @property
    def store(self) -> RelationalStore:
        return self._store

    @property
    def original(self) -> Optional[Row]:
        """Last known persisted row, None if never persisted."""
        return self._row

    @property
    def pivot(self) -> Optional[Row]:
        """Junction row this entity was reached through, if any."""
        return self._pivot

    @property
    def is_persisted(self) -> bool:
        return self._row is not None

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    @property
    def key(self) -> Any:
        return None if self._row is None else self._row.get(self.PRIMARY_KEY)

    def is_dirty(self, attribute: Optional[str] = None) -> bool:
        """Has the model (or one attribute) been modified since it was (re-)loaded?"""
        if attribute is None:
            return len(self._changes) > 0
        return attribute in self._changes

    # ---------- attribute pipeline ----------

    def _resolve_relation(self, attribute: str) -> Tuple[Any, bool]:
        relation = self._relations.get(attribute)
        if relation is None or self._row is None:
            return None, False

        result = relation.resolve(self)
        if isinstance(result, Entity):
            return result, True
        if isinstance(result, QueryBuilder):
            return result.cursor(), True
        return None, False

    def _raw(self, attribute: str) -> Any:
        if attribute in self._changes:
            return self._changes[attribute]
        for source in (self._row, self._pivot):
            if source is not None and source.get(attribute) is not None:
                return source[attribute]
        return self.ATTRIBUTES.get(attribute)

    def _format_date(self, value: Any) -> str:
        return to_datetime(value).strftime(self.DATE_FORMAT).rstrip()

    def get(self, attribute: str) -> Any:
        if self._row is None and attribute not in self._changes:
            raise UnpersistedAccess(
                f"Can't get attribute '{attribute}' of unpersisted {self.__class__.__name__}."
            )

        value, resolved = self._resolve_relation(attribute)
        if not resolved:
            value = self._raw(attribute)

        spec = self._schema.get(attribute, _PLAIN)
        if spec.is_date and value is not None:
            value = self._format_date(value)
        if spec.accessor is not None:
            value = spec.accessor(self, value)
        if spec.cast is not None:
            value = cast_value(spec.cast, value)
        return value

    def set(self, attribute: str, value: Any) -> None:
        """Stage a change. Never resolves relationships or runs accessors."""
        if self._deleted:
            raise DeletedMutation(
                f"Can't set attribute '{attribute}' of deleted {self.__class__.__name__}."
            )

        spec = self._schema.get(attribute, _PLAIN)
        if spec.cast is not None:
            value = cast_value(spec.cast, value)
        if spec.mutator is not None:
            value = spec.mutator(self, value)

        self._changes[attribute] = value

    def unset(self, attribute: str) -> None:
        self.set(attribute, None)

    def fill(self, **attributes: Any) -> Self:
        for name, value in attributes.items():
            self.set(name, value)
        return self

    def __getitem__(self, attribute: str) -> Any:
        return self.get(attribute)

    def __setitem__(self, attribute: str, value: Any) -> None:
        self.set(attribute, value)

    def __delitem__(self, attribute: str) -> None:
        self.unset(attribute)

    # ---------- serialization ----------

    def attribute_names(self) -> List[str]:
        names: Dict[str, None] = {}
        if self._row is not None:
            names.update(dict.fromkeys(self.ATTRIBUTES))
            names.update(dict.fromkeys(self._row))
        names.update(dict.fromkeys(self._changes))
        return list(names)

    def to_dict(self) -> Dict[str, Any]:
        """Convert this model to a dict, skipping hidden attributes."""
        return {
            name: self.get(name)
            for name in self.attribute_names()
            if name not in self.HIDDEN
        }

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_dict(), default=to_jsonable_python, **kwargs)

    # ---------- write API ----------

    def refresh(self) -> Self:
        """Reload the persisted row by primary key."""
        if self._row is None:
            raise UnpersistedAccess(
                f"Can't refresh unpersisted {self.__class__.__name__}."
            )
        key = self._row.get(self.PRIMARY_KEY)
        row = self._store.table(self.TABLE_NAME).where(self.PRIMARY_KEY, key).fetch()
        if row is None:
            raise PersistenceError(
                f"{self.__class__.__name__} with {self.PRIMARY_KEY} {key!r} no longer exists."
            )
        self._row = row
        return self

    def save(self) -> Self:
        """Persist the model, inserting or updating as needed."""
        if self._deleted:
            raise DeletedMutation(f"Can't save deleted {self.__class__.__name__}.")

        payload = dict(self._changes)
        table = self._store.table(self.TABLE_NAME)

        if self._row is None:
            if not self.INCREMENTING and payload.get(self.PRIMARY_KEY) is None:
                raise ValueError(
                    f"Primary key '{self.PRIMARY_KEY}' must be set before saving {self.__class__.__name__}."
                )
            if self.TIMESTAMPS:
                payload[self.CREATED_AT] = datetime.now()

            row = table.insert(payload)
            if row is None or row.get(self.PRIMARY_KEY) is None:
                raise PersistenceError(
                    f"Error saving {self.__class__.__name__}: could not retrieve record. "
                    f"Have you set the primary key correctly?"
                )
            self._row = row
            self._changes = {}
            logger.debug(f"Inserted {self.__class__.__name__} {self.key!r}")
        else:
            if self.TIMESTAMPS:
                payload[self.UPDATED_AT] = datetime.now()

            if payload:
                table.where(self.PRIMARY_KEY, self.key).update(payload)
            self._changes = {}
            logger.debug(f"Updated {self.__class__.__name__} {self.key!r}: {list(payload)}")
            self.refresh()

        return self

    def delete(self) -> None:
        """Delete the row. The entity keeps its last row but can't change anymore."""
        if self._row is None:
            raise UnpersistedDeletion(
                f"Nothing to delete: {self.__class__.__name__} is unpersisted."
            )
        if self._deleted:
            raise DeletedMutation(f"{self.__class__.__name__} {self.key!r} is already deleted.")

        self._store.table(self.TABLE_NAME).where(self.PRIMARY_KEY, self.key).delete()
        self._deleted = True
        logger.debug(f"Deleted {self.__class__.__name__} {self.key!r}")

    def __repr__(self) -> str:
        state = "deleted" if self._deleted else ("dirty" if self._changes else "clean")
        return f"<{self.__class__.__name__} {self.PRIMARY_KEY}={self.key!r} {state}>"

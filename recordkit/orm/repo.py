from __future__ import annotations

from typing import Any, ClassVar, List, Mapping, Optional, Type, TypeVar, Union

from recordkit.casts import cast_value
from recordkit.data.base import RelationalStore
from recordkit.errors import UnsupportedOperation
from recordkit.orm.query_builder import FluentOp, QueryBuilder

M = TypeVar("M", bound="Repo")


class RepoMeta(type):
    """Unknown public class attributes are unsupported query operations."""

    def __getattr__(cls, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        raise UnsupportedOperation(f"Call to undefined method {cls.__name__}.{name}.")


class Repo(metaclass=RepoMeta):
    """
    Table-level half of a model: store binding, ``find`` and the fluent
    entry points. Every entry point starts from a fresh QueryBuilder.
    """

    TABLE_NAME: ClassVar[str]
    PRIMARY_KEY: ClassVar[str]
    # Cast kind of the primary key, applied to ids passed to find()
    KEY_TYPE: ClassVar[Optional[str]] = "int"

    _bound_store: ClassVar[Optional[RelationalStore]]

    @classmethod
    def bind(cls, store: Optional[RelationalStore]) -> None:
        """Attach the store used by this model and every subclass that doesn't bind its own."""
        cls._bound_store = store

    @classmethod
    def query(cls: Type[M]) -> QueryBuilder:
        return QueryBuilder(cls, cls.bound_store())  # type: ignore[arg-type, attr-defined]

    @classmethod
    def find(cls: Type[M], id: Any) -> Optional[Any]:
        """Get model by primary key, None when there is no such row."""
        key = cast_value(cls.KEY_TYPE, id) if cls.KEY_TYPE else id
        return cls.query().where(cls.PRIMARY_KEY, key).fetch()

    @classmethod
    def all(cls: Type[M]) -> List[Any]:
        return cls.query().get()

    @classmethod
    def apply(cls: Type[M], operation: Union[str, FluentOp], *args: Any, **kwargs: Any) -> QueryBuilder:
        return cls.query().apply(operation, *args, **kwargs)

    # ---------- fluent entry points ----------

    @classmethod
    def select(cls: Type[M], *columns: str) -> QueryBuilder:
        return cls.query().select(*columns)

    @classmethod
    def where(cls: Type[M], expression: Union[str, Mapping[str, Any]], value: Any = None) -> QueryBuilder:
        return cls.query().where(expression, value)

    @classmethod
    def join_where(
        cls: Type[M],
        table: str,
        local_key: str,
        expression: str,
        value: Any = None,
        foreign_key: Optional[str] = None,
    ) -> QueryBuilder:
        return cls.query().join_where(table, local_key, expression, value, foreign_key)

    @classmethod
    def where_or(cls: Type[M], conditions: Mapping[str, Any]) -> QueryBuilder:
        return cls.query().where_or(conditions)

    @classmethod
    def group(cls: Type[M], *columns: str) -> QueryBuilder:
        return cls.query().group(*columns)

    @classmethod
    def having(cls: Type[M], expression: str, value: Any = None) -> QueryBuilder:
        return cls.query().having(expression, value)

    @classmethod
    def order(cls: Type[M], *terms: str) -> QueryBuilder:
        return cls.query().order(*terms)

    @classmethod
    def limit(cls: Type[M], limit: int, offset: Optional[int] = None) -> QueryBuilder:
        return cls.query().limit(limit, offset)

    @classmethod
    def page(cls: Type[M], page: int, items_per_page: int) -> QueryBuilder:
        return cls.query().page(page, items_per_page)

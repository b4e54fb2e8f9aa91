from __future__ import annotations

import logging
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Generic,
    Iterator,
    List,
    Mapping,
    Optional,
    Self,
    Type,
    TypeVar,
    Union,
)

from recordkit.data.base import RelationalStore, Row, Selection
from recordkit.errors import UnsupportedOperation

if TYPE_CHECKING:
    from recordkit.orm.entity import Entity

T = TypeVar("T", bound="Entity")

logger = logging.getLogger(__name__)


class FluentOp(str, Enum):
    """The closed set of operations a builder forwards to its selection."""

    SELECT = "select"
    WHERE = "where"
    JOIN_WHERE = "join_where"
    WHERE_OR = "where_or"
    GROUP = "group"
    HAVING = "having"
    ORDER = "order"
    LIMIT = "limit"
    PAGE = "page"


def fluent_op(operation: Union[str, FluentOp]) -> FluentOp:
    try:
        return FluentOp(operation)
    except ValueError:
        raise UnsupportedOperation(f"Call to undefined method {operation}.") from None


class QueryBuilder(Generic[T]):
    """
    Builds a query over one model's table and hydrates its rows into models.

    A builder is reusable: once a ``cursor()`` has been fully consumed the
    selection goes back to the whole table. Two cursors of the same builder
    must not be iterated at the same time.
    """

    def __init__(self, model: Type[T], store: RelationalStore):
        self.model = model
        self.store = store
        self.table = model.TABLE_NAME
        self._selection = self._base_selection()

    def _base_selection(self) -> Selection:
        return self.store.table(self.table)

    def reset(self) -> Self:
        self._selection = self._base_selection()
        return self

    @property
    def selection(self) -> Selection:
        return self._selection

    def _hydrate(self, row: Row) -> Optional[T]:
        return self.model(row, store=self.store)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        raise UnsupportedOperation(f"Call to undefined method {name}.")

    # ---------- fluent API ----------

    def select(self, *columns: str) -> Self:
        self._selection = self._selection.select(*columns)
        return self

    def where(self, expression: Union[str, Mapping[str, Any]], value: Any = None) -> Self:
        self._selection = self._selection.where(expression, value)
        return self

    def join_where(
        self,
        table: str,
        local_key: str,
        expression: str,
        value: Any = None,
        foreign_key: Optional[str] = None,
    ) -> Self:
        self._selection = self._selection.join_where(
            table, local_key, expression, value, foreign_key
        )
        return self

    def where_or(self, conditions: Mapping[str, Any]) -> Self:
        self._selection = self._selection.where_or(conditions)
        return self

    def group(self, *columns: str) -> Self:
        self._selection = self._selection.group(*columns)
        return self

    def having(self, expression: str, value: Any = None) -> Self:
        self._selection = self._selection.having(expression, value)
        return self

    def order(self, *terms: str) -> Self:
        self._selection = self._selection.order(*terms)
        return self

    def limit(self, limit: int, offset: Optional[int] = None) -> Self:
        self._selection = self._selection.limit(limit, offset)
        return self

    def page(self, page: int, items_per_page: int) -> Self:
        self._selection = self._selection.page(page, items_per_page)
        return self

    def apply(self, operation: Union[str, FluentOp], *args: Any, **kwargs: Any) -> Self:
        """Apply a fluent operation given by name, e.g. ``apply("order", "id")``."""
        handlers: Dict[FluentOp, Callable[..., Self]] = {
            FluentOp.SELECT: self.select,
            FluentOp.WHERE: self.where,
            FluentOp.JOIN_WHERE: self.join_where,
            FluentOp.WHERE_OR: self.where_or,
            FluentOp.GROUP: self.group,
            FluentOp.HAVING: self.having,
            FluentOp.ORDER: self.order,
            FluentOp.LIMIT: self.limit,
            FluentOp.PAGE: self.page,
        }
        return handlers[fluent_op(operation)](*args, **kwargs)

    # ---------- materialization ----------

    def cursor(self) -> Iterator[T]:
        """Lazily yield models for the current selection, then reset."""
        logger.debug(f"Iterating {self._selection!r}")
        for row in self._selection:
            entity = self._hydrate(row)
            if entity is not None:
                yield entity

        self.reset()

    def __iter__(self) -> Iterator[T]:
        return self.cursor()

    def get(self) -> List[T]:
        return list(self.cursor())

    def fetch(self) -> Optional[T]:
        """First model matching the current selection, or None."""
        row = self._selection.fetch()
        if row is None:
            return None
        return self._hydrate(row)

    def count(self) -> int:
        return self._selection.count()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.model.__name__}, {self._selection!r})"

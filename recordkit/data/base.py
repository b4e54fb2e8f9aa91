from __future__ import annotations

import copy
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Self,
    Sequence,
    Tuple,
    Union,
)

# Operators accepted after a column name in a condition expression, longest first
OPERATORS = (
    "NOT LIKE",
    "NOT IN",
    "IS NOT",
    "LIKE",
    "IN",
    "IS",
    "!=",
    "<>",
    "<=",
    ">=",
    "=",
    "<",
    ">",
)

_IDENTIFIER = r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)?"
_CONDITION_RE = re.compile(
    rf"^\s*({_IDENTIFIER})\s*({'|'.join(re.escape(op) for op in OPERATORS)})?\s*$",
    re.IGNORECASE,
)
_ORDER_RE = re.compile(rf"^\s*({_IDENTIFIER})(?:\s+(ASC|DESC))?\s*$", re.IGNORECASE)
_COLUMN_RE = re.compile(rf"^\s*(\*|{_IDENTIFIER})\s*$")


@dataclass(frozen=True)
class Condition:
    column: str
    operator: str
    value: Any


@dataclass(frozen=True)
class AnyOf:
    """OR-group of conditions, ANDed with the rest of the selection."""

    conditions: Tuple[Condition, ...]


@dataclass(frozen=True)
class JoinCondition:
    """
    Keeps rows whose ``local_key`` points at a row of ``table`` (through
    ``foreign_key``) that satisfies ``condition``.
    """

    table: str
    local_key: str
    foreign_key: str
    condition: Condition


@dataclass(frozen=True)
class OrderTerm:
    column: str
    descending: bool = False


Filter = Union[Condition, AnyOf, JoinCondition]


def parse_condition(expression: str, value: Any) -> Condition:
    """Parse ``"column"`` or ``"column OP"`` into a Condition.

    With no explicit operator, a list/tuple/set value means ``IN``, ``None``
    means ``IS`` (NULL) and anything else means ``=``.
    """
    match = _CONDITION_RE.match(expression)
    if match is None:
        raise ValueError(f"Malformed condition expression: {expression!r}")

    column, operator = match.group(1), match.group(2)
    if operator is None:
        if isinstance(value, (list, tuple, set, frozenset)):
            operator = "IN"
        elif value is None:
            operator = "IS"
        else:
            operator = "="
    operator = operator.upper()
    if operator == "<>":
        operator = "!="

    if operator in ("IN", "NOT IN"):
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError(f"Operator {operator} expects a collection value")
        value = tuple(value)

    return Condition(column=column, operator=operator, value=value)


def parse_order(term: str) -> OrderTerm:
    match = _ORDER_RE.match(term)
    if match is None:
        raise ValueError(f"Malformed order term: {term!r}")
    direction = (match.group(2) or "ASC").upper()
    return OrderTerm(column=match.group(1), descending=direction == "DESC")


def parse_column(column: str) -> str:
    match = _COLUMN_RE.match(column)
    if match is None:
        raise ValueError(f"Malformed column name: {column!r}")
    return match.group(1)


def _split(items: Sequence[str]) -> List[str]:
    # "a, b DESC" and ("a", "b DESC") are equivalent
    parts: List[str] = []
    for item in items:
        parts.extend(p for p in item.split(",") if p.strip())
    return parts


class Row(Mapping[str, Any]):
    """A fetched row: an immutable column mapping that knows its table."""

    def __init__(self, store: "RelationalStore", table: str, data: Mapping[str, Any]):
        self._store = store
        self._table = table
        self._data: Dict[str, Any] = dict(data)

    @property
    def table_name(self) -> str:
        return self._table

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Row({self._table!r}, {self._data!r})"

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def ref(
        self, table: str, column: str, key: Optional[str] = None
    ) -> Optional["Row"]:
        """Follow the foreign key stored in ``column`` to its row in ``table``.

        ``key`` is the referenced column, the primary key of ``table`` by default.
        """
        value = self._data.get(column)
        if value is None:
            return None
        return (
            self._store.table(table)
            .where(key or self._store.primary_key(table), value)
            .fetch()
        )


class Selection(ABC):
    """
    A filtered, ordered and paged view over one table.

    Every fluent method returns a new selection, the receiver is left as is.
    """

    def __init__(self, store: "RelationalStore", table: str):
        self.store = store
        self.table = table
        self.columns: Tuple[str, ...] = ()
        self.filters: Tuple[Filter, ...] = ()
        self.grouping: Tuple[str, ...] = ()
        self.having_filters: Tuple[Condition, ...] = ()
        self.ordering: Tuple[OrderTerm, ...] = ()
        self.limit_count: Optional[int] = None
        self.offset_count: Optional[int] = None

    def _copy(self, **changes: Any) -> Self:
        selection = copy.copy(self)
        for name, value in changes.items():
            setattr(selection, name, value)
        return selection

    # ---------- fluent API ----------

    def select(self, *columns: str) -> Self:
        parsed = tuple(parse_column(c) for c in _split(columns))
        return self._copy(columns=self.columns + parsed)

    def where(
        self, expression: Union[str, Mapping[str, Any]], value: Any = None
    ) -> Self:
        if isinstance(expression, Mapping):
            conditions = tuple(parse_condition(k, v) for k, v in expression.items())
        else:
            conditions = (parse_condition(expression, value),)
        return self._copy(filters=self.filters + conditions)

    def where_or(self, conditions: Mapping[str, Any]) -> Self:
        if not conditions:
            raise ValueError("where_or() needs at least one condition")
        group = AnyOf(tuple(parse_condition(k, v) for k, v in conditions.items()))
        return self._copy(filters=self.filters + (group,))

    def join_where(
        self,
        table: str,
        local_key: str,
        expression: str,
        value: Any = None,
        foreign_key: Optional[str] = None,
    ) -> Self:
        join = JoinCondition(
            table=table,
            local_key=parse_column(local_key),
            foreign_key=parse_column(foreign_key or self.store.primary_key(table)),
            condition=parse_condition(expression, value),
        )
        return self._copy(filters=self.filters + (join,))

    def group(self, *columns: str) -> Self:
        parsed = tuple(parse_column(c) for c in _split(columns))
        return self._copy(grouping=self.grouping + parsed)

    def having(self, expression: str, value: Any = None) -> Self:
        condition = parse_condition(expression, value)
        return self._copy(having_filters=self.having_filters + (condition,))

    def order(self, *terms: str) -> Self:
        parsed = tuple(parse_order(t) for t in _split(terms))
        return self._copy(ordering=self.ordering + parsed)

    def limit(self, limit: int, offset: Optional[int] = None) -> Self:
        if limit < 0 or (offset is not None and offset < 0):
            raise ValueError("limit and offset must not be negative")
        return self._copy(limit_count=limit, offset_count=offset)

    def page(self, page: int, items_per_page: int) -> Self:
        if page < 1 or items_per_page < 1:
            raise ValueError("page and items_per_page must be positive")
        return self.limit(items_per_page, (page - 1) * items_per_page)

    # ---------- execution ----------

    @abstractmethod
    def __iter__(self) -> Iterator[Row]: ...

    @abstractmethod
    def fetch(self) -> Optional[Row]: ...

    @abstractmethod
    def count(self) -> int: ...

    @abstractmethod
    def insert(self, data: Mapping[str, Any]) -> Optional[Row]: ...

    @abstractmethod
    def update(self, data: Mapping[str, Any]) -> int: ...

    @abstractmethod
    def delete(self) -> int: ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.table!r}, filters={list(self.filters)!r})"


class RelationalStore(ABC):
    """Table-level access to a relational database."""

    def __init__(
        self,
        primary_keys: Optional[Mapping[str, str]] = None,
        default_primary_key: str = "id",
    ):
        self.primary_keys: Dict[str, str] = dict(primary_keys or {})
        self.default_primary_key = default_primary_key

    @abstractmethod
    def table(self, name: str) -> Selection: ...

    def primary_key(self, table: str) -> str:
        return self.primary_keys.get(table, self.default_primary_key)

    def close(self) -> None:
        pass

"""In-process relational store, for tests and prototyping."""

from __future__ import annotations

import logging
import re
import threading
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from recordkit.data.base import (
    AnyOf,
    Condition,
    Filter,
    JoinCondition,
    RelationalStore,
    Row,
    Selection,
)

logger = logging.getLogger(__name__)


def _like(pattern: str) -> re.Pattern[str]:
    parts = []
    for ch in pattern:
        if ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("^" + "".join(parts) + "$", re.DOTALL)


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(left: Any, right: Any) -> bool:
        # SQL semantics: comparisons against NULL never match
        if left is None or right is None:
            return False
        return op(left, right)

    return check


_CHECKS: Dict[str, Callable[[Any, Any], bool]] = {
    "=": _compare(lambda a, b: a == b),
    "!=": _compare(lambda a, b: a != b),
    "<": _compare(lambda a, b: a < b),
    "<=": _compare(lambda a, b: a <= b),
    ">": _compare(lambda a, b: a > b),
    ">=": _compare(lambda a, b: a >= b),
    "IN": lambda a, b: a is not None and a in b,
    "NOT IN": lambda a, b: a is not None and a not in b,
    "LIKE": _compare(lambda a, b: bool(_like(b).match(str(a)))),
    "NOT LIKE": _compare(lambda a, b: not _like(b).match(str(a))),
    "IS": lambda a, b: a is b if b is None else a == b,
    "IS NOT": lambda a, b: a is not b if b is None else a != b,
}


class MemorySelection(Selection):
    store: "MemoryStore"

    def _value(self, row: Mapping[str, Any], column: str) -> Any:
        if "." in column:
            table, column = column.split(".", 1)
            if table != self.table:
                return None
        return row.get(column)

    def _matches(self, row: Mapping[str, Any], condition: Condition) -> bool:
        left = self._value(row, condition.column)
        return _CHECKS[condition.operator](left, condition.value)

    def _passes(self, row: Mapping[str, Any], item: Filter) -> bool:
        if isinstance(item, Condition):
            return self._matches(row, item)
        if isinstance(item, AnyOf):
            return any(self._matches(row, c) for c in item.conditions)
        if isinstance(item, JoinCondition):
            target = self._value(row, item.local_key)
            if target is None:
                return False
            joined = self.store.table(item.table)
            return any(
                joined._value(other, item.foreign_key) == target
                and joined._matches(other, item.condition)
                for other in self.store._rows(item.table)
            )
        raise TypeError(f"Unknown filter {item!r}")

    def _filtered(self) -> List[Dict[str, Any]]:
        return [
            row
            for row in self.store._rows(self.table)
            if all(self._passes(row, f) for f in self.filters)
        ]

    def _result(self) -> List[Dict[str, Any]]:
        rows = self._filtered()

        if self.grouping:
            # one representative row (the first seen) per group key
            groups: Dict[tuple, Dict[str, Any]] = {}
            for row in rows:
                key = tuple(self._value(row, c) for c in self.grouping)
                groups.setdefault(key, row)
            rows = [
                row
                for row in groups.values()
                if all(self._matches(row, c) for c in self.having_filters)
            ]

        for term in reversed(self.ordering):
            present = [r for r in rows if self._value(r, term.column) is not None]
            missing = [r for r in rows if self._value(r, term.column) is None]
            present.sort(
                key=lambda r: self._value(r, term.column), reverse=term.descending
            )
            # NULLS LAST ascending, NULLS FIRST descending
            rows = missing + present if term.descending else present + missing

        start = self.offset_count or 0
        stop = None if self.limit_count is None else start + self.limit_count
        rows = rows[start:stop]

        if self.columns and "*" not in self.columns:
            rows = [{c: self._value(r, c) for c in self.columns} for r in rows]
        return rows

    def __iter__(self) -> Iterator[Row]:
        with self.store.lock:
            rows = [dict(r) for r in self._result()]
        for row in rows:
            yield Row(self.store, self.table, row)

    def fetch(self) -> Optional[Row]:
        with self.store.lock:
            rows = self._result()
            first = dict(rows[0]) if rows else None
        return None if first is None else Row(self.store, self.table, first)

    def count(self) -> int:
        with self.store.lock:
            return len(self._result())

    def insert(self, data: Mapping[str, Any]) -> Optional[Row]:
        row = dict(data)
        pk = self.store.primary_key(self.table)
        with self.store.lock:
            if row.get(pk) is None and self.store.auto_increment:
                row[pk] = self.store._next_id(self.table)
            self.store._rows(self.table).append(row)
        logger.debug(f"Inserted into {self.table}: {row!r}")
        return Row(self.store, self.table, row)

    def update(self, data: Mapping[str, Any]) -> int:
        with self.store.lock:
            rows = self._filtered()
            for row in rows:
                row.update(data)
        logger.debug(f"Updated {len(rows)} row(s) in {self.table}")
        return len(rows)

    def delete(self) -> int:
        with self.store.lock:
            doomed = {id(r) for r in self._filtered()}
            table = self.store._rows(self.table)
            table[:] = [r for r in table if id(r) not in doomed]
        logger.debug(f"Deleted {len(doomed)} row(s) from {self.table}")
        return len(doomed)


class MemoryStore(RelationalStore):
    """
    Keeps every table as a list of dicts. Unknown tables read as empty and are
    created on first insert. With ``auto_increment`` a missing primary key is
    filled with ``max(existing) + 1``.
    """

    def __init__(
        self,
        primary_keys: Optional[Mapping[str, str]] = None,
        default_primary_key: str = "id",
        auto_increment: bool = True,
    ):
        super().__init__(primary_keys, default_primary_key)
        self.auto_increment = auto_increment
        self.lock = threading.RLock()
        self._tables: Dict[str, List[Dict[str, Any]]] = {}

    def table(self, name: str) -> MemorySelection:
        return MemorySelection(self, name)

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        return self._tables.setdefault(table, [])

    def _next_id(self, table: str) -> int:
        pk = self.primary_key(table)
        ids = [r[pk] for r in self._rows(table) if isinstance(r.get(pk), int)]
        return max(ids, default=0) + 1

    def close(self) -> None:
        with self.lock:
            self._tables.clear()

from __future__ import annotations

from enum import Enum
from typing import Any, Iterator, List, Mapping, Optional, Tuple

from psycopg import sql
from psycopg.types.json import Json, Jsonb

from recordkit.data.base import (
    AnyOf,
    Condition,
    Filter,
    JoinCondition,
    RelationalStore,
    Row,
    Selection,
)
from recordkit.data.postgres.manager import DatabaseManager

Fragment = Tuple[sql.Composable, List[Any]]


def _identifier(column: str) -> sql.Composable:
    if column == "*":
        return sql.SQL("*")
    return sql.Identifier(*column.split("."))


def _adapt(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    # Wrap for sending (prefer jsonb on write)
    if isinstance(value, (dict, list)) and not isinstance(value, (Json, Jsonb)):
        return Jsonb(value)
    return value


def _compile_condition(condition: Condition) -> Fragment:
    column = _identifier(condition.column)
    op = condition.operator
    value = condition.value

    if op == "IN":
        return sql.SQL("{} = ANY(%s)").format(column), [list(value)]
    if op == "NOT IN":
        return sql.SQL("{} <> ALL(%s)").format(column), [list(value)]
    if op == "IS":
        if value is None:
            return sql.SQL("{} IS NULL").format(column), []
        return sql.SQL("{} IS NOT DISTINCT FROM %s").format(column), [_adapt(value)]
    if op == "IS NOT":
        if value is None:
            return sql.SQL("{} IS NOT NULL").format(column), []
        return sql.SQL("{} IS DISTINCT FROM %s").format(column), [_adapt(value)]

    # op comes from the closed OPERATORS list, never from caller text
    return sql.SQL("{} " + op + " %s").format(column), [_adapt(value)]


class PostgresSelection(Selection):
    store: "PostgresStore"

    def _compile_filter(self, item: Filter) -> Fragment:
        if isinstance(item, Condition):
            return _compile_condition(item)
        if isinstance(item, AnyOf):
            parts, params = [], []
            for condition in item.conditions:
                part, part_params = _compile_condition(condition)
                parts.append(part)
                params.extend(part_params)
            return sql.SQL("({})").format(sql.SQL(" OR ").join(parts)), params
        if isinstance(item, JoinCondition):
            inner, params = _compile_condition(item.condition)
            query = sql.SQL("{} IN (SELECT {} FROM {} WHERE {})").format(
                _identifier(item.local_key),
                _identifier(item.foreign_key),
                sql.Identifier(item.table),
                inner,
            )
            return query, params
        raise TypeError(f"Unknown filter {item!r}")

    def _compile_where(self) -> Fragment:
        if not self.filters:
            return sql.SQL(""), []
        parts, params = [], []
        for item in self.filters:
            part, part_params = self._compile_filter(item)
            parts.append(part)
            params.extend(part_params)
        return sql.SQL(" WHERE {}").format(sql.SQL(" AND ").join(parts)), params

    def _compile_select(self, columns: Optional[sql.Composable] = None) -> Fragment:
        if columns is None:
            columns = (
                sql.SQL(", ").join(_identifier(c) for c in self.columns)
                if self.columns
                else sql.SQL("*")
            )
        query: List[sql.Composable] = [
            sql.SQL("SELECT {} FROM {}").format(columns, sql.Identifier(self.table))
        ]
        where, params = self._compile_where()
        query.append(where)

        if self.grouping:
            query.append(
                sql.SQL(" GROUP BY {}").format(
                    sql.SQL(", ").join(_identifier(c) for c in self.grouping)
                )
            )
        if self.having_filters:
            parts = []
            for condition in self.having_filters:
                part, part_params = _compile_condition(condition)
                parts.append(part)
                params.extend(part_params)
            query.append(sql.SQL(" HAVING {}").format(sql.SQL(" AND ").join(parts)))
        if self.ordering:
            terms = [
                sql.SQL("{} DESC" if t.descending else "{} ASC").format(
                    _identifier(t.column)
                )
                for t in self.ordering
            ]
            query.append(sql.SQL(" ORDER BY {}").format(sql.SQL(", ").join(terms)))
        if self.limit_count is not None:
            query.append(sql.SQL(" LIMIT %s"))
            params.append(self.limit_count)
        if self.offset_count is not None:
            query.append(sql.SQL(" OFFSET %s"))
            params.append(self.offset_count)

        return sql.Composed(query), params

    def _row(self, data: Mapping[str, Any]) -> Row:
        return Row(self.store, self.table, data)

    def __iter__(self) -> Iterator[Row]:
        query, params = self._compile_select()
        rows = self.store.db.execute_query(query, params)
        for row in rows or []:
            yield self._row(row)

    def fetch(self) -> Optional[Row]:
        selection = self if self.limit_count is not None else self.limit(1)
        query, params = selection._compile_select()
        row = self.store.db.execute_and_fetch_one(query, params)
        return None if row is None else self._row(row)

    def count(self) -> int:
        inner, params = self._compile_select()
        query = sql.SQL("SELECT COUNT(*) AS count FROM ({}) AS counted").format(inner)
        row = self.store.db.execute_and_fetch_one(query, params)
        return int(row["count"]) if row else 0

    def insert(self, data: Mapping[str, Any]) -> Optional[Row]:
        table = sql.Identifier(self.table)
        if data:
            query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
                table,
                sql.SQL(", ").join(sql.Identifier(k) for k in data.keys()),
                sql.SQL(", ").join(sql.Placeholder() for _ in data),
            )
        else:
            query = sql.SQL("INSERT INTO {} DEFAULT VALUES RETURNING *").format(table)
        row = self.store.db.execute_and_fetch_one(
            query, [_adapt(v) for v in data.values()]
        )
        return None if row is None else self._row(row)

    def update(self, data: Mapping[str, Any]) -> int:
        if not data:
            return 0
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(k)) for k in data.keys()
        )
        where, params = self._compile_where()
        query = sql.SQL("UPDATE {} SET {}{}").format(
            sql.Identifier(self.table), assignments, where
        )
        return self.store.db.execute_rowcount(
            query, [_adapt(v) for v in data.values()] + params
        )

    def delete(self) -> int:
        where, params = self._compile_where()
        query = sql.SQL("DELETE FROM {}{}").format(sql.Identifier(self.table), where)
        return self.store.db.execute_rowcount(query, params)


class PostgresStore(RelationalStore):
    """PostgreSQL-backed relational store on top of a pooled DatabaseManager."""

    def __init__(
        self,
        db: DatabaseManager,
        primary_keys: Optional[Mapping[str, str]] = None,
        default_primary_key: str = "id",
    ):
        super().__init__(primary_keys, default_primary_key)
        self.db = db

    @classmethod
    def connect(cls, dsn: str, **pool_options: Any) -> "PostgresStore":
        return cls(DatabaseManager(dsn, **pool_options))

    def table(self, name: str) -> PostgresSelection:
        return PostgresSelection(self, name)

    def close(self) -> None:
        self.db.close()

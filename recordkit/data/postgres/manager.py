# recordkit/data/postgres/manager.py  (psycopg3 pool + DictRow typing + ContextVar reuse)

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, List, Mapping, Optional, Sequence, cast

import psycopg
from psycopg.rows import dict_row, DictRow
from psycopg_pool import ConnectionPool

from recordkit.errors import ConnectionUninitialized

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    psycopg3 manager with:
      - a connection pool per manager instance
      - ContextVar-based connection reuse across nested calls
      - DictRow typing so fetches are Mapping[str, Any]
      - commit/rollback at the outermost DB call
    """

    def __init__(
        self,
        dsn: str,
        *,
        min_size: int = 1,
        max_size: int = 20,
        timeout: float = 30.0,
    ):
        self.dsn = dsn
        # pool is generic over the CONNECTION TYPE, not the row type
        self.pool: Optional[ConnectionPool[psycopg.Connection[DictRow]]] = (
            ConnectionPool(
                dsn,
                min_size=min_size,
                max_size=max_size,
                timeout=timeout,
                open=True,
            )
        )

        # Per-instance ContextVars so multiple DSNs don't clash
        self._current_conn: ContextVar[Optional[psycopg.Connection[DictRow]]] = (
            ContextVar(
                f"pg_current_conn_{id(self)}",
                default=None,
            )
        )
        self._conn_depth: ContextVar[int] = ContextVar(
            f"pg_conn_depth_{id(self)}",
            default=0,
        )

    @contextmanager
    def get_connection(self) -> Iterator[psycopg.Connection[DictRow]]:
        """
        Reuse one connection per context to prevent re-entrant pool.getconn() deadlocks.
        """
        existing = self._current_conn.get()
        if existing is not None:
            token_depth = self._conn_depth.set(self._conn_depth.get() + 1)
            try:
                yield existing
            finally:
                self._conn_depth.reset(token_depth)
            return

        if self.pool is None:
            raise ConnectionUninitialized(f"Connection pool for {self.dsn} is closed.")

        conn: psycopg.Connection[DictRow] = self.pool.getconn()
        # Return dict-like rows (Mapping[str, Any])
        conn.row_factory = dict_row

        token_conn = self._current_conn.set(conn)
        token_depth = self._conn_depth.set(1)
        try:
            yield conn
        finally:
            try:
                self.pool.putconn(conn)
            finally:
                self._current_conn.reset(token_conn)
                self._conn_depth.reset(token_depth)

    @contextmanager
    def get_cursor(self, *, commit: bool = True) -> Iterator[psycopg.Cursor[DictRow]]:
        """
        Yield a cursor on the context connection. Commits on success and rolls
        back on error, both only at the outermost depth.
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                try:
                    yield cur
                    if commit and self._conn_depth.get() == 1:
                        conn.commit()
                except Exception:
                    if self._conn_depth.get() == 1:
                        conn.rollback()
                    raise

    def execute_query(
        self,
        query: Any,  # accept str/SQL/Composed
        params: Optional[Sequence[Any]] = None,
    ) -> Optional[List[Mapping[str, Any]]]:
        """
        SELECT / RETURNING -> list of mapping rows
        DML without RETURNING -> None
        """
        with self.get_cursor() as cur:
            logger.debug(f"Executing {query!r} with {params!r}")
            cur.execute(cast(Any, query), params)
            return cur.fetchall() if cur.description is not None else None

    def execute_and_fetch_one(
        self,
        query: Any,
        params: Optional[Sequence[Any]] = None,
    ) -> Optional[Mapping[str, Any]]:
        with self.get_cursor() as cur:
            logger.debug(f"Executing {query!r} with {params!r}")
            cur.execute(cast(Any, query), params)
            return cur.fetchone()

    def execute_rowcount(
        self,
        query: Any,
        params: Optional[Sequence[Any]] = None,
    ) -> int:
        """
        UPDATE / DELETE -> number of affected rows
        """
        with self.get_cursor() as cur:
            logger.debug(f"Executing {query!r} with {params!r}")
            cur.execute(cast(Any, query), params)
            return cur.rowcount

    def close(self) -> None:
        if self.pool is not None:
            self.pool.close()
            self.pool = None

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional, Type

from recordkit.data.base import RelationalStore, Row, Selection
from recordkit.orm.query_builder import QueryBuilder, T

if TYPE_CHECKING:
    from recordkit.orm.entity import Entity

logger = logging.getLogger(__name__)


class PivotedQueryBuilder(QueryBuilder[T]):
    """
    QueryBuilder for many-to-many relationships.

    Filters and ordering apply to the junction table, which is always scoped
    to the origin model's key. Each junction row is dereferenced to the
    related model, and the junction row itself stays reachable as
    ``entity.pivot``.
    """

    def __init__(
        self,
        origin: Type["Entity"],
        related: Type[T],
        store: RelationalStore,
        junction: str,
        foreign_pivot_key: str,
        related_pivot_key: str,
        local_value: Any,
    ):
        self.origin = origin
        self.junction = junction
        self.foreign_pivot_key = foreign_pivot_key  # origin's key in the junction table
        self.related_pivot_key = related_pivot_key  # related key in the junction table
        self.local_value = local_value
        super().__init__(related, store)

    def _base_selection(self) -> Selection:
        return self.store.table(self.junction).where(
            self.foreign_pivot_key, self.local_value
        )

    def _hydrate(self, row: Row) -> Optional[T]:
        related = row.ref(
            self.model.TABLE_NAME, self.related_pivot_key, self.model.PRIMARY_KEY
        )
        if related is None:
            logger.debug(
                f"Skipping {self.junction} row without a matching {self.model.TABLE_NAME} row: {row!r}"
            )
            return None
        return self.model(related, row, store=self.store)

    def fetch(self) -> Optional[T]:
        """First related model, skipping junction rows without a related row."""
        for row in self._selection:
            entity = self._hydrate(row)
            if entity is not None:
                return entity
        return None

    def attach(self, related: Any, additional: Optional[Mapping[str, Any]] = None) -> None:
        """Attach a related model (by key) to the origin model.

        ``additional`` holds extra junction-table columns. Attaching the same
        pair twice inserts two junction rows unless the table forbids it.
        """
        data = dict(additional or {})
        data[self.foreign_pivot_key] = self.local_value
        data[self.related_pivot_key] = related

        logger.debug(f"Attaching {self.model.__name__} {related!r} via {self.junction}")
        self.store.table(self.junction).insert(data)

    def detach(self, related: Any) -> int:
        """Detach a related model (by key) from the origin model."""
        logger.debug(f"Detaching {self.model.__name__} {related!r} via {self.junction}")
        return (
            self.store.table(self.junction)
            .where(self.foreign_pivot_key, self.local_value)
            .where(self.related_pivot_key, related)
            .delete()
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.origin.__name__} -> {self.model.__name__} "
            f"via {self.junction}, {self._selection!r})"
        )

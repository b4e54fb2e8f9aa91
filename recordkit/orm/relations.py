from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Type, Union

from recordkit.data.base import RelationalStore, Row
from recordkit.errors import UnpersistedRelation
from recordkit.orm.pivoted import PivotedQueryBuilder
from recordkit.orm.query_builder import QueryBuilder
from recordkit.orm.registry import ModelRegistry

if TYPE_CHECKING:
    from recordkit.orm.entity import Entity

logger = logging.getLogger(__name__)

ModelRef = Union[str, Type["Entity"]]


class EntityRelations:
    """
    Relationship helpers of an entity. Call them from methods decorated with
    ``@relationship``; every helper needs a persisted entity.
    """

    PRIMARY_KEY: str
    _row: Optional[Row]
    _store: RelationalStore

    def _require_persisted(self) -> Row:
        if self._row is None:
            raise UnpersistedRelation(
                f"Can't work with relations of unpersisted {self.__class__.__name__}."
            )
        return self._row

    @classmethod
    def _model_name(cls, model: Type[Any]) -> str:
        return model.__name__.lower()

    def has_many(
        self,
        model: ModelRef,
        foreign_key: Optional[str] = None,
        local_key: Optional[str] = None,
    ) -> QueryBuilder:
        """Has-Many: rows of ``model`` whose ``foreign_key`` points at us."""
        row = self._require_persisted()
        related = ModelRegistry().resolve(model)

        foreign_key = foreign_key or f"{self._model_name(self.__class__)}_id"
        local_key = local_key or self.PRIMARY_KEY
        local_value = row.get(local_key)

        logger.debug(
            f"{self.__class__.__name__} has many {related.__name__} "
            f"on {foreign_key} = {local_value!r}"
        )
        query = QueryBuilder(related, self._store)
        if local_value is None:
            # NULL never equals anything, match no rows
            return query.where(foreign_key, [])
        return query.where(foreign_key, local_value)

    def has_one(
        self,
        model: ModelRef,
        foreign_key: Optional[str] = None,
        local_key: Optional[str] = None,
    ) -> Optional["Entity"]:
        return self.has_many(model, foreign_key, local_key).fetch()

    def belongs_to(
        self,
        model: ModelRef,
        foreign_key: Optional[str] = None,
        local_key: Optional[str] = None,
    ) -> Optional["Entity"]:
        """Reverse of Has-One/Has-Many: the parent model.

        ``local_key`` is the column on this row, ``<parent>_id`` by default;
        ``foreign_key`` is the parent's column, its primary key by default.
        """
        row = self._require_persisted()
        related = ModelRegistry().resolve(model)

        foreign_key = foreign_key or related.PRIMARY_KEY
        local_key = local_key or f"{self._model_name(related)}_id"
        local_value = row.get(local_key)
        if local_value is None:
            return None

        return QueryBuilder(related, self._store).where(foreign_key, local_value).fetch()

    def belongs_to_many(
        self,
        model: ModelRef,
        junction: Optional[str] = None,
        foreign_pivot_key: Optional[str] = None,
        related_pivot_key: Optional[str] = None,
    ) -> PivotedQueryBuilder:
        """Many-To-Many through a junction table.

        Defaults: junction ``<related>_<this>``, foreign pivot key
        ``<this>_id`` (identifies this model) and related pivot key
        ``<related>_id``.
        """
        row = self._require_persisted()
        related = ModelRegistry().resolve(model)

        this_name = self._model_name(self.__class__)
        related_name = self._model_name(related)
        junction = junction or f"{related_name}_{this_name}"
        foreign_pivot_key = foreign_pivot_key or f"{this_name}_id"
        related_pivot_key = related_pivot_key or f"{related_name}_id"

        return PivotedQueryBuilder(
            self.__class__,  # type: ignore[arg-type]
            related,
            self._store,
            junction,
            foreign_pivot_key,
            related_pivot_key,
            row.get(self.PRIMARY_KEY),
        )

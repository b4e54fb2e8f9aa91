"""
Declarations collected once per model class: relationships, accessors and
mutators, plus the per-attribute schema built from them.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type, TypeVar

R = TypeVar("R")

_ACCESSOR_MARK = "__recordkit_accessor__"
_MUTATOR_MARK = "__recordkit_mutator__"


@dataclass(frozen=True)
class AttributeSpec:
    cast: Optional[str] = None
    is_date: bool = False
    accessor: Optional[Callable[[Any, Any], Any]] = None
    mutator: Optional[Callable[[Any, Any], Any]] = None


class Relation:
    """Marks a model method as a relationship.

    The method stays callable (``book.authors()`` returns the builder or the
    related entity) and is also resolved by name when the attribute is read
    (``book["authors"]``).
    """

    def __init__(self, func: Callable[[Any], Any]):
        self.func = func
        self.name = func.__name__
        functools.update_wrapper(self, func)  # type: ignore[arg-type]

    def __set_name__(self, owner: Type[Any], name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, cls: Any) -> Any:
        if instance is None:
            return self
        return functools.partial(self.func, instance)

    def resolve(self, instance: Any) -> Any:
        return self.func(instance)

    @classmethod
    def get_relations(cls, model_cls: Type[Any]) -> Dict[str, "Relation"]:
        """Get all relationship declarations, subclasses overriding parents"""
        relations: Dict[str, Relation] = {}
        for klass in reversed(model_cls.__mro__):
            for attr_name, attr_value in vars(klass).items():
                if isinstance(attr_value, Relation):
                    relations[attr_name] = attr_value
                elif attr_name in relations:
                    # plain attribute shadows an inherited relationship
                    del relations[attr_name]
        return relations


def relationship(func: Callable[[Any], R]) -> Relation:
    return Relation(func)


def accessor(attribute: str) -> Callable[[Callable[[Any, Any], R]], Callable[[Any, Any], R]]:
    """Declare ``func(self, value)`` as the read transformation of ``attribute``."""

    def decorate(func: Callable[[Any, Any], R]) -> Callable[[Any, Any], R]:
        setattr(func, _ACCESSOR_MARK, attribute)
        return func

    return decorate


def mutator(attribute: str) -> Callable[[Callable[[Any, Any], R]], Callable[[Any, Any], R]]:
    """Declare ``func(self, value)`` as the write transformation of ``attribute``."""

    def decorate(func: Callable[[Any, Any], R]) -> Callable[[Any, Any], R]:
        setattr(func, _MUTATOR_MARK, attribute)
        return func

    return decorate


def _collect(model_cls: Type[Any], mark: str) -> Dict[str, Callable[[Any, Any], Any]]:
    found: Dict[str, Callable[[Any, Any], Any]] = {}
    for klass in reversed(model_cls.__mro__):
        for value in vars(klass).values():
            attribute = getattr(value, mark, None)
            if attribute is not None:
                found[attribute] = value
    return found


def build_schema(
    casts: Dict[str, str],
    dates: Any,
    model_cls: Type[Any],
) -> Dict[str, AttributeSpec]:
    accessors = _collect(model_cls, _ACCESSOR_MARK)
    mutators = _collect(model_cls, _MUTATOR_MARK)
    names = set(casts) | set(dates) | set(accessors) | set(mutators)
    return {
        name: AttributeSpec(
            cast=casts.get(name),
            is_date=name in dates,
            accessor=accessors.get(name),
            mutator=mutators.get(name),
        )
        for name in names
    }

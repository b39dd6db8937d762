"""Relation metadata for the fields a table exposes.

Models declare which of their relations take part in sorting and column
search through ``__datatables_relations__``::

    class User(Base):
        country = relationship('Country')
        roles = relationship('Role', secondary=user_roles)

        __datatables_relations__ = {
            'country': ['name', 'founded_at', ('region', 'name')],
            'roles': ['name'],
        }

Polymorphic ("morph to") relations have no SQLAlchemy relationship; they are
described with ``__datatables_morphs__``::

    __datatables_morphs__ = {
        'imageable': MorphRelation('imageable_type', 'imageable_id',
                                   types={'user': 'User', 'country': 'Country'}),
    }

:class:`RelationCatalog` turns these declarations into
:class:`RelationDescriptor` values once per request.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import inspect
from sqlalchemy.orm import RelationshipDirection

logger = logging.getLogger(__name__)


class RelationKind(Enum):
    BELONGS_TO = 'belongs_to'
    HAS_MANY = 'has_many'
    HAS_ONE = 'has_one'
    BELONGS_TO_MANY = 'belongs_to_many'
    MORPH_TO = 'morph_to'


@dataclass(frozen=True)
class NestedRelationRef:
    """A sub-field reached through a relation of the related model."""

    through: str
    field: Union[str, Tuple[str, ...]]

    @property
    def fields(self) -> Tuple[str, ...]:
        if isinstance(self.field, str):
            return (self.field,)
        return tuple(self.field)


@dataclass(frozen=True)
class MorphTarget:
    """Entity tags of a polymorphic relation and the fields searched on each."""

    types: Tuple[str, ...]
    fields: Union[Sequence[str], Mapping[str, Sequence[str]]] = ()

    def fields_for(self, tag: str) -> Tuple[str, ...]:
        if isinstance(self.fields, Mapping):
            return tuple(self.fields.get(tag) or ())
        return tuple(self.fields)


@dataclass(frozen=True)
class MorphRelation:
    type_column: str
    id_column: str
    types: Mapping[str, Any] = field(default_factory=dict)


SearchableField = Union[str, NestedRelationRef, MorphTarget]


@dataclass(frozen=True)
class RelationDescriptor:
    name: str
    kind: RelationKind
    # Instrumented relationship attribute; None for MORPH_TO
    attribute: Any = None
    related: Any = None
    # (parent column, related column) pairs; for BELONGS_TO_MANY these join through the pivot
    local_remote: Tuple[Tuple[Any, Any], ...] = ()
    pivot: Any = None
    searchable: Tuple[SearchableField, ...] = ()
    morph: Optional[MorphRelation] = None
    # tag -> mapped class, resolved for MORPH_TO
    morph_types: Mapping[str, Any] = field(default_factory=dict)

    @property
    def uselist(self) -> bool:
        return self.kind in (RelationKind.HAS_MANY, RelationKind.BELONGS_TO_MANY)


def _normalize_searchable(raw: Any) -> SearchableField:
    if isinstance(raw, (NestedRelationRef, MorphTarget, str)):
        return raw
    if isinstance(raw, Mapping):
        types = raw.get('types', raw.get('models', ()))
        if isinstance(types, str):
            types = (types,)
        return MorphTarget(types=tuple(types), fields=raw.get('fields', ()))
    if isinstance(raw, (list, tuple)) and len(raw) == 2:
        through, leaf = raw
        if not isinstance(leaf, str):
            leaf = tuple(leaf)
        return NestedRelationRef(through=str(through), field=leaf)
    raise TypeError(f"Unsupported searchable field declaration: {raw!r}")


def _kind_of(prop) -> RelationKind:
    if prop.direction is RelationshipDirection.MANYTOONE:
        return RelationKind.BELONGS_TO
    if prop.direction is RelationshipDirection.MANYTOMANY:
        return RelationKind.BELONGS_TO_MANY
    return RelationKind.HAS_MANY if prop.uselist else RelationKind.HAS_ONE


def _resolve_class(model, target: Any):
    if not isinstance(target, str):
        return target
    for mapper in inspect(model).registry.mappers:
        if mapper.class_.__name__ == target:
            return mapper.class_
    raise LookupError(f"Unknown morph target {target!r} for {model.__name__}")


class RelationCatalog:
    """Read-only mapping of field name -> :class:`RelationDescriptor`."""

    def __init__(self, model, descriptors: Mapping[str, RelationDescriptor]):
        self.model = model
        self._descriptors: Dict[str, RelationDescriptor] = dict(descriptors)

    @classmethod
    def for_model(cls, model) -> "RelationCatalog":
        declared = getattr(model, '__datatables_relations__', None) or {}
        morphs = getattr(model, '__datatables_morphs__', None) or {}
        relationships = inspect(model).relationships
        out: Dict[str, RelationDescriptor] = {}
        for name, raw_fields in declared.items():
            searchable = tuple(_normalize_searchable(f) for f in (raw_fields or ()))
            if name in morphs:
                morph = morphs[name]
                out[name] = RelationDescriptor(
                    name=name,
                    kind=RelationKind.MORPH_TO,
                    searchable=searchable,
                    morph=morph,
                    morph_types={tag: _resolve_class(model, t) for tag, t in morph.types.items()},
                )
                continue
            prop = relationships.get(name)
            if prop is None:
                logger.debug(f"{model.__name__}.{name} is declared for datatables but is not a relationship; ignoring")
                continue
            out[name] = RelationDescriptor(
                name=name,
                kind=_kind_of(prop),
                attribute=getattr(model, name),
                related=prop.mapper.class_,
                local_remote=tuple(prop.local_remote_pairs or ()),
                pivot=prop.secondary,
                searchable=searchable,
            )
        return cls(model, out)

    def resolve(self, name: Optional[str]) -> Optional[RelationDescriptor]:
        if not name:
            return None
        return self._descriptors.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __iter__(self):
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)


def direct_column(model, name: Optional[str]):
    """Return the table column for ``name`` or None when the model has no such column."""
    if not name:
        return None
    return model.__table__.c.get(name)

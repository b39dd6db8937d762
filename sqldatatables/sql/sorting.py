"""ORDER BY planning for a single requested column.

Direct columns sort as-is. Relation columns sort by the related row's
declared sub-fields, except HasMany which sorts by how many related rows exist.
BelongsToMany groups on the base key so each base row appears once.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict

from sqlalchemy import func, inspect, select
from sqlalchemy.orm import aliased

from ..core.relations import NestedRelationRef, RelationCatalog, RelationDescriptor, RelationKind, direct_column
from ..core.utils import dir_value
from ..dialects.base import BaseDialect

logger = logging.getLogger(__name__)


def _ordered(expr, direction: str):
    return expr.desc() if direction == 'desc' else expr.asc()


def _attr(entity, column):
    """ORM attribute of ``entity`` (class or alias) mapped to ``column``."""
    prop = inspect(entity).mapper.get_property_by_column(column)
    return getattr(entity, prop.key)


def _sub_attr(entity, cls, name: str):
    """Attribute of ``entity`` for the declared sub-field ``name``, or None when ``cls`` has no such column."""
    col = direct_column(cls, name)
    if col is None:
        logger.debug(f"{cls.__name__}.{name} is not a column; skipped in sort")
        return None
    return _attr(entity, col)


def _join_condition(parent, target, pairs):
    """AND together ``parent.local == target.remote`` for each key pair."""
    cond = None
    for local, remote in pairs:
        clause = _attr(parent, local) == _attr(target, remote)
        cond = clause if cond is None else cond & clause
    return cond


def _sort_belongs_to(stmt, model, rel: RelationDescriptor, direction: str, dialect):
    target = aliased(rel.related)
    stmt = stmt.outerjoin(target, _join_condition(model, target, rel.local_remote))
    for sub in rel.searchable:
        if isinstance(sub, NestedRelationRef):
            through = inspect(rel.related).relationships.get(sub.through)
            if through is None:
                logger.debug(f"{rel.related.__name__}.{sub.through} is not a relationship; skipped in sort")
                continue
            nested_cls = through.mapper.class_
            nested = aliased(nested_cls)
            stmt = stmt.outerjoin(nested, _join_condition(target, nested, through.local_remote_pairs))
            for name in sub.fields:
                attr = _sub_attr(nested, nested_cls, name)
                if attr is not None:
                    stmt = stmt.order_by(_ordered(attr, direction))
        elif isinstance(sub, str):
            attr = _sub_attr(target, rel.related, sub)
            if attr is not None:
                stmt = stmt.order_by(_ordered(attr, direction))
    return stmt


def _sort_belongs_to_many(stmt, model, rel: RelationDescriptor, direction: str, dialect):
    # one row per base row: group on the base key, order by the extreme related value
    pivot = rel.pivot.alias()
    target = aliased(rel.related)
    parent_pairs = [(l, r) for l, r in rel.local_remote if l.table is model.__table__]
    related_pairs = [(l, r) for l, r in rel.local_remote if l.table is not model.__table__]
    on_pivot = None
    for local, remote in parent_pairs:
        clause = _attr(model, local) == pivot.c[remote.key]
        on_pivot = clause if on_pivot is None else on_pivot & clause
    on_related = None
    for local, remote in related_pairs:
        clause = _attr(target, local) == pivot.c[remote.key]
        on_related = clause if on_related is None else on_related & clause
    stmt = stmt.outerjoin(pivot, on_pivot).outerjoin(target, on_related)
    stmt = stmt.group_by(*dialect.group_key(model.__table__))
    extreme = func.max if direction == 'desc' else func.min
    for sub in rel.searchable:
        if not isinstance(sub, str):
            continue
        attr = _sub_attr(target, rel.related, sub)
        if attr is not None:
            stmt = stmt.order_by(_ordered(extreme(attr), direction))
    return stmt


def _sort_has_many(stmt, model, rel: RelationDescriptor, direction: str, dialect):
    target = aliased(rel.related)
    count = (
        select(func.count())
        .select_from(target)
        .where(_join_condition(model, target, rel.local_remote))
        .correlate(model)
        .scalar_subquery()
    )
    return stmt.order_by(_ordered(count, direction))


def _sort_has_one(stmt, model, rel: RelationDescriptor, direction: str, dialect):
    target = aliased(rel.related)
    for sub in rel.searchable:
        if not isinstance(sub, str):
            continue
        attr = _sub_attr(target, rel.related, sub)
        if attr is None:
            continue
        value = (
            select(attr)
            .where(_join_condition(model, target, rel.local_remote))
            .correlate(model)
            .limit(1)
            .scalar_subquery()
        )
        stmt = stmt.order_by(_ordered(value, direction))
    return stmt


def _sort_morph_to(stmt, model, rel: RelationDescriptor, direction: str, dialect):
    logger.debug(f"Sorting by polymorphic relation {model.__name__}.{rel.name} is not supported; skipped")
    return stmt


RELATION_SORTERS: Dict[RelationKind, Callable] = {
    RelationKind.BELONGS_TO: _sort_belongs_to,
    RelationKind.BELONGS_TO_MANY: _sort_belongs_to_many,
    RelationKind.HAS_MANY: _sort_has_many,
    RelationKind.HAS_ONE: _sort_has_one,
    RelationKind.MORPH_TO: _sort_morph_to,
}

if set(RELATION_SORTERS) != set(RelationKind):
    raise RuntimeError(f"No sort strategy for {set(RelationKind) - set(RELATION_SORTERS)}")


def apply_sort(stmt, model, catalog: RelationCatalog, field: str | None, direction, dialect: BaseDialect | None = None):
    """Order ``stmt`` by ``field``; unknown fields are ignored."""
    if not field:
        return stmt
    direction = dir_value(direction)
    rel = catalog.resolve(field)
    if rel is not None:
        return RELATION_SORTERS[rel.kind](stmt, model, rel, direction, dialect or BaseDialect())
    col = direct_column(model, field)
    if col is None:
        logger.debug(f"Sort field {field!r} is not on {model.__name__}; skipped")
        return stmt
    return stmt.order_by(_ordered(col, direction))

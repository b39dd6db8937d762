"""WHERE planning for the global search box and the per-column search inputs.

Each per-column value is classified once and compiled into a single predicate
group that is handed to ``stmt.where``:

- ``a-dateDelimiter-b``  inclusive date range on the column (either side optional)
- ``-nullDelimiter-``    column is empty or NULL; on a relation, no related row exists
- ``|value|``            exact match
- anything else          case-insensitive substring match (JSON columns match their values)

Relation columns compile to EXISTS over the relation and OR together a match
on each declared sub-field.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import JSON, Date, DateTime, and_, inspect, literal, or_, select, true

from ..config import DatatablesConfig
from ..core.capabilities import EntityCapabilities
from ..core.relations import (
    MorphTarget,
    NestedRelationRef,
    RelationCatalog,
    RelationDescriptor,
    RelationKind,
    direct_column,
)
from ..core.request import ColumnSpec
from ..core.utils import is_filled
from ..dialects import BaseDialect

logger = logging.getLogger(__name__)

_SWAP_SEPARATORS = str.maketrans('/-', '-/')


def apply_global_search(stmt, caps: EntityCapabilities, term: Optional[str]) -> Tuple[Any, bool]:
    """AND one ``datatables_search`` group per whitespace-separated token."""
    if not term:
        return stmt, False
    search = caps.require_search()
    occurred = False
    for token in term.split():
        token = token.strip()
        if not token:
            continue
        stmt = stmt.where(search(token))
        occurred = True
    return stmt, occurred


class ColumnSearch:
    """Compiles per-column search values for one model."""

    # method name per relation kind
    RELATION_HANDLERS: Dict[RelationKind, str] = {
        RelationKind.BELONGS_TO: '_relation',
        RelationKind.HAS_MANY: '_relation',
        RelationKind.HAS_ONE: '_relation',
        RelationKind.BELONGS_TO_MANY: '_relation',
        RelationKind.MORPH_TO: '_morph',
    }

    def __init__(self, model, catalog: RelationCatalog, config: DatatablesConfig, dialect: BaseDialect):
        self.model = model
        self.catalog = catalog
        self.config = config
        self.dialect = dialect

    def apply(self, stmt, columns: Iterable[ColumnSpec]) -> Tuple[Any, bool]:
        occurred = False
        for column in columns:
            if not is_filled(column.search_value):
                continue
            predicate = self.predicate_for(column.data, str(column.search_value))
            if predicate is None:
                continue
            stmt = stmt.where(predicate)
            occurred = True
        return stmt, occurred

    def predicate_for(self, field: Optional[str], value: str):
        rel = self.catalog.resolve(field)
        if rel is not None:
            return getattr(self, self.RELATION_HANDLERS[rel.kind])(rel, value)
        col = direct_column(self.model, field)
        if col is None:
            logger.debug(f"Search field {field!r} is not on {self.model.__name__}; skipped")
            return None
        return self._direct(col, value)

    # --- value shapes ---------------------------------------------------------
    def _exact_value(self, value: str) -> Optional[str]:
        marker = self.config.exact_marker
        if value.startswith(marker) and value.endswith(marker):
            # every marker character is trimmed from both ends: '||x||' -> 'x', '|' -> ''
            return value.strip(marker)
        return None

    def _equals(self, col, exact: str):
        # temporal bind processors reject strings; compare the rendered text instead
        if isinstance(col.type, (Date, DateTime)):
            return self.dialect.as_text(col) == exact
        return col == exact

    def _parse_date(self, text: str) -> date:
        # ValueError on malformed input fails the request
        return datetime.strptime(text.strip(), self.config.date_format).date()

    def _date_range(self, col, value: str):
        bounds = value.split(self.config.date_delimiter)
        lower = bounds[0].strip()
        upper = bounds[1].strip() if len(bounds) > 1 else ''
        expr = self.dialect.date_part(col)
        clauses = []
        if lower:
            clauses.append(expr >= self._parse_date(lower))
        if upper:
            clauses.append(expr <= self._parse_date(upper))
        if not clauses:
            return None
        return and_(*clauses)

    def _direct(self, col, value: str):
        if self.config.date_delimiter in value:
            return self._date_range(col, value)
        if self.config.null_delimiter in value:
            return or_(self.dialect.as_text(col) == '', col.is_(None))
        exact = self._exact_value(value)
        if exact is not None:
            return self._equals(col, exact)
        if isinstance(col.type, JSON):
            return self.dialect.json_values_contain(col, value)
        return self.dialect.contains(col, value)

    # --- relations --------------------------------------------------------------
    @staticmethod
    def _exists(attribute, uselist: bool, criterion=None):
        return attribute.any(criterion) if uselist else attribute.has(criterion)

    def _relation(self, rel: RelationDescriptor, value: str):
        if self.config.null_delimiter in value:
            return ~self._exists(rel.attribute, rel.uselist)
        if not rel.searchable:
            return self._exists(rel.attribute, rel.uselist)
        clauses = []
        for sub in rel.searchable:
            if isinstance(sub, NestedRelationRef):
                clause = self._nested(rel.related, sub, value)
            elif isinstance(sub, str):
                clause = self._sub_field(rel.related, sub, value)
            else:
                logger.debug(f"{self.model.__name__}.{rel.name}: {sub!r} is only valid on polymorphic relations")
                clause = None
            if clause is not None:
                clauses.append(clause)
        if not clauses:
            return None
        return self._exists(rel.attribute, rel.uselist, or_(*clauses))

    def _sub_field(self, related, name: str, value: str):
        col = direct_column(related, name)
        if col is None:
            logger.debug(f"{related.__name__}.{name} is not a column; skipped")
            return None
        is_date = self.config.is_date_column(name)
        if self.config.date_delimiter in value:
            # ranges only make sense on date sub-fields
            return self._date_range(col, value) if is_date else None
        exact = self._exact_value(value)
        if exact is not None:
            return self._equals(col, exact)
        if is_date:
            return self._date_text(col, value)
        return self.dialect.contains(col, value)

    def _date_text(self, col, value: str):
        """Match a date column as typed by the user, in either separator style."""
        candidates = [value]
        if '/' in value or '-' in value:
            candidates.append(value.translate(_SWAP_SEPARATORS))
        formatted = self.dialect.format_date(col, self.config.date_display_format)
        return or_(*[
            or_(self.dialect.contains(col, candidate), self.dialect.contains(formatted, candidate))
            for candidate in candidates
        ])

    def _nested(self, related, ref: NestedRelationRef, value: str):
        if self.config.date_delimiter in value:
            return None
        prop = inspect(related).relationships.get(ref.through)
        if prop is None:
            logger.debug(f"{related.__name__}.{ref.through} is not a relationship; skipped")
            return None
        target = prop.mapper.class_
        cols = [c for c in (direct_column(target, name) for name in ref.fields) if c is not None]
        if not cols:
            return None
        leaf = or_(*[self.dialect.contains(c, value) for c in cols])
        return self._exists(getattr(related, ref.through), prop.uselist, leaf)

    def _morph(self, rel: RelationDescriptor, value: str):
        type_col = direct_column(self.model, rel.morph.type_column)
        id_col = direct_column(self.model, rel.morph.id_column)
        clauses = []
        for target in rel.searchable:
            if not isinstance(target, MorphTarget):
                continue
            for tag in target.types:
                cls = rel.morph_types.get(tag)
                if cls is None:
                    logger.debug(f"{self.model.__name__}.{rel.name}: unknown morph type {tag!r}; skipped")
                    continue
                clauses.append(and_(type_col == tag, self._morph_exists(cls, id_col, target.fields_for(tag), value)))
        if not clauses:
            return None
        return or_(*clauses)

    def _morph_exists(self, cls, id_col, fields: Sequence[str], value: str):
        pk = inspect(cls).primary_key[0]
        cols = [c for c in (direct_column(cls, name) for name in fields) if c is not None]
        matches: List[Any] = [self.dialect.contains(c, value) for c in cols]
        criterion = or_(*matches) if matches else true()
        return (
            select(literal(1))
            .select_from(cls.__table__)
            .where(pk == id_col, criterion)
            .exists()
        )


if set(ColumnSearch.RELATION_HANDLERS) != set(RelationKind):
    raise RuntimeError(f"No search strategy for {set(RelationKind) - set(ColumnSearch.RELATION_HANDLERS)}")


def apply_column_search(
    stmt, model, catalog: RelationCatalog, columns: Iterable[ColumnSpec], config: DatatablesConfig, dialect: BaseDialect
) -> Tuple[Any, bool]:
    """AND one predicate group per column that carries a search value."""
    return ColumnSearch(model, catalog, config, dialect).apply(stmt, columns)

"""Run one DataTables request against an ORM model.

    query = DatatablesQuery(User, DatatablesRequest.from_params(params), session)
    payload = (await query.response()).to_dict()

Steps run once and in order: scope and extra filters, sort, total count,
global then per-column search, filtered count (only when a search applied),
page fetch and projection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select

from .config import DEFAULT_CONFIG, DatatablesConfig
from .core.capabilities import EntityCapabilities
from .core.relations import RelationCatalog
from .core.request import DatatablesRequest
from .dialects import BaseDialect, dialect_for_session
from .sql.filters import apply_extra_where, apply_scope
from .sql.search import apply_column_search, apply_global_search
from .sql.sorting import apply_sort

logger = logging.getLogger(__name__)


class Stage(Enum):
    INIT = 'init'
    FILTERED = 'filtered'
    SORTED = 'sorted'
    TOTAL_COUNTED = 'total_counted'
    SEARCHED = 'searched'
    FILTERED_COUNTED = 'filtered_counted'
    FETCHED = 'fetched'
    PROJECTED = 'projected'


@dataclass
class DatatablesResponse:
    draw: Any
    records_total: int
    records_filtered: int
    data: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'draw': self.draw,
            'recordsTotal': self.records_total,
            'recordsFiltered': self.records_filtered,
            'data': list(self.data),
        }


def count_statement(stmt):
    """``SELECT count(*)`` over ``stmt`` with its ORDER BY dropped."""
    return select(func.count()).select_from(stmt.order_by(None).subquery())


class DatatablesQuery:
    """Compiles and executes a single request. Not reusable."""

    def __init__(
        self,
        model,
        request: DatatablesRequest,
        session,
        config: Optional[DatatablesConfig] = None,
        dialect: Optional[BaseDialect] = None,
    ):
        self.model = model
        self.request = request
        self.session = session
        self.config = config or DEFAULT_CONFIG
        self.capabilities = EntityCapabilities.inspect(model)
        self.capabilities.require_projection()
        self.catalog = RelationCatalog.for_model(model)
        self.dialect = dialect or dialect_for_session(session)
        self.stage = Stage.INIT

    # --- compilation (no I/O) ---------------------------------------------------
    def _advance(self, expected: Stage, new: Stage) -> None:
        if self.stage is not expected:
            raise RuntimeError(f"DatatablesQuery is at stage {self.stage.value}, expected {expected.value}")
        self.stage = new

    def filtered_statement(self):
        stmt = select(self.model)
        if self.request.scope:
            stmt = apply_scope(stmt, self.capabilities, self.request.scope)
        if self.request.extra_where:
            stmt = apply_extra_where(stmt, self.model, self.request.extra_where, self.config)
        return stmt

    def sorted_statement(self, stmt):
        target = self.request.sort_target()
        if target is None:
            return stmt
        return apply_sort(stmt, self.model, self.catalog, *target, dialect=self.dialect)

    def searched_statement(self, stmt) -> Tuple[Any, bool]:
        stmt, global_hit = apply_global_search(stmt, self.capabilities, self.request.search_value)
        stmt, column_hit = apply_column_search(
            stmt, self.model, self.catalog, self.request.columns, self.config, self.dialect
        )
        return stmt, global_hit or column_hit

    def build_statements(self) -> Tuple[Any, Any, bool]:
        """Return ``(total_stmt, searched_stmt, search_occurred)`` without executing."""
        total_stmt = self.sorted_statement(self.filtered_statement())
        searched_stmt, occurred = self.searched_statement(total_stmt)
        return total_stmt, searched_stmt, occurred

    def page_statement(self, stmt):
        if self.capabilities.eager_loading is not None:
            stmt = self.capabilities.eager_loading(stmt)
        if self.request.fetch_all:
            return stmt
        return stmt.offset(self.request.start).limit(self.request.length)

    # --- execution ----------------------------------------------------------------
    async def _count(self, stmt) -> int:
        return int(await self.session.scalar(count_statement(stmt)) or 0)

    async def response(self) -> DatatablesResponse:
        self._advance(Stage.INIT, Stage.FILTERED)
        stmt = self.filtered_statement()

        self._advance(Stage.FILTERED, Stage.SORTED)
        stmt = self.sorted_statement(stmt)

        self._advance(Stage.SORTED, Stage.TOTAL_COUNTED)
        records_total = await self._count(stmt)

        self._advance(Stage.TOTAL_COUNTED, Stage.SEARCHED)
        stmt, occurred = self.searched_statement(stmt)

        self._advance(Stage.SEARCHED, Stage.FILTERED_COUNTED)
        records_filtered = await self._count(stmt) if occurred else records_total
        logger.debug(f"{self.model.__name__}: total={records_total} filtered={records_filtered}")

        self._advance(Stage.FILTERED_COUNTED, Stage.FETCHED)
        result = await self.session.scalars(self.page_statement(stmt))
        rows = result.unique().all()

        self._advance(Stage.FETCHED, Stage.PROJECTED)
        return DatatablesResponse(
            draw=self.request.draw,
            records_total=records_total,
            records_filtered=records_filtered,
            data=[self.capabilities.project(row) for row in rows],
        )


async def datatables_response(model, params, session, config: Optional[DatatablesConfig] = None) -> Dict[str, Any]:
    """Parse ``params`` and return the JSON-ready envelope for ``model``."""
    request = params if isinstance(params, DatatablesRequest) else DatatablesRequest.from_params(params)
    response = await DatatablesQuery(model, request, session, config=config).response()
    return response.to_dict()

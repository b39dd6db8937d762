"""Strawberry entry point serving DataTables requests for registered models.

    config = DatatablesConfig(models={'User': User})

    @strawberry.type
    class Query:
        datatable = datatable_field(config)

    # query { datatable(model: "User", request: {draw: "1", start: 0, length: 10, ...}) {
    #     draw recordsTotal recordsFiltered data } }

The context must carry an ``AsyncSession`` under ``db_session`` (or ``db`` /
``session`` / ``async_session``).
"""
from __future__ import annotations

from typing import Any, List, Optional

import strawberry
from strawberry.scalars import JSON
from strawberry.types import Info

from .compiler import DatatablesQuery
from .config import DatatablesConfig
from .core.request import ColumnSpec, DatatablesRequest, OrderSpec
from .core.utils import Direction, dir_value, get_db_session


@strawberry.input
class DatatableColumnInput:
    data: Optional[str] = None
    search: str = ''


@strawberry.input
class DatatableOrderInput:
    column: int
    dir: Direction = Direction.asc  # type: ignore[valid-type]


@strawberry.input
class DatatableRequestInput:
    draw: Optional[str] = None
    start: int = 0
    length: int = -1
    search: str = ''
    columns: List[DatatableColumnInput] = strawberry.field(default_factory=list)
    order: List[DatatableOrderInput] = strawberry.field(default_factory=list)
    scope: Optional[List[str]] = None
    extra_where: Optional[JSON] = None


@strawberry.type
class DatatableResult:
    draw: Optional[str]
    records_total: int = strawberry.field(name='recordsTotal')
    records_filtered: int = strawberry.field(name='recordsFiltered')
    data: JSON


def to_request(value: DatatableRequestInput) -> DatatablesRequest:
    scope: Any = None
    if value.scope:
        scope = value.scope[0] if len(value.scope) == 1 else tuple(value.scope)
    return DatatablesRequest(
        draw=value.draw,
        start=max(value.start, 0),
        length=None if value.length < 0 else value.length,
        search_value=value.search or '',
        columns=tuple(ColumnSpec(data=c.data, search_value=c.search or '') for c in value.columns),
        order=tuple(OrderSpec(column=o.column, dir=dir_value(o.dir)) for o in value.order),
        scope=scope,
        extra_where=dict(value.extra_where or {}),
    )


def datatable_field(config: DatatablesConfig, *, name: str = 'datatable', description: Optional[str] = None):
    """Build a strawberry field resolving ``model`` through ``config.models``."""

    async def resolve(info: Info, model: str, request: DatatableRequestInput) -> DatatableResult:
        model_cls = (config.models or {}).get(model)
        if model_cls is None:
            raise ValueError(f"Unknown datatables model: {model}")
        session = get_db_session(info)
        if session is None:
            raise ValueError("No db_session in context")
        response = await DatatablesQuery(model_cls, to_request(request), session, config=config).response()
        return DatatableResult(
            draw=None if response.draw is None else str(response.draw),
            records_total=response.records_total,
            records_filtered=response.records_filtered,
            data=response.data,
        )

    return strawberry.field(resolver=resolve, name=name, description=description or "Server-side DataTables page")

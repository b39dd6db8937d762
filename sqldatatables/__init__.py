"""sqldatatables public API.

Server-side processing for DataTables-style grids on top of SQLAlchemy ORM
models: paging, global and per-column search, relation-aware sorting, named
scopes and literal filters.

Exposes:
- DatatablesQuery, DatatablesResponse, datatables_response
- DatatablesRequest, DatatablesConfig
- relation declarations: NestedRelationRef, MorphTarget, MorphRelation, RelationKind
- errors: DatatablesError, MissingCapability
- Lazy: datatable_field, DatatableResult, DatatableRequestInput (strawberry surface)
"""
from __future__ import annotations

from .compiler import DatatablesQuery, DatatablesResponse, datatables_response
from .config import DatatablesConfig
from .core.relations import MorphRelation, MorphTarget, NestedRelationRef, RelationCatalog, RelationKind
from .core.request import DatatablesRequest
from .errors import DatatablesError, MissingCapability


def __getattr__(name: str):  # PEP 562 lazy exports
    if name in {'datatable_field', 'DatatableResult', 'DatatableRequestInput'}:
        from . import graphql as _graphql
        return getattr(_graphql, name)
    raise AttributeError(name)


__all__ = [
    'DatatablesQuery', 'DatatablesResponse', 'datatables_response',
    'DatatablesRequest', 'DatatablesConfig',
    'NestedRelationRef', 'MorphTarget', 'MorphRelation', 'RelationCatalog', 'RelationKind',
    'DatatablesError', 'MissingCapability',
    'datatable_field', 'DatatableResult', 'DatatableRequestInput',
]

"""Typed view of a DataTables server-side request.

The transport layer hands over either a nested mapping (JSON body, or a
query string already decoded by a PHP-style parser) or the flat bracketed
keys of a raw query string (``columns[0][search][value]=...``). Both are
normalized into :class:`DatatablesRequest`.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .utils import dir_value, is_filled

_BRACKETS = re.compile(r'\[([^\]]*)\]')

ScopeArg = Union[str, Sequence[Any], None]


@dataclass(frozen=True)
class ColumnSpec:
    data: Optional[str]
    search_value: str = ''


@dataclass(frozen=True)
class OrderSpec:
    column: Any
    dir: str = 'asc'

    def is_usable(self) -> bool:
        # '0' is a valid column index even though it is falsy elsewhere
        return is_filled(self.column) and str(self.column).strip() != ''


@dataclass(frozen=True)
class DatatablesRequest:
    ALL = None

    draw: Any = None
    start: int = 0
    length: Optional[int] = None
    search_value: str = ''
    columns: Tuple[ColumnSpec, ...] = ()
    order: Tuple[OrderSpec, ...] = ()
    scope: ScopeArg = None
    extra_where: Mapping[str, Any] = field(default_factory=dict)

    @property
    def fetch_all(self) -> bool:
        return self.length is None

    def sort_target(self) -> Optional[Tuple[str, str]]:
        """Return ``(field, direction)`` for the first order entry, if usable."""
        if not self.order or not self.order[0].is_usable():
            return None
        first = self.order[0]
        try:
            idx = int(str(first.column).strip())
        except ValueError:
            return None
        if idx < 0 or idx >= len(self.columns):
            return None
        name = self.columns[idx].data
        if not name:
            return None
        return name, dir_value(first.dir)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "DatatablesRequest":
        """Build a request from nested or flat bracketed parameters."""
        if any('[' in str(k) for k in params):
            params = unflatten_params(params)

        columns = tuple(
            ColumnSpec(data=_text_or_none(c.get('data')), search_value=_search_value(c))
            for c in _as_list(params.get('columns'))
            if isinstance(c, Mapping)
        )
        order = tuple(
            OrderSpec(column=o.get('column'), dir=dir_value(o.get('dir')))
            for o in _as_list(params.get('order'))
            if isinstance(o, Mapping)
        )
        extra = params.get('extraWhere', params.get('extra_where')) or {}
        return cls(
            draw=params.get('draw'),
            start=max(_as_int(params.get('start'), 0), 0),
            length=_parse_length(params.get('length')),
            search_value=_search_value(params),
            columns=columns,
            order=order,
            scope=_parse_scope(params.get('scope')),
            extra_where={str(k): v for k, v in dict(extra).items()},
        )


def unflatten_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn ``{'columns[0][data]': 'id'}`` style keys into nested dicts/lists.

    ``key[]`` appends to a list. Numeric segments become list positions once
    the whole tree is built.
    """
    root: Dict[str, Any] = {}
    for raw_key, value in params.items():
        key = str(raw_key)
        head, _, rest = key.partition('[')
        parts = [head] + (_BRACKETS.findall('[' + rest) if rest else [])
        node = root
        for i, part in enumerate(parts):
            last = i == len(parts) - 1
            if last:
                if part == '':
                    # handled by the parent segment below
                    break
                node[part] = _unwrap_scalar(value)
                break
            nxt = parts[i + 1]
            if nxt == '' and i + 1 == len(parts) - 1:
                bucket = node.setdefault(part, [])
                if isinstance(value, (list, tuple)):
                    bucket.extend(value)
                else:
                    bucket.append(value)
                break
            node = node.setdefault(part, {})
    return _listify(root)


def _listify(node: Any) -> Any:
    if isinstance(node, dict):
        converted = {k: _listify(v) for k, v in node.items()}
        if converted and all(str(k).isdigit() for k in converted):
            return [converted[k] for k in sorted(converted, key=int)]
        return converted
    if isinstance(node, list):
        return [_listify(v) for v in node]
    return node


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, Mapping):
        # {'0': {...}, '1': {...}} from some parsers
        return [value[k] for k in sorted(value, key=lambda k: int(k) if str(k).isdigit() else 0)]
    return list(value)


def _as_int(value: Any, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def _parse_length(value: Any) -> Optional[int]:
    if value is None:
        return DatatablesRequest.ALL
    text = str(value).strip().lower()
    if text in ('', '-1', 'all'):
        return DatatablesRequest.ALL
    length = _as_int(text, -1)
    return DatatablesRequest.ALL if length < 0 else length


def _search_value(node: Mapping[str, Any]) -> str:
    search = node.get('search')
    if isinstance(search, Mapping):
        value = search.get('value')
    else:
        value = search
    value = _unwrap_scalar(value)
    return '' if value is None else str(value)


def _parse_scope(value: Any) -> ScopeArg:
    if value is None or value == '':
        return None
    if isinstance(value, Mapping):
        value = _as_list(value)
    if isinstance(value, (list, tuple)):
        return tuple(value) if value else None
    return str(value)


def _text_or_none(value: Any) -> Optional[str]:
    value = _unwrap_scalar(value)
    if value is None:
        return None
    return str(value)


def _unwrap_scalar(value: Any) -> Any:
    # Multi-dict parsers deliver single values as one-element lists
    if isinstance(value, list) and len(value) == 1 and not isinstance(value[0], (list, dict)):
        return value[0]
    return value

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..config import DatatablesConfig
from ..core.capabilities import EntityCapabilities
from ..core.relations import direct_column

logger = logging.getLogger(__name__)


def apply_scope(stmt, caps: EntityCapabilities, scope: Any):
    """Run a named ``scope_<name>`` hook; unknown scopes leave the statement untouched."""
    if not scope:
        return stmt
    if isinstance(scope, str):
        name, args = scope, ()
    else:
        name, args = str(scope[0]), tuple(scope[1:])
    fn = caps.scopes.get(name)
    if fn is None:
        logger.debug(f"Scope {name!r} is not defined on {caps.model.__name__}; skipped")
        return stmt
    return fn(stmt, *args)


def apply_extra_where(stmt, model, extra_where: Mapping[str, Any], config: DatatablesConfig):
    """Literal equality / IN / LIKE filters supplied by the caller."""
    for name, value in (extra_where or {}).items():
        col = direct_column(model, name)
        if col is None:
            logger.debug(f"extraWhere column {name!r} is not on {model.__name__}; skipped")
            continue
        if isinstance(value, (list, tuple, set, frozenset)):
            stmt = stmt.where(col.in_(list(value)))
        elif isinstance(value, str) and (value.startswith(config.wildcard) or value.endswith(config.wildcard)):
            stmt = stmt.where(col.like(value))
        else:
            stmt = stmt.where(col == value)
    return stmt

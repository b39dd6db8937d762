from __future__ import annotations
from enum import Enum
from typing import Any
import strawberry


class _DirectionEnum(Enum):
    asc = 'asc'
    desc = 'desc'

Direction = strawberry.enum(_DirectionEnum, name="Direction")  # type: ignore


def dir_value(order_dir: Any) -> str:
    """Normalize a sort direction to 'asc' or 'desc'; anything else sorts ascending."""
    if order_dir is None:
        return 'asc'
    val = str(getattr(order_dir, 'value', order_dir)).strip().lower()
    return 'desc' if val == 'desc' else 'asc'


def is_filled(value: Any) -> bool:
    """True for non-empty values; the literal '0' (or 0) counts as filled."""
    if value is None:
        return False
    if isinstance(value, str):
        return value != ''
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return True
    return bool(value)


def get_db_session(info_or_ctx: Any) -> Any | None:
    """Best-effort extraction of an AsyncSession-like object from context.

    Accepts either a Strawberry ``Info`` or a plain context object/dict. Tries
    common keys/attributes in order: ``db_session``, ``db``, ``session``,
    ``async_session``.

    Returns:
        The session object if found; otherwise ``None``.
    """
    if info_or_ctx is None:
        return None
    ctx = getattr(info_or_ctx, 'context', info_or_ctx)
    if ctx is None:
        return None
    candidates = ('db_session', 'db', 'session', 'async_session')
    if isinstance(ctx, dict):
        for k in candidates:
            if ctx.get(k) is not None:
                return ctx[k]
        return None
    for k in candidates:
        v = getattr(ctx, k, None)
        if v is not None:
            return v
    return None

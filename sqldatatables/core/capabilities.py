from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..errors import MissingCapability

SEARCH_HOOK = 'datatables_search'
EAGER_LOADING_HOOK = 'datatables_eager_loading'
PROJECTION_HOOK = 'to_datatables_row'
SCOPE_PREFIX = 'scope_'


@dataclass(frozen=True)
class EntityCapabilities:
    """Hooks a model offers to the compiler, probed once per request.

    - ``datatables_search(term)`` (classmethod): boolean clause for one search token.
    - ``scope_<name>(stmt, *args)`` (classmethods): named statement filters.
    - ``datatables_eager_loading(stmt)`` (classmethod): adds loader options to the fetch.
    - ``to_datatables_row()`` (instance method): output record for one row.
    """

    model: Any
    search: Optional[Callable[[str], Any]] = None
    eager_loading: Optional[Callable[[Any], Any]] = None
    scopes: Dict[str, Callable[..., Any]] = field(default_factory=dict)
    has_projection: bool = False

    @classmethod
    def inspect(cls, model) -> "EntityCapabilities":
        scopes = {
            attr[len(SCOPE_PREFIX):]: getattr(model, attr)
            for attr in dir(model)
            if attr.startswith(SCOPE_PREFIX) and callable(getattr(model, attr, None))
        }
        return cls(
            model=model,
            search=_callable(model, SEARCH_HOOK),
            eager_loading=_callable(model, EAGER_LOADING_HOOK),
            scopes=scopes,
            has_projection=_callable(model, PROJECTION_HOOK) is not None,
        )

    def require_search(self) -> Callable[[str], Any]:
        if self.search is None:
            raise MissingCapability(self.model, SEARCH_HOOK)
        return self.search

    def require_projection(self) -> None:
        if not self.has_projection:
            raise MissingCapability(self.model, PROJECTION_HOOK)

    def project(self, instance) -> Dict[str, Any]:
        return getattr(instance, PROJECTION_HOOK)()


def _callable(model, name: str):
    fn = getattr(model, name, None)
    return fn if callable(fn) else None

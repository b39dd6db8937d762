from __future__ import annotations


class DatatablesError(Exception):
    """Base class for errors raised by sqldatatables."""


class MissingCapability(DatatablesError, AttributeError):
    """The model does not implement a hook the request needs.

    Raised for a global search against a model without ``datatables_search``
    and for models without ``to_datatables_row``.
    """

    def __init__(self, model, capability: str):
        self.model = model
        self.capability = capability
        name = getattr(model, '__name__', repr(model))
        super().__init__(f"Method {capability} is not set in {name}")

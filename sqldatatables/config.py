"""Request-time constants consumed by the planners.

Values mirror the usual DataTables server-side conventions: a delimiter that
splits a date range, a marker for "empty or null", and the formats used to
parse and display dates.
"""
from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple


@dataclass(frozen=True)
class DatatablesConfig:
    date_delimiter: str = '-dateDelimiter-'
    null_delimiter: str = '-nullDelimiter-'
    exact_marker: str = '|'
    wildcard: str = '%'
    # strptime/strftime tokens; dialects translate %d %e %m %Y %y
    date_format: str = '%d/%m/%Y'
    date_display_format: str = '%d/%m/%Y'
    # Relation sub-fields matched as dates (e.g. 'founded_at')
    date_columns: Tuple[str, ...] = ()
    # Model name -> ORM class, used to resolve the entity by name
    models: Mapping[str, Any] = field(default_factory=dict)

    def replace(self, **changes: Any) -> "DatatablesConfig":
        return dataclasses.replace(self, **changes)

    def is_date_column(self, name: str) -> bool:
        return name in self.date_columns

    @classmethod
    def from_env(cls, prefix: str = 'DATATABLES_', **overrides: Any) -> "DatatablesConfig":
        """Build a config from environment variables.

        Recognised variables (with the default prefix): ``DATATABLES_DATE_DELIMITER``,
        ``DATATABLES_NULL_DELIMITER``, ``DATATABLES_EXACT_MARKER``,
        ``DATATABLES_DATE_FORMAT``, ``DATATABLES_DATE_DISPLAY_FORMAT`` and
        ``DATATABLES_DATE_COLUMNS`` (comma separated). Keyword overrides win.
        """
        values: Dict[str, Any] = {}
        for name in ('date_delimiter', 'null_delimiter', 'exact_marker', 'date_format', 'date_display_format'):
            raw = os.getenv(prefix + name.upper())
            if raw:
                values[name] = raw
        cols = os.getenv(prefix + 'DATE_COLUMNS')
        if cols:
            values['date_columns'] = tuple(c.strip() for c in cols.split(',') if c.strip())
        values.update(overrides)
        if 'date_columns' in values:
            values['date_columns'] = tuple(values['date_columns'] or ())
        return cls(**values)


DEFAULT_CONFIG = DatatablesConfig()

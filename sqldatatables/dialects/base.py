from __future__ import annotations
from typing import Dict
from sqlalchemy import Date, String, cast

# strftime tokens understood in date_format / date_display_format
FORMAT_TOKENS = ('%d', '%e', '%m', '%Y', '%y')


class BaseDialect:
    """SQL fragments that differ between backends.

    Values coming from the request are always bound as parameters; only the
    configured display format may be translated into backend tokens.
    """
    name = 'base'
    # strftime token -> backend token; identity by default
    format_tokens: Dict[str, str] = {}

    def date_part(self, col):
        return cast(col, Date)

    def format_date(self, col, fmt: str):
        raise NotImplementedError

    def as_text(self, col):
        if isinstance(getattr(col, 'type', None), String):
            return col
        return cast(col, String)

    def json_values_contain(self, col, value: str):
        raise NotImplementedError

    def translate_format(self, fmt: str) -> str:
        if not self.format_tokens:
            return fmt
        out = []
        i = 0
        while i < len(fmt):
            tok = fmt[i:i + 2]
            if tok in self.format_tokens:
                out.append(self.format_tokens[tok])
                i += 2
            else:
                out.append(fmt[i])
                i += 1
        return ''.join(out)

    def contains(self, expr, value: str):
        """Case-insensitive substring match with LIKE wildcards escaped."""
        return self.as_text(expr).icontains(value, autoescape=True)

    def group_key(self, table):
        """Columns a grouped query lists so every selected column of ``table`` stays valid."""
        # selected columns are functionally dependent on the primary key
        return list(table.primary_key.columns)

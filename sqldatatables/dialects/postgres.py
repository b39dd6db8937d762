from __future__ import annotations
from sqlalchemy import String, cast, func, literal, select
from sqlalchemy.dialects.postgresql import JSONB
from .base import BaseDialect


class PostgresDialect(BaseDialect):
    name = 'postgres'
    format_tokens = {'%d': 'DD', '%e': 'FMDD', '%m': 'MM', '%Y': 'YYYY', '%y': 'YY'}

    def format_date(self, col, fmt: str):
        return func.to_char(col, literal(self.translate_format(fmt)), type_=String)

    def json_values_contain(self, col, value: str):
        each = func.jsonb_each_text(cast(col, JSONB)).table_valued('key', 'value')
        return (
            select(literal(1))
            .select_from(each)
            .where(cast(each.c.value, String).icontains(value, autoescape=True))
            .exists()
        )

from __future__ import annotations
from sqlalchemy import String, cast, func, literal, select
from .base import BaseDialect


class MSSQLDialect(BaseDialect):
    name = 'mssql'
    format_tokens = {'%d': 'dd', '%e': 'd', '%m': 'MM', '%Y': 'yyyy', '%y': 'yy'}

    def format_date(self, col, fmt: str):
        return func.format(col, literal(self.translate_format(fmt)), type_=String)

    def json_values_contain(self, col, value: str):
        each = func.openjson(col).table_valued('key', 'value', 'type')
        return (
            select(literal(1))
            .select_from(each)
            .where(cast(each.c.value, String).icontains(value, autoescape=True))
            .exists()
        )

    def group_key(self, table):
        # no functional-dependency rule: every selected column must be grouped
        return list(table.columns)

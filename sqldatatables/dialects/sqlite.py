from __future__ import annotations
from sqlalchemy import Date, String, cast, func, literal, select
from .base import BaseDialect


class SQLiteDialect(BaseDialect):
    name = 'sqlite'
    # %e is missing from older SQLite builds
    format_tokens = {'%e': '%d'}

    def date_part(self, col):
        # CAST(x AS DATE) has numeric affinity in SQLite; date() yields 'YYYY-MM-DD'
        return func.date(col, type_=Date)

    def format_date(self, col, fmt: str):
        return func.strftime(literal(self.translate_format(fmt)), col, type_=String)

    def json_values_contain(self, col, value: str):
        each = func.json_each(col).table_valued('value')
        return (
            select(literal(1))
            .select_from(each)
            .where(cast(each.c.value, String).icontains(value, autoescape=True))
            .exists()
        )

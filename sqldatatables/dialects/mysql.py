from __future__ import annotations
from sqlalchemy import Date, String, cast, func, literal
from .base import BaseDialect


class MySQLDialect(BaseDialect):
    name = 'mysql'
    # DATE_FORMAT shares the strftime tokens used in the config

    def date_part(self, col):
        return func.date(col, type_=Date)

    def format_date(self, col, fmt: str):
        return func.date_format(col, literal(fmt), type_=String)

    def json_values_contain(self, col, value: str):
        return cast(func.json_extract(col, literal('$.*')), String).icontains(value, autoescape=True)

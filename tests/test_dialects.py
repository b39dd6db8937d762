"""
Test dialect fragments.
"""

import pytest
from datetime import date
from sqlalchemy import select
from sqlalchemy.dialects import sqlite, mysql, postgresql, mssql

from sqldatatables.dialects import (
    SQLiteDialect,
    MySQLDialect,
    PostgresDialect,
    MSSQLDialect,
    get_dialect,
)
from tests.models import User, Country


def _sql(stmt, dialect):
    compiled = stmt.compile(dialect=dialect)
    return str(compiled), compiled.params


class TestGetDialect:

    @pytest.mark.parametrize('name,cls', [
        ('sqlite', SQLiteDialect),
        ('postgresql', PostgresDialect),
        ('mysql', MySQLDialect),
        ('mariadb', MySQLDialect),
        ('mssql', MSSQLDialect),
    ])
    def test_known_names(self, name, cls):
        assert isinstance(get_dialect(name), cls)

    def test_unknown_falls_back_to_mysql(self, caplog):
        assert isinstance(get_dialect('oracle'), MySQLDialect)
        assert 'Unsupported database dialect' in caplog.text


class TestFormatTranslation:

    def test_postgres_tokens(self):
        assert PostgresDialect().translate_format('%d/%m/%Y') == 'DD/MM/YYYY'
        assert PostgresDialect().translate_format('%e-%m-%y') == 'FMDD-MM-YY'

    def test_mssql_tokens(self):
        assert MSSQLDialect().translate_format('%d/%m/%Y') == 'dd/MM/yyyy'

    def test_sqlite_keeps_supported_tokens(self):
        assert SQLiteDialect().translate_format('%e/%m/%Y') == '%d/%m/%Y'

    def test_mysql_is_identity(self):
        assert MySQLDialect().translate_format('%e/%m/%Y') == '%e/%m/%Y'


class TestFragments:

    def test_sqlite_date_part_and_format(self):
        d = SQLiteDialect()
        sql, params = _sql(select(User.id).where(d.date_part(User.created_at) >= date(2020, 1, 1)), sqlite.dialect())
        assert 'date(users.created_at) >=' in sql
        sql, params = _sql(select(d.format_date(Country.founded_at, '%d/%m/%Y')), sqlite.dialect())
        assert 'strftime(' in sql
        assert '%d/%m/%Y' in params.values()

    def test_sqlite_json_uses_json_each(self):
        sql, params = _sql(select(User.id).where(SQLiteDialect().json_values_contain(User.settings, 'papaki')), sqlite.dialect())
        assert 'json_each(users.settings)' in sql
        assert 'EXISTS' in sql
        assert 'papaki' in params.values()

    def test_mysql_fragments(self):
        d = MySQLDialect()
        sql, params = _sql(select(d.format_date(Country.founded_at, '%d/%m/%Y')), mysql.dialect())
        assert 'date_format(' in sql.lower()
        sql, params = _sql(select(User.id).where(d.json_values_contain(User.settings, 'x')), mysql.dialect())
        assert 'json_extract(' in sql.lower()
        assert '$.*' in params.values()

    def test_postgres_fragments(self):
        d = PostgresDialect()
        sql, params = _sql(select(d.format_date(Country.founded_at, '%d/%m/%Y')), postgresql.dialect())
        assert 'to_char(' in sql
        assert 'DD/MM/YYYY' in params.values()
        sql, _ = _sql(select(User.id).where(d.date_part(User.created_at) <= date(2020, 1, 1)), postgresql.dialect())
        assert 'CAST(users.created_at AS DATE)' in sql
        sql, _ = _sql(select(User.id).where(d.json_values_contain(User.settings, 'x')), postgresql.dialect())
        assert 'jsonb_each_text(' in sql

    def test_mssql_fragments(self):
        d = MSSQLDialect()
        sql, params = _sql(select(d.format_date(Country.founded_at, '%d/%m/%Y')), mssql.dialect())
        assert 'format(' in sql.lower()
        assert 'dd/MM/yyyy' in params.values()
        sql, _ = _sql(select(User.id).where(d.json_values_contain(User.settings, 'x')), mssql.dialect())
        assert 'openjson(' in sql.lower()

    def test_contains_escapes_wildcards_and_casts_non_text(self):
        d = SQLiteDialect()
        sql, params = _sql(select(User.id).where(d.contains(User.id, '5%')), sqlite.dialect())
        assert 'CAST(users.id AS VARCHAR)' in sql
        assert "ESCAPE '/'" in sql
        assert '5/%' in params.values()

    def test_user_values_are_bound(self):
        d = MySQLDialect()
        sql, params = _sql(select(User.id).where(d.contains(User.name, "x' OR 1=1 --")), mysql.dialect())
        assert "OR 1=1" not in sql
        assert "x' OR 1=1 --" in params.values()

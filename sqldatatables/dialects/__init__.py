from __future__ import annotations

import logging

from .base import BaseDialect
from .sqlite import SQLiteDialect
from .mysql import MySQLDialect
from .postgres import PostgresDialect
from .mssql import MSSQLDialect

logger = logging.getLogger(__name__)


def get_dialect(dialect_name: str) -> BaseDialect:
    dn = (dialect_name or '').lower()
    if dn.startswith('sqlite'):
        return SQLiteDialect()
    if dn.startswith('postgres'):
        return PostgresDialect()
    if dn.startswith('mssql') or 'pyodbc' in dn:
        return MSSQLDialect()
    if dn.startswith(('mysql', 'mariadb')):
        return MySQLDialect()
    logger.warning(f"Unsupported database dialect: {dialect_name}. Falling back to MySQL fragments.")
    return MySQLDialect()


def dialect_for_session(session) -> BaseDialect:
    name = session.get_bind().dialect.name
    logger.info(f"Detected database dialect: {name}")
    return get_dialect(name)


__all__ = [
    'BaseDialect',
    'SQLiteDialect',
    'MySQLDialect',
    'PostgresDialect',
    'MSSQLDialect',
    'get_dialect',
    'dialect_for_session',
]

"""
modules/shared/database/repositories/base.py
Basis-Klasse für Shop-Repositories (read-only Queries gegen die Joomla-DB)
"""

from contextlib import contextmanager
from typing import Optional, Union

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.sql.elements import TextClause

from ..connection import get_engine

Statement = Union[str, TextClause]


class BaseRepository:
    """
    Query-Helper für Repositories.

    Mit injizierter Connection (Tests, gemeinsame Transaktion) wird diese genutzt,
    sonst pro Aufruf eine Connection aus dem Pool der Shop-Engine.
    Zeilen kommen als RowMapping (Zugriff per Spaltenname).
    """

    def __init__(self, connection: Optional[Connection] = None):
        self._conn = connection

    @staticmethod
    def _as_text(sql: Statement) -> TextClause:
        return text(sql) if isinstance(sql, str) else sql

    @contextmanager
    def _connection(self, shop):
        if self._conn is not None:
            yield self._conn
            return
        with get_engine(shop).connect() as conn:
            yield conn

    def _fetch_one(self, shop, sql: Statement, params: dict = None):
        """Erste Zeile oder None"""
        with self._connection(shop) as conn:
            return conn.execute(self._as_text(sql), params or {}).mappings().first()

    def _fetch_all(self, shop, sql: Statement, params: dict = None):
        with self._connection(shop) as conn:
            return conn.execute(self._as_text(sql), params or {}).mappings().all()

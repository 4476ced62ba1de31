"""
modules/shared/database/connection.py
Database Connection Manager - Joomla/VirtueMart Shop-Datenbanken via SQLAlchemy Engine (echtes Pooling).

Eine Engine pro Shop-ID, da jeder Shop eigene Zugangsdaten hat.
"""

import threading
from typing import Dict
from urllib.parse import quote_plus

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

# Engine Cache pro Shop
_engines: Dict[str, Engine] = {}
_engines_lock = threading.Lock()


def build_connection_url(db_config) -> str:
    """Build SQLAlchemy URL aus einer DatabaseConfig (driver, host, port, user, password, database)."""
    user = quote_plus(db_config.user)
    password = quote_plus(db_config.password or '')
    auth = f"{user}:{password}" if password else user
    return f"{db_config.driver}://{auth}@{db_config.host}:{db_config.port}/{db_config.database}"


def _create_engine(db_config) -> Engine:
    url = build_connection_url(db_config)
    engine = create_engine(
        url,
        pool_size=5,
        max_overflow=5,
        pool_pre_ping=True,
        pool_recycle=3600,
        future=True,
    )
    return engine


def get_engine(shop) -> Engine:
    """Get or create a pooled SQLAlchemy Engine for the shop's Joomla database."""
    with _engines_lock:
        if shop.id not in _engines:
            _engines[shop.id] = _create_engine(shop.joomla)
        return _engines[shop.id]


def dispose_engine(shop_id: str):
    """Dispose the engine of one shop (e.g. after credentials changed)."""
    with _engines_lock:
        engine = _engines.pop(shop_id, None)
    if engine is not None:
        engine.dispose()


def close_all_engines():
    """Dispose all engines and close pooled connections (e.g., on shutdown)."""
    global _engines
    with _engines_lock:
        engines, _engines = _engines, {}
    for engine in engines.values():
        engine.dispose()

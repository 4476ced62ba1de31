"""
Database - SQLAlchemy Engines pro Shop (Joomla/VirtueMart Quelldatenbank)
"""
from .connection import build_connection_url, close_all_engines, dispose_engine, get_engine

__all__ = ["build_connection_url", "close_all_engines", "dispose_engine", "get_engine"]

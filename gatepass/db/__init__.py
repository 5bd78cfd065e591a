"""Database package."""
from gatepass.db.session import engine, SessionLocal, get_db
from gatepass.db.base import Base

__all__ = ["engine", "SessionLocal", "get_db", "Base"]

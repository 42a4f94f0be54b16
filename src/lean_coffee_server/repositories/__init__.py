"""
Database-backed record store.
"""

from lean_coffee_server.repositories.record_store import SQLAlchemyRecordStore

__all__ = ["SQLAlchemyRecordStore"]

"""
Record store interface and the in-memory implementation.
"""

from lean_coffee_core.storage.interface import RecordStore
from lean_coffee_core.storage.memory import InMemoryRecordStore

__all__ = ["RecordStore", "InMemoryRecordStore"]

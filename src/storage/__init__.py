"""
Storage Module.

Persistence backends for school records, answer keys and submissions.
"""

from src.storage.base import Storage
from src.storage.json_store import JsonFileStorage
from src.storage.memory import InMemoryStorage

__all__ = [
    "InMemoryStorage",
    "JsonFileStorage",
    "Storage",
]

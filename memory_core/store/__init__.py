"""
Study store package exports.
"""

from memory_core.store.database import Database
from memory_core.store.entity_store import EntityStore, parse_dataset
from memory_core.store.records import KINDS

__all__ = [
    "Database",
    "EntityStore",
    "parse_dataset",
    "KINDS",
]

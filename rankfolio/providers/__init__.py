"""
Snapshot providers

- memory.py: caller-supplied snapshots and prices
- sql.py: SQLAlchemy snapshot cache
"""
from rankfolio.providers.memory import InMemorySnapshotProvider
from rankfolio.providers.sql import SqlSnapshotProvider

__all__ = [
    "InMemorySnapshotProvider",
    "SqlSnapshotProvider",
]

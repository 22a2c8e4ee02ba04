"""Storage adapters - Location Store and Request Store implementations.

Available implementations:
- SqlAlchemyLocationStore / SqlAlchemyRequestStore: database-backed
- InMemoryLocationStore / InMemoryRequestStore: tests and local runs
"""

from .memory import InMemoryLocationStore, InMemoryRequestStore
from .sql_location_store import SqlAlchemyLocationStore
from .sql_request_store import SqlAlchemyRequestStore

__all__ = [
    "InMemoryLocationStore",
    "InMemoryRequestStore",
    "SqlAlchemyLocationStore",
    "SqlAlchemyRequestStore",
]

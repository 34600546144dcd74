"""Principal record stores.

Provides the store abstraction the role operations drive, an in-memory
implementation and, when motor is installed, a MongoDB implementation.
"""

from .database import RoleStore
from .factory import (
    get_store,
    list_store_types,
    register_store_type,
    unregister_store_type,
)
from .memory import MemoryStore
from .query import QueryEngine

__all__ = [
    "RoleStore",
    "MemoryStore",
    "QueryEngine",
    "get_store",
    "list_store_types",
    "register_store_type",
    "unregister_store_type",
]

# MongoDB is optional and may not be available
try:
    from .mongodb import MongoStore  # noqa: F401

    __all__.append("MongoStore")
except ImportError:
    pass

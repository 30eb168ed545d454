"""Infrastructure layer exports."""

from .errors import ConflictError, NotFoundError, PersistenceError, StoreValidationError
from .http_store import HttpProductionStore
from .production import InMemoryProductionStore, ProductionStore

__all__ = [
    "ConflictError",
    "HttpProductionStore",
    "InMemoryProductionStore",
    "NotFoundError",
    "PersistenceError",
    "ProductionStore",
    "StoreValidationError",
]

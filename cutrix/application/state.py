"""Process-wide store and service singletons."""
from __future__ import annotations

from loguru import logger

from cutrix.domain import Role, User
from cutrix.infrastructure import InMemoryProductionStore, ProductionStore

from .floor import FloorService
from .orders import OrderService
from .planning import PlanningService
from .users import UserService

_store: ProductionStore = InMemoryProductionStore()
_planning = PlanningService(_store)
_users = UserService(_store)
_orders = OrderService(_store)
_floor = FloorService(_store)


def configure_store(store: ProductionStore) -> None:
    """Swap the backing store and rebuild the services around it."""

    global _store, _planning, _users, _orders, _floor
    _store = store
    _planning = PlanningService(store)
    _users = UserService(store)
    _orders = OrderService(store)
    _floor = FloorService(store)


def get_store() -> ProductionStore:
    return _store


def get_planning_service() -> PlanningService:
    """Return the singleton planning service for the process."""

    return _planning


def get_user_service() -> UserService:
    return _users


def get_order_service() -> OrderService:
    return _orders


def get_floor_service() -> FloorService:
    return _floor


def reset_state() -> None:
    """Reset the in-memory store (used in tests)."""

    _store.reset()


def seed_admin(name: str, password: str) -> User | None:
    """Create the first administrator when the store has no users yet."""

    if not name or not password or _store.list_users():
        return None
    user = _store.create_user(name=name, password=password, role=Role.ADMIN, note="bootstrap administrator")
    logger.info("seeded administrator {} (id {})", user.name, user.user_id)
    return user

"""Application layer services."""

from .floor import FloorService
from .orders import OrderService
from .planning import PlanningService
from .state import (
    configure_store,
    get_floor_service,
    get_order_service,
    get_planning_service,
    get_store,
    get_user_service,
    reset_state,
    seed_admin,
)
from .users import UserService

__all__ = [
    "FloorService",
    "OrderService",
    "PlanningService",
    "UserService",
    "configure_store",
    "get_floor_service",
    "get_order_service",
    "get_planning_service",
    "get_store",
    "get_user_service",
    "reset_state",
    "seed_admin",
]

"""Domain entities for cutting production planning."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class Role(str, Enum):
    """Closed set of user roles."""

    ADMIN = "admin"
    MANAGER = "manager"
    PATTERN_MAKER = "pattern_maker"
    WORKER = "worker"


SINGLETON_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.MANAGER})


class PlanStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FROZEN = "frozen"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(slots=True)
class Actor:
    """The identity performing an operation."""

    user_id: int
    role: Role


@dataclass(slots=True)
class User:
    user_id: int
    name: str
    role: Role
    is_active: bool = True
    user_group: str | None = None
    note: str | None = None


@dataclass(slots=True)
class OrderItem:
    color: str
    size: str
    quantity: int
    item_id: int | None = None
    order_id: int | None = None


@dataclass(slots=True)
class Order:
    """A customer order; line items are fixed once the order exists."""

    order_id: int
    order_number: str
    style_number: str
    customer_name: str | None = None
    order_start_date: date | None = None
    order_finish_date: date | None = None
    note: str | None = None
    items: list[OrderItem] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(slots=True)
class Plan:
    plan_id: int
    plan_name: str
    order_id: int
    status: PlanStatus = PlanStatus.PENDING
    note: str | None = None
    planned_publish_date: datetime | None = None
    planned_finish_date: date | None = None


@dataclass(slots=True)
class Layout:
    """A cutting layout and its per-size ratio set."""

    layout_id: int
    plan_id: int
    layout_name: str
    note: str | None = None
    ratios: dict[str, Decimal] = field(default_factory=dict)

    @property
    def ratio_sum(self) -> Decimal:
        return sum(self.ratios.values(), Decimal("0"))


@dataclass(slots=True)
class Task:
    task_id: int
    layout_id: int
    color: str
    planned_layers: int
    completed_layers: int = 0
    status: TaskStatus = TaskStatus.PENDING


@dataclass(slots=True)
class ProductionLog:
    """Append-only record of layers cut for a task."""

    log_id: int
    task_id: int
    layers_completed: int
    log_time: datetime
    worker_id: int | None = None
    worker_name: str | None = None
    note: str | None = None
    voided: bool = False
    void_reason: str | None = None
    voided_at: datetime | None = None
    voided_by: int | None = None


def derive_task_status(planned_layers: int, completed_layers: int) -> TaskStatus:
    if completed_layers <= 0:
        return TaskStatus.PENDING
    if completed_layers >= planned_layers:
        return TaskStatus.COMPLETED
    return TaskStatus.IN_PROGRESS

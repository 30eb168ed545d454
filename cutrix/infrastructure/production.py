"""Infrastructure layer for production data persistence."""
from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Protocol

from cutrix.core.lifecycle import InvalidTransitionError, PlanAction, validate_transition
from cutrix.domain import (
    Layout,
    Order,
    OrderItem,
    Plan,
    PlanStatus,
    ProductionLog,
    Role,
    Task,
    TaskStatus,
    User,
    derive_task_status,
)

from .errors import ConflictError, NotFoundError, StoreValidationError


class ProductionStore(Protocol):
    """Persistence contract for orders, plans, layouts, tasks, logs and users."""

    # orders
    def list_orders(self) -> list[Order]: ...

    def get_order(self, order_id: int) -> Order: ...

    def create_order(
        self,
        *,
        order_number: str,
        style_number: str,
        items: list[OrderItem],
        customer_name: str | None = None,
        order_start_date: date | None = None,
        order_finish_date: date | None = None,
        note: str | None = None,
    ) -> Order: ...

    def update_order_note(self, order_id: int, note: str | None) -> None: ...

    def update_order_finish_date(self, order_id: int, finish_date: date | None) -> None: ...

    def delete_order(self, order_id: int) -> None: ...

    # plans
    def list_plans(self, order_id: int | None = None) -> list[Plan]: ...

    def get_plan(self, plan_id: int) -> Plan: ...

    def create_plan(
        self,
        *,
        order_id: int,
        plan_name: str,
        note: str | None = None,
        planned_finish_date: date | None = None,
    ) -> Plan: ...

    def set_plan_status(self, plan_id: int, status: PlanStatus, *, published_at: datetime | None = None) -> Plan: ...

    def update_plan_note(self, plan_id: int, note: str | None) -> None: ...

    def delete_plan(self, plan_id: int) -> None: ...

    # layouts
    def list_layouts(self, plan_id: int) -> list[Layout]: ...

    def get_layout(self, layout_id: int) -> Layout: ...

    def create_layout(self, plan_id: int, layout_name: str, note: str | None = None) -> Layout: ...

    def rename_layout(self, layout_id: int, layout_name: str) -> None: ...

    def update_layout_note(self, layout_id: int, note: str | None) -> None: ...

    def set_ratios(self, layout_id: int, ratios: dict[str, Decimal]) -> None: ...

    def delete_layout(self, layout_id: int) -> None: ...

    # tasks
    def list_tasks(self, layout_id: int | None = None) -> list[Task]: ...

    def get_task(self, task_id: int) -> Task: ...

    def create_task(self, layout_id: int, color: str, planned_layers: int) -> Task: ...

    def delete_task(self, task_id: int) -> None: ...

    # logs
    def list_logs(self, task_id: int) -> list[ProductionLog]: ...

    def get_log(self, log_id: int) -> ProductionLog: ...

    def create_log(
        self,
        task_id: int,
        layers_completed: int,
        *,
        worker_id: int | None = None,
        worker_name: str | None = None,
        note: str | None = None,
    ) -> ProductionLog: ...

    def void_log(self, log_id: int, void_reason: str, *, voided_by: int | None = None) -> ProductionLog: ...

    # users
    def list_users(self) -> list[User]: ...

    def get_user(self, user_id: int) -> User: ...

    def create_user(
        self,
        *,
        name: str,
        password: str,
        role: Role,
        user_group: str | None = None,
        note: str | None = None,
    ) -> User: ...

    def update_user_profile(self, user_id: int, **fields: str | None) -> User: ...

    def assign_role(self, user_id: int, role: Role) -> None: ...

    def set_active(self, user_id: int, active: bool) -> None: ...

    def set_password(self, user_id: int, password: str) -> None: ...

    def delete_user(self, user_id: int) -> None: ...

    def reset(self) -> None: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryProductionStore:
    """Simple in-memory store for fast iteration and tests."""

    def __init__(self) -> None:
        self.reset()

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _next_id(self, entity: str) -> int:
        self._counters[entity] = self._counters.get(entity, 0) + 1
        return self._counters[entity]

    def _order(self, order_id: int) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise NotFoundError(f"order {order_id} not found", status_code=404)
        return order

    def _plan(self, plan_id: int) -> Plan:
        plan = self._plans.get(plan_id)
        if plan is None:
            raise NotFoundError(f"plan {plan_id} not found", status_code=404)
        return plan

    def _layout(self, layout_id: int) -> Layout:
        layout = self._layouts.get(layout_id)
        if layout is None:
            raise NotFoundError(f"layout {layout_id} not found", status_code=404)
        return layout

    def _task(self, task_id: int) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"task {task_id} not found", status_code=404)
        return task

    def _user(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"user {user_id} not found", status_code=404)
        return user

    def _refresh_task(self, task: Task) -> None:
        task.completed_layers = sum(
            log.layers_completed for log in self._logs.values() if log.task_id == task.task_id and not log.voided
        )
        task.status = derive_task_status(task.planned_layers, task.completed_layers)

    def _refresh_plan_status(self, plan_id: int) -> None:
        plan = self._plans.get(plan_id)
        if plan is None:
            return
        layout_ids = {layout.layout_id for layout in self._layouts.values() if layout.plan_id == plan_id}
        tasks = [task for task in self._tasks.values() if task.layout_id in layout_ids]
        if not tasks or any(task.status is not TaskStatus.COMPLETED for task in tasks):
            return
        try:
            target = validate_transition(plan.status, PlanAction.COMPLETE)
        except InvalidTransitionError:
            return
        if target is not None:
            plan.status = target

    @staticmethod
    def _copy_order(order: Order) -> Order:
        return replace(order, items=[replace(item) for item in order.items])

    @staticmethod
    def _copy_layout(layout: Layout) -> Layout:
        return replace(layout, ratios=dict(layout.ratios))

    # ------------------------------------------------------------------
    # orders
    # ------------------------------------------------------------------
    def list_orders(self) -> list[Order]:
        return [self._copy_order(order) for order in self._orders.values()]

    def get_order(self, order_id: int) -> Order:
        return self._copy_order(self._order(order_id))

    def create_order(
        self,
        *,
        order_number: str,
        style_number: str,
        items: list[OrderItem],
        customer_name: str | None = None,
        order_start_date: date | None = None,
        order_finish_date: date | None = None,
        note: str | None = None,
    ) -> Order:
        if any(order.order_number == order_number for order in self._orders.values()):
            raise ConflictError(f"order number {order_number} already exists", status_code=409)
        if not items:
            raise StoreValidationError("an order needs at least one item", status_code=422)
        if any(item.quantity < 1 for item in items):
            raise StoreValidationError("item quantity must be at least 1", status_code=422)
        order_id = self._next_id("order")
        stamp = _now()
        stored_items = [
            OrderItem(
                color=item.color,
                size=item.size,
                quantity=item.quantity,
                item_id=self._next_id("item"),
                order_id=order_id,
            )
            for item in items
        ]
        order = Order(
            order_id=order_id,
            order_number=order_number,
            style_number=style_number,
            customer_name=customer_name,
            order_start_date=order_start_date or stamp.date(),
            order_finish_date=order_finish_date,
            note=note,
            items=stored_items,
            created_at=stamp,
            updated_at=stamp,
        )
        self._orders[order_id] = order
        return self._copy_order(order)

    def update_order_note(self, order_id: int, note: str | None) -> None:
        order = self._order(order_id)
        order.note = note
        order.updated_at = _now()

    def update_order_finish_date(self, order_id: int, finish_date: date | None) -> None:
        order = self._order(order_id)
        order.order_finish_date = finish_date
        order.updated_at = _now()

    def delete_order(self, order_id: int) -> None:
        self._order(order_id)
        if any(plan.order_id == order_id for plan in self._plans.values()):
            raise ConflictError(f"order {order_id} still has a plan", status_code=409)
        del self._orders[order_id]

    # ------------------------------------------------------------------
    # plans
    # ------------------------------------------------------------------
    def list_plans(self, order_id: int | None = None) -> list[Plan]:
        return [
            replace(plan)
            for plan in self._plans.values()
            if order_id is None or plan.order_id == order_id
        ]

    def get_plan(self, plan_id: int) -> Plan:
        return replace(self._plan(plan_id))

    def create_plan(
        self,
        *,
        order_id: int,
        plan_name: str,
        note: str | None = None,
        planned_finish_date: date | None = None,
    ) -> Plan:
        self._order(order_id)
        plan = Plan(
            plan_id=self._next_id("plan"),
            plan_name=plan_name,
            order_id=order_id,
            note=note,
            planned_finish_date=planned_finish_date,
        )
        self._plans[plan.plan_id] = plan
        return replace(plan)

    def set_plan_status(self, plan_id: int, status: PlanStatus, *, published_at: datetime | None = None) -> Plan:
        plan = self._plan(plan_id)
        plan.status = PlanStatus(status)
        if published_at is not None:
            plan.planned_publish_date = published_at
        return replace(plan)

    def update_plan_note(self, plan_id: int, note: str | None) -> None:
        self._plan(plan_id).note = note

    def delete_plan(self, plan_id: int) -> None:
        self._plan(plan_id)
        for layout_id in [layout.layout_id for layout in self._layouts.values() if layout.plan_id == plan_id]:
            self.delete_layout(layout_id)
        del self._plans[plan_id]

    # ------------------------------------------------------------------
    # layouts
    # ------------------------------------------------------------------
    def list_layouts(self, plan_id: int) -> list[Layout]:
        return [self._copy_layout(layout) for layout in self._layouts.values() if layout.plan_id == plan_id]

    def get_layout(self, layout_id: int) -> Layout:
        return self._copy_layout(self._layout(layout_id))

    def create_layout(self, plan_id: int, layout_name: str, note: str | None = None) -> Layout:
        self._plan(plan_id)
        layout = Layout(layout_id=self._next_id("layout"), plan_id=plan_id, layout_name=layout_name, note=note)
        self._layouts[layout.layout_id] = layout
        return self._copy_layout(layout)

    def rename_layout(self, layout_id: int, layout_name: str) -> None:
        self._layout(layout_id).layout_name = layout_name

    def update_layout_note(self, layout_id: int, note: str | None) -> None:
        self._layout(layout_id).note = note

    def set_ratios(self, layout_id: int, ratios: dict[str, Decimal]) -> None:
        layout = self._layout(layout_id)
        if any(Decimal(ratio) < 0 for ratio in ratios.values()):
            raise StoreValidationError("ratios must not be negative", status_code=422)
        layout.ratios = {size: Decimal(ratio) for size, ratio in ratios.items() if Decimal(ratio) > 0}

    def delete_layout(self, layout_id: int) -> None:
        self._layout(layout_id)
        for task_id in [task.task_id for task in self._tasks.values() if task.layout_id == layout_id]:
            self.delete_task(task_id)
        del self._layouts[layout_id]

    # ------------------------------------------------------------------
    # tasks
    # ------------------------------------------------------------------
    def list_tasks(self, layout_id: int | None = None) -> list[Task]:
        return [
            replace(task)
            for task in self._tasks.values()
            if layout_id is None or task.layout_id == layout_id
        ]

    def get_task(self, task_id: int) -> Task:
        return replace(self._task(task_id))

    def create_task(self, layout_id: int, color: str, planned_layers: int) -> Task:
        self._layout(layout_id)
        if planned_layers <= 0:
            raise StoreValidationError("planned_layers must be positive", status_code=422)
        if any(task.layout_id == layout_id and task.color == color for task in self._tasks.values()):
            raise ConflictError(f"layout {layout_id} already has a task for {color}", status_code=409)
        task = Task(task_id=self._next_id("task"), layout_id=layout_id, color=color, planned_layers=planned_layers)
        self._tasks[task.task_id] = task
        return replace(task)

    def delete_task(self, task_id: int) -> None:
        self._task(task_id)
        for log_id in [log.log_id for log in self._logs.values() if log.task_id == task_id]:
            del self._logs[log_id]
        del self._tasks[task_id]

    # ------------------------------------------------------------------
    # logs
    # ------------------------------------------------------------------
    def list_logs(self, task_id: int) -> list[ProductionLog]:
        self._task(task_id)
        return [replace(log) for log in self._logs.values() if log.task_id == task_id]

    def get_log(self, log_id: int) -> ProductionLog:
        log = self._logs.get(log_id)
        if log is None:
            raise NotFoundError(f"log {log_id} not found", status_code=404)
        return replace(log)

    def create_log(
        self,
        task_id: int,
        layers_completed: int,
        *,
        worker_id: int | None = None,
        worker_name: str | None = None,
        note: str | None = None,
    ) -> ProductionLog:
        task = self._task(task_id)
        if layers_completed < 1:
            raise StoreValidationError("layers_completed must be at least 1", status_code=422)
        log = ProductionLog(
            log_id=self._next_id("log"),
            task_id=task_id,
            layers_completed=layers_completed,
            log_time=_now(),
            worker_id=worker_id,
            worker_name=worker_name,
            note=note,
        )
        self._logs[log.log_id] = log
        self._refresh_task(task)
        self._refresh_plan_status(self._layout(task.layout_id).plan_id)
        return replace(log)

    def void_log(self, log_id: int, void_reason: str, *, voided_by: int | None = None) -> ProductionLog:
        log = self._logs.get(log_id)
        if log is None:
            raise NotFoundError(f"log {log_id} not found", status_code=404)
        if log.voided:
            raise ConflictError(f"log {log_id} is already voided", status_code=409)
        log.voided = True
        log.void_reason = void_reason
        log.voided_at = _now()
        log.voided_by = voided_by
        self._refresh_task(self._task(log.task_id))
        return replace(log)

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------
    def list_users(self) -> list[User]:
        return [replace(user) for user in self._users.values()]

    def get_user(self, user_id: int) -> User:
        return replace(self._user(user_id))

    def create_user(
        self,
        *,
        name: str,
        password: str,
        role: Role,
        user_group: str | None = None,
        note: str | None = None,
    ) -> User:
        if any(user.name == name for user in self._users.values()):
            raise ConflictError(f"user {name} already exists", status_code=409)
        user = User(user_id=self._next_id("user"), name=name, role=Role(role), user_group=user_group, note=note)
        self._users[user.user_id] = user
        self._passwords[user.user_id] = password
        return replace(user)

    def update_user_profile(self, user_id: int, **fields: str | None) -> User:
        user = self._user(user_id)
        for key in ("name", "user_group", "note"):
            if key in fields:
                setattr(user, key, fields[key])
        return replace(user)

    def assign_role(self, user_id: int, role: Role) -> None:
        self._user(user_id).role = Role(role)

    def set_active(self, user_id: int, active: bool) -> None:
        self._user(user_id).is_active = active

    def set_password(self, user_id: int, password: str) -> None:
        self._user(user_id)
        self._passwords[user_id] = password

    def check_password(self, user_id: int, password: str) -> bool:
        return self._passwords.get(user_id) == password

    def delete_user(self, user_id: int) -> None:
        self._user(user_id)
        del self._users[user_id]
        self._passwords.pop(user_id, None)

    def reset(self) -> None:
        self._orders: dict[int, Order] = {}
        self._plans: dict[int, Plan] = {}
        self._layouts: dict[int, Layout] = {}
        self._tasks: dict[int, Task] = {}
        self._logs: dict[int, ProductionLog] = {}
        self._users: dict[int, User] = {}
        self._passwords: dict[int, str] = {}
        self._counters: dict[str, int] = {}

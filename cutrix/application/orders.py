from __future__ import annotations

from dataclasses import asdict
from datetime import date

from loguru import logger

from cutrix.core.matrix import build_demand, sort_sizes
from cutrix.core.name_normalize import clean
from cutrix.core.permissions import Permission, require
from cutrix.core.schema import OrderCreateRequest
from cutrix.core.validation import ValidationError
from cutrix.domain import Actor, OrderItem, Outcome, Success
from cutrix.infrastructure import ProductionStore

from .guards import returns_outcome


class OrderService:
    """Order CRUD. Order items are immutable once the order exists."""

    def __init__(self, store: ProductionStore) -> None:
        self._store = store

    @returns_outcome
    def list_orders(self, actor: Actor) -> Outcome:
        require(actor.role, Permission.ORDER_READ)
        items = []
        for order in self._store.list_orders():
            entry = asdict(order)
            entry["total_quantity"] = sum(item.quantity for item in order.items)
            items.append(entry)
        return Success(data={"items": items})

    @returns_outcome
    def get_order_full(self, actor: Actor, order_id: int) -> Outcome:
        require(actor.role, Permission.ORDER_READ)
        order = self._store.get_order(order_id)
        demand = build_demand(order.items)
        sizes = sort_sizes({size for row in demand.values() for size in row})
        return Success(
            data={
                "order": asdict(order),
                "colors": list(demand),
                "sizes": sizes,
                "total_quantity": sum(item.quantity for item in order.items),
            }
        )

    @returns_outcome
    def create_order(self, actor: Actor, request: OrderCreateRequest) -> Outcome:
        require(actor.role, Permission.ORDER_CREATE)
        if (
            request.order_start_date is not None
            and request.order_finish_date is not None
            and request.order_finish_date < request.order_start_date
        ):
            raise ValidationError("order_finish_date must not be before order_start_date")
        items = [
            OrderItem(color=clean(item.color), size=clean(item.size), quantity=item.quantity)
            for item in request.items
        ]
        if any(not item.color or not item.size for item in items):
            raise ValidationError("order items need a color and a size")
        order = self._store.create_order(
            order_number=request.order_number.strip(),
            style_number=request.style_number.strip(),
            items=items,
            customer_name=request.customer_name,
            order_start_date=request.order_start_date,
            order_finish_date=request.order_finish_date,
            note=request.note,
        )
        logger.info("order {} created with {} item(s)", order.order_number, len(order.items))
        return Success(message="order created", data={"order": asdict(order)})

    @returns_outcome
    def update_note(self, actor: Actor, order_id: int, note: str | None) -> Outcome:
        require(actor.role, Permission.ORDER_UPDATE)
        self._store.get_order(order_id)
        self._store.update_order_note(order_id, note)
        return Success(message="note updated", data={"order_id": order_id, "note": note})

    @returns_outcome
    def update_finish_date(self, actor: Actor, order_id: int, finish_date: date | None) -> Outcome:
        require(actor.role, Permission.ORDER_UPDATE)
        order = self._store.get_order(order_id)
        if finish_date is not None and order.order_start_date is not None and finish_date < order.order_start_date:
            raise ValidationError("order_finish_date must not be before order_start_date")
        self._store.update_order_finish_date(order_id, finish_date)
        return Success(message="finish date updated", data={"order_id": order_id, "order_finish_date": finish_date})

    @returns_outcome
    def delete_order(self, actor: Actor, order_id: int) -> Outcome:
        require(actor.role, Permission.ORDER_DELETE)
        order = self._store.get_order(order_id)
        if self._store.list_plans(order_id):
            raise ValidationError(f"order {order.order_number} has a plan; delete the plan first")
        self._store.delete_order(order_id)
        logger.info("order {} deleted by user {}", order.order_number, actor.user_id)
        return Success(message="order deleted", data={"order_id": order_id})

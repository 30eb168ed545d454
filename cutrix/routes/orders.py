from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from cutrix.application import get_order_service, get_planning_service
from cutrix.core.schema import LayoutSpec, OrderCreateRequest
from cutrix.domain import Actor

from .deps import get_actor, respond

router = APIRouter(prefix="/orders", tags=["orders"])


class NotePayload(BaseModel):
    note: str | None = None


class FinishDatePayload(BaseModel):
    order_finish_date: date | None = None


class PreviewPayload(BaseModel):
    layouts: list[LayoutSpec]


@router.get("")
def list_orders(actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_order_service().list_orders(actor))


@router.post("")
def create_order(payload: OrderCreateRequest, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_order_service().create_order(actor, payload))


@router.get("/{order_id}")
def get_order(order_id: int, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_order_service().get_order_full(actor, order_id))


@router.delete("/{order_id}")
def delete_order(order_id: int, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_order_service().delete_order(actor, order_id))


@router.patch("/{order_id}/note")
def update_order_note(order_id: int, payload: NotePayload, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_order_service().update_note(actor, order_id, payload.note))


@router.patch("/{order_id}/finish-date")
def update_finish_date(order_id: int, payload: FinishDatePayload, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_order_service().update_finish_date(actor, order_id, payload.order_finish_date))


@router.get("/{order_id}/matrix")
def get_matrix(
    order_id: int,
    plan_id: int | None = Query(default=None),
    actor: Actor = Depends(get_actor),
) -> dict:
    return respond(get_planning_service().build_matrices(actor, order_id, plan_id))


@router.post("/{order_id}/matrix/preview")
def preview_matrix(order_id: int, payload: PreviewPayload, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_planning_service().preview_matrices(actor, order_id, payload.layouts))

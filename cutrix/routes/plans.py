from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from cutrix.application import get_planning_service
from cutrix.core.lifecycle import PlanAction
from cutrix.core.schema import LayoutSpec, PlanCommand, PlanCreateRequest
from cutrix.domain import Actor

from .deps import get_actor, respond

router = APIRouter(prefix="/plans", tags=["plans"])


class LayoutsPayload(BaseModel):
    layouts: list[LayoutSpec]


class NotePayload(BaseModel):
    note: str | None = None


@router.get("")
def list_plans(order_id: int | None = Query(default=None), actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_planning_service().list_plans(actor, order_id))


@router.post("")
def create_plan(payload: PlanCreateRequest, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_planning_service().create_plan(actor, payload))


@router.post("/actions")
def run_plan_action(command: PlanCommand, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_planning_service().orchestrate(actor, command))


@router.get("/{plan_id}")
def get_plan(plan_id: int, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_planning_service().get_plan_detail(actor, plan_id))


@router.delete("/{plan_id}")
def delete_plan(plan_id: int, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_planning_service().delete_plan(actor, plan_id))


@router.put("/{plan_id}/layouts")
def reconcile_layouts(plan_id: int, payload: LayoutsPayload, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_planning_service().reconcile(actor, plan_id, payload.layouts))


@router.post("/{plan_id}/publish")
def publish_plan(plan_id: int, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_planning_service().publish_plan(actor, plan_id))


@router.post("/{plan_id}/freeze")
def freeze_plan(plan_id: int, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_planning_service().freeze_plan(actor, plan_id))


@router.patch("/{plan_id}/note")
def update_plan_note(plan_id: int, payload: NotePayload, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_planning_service().update_plan_note(actor, plan_id, payload.note))


@router.get("/{plan_id}/transitions/{action}")
def check_transition(plan_id: int, action: PlanAction, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_planning_service().validate_transition(actor, plan_id, action))

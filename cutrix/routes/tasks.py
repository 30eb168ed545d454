from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from cutrix.application import get_floor_service
from cutrix.core.schema import LogCreateRequest, VoidLogRequest
from cutrix.domain import Actor

from .deps import get_actor, respond

router = APIRouter(tags=["floor"])


@router.get("/tasks")
def list_tasks(layout_id: int | None = Query(default=None), actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_floor_service().list_tasks(actor, layout_id))


@router.get("/tasks/{task_id}/logs")
def list_logs(task_id: int, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_floor_service().list_logs(actor, task_id))


@router.post("/logs")
def submit_log(payload: LogCreateRequest, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_floor_service().submit_log(actor, payload))


@router.post("/logs/{log_id}/void")
def void_log(log_id: int, payload: VoidLogRequest, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_floor_service().void_log(actor, log_id, payload.void_reason))

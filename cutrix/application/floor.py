"""Shop-floor use cases: cutting tasks and production logs."""
from __future__ import annotations

from dataclasses import asdict

from loguru import logger

from cutrix.core.permissions import Permission, PermissionDeniedError, allowed_any, require
from cutrix.core.schema import LogCreateRequest
from cutrix.core.validation import ValidationError
from cutrix.domain import Actor, Outcome, PlanStatus, Success
from cutrix.infrastructure import ProductionStore

from .guards import returns_outcome


class FloorService:
    def __init__(self, store: ProductionStore) -> None:
        self._store = store

    @returns_outcome
    def list_tasks(self, actor: Actor, layout_id: int | None = None) -> Outcome:
        require(actor.role, Permission.TASK_READ)
        tasks = self._store.list_tasks(layout_id)
        return Success(data={"items": [asdict(task) for task in tasks]})

    @returns_outcome
    def list_logs(self, actor: Actor, task_id: int) -> Outcome:
        # workers read the history of the tasks they cut without holding log:read
        if not allowed_any(actor.role, (Permission.LOG_READ, Permission.TASK_READ)):
            raise PermissionDeniedError(f"role '{actor.role.value}' lacks permission 'log:read'", permission="log:read")
        logs = self._store.list_logs(task_id)
        return Success(data={"task_id": task_id, "items": [asdict(log) for log in logs]})

    @returns_outcome
    def submit_log(self, actor: Actor, request: LogCreateRequest) -> Outcome:
        """Record layers cut on a task of a published plan."""

        require(actor.role, Permission.LOG_CREATE)
        if request.layers_completed < 1:
            raise ValidationError("layers_completed must be at least 1")
        task = self._store.get_task(request.task_id)
        layout = self._store.get_layout(task.layout_id)
        plan = self._store.get_plan(layout.plan_id)
        if plan.status is not PlanStatus.IN_PROGRESS:
            raise ValidationError(f"logs can only be recorded while the plan is in progress (status: {plan.status.value})")

        worker = self._store.get_user(actor.user_id)
        log = self._store.create_log(
            task.task_id,
            request.layers_completed,
            worker_id=worker.user_id,
            worker_name=worker.name,
            note=request.note,
        )
        logger.info("task {}: {} layer(s) logged by {}", task.task_id, log.layers_completed, worker.name)
        refreshed = self._store.get_task(task.task_id)
        return Success(message="log recorded", data={"log": asdict(log), "task": asdict(refreshed)})

    @returns_outcome
    def void_log(self, actor: Actor, log_id: int, void_reason: str) -> Outcome:
        require(actor.role, Permission.LOG_VOID)
        reason = (void_reason or "").strip()
        if not reason:
            raise ValidationError("a void reason is required")
        log = self._store.get_log(log_id)
        if log.voided:
            raise ValidationError(f"log {log_id} is already voided")
        voided = self._store.void_log(log_id, reason, voided_by=actor.user_id)
        logger.info("log {} voided by user {}: {}", log_id, actor.user_id, reason)
        return Success(message="log voided", data={"log": asdict(voided)})

"""Orchestration of plan lifecycle use cases.

Every user-initiated plan action runs the same sequence: permission check,
state check against the transition table, and only then the write path
(reconciliation or a status change).  Refusals come back as tagged outcomes
before any persistence call is made.
"""
from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Sequence

from loguru import logger

from cutrix.core.lifecycle import (
    ACTION_PERMISSIONS,
    PlanAction,
    require_publishable,
    validate_transition as check_transition,
)
from cutrix.core.matrix import build_demand, build_supply, build_supply_from_specs, compare
from cutrix.core.permissions import Permission, PermissionDeniedError, allowed, require
from cutrix.core.progress import layout_progress, plan_progress
from cutrix.core.reconcile import ReconciliationEngine
from cutrix.core.schema import LayoutSpec, PlanCommand, PlanCreateRequest
from cutrix.core.validation import ValidationError
from cutrix.domain import (
    Actor,
    Layout,
    Outcome,
    Plan,
    PlanStatus,
    ReconciliationReport,
    Success,
    Task,
    ValidationFailed,
    outcome_from_report,
)
from cutrix.infrastructure import ProductionStore

from .guards import returns_outcome

EDIT_PERMISSIONS: tuple[Permission, ...] = (
    Permission.PLAN_UPDATE,
    Permission.LAYOUT_CREATE,
    Permission.LAYOUT_UPDATE,
    Permission.LAYOUT_DELETE,
    # a color's layers changing is a recreate in permission terms
    Permission.TASK_CREATE,
    Permission.TASK_DELETE,
)

NEEDS_EDITING_MESSAGE = "plan created, but it has no layouts yet and needs editing before it can be published"


class PlanningService:
    """Coordinates plan-related use cases."""

    def __init__(self, store: ProductionStore) -> None:
        self._store = store
        self._engine = ReconciliationEngine(store)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _tasks_for(self, layouts: Sequence[Layout]) -> list[Task]:
        tasks: list[Task] = []
        for layout in layouts:
            tasks.extend(self._store.list_tasks(layout.layout_id))
        return tasks

    def _follow_ups(self, actor: Actor, plan: Plan, report: ReconciliationReport) -> list[str]:
        if plan.status is PlanStatus.PENDING and report.tasks_created > 0 and allowed(actor.role, Permission.PLAN_PUBLISH):
            return ["publish"]
        return []

    def _publish(self, plan: Plan) -> Plan:
        check_transition(plan.status, PlanAction.PUBLISH)
        layouts = self._store.list_layouts(plan.plan_id)
        require_publishable(layouts, self._tasks_for(layouts))
        published = self._store.set_plan_status(
            plan.plan_id,
            PlanStatus.IN_PROGRESS,
            published_at=datetime.now(timezone.utc),
        )
        logger.info("plan {} published", plan.plan_id)
        return published

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------
    @returns_outcome
    def check_permission(self, actor: Actor, *tokens: Permission | str) -> Outcome:
        require(actor.role, *tokens)
        return Success(message="allowed")

    @returns_outcome
    def list_plans(self, actor: Actor, order_id: int | None = None) -> Outcome:
        require(actor.role, Permission.PLAN_READ)
        plans = self._store.list_plans(order_id)
        return Success(data={"items": [asdict(plan) for plan in plans]})

    @returns_outcome
    def get_plan_detail(self, actor: Actor, plan_id: int) -> Outcome:
        require(actor.role, Permission.PLAN_READ)
        plan = self._store.get_plan(plan_id)
        layouts = self._store.list_layouts(plan_id)
        entries: list[dict[str, Any]] = []
        all_tasks: list[Task] = []
        for layout in layouts:
            tasks = self._store.list_tasks(layout.layout_id)
            all_tasks.extend(tasks)
            entry = asdict(layout)
            entry["tasks"] = [asdict(task) for task in tasks]
            entry["progress"] = layout_progress(tasks)
            entries.append(entry)
        return Success(
            data={
                "plan": asdict(plan),
                "layouts": entries,
                "progress": asdict(plan_progress(all_tasks)),
            }
        )

    @returns_outcome
    def build_matrices(self, actor: Actor, order_id: int, plan_id: int | None = None) -> Outcome:
        """Demand of the order against the supply scheduled by its plan."""

        require(actor.role, Permission.ORDER_READ, Permission.PLAN_READ)
        order = self._store.get_order(order_id)
        if plan_id is not None:
            plan = self._store.get_plan(plan_id)
            if plan.order_id != order_id:
                raise ValidationError(f"plan {plan_id} does not belong to order {order_id}")
            plans = [plan]
        else:
            plans = self._store.list_plans(order_id)

        layouts: list[Layout] = []
        for plan in plans:
            layouts.extend(self._store.list_layouts(plan.plan_id))
        comparison = compare(build_demand(order.items), build_supply(layouts, self._tasks_for(layouts)))
        return Success(
            data={
                "order_id": order_id,
                "plan_ids": [plan.plan_id for plan in plans],
                "matrix": comparison.to_dict(),
            }
        )

    @returns_outcome
    def preview_matrices(self, actor: Actor, order_id: int, specs: Sequence[LayoutSpec]) -> Outcome:
        """Same comparison for layout specs that have not been saved yet."""

        require(actor.role, Permission.ORDER_READ, Permission.PLAN_READ)
        order = self._store.get_order(order_id)
        comparison = compare(build_demand(order.items), build_supply_from_specs(specs))
        return Success(data={"order_id": order_id, "matrix": comparison.to_dict()})

    @returns_outcome
    def validate_transition(self, actor: Actor, plan_id: int, action: PlanAction | str) -> Outcome:
        requested = PlanAction(action)
        permission = ACTION_PERMISSIONS[requested]
        if permission is None:
            raise PermissionDeniedError(f"'{requested.value}' is signalled by production progress, not by users")
        require(actor.role, permission)
        plan = self._store.get_plan(plan_id)
        target = check_transition(plan.status, requested)
        if requested is PlanAction.PUBLISH:
            layouts = self._store.list_layouts(plan_id)
            require_publishable(layouts, self._tasks_for(layouts))
        return Success(
            message=f"{requested.value} allowed",
            data={"plan_id": plan_id, "status": plan.status.value, "target": target.value if target else None},
        )

    # ------------------------------------------------------------------
    # write side
    # ------------------------------------------------------------------
    @returns_outcome
    def reconcile(self, actor: Actor, plan_id: int, specs: Sequence[LayoutSpec]) -> Outcome:
        """Bring a pending plan's layouts and tasks in line with ``specs``."""

        require(actor.role, *EDIT_PERMISSIONS)
        plan = self._store.get_plan(plan_id)
        check_transition(plan.status, PlanAction.EDIT)
        report = self._engine.reconcile(plan_id, specs)
        return outcome_from_report(
            report,
            data={"plan_id": plan_id},
            follow_ups=self._follow_ups(actor, plan, report),
        )

    @returns_outcome
    def create_plan(self, actor: Actor, request: PlanCreateRequest) -> Outcome:
        require(actor.role, Permission.PLAN_CREATE)
        if request.layouts:
            require(actor.role, Permission.LAYOUT_CREATE, Permission.TASK_CREATE)
        if request.publish:
            require(actor.role, Permission.PLAN_PUBLISH)

        order = self._store.get_order(request.order_id)
        if self._store.list_plans(order.order_id):
            raise ValidationError(f"order {order.order_number} already has a plan")

        plan = self._store.create_plan(
            order_id=order.order_id,
            plan_name=request.plan_name or f"{order.order_number} production plan",
            note=request.note,
            planned_finish_date=request.planned_finish_date,
        )
        logger.info("plan {} created for order {}", plan.plan_id, order.order_number)

        if request.layouts:
            report = self._engine.reconcile(plan.plan_id, request.layouts)
        else:
            report = ReconciliationReport(plan_id=plan.plan_id)

        needs_editing = report.layouts_created == 0
        follow_ups = self._follow_ups(actor, plan, report)
        published = False
        if request.publish and "publish" in follow_ups:
            plan = self._publish(plan)
            published = True
            follow_ups = []

        if needs_editing:
            message = NEEDS_EDITING_MESSAGE
        elif report.has_warnings:
            message = f"plan created with {len(report.warnings)} warning(s)"
        else:
            message = "plan created"
        if request.publish and not published:
            message = f"{message}; not published because no cutting tasks were created"
        return outcome_from_report(
            report,
            message=message,
            data={"plan": asdict(plan), "needs_editing": needs_editing, "published": published},
            follow_ups=follow_ups,
        )

    @returns_outcome
    def publish_plan(self, actor: Actor, plan_id: int) -> Outcome:
        require(actor.role, Permission.PLAN_PUBLISH)
        plan = self._publish(self._store.get_plan(plan_id))
        return Success(message="plan published", data={"plan": asdict(plan)})

    @returns_outcome
    def freeze_plan(self, actor: Actor, plan_id: int) -> Outcome:
        require(actor.role, Permission.PLAN_FREEZE)
        plan = self._store.get_plan(plan_id)
        target = check_transition(plan.status, PlanAction.FREEZE)
        frozen = self._store.set_plan_status(plan_id, target or PlanStatus.FROZEN)
        logger.info("plan {} frozen", plan_id)
        return Success(message="plan frozen", data={"plan": asdict(frozen)})

    @returns_outcome
    def delete_plan(self, actor: Actor, plan_id: int) -> Outcome:
        require(actor.role, Permission.PLAN_DELETE)
        plan = self._store.get_plan(plan_id)
        check_transition(plan.status, PlanAction.DELETE)
        self._store.delete_plan(plan_id)
        logger.info("plan {} deleted by user {}", plan_id, actor.user_id)
        return Success(message="plan deleted", data={"plan_id": plan_id})

    @returns_outcome
    def update_plan_note(self, actor: Actor, plan_id: int, note: str | None) -> Outcome:
        require(actor.role, Permission.PLAN_UPDATE)
        self._store.get_plan(plan_id)
        self._store.update_plan_note(plan_id, note)
        return Success(message="note updated", data={"plan_id": plan_id, "note": note})

    def orchestrate(self, actor: Actor, command: PlanCommand) -> Outcome:
        """Dispatch a user intent to the matching use case."""

        if command.action == "create":
            if command.order_id is None:
                return _missing("order_id", command.action)
            return self.create_plan(
                actor,
                PlanCreateRequest(
                    order_id=command.order_id,
                    plan_name=command.plan_name,
                    note=command.note,
                    planned_finish_date=command.planned_finish_date,
                    layouts=command.layouts,
                    publish=command.publish,
                ),
            )
        if command.plan_id is None:
            return _missing("plan_id", command.action)
        if command.action == "edit":
            return self.reconcile(actor, command.plan_id, command.layouts)
        if command.action == "publish":
            return self.publish_plan(actor, command.plan_id)
        if command.action == "freeze":
            return self.freeze_plan(actor, command.plan_id)
        return self.delete_plan(actor, command.plan_id)


def _missing(field: str, action: str) -> Outcome:
    return ValidationFailed(errors=[f"{field} is required for '{action}'"])


__all__ = ["EDIT_PERMISSIONS", "NEEDS_EDITING_MESSAGE", "PlanningService"]


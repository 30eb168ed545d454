"""Plan status state machine.

``pending -> in_progress -> completed -> frozen``.  Only ``publish`` and
``freeze`` are user actions; ``complete`` is signalled by the store once every
task is cut.  Structural edits are allowed only while a plan is pending and
deletion is allowed from any state.  Nothing here transitions automatically.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable

from cutrix.core.permissions import Permission
from cutrix.domain import Layout, PlanStatus, Task


class PlanAction(str, Enum):
    EDIT = "edit"
    PUBLISH = "publish"
    COMPLETE = "complete"
    FREEZE = "freeze"
    DELETE = "delete"


# action -> (allowed source states, target state or None when status is kept)
TRANSITIONS: dict[PlanAction, tuple[frozenset[PlanStatus], PlanStatus | None]] = {
    PlanAction.EDIT: (frozenset({PlanStatus.PENDING}), None),
    PlanAction.PUBLISH: (frozenset({PlanStatus.PENDING}), PlanStatus.IN_PROGRESS),
    PlanAction.COMPLETE: (frozenset({PlanStatus.IN_PROGRESS}), PlanStatus.COMPLETED),
    PlanAction.FREEZE: (frozenset({PlanStatus.COMPLETED}), PlanStatus.FROZEN),
    PlanAction.DELETE: (frozenset(PlanStatus), None),
}

ACTION_PERMISSIONS: dict[PlanAction, Permission | None] = {
    PlanAction.EDIT: Permission.PLAN_UPDATE,
    PlanAction.PUBLISH: Permission.PLAN_PUBLISH,
    PlanAction.COMPLETE: None,
    PlanAction.FREEZE: Permission.PLAN_FREEZE,
    PlanAction.DELETE: Permission.PLAN_DELETE,
}


class InvalidTransitionError(Exception):
    def __init__(
        self,
        reason: str,
        *,
        action: PlanAction,
        status: PlanStatus | None = None,
        redirect: str | None = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.action = action
        self.status = status
        self.redirect = redirect


def validate_transition(status: PlanStatus | str, action: PlanAction | str) -> PlanStatus | None:
    """Return the target status of ``action`` or raise if it is not allowed now."""

    current = PlanStatus(status)
    requested = PlanAction(action)
    sources, target = TRANSITIONS[requested]
    if current not in sources:
        allowed_from = ", ".join(sorted(state.value for state in sources))
        raise InvalidTransitionError(
            f"cannot {requested.value} a plan in status '{current.value}' (allowed from: {allowed_from})",
            action=requested,
            status=current,
            redirect="plans" if requested is PlanAction.EDIT else None,
        )
    return target


def is_publishable(layouts: Iterable[Layout], tasks: Iterable[Task]) -> bool:
    """At least one task with layers drawn from a layout with a positive ratio sum."""

    cutting_layouts = {layout.layout_id for layout in layouts if layout.ratio_sum > 0}
    return any(task.planned_layers > 0 and task.layout_id in cutting_layouts for task in tasks)


def require_publishable(layouts: Iterable[Layout], tasks: Iterable[Task]) -> None:
    if not is_publishable(layouts, tasks):
        raise InvalidTransitionError(
            "plan has no task with planned layers on a layout with a positive ratio sum",
            action=PlanAction.PUBLISH,
            status=PlanStatus.PENDING,
        )

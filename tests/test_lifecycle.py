from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from cutrix.core.lifecycle import (
    InvalidTransitionError,
    PlanAction,
    is_publishable,
    validate_transition,
)
from cutrix.domain import Layout, PlanStatus, Task


@pytest.mark.parametrize(
    ("status", "action", "target"),
    [
        (PlanStatus.PENDING, PlanAction.PUBLISH, PlanStatus.IN_PROGRESS),
        (PlanStatus.IN_PROGRESS, PlanAction.COMPLETE, PlanStatus.COMPLETED),
        (PlanStatus.COMPLETED, PlanAction.FREEZE, PlanStatus.FROZEN),
        (PlanStatus.PENDING, PlanAction.EDIT, None),
        (PlanStatus.FROZEN, PlanAction.DELETE, None),
    ],
)
def test_allowed_transitions(status, action, target):
    assert validate_transition(status, action) == target


def test_edit_outside_pending_redirects_to_plan_list():
    with pytest.raises(InvalidTransitionError) as excinfo:
        validate_transition("in_progress", "edit")
    assert excinfo.value.redirect == "plans"
    assert excinfo.value.status is PlanStatus.IN_PROGRESS


@pytest.mark.parametrize(
    ("status", "action"),
    [
        (PlanStatus.IN_PROGRESS, PlanAction.PUBLISH),
        (PlanStatus.PENDING, PlanAction.FREEZE),
        (PlanStatus.FROZEN, PlanAction.PUBLISH),
        (PlanStatus.COMPLETED, PlanAction.EDIT),
        (PlanStatus.PENDING, PlanAction.COMPLETE),
    ],
)
def test_refused_transitions(status, action):
    with pytest.raises(InvalidTransitionError):
        validate_transition(status, action)


def test_publishable_needs_layers_on_a_cutting_layout():
    cutting = Layout(layout_id=1, plan_id=1, layout_name="A", ratios={"S": Decimal("1")})
    blank = Layout(layout_id=2, plan_id=1, layout_name="B")
    assert is_publishable([cutting], [Task(task_id=1, layout_id=1, color="red", planned_layers=3)])
    assert not is_publishable([blank], [Task(task_id=1, layout_id=2, color="red", planned_layers=3)])
    assert not is_publishable([cutting], [])

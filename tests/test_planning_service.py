from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from cutrix.application import PlanningService
from cutrix.application.planning import NEEDS_EDITING_MESSAGE
from cutrix.core.schema import LayoutSpec, PlanCommand, PlanCreateRequest
from cutrix.domain import (
    Actor,
    InvalidTransition,
    NotFound,
    OrderItem,
    PartialFailure,
    PermissionDenied,
    PlanStatus,
    Role,
    Success,
    ValidationFailed,
)
from cutrix.infrastructure import InMemoryProductionStore

ADMIN = Actor(user_id=1, role=Role.ADMIN)
PATTERN_MAKER = Actor(user_id=3, role=Role.PATTERN_MAKER)
WORKER = Actor(user_id=4, role=Role.WORKER)


class RecordingStore:
    """Records the name of every store call before delegating."""

    def __init__(self, inner):
        self._inner = inner
        self.calls: list[str] = []

    def __getattr__(self, name):
        target = getattr(self._inner, name)

        def wrapped(*args, **kwargs):
            self.calls.append(name)
            return target(*args, **kwargs)

        return wrapped


WRITE_CALLS = {
    "create_layout",
    "rename_layout",
    "update_layout_note",
    "set_ratios",
    "delete_layout",
    "create_task",
    "delete_task",
    "set_plan_status",
    "delete_plan",
}


@pytest.fixture()
def store():
    store = InMemoryProductionStore()
    store.create_order(
        order_number="PO-7",
        style_number="ST-1",
        items=[
            OrderItem(color="red", size="S", quantity=10),
            OrderItem(color="red", size="M", quantity=10),
            OrderItem(color="blue", size="S", quantity=5),
        ],
    )
    return store


@pytest.fixture()
def service(store):
    return PlanningService(store)


def _layouts():
    return [LayoutSpec(name="A", colors=["red"], planned_layers=5, ratios={"S": 1, "M": 1})]


def _create(service, **overrides):
    payload = {"order_id": 1, "layouts": _layouts()}
    payload.update(overrides)
    return service.create_plan(ADMIN, PlanCreateRequest(**payload))


def test_create_plan_defaults_name_and_offers_publish(service, store):
    outcome = _create(service)

    assert isinstance(outcome, Success)
    assert outcome.data["plan"]["plan_name"] == "PO-7 production plan"
    assert outcome.data["needs_editing"] is False
    assert outcome.follow_ups == ["publish"]
    assert outcome.report.tasks_created == 1
    assert store.get_plan(1).status is PlanStatus.PENDING


def test_create_plan_without_layouts_needs_editing(service):
    outcome = service.create_plan(PATTERN_MAKER, PlanCreateRequest(order_id=1))
    assert isinstance(outcome, Success)
    assert outcome.data["needs_editing"] is True
    assert outcome.follow_ups == []


def test_pattern_maker_is_not_offered_publish(service):
    outcome = service.create_plan(PATTERN_MAKER, PlanCreateRequest(order_id=1, layouts=_layouts()))
    assert outcome.ok
    assert outcome.follow_ups == []


def test_create_and_publish_in_one_step(service, store):
    outcome = _create(service, publish=True)
    assert outcome.data["published"] is True
    plan = store.get_plan(1)
    assert plan.status is PlanStatus.IN_PROGRESS
    assert plan.planned_publish_date is not None


def test_skipped_publish_is_explained(service, store):
    outcome = _create(service, layouts=[], publish=True)

    assert outcome.ok
    assert outcome.data["published"] is False
    assert outcome.message.startswith(NEEDS_EDITING_MESSAGE)
    assert "not published because no cutting tasks were created" in outcome.message
    assert store.get_plan(1).status is PlanStatus.PENDING


def test_one_plan_per_order(service):
    assert _create(service).ok
    second = _create(service)
    assert isinstance(second, ValidationFailed)
    assert "already has a plan" in second.errors[0]


def test_create_plan_reports_partial_failure(service):
    outcome = _create(service, layouts=[LayoutSpec(colors=[], planned_layers=1, ratios={"S": 1})] + _layouts())
    assert isinstance(outcome, PartialFailure)
    assert outcome.report.layouts_created == 1
    assert len(outcome.report.warnings) == 1


def test_worker_cannot_create_plans(service, store):
    outcome = service.create_plan(WORKER, PlanCreateRequest(order_id=1, layouts=_layouts()))
    assert isinstance(outcome, PermissionDenied)
    assert outcome.permission == "plan:create"
    assert store.list_plans() == []


def test_reconcile_refused_outside_pending_without_writes(store):
    service = PlanningService(store)
    _create(service, publish=True)

    recording = RecordingStore(store)
    outcome = PlanningService(recording).reconcile(ADMIN, 1, _layouts())

    assert isinstance(outcome, InvalidTransition)
    assert outcome.redirect == "plans"
    assert outcome.current_status == "in_progress"
    assert not WRITE_CALLS.intersection(recording.calls)


def test_permission_refusal_happens_before_any_store_call(store):
    recording = RecordingStore(store)
    outcome = PlanningService(recording).reconcile(WORKER, 1, _layouts())
    assert isinstance(outcome, PermissionDenied)
    assert recording.calls == []


def test_reconcile_unknown_plan(service):
    assert isinstance(service.reconcile(ADMIN, 42, _layouts()), NotFound)


def test_publish_requires_cutting_content(service):
    _create(service, layouts=[])
    outcome = service.publish_plan(ADMIN, 1)
    assert isinstance(outcome, InvalidTransition)
    assert outcome.action == "publish"


def test_pattern_maker_cannot_publish(service):
    _create(service)
    outcome = service.publish_plan(PATTERN_MAKER, 1)
    assert isinstance(outcome, PermissionDenied)


def test_full_lifecycle_through_freeze(service, store):
    _create(service, publish=True)
    assert isinstance(service.freeze_plan(ADMIN, 1), InvalidTransition)

    task = store.list_tasks()[0]
    store.create_log(task.task_id, task.planned_layers, worker_name="zhao")
    assert store.get_plan(1).status is PlanStatus.COMPLETED

    frozen = service.freeze_plan(ADMIN, 1)
    assert isinstance(frozen, Success)
    assert frozen.data["plan"]["status"] is PlanStatus.FROZEN
    assert isinstance(service.publish_plan(ADMIN, 1), InvalidTransition)


def test_delete_plan_cascades(service, store):
    outcome = _create(service)
    layout_id = outcome.report.created_layout_ids[0]

    assert service.delete_plan(ADMIN, 1).ok
    assert store.list_layouts(1) == []
    assert store.list_tasks(layout_id) == []
    assert isinstance(service.get_plan_detail(ADMIN, 1), NotFound)


def test_validate_transition(service):
    _create(service)
    assert service.validate_transition(ADMIN, 1, "publish").data["target"] == "in_progress"
    assert isinstance(service.validate_transition(ADMIN, 1, "freeze"), InvalidTransition)
    # completion is driven by production logs only
    assert isinstance(service.validate_transition(ADMIN, 1, "complete"), PermissionDenied)


def test_matrices_for_saved_plan(service):
    _create(service)
    outcome = service.build_matrices(ADMIN, 1)
    matrix = outcome.data["matrix"]
    cells = {(cell["color"], cell["size"]): cell for cell in matrix["cells"]}
    assert cells[("red", "S")]["classification"] == "deficit"
    assert cells[("blue", "S")]["classification"] == "unconstrained"
    assert outcome.data["plan_ids"] == [1]


def test_matrix_preview_and_worker_refusal(service):
    preview = service.preview_matrices(
        ADMIN, 1, [LayoutSpec(colors=["red", "blue"], planned_layers=10, ratios={"S": 1, "M": 1})]
    )
    cells = {(cell["color"], cell["size"]): cell["classification"] for cell in preview.data["matrix"]["cells"]}
    assert cells[("red", "S")] == "exact"
    assert cells[("blue", "S")] == "surplus"
    assert isinstance(service.build_matrices(WORKER, 1), PermissionDenied)


def test_plan_detail_reports_progress(service, store):
    _create(service, publish=True)
    task = store.list_tasks()[0]
    store.create_log(task.task_id, 2, worker_name="zhao")

    detail = service.get_plan_detail(ADMIN, 1).data
    assert detail["progress"] == {"total_planned": 5, "total_completed": 2, "percent": 40.0}
    assert detail["layouts"][0]["progress"] == 40.0


def test_orchestrate_dispatches_commands(service, store):
    created = service.orchestrate(ADMIN, PlanCommand(action="create", order_id=1, layouts=_layouts()))
    assert created.ok

    edited = service.orchestrate(
        ADMIN,
        PlanCommand(
            action="edit",
            plan_id=1,
            layouts=[LayoutSpec(layout_id=1, colors=["red", "blue"], planned_layers=5, ratios={"S": 1, "M": 1})],
        ),
    )
    assert edited.report.tasks_created == 1

    assert service.orchestrate(ADMIN, PlanCommand(action="publish", plan_id=1)).ok
    assert isinstance(service.orchestrate(ADMIN, PlanCommand(action="freeze")), ValidationFailed)
    assert service.orchestrate(ADMIN, PlanCommand(action="delete", plan_id=1)).ok
    assert store.list_plans() == []


def test_update_plan_note(service, store):
    _create(service)
    assert service.update_plan_note(PATTERN_MAKER, 1, "rush").ok
    assert store.get_plan(1).note == "rush"

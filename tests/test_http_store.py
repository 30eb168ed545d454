from __future__ import annotations

import json
import sys
from decimal import Decimal
from pathlib import Path

import httpx
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from cutrix.domain import PlanStatus, Role
from cutrix.infrastructure import (
    ConflictError,
    HttpProductionStore,
    NotFoundError,
    PersistenceError,
    StoreValidationError,
)


def _store(handler) -> HttpProductionStore:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpProductionStore("http://prod.local/api/v1", token="t0ken", http_client=client)


def test_requires_scheme():
    with pytest.raises(ValueError):
        HttpProductionStore("prod.local/api")


def test_get_order_reads_full_payload_and_sends_token():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers.get("Authorization")
        return httpx.Response(
            200,
            json={
                "order": {"order_id": 3, "order_number": "PO-3", "style_number": "ST", "order_start_date": "2026-03-01"},
                "items": [{"color": "red", "size": "S", "quantity": 4, "item_id": 9, "order_id": 3}],
            },
        )

    order = _store(handler).get_order(3)

    assert captured["url"] == "http://prod.local/api/v1/orders/3/full"
    assert captured["auth"] == "Bearer t0ken"
    assert order.order_number == "PO-3"
    assert order.items[0].quantity == 4
    assert order.order_start_date.isoformat() == "2026-03-01"


def test_envelope_is_unwrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"success": True, "data": {"plan_id": 5, "order_id": 3, "plan_name": "P", "status": "in_progress"}},
        )

    plan = _store(handler).get_plan(5)
    assert plan.status is PlanStatus.IN_PROGRESS


def test_failed_envelope_is_a_validation_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "error": "bad ratios"})

    with pytest.raises(StoreValidationError, match="bad ratios"):
        _store(handler).set_ratios(1, {"S": Decimal("1")})


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (404, NotFoundError),
        (400, StoreValidationError),
        (422, StoreValidationError),
        (409, ConflictError),
        (500, PersistenceError),
    ],
)
def test_status_codes_map_to_typed_errors(status, error):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": "nope"})

    with pytest.raises(error) as excinfo:
        _store(handler).delete_layout(7)
    assert excinfo.value.status_code == status


def test_transport_failure_is_persistence_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PersistenceError) as excinfo:
        _store(handler).list_plans()
    assert excinfo.value.kind == "unavailable"


def test_list_layouts_batches_ratio_lookup():
    seen: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        if request.url.path.endswith("/plans/2/layouts"):
            return httpx.Response(200, json=[{"layout_id": 11, "plan_id": 2, "layout_name": "A"}])
        body = json.loads(request.content)
        assert body == {"layout_ids": [11]}
        return httpx.Response(200, json={"11": [{"size": "S", "ratio": 1}, {"size": "M", "ratio": 0.5}]})

    layouts = _store(handler).list_layouts(2)

    assert seen == [("GET", "/api/v1/plans/2/layouts"), ("POST", "/api/v1/layouts/ratios/batch")]
    assert layouts[0].ratios == {"S": Decimal("1"), "M": Decimal("0.5")}


def test_publish_posts_to_action_endpoint():
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(f"{request.method} {request.url.path}")
        return httpx.Response(200, json={"plan_id": 4, "order_id": 1, "plan_name": "P", "status": "in_progress"})

    plan = _store(handler).set_plan_status(4, PlanStatus.IN_PROGRESS)
    assert seen == ["POST /api/v1/plans/4/publish", "GET /api/v1/plans/4"]
    assert plan.status is PlanStatus.IN_PROGRESS

    with pytest.raises(StoreValidationError):
        _store(handler).set_plan_status(4, PlanStatus.COMPLETED)


def test_users_accept_pascal_case_payloads():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"UserID": 1, "Name": "root", "Role": "ADMIN", "IsActive": True}])

    users = _store(handler).list_users()
    assert users[0].role is Role.ADMIN
    assert users[0].name == "root"


def test_reset_is_refused():
    with pytest.raises(PersistenceError):
        _store(lambda request: httpx.Response(200)).reset()


def test_reconcile_writes_hit_layout_and_task_endpoints():
    seen: list[tuple[str, str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        seen.append((request.method, request.url.path, body))
        if request.url.path.endswith("/layouts"):
            return httpx.Response(200, json={"layout_id": 21, "plan_id": 2, "layout_name": "A"})
        if request.method == "POST" and request.url.path.endswith("/tasks"):
            return httpx.Response(200, json={"task_id": 31, "layout_id": 21, "color": "red", "planned_layers": 6})
        return httpx.Response(200, json={"success": True})

    store = _store(handler)
    layout = store.create_layout(2, "A", None)
    store.set_ratios(layout.layout_id, {"S": Decimal("1"), "M": Decimal("0.5")})
    task = store.create_task(layout.layout_id, "red", 6)
    store.delete_task(task.task_id)

    assert layout.layout_id == 21
    assert task.planned_layers == 6
    assert seen == [
        ("POST", "/api/v1/layouts", {"plan_id": 2, "layout_name": "A", "note": None}),
        ("POST", "/api/v1/layouts/21/ratios", {"ratios": {"S": 1.0, "M": 0.5}}),
        ("POST", "/api/v1/tasks", {"layout_id": 21, "color": "red", "planned_layers": 6}),
        ("DELETE", "/api/v1/tasks/31", None),
    ]


def test_layer_change_is_replayed_as_delete_and_create():
    from cutrix.core.reconcile import reconcile
    from cutrix.core.schema import LayoutSpec

    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        seen.append(f"{request.method} {path}")
        if path.endswith("/plans/2/layouts"):
            return httpx.Response(200, json=[{"layout_id": 21, "plan_id": 2, "layout_name": "A"}])
        if path.endswith("/layouts/ratios/batch"):
            return httpx.Response(200, json={"21": [{"size": "S", "ratio": 1}]})
        if request.method == "GET" and path.endswith("/layouts/21/tasks"):
            return httpx.Response(200, json=[{"task_id": 31, "layout_id": 21, "color": "red", "planned_layers": 6}])
        if request.method == "POST" and path.endswith("/tasks"):
            return httpx.Response(200, json={"task_id": 32, "layout_id": 21, "color": "red", "planned_layers": 9})
        if request.method == "PATCH" and "/tasks/" in path:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json={"success": True})

    report = reconcile(
        _store(handler), 2, [LayoutSpec(layout_id=21, name="A", colors=["red"], planned_layers=9, ratios={"S": 1})]
    )

    assert report.warnings == []
    assert report.tasks_updated == 1
    assert "DELETE /api/v1/tasks/31" in seen
    assert "POST /api/v1/tasks" in seen
    assert not any(call.startswith("PATCH /api/v1/tasks") for call in seen)

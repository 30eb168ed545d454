"""Production store backed by the remote production REST service."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

import httpx
from loguru import logger

from cutrix.domain import (
    Layout,
    Order,
    OrderItem,
    Plan,
    PlanStatus,
    ProductionLog,
    Role,
    Task,
    TaskStatus,
    User,
)

from .errors import ConflictError, NotFoundError, PersistenceError, StoreValidationError


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _pick(payload: dict[str, Any], *keys: str) -> Any:
    """Read a field that the service may send in snake or Pascal case."""

    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


class HttpProductionStore:
    """Client for the production service's JSON API."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must include scheme and host")
        self._base_url = base_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._headers = headers
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _request(self, method: str, path: str, *, json: Any = None, params: dict[str, Any] | None = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._client.request(method, url, json=json, params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.error("{} {} failed: {}", method, path, exc)
            raise PersistenceError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error("{} {} returned {}: {}", method, path, response.status_code, message)
            if response.status_code == 404:
                raise NotFoundError(message, status_code=404)
            if response.status_code in (400, 422):
                raise StoreValidationError(message, status_code=response.status_code)
            if response.status_code == 409:
                raise ConflictError(message, status_code=409)
            raise PersistenceError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        return self._unwrap(response.json(), method, path)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("error") or body.get("message") or body.get("detail") or f"HTTP {response.status_code}")
        return f"HTTP {response.status_code}"

    @staticmethod
    def _unwrap(body: Any, method: str, path: str) -> Any:
        # some endpoints answer with {success, message, data, error}
        if isinstance(body, dict) and "success" in body and ("data" in body or "error" in body):
            if not body.get("success"):
                raise StoreValidationError(str(body.get("error") or body.get("message") or f"{method} {path} failed"))
            return body.get("data")
        return body

    @staticmethod
    def _items(body: Any) -> list[dict[str, Any]]:
        return [row for row in body if isinstance(row, dict)] if isinstance(body, list) else []

    # ------------------------------------------------------------------
    # payload mapping
    # ------------------------------------------------------------------
    @staticmethod
    def _order_item(payload: dict[str, Any]) -> OrderItem:
        return OrderItem(
            color=str(payload["color"]),
            size=str(payload["size"]),
            quantity=int(payload["quantity"]),
            item_id=payload.get("item_id"),
            order_id=payload.get("order_id"),
        )

    def _order(self, payload: dict[str, Any], items: list[dict[str, Any]] | None = None) -> Order:
        return Order(
            order_id=int(payload["order_id"]),
            order_number=str(payload.get("order_number") or ""),
            style_number=str(payload.get("style_number") or ""),
            customer_name=payload.get("customer_name"),
            order_start_date=_parse_date(payload.get("order_start_date")),
            order_finish_date=_parse_date(payload.get("order_finish_date")),
            note=payload.get("note"),
            items=[self._order_item(row) for row in (items or [])],
            created_at=_parse_datetime(payload.get("created_at")),
            updated_at=_parse_datetime(payload.get("updated_at")),
        )

    @staticmethod
    def _plan(payload: dict[str, Any]) -> Plan:
        return Plan(
            plan_id=int(payload["plan_id"]),
            plan_name=str(payload.get("plan_name") or ""),
            order_id=int(payload["order_id"]),
            status=PlanStatus(payload.get("status") or PlanStatus.PENDING.value),
            note=payload.get("note"),
            planned_publish_date=_parse_datetime(payload.get("planned_publish_date")),
            planned_finish_date=_parse_date(payload.get("planned_finish_date")),
        )

    @staticmethod
    def _layout(payload: dict[str, Any], ratios: list[dict[str, Any]] | None = None) -> Layout:
        return Layout(
            layout_id=int(payload["layout_id"]),
            plan_id=int(payload["plan_id"]),
            layout_name=str(payload.get("layout_name") or ""),
            note=payload.get("note"),
            ratios={str(row["size"]): Decimal(str(row["ratio"])) for row in (ratios or [])},
        )

    @staticmethod
    def _task(payload: dict[str, Any]) -> Task:
        return Task(
            task_id=int(payload["task_id"]),
            layout_id=int(payload["layout_id"]),
            color=str(payload["color"]),
            planned_layers=int(payload["planned_layers"]),
            completed_layers=int(payload.get("completed_layers") or 0),
            status=TaskStatus(payload.get("status") or TaskStatus.PENDING.value),
        )

    @staticmethod
    def _log(payload: dict[str, Any]) -> ProductionLog:
        return ProductionLog(
            log_id=int(payload["log_id"]),
            task_id=int(payload["task_id"]),
            layers_completed=int(payload["layers_completed"]),
            log_time=_parse_datetime(payload.get("log_time")) or datetime.min,
            worker_id=payload.get("worker_id"),
            worker_name=payload.get("worker_name"),
            note=payload.get("note"),
            voided=bool(payload.get("voided")),
            void_reason=payload.get("void_reason"),
            voided_at=_parse_datetime(payload.get("voided_at")),
            voided_by=payload.get("voided_by"),
        )

    @staticmethod
    def _user(payload: dict[str, Any]) -> User:
        active = _pick(payload, "is_active", "IsActive")
        return User(
            user_id=int(_pick(payload, "user_id", "UserID")),
            name=str(_pick(payload, "name", "Name") or ""),
            role=Role(str(_pick(payload, "role", "Role")).lower()),
            is_active=True if active is None else bool(active),
            user_group=_pick(payload, "user_group", "UserGroup"),
            note=_pick(payload, "note", "Note"),
        )

    # ------------------------------------------------------------------
    # orders
    # ------------------------------------------------------------------
    def list_orders(self) -> list[Order]:
        return [self._order(row) for row in self._items(self._request("GET", "/orders"))]

    def get_order(self, order_id: int) -> Order:
        body = self._request("GET", f"/orders/{order_id}/full")
        if not isinstance(body, dict) or "order" not in body:
            raise NotFoundError(f"order {order_id} not found", status_code=404)
        return self._order(body["order"], self._items(body.get("items")))

    def create_order(
        self,
        *,
        order_number: str,
        style_number: str,
        items: list[OrderItem],
        customer_name: str | None = None,
        order_start_date: date | None = None,
        order_finish_date: date | None = None,
        note: str | None = None,
    ) -> Order:
        payload = {
            "order_number": order_number,
            "style_number": style_number,
            "customer_name": customer_name,
            "order_start_date": order_start_date.isoformat() if order_start_date else None,
            "order_finish_date": order_finish_date.isoformat() if order_finish_date else None,
            "note": note,
            "items": [{"color": item.color, "size": item.size, "quantity": item.quantity} for item in items],
        }
        body = self._request("POST", "/orders", json=payload)
        return self.get_order(int(body["order_id"]))

    def update_order_note(self, order_id: int, note: str | None) -> None:
        self._request("PATCH", f"/orders/{order_id}/note", json={"note": note})

    def update_order_finish_date(self, order_id: int, finish_date: date | None) -> None:
        value = finish_date.isoformat() if finish_date else None
        self._request("PATCH", f"/orders/{order_id}/finish-date", json={"order_finish_date": value})

    def delete_order(self, order_id: int) -> None:
        self._request("DELETE", f"/orders/{order_id}")

    # ------------------------------------------------------------------
    # plans
    # ------------------------------------------------------------------
    def list_plans(self, order_id: int | None = None) -> list[Plan]:
        path = "/plans" if order_id is None else f"/orders/{order_id}/plans"
        return [self._plan(row) for row in self._items(self._request("GET", path))]

    def get_plan(self, plan_id: int) -> Plan:
        body = self._request("GET", f"/plans/{plan_id}")
        if not isinstance(body, dict):
            raise NotFoundError(f"plan {plan_id} not found", status_code=404)
        return self._plan(body)

    def create_plan(
        self,
        *,
        order_id: int,
        plan_name: str,
        note: str | None = None,
        planned_finish_date: date | None = None,
    ) -> Plan:
        payload = {
            "plan_name": plan_name,
            "order_id": order_id,
            "note": note,
            "planned_finish_date": planned_finish_date.isoformat() if planned_finish_date else None,
        }
        return self._plan(self._request("POST", "/plans", json=payload))

    def set_plan_status(self, plan_id: int, status: PlanStatus, *, published_at: datetime | None = None) -> Plan:
        # the service stamps the publish date itself
        status = PlanStatus(status)
        if status is PlanStatus.IN_PROGRESS:
            self._request("POST", f"/plans/{plan_id}/publish", json={})
        elif status is PlanStatus.FROZEN:
            self._request("POST", f"/plans/{plan_id}/freeze", json={})
        else:
            raise StoreValidationError(f"the production service does not accept status '{status.value}'")
        return self.get_plan(plan_id)

    def update_plan_note(self, plan_id: int, note: str | None) -> None:
        self._request("PATCH", f"/plans/{plan_id}/note", json={"note": note})

    def delete_plan(self, plan_id: int) -> None:
        self._request("DELETE", f"/plans/{plan_id}")

    # ------------------------------------------------------------------
    # layouts
    # ------------------------------------------------------------------
    def list_layouts(self, plan_id: int) -> list[Layout]:
        rows = self._items(self._request("GET", f"/plans/{plan_id}/layouts"))
        if not rows:
            return []
        layout_ids = [int(row["layout_id"]) for row in rows]
        batch = self._request("POST", "/layouts/ratios/batch", json={"layout_ids": layout_ids}) or {}
        return [self._layout(row, self._items(batch.get(str(row["layout_id"])))) for row in rows]

    def get_layout(self, layout_id: int) -> Layout:
        body = self._request("GET", f"/layouts/{layout_id}")
        if not isinstance(body, dict):
            raise NotFoundError(f"layout {layout_id} not found", status_code=404)
        ratios = self._items(self._request("GET", f"/layouts/{layout_id}/ratios"))
        return self._layout(body, ratios)

    def create_layout(self, plan_id: int, layout_name: str, note: str | None = None) -> Layout:
        body = self._request("POST", "/layouts", json={"plan_id": plan_id, "layout_name": layout_name, "note": note})
        return self._layout(body)

    def rename_layout(self, layout_id: int, layout_name: str) -> None:
        self._request("PATCH", f"/layouts/{layout_id}/name", json={"name": layout_name})

    def update_layout_note(self, layout_id: int, note: str | None) -> None:
        self._request("PATCH", f"/layouts/{layout_id}/note", json={"note": note})

    def set_ratios(self, layout_id: int, ratios: dict[str, Decimal]) -> None:
        payload = {size: float(ratio) for size, ratio in ratios.items()}
        self._request("POST", f"/layouts/{layout_id}/ratios", json={"ratios": payload})

    def delete_layout(self, layout_id: int) -> None:
        self._request("DELETE", f"/layouts/{layout_id}")

    # ------------------------------------------------------------------
    # tasks
    # ------------------------------------------------------------------
    def list_tasks(self, layout_id: int | None = None) -> list[Task]:
        path = "/tasks" if layout_id is None else f"/layouts/{layout_id}/tasks"
        return [self._task(row) for row in self._items(self._request("GET", path))]

    def get_task(self, task_id: int) -> Task:
        return self._task(self._request("GET", f"/tasks/{task_id}"))

    def create_task(self, layout_id: int, color: str, planned_layers: int) -> Task:
        payload = {"layout_id": layout_id, "color": color, "planned_layers": planned_layers}
        return self._task(self._request("POST", "/tasks", json=payload))

    def delete_task(self, task_id: int) -> None:
        self._request("DELETE", f"/tasks/{task_id}")

    # ------------------------------------------------------------------
    # logs
    # ------------------------------------------------------------------
    def list_logs(self, task_id: int) -> list[ProductionLog]:
        return [self._log(row) for row in self._items(self._request("GET", f"/tasks/{task_id}/logs"))]

    def get_log(self, log_id: int) -> ProductionLog:
        return self._log(self._request("GET", f"/logs/{log_id}"))

    def create_log(
        self,
        task_id: int,
        layers_completed: int,
        *,
        worker_id: int | None = None,
        worker_name: str | None = None,
        note: str | None = None,
    ) -> ProductionLog:
        payload = {
            "task_id": task_id,
            "layers_completed": layers_completed,
            "worker_id": worker_id,
            "worker_name": worker_name,
            "note": note,
        }
        return self._log(self._request("POST", "/logs", json=payload))

    def void_log(self, log_id: int, void_reason: str, *, voided_by: int | None = None) -> ProductionLog:
        self._request("PATCH", f"/logs/{log_id}", json={"void_reason": void_reason})
        return self.get_log(log_id)

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------
    def list_users(self) -> list[User]:
        return [self._user(row) for row in self._items(self._request("GET", "/users"))]

    def get_user(self, user_id: int) -> User:
        return self._user(self._request("GET", f"/users/{user_id}"))

    def create_user(
        self,
        *,
        name: str,
        password: str,
        role: Role,
        user_group: str | None = None,
        note: str | None = None,
    ) -> User:
        payload = {
            "name": name,
            "password": password,
            "role": Role(role).value,
            "user_group": user_group,
            "note": note,
        }
        return self._user(self._request("POST", "/users", json=payload))

    def update_user_profile(self, user_id: int, **fields: str | None) -> User:
        payload = {key: fields[key] for key in ("name", "user_group", "note") if key in fields}
        return self._user(self._request("PATCH", f"/users/{user_id}/profile", json=payload))

    def assign_role(self, user_id: int, role: Role) -> None:
        self._request("PUT", f"/users/{user_id}/role", json={"role": Role(role).value})

    def set_active(self, user_id: int, active: bool) -> None:
        self._request("PUT", f"/users/{user_id}/active", json={"active": active})

    def set_password(self, user_id: int, password: str) -> None:
        self._request("PUT", f"/users/{user_id}/password", json={"new_password": password})

    def delete_user(self, user_id: int) -> None:
        self._request("DELETE", f"/users/{user_id}")

    def reset(self) -> None:
        raise PersistenceError("the remote production store cannot be reset")

    def close(self) -> None:  # pragma: no cover - best effort cleanup
        if self._owns_client:
            self._client.close()


__all__ = ["HttpProductionStore"]

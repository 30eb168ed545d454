from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class LayoutSpec(BaseModel):
    """Desired state of one layout and its tasks.

    Parsing is deliberately lenient: structural problems (no colors, no
    layers, empty ratio set) are reported per spec by the reconciliation
    engine instead of failing the whole request.
    """

    layout_id: int | None = None
    name: str | None = None
    note: str | None = None
    colors: list[str] = Field(default_factory=list)
    planned_layers: int = 0
    ratios: dict[str, Decimal] = Field(default_factory=dict)

    @field_validator("colors", mode="before")
    @classmethod
    def _null_colors(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("planned_layers", mode="before")
    @classmethod
    def _null_layers(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("ratios", mode="before")
    @classmethod
    def _drop_missing_ratios(cls, value: object) -> object:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(size): ratio for size, ratio in value.items() if ratio is not None}
        return value

    def label(self, index: int) -> str:
        if self.layout_id is not None:
            return f"layout {self.layout_id}"
        if self.name:
            return f"new layout '{self.name}' (#{index + 1})"
        return f"new layout #{index + 1}"


class OrderItemInput(BaseModel):
    color: str
    size: str
    quantity: int = Field(ge=1)


class OrderCreateRequest(BaseModel):
    order_number: str = Field(min_length=1)
    style_number: str = Field(min_length=1)
    customer_name: str | None = None
    order_start_date: date | None = None
    order_finish_date: date | None = None
    note: str | None = None
    items: list[OrderItemInput] = Field(min_length=1)


class PlanCreateRequest(BaseModel):
    order_id: int
    plan_name: str | None = None
    note: str | None = None
    planned_finish_date: date | None = None
    layouts: list[LayoutSpec] = Field(default_factory=list)
    publish: bool = False


class PlanCommand(BaseModel):
    """A user intent routed through :meth:`PlanningService.orchestrate`."""

    action: Literal["create", "edit", "publish", "freeze", "delete"]
    plan_id: int | None = None
    order_id: int | None = None
    plan_name: str | None = None
    note: str | None = None
    planned_finish_date: date | None = None
    layouts: list[LayoutSpec] = Field(default_factory=list)
    publish: bool = False


class UserCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: str
    user_group: str | None = None
    note: str | None = None


class UserProfileUpdate(BaseModel):
    name: str | None = None
    user_group: str | None = None
    note: str | None = None


class LogCreateRequest(BaseModel):
    task_id: int
    layers_completed: int
    note: str | None = None


class VoidLogRequest(BaseModel):
    void_reason: str

"""Demand versus supply matrices for a production order.

Demand comes straight from the order line items.  Supply is what the
scheduled cutting layers would yield: ``planned_layers * ratio`` for every
size a layout cuts.  Quantities stay as :class:`~decimal.Decimal` and are
never rounded here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Literal

from cutrix.domain import Layout, OrderItem, Task

if TYPE_CHECKING:  # pragma: no cover
    from cutrix.core.schema import LayoutSpec

Matrix = dict[str, dict[str, Decimal]]
Classification = Literal["deficit", "exact", "surplus", "unconstrained"]

ZERO = Decimal("0")


@dataclass(slots=True)
class MatrixCell:
    color: str
    size: str
    demand: Decimal
    supply: Decimal
    surplus: Decimal
    classification: Classification


@dataclass(slots=True)
class MatrixComparison:
    colors: list[str]
    sizes: list[str]
    demand: Matrix
    supply: Matrix
    cells: list[MatrixCell] = field(default_factory=list)

    def cell(self, color: str, size: str) -> MatrixCell:
        for item in self.cells:
            if item.color == color and item.size == size:
                return item
        raise KeyError((color, size))

    def totals(self) -> dict[str, dict[str, Decimal]]:
        totals: dict[str, dict[str, Decimal]] = {}
        for item in self.cells:
            entry = totals.setdefault(item.color, {"demand": ZERO, "supply": ZERO})
            entry["demand"] += item.demand
            entry["supply"] += item.supply
        return totals

    def to_dict(self) -> dict[str, object]:
        return {
            "colors": list(self.colors),
            "sizes": list(self.sizes),
            "demand": self.demand,
            "supply": self.supply,
            "cells": [
                {
                    "color": item.color,
                    "size": item.size,
                    "demand": item.demand,
                    "supply": item.supply,
                    "surplus": item.surplus,
                    "classification": item.classification,
                }
                for item in self.cells
            ],
            "totals": self.totals(),
        }


def _to_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def build_demand(items: Iterable[OrderItem]) -> Matrix:
    """Accumulate order quantities per color and size; duplicates are summed."""

    demand: Matrix = {}
    for item in items:
        row = demand.setdefault(item.color, {})
        row[item.size] = row.get(item.size, ZERO) + _to_decimal(item.quantity)
    return demand


def build_supply(layouts: Iterable[Layout], tasks: Iterable[Task]) -> Matrix:
    """Project planned layers through each layout's size ratios."""

    ratios_by_layout: dict[int, dict[str, Decimal]] = {}
    for layout in layouts:
        ratios = {size: _to_decimal(ratio) for size, ratio in layout.ratios.items()}
        if sum(ratios.values(), ZERO) <= 0:
            continue
        ratios_by_layout[layout.layout_id] = ratios

    supply: Matrix = {}
    for task in tasks:
        ratios = ratios_by_layout.get(task.layout_id)
        if not ratios:
            continue
        layers = _to_decimal(task.planned_layers)
        row = supply.setdefault(task.color, {})
        for size, ratio in ratios.items():
            if ratio > 0:
                row[size] = row.get(size, ZERO) + layers * ratio
    return supply


def build_supply_from_specs(specs: Iterable["LayoutSpec"]) -> Matrix:
    """Supply implied by unsaved layout specs, used to preview a plan."""

    layouts: list[Layout] = []
    tasks: list[Task] = []
    for index, spec in enumerate(specs):
        if not spec.colors or spec.planned_layers <= 0:
            continue
        layouts.append(Layout(layout_id=index, plan_id=0, layout_name=spec.name or "", ratios=dict(spec.ratios)))
        for color in spec.colors:
            tasks.append(Task(task_id=-1, layout_id=index, color=color, planned_layers=spec.planned_layers))
    return build_supply(layouts, tasks)


def sort_sizes(sizes: Iterable[str]) -> list[str]:
    """Numeric order when every size is an integer token, else lexicographic."""

    unique = list(dict.fromkeys(sizes))
    try:
        return sorted(unique, key=lambda token: int(token.strip()))
    except ValueError:
        return sorted(unique)


def classify(demand: Decimal, supply: Decimal, *, scheduled: bool = True) -> Classification:
    if demand == 0 or not scheduled:
        return "unconstrained"
    surplus = supply - demand
    if surplus < 0:
        return "deficit"
    if surplus == 0:
        return "exact"
    return "surplus"


def compare(demand: Matrix, supply: Matrix) -> MatrixComparison:
    """Lay demand and supply side by side over the demand's colors and sizes."""

    colors = list(demand.keys())
    sizes = sort_sizes(size for row in demand.values() for size in row)
    comparison = MatrixComparison(colors=colors, sizes=sizes, demand=demand, supply=supply)
    for color in colors:
        scheduled = color in supply
        for size in sizes:
            wanted = demand.get(color, {}).get(size, ZERO)
            available = supply.get(color, {}).get(size, ZERO)
            comparison.cells.append(
                MatrixCell(
                    color=color,
                    size=size,
                    demand=wanted,
                    supply=available,
                    surplus=available - wanted,
                    classification=classify(wanted, available, scheduled=scheduled),
                )
            )
    return comparison

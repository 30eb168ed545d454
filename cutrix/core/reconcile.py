"""Reconcile a plan's persisted layouts and tasks with their desired state.

The run has three passes:

1. load the plan's layouts and delete every layout whose id is not named by
   a desired spec (the store cascades its tasks and ratios);
2. validate each remaining spec, skipping invalid ones with a warning;
3. apply each valid spec: create new layouts, or bring existing ones in line
   field by field.  Tasks are diffed per color: a color whose label and layer
   count stay the same keeps its task and its logged progress.

A failing spec never aborts the run.  Every problem ends up as a warning on
the :class:`~cutrix.domain.ReconciliationReport`.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from loguru import logger

from cutrix.core.name_normalize import clean
from cutrix.core.schema import LayoutSpec
from cutrix.core.validation import LayoutSpecError, positive_ratios, validate_layout_spec
from cutrix.domain import Layout, ReconciliationReport, Task
from cutrix.infrastructure.errors import PersistenceError

if TYPE_CHECKING:  # pragma: no cover
    from cutrix.infrastructure import ProductionStore


class ReconciliationEngine:
    def __init__(self, store: "ProductionStore") -> None:
        self._store = store

    def reconcile(self, plan_id: int, desired: Sequence[LayoutSpec]) -> ReconciliationReport:
        report = ReconciliationReport(plan_id=plan_id)
        try:
            existing = self._store.list_layouts(plan_id)
        except PersistenceError as exc:
            logger.warning("plan {}: could not load layouts: {}", plan_id, exc)
            report.warn(f"plan {plan_id}", exc.kind, [f"could not load layouts: {exc}"])
            return report

        existing_by_id = {layout.layout_id: layout for layout in existing}
        desired_ids = {spec.layout_id for spec in desired if spec.layout_id is not None}

        for layout in existing:
            if layout.layout_id not in desired_ids:
                self._delete_layout(layout, report)

        claimed: set[int] = set()
        for index, spec in enumerate(desired):
            ref = spec.label(index)
            try:
                validate_layout_spec(spec)
                if spec.layout_id is None:
                    self._create_layout(plan_id, index, spec, report)
                    continue
                if spec.layout_id in claimed:
                    raise LayoutSpecError([f"layout {spec.layout_id} is listed more than once"])
                layout = existing_by_id.get(spec.layout_id)
                if layout is None:
                    raise LayoutSpecError([f"layout {spec.layout_id} does not belong to plan {plan_id}"])
                claimed.add(spec.layout_id)
                self._update_layout(layout, spec, report)
            except LayoutSpecError as exc:
                logger.warning("plan {}: skipped {}: {}", plan_id, ref, exc)
                report.warn(ref, "validation", exc.errors, spec_index=index, layout_id=spec.layout_id)
            except PersistenceError as exc:
                logger.warning("plan {}: failed to apply {}: {}", plan_id, ref, exc)
                report.warn(ref, exc.kind, [str(exc)], spec_index=index, layout_id=spec.layout_id)

        logger.info(
            "plan {}: layouts +{} ~{} -{} ={}, tasks +{} ~{} -{}, {} warning(s)",
            plan_id,
            report.layouts_created,
            report.layouts_updated,
            report.layouts_deleted,
            report.layouts_unchanged,
            report.tasks_created,
            report.tasks_updated,
            report.tasks_deleted,
            len(report.warnings),
        )
        return report

    # ------------------------------------------------------------------
    # passes
    # ------------------------------------------------------------------
    def _delete_layout(self, layout: Layout, report: ReconciliationReport) -> None:
        ref = f"layout {layout.layout_id}"
        try:
            cascaded = len(self._store.list_tasks(layout.layout_id))
            self._store.delete_layout(layout.layout_id)
        except PersistenceError as exc:
            logger.warning("plan {}: failed to delete {}: {}", layout.plan_id, ref, exc)
            report.warn(ref, exc.kind, [f"delete failed: {exc}"], layout_id=layout.layout_id)
            return
        report.layouts_deleted += 1
        report.tasks_deleted += cascaded

    def _create_layout(self, plan_id: int, index: int, spec: LayoutSpec, report: ReconciliationReport) -> None:
        name = spec.name or f"Layout #{index + 1}"
        layout = self._store.create_layout(plan_id, name, spec.note)
        report.layouts_created += 1
        report.created_layout_ids.append(layout.layout_id)
        self._store.set_ratios(layout.layout_id, positive_ratios(spec.ratios))
        for color in spec.colors:
            self._store.create_task(layout.layout_id, clean(color), spec.planned_layers)
            report.tasks_created += 1

    def _update_layout(self, layout: Layout, spec: LayoutSpec, report: ReconciliationReport) -> None:
        changed = False
        if spec.name is not None and spec.name != layout.layout_name:
            self._store.rename_layout(layout.layout_id, spec.name)
            changed = True
        if spec.note is not None and spec.note != layout.note:
            self._store.update_layout_note(layout.layout_id, spec.note)
            changed = True

        ratios = positive_ratios(spec.ratios)
        if ratios != positive_ratios(layout.ratios):
            self._store.set_ratios(layout.layout_id, ratios)
            changed = True

        if self._sync_tasks(layout.layout_id, spec, report):
            changed = True

        if changed:
            report.layouts_updated += 1
        else:
            report.layouts_unchanged += 1

    def _sync_tasks(self, layout_id: int, spec: LayoutSpec, report: ReconciliationReport) -> bool:
        """Make the layout's tasks match the spec's colors exactly.

        A task whose color label differs from the desired one, even only by
        case, is deleted and recreated.  So is a task whose layer count
        changes: the production service has no task update, and tasks of a
        pending plan carry no logs yet.
        """

        current: dict[str, Task] = {}
        stale: list[Task] = []
        for task in self._store.list_tasks(layout_id):
            if task.color in current:
                stale.append(task)
            else:
                current[task.color] = task

        wanted = [clean(color) for color in spec.colors]
        stale.extend(task for color, task in current.items() if color not in wanted)
        replaced = [
            task for color, task in current.items() if color in wanted and task.planned_layers != spec.planned_layers
        ]

        changed = False
        for task in stale:
            self._store.delete_task(task.task_id)
            report.tasks_deleted += 1
            changed = True

        for task in replaced:
            self._store.delete_task(task.task_id)
            current[task.color] = self._store.create_task(layout_id, task.color, spec.planned_layers)
            report.tasks_updated += 1
            changed = True

        for color in wanted:
            if color not in current:
                self._store.create_task(layout_id, color, spec.planned_layers)
                report.tasks_created += 1
                changed = True
        return changed


def reconcile(store: "ProductionStore", plan_id: int, desired: Sequence[LayoutSpec]) -> ReconciliationReport:
    return ReconciliationEngine(store).reconcile(plan_id, desired)

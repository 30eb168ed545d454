"""Reconciliation reports and the tagged outcomes returned by the facade."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, Union


@dataclass(slots=True)
class ReconciliationWarning:
    """A layout spec that was skipped or only partially applied."""

    layout_ref: str
    kind: str
    messages: list[str]
    spec_index: int | None = None
    layout_id: int | None = None


@dataclass(slots=True)
class ReconciliationReport:
    plan_id: int
    layouts_created: int = 0
    layouts_updated: int = 0
    layouts_deleted: int = 0
    layouts_unchanged: int = 0
    tasks_created: int = 0
    tasks_updated: int = 0
    tasks_deleted: int = 0
    created_layout_ids: list[int] = field(default_factory=list)
    warnings: list[ReconciliationWarning] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def structural_changes(self) -> int:
        return (
            self.layouts_created
            + self.layouts_updated
            + self.layouts_deleted
            + self.tasks_created
            + self.tasks_updated
            + self.tasks_deleted
        )

    def warn(
        self,
        layout_ref: str,
        kind: str,
        messages: list[str],
        *,
        spec_index: int | None = None,
        layout_id: int | None = None,
    ) -> None:
        self.warnings.append(
            ReconciliationWarning(
                layout_ref=layout_ref,
                kind=kind,
                messages=list(messages),
                spec_index=spec_index,
                layout_id=layout_id,
            )
        )

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["warning_count"] = len(self.warnings)
        return payload


@dataclass(slots=True)
class Success:
    message: str = ""
    report: ReconciliationReport | None = None
    data: dict[str, Any] = field(default_factory=dict)
    follow_ups: list[str] = field(default_factory=list)

    kind: ClassVar[str] = "success"
    ok: ClassVar[bool] = True


@dataclass(slots=True)
class PartialFailure:
    """The operation ran but some items were skipped or failed."""

    report: ReconciliationReport
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    follow_ups: list[str] = field(default_factory=list)

    kind: ClassVar[str] = "partial_failure"
    ok: ClassVar[bool] = True


@dataclass(slots=True)
class PermissionDenied:
    reason: str
    permission: str | None = None

    kind: ClassVar[str] = "permission_denied"
    ok: ClassVar[bool] = False


@dataclass(slots=True)
class InvalidTransition:
    reason: str
    action: str
    current_status: str | None = None
    redirect: str | None = None

    kind: ClassVar[str] = "invalid_transition"
    ok: ClassVar[bool] = False


@dataclass(slots=True)
class ValidationFailed:
    errors: list[str]

    kind: ClassVar[str] = "validation_failed"
    ok: ClassVar[bool] = False


@dataclass(slots=True)
class NotFound:
    reason: str

    kind: ClassVar[str] = "not_found"
    ok: ClassVar[bool] = False


Outcome = Union[Success, PartialFailure, PermissionDenied, InvalidTransition, ValidationFailed, NotFound]


def outcome_from_report(
    report: ReconciliationReport,
    *,
    message: str = "",
    data: dict[str, Any] | None = None,
    follow_ups: list[str] | None = None,
) -> Success | PartialFailure:
    """Classify a finished reconciliation run."""

    if report.has_warnings:
        return PartialFailure(
            report=report,
            message=message or f"applied with {len(report.warnings)} warning(s)",
            data=data or {},
            follow_ups=follow_ups or [],
        )
    return Success(message=message or "applied", report=report, data=data or {}, follow_ups=follow_ups or [])


def outcome_to_dict(outcome: Outcome) -> dict[str, Any]:
    payload: dict[str, Any] = {"kind": outcome.kind, "ok": outcome.ok}
    for key, value in asdict(outcome).items():
        if isinstance(value, dict) and key == "report":
            payload[key] = outcome.report.to_dict()  # type: ignore[union-attr]
        else:
            payload[key] = value
    return payload

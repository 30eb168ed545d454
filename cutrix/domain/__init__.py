"""Domain layer definitions."""

from .outcomes import (
    InvalidTransition,
    NotFound,
    Outcome,
    PartialFailure,
    PermissionDenied,
    ReconciliationReport,
    ReconciliationWarning,
    Success,
    ValidationFailed,
    outcome_from_report,
    outcome_to_dict,
)
from .production import (
    SINGLETON_ROLES,
    Actor,
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
    derive_task_status,
)

__all__ = [
    "Actor",
    "InvalidTransition",
    "Layout",
    "NotFound",
    "Order",
    "OrderItem",
    "Outcome",
    "PartialFailure",
    "PermissionDenied",
    "Plan",
    "PlanStatus",
    "ProductionLog",
    "ReconciliationReport",
    "ReconciliationWarning",
    "Role",
    "SINGLETON_ROLES",
    "Success",
    "Task",
    "TaskStatus",
    "User",
    "ValidationFailed",
    "derive_task_status",
    "outcome_from_report",
    "outcome_to_dict",
]

"""Role based permission policy.

Everything here is a pure predicate.  Callers that need to refuse an
operation use :func:`require`, which raises :class:`PermissionDeniedError`
carrying a human readable reason.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from cutrix.domain import SINGLETON_ROLES, Actor, Role, User


class Permission(str, Enum):
    ORDER_CREATE = "order:create"
    ORDER_READ = "order:read"
    ORDER_UPDATE = "order:update"
    ORDER_DELETE = "order:delete"
    PLAN_CREATE = "plan:create"
    PLAN_READ = "plan:read"
    PLAN_UPDATE = "plan:update"
    PLAN_DELETE = "plan:delete"
    PLAN_PUBLISH = "plan:publish"
    PLAN_FREEZE = "plan:freeze"
    LAYOUT_CREATE = "layout:create"
    LAYOUT_READ = "layout:read"
    LAYOUT_UPDATE = "layout:update"
    LAYOUT_DELETE = "layout:delete"
    TASK_CREATE = "task:create"
    TASK_READ = "task:read"
    TASK_UPDATE = "task:update"
    TASK_DELETE = "task:delete"
    LOG_CREATE = "log:create"
    LOG_READ = "log:read"
    LOG_UPDATE = "log:update"
    LOG_VOID = "log:void"
    USER_CREATE = "user:create"
    USER_READ = "user:read"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"


ALL_PERMISSIONS: frozenset[Permission] = frozenset(Permission)

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: ALL_PERMISSIONS,
    Role.MANAGER: ALL_PERMISSIONS,
    # plan editing creates and deletes tasks, but the task view stays hidden
    Role.PATTERN_MAKER: frozenset(
        {
            Permission.PLAN_CREATE,
            Permission.PLAN_READ,
            Permission.PLAN_UPDATE,
            Permission.PLAN_DELETE,
            Permission.LAYOUT_CREATE,
            Permission.LAYOUT_READ,
            Permission.LAYOUT_UPDATE,
            Permission.LAYOUT_DELETE,
            Permission.TASK_CREATE,
            Permission.TASK_DELETE,
            Permission.ORDER_READ,
        }
    ),
    Role.WORKER: frozenset(
        {
            Permission.TASK_READ,
            Permission.LOG_CREATE,
            Permission.LOG_UPDATE,
            Permission.LOG_VOID,
            Permission.ORDER_READ,
        }
    ),
}

SELF_GUARDED_FIELDS = frozenset({"role", "active", "delete"})


class PermissionDeniedError(Exception):
    """Raised when an actor may not perform an operation."""

    def __init__(self, reason: str, permission: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.permission = permission


@dataclass(frozen=True, slots=True)
class RoleDecision:
    allowed: bool
    reason: str | None = None


def coerce_role(role: Role | str | None) -> Role | None:
    if role is None:
        return None
    if isinstance(role, Role):
        return role
    try:
        return Role(str(role).strip().lower())
    except ValueError:
        return None


def coerce_permission(token: Permission | str) -> Permission | None:
    if isinstance(token, Permission):
        return token
    try:
        return Permission(str(token).strip().lower())
    except ValueError:
        return None


def allowed(role: Role | str | None, token: Permission | str) -> bool:
    resolved_role = coerce_role(role)
    permission = coerce_permission(token)
    if resolved_role is None or permission is None:
        return False
    return permission in ROLE_PERMISSIONS[resolved_role]


def allowed_any(role: Role | str | None, tokens: Iterable[Permission | str]) -> bool:
    return any(allowed(role, token) for token in tokens)


def allowed_all(role: Role | str | None, tokens: Iterable[Permission | str]) -> bool:
    return all(allowed(role, token) for token in tokens)


def require(role: Role | str | None, *tokens: Permission | str) -> None:
    for token in tokens:
        if not allowed(role, token):
            value = token.value if isinstance(token, Permission) else str(token)
            label = coerce_role(role)
            raise PermissionDeniedError(
                f"role '{label.value if label else role}' lacks permission '{value}'",
                permission=value,
            )


def role_can_operate_on(actor_role: Role | str | None, target_role: Role | str | None) -> bool:
    """A manager may not edit, deactivate, reset or delete an admin."""

    return not (coerce_role(actor_role) is Role.MANAGER and coerce_role(target_role) is Role.ADMIN)


def can_modify_self(actor: Actor | User, target: User, field: str) -> bool:
    """Admins and managers cannot change their own role or status, nor delete themselves."""

    if field not in SELF_GUARDED_FIELDS:
        raise ValueError(f"unknown self-guarded field: {field}")
    if actor.user_id != target.user_id:
        return True
    return actor.role not in SINGLETON_ROLES


def can_deactivate(actor: Actor | User, target: User, active: bool) -> bool:
    if active:
        return True
    return can_modify_self(actor, target, "active")


def can_create_role(
    actor_role: Role | str | None,
    requested_role: Role | str,
    census: Iterable[Role | str],
) -> RoleDecision:
    """Check a create-user request against a fresh census of existing roles."""

    actor = coerce_role(actor_role)
    if actor is None:
        return RoleDecision(False, "not signed in")
    requested = coerce_role(requested_role)
    if requested is None:
        return RoleDecision(False, f"unknown role: {requested_role}")

    existing = {coerce_role(role) for role in census}

    if requested is Role.ADMIN:
        if Role.ADMIN in existing:
            return RoleDecision(False, "an administrator already exists; a second one cannot be created")
        if actor is Role.ADMIN:
            return RoleDecision(False, "only one administrator is allowed in the system")
        return RoleDecision(False, "no permission to create an administrator")

    if requested is Role.MANAGER:
        if actor is not Role.ADMIN:
            return RoleDecision(False, "only an administrator may create a manager")
        if Role.MANAGER in existing:
            return RoleDecision(False, "a manager already exists; a second one cannot be created")

    return RoleDecision(True)

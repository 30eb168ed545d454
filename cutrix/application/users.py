"""User administration with the single admin / single manager guards."""
from __future__ import annotations

from dataclasses import asdict

from loguru import logger

from cutrix.core.permissions import (
    Permission,
    PermissionDeniedError,
    can_create_role,
    can_deactivate,
    can_modify_self,
    coerce_role,
    require,
    role_can_operate_on,
)
from cutrix.core.schema import UserCreateRequest, UserProfileUpdate
from cutrix.core.validation import ValidationError
from cutrix.domain import Actor, Outcome, Role, Success, User
from cutrix.infrastructure import ProductionStore

from .guards import returns_outcome


class UserService:
    def __init__(self, store: ProductionStore) -> None:
        self._store = store

    def _census(self, *, excluding: int | None = None) -> list[Role]:
        return [user.role for user in self._store.list_users() if user.user_id != excluding]

    def _target(self, actor: Actor, user_id: int) -> User:
        target = self._store.get_user(user_id)
        if not role_can_operate_on(actor.role, target.role):
            raise PermissionDeniedError("a manager cannot modify an administrator")
        return target

    @staticmethod
    def _role(value: Role | str) -> Role:
        role = coerce_role(value)
        if role is None:
            raise ValidationError(f"unknown role: {value}")
        return role

    @returns_outcome
    def list_users(self, actor: Actor) -> Outcome:
        require(actor.role, Permission.USER_READ)
        return Success(data={"items": [asdict(user) for user in self._store.list_users()]})

    @returns_outcome
    def create_user(self, actor: Actor, request: UserCreateRequest) -> Outcome:
        require(actor.role, Permission.USER_CREATE)
        role = self._role(request.role)
        decision = can_create_role(actor.role, role, self._census())
        if not decision.allowed:
            raise PermissionDeniedError(decision.reason or "role cannot be created")
        user = self._store.create_user(
            name=request.name,
            password=request.password,
            role=role,
            user_group=request.user_group,
            note=request.note,
        )
        logger.info("user {} created with role {} by user {}", user.user_id, role.value, actor.user_id)
        return Success(message="user created", data={"user": asdict(user)})

    @returns_outcome
    def update_profile(self, actor: Actor, user_id: int, update: UserProfileUpdate) -> Outcome:
        require(actor.role, Permission.USER_UPDATE)
        self._target(actor, user_id)
        fields = update.model_dump(exclude_unset=True)
        user = self._store.update_user_profile(user_id, **fields)
        return Success(message="profile updated", data={"user": asdict(user)})

    @returns_outcome
    def assign_role(self, actor: Actor, user_id: int, role: Role | str) -> Outcome:
        require(actor.role, Permission.USER_UPDATE)
        requested = self._role(role)
        target = self._target(actor, user_id)
        if not can_modify_self(actor, target, "role"):
            raise PermissionDeniedError("administrators and managers cannot change their own role")
        if requested is not target.role:
            decision = can_create_role(actor.role, requested, self._census(excluding=user_id))
            if not decision.allowed:
                raise PermissionDeniedError(decision.reason or "role cannot be assigned")
            self._store.assign_role(user_id, requested)
            logger.info("user {} is now {}", user_id, requested.value)
        return Success(message="role updated", data={"user_id": user_id, "role": requested.value})

    @returns_outcome
    def set_active(self, actor: Actor, user_id: int, active: bool) -> Outcome:
        require(actor.role, Permission.USER_UPDATE)
        target = self._target(actor, user_id)
        if not can_deactivate(actor, target, active):
            raise PermissionDeniedError("administrators and managers cannot deactivate themselves")
        self._store.set_active(user_id, active)
        return Success(message="status updated", data={"user_id": user_id, "is_active": active})

    @returns_outcome
    def reset_password(self, actor: Actor, user_id: int, password: str) -> Outcome:
        require(actor.role, Permission.USER_UPDATE)
        self._target(actor, user_id)
        if not password:
            raise ValidationError("password must not be empty")
        self._store.set_password(user_id, password)
        return Success(message="password reset", data={"user_id": user_id})

    @returns_outcome
    def delete_user(self, actor: Actor, user_id: int) -> Outcome:
        require(actor.role, Permission.USER_DELETE)
        target = self._target(actor, user_id)
        if not can_modify_self(actor, target, "delete"):
            raise PermissionDeniedError("administrators and managers cannot delete themselves")
        self._store.delete_user(user_id)
        logger.info("user {} deleted by user {}", user_id, actor.user_id)
        return Success(message="user deleted", data={"user_id": user_id})

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from cutrix.application import get_user_service
from cutrix.core.schema import UserCreateRequest, UserProfileUpdate
from cutrix.domain import Actor

from .deps import get_actor, respond

router = APIRouter(prefix="/users", tags=["users"])


class RolePayload(BaseModel):
    role: str


class ActivePayload(BaseModel):
    is_active: bool


class PasswordPayload(BaseModel):
    new_password: str


@router.get("")
def list_users(actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_user_service().list_users(actor))


@router.post("")
def create_user(payload: UserCreateRequest, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_user_service().create_user(actor, payload))


@router.patch("/{user_id}")
def update_profile(user_id: int, payload: UserProfileUpdate, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_user_service().update_profile(actor, user_id, payload))


@router.delete("/{user_id}")
def delete_user(user_id: int, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_user_service().delete_user(actor, user_id))


@router.patch("/{user_id}/role")
def assign_role(user_id: int, payload: RolePayload, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_user_service().assign_role(actor, user_id, payload.role))


@router.patch("/{user_id}/active")
def set_active(user_id: int, payload: ActivePayload, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_user_service().set_active(actor, user_id, payload.is_active))


@router.patch("/{user_id}/password")
def reset_password(user_id: int, payload: PasswordPayload, actor: Actor = Depends(get_actor)) -> dict:
    return respond(get_user_service().reset_password(actor, user_id, payload.new_password))

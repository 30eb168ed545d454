"""Shared request plumbing: the acting user and outcome translation."""
from __future__ import annotations

from fastapi import Header, HTTPException

from cutrix.application import get_store
from cutrix.domain import Actor, Outcome, outcome_to_dict
from cutrix.infrastructure import NotFoundError

STATUS_BY_KIND = {
    "success": 200,
    "partial_failure": 200,
    "permission_denied": 403,
    "invalid_transition": 409,
    "validation_failed": 422,
    "not_found": 404,
}


def get_actor(x_user_id: int | None = Header(default=None)) -> Actor:
    """Resolve the ``X-User-Id`` header to an actor with a freshly read role."""

    if x_user_id is None:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    try:
        user = get_store().get_user(x_user_id)
    except NotFoundError:
        raise HTTPException(status_code=403, detail="unknown user") from None
    if not user.is_active:
        raise HTTPException(status_code=403, detail="user is inactive")
    return Actor(user_id=user.user_id, role=user.role)


def respond(outcome: Outcome) -> dict:
    payload = outcome_to_dict(outcome)
    if not outcome.ok:
        raise HTTPException(status_code=STATUS_BY_KIND[outcome.kind], detail=payload)
    return payload

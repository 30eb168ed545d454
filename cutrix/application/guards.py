"""Translate core refusals into tagged outcomes."""
from __future__ import annotations

import functools
from typing import Any, Callable, TypeVar

from loguru import logger

from cutrix.core.lifecycle import InvalidTransitionError
from cutrix.core.permissions import PermissionDeniedError
from cutrix.core.validation import ValidationError
from cutrix.domain import Actor, InvalidTransition, NotFound, PermissionDenied, ValidationFailed
from cutrix.infrastructure import ConflictError, NotFoundError, StoreValidationError

F = TypeVar("F", bound=Callable[..., Any])


def returns_outcome(method: F) -> F:
    """Wrap a service method taking ``(self, actor, ...)``.

    Persistence outages are not caught here; they surface to the caller.
    """

    @functools.wraps(method)
    def wrapper(self: Any, actor: Actor, *args: Any, **kwargs: Any) -> Any:
        try:
            return method(self, actor, *args, **kwargs)
        except PermissionDeniedError as exc:
            logger.warning("{}: user {} ({}) refused: {}", method.__name__, actor.user_id, actor.role.value, exc.reason)
            return PermissionDenied(reason=exc.reason, permission=exc.permission)
        except InvalidTransitionError as exc:
            logger.warning("{}: user {} refused: {}", method.__name__, actor.user_id, exc.reason)
            return InvalidTransition(
                reason=exc.reason,
                action=exc.action.value,
                current_status=exc.status.value if exc.status else None,
                redirect=exc.redirect,
            )
        except ValidationError as exc:
            errors = list(getattr(exc, "errors", None) or [str(exc)])
            logger.warning("{}: validation failed: {}", method.__name__, "; ".join(errors))
            return ValidationFailed(errors=errors)
        except (StoreValidationError, ConflictError) as exc:
            logger.warning("{}: store rejected the request: {}", method.__name__, exc)
            return ValidationFailed(errors=[str(exc)])
        except NotFoundError as exc:
            return NotFound(reason=str(exc))

    return wrapper  # type: ignore[return-value]

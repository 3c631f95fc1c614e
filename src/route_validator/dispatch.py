"""Failure dispatch policy.

Decides what happens to a request once its rules were evaluated.
Resolution order on failure:
1. The route's own errorHandler, if configured
2. The route's callNext, if set explicitly (True forwards, False answers)
3. The registry's default callNext (True forwards, otherwise the
   registry's default error handler answers)

A valid request always proceeds to the endpoint.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from route_validator.errors import RouteValidationError

if TYPE_CHECKING:
    from route_validator.config import RouteOptions
    from route_validator.registry import ValidatorRegistry
    from route_validator.types import EvaluationResult

# Error handler signature: (error, request) -> Response, sync or async
ErrorHandler = Callable[[RouteValidationError, Request], Response | Awaitable[Response]]


class DispatchAction(Enum):
    """What the HTTP layer should do with an evaluation result."""

    PROCEED = "proceed"
    ROUTE_HANDLER = "route_handler"
    FORWARD = "forward"
    DEFAULT_HANDLER = "default_handler"


def dispatch_action(
    result: EvaluationResult,
    options: RouteOptions,
    registry: ValidatorRegistry,
) -> DispatchAction:
    """Resolve the action for an evaluation result.

    Args:
        result: Outcome of evaluating the request
        options: The route's overrides
        registry: Source of the process-wide defaults

    Returns:
        The DispatchAction the HTTP layer must carry out
    """
    if result.valid:
        return DispatchAction.PROCEED

    if options.error_handler is not None:
        return DispatchAction.ROUTE_HANDLER

    if options.call_next is not None:
        call_next = options.call_next
    else:
        call_next = registry.default_call_next

    return DispatchAction.FORWARD if call_next else DispatchAction.DEFAULT_HANDLER


def default_error_handler(error: RouteValidationError, request: Request) -> Response:
    """Answer with the failure message as ``{"error": message}``."""
    return JSONResponse(error.to_dict(), status_code=error.status_code)

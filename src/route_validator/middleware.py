"""Per-route validation middleware for Starlette and FastAPI.

A RouteValidator is attached to an endpoint function and runs before it:

    router = APIRouter(route_class=ValidatedRoute)

    @router.get("/items/{item}")
    @validate({"params": {"item": {"isRequired": True, "isMongoId": True}}})
    async def get_item(request: Request, item: str):
        ...

For plain Starlette routes, wrap the decorated endpoint:

    Route("/items/{item}", wrap_endpoint(get_item))
"""

import functools
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from fastapi.routing import APIRoute
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from route_validator.config import RouteConfig
from route_validator.dispatch import DispatchAction, dispatch_action
from route_validator.errors import RouteConfigError, RouteValidationError
from route_validator.evaluator import RuleEvaluator
from route_validator.registry import ValidatorRegistry, get_default_registry
from route_validator.types import EvaluationResult, Scope, ValidatedRequest

logger = logging.getLogger(__name__)

# Attribute a RouteValidator is stored under on the endpoint it decorates
VALIDATOR_ATTR = "__route_validator__"

CallNext = Callable[[Request], Awaitable[Response]]

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


class RouteValidator:
    """The validation middleware built from one route configuration.

    The validator:
    1. Collects the request's params, body, query and headers into mutable
       containers and stores them on ``request.state.validated``
    2. Evaluates the route's rules against them (coercing in place)
    3. Proceeds to the endpoint, or resolves the failure through the
       dispatch policy
    """

    def __init__(self, config: RouteConfig, registry: ValidatorRegistry):
        self.config = config
        self.registry = registry
        self.evaluator = RuleEvaluator(config, registry)

    def __call__(self, endpoint: Callable[..., Any]) -> Callable[..., Any]:
        """Attach this validator to an endpoint, leaving its signature untouched."""
        setattr(endpoint, VALIDATOR_ATTR, self)
        return endpoint

    def evaluate(self, scopes: Mapping[Scope, Any]) -> EvaluationResult:
        """Evaluate the route's rules against already collected containers."""
        return self.evaluator.evaluate(scopes)

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        """Validate the request, then call the next handler or resolve the failure."""
        validated = await read_scopes(request, self.config.rules.keys())
        request.state.validated = validated

        result = self.evaluate(validated.as_scopes())
        action = dispatch_action(result, self.config.options, self.registry)

        if action is DispatchAction.PROCEED:
            return await call_next(request)

        error = RouteValidationError(
            result.failure,
            status_code=self.registry.settings.error_status,
        )
        logger.debug("Dispatching %s for %s %s", action.value, request.method, request.url.path)

        if action is DispatchAction.FORWARD:
            raise error

        if action is DispatchAction.ROUTE_HANDLER:
            handler = self.config.options.error_handler
        else:
            handler = self.registry.default_error_handler

        response = handler(error, request)
        if inspect.isawaitable(response):
            response = await response
        return response


def validate(
    config: Mapping[str, Any],
    registry: ValidatorRegistry | None = None,
) -> RouteValidator:
    """Build a RouteValidator, using the process-wide registry by default.

    Raises:
        RouteConfigError: If the configuration has an invalid shape
    """
    registry = registry or get_default_registry()
    return registry.validate(config)


def get_route_validator(endpoint: Callable[..., Any]) -> RouteValidator | None:
    """Return the RouteValidator attached to an endpoint, if any."""
    return getattr(endpoint, VALIDATOR_ATTR, None)


def get_validated(request: Request) -> ValidatedRequest | None:
    """Get the validated scope containers from the request state.

    Args:
        request: The FastAPI/Starlette request

    Returns:
        ValidatedRequest if the route ran a RouteValidator, None otherwise
    """
    return getattr(request.state, "validated", None)


async def read_scopes(request: Request, scopes: Iterable[Scope] = ()) -> ValidatedRequest:
    """Collect a request's scope containers.

    Path params are the live dict of the ASGI scope. The body is only read
    when *scopes* includes it; a JSON object body is the dict cached by
    ``request.json()``, so edits are seen by FastAPI's body parsing. Query
    params and headers are copied, as Starlette's containers are immutable.
    """
    params = request.scope.setdefault("path_params", {})
    body = await _read_body(request) if Scope.BODY in set(scopes) else {}
    return ValidatedRequest(
        params=params,
        body=body,
        query=dict(request.query_params),
        headers=dict(request.headers),
    )


async def _read_body(request: Request) -> dict[str, Any]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_TYPES):
        form = await request.form()
        return dict(form)

    raw = await request.body()
    if not raw:
        return {}

    try:
        data = await request.json()
    except ValueError:
        logger.debug("Request body is not valid JSON; treating body as empty")
        return {}

    if not isinstance(data, dict):
        logger.debug("Request body is a JSON %s, not an object; treating body as empty", type(data).__name__)
        return {}
    return data


class ValidatedRoute(APIRoute):
    """FastAPI route class running the RouteValidator attached to its endpoint.

    Usage:
        router = APIRouter(route_class=ValidatedRoute)
    """

    def get_route_handler(self) -> Callable[[Request], Awaitable[Response]]:
        route_handler = super().get_route_handler()
        endpoint = self.endpoint

        async def validated_route_handler(request: Request) -> Response:
            validator = get_route_validator(endpoint)
            if validator is None:
                return await route_handler(request)
            return await validator.dispatch(request, route_handler)

        return validated_route_handler


def wrap_endpoint(
    endpoint: Callable[[Request], Any],
    validator: RouteValidator | None = None,
) -> Callable[[Request], Awaitable[Response]]:
    """Wrap a Starlette ``request -> response`` endpoint with its validator.

    Args:
        endpoint: Sync or async endpoint function
        validator: Validator to run; defaults to the one attached to *endpoint*

    Raises:
        RouteConfigError: If no validator is given or attached
    """
    validator = validator or get_route_validator(endpoint)
    if validator is None:
        raise RouteConfigError(
            f"Endpoint {getattr(endpoint, '__name__', endpoint)!r} has no route validator attached"
        )

    async def call_endpoint(request: Request) -> Response:
        if inspect.iscoroutinefunction(endpoint):
            return await endpoint(request)
        return await run_in_threadpool(endpoint, request)

    @functools.wraps(endpoint)
    async def validated_endpoint(request: Request) -> Response:
        return await validator.dispatch(request, call_endpoint)

    return validated_endpoint

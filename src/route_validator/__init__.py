"""Declarative request validation for Starlette and FastAPI routes.

Each route declares, per request scope (params, body, query, headers), the
fields it expects and the directives to run on them:
- Validators: pass/fail predicates (isInt, isEmail, isIn, ...)
- Before-coercers: transforms applied before validators (trim, toInt, ...)
- After-coercers: transforms applied once validators pass (parseJSON, split)

Usage:
    from route_validator import ValidatedRoute, get_validated, validate

    router = APIRouter(route_class=ValidatedRoute)

    @router.get("/items/{category}")
    @validate({
        "params": {"category": {"isRequired": True, "isIn": ["lawn", "garden", "tools"]}},
        "query": {"limit": {"isInt": True, "toInt": True}},
    })
    async def list_items(request: Request, category: str):
        limit = get_validated(request).query.get("limit", 20)
        ...

Failures answer ``400 {"error": "<message>"}`` unless the route (or the
registry) sets an errorHandler or forwards them with callNext.
"""

from route_validator.config import RouteConfig, RouteOptions
from route_validator.dispatch import DispatchAction, default_error_handler, dispatch_action
from route_validator.errors import (
    RouteConfigError,
    RouteValidationError,
    RouteValidatorError,
    SettingsError,
)
from route_validator.evaluator import RuleEvaluator
from route_validator.middleware import (
    RouteValidator,
    ValidatedRoute,
    get_route_validator,
    get_validated,
    read_scopes,
    validate,
    wrap_endpoint,
)
from route_validator.registry import (
    ValidatorRegistry,
    get_default_registry,
    set_default_registry,
)
from route_validator.settings import ValidatorSettings
from route_validator.types import (
    Directive,
    DirectiveKind,
    EvaluationResult,
    FailureKind,
    FieldFailure,
    FieldRule,
    Scope,
    Stage,
    UnknownDirectivePolicy,
    ValidatedRequest,
)

__all__ = [
    # Types
    "Directive",
    "DirectiveKind",
    "EvaluationResult",
    "FailureKind",
    "FieldFailure",
    "FieldRule",
    "Scope",
    "Stage",
    "UnknownDirectivePolicy",
    "ValidatedRequest",
    # Configuration
    "RouteConfig",
    "RouteOptions",
    "ValidatorSettings",
    # Registry
    "ValidatorRegistry",
    "get_default_registry",
    "set_default_registry",
    # Evaluation and dispatch
    "RuleEvaluator",
    "DispatchAction",
    "dispatch_action",
    "default_error_handler",
    # Middleware
    "RouteValidator",
    "ValidatedRoute",
    "get_route_validator",
    "get_validated",
    "read_scopes",
    "validate",
    "wrap_endpoint",
    # Errors
    "RouteConfigError",
    "RouteValidationError",
    "RouteValidatorError",
    "SettingsError",
]

"""Exceptions raised by route_validator.

Configuration problems (bad route configs, rule files, environment settings)
are raised when a route is built. Request failures are never raised by the
evaluator itself; ``RouteValidationError`` is only raised when a route is set
to forward failures to the application's exception handlers.
"""

from typing import Any

from starlette.exceptions import HTTPException

from route_validator.types import FieldFailure


class RouteValidatorError(Exception):
    """Base class for route_validator configuration errors."""


class RouteConfigError(RouteValidatorError, ValueError):
    """A route configuration or rules file has an invalid shape."""


class SettingsError(RouteValidatorError, ValueError):
    """An environment setting has a value that cannot be parsed."""


class RouteValidationError(HTTPException):
    """A request failed the validation rules of its route.

    This is the error value handed to error handlers, and the exception
    raised when a route forwards failures (``callNext``). Because it is an
    ``HTTPException``, an application without a dedicated handler still
    answers with a client error.

    Attributes:
        failure: The field failure that stopped evaluation
    """

    def __init__(self, failure: FieldFailure, status_code: int = 400):
        super().__init__(status_code=status_code, detail=failure.message)
        self.failure = failure

    @property
    def message(self) -> str:
        return self.failure.message

    def to_dict(self) -> dict[str, Any]:
        """Structured response body for the failure."""
        return {"error": self.failure.message}

    def __str__(self) -> str:
        return self.failure.message

"""Route configuration parsing.

A route configuration is a plain mapping::

    {
        "params": {"item": {"isRequired": True, "isMongoId": True}},
        "body": {"email": {"trim": True, "isEmail": True, "message": "Bad email"}},
        "callNext": True,
    }

It is parsed once, when the route is built, into an immutable ``RouteConfig``.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool
from pydantic import ValidationError as PydanticValidationError

from route_validator.errors import RouteConfigError
from route_validator.types import (
    IS_REQUIRED,
    MESSAGE,
    RESERVED_KEYS,
    Directive,
    FieldRule,
    Scope,
)

OPTION_KEYS = ("errorHandler", "callNext")


class RouteOptions(BaseModel):
    """Per-route overrides of the process-wide failure handling.

    Attributes:
        error_handler: Called as ``handler(error, request)`` on failure; owns
            the response. Takes precedence over every other setting.
        call_next: True forwards failures to the exception handlers, False
            forces the default error response, None defers to the registry.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    error_handler: Callable[..., Any] | None = Field(default=None, alias="errorHandler")
    call_next: StrictBool | None = Field(default=None, alias="callNext")


@dataclass(frozen=True)
class RouteConfig:
    """Parsed rules and overrides for one route."""

    rules: dict[Scope, tuple[FieldRule, ...]] = field(default_factory=dict)
    options: RouteOptions = field(default_factory=RouteOptions)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RouteConfig":
        """Create RouteConfig from a route configuration mapping.

        Raises:
            RouteConfigError: On unknown top-level keys, scopes or field rules
                that are not mappings, or options of the wrong type
        """
        if not isinstance(data, Mapping):
            raise RouteConfigError(
                f"Route config must be a mapping, got {type(data).__name__}"
            )

        scope_names = {scope.value: scope for scope in Scope}
        rules: dict[Scope, tuple[FieldRule, ...]] = {}
        options: dict[str, Any] = {}

        for key, value in data.items():
            if key in OPTION_KEYS:
                options[key] = value
            elif key in scope_names:
                scope = scope_names[key]
                if value is None:
                    continue
                rules[scope] = _parse_scope(scope, value)
            else:
                raise RouteConfigError(
                    f"Unrecognized route config key {key!r}. "
                    f"Expected one of: {', '.join([*scope_names, *OPTION_KEYS])}"
                )

        try:
            route_options = RouteOptions.model_validate(options)
        except PydanticValidationError as exc:
            raise RouteConfigError(f"Invalid route options: {exc}") from exc

        return cls(rules=rules, options=route_options)

    def field_rules(self, scope: Scope) -> tuple[FieldRule, ...]:
        """Rules declared for *scope*, in declaration order."""
        return self.rules.get(scope, ())


def _parse_scope(scope: Scope, fields: Any) -> tuple[FieldRule, ...]:
    if not isinstance(fields, Mapping):
        raise RouteConfigError(
            f"Rules for {scope.value!r} must be a mapping of field names, "
            f"got {type(fields).__name__}"
        )
    return tuple(_parse_field(scope, name, spec) for name, spec in fields.items())


def _parse_field(scope: Scope, name: Any, spec: Any) -> FieldRule:
    if not isinstance(name, str):
        raise RouteConfigError(f"Field names in {scope.value!r} must be strings, got {name!r}")
    if not isinstance(spec, Mapping):
        raise RouteConfigError(
            f"Rule for {scope.value}.{name} must be a mapping of directives, "
            f"got {type(spec).__name__}"
        )

    message = spec.get(MESSAGE)
    if message is not None and not isinstance(message, str):
        raise RouteConfigError(f"message for {scope.value}.{name} must be a string")

    # Starlette exposes header names lower-cased
    if scope is Scope.HEADERS:
        name = name.lower()

    return FieldRule(
        scope=scope,
        name=name,
        required=bool(spec.get(IS_REQUIRED, False)),
        message=message or None,
        directives=tuple(
            Directive(key, argument)
            for key, argument in spec.items()
            if key not in RESERVED_KEYS
        ),
    )

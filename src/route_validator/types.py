"""Core types for route validation.

This module defines the data structures shared by the registry, the rule
evaluator and the dispatch policy:
- Scope: the request locations a route can put rules on
- Directive / FieldRule: the parsed, immutable per-field configuration
- FieldFailure / EvaluationResult: the single outcome of evaluating a request
- ValidatedRequest: the (possibly coerced) scope containers handed to endpoints
"""

from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Validator signature: (value, argument) -> bool
ValidatorFn = Callable[[Any, Any], bool]

# Coercer signature: (value, argument) -> new value
CoercerFn = Callable[[Any, Any], Any]

# Keys of a field rule that never name an executable directive
IS_REQUIRED = "isRequired"
MESSAGE = "message"
RESERVED_KEYS = frozenset({IS_REQUIRED, MESSAGE})

# Documentation key, ignored unless a directive of that name is registered
DESCRIPTION = "description"


class Scope(Enum):
    """A request location that rules can be declared on.

    Members are declared in evaluation order.
    """

    PARAMS = "params"
    BODY = "body"
    QUERY = "query"
    HEADERS = "headers"


class Stage(Enum):
    """When a coercer runs relative to the validators of a field."""

    BEFORE = "before"
    AFTER = "after"


class DirectiveKind(Enum):
    """Which engine handles a directive, resolved by registry lookup."""

    BEFORE = "before"
    VALIDATOR = "validator"
    AFTER = "after"
    UNKNOWN = "unknown"


class FailureKind(Enum):
    """Why a request failed validation."""

    MISSING_REQUIRED = "missing_required"
    VALIDATION_FAILED = "validation_failed"


class UnknownDirectivePolicy(Enum):
    """What to do with directive names no registry table knows.

    IGNORE: skip them silently (documentation-only keys keep working)
    ERROR: reject the route configuration when the route is built
    """

    IGNORE = "ignore"
    ERROR = "error"


@dataclass(frozen=True)
class Directive:
    """A single named rule on a field, with the argument it was configured with."""

    name: str
    argument: Any = True


@dataclass(frozen=True)
class FieldRule:
    """Configuration for one field within one scope.

    Attributes:
        scope: The request location the field is read from
        name: Field key within the scope container
        required: Whether absence of the field is a failure
        message: Custom failure text replacing the generated one
        directives: Executable directives in declaration order
    """

    scope: Scope
    name: str
    required: bool = False
    message: str | None = None
    directives: tuple[Directive, ...] = ()

    @property
    def path(self) -> str:
        """Dotted location used in generated messages, e.g. ``body.email``."""
        return f"{self.scope.value}.{self.name}"


@dataclass(frozen=True)
class FieldFailure:
    """The first failure found while evaluating a request.

    Attributes:
        kind: MISSING_REQUIRED or VALIDATION_FAILED
        scope: Scope the failing field belongs to
        field: Name of the failing field
        message: Final user-facing message (custom or generated)
        directive: Name of the validator that rejected the value, if any
    """

    kind: FailureKind
    scope: Scope
    field: str
    message: str
    directive: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "scope": self.scope.value,
            "field": self.field,
            "message": self.message,
            "directive": self.directive,
        }


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of evaluating one request: either valid, or exactly one failure.

    The result is falsy when a failure was found::

        result = validator.evaluate(scopes)
        if not result:
            print(result.failure.message)
    """

    failure: FieldFailure | None = None

    @property
    def valid(self) -> bool:
        return self.failure is None

    def __bool__(self) -> bool:
        return self.valid


@dataclass
class ValidatedRequest:
    """The scope containers of a request after evaluation.

    Values are the ones the evaluator left behind, so coercions such as
    ``trim`` or ``toInt`` are already applied.
    """

    params: MutableMapping[str, Any] = field(default_factory=dict)
    body: MutableMapping[str, Any] = field(default_factory=dict)
    query: MutableMapping[str, Any] = field(default_factory=dict)
    headers: MutableMapping[str, Any] = field(default_factory=dict)

    def scope(self, scope: Scope) -> MutableMapping[str, Any]:
        """Return the container for *scope*."""
        return getattr(self, scope.value)

    def as_scopes(self) -> dict[Scope, MutableMapping[str, Any]]:
        return {scope: self.scope(scope) for scope in Scope}

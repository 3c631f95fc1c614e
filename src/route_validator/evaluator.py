"""Rule evaluation for one route.

For every configured field, in scope order (params, body, query, headers) and
then declaration order:
1. An absent field fails if required, otherwise it is skipped untouched
2. Before-coercers run and replace the stored value
3. Validators run against the coerced value; the first rejection stops
   evaluation of the whole request
4. After-coercers run and replace the stored value

Directive names are resolved to registry tables when the evaluator is built
and again whenever the registry changes.
"""

import logging
from collections.abc import Callable, Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any

from route_validator.config import RouteConfig
from route_validator.errors import RouteConfigError
from route_validator.registry import ValidatorRegistry
from route_validator.types import (
    DESCRIPTION,
    DirectiveKind,
    EvaluationResult,
    FailureKind,
    FieldFailure,
    FieldRule,
    Scope,
    UnknownDirectivePolicy,
)

logger = logging.getLogger(__name__)

# (directive name, configured argument, implementation)
BoundDirective = tuple[str, Any, Callable[[Any, Any], Any]]


@dataclass(frozen=True)
class ResolvedField:
    """A field rule with its directives sorted into the three stages.

    Within each stage, directives keep their declaration order.
    """

    rule: FieldRule
    before: tuple[BoundDirective, ...] = ()
    validators: tuple[BoundDirective, ...] = ()
    after: tuple[BoundDirective, ...] = ()


def resolve_field(
    rule: FieldRule,
    registry: ValidatorRegistry,
) -> tuple[ResolvedField, list[str]]:
    """Sort a field's directives into stages by registry lookup.

    Returns:
        The resolved field and the names no table knows about
    """
    stages: dict[DirectiveKind, list[BoundDirective]] = {
        DirectiveKind.BEFORE: [],
        DirectiveKind.VALIDATOR: [],
        DirectiveKind.AFTER: [],
    }
    unknown: list[str] = []

    for directive in rule.directives:
        kind, fn = registry.resolve(directive.name)
        if kind is DirectiveKind.UNKNOWN:
            if directive.name != DESCRIPTION:
                unknown.append(directive.name)
            continue
        stages[kind].append((directive.name, directive.argument, fn))

    resolved = ResolvedField(
        rule=rule,
        before=tuple(stages[DirectiveKind.BEFORE]),
        validators=tuple(stages[DirectiveKind.VALIDATOR]),
        after=tuple(stages[DirectiveKind.AFTER]),
    )
    return resolved, unknown


class RuleEvaluator:
    """Evaluates a route's rules against the scope containers of a request.

    Containers are edited in place: coercers replace the stored value of the
    field they run on. Evaluation is fail-fast and reports at most one
    failure.
    """

    def __init__(self, config: RouteConfig, registry: ValidatorRegistry):
        self.config = config
        self.registry = registry
        self._version = -1
        self._plan: dict[Scope, tuple[ResolvedField, ...]] = {}
        self._resolve(strict=registry.settings.unknown_directives is UnknownDirectivePolicy.ERROR)

    def _resolve(self, strict: bool = False) -> None:
        version = self.registry.version
        plan: dict[Scope, tuple[ResolvedField, ...]] = {}

        for scope, rules in self.config.rules.items():
            resolved_fields = []
            for rule in rules:
                resolved, unknown = resolve_field(rule, self.registry)
                if unknown and strict:
                    raise RouteConfigError(
                        f"Unknown directive(s) for {rule.path}: {', '.join(unknown)}"
                    )
                resolved_fields.append(resolved)
            plan[scope] = tuple(resolved_fields)

        self._plan = plan
        self._version = version

    def plan(self) -> dict[Scope, tuple[ResolvedField, ...]]:
        """The resolved fields per scope, refreshed if the registry changed."""
        if self._version != self.registry.version:
            self._resolve()
        return self._plan

    def evaluate(
        self,
        scopes: Mapping[Scope, MutableMapping[str, Any] | None],
    ) -> EvaluationResult:
        """Evaluate every configured scope, stopping at the first failure.

        Args:
            scopes: Container per scope. Missing or None containers are
                treated as empty.

        Returns:
            An EvaluationResult holding the first failure, if any
        """
        plan = self.plan()

        for scope in Scope:
            fields = plan.get(scope)
            if not fields:
                continue

            container = scopes.get(scope)
            if container is None:
                container = {}

            failure = self._evaluate_scope(fields, container)
            if failure is not None:
                logger.debug(
                    "Validation failed for %s.%s (%s): %s",
                    failure.scope.value,
                    failure.field,
                    failure.directive or failure.kind.value,
                    failure.message,
                )
                return EvaluationResult(failure=failure)

        return EvaluationResult()

    def _evaluate_scope(
        self,
        fields: tuple[ResolvedField, ...],
        container: MutableMapping[str, Any],
    ) -> FieldFailure | None:
        for resolved in fields:
            rule = resolved.rule

            if rule.name not in container:
                if rule.required:
                    return FieldFailure(
                        kind=FailureKind.MISSING_REQUIRED,
                        scope=rule.scope,
                        field=rule.name,
                        message=rule.message or f"{rule.path} is required",
                    )
                continue

            value = container[rule.name]

            for _, argument, coerce in resolved.before:
                value = coerce(value, argument)
                container[rule.name] = value

            for name, argument, check in resolved.validators:
                if not check(value, argument):
                    return FieldFailure(
                        kind=FailureKind.VALIDATION_FAILED,
                        scope=rule.scope,
                        field=rule.name,
                        message=rule.message or f"{rule.path} failed validation",
                        directive=name,
                    )

            for _, argument, coerce in resolved.after:
                value = coerce(value, argument)
                container[rule.name] = value

        return None

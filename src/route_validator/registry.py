"""Directive registry for route validation.

Provides registration and lookup for:
- Validators (pass/fail predicates)
- Before-coercers (transforms applied before validators run)
- After-coercers (transforms applied once validators pass)

plus the process-wide defaults used when a route does not override them.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from route_validator.dispatch import ErrorHandler, default_error_handler
from route_validator.settings import ValidatorSettings
from route_validator.types import CoercerFn, DirectiveKind, Stage, ValidatorFn

if TYPE_CHECKING:
    from route_validator.middleware import RouteValidator

logger = logging.getLogger(__name__)


class ValidatorRegistry:
    """Registry of named validators and coercers.

    Registering a name that already exists replaces it (last write wins).
    Values that are not callable are rejected with a warning; registration
    never raises.

    Tables are replaced rather than edited in place, and every change bumps
    ``version`` so built routes re-resolve their directives on the next
    request.

    Example:
        registry = ValidatorRegistry.with_builtins()
        registry.register_validator("isPercent", lambda value, arg: 0 <= float(value) <= 1)

        @router.post("/rates")
        @registry.validate({"body": {"rate": {"isRequired": True, "isPercent": True}}})
        async def create_rate(request: Request):
            ...
    """

    def __init__(self, settings: ValidatorSettings | None = None):
        self.settings = settings or ValidatorSettings()
        self._validators: dict[str, ValidatorFn] = {}
        self._before: dict[str, CoercerFn] = {}
        self._after: dict[str, CoercerFn] = {}
        self._default_error_handler: ErrorHandler = default_error_handler
        self._default_call_next: bool = self.settings.call_next
        self._version = 0
        self._lock = threading.Lock()

    @classmethod
    def with_builtins(cls, settings: ValidatorSettings | None = None) -> ValidatorRegistry:
        """Create a registry pre-loaded with the built-in catalog."""
        from route_validator.builtins import register_builtins

        registry = cls(settings)
        register_builtins(registry)
        return registry

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_validator(self, name: str, fn: ValidatorFn) -> bool:
        """Register a validator by name.

        Args:
            name: Directive name used in route configs (e.g. "isPercent")
            fn: Predicate called as ``fn(value, argument)``

        Returns:
            True if the validator was stored, False if it was rejected
        """
        if not callable(fn):
            logger.warning("Validators must be callable. Did not add: %s", name)
            return False
        with self._lock:
            self._validators = {**self._validators, name: fn}
            self._version += 1
        return True

    def register_validators(self, validators: Mapping[str, ValidatorFn]) -> None:
        """Register every entry of a name -> predicate mapping."""
        for name, fn in validators.items():
            self.register_validator(name, fn)

    def register_coercer(self, name: str, stage: Stage | str | None, fn: CoercerFn) -> bool:
        """Register a coercer for the given stage.

        Args:
            name: Directive name used in route configs (e.g. "toSlug")
            stage: "before" (runs ahead of validators) or "after"
                (runs once every validator passed)
            fn: Transform called as ``fn(value, argument)``

        Returns:
            True if the coercer was stored, False if it was rejected
        """
        try:
            stage = Stage(stage)
        except ValueError:
            logger.warning("Coercer stage %r is invalid for: %s", stage, name)
            return False
        if not callable(fn):
            logger.warning("Coercers must be callable. Did not add: %s", name)
            return False

        with self._lock:
            if stage is Stage.BEFORE:
                self._before = {**self._before, name: fn}
            else:
                self._after = {**self._after, name: fn}
            self._version += 1
        return True

    def register_coercers(self, coercers: Mapping[str, Mapping[str, Any]]) -> None:
        """Register coercers from a mapping of name -> ``{"stage": ..., "coerce": fn}``.

        Invalid entries are skipped individually; the rest of the batch is
        still registered.
        """
        for name, spec in coercers.items():
            if not isinstance(spec, Mapping):
                logger.warning("Coercer config must be a mapping. Did not add: %s", name)
                continue
            self.register_coercer(name, spec.get("stage"), spec.get("coerce"))

    # -------------------------------------------------------------------------
    # Process-wide defaults
    # -------------------------------------------------------------------------

    @property
    def default_error_handler(self) -> ErrorHandler:
        return self._default_error_handler

    @property
    def default_call_next(self) -> bool:
        return self._default_call_next

    def set_default_error_handler(self, handler: ErrorHandler) -> None:
        """Replace the handler used when a route neither handles nor forwards failures."""
        if not callable(handler):
            logger.warning("Error handler must be callable, got %r", type(handler).__name__)
            return
        self._default_error_handler = handler

    def set_default_call_next(self, call_next: bool) -> None:
        """Set whether failures are forwarded to exception handlers by default."""
        if not isinstance(call_next, bool):
            logger.warning("callNext must be a boolean, got %r", call_next)
            return
        self._default_call_next = call_next

    def set(self, key: str, value: Any) -> None:
        """Set a process-wide default by its configuration key.

        Recognized keys are ``errorHandler`` and ``callNext``. Anything else
        is logged and ignored.
        """
        setters: dict[str, Callable[[Any], None]] = {
            "errorHandler": self.set_default_error_handler,
            "callNext": self.set_default_call_next,
        }
        setter = setters.get(key)
        if setter is None:
            logger.warning("Attempted to set invalid key: %s", key)
            return
        setter(value)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @property
    def version(self) -> int:
        """Counter bumped on every successful registration."""
        return self._version

    def resolve(self, name: str) -> tuple[DirectiveKind, Callable[[Any, Any], Any] | None]:
        """Find the table a directive name belongs to.

        Before-coercers are checked first, then validators, then
        after-coercers, so a name registered in several tables resolves to
        the first of them.
        """
        before, validators, after = self._before, self._validators, self._after
        if name in before:
            return DirectiveKind.BEFORE, before[name]
        if name in validators:
            return DirectiveKind.VALIDATOR, validators[name]
        if name in after:
            return DirectiveKind.AFTER, after[name]
        return DirectiveKind.UNKNOWN, None

    def is_registered(self, name: str) -> bool:
        """Check if a name is known to any table."""
        return self.resolve(name)[0] is not DirectiveKind.UNKNOWN

    def list_registered(self) -> dict[str, list[str]]:
        """List registered names per table."""
        return {
            DirectiveKind.BEFORE.value: sorted(self._before),
            DirectiveKind.VALIDATOR.value: sorted(self._validators),
            DirectiveKind.AFTER.value: sorted(self._after),
        }

    # -------------------------------------------------------------------------
    # Route construction
    # -------------------------------------------------------------------------

    def validate(self, config: Mapping[str, Any]) -> RouteValidator:
        """Build the validation middleware for one route.

        Raises:
            RouteConfigError: If the configuration has an invalid shape
        """
        from route_validator.config import RouteConfig
        from route_validator.middleware import RouteValidator

        return RouteValidator(RouteConfig.from_dict(config), self)


_default_registry: ValidatorRegistry | None = None


def get_default_registry() -> ValidatorRegistry:
    """Return the process-wide registry, building it with builtins on first use."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ValidatorRegistry.with_builtins(ValidatorSettings.from_env())
    return _default_registry


def set_default_registry(registry: ValidatorRegistry | None) -> None:
    """Replace the process-wide registry. Passing None resets it."""
    global _default_registry
    _default_registry = registry

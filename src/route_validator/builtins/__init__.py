"""Built-in validator and coercer catalog."""

from route_validator.builtins.coercers import (
    AFTER_COERCERS,
    BEFORE_COERCERS,
    register_builtin_coercers,
)
from route_validator.builtins.validators import BUILTIN_VALIDATORS, register_builtin_validators

__all__ = [
    "AFTER_COERCERS",
    "BEFORE_COERCERS",
    "BUILTIN_VALIDATORS",
    "register_builtins",
]


def register_builtins(registry) -> None:
    """Register every built-in validator and coercer with a registry."""
    register_builtin_validators(registry)
    register_builtin_coercers(registry)

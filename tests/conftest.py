"""Shared fixtures for route_validator tests."""

import pytest

from route_validator.registry import ValidatorRegistry, set_default_registry
from route_validator.settings import ValidatorSettings
from route_validator.types import UnknownDirectivePolicy


@pytest.fixture(autouse=True)
def reset_default_registry():
    """Reset the process-wide registry before and after each test."""
    set_default_registry(None)
    yield
    set_default_registry(None)


@pytest.fixture
def registry():
    """A registry with the built-in catalog."""
    return ValidatorRegistry.with_builtins()


@pytest.fixture
def empty_registry():
    """A registry with no directives at all."""
    return ValidatorRegistry()


@pytest.fixture
def strict_registry():
    """A built-in registry that rejects unknown directive names."""
    return ValidatorRegistry.with_builtins(
        ValidatorSettings(unknown_directives=UnknownDirectivePolicy.ERROR)
    )

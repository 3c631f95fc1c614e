"""Process-wide settings read from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from route_validator.errors import SettingsError
from route_validator.types import UnknownDirectivePolicy

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise SettingsError(f"{name} must be a boolean, got {raw!r}")


@dataclass
class ValidatorSettings:
    """Initial defaults for a ValidatorRegistry.

    Attributes:
        call_next: Forward failures to the exception handlers instead of
            answering with the default error response
        error_status: Status code of the default error response
        unknown_directives: Policy for directive names no table knows
    """

    call_next: bool = False
    error_status: int = 400
    unknown_directives: UnknownDirectivePolicy = UnknownDirectivePolicy.IGNORE

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ValidatorSettings:
        """Create settings from environment variables.

        Recognized variables:
        1. ROUTE_VALIDATOR_CALL_NEXT (1/true/yes/on or 0/false/no/off)
        2. ROUTE_VALIDATOR_ERROR_STATUS (an HTTP status code, 400-499)
        3. ROUTE_VALIDATOR_UNKNOWN_DIRECTIVES ("ignore" or "error")

        Unset variables keep their defaults.

        Raises:
            SettingsError: If a variable is set to an unparseable value
        """
        env = os.environ if environ is None else environ
        settings = cls()

        raw = env.get("ROUTE_VALIDATOR_CALL_NEXT")
        if raw is not None:
            settings.call_next = _parse_bool("ROUTE_VALIDATOR_CALL_NEXT", raw)

        raw = env.get("ROUTE_VALIDATOR_ERROR_STATUS")
        if raw is not None:
            try:
                status = int(raw)
            except ValueError:
                raise SettingsError(
                    f"ROUTE_VALIDATOR_ERROR_STATUS must be an integer, got {raw!r}"
                ) from None
            if not 400 <= status <= 499:
                raise SettingsError(
                    f"ROUTE_VALIDATOR_ERROR_STATUS must be a client error status, got {status}"
                )
            settings.error_status = status

        raw = env.get("ROUTE_VALIDATOR_UNKNOWN_DIRECTIVES")
        if raw is not None:
            try:
                settings.unknown_directives = UnknownDirectivePolicy(raw.strip().lower())
            except ValueError:
                raise SettingsError(
                    "ROUTE_VALIDATOR_UNKNOWN_DIRECTIVES must be 'ignore' or 'error', "
                    f"got {raw!r}"
                ) from None

        return settings

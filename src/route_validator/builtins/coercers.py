"""Built-in coercers.

Coercers have the signature ``(value, argument) -> new value``; the result
replaces the field's value in its scope container. Before-coercers run
ahead of the validators, after-coercers once every validator passed.
"""

import json
import logging
import math
import re
from typing import TYPE_CHECKING, Any

from route_validator.builtins.validators import is_email, options, parse_date, scalar, to_text
from route_validator.types import Stage

if TYPE_CHECKING:
    from route_validator.registry import ValidatorRegistry

logger = logging.getLogger(__name__)

HTML_ENTITIES = {
    "&": "&amp;",
    '"': "&quot;",
    "'": "&#x27;",
    "<": "&lt;",
    ">": "&gt;",
    "/": "&#x2F;",
    "`": "&#96;",
}

FLOAT_PREFIX_PATTERN = re.compile(r"^[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
INFINITY_PATTERN = re.compile(r"^[-+]?Infinity")

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"

GMAIL_DOMAINS = ("gmail.com", "googlemail.com")


# =============================================================================
# Before-coercers: sanitizing
# =============================================================================


def trim(value: Any, chars: Any = None) -> str:
    """Strip whitespace (or the given characters) from both ends."""
    chars = scalar(chars)
    return to_text(value).strip(chars if isinstance(chars, str) else None)


def ltrim(value: Any, chars: Any = None) -> str:
    chars = scalar(chars)
    return to_text(value).lstrip(chars if isinstance(chars, str) else None)


def rtrim(value: Any, chars: Any = None) -> str:
    chars = scalar(chars)
    return to_text(value).rstrip(chars if isinstance(chars, str) else None)


def escape(value: Any, _: Any = None) -> str:
    """Replace HTML special characters with entities."""
    return "".join(HTML_ENTITIES.get(char, char) for char in to_text(value))


def strip_low(value: Any, argument: Any = None) -> str:
    """Remove ASCII control characters.

    ``{"keep_new_lines": True}`` keeps line feeds and carriage returns.
    """
    if options(argument).get("keep_new_lines"):
        pattern = r"[\x00-\x09\x0B\x0C\x0E-\x1F\x7F]+"
    else:
        pattern = r"[\x00-\x1F\x7F]+"
    return re.sub(pattern, "", to_text(value))


def whitelist(value: Any, chars: Any) -> str:
    """Keep only characters matching the character-class body *chars*."""
    return re.sub(f"[^{to_text(chars)}]+", "", to_text(value))


def blacklist(value: Any, chars: Any) -> str:
    """Remove characters matching the character-class body *chars*."""
    return re.sub(f"[{to_text(chars)}]+", "", to_text(value))


def normalize_email(value: Any, argument: Any = None) -> str | bool:
    """Canonicalize an email address, or return False if it is not one.

    The domain is always lower-cased. Gmail addresses lose dots and
    ``+tag`` suffixes from the local part and use ``gmail.com``. Other
    local parts are lower-cased unless ``{"lowercase": False}``.
    """
    text = to_text(value)
    if not is_email(text):
        return False

    local, domain = text.rsplit("@", 1)
    domain = domain.lower()

    if domain in GMAIL_DOMAINS:
        local = local.split("+", 1)[0].replace(".", "").lower()
        domain = "gmail.com"
    elif options(argument).get("lowercase", True):
        local = local.lower()

    return f"{local}@{domain}"


# =============================================================================
# Before-coercers: type conversion
# =============================================================================


def to_string(value: Any, _: Any = None) -> str:
    return to_text(value)


def to_lowercase(value: Any, _: Any = None) -> str:
    return to_text(value).lower()


def to_uppercase(value: Any, _: Any = None) -> str:
    return to_text(value).upper()


def to_boolean(value: Any, argument: Any = None) -> bool:
    """Convert to a boolean.

    Loosely, everything but ``"0"``, ``"false"`` and ``""`` is True. With
    ``{"strict": True}`` only ``"1"`` and ``"true"`` are True.
    """
    text = to_text(value)
    if options(argument).get("strict"):
        return text in ("1", "true")
    return text not in ("0", "false", "")


def to_date(value: Any, _: Any = None):
    """Parse a date, or None if the value is not one."""
    return parse_date(value)


def to_float(value: Any, _: Any = None) -> float:
    """Parse the leading float of the value, or NaN if there is none."""
    text = to_text(value).strip()
    infinity = INFINITY_PATTERN.match(text)
    if infinity:
        return -math.inf if text.startswith("-") else math.inf
    match = FLOAT_PREFIX_PATTERN.match(text)
    if not match:
        return math.nan
    return float(match.group(0))


def to_int(value: Any, radix: Any = None) -> int | None:
    """Parse the leading integer of the value in *radix* (default 10).

    Returns None when the value does not start with a digit.
    """
    base = scalar(radix)
    if not isinstance(base, int) or not 2 <= base <= 36:
        base = 10

    text = to_text(value).strip()
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if base == 16 and text[:2].lower() == "0x":
        text = text[2:]

    valid = _DIGITS[:base]
    digits = ""
    for char in text.lower():
        if char not in valid:
            break
        digits += char

    if not digits:
        return None
    try:
        return sign * int(digits, base)
    except ValueError:
        return None


# =============================================================================
# After-coercers
# =============================================================================


def parse_json(value: Any, _: Any = None) -> Any:
    """Parse JSON text. Logs the error and returns None on malformed input."""
    try:
        return json.loads(value if isinstance(value, (str, bytes)) else to_text(value))
    except ValueError as exc:
        logger.error("parseJSON could not parse value: %s", exc)
        return None


def split(value: Any, argument: Any = None) -> list[str]:
    """Split text into a list.

    ``{"separator": ",", "limit": 3}``. With no separator the list holds the
    whole text; an empty separator splits into characters.
    """
    opts = options(argument)
    text = to_text(value)
    separator = opts.get("separator")

    if separator is None:
        parts = [text]
    elif separator == "":
        parts = list(text)
    else:
        parts = text.split(to_text(separator))

    limit = opts.get("limit")
    if isinstance(limit, int) and not isinstance(limit, bool):
        parts = parts[:limit]
    return parts


BEFORE_COERCERS = {
    "blacklist": blacklist,
    "escape": escape,
    "ltrim": ltrim,
    "normalizeEmail": normalize_email,
    "rtrim": rtrim,
    "stripLow": strip_low,
    "toBoolean": to_boolean,
    "toDate": to_date,
    "toFloat": to_float,
    "toInt": to_int,
    "toLowercase": to_lowercase,
    "toString": to_string,
    "toUppercase": to_uppercase,
    "trim": trim,
    "whitelist": whitelist,
}

AFTER_COERCERS = {
    "parseJSON": parse_json,
    "split": split,
}


def register_builtin_coercers(registry: "ValidatorRegistry") -> None:
    """Register all built-in before- and after-coercers with a registry."""
    for name, coerce in BEFORE_COERCERS.items():
        registry.register_coercer(name, Stage.BEFORE, coerce)
    for name, coerce in AFTER_COERCERS.items():
        registry.register_coercer(name, Stage.AFTER, coerce)

"""Built-in validators.

Every validator has the signature ``(value, argument) -> bool``. Values are
converted to text first, so a JSON number ``23`` and the query string
``"23"`` validate the same way. A boolean ``True`` argument means "use the
defaults"; validators that take options read them from a mapping argument::

    {"age": {"isInt": {"min": 0, "max": 120}}}
"""

import email.utils
import ipaddress
import json
import math
import re
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from route_validator.registry import ValidatorRegistry


# =============================================================================
# Helpers
# =============================================================================


def to_text(value: Any) -> str:
    """Convert a scope value to the text validators operate on."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(item) for item in value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def options(argument: Any) -> Mapping[str, Any]:
    """Return the argument when it is an options mapping, else no options."""
    return argument if isinstance(argument, Mapping) else {}


def scalar(argument: Any) -> Any:
    """Return the argument unless it is the bare ``True`` flag."""
    return None if isinstance(argument, bool) else argument


_DATE_FORMATS = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%a %b %d %Y",
    "%a %b %d %Y %H:%M:%S",
)


def parse_date(value: Any) -> datetime | None:
    """Parse a date or datetime, returning None when the value is not a date.

    Accepts ISO 8601, RFC 2822 and a handful of common written formats.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = to_text(value).strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass

    try:
        return email.utils.parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _in_bounds(number: float, opts: Mapping[str, Any]) -> bool:
    low = opts.get("min")
    high = opts.get("max")
    if low is not None and number < low:
        return False
    if high is not None and number > high:
        return False
    return True


def _luhn(digits: str) -> bool:
    total = 0
    for index, char in enumerate(reversed(digits)):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


# =============================================================================
# Patterns
# =============================================================================

ALPHA_PATTERN = re.compile(r"^[A-Za-z]+$")
ALPHANUMERIC_PATTERN = re.compile(r"^[0-9A-Za-z]+$")
ASCII_PATTERN = re.compile(r"^[\x00-\x7F]+$")
BASE64_PATTERN = re.compile(
    r"^(?:[A-Z0-9+/]{4})*(?:[A-Z0-9+/]{2}==|[A-Z0-9+/]{3}=|[A-Z0-9+/]{4})$",
    re.IGNORECASE,
)
CREDIT_CARD_PATTERN = re.compile(
    r"^(?:4[0-9]{12}(?:[0-9]{3})?|5[1-5][0-9]{14}|6(?:011|5[0-9][0-9])[0-9]{12}"
    r"|3[47][0-9]{13}|3(?:0[0-5]|[68][0-9])[0-9]{11}|(?:2131|1800|35\d{3})\d{11})$"
)
FLOAT_PATTERN = re.compile(r"^[-+]?(?:[0-9]+)?(?:\.[0-9]*)?(?:[eE][+-]?[0-9]+)?$")
INT_PATTERN = re.compile(r"^[-+]?(?:0|[1-9][0-9]*)$")
NUMERIC_PATTERN = re.compile(r"^[-+]?[0-9]+$")
HEX_COLOR_PATTERN = re.compile(r"^#?(?:[0-9A-F]{3}|[0-9A-F]{6})$", re.IGNORECASE)
HEXADECIMAL_PATTERN = re.compile(r"^[0-9A-F]+$", re.IGNORECASE)
ISIN_PATTERN = re.compile(r"^[A-Z]{2}[0-9A-Z]{9}[0-9]$")
MULTIBYTE_PATTERN = re.compile(r"[^\x00-\x7F]")
SURROGATE_PAIR_PATTERN = re.compile(r"[\U00010000-\U0010FFFF]")
FULL_WIDTH_PATTERN = re.compile(r"[^\u0020-\u007E\uFF61-\uFF9F\uFFA0-\uFFDC\uFFE8-\uFFEE0-9a-zA-Z]")
HALF_WIDTH_PATTERN = re.compile(r"[\u0020-\u007E\uFF61-\uFF9F\uFFA0-\uFFDC\uFFE8-\uFFEE0-9a-zA-Z]")

UUID_PATTERNS = {
    3: re.compile(r"^[0-9A-F]{8}-[0-9A-F]{4}-3[0-9A-F]{3}-[0-9A-F]{4}-[0-9A-F]{12}$", re.IGNORECASE),
    4: re.compile(
        r"^[0-9A-F]{8}-[0-9A-F]{4}-4[0-9A-F]{3}-[89AB][0-9A-F]{3}-[0-9A-F]{12}$", re.IGNORECASE
    ),
    5: re.compile(
        r"^[0-9A-F]{8}-[0-9A-F]{4}-5[0-9A-F]{3}-[89AB][0-9A-F]{3}-[0-9A-F]{12}$", re.IGNORECASE
    ),
    None: re.compile(r"^[0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12}$", re.IGNORECASE),
}

MOBILE_PHONE_PATTERNS = {
    "zh-CN": re.compile(r"^(\+?0?86-?)?1[345789]\d{9}$"),
    "en-ZA": re.compile(r"^(\+?27|0)\d{9}$"),
    "en-AU": re.compile(r"^(\+?61|0)4\d{8}$"),
    "en-HK": re.compile(r"^(\+?852-?)?[569]\d{3}-?\d{4}$"),
    "fr-FR": re.compile(r"^(\+?33|0)[67]\d{8}$"),
    "pt-PT": re.compile(r"^(\+351)?9[1236]\d{7}$"),
    "el-GR": re.compile(r"^(\+30)?((2\d{9})|(69\d{8}))$"),
    "en-GB": re.compile(r"^(\+?44|0)7\d{9}$"),
    "en-US": re.compile(r"^(\+?1)?[2-9]\d{2}[2-9](?!11)\d{6}$"),
    "en-ZM": re.compile(r"^(\+26)?09[567]\d{7}$"),
}

TLD_PATTERN = re.compile(r"^(?:[a-z\u00a1-\uffff]{2,}|xn[a-z0-9-]{2,})$", re.IGNORECASE)
DOMAIN_LABEL_PATTERN = re.compile(r"^[a-z\u00a1-\uffff0-9-]+$", re.IGNORECASE)

EMAIL_LOCAL_PATTERN = re.compile(
    r"^[a-z\d!#$%&'*+\-/=?^_`{|}~]+(?:\.[a-z\d!#$%&'*+\-/=?^_`{|}~]+)*$",
    re.IGNORECASE,
)
EMAIL_LOCAL_UTF8_PATTERN = re.compile(
    r"^[a-z\d!#$%&'*+\-/=?^_`{|}~\u00A0-\uFFFF]+(?:\.[a-z\d!#$%&'*+\-/=?^_`{|}~\u00A0-\uFFFF]+)*$",
    re.IGNORECASE,
)
DISPLAY_NAME_PATTERN = re.compile(r"^[^<]*<(.+)>$")

_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


# =============================================================================
# Strings
# =============================================================================


def contains(value: Any, seed: Any) -> bool:
    """The value contains *seed*."""
    return to_text(seed) in to_text(value)


def equals(value: Any, comparison: Any) -> bool:
    """The value equals *comparison*."""
    return to_text(value) == to_text(comparison)


def is_alpha(value: Any, _: Any = None) -> bool:
    return bool(ALPHA_PATTERN.match(to_text(value)))


def is_alphanumeric(value: Any, _: Any = None) -> bool:
    return bool(ALPHANUMERIC_PATTERN.match(to_text(value)))


def is_ascii(value: Any, _: Any = None) -> bool:
    return bool(ASCII_PATTERN.match(to_text(value)))


def is_lowercase(value: Any, _: Any = None) -> bool:
    text = to_text(value)
    return text == text.lower()


def is_uppercase(value: Any, _: Any = None) -> bool:
    text = to_text(value)
    return text == text.upper()


def is_multibyte(value: Any, _: Any = None) -> bool:
    return bool(MULTIBYTE_PATTERN.search(to_text(value)))


def is_surrogate_pair(value: Any, _: Any = None) -> bool:
    """The value contains characters outside the Basic Multilingual Plane."""
    return bool(SURROGATE_PAIR_PATTERN.search(to_text(value)))


def is_full_width(value: Any, _: Any = None) -> bool:
    return bool(FULL_WIDTH_PATTERN.search(to_text(value)))


def is_half_width(value: Any, _: Any = None) -> bool:
    return bool(HALF_WIDTH_PATTERN.search(to_text(value)))


def is_variable_width(value: Any, _: Any = None) -> bool:
    text = to_text(value)
    return bool(FULL_WIDTH_PATTERN.search(text)) and bool(HALF_WIDTH_PATTERN.search(text))


def is_null(value: Any, _: Any = None) -> bool:
    """The value is empty."""
    return to_text(value) == ""


def is_length(value: Any, argument: Any) -> bool:
    """Character length is within ``{"min": ..., "max": ...}``."""
    opts = options(argument)
    return _in_bounds(len(to_text(value)), {"min": opts.get("min", 0), "max": opts.get("max")})


def is_byte_length(value: Any, argument: Any) -> bool:
    """UTF-8 byte length is within ``{"min": ..., "max": ...}``."""
    opts = options(argument)
    size = len(to_text(value).encode("utf-8"))
    return _in_bounds(size, {"min": opts.get("min", 0), "max": opts.get("max")})


def matches(value: Any, argument: Any) -> bool:
    """The value matches a pattern.

    The argument is a pattern (string or compiled) or a mapping
    ``{"pattern": ..., "modifiers": "i"}``.
    """
    opts = options(argument)
    pattern = opts.get("pattern") if opts else argument
    if isinstance(pattern, re.Pattern):
        return bool(pattern.search(to_text(value)))
    if not isinstance(pattern, str):
        return False

    flags = 0
    for modifier in opts.get("modifiers") or "":
        flags |= _REGEX_FLAGS.get(modifier, 0)
    return bool(re.search(pattern, to_text(value), flags))


def is_in(value: Any, values: Any) -> bool:
    """The value is one of *values* (a list, the keys of a mapping, or a substring of a string)."""
    text = to_text(value)
    if isinstance(values, Mapping):
        return text in {to_text(key) for key in values}
    if isinstance(values, (list, tuple, set, frozenset)):
        return text in {to_text(item) for item in values}
    if isinstance(values, str):
        return text in values
    return False


# =============================================================================
# Numbers
# =============================================================================


def is_int(value: Any, argument: Any = None) -> bool:
    """The value is an integer, optionally within ``{"min": ..., "max": ...}``."""
    text = to_text(value)
    if not INT_PATTERN.match(text):
        return False
    try:
        number = int(text)
    except ValueError:
        return False
    return _in_bounds(number, options(argument))


def is_float(value: Any, argument: Any = None) -> bool:
    """The value is a float, optionally within ``{"min": ..., "max": ...}``."""
    text = to_text(value)
    if text in ("", ".") or not FLOAT_PATTERN.match(text):
        return False
    try:
        number = float(text)
    except ValueError:
        return False
    return _in_bounds(number, options(argument))


def is_numeric(value: Any, _: Any = None) -> bool:
    """The value contains only digits, with an optional sign."""
    return bool(NUMERIC_PATTERN.match(to_text(value)))


def is_divisible_by(value: Any, number: Any) -> bool:
    text = to_text(value)
    try:
        dividend = float(text)
        divisor = int(to_text(number))
    except ValueError:
        return False
    if divisor == 0 or math.isnan(dividend):
        return False
    return dividend % divisor == 0


def is_hexadecimal(value: Any, _: Any = None) -> bool:
    return bool(HEXADECIMAL_PATTERN.match(to_text(value)))


def is_hex_color(value: Any, _: Any = None) -> bool:
    return bool(HEX_COLOR_PATTERN.match(to_text(value)))


def is_boolean(value: Any, _: Any = None) -> bool:
    return to_text(value) in ("true", "false", "1", "0")


def is_currency(value: Any, argument: Any = None) -> bool:
    """The value is a currency amount.

    Options (defaults): symbol ("$"), require_symbol (False),
    allow_space_after_symbol (False), symbol_after_digits (False),
    allow_negatives (True), thousands_separator (","),
    decimal_separator (".").
    """
    opts = options(argument)
    symbol = re.escape(opts.get("symbol", "$"))
    space = " ?" if opts.get("allow_space_after_symbol") else ""
    thousands = re.escape(opts.get("thousands_separator", ","))
    decimal = re.escape(opts.get("decimal_separator", "."))
    sign = "-?" if opts.get("allow_negatives", True) else ""

    amount = rf"(?:0|[1-9]\d{{0,2}}(?:{thousands}\d{{3}})*|[1-9]\d*)(?:{decimal}\d{{2}})?"
    symbol_part = f"(?:{symbol}{space})" + ("" if opts.get("require_symbol") else "?")
    if opts.get("symbol_after_digits"):
        pattern = rf"^{sign}{amount}(?:{space}{symbol})" + ("" if opts.get("require_symbol") else "?") + "$"
    else:
        pattern = rf"^(?:{sign}{symbol_part}|{symbol_part}{sign}){amount}$"
    return bool(re.match(pattern, to_text(value)))


# =============================================================================
# Dates
# =============================================================================


def is_date(value: Any, _: Any = None) -> bool:
    return parse_date(value) is not None


def is_after(value: Any, argument: Any = None) -> bool:
    """The value is a date after the argument date (default: now)."""
    moment = parse_date(value)
    reference_raw = scalar(argument)
    reference = parse_date(reference_raw) if reference_raw is not None else datetime.now(timezone.utc)
    if moment is None or reference is None:
        return False
    return _as_utc(moment) > _as_utc(reference)


def is_before(value: Any, argument: Any = None) -> bool:
    """The value is a date before the argument date (default: now)."""
    moment = parse_date(value)
    reference_raw = scalar(argument)
    reference = parse_date(reference_raw) if reference_raw is not None else datetime.now(timezone.utc)
    if moment is None or reference is None:
        return False
    return _as_utc(moment) < _as_utc(reference)


# =============================================================================
# Identifiers and formats
# =============================================================================


def is_fqdn(value: Any, argument: Any = None) -> bool:
    """The value is a fully qualified domain name.

    Options (defaults): require_tld (True), allow_underscores (False),
    allow_trailing_dot (False).
    """
    opts = options(argument)
    text = to_text(value)
    if opts.get("allow_trailing_dot") and text.endswith("."):
        text = text[:-1]

    parts = text.split(".")
    if opts.get("require_tld", True):
        tld = parts.pop()
        if not parts or not TLD_PATTERN.match(tld):
            return False

    for part in parts:
        if opts.get("allow_underscores"):
            if "__" in part:
                return False
            part = part.replace("_", "")
        if not DOMAIN_LABEL_PATTERN.match(part):
            return False
        if part.startswith("-") or part.endswith("-") or "---" in part:
            return False
    return True


def is_email(value: Any, argument: Any = None) -> bool:
    """The value is an email address.

    Options (defaults): allow_display_name (False),
    allow_utf8_local_part (True), require_tld (True).
    """
    opts = options(argument)
    text = to_text(value)

    if opts.get("allow_display_name"):
        display = DISPLAY_NAME_PATTERN.match(text)
        if display:
            text = display.group(1)

    if "@" not in text:
        return False
    local, domain = text.rsplit("@", 1)
    if not local or len(local) > 64 or len(domain) > 254:
        return False
    if not is_fqdn(domain.lower(), {"require_tld": opts.get("require_tld", True)}):
        return False

    pattern = EMAIL_LOCAL_UTF8_PATTERN if opts.get("allow_utf8_local_part", True) else EMAIL_LOCAL_PATTERN
    return bool(pattern.match(local))


def is_ip(value: Any, version: Any = None) -> bool:
    """The value is an IP address, optionally of version 4 or 6."""
    try:
        address = ipaddress.ip_address(to_text(value))
    except ValueError:
        return False
    wanted = scalar(version)
    if wanted is None:
        return True
    return str(address.version) == to_text(wanted)


def is_url(value: Any, argument: Any = None) -> bool:
    """The value is a URL.

    Options (defaults): protocols (["http", "https", "ftp"]),
    require_tld (True), require_protocol (False), allow_underscores
    (False), host_whitelist (None), host_blacklist (None),
    allow_trailing_dot (False), allow_protocol_relative_urls (False).
    """
    opts = options(argument)
    url = to_text(value)
    if not url or len(url) >= 2083 or re.search(r"\s", url) or url.startswith("mailto:"):
        return False

    if "://" in url:
        protocol, url = url.split("://", 1)
        if protocol.lower() not in opts.get("protocols", ("http", "https", "ftp")):
            return False
    elif opts.get("require_protocol"):
        return False
    elif url.startswith("//"):
        if not opts.get("allow_protocol_relative_urls"):
            return False
        url = url[2:]

    url = url.split("#", 1)[0].split("?", 1)[0]
    host = url.split("/", 1)[0]
    if not host:
        return False

    if "@" in host:
        auth, host = host.rsplit("@", 1)
        if auth.count(":") > 1:
            return False

    hostname, _, port = host.partition(":")
    if port and (not (port.isascii() and port.isdigit()) or not 0 < int(port) <= 65535):
        return False
    if ":" in host and not port:
        return False

    if not (is_ip(hostname) or is_fqdn(hostname, opts) or hostname == "localhost"):
        return False

    whitelist = opts.get("host_whitelist")
    if whitelist and hostname not in whitelist:
        return False
    blacklist = opts.get("host_blacklist")
    if blacklist and hostname in blacklist:
        return False
    return True


def is_uuid(value: Any, version: Any = None) -> bool:
    """The value is a UUID, optionally of version 3, 4 or 5."""
    wanted = scalar(version)
    if wanted is not None:
        try:
            wanted = int(to_text(wanted))
        except ValueError:
            return False
    pattern = UUID_PATTERNS.get(wanted)
    return bool(pattern and pattern.match(to_text(value)))


def is_mongo_id(value: Any, _: Any = None) -> bool:
    """The value is a hex-encoded MongoDB ObjectId."""
    text = to_text(value)
    return len(text) == 24 and is_hexadecimal(text)


def is_base64(value: Any, _: Any = None) -> bool:
    text = to_text(value)
    return len(text) % 4 == 0 and bool(BASE64_PATTERN.match(text))


def is_json(value: Any, _: Any = None) -> bool:
    """The value is JSON text for an object or array."""
    try:
        parsed = json.loads(to_text(value))
    except ValueError:
        return False
    return isinstance(parsed, (dict, list))


def is_credit_card(value: Any, _: Any = None) -> bool:
    digits = re.sub(r"[^0-9]+", "", to_text(value))
    return bool(CREDIT_CARD_PATTERN.match(digits)) and _luhn(digits)


def is_isbn(value: Any, version: Any = None) -> bool:
    """The value is an ISBN-10 or ISBN-13 (or the requested version)."""
    text = re.sub(r"[\s-]+", "", to_text(value))
    wanted = scalar(version)
    if wanted is None:
        return is_isbn(text, 10) or is_isbn(text, 13)

    wanted = to_text(wanted)
    if wanted == "10":
        if not re.match(r"^\d{9}[\dX]$", text):
            return False
        checksum = sum((index + 1) * int(digit) for index, digit in enumerate(text[:9]))
        checksum += 100 if text[9] == "X" else 10 * int(text[9])
        return checksum % 11 == 0
    if wanted == "13":
        if not re.match(r"^\d{13}$", text):
            return False
        checksum = sum(int(digit) * (1 if index % 2 == 0 else 3) for index, digit in enumerate(text[:12]))
        return (10 - checksum % 10) % 10 == int(text[12])
    return False


def is_isin(value: Any, _: Any = None) -> bool:
    """The value is an International Securities Identification Number."""
    text = to_text(value)
    if not ISIN_PATTERN.match(text):
        return False
    digits = "".join(str(int(char, 36)) for char in text)
    return _luhn(digits)


def is_mobile_phone(value: Any, locale: Any = None) -> bool:
    """The value is a mobile phone number for *locale* (e.g. "en-US")."""
    pattern = MOBILE_PHONE_PATTERNS.get(to_text(scalar(locale)))
    return bool(pattern and pattern.match(to_text(value)))


# =============================================================================
# Ad-hoc
# =============================================================================


def custom(value: Any, predicate: Any) -> bool:
    """Run an ad-hoc predicate given as the directive argument."""
    return bool(predicate(value))


BUILTIN_VALIDATORS = {
    "contains": contains,
    "equals": equals,
    "isAfter": is_after,
    "isAlpha": is_alpha,
    "isAlphanumeric": is_alphanumeric,
    "isAscii": is_ascii,
    "isBase64": is_base64,
    "isBefore": is_before,
    "isBoolean": is_boolean,
    "isByteLength": is_byte_length,
    "isCreditCard": is_credit_card,
    "isCurrency": is_currency,
    "isDate": is_date,
    "isDivisibleBy": is_divisible_by,
    "isEmail": is_email,
    "isFQDN": is_fqdn,
    "isFloat": is_float,
    "isFullWidth": is_full_width,
    "isHalfWidth": is_half_width,
    "isHexColor": is_hex_color,
    "isHexadecimal": is_hexadecimal,
    "isIP": is_ip,
    "isISBN": is_isbn,
    "isISIN": is_isin,
    "isIn": is_in,
    "isInt": is_int,
    "isJSON": is_json,
    "isLength": is_length,
    "isLowercase": is_lowercase,
    "isMobilePhone": is_mobile_phone,
    "isMongoId": is_mongo_id,
    "isMultibyte": is_multibyte,
    "isNull": is_null,
    "isNumeric": is_numeric,
    "isSurrogatePair": is_surrogate_pair,
    "isURL": is_url,
    "isUUID": is_uuid,
    "isUppercase": is_uppercase,
    "isVariableWidth": is_variable_width,
    "matches": matches,
    "validate": custom,
}


def register_builtin_validators(registry: "ValidatorRegistry") -> None:
    """Register all built-in validators with a registry."""
    registry.register_validators(BUILTIN_VALIDATORS)

import math
import re
from decimal import Decimal

# Longest numeric prefix, the way a browser's parseFloat reads user input ("100abc" -> 100)
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))")


def leading_float(text) -> float | None:
    """
    Parses the leading number of a string. Returns None when the string does not
    start with a number, so callers can treat it as "condition not met".
    """
    if text is None:
        return None
    match = _LEADING_FLOAT.match(str(text))
    if not match:
        return None
    return float(match.group(1).replace("Infinity", "inf"))


def as_number(value) -> float | None:
    """Coerces a threshold (number or numeric string) to float, None if it is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def is_numeric(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _float_text(value: float) -> str:
    # Fixed notation between 1e-6 and 1e21, exponent form ("1e-7", "1.5e+21") outside
    number = Decimal(repr(value))
    if 1e-6 <= abs(value) < 1e21:
        text = format(number, "f")
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text
    sign, digits, exponent = number.normalize().as_tuple()
    exponent += len(digits) - 1
    mantissa = str(digits[0])
    if len(digits) > 1:
        mantissa += "." + "".join(str(d) for d in digits[1:])
    return f"{'-' if sign else ''}{mantissa}e{'+' if exponent >= 0 else '-'}{abs(exponent)}"


def as_text(value) -> str:
    """
    Renders a value the way the dashboard displays it: integral floats drop
    their trailing ".0" (150.0 -> "150"), small prices stay in fixed notation
    (0.00001234), booleans are lower-case.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return _float_text(value)
    return str(value)

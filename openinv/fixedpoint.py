"""Signed 32-bit fixed-point arithmetic with five fractional bits."""

from itertools import takewhile

FRAC_DIGITS = 5
FRAC_FAC = 1 << FRAC_DIGITS
FRAC_MASK = FRAC_FAC - 1
UTOA_FRACDEC = 100

_U32 = 0xFFFFFFFF
_DIGITS = frozenset("0123456789")
_HYPOT_LIMIT = 16383


def _trunc_div(a, b):
    """Integer division rounding toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def from_float(value):
    """Convert a float to fixed point, truncating toward zero."""
    return int(value * FRAC_FAC)


def from_int(value):
    """Convert an integer to fixed point."""
    return value << FRAC_DIGITS


def to_int(value):
    """Return the integer part of a fixed-point value (floor)."""
    return value >> FRAC_DIGITS


def to_float(value):
    """Convert a fixed-point value to float."""
    return value / FRAC_FAC


def fp_mul(a, b):
    """Multiply two fixed-point values."""
    return (a * b) >> FRAC_DIGITS


def fp_div(a, b):
    """Divide two fixed-point values, rounding toward zero."""
    return _trunc_div(a << FRAC_DIGITS, b)


def _leading_digits(text):
    return "".join(takewhile(lambda ch: ch in _DIGITS, text))


def fp_itoa(value):
    """Format a fixed-point value with two decimal places (truncated)."""
    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    natural = magnitude >> FRAC_DIGITS
    frac = (UTOA_FRACDEC * (magnitude & FRAC_MASK)) >> FRAC_DIGITS
    zeros = []
    dec = UTOA_FRACDEC // 10
    while dec > 1:
        if frac // dec == 0:
            zeros.append("0")
        dec //= 10
    return f"{sign}{natural}.{''.join(zeros)}{frac}"


def fp_atoi(text, frac_digits=FRAC_DIGITS):
    """Parse a decimal string into a fixed-point value with frac_digits bits."""
    sign = 1
    if text.startswith("-"):
        sign = -1
        text = text[1:]
    int_part = _leading_digits(text)
    rest = text[len(int_part):]
    natural = int(int_part) if int_part else 0
    frac = 0
    if rest:
        div = 10
        for ch in _leading_digits(rest[1:]):
            frac += (div // 2 + (int(ch) << frac_digits)) // div
            div *= 10
    return sign * ((natural << frac_digits) + frac)


def fp_sqrt(rad):
    """Square root of an unsigned fixed-point value by Newton iteration."""
    rad &= _U32
    root = rad >> (4 if rad < 1000 else 8)
    root = max(root, from_int(1))
    while True:
        previous = root
        root = (root + ((rad << FRAC_DIGITS) & _U32) // root) >> 1
        if ((previous - root) & _U32) <= 1:
            return root


def _log2_approx(x, loop_limit):
    if loop_limit == 0:
        return from_int(1)
    if x == from_int(1):
        return 0
    squarings = 0
    while x < from_int(2):
        x = fp_mul(x, x)
        squarings += 1
    p = FRAC_FAC >> squarings
    return fp_mul(p, from_int(1) + _log2_approx(_trunc_div(x, 2), loop_limit - 1))


def fp_ln(x):
    """Natural logarithm of an unsigned integer as fixed point; -1 for zero."""
    x &= _U32
    if x == 0:
        return -1
    leading_zeros = 32 - x.bit_length()
    ln2 = from_float(0.6931471806)
    result = from_int(31 - leading_zeros)
    x = ((x << leading_zeros) & _U32) >> (32 - FRAC_DIGITS - 1)
    result += _log2_approx(x, 5)
    return fp_mul(ln2, result)


def _hypot(*values):
    shift = 0
    while any(v > _HYPOT_LIMIT or v < -_HYPOT_LIMIT for v in values):
        shift += 1
        values = tuple(_trunc_div(v, 2) for v in values)
    total = sum(fp_mul(v, v) for v in values)
    return (fp_sqrt(total) << shift) & _U32


def fp_hypot2(a, b):
    """sqrt(a² + b²), scaling the inputs down to avoid overflow."""
    return _hypot(a, b)


def fp_hypot3(a, b, c):
    """sqrt(a² + b² + c²), scaling the inputs down to avoid overflow."""
    return _hypot(a, b, c)


def median3(a, b, c):
    """Median of three values."""
    return sorted((a, b, c))[1]
"""Strict integer parsing for command-line operands."""

from __future__ import annotations

_SPACE = " \t\n\v\f\r"
_BLANKS = " \t"
_DEC_DIGITS = frozenset("0123456789")
_OCT_DIGITS = frozenset("01234567")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

INT_BITS = 32
LONG_BITS = 64


class CliError(Exception):
    """A fatal command-line error whose message is meant for the user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _scan_int(text: str, pos: int = 0, bits: int = LONG_BITS) -> tuple[int, int, bool]:
    """Scan an integer the way C's strtol does with base 0.

    Returns ``(value, end, overflow)``. When no digits are found the value is
    0 and ``end`` equals ``pos``. On overflow the value is clamped to the
    signed range of ``bits`` bits.
    """
    i = pos
    n = len(text)
    while i < n and text[i] in _SPACE:
        i += 1
    negative = False
    if i < n and text[i] in "+-":
        negative = text[i] == "-"
        i += 1
    if text.startswith(("0x", "0X"), i) and i + 2 < n and text[i + 2] in _HEX_DIGITS:
        base, digits = 16, _HEX_DIGITS
        i += 2
    elif i < n and text[i] == "0":
        base, digits = 8, _OCT_DIGITS
    else:
        base, digits = 10, _DEC_DIGITS
    start = i
    while i < n and text[i] in digits:
        i += 1
    if i == start:
        return 0, pos, False
    value = int(text[start:i], base)
    if negative:
        value = -value
    low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    if value < low:
        return low, i, True
    if value > high:
        return high, i, True
    return value, i, False


def _check_rest(text: str, end: int) -> None:
    rest = text[end:].lstrip(_BLANKS)
    if rest:
        raise CliError(f"{text}: Trailing characters: `{rest}'")


def parse_int(text: str) -> int:
    """Parse a decimal, octal (0...) or hex (0x...) int that fits 32 bits."""
    value, end, overflow = _scan_int(text, 0, LONG_BITS)
    if overflow:
        raise CliError(f"strtol {text}: Numerical result out of range")
    if not -(1 << (INT_BITS - 1)) <= value < (1 << (INT_BITS - 1)):
        raise CliError(f"{value} unrepresentable as int")
    _check_rest(text, end)
    return value


def parse_long(text: str) -> int:
    """Parse a decimal, octal (0...) or hex (0x...) int that fits 64 bits."""
    value, end, overflow = _scan_int(text, 0, LONG_BITS)
    if overflow:
        raise CliError(f"strtoll {text}: Numerical result out of range")
    _check_rest(text, end)
    return value
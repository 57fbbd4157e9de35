"""Small text helpers used by the parser and the builtins."""

from __future__ import annotations

_WHITESPACE = " \t\n\v\f\r"


def _wrap(value: int, bits: int) -> int:
    """Wrap an integer to a signed two's complement value of ``bits`` bits."""
    mask = (1 << bits) - 1
    value &= mask
    if value >> (bits - 1):
        value -= 1 << bits
    return value


def atoi(text: str) -> int:
    """Parse a leading integer the way the C library's atoi does.

    Leading whitespace is skipped, one optional sign is accepted and digits
    are read until the first non-digit. The magnitude is accumulated in a
    64-bit value and then truncated to a 32-bit signed integer before the
    sign is applied, so very large inputs wrap around.
    """
    index = 0
    length = len(text)
    while index < length and text[index] in _WHITESPACE:
        index += 1
    sign = 1
    if index < length and text[index] in "+-":
        if text[index] == "-":
            sign = -1
        index += 1
    result = 0
    while index < length and "0" <= text[index] <= "9":
        result = _wrap(result * 10 + (ord(text[index]) - ord("0")), 64)
        index += 1
    return _wrap(_wrap(result, 32) * sign, 32)


def split_words(text: str, sep: str) -> list[str]:
    """Split ``text`` on ``sep``, dropping empty pieces."""
    return [word for word in text.split(sep) if word]


def trim(text: str, chars: str) -> str:
    """Remove every character of ``chars`` from both ends of ``text``."""
    if not chars:
        return text
    return text.strip(chars)
"""Syntax checks and preparation of a command line before it is split."""

from __future__ import annotations

from minishell.textutil import trim

_SPECIAL = " <|>;&*(){}#[]\t"
_OPERATORS = "><|"
_FORBIDDEN = "*;()&"
_MASK_BASE = 0xF000


class ShellSyntaxError(Exception):
    """A command line the shell refuses to run; it sets exit status 2."""

    status = 2

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _unexpected(token: str) -> ShellSyntaxError:
    return ShellSyntaxError(f"minishell: syntax error near unexpected token `{token}'")


def is_special(char: str, flag: int = 0) -> bool:
    """Return True if ``char`` must be protected inside quotes.

    ``flag`` 1 also counts ``"``, 2 also counts ``'`` and 3 counts both.
    """
    if flag == 1 and char == '"':
        return True
    if flag == 2 and char == "'":
        return True
    if flag == 3 and char in "'\"":
        return True
    return len(char) == 1 and char in _SPECIAL


def mask(char: str) -> str:
    """Return a stand-in for ``char`` that the splitter and checks ignore."""
    code = ord(char)
    if code < 0x80:
        return chr(_MASK_BASE + code)
    return char


def _original(char: str) -> str | None:
    code = ord(char)
    if _MASK_BASE <= code < _MASK_BASE + 0x80:
        return chr(code - _MASK_BASE)
    return None


def unmask(text: str, flag: int = 3) -> str:
    """Restore masked characters whose original is special under ``flag``."""
    out = []
    for ch in text:
        original = _original(ch)
        if original is not None and is_special(original, flag):
            out.append(original)
        else:
            out.append(ch)
    return "".join(out)


def check_quotes_and_ends(line: str) -> None:
    """Reject lines that start or end with an operator or leave a quote open."""
    if not line:
        return
    if line[0] == "|" or line[-1] == "|":
        raise _unexpected("|")
    if line[-1] in "<>":
        raise _unexpected("newline")
    in_double = in_single = False
    for ch in line:
        if ch == '"' and not in_single:
            in_double = not in_double
        elif ch == "'" and not in_double:
            in_single = not in_single
    if in_double or in_single:
        raise ShellSyntaxError("unclosed qoute")


def check_operators(line: str) -> None:
    """Reject operators that follow each other and unsupported characters."""
    for i, ch in enumerate(line):
        following = line[i + 1 : i + 2]
        after = line[i + 2 : i + 3]
        if ch == "|" and following == " " and after and after in _OPERATORS:
            continue
        if ch in _OPERATORS and following == " " and after and after in _OPERATORS:
            raise _unexpected(after)
    for ch in line:
        if ch in _FORBIDDEN:
            raise _unexpected(ch)


def mask_quoted(line: str) -> str:
    """Mask the special characters that stand between quotes."""
    in_double = in_single = False
    flag = 0
    out = []
    for ch in line:
        if ch == '"' and not in_single:
            in_double = not in_double
            flag = 2
        elif ch == "'" and not in_double:
            in_single = not in_single
            flag = 1
        if (in_double or in_single) and is_special(ch, flag):
            ch = mask(ch)
        out.append(ch)
    return "".join(out)


def space_redirections(line: str) -> str:
    """Put spaces around ``<``, ``>``, ``<<`` and ``>>`` and squeeze double spaces."""
    out: list[str] = []
    length = len(line)
    i = 0
    while i < length:
        ch = line[i]
        if ch == " " and i + 1 < length and line[i + 1] == " ":
            i += 1
            continue
        if ch in "<>":
            if i > 0 and line[i - 1] != " ":
                out.append(" ")
            out.append(ch)
            if i + 1 < length and line[i + 1] == ch:
                i += 1
                out.append(ch)
            if i + 1 < length and line[i + 1] != " ":
                out.append(" ")
            i += 1
            if i >= length:
                break
            ch = line[i]
        out.append(ch)
        i += 1
    return "".join(out)


def preprocess(line: str) -> str:
    """Trim, check and normalise a command line; may return an empty string.

    Raises ShellSyntaxError for lines the shell refuses.
    """
    line = trim(line, " \t")
    check_quotes_and_ends(line)
    line = space_redirections(mask_quoted(line))
    check_operators(line)
    return line
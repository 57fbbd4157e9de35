"""Variable expansion and quote removal for command lines and here-documents."""

from __future__ import annotations

from typing import TYPE_CHECKING

from minishell.syntax import mask, unmask

if TYPE_CHECKING:
    from minishell.environment import Environment
    from minishell.state import ShellState

_QUOTES = "'\""


def _is_alnum(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


def _mask_quotes(value: str) -> str:
    """Mask quote characters so later quote removal leaves them alone."""
    return "".join(mask(ch) if ch in _QUOTES else ch for ch in value)


def _after_heredoc(text: str, dollar: int) -> bool:
    """Return True if the ``$`` at ``dollar`` starts a here-document limiter."""
    before = dollar - 1
    return (
        before > 2
        and text[before] == " "
        and text[before - 1] == "<"
        and text[before - 2] == "<"
    )


def _after_redirection(text: str, dollar: int) -> bool:
    """Return True if the ``$`` at ``dollar`` names a redirection target."""
    return dollar > 3 and text[dollar - 2] in "<>" and text[dollar - 3] != "<"


def _expand_dollar(text: str, dollar: int, out: list[str], state: "ShellState") -> int:
    """Expand the reference starting at ``dollar`` into ``out``; return the next index."""
    start = dollar + 1
    if _after_heredoc(text, dollar):
        end = text.find(" ", dollar)
        if end == -1:
            end = len(text)
        out.append(text[dollar:end])
        return end
    first = text[start]
    if first == "?":
        out.append(str(state.exit_status))
        return start + 1
    if first == "_":
        out.append(state.last_arg)
        state.last_arg = "".join(out)
        return start + 1
    end = start
    while end < len(text) and _is_alnum(text[end]):
        end += 1
    value = state.environment.get(text[start:end])
    if value is None:
        if _after_redirection(text, dollar):
            out.append(text[dollar:end])
    else:
        out.append(_mask_quotes(value))
    return end


def expand_line(text: str, state: "ShellState") -> str:
    """Expand ``$NAME``, ``$?`` and ``$_`` outside single quotes.

    Unset variables disappear, except after ``<`` or ``>`` where the reference
    is kept so that the redirection can be reported as ambiguous. A reference
    that follows ``<<`` is the here-document limiter and stays as written.
    Quotes inside expanded values are masked.
    """
    out: list[str] = []
    length = len(text)
    i = 0
    while i < length:
        ch = text[i]
        if ch == "'":
            end = text.find("'", i + 1)
            if end == -1:
                out.append(text[i:])
                break
            out.append(text[i : end + 1])
            i = end + 1
            continue
        following = text[i + 1 : i + 2]
        if ch == "$" and following and (_is_alnum(following) or following in "?_"):
            i = _expand_dollar(text, i, out, state)
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def expand_heredoc_line(line: str, env: "Environment") -> str:
    """Expand ``$NAME`` in a here-document line; unknown names expand to nothing.

    A ``$`` not followed by a letter or digit is dropped.
    """
    out: list[str] = []
    length = len(line)
    i = 0
    while i < length:
        ch = line[i]
        if ch != "$":
            out.append(ch)
            i += 1
            continue
        start = end = i + 1
        while end < length and _is_alnum(line[end]):
            end += 1
        value = env.get(line[start:end]) if end > start else None
        if value:
            out.append(value)
        i = end
    return "".join(out)


def remove_quotes(token: str) -> str:
    """Drop the quote pairs of ``token``, keeping what stands between them."""
    out: list[str] = []
    length = len(token)
    i = 0
    while i < length:
        ch = token[i]
        if ch in _QUOTES:
            end = i + 1
            while end < length and token[end] not in _QUOTES:
                end += 1
            out.append(token[i + 1 : end])
            i = end + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def remove_quotes_from_limiter(name: str) -> tuple[str, bool]:
    """Strip quotes from a here-document limiter.

    Returns the limiter and whether it was quoted; a quoted limiter turns
    off expansion inside the here-document.
    """
    if not any(ch in _QUOTES for ch in name):
        return name, False
    stripped = "".join(ch for ch in name if ch not in _QUOTES)
    return unmask(stripped, 3), True
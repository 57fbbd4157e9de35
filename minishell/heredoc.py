"""Redirections and the here-documents collected while a line is parsed."""

from __future__ import annotations

import contextlib
import enum
import os
import tempfile
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from minishell.errors import ErrorKind, report
from minishell.expansion import expand_heredoc_line, remove_quotes_from_limiter

if TYPE_CHECKING:
    from minishell.state import ShellState

ReadLine = Callable[[str], Optional[str]]

_HEX = "0123456789abcdef"
_NAME_LENGTH = 11
PROMPT = "> "


class RedirType(enum.Enum):
    """The kinds of redirection a command can carry."""

    INPUT = 0
    OUTPUT = 1
    APPEND = 2
    HERE_DOC = 3


@dataclass
class Redirection:
    """One redirection of a command.

    For a here-document ``filename`` is the temporary file holding its text,
    ``limiter`` the line that ended it and ``quoted`` whether expansion was off.
    """

    kind: RedirType
    filename: str
    limiter: str | None = None
    quoted: bool = False


def generate_filename(directory: str | None = None) -> str:
    """Return a random hidden file name in ``directory`` (the temp dir by default)."""
    if directory is None:
        directory = tempfile.gettempdir()
    name = "".join(_HEX[byte % 16] for byte in os.urandom(_NAME_LENGTH))
    return os.path.join(str(directory), "." + name)


def collect_heredoc(
    limiter: str, state: "ShellState", read_line: ReadLine
) -> Redirection:
    """Read here-document lines until ``limiter`` and store them in a file.

    ``read_line`` is called with the prompt and returns None at end of input,
    which ends the document with a warning. A KeyboardInterrupt removes the
    file, sets exit status 130 and propagates.
    """
    text, quoted = remove_quotes_from_limiter(limiter)
    path = generate_filename()
    try:
        fd = os.open(path, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, 0o666)
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape") as handle:
            while True:
                line = read_line(PROMPT)
                if line is None:
                    report(ErrorKind.HER_DOC_ERR, text)
                    break
                if line == text:
                    break
                if "$" in line and not quoted:
                    line = expand_heredoc_line(line, state.environment)
                handle.write(line + "\n")
    except KeyboardInterrupt:
        state.exit_status = 130
        with contextlib.suppress(FileNotFoundError):
            os.unlink(path)
        raise
    return Redirection(RedirType.HERE_DOC, path, limiter=text, quoted=quoted)


def new_redirection(
    target: str,
    kind: RedirType,
    state: "ShellState",
    read_line: ReadLine | None,
) -> Redirection:
    """Create a redirection; a here-document is read at once."""
    if kind is RedirType.HERE_DOC:
        if read_line is None:
            raise ValueError("a here-document needs a line reader")
        return collect_heredoc(target, state, read_line)
    return Redirection(kind, target)
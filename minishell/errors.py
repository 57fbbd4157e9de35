"""Shell error kinds, their messages and the exit statuses they set."""

from __future__ import annotations

import enum
import sys
from typing import TextIO

PREFIX = "minishell: "


class ErrorKind(enum.Enum):
    """Every error the shell reports on standard error."""

    PIPE_ERR = enum.auto()
    FORK_ERR = enum.auto()
    ACCESS = enum.auto()
    CMD_NOT_FOUND = enum.auto()
    EXECVE = enum.auto()
    NUM_ARGS = enum.auto()
    CD_TOO_ARGS = enum.auto()
    HOME_NOT_SET = enum.auto()
    OLDPWD_NOT_SET = enum.auto()
    CHDIR = enum.auto()
    ENV_ERR = enum.auto()
    EXPORT_ERR = enum.auto()
    NO_SUCH_FILE = enum.auto()
    PERR_DENIED = enum.auto()
    AMBIGUOUS = enum.auto()
    DIR_ERR = enum.auto()
    EXIT_TOO_ARG = enum.auto()
    NUMERIC_ARGS = enum.auto()
    HER_DOC_ERR = enum.auto()


_FIXED = {
    ErrorKind.PIPE_ERR: PREFIX + "error in open pipe",
    ErrorKind.FORK_ERR: PREFIX + "error in fork",
    ErrorKind.EXECVE: PREFIX + "error in execve",
    ErrorKind.HOME_NOT_SET: PREFIX + "cd: HOME not set",
    ErrorKind.CD_TOO_ARGS: PREFIX + "cd : too many arguments",
    ErrorKind.OLDPWD_NOT_SET: PREFIX + "cd: OLDPWD not set",
    ErrorKind.NUM_ARGS: PREFIX + "no args needed",
    ErrorKind.EXIT_TOO_ARG: PREFIX + "exit: too many arguments",
}

_SUFFIXED = {
    ErrorKind.ACCESS: ": Permission denied",
    ErrorKind.CHDIR: ": No such file or directory",
    ErrorKind.NO_SUCH_FILE: ": No such file or directory",
    ErrorKind.PERR_DENIED: ": Permission denied",
    ErrorKind.AMBIGUOUS: ": ambiguous redirect",
    ErrorKind.DIR_ERR: ": Is a directory",
    ErrorKind.NUMERIC_ARGS: ": numeric argument required",
}

_STATUS = {
    ErrorKind.HOME_NOT_SET: 1,
    ErrorKind.CD_TOO_ARGS: 1,
    ErrorKind.CHDIR: 1,
    ErrorKind.NO_SUCH_FILE: 1,
    ErrorKind.PERR_DENIED: 126,
}


def message(kind: ErrorKind, subject: str | None = None) -> str:
    """Return the text reported for ``kind`` about ``subject``, without newline."""
    name = subject or ""
    if kind in _FIXED:
        return _FIXED[kind]
    if kind in _SUFFIXED:
        return PREFIX + name + _SUFFIXED[kind]
    if kind is ErrorKind.CMD_NOT_FOUND:
        if name == ".":
            return PREFIX + ".: filename argument required"
        return PREFIX + name + ": command not found"
    if kind is ErrorKind.ENV_ERR:
        return PREFIX + "env: \u2019" + name + "\u2019: No such file or directory"
    if kind is ErrorKind.EXPORT_ERR:
        return PREFIX + "export: `" + name + "': not a valid identifier"
    if kind is ErrorKind.HER_DOC_ERR:
        return (
            "> " + PREFIX + "warning: "
            "here-document delimited by end-of-file (wanted `" + name + "')"
        )
    raise ValueError(f"unknown error kind: {kind!r}")


def status_for(kind: ErrorKind, subject: str | None = None) -> int | None:
    """Return the exit status that reporting ``kind`` sets, or None if unchanged."""
    if kind is ErrorKind.CMD_NOT_FOUND:
        return 2 if subject == "." else 127
    return _STATUS.get(kind)


def report(
    kind: ErrorKind, subject: str | None = None, stream: TextIO | None = None
) -> int | None:
    """Write the message for ``kind`` to ``stream`` (stderr by default).

    Returns the exit status the error sets, or None if it leaves it unchanged.
    """
    out = stream if stream is not None else sys.stderr
    out.write(message(kind, subject) + "\n")
    out.flush()
    return status_for(kind, subject)
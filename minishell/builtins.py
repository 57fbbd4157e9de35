"""The commands the shell runs itself: echo, cd, pwd, env, export, unset, exit."""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

from minishell.environment import is_identifier, parse_assignment
from minishell.errors import ErrorKind, report
from minishell.textutil import atoi

if TYPE_CHECKING:
    from minishell.environment import Environment
    from minishell.state import ShellState


class ShellExit(Exception):
    """Raised by ``exit``: the shell should stop with ``status``."""

    def __init__(self, status: int) -> None:
        super().__init__(status)
        self.status = status & 0xFF


def _out(stream: TextIO | None) -> TextIO:
    return sys.stdout if stream is None else stream


def is_n_flag(arg: str) -> bool:
    """Return True for ``-n``, ``-nn`` and so on."""
    return len(arg) > 1 and arg[0] == "-" and all(ch == "n" for ch in arg[1:])


def is_numeric(text: str) -> bool:
    """Return True if ``text`` is an optional sign followed only by digits."""
    if not text:
        return False
    body = text[1:] if text[0] in "+-" else text
    return all("0" <= ch <= "9" for ch in body)


def echo(args: list[str], state: "ShellState", out: TextIO | None = None) -> int:
    """Print the arguments separated by spaces; leading ``-n`` flags drop the newline."""
    out = _out(out)
    words = args[1:]
    newline = True
    while words and is_n_flag(words[0]):
        newline = False
        words = words[1:]
    out.write(" ".join(words) + ("\n" if newline else ""))
    state.exit_status = 0
    return 0


def _getcwd() -> str | None:
    try:
        return os.getcwd()
    except OSError:
        return None


def _print_cwd(state: "ShellState", out: TextIO) -> None:
    path = _getcwd()
    if path is None:
        path = state.cwd or ""
    out.write(path + "\n")


def _cd_target(
    target: str | None, state: "ShellState", err: TextIO | None
) -> str | None:
    if target is None or target.startswith("~"):
        path = state.environment.get("HOME")
        if path is None:
            state.exit_status = report(ErrorKind.HOME_NOT_SET, None, err) or 1
        return path
    if target.startswith("-"):
        path = state.environment.get("OLDPWD")
        if path is None:
            report(ErrorKind.OLDPWD_NOT_SET, None, err)
            state.exit_status = 1
        return path
    return target


def cd(
    args: list[str],
    state: "ShellState",
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    """Change the working directory and update PWD and OLDPWD if they exist."""
    out = _out(out)
    state.exit_status = 0
    if len(args) > 2:
        state.exit_status = report(ErrorKind.CD_TOO_ARGS, None, err) or 1
        return state.exit_status
    target = args[1] if len(args) > 1 else None
    path = _cd_target(target, state, err)
    if path is None:
        return state.exit_status
    try:
        os.chdir(path)
    except OSError:
        state.exit_status = report(ErrorKind.CHDIR, path, err) or 1
    environment = state.environment
    if "OLDPWD" in environment:
        environment.set("OLDPWD", state.cwd)
    cwd = _getcwd()
    if "PWD" in environment:
        environment.set("PWD", cwd)
    if cwd is not None:
        state.cwd = cwd
    if target == "-":
        _print_cwd(state, out)
    return state.exit_status


def pwd(state: "ShellState", out: TextIO | None = None) -> int:
    """Print the working directory, falling back to the remembered one."""
    _print_cwd(state, _out(out))
    state.exit_status = 0
    return 0


def env(
    args: list[str],
    state: "ShellState",
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    """Print the variables that have a value; arguments are refused."""
    out = _out(out)
    if len(args) > 1:
        report(ErrorKind.ENV_ERR, args[1], err)
        state.exit_status = 127
        return 127
    environment = state.environment
    hide_path = len(environment) == 4
    for key, value in environment:
        if hide_path and key == "PATH":
            continue
        if value is not None:
            out.write(f"{key}={value}\n")
    state.exit_status = 0
    return 0


def format_sorted_env(environment: "Environment") -> str:
    """Render the ``export`` listing: sorted by name, ``_`` left out."""
    if len(environment) < 2:
        return ""
    lines = []
    for key, value in sorted(environment, key=lambda item: item[0]):
        if key == "_":
            continue
        if value is None:
            lines.append(f"declare -x {key}\n")
        else:
            lines.append(f'declare -x {key}="{value}"\n')
    return "".join(lines)


def export(
    args: list[str],
    state: "ShellState",
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    """Set or declare variables; with no arguments list them sorted."""
    out = _out(out)
    state.exit_status = 0
    if len(args) < 2:
        out.write(format_sorted_env(state.environment))
        return 0
    for arg in args[1:]:
        if not arg or not (arg[0] == "_" or (arg[0].isascii() and arg[0].isalpha())):
            report(ErrorKind.EXPORT_ERR, arg, err)
            state.exit_status = 1
            continue
        assignment = parse_assignment(arg)
        if not is_identifier(assignment.key):
            report(ErrorKind.EXPORT_ERR, assignment.key, err)
            state.exit_status = 1
            continue
        state.environment.apply(assignment)
    return state.exit_status


def unset(args: list[str], state: "ShellState") -> int:
    """Remove variables; ``_`` is kept and invalid names set status 1."""
    state.exit_status = 0
    for name in args[1:]:
        if name == "_":
            continue
        if not is_identifier(name):
            state.exit_status = 1
            continue
        state.environment.unset(name)
    return state.exit_status


def exit_builtin(
    args: list[str],
    state: "ShellState",
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    """Leave the shell by raising ShellExit.

    With more than one numeric argument nothing happens except an error
    and status 1, which is returned.
    """
    out = _out(out)
    out.write("exit\n")
    out.flush()
    if len(args) < 2:
        raise ShellExit(state.exit_status)
    if not is_numeric(args[1]):
        report(ErrorKind.NUMERIC_ARGS, args[1], err)
        state.exit_status = 2
        raise ShellExit(2)
    code = atoi(args[1])
    if len(args) > 2:
        report(ErrorKind.EXIT_TOO_ARG, None, err)
        state.exit_status = 1
        return 1
    state.exit_status = code
    raise ShellExit(code)
"""Turning a command line into commands with arguments and redirections."""

from __future__ import annotations

import contextlib
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from minishell.expansion import expand_line, remove_quotes
from minishell.heredoc import ReadLine, Redirection, RedirType, new_redirection
from minishell.syntax import ShellSyntaxError, preprocess, unmask
from minishell.textutil import split_words

if TYPE_CHECKING:
    from minishell.state import ShellState

HEREDOC_LIMIT = 16

_REDIRECT_KINDS = {
    "<": RedirType.INPUT,
    ">": RedirType.OUTPUT,
    ">>": RedirType.APPEND,
    "<<": RedirType.HERE_DOC,
}


class HeredocLimitExceeded(Exception):
    """Too many here-documents on one line; the shell exits with status 2."""

    status = 2

    def __init__(self) -> None:
        super().__init__("minishell: maximum here-document count exceeded")


@dataclass
class Command:
    """One stage of a pipeline: its arguments and its redirections in order."""

    args: list[str] = field(default_factory=list)
    redirections: list[Redirection] = field(default_factory=list)

    @property
    def name(self) -> str | None:
        """The program or builtin to run, or None when there are no arguments."""
        return self.args[0] if self.args else None


def _discard(redirections: Iterable[Redirection]) -> None:
    """Remove the temporary files of here-documents already collected."""
    for redirection in redirections:
        if redirection.kind is RedirType.HERE_DOC:
            with contextlib.suppress(OSError):
                os.unlink(redirection.filename)


def build_command(
    tokens: list[str], state: "ShellState", read_line: ReadLine | None = None
) -> Command:
    """Sort the tokens of one pipeline stage into arguments and redirections.

    Each token starting with ``<`` or ``>`` takes the next token as its
    target; here-documents are read at once through ``read_line``.
    """
    command = Command()
    try:
        index = 0
        while index < len(tokens):
            token = tokens[index]
            if token[:1] not in ("<", ">"):
                command.args.append(unmask(token, 3))
                index += 1
                continue
            if state.heredoc_count > HEREDOC_LIMIT:
                state.exit_status = HeredocLimitExceeded.status
                raise HeredocLimitExceeded()
            kind = _REDIRECT_KINDS.get(token)
            if kind is not None:
                if index + 1 >= len(tokens):
                    raise ShellSyntaxError(
                        "minishell: syntax error near unexpected token `newline'"
                    )
                target = tokens[index + 1]
                if kind is not RedirType.HERE_DOC:
                    target = unmask(target, 3)
                command.redirections.append(
                    new_redirection(target, kind, state, read_line)
                )
                if kind is RedirType.HERE_DOC:
                    state.heredoc_count += 1
            index += 2
    except BaseException:
        _discard(command.redirections)
        raise
    return command


def _unquote(tokens: list[str]) -> list[str]:
    """Remove quotes from every token except a here-document limiter."""
    out: list[str] = []
    skip = False
    for token in tokens:
        if skip:
            out.append(token)
            skip = False
        else:
            out.append(remove_quotes(token))
            skip = out[-1] == "<<"
    return out


def parse_line(
    line: str, state: "ShellState", read_line: ReadLine | None = None
) -> list[Command]:
    """Parse a full command line into the commands of its pipeline.

    Returns an empty list when there is nothing to run. Raises
    ShellSyntaxError for refused lines and HeredocLimitExceeded when too
    many here-documents are given; an interrupted here-document propagates
    KeyboardInterrupt after its files are removed.
    """
    try:
        line = preprocess(line)
    except ShellSyntaxError:
        state.exit_status = ShellSyntaxError.status
        raise
    if not line:
        return []
    expanded = [expand_line(segment, state) for segment in split_words(line, "|")]
    if not expanded or not expanded[0]:
        return []
    commands: list[Command] = []
    try:
        for text in expanded:
            tokens = _unquote(split_words(text, " "))
            commands.append(build_command(tokens, state, read_line))
    except BaseException:
        for command in commands:
            _discard(command.redirections)
        raise
    if len(commands) == 1 and commands[0].args:
        state.last_arg = commands[0].args[-1]
    return commands
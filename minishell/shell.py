"""The interactive loop: read a line, parse it, run it."""

from __future__ import annotations

import signal
import sys
from typing import Optional, Sequence

from minishell.builtins import ShellExit
from minishell.errors import ErrorKind, report
from minishell.executor import cleanup, execute
from minishell.heredoc import ReadLine
from minishell.parser import Command, HeredocLimitExceeded, parse_line
from minishell.state import ShellState
from minishell.syntax import ShellSyntaxError

PROMPT = "minishell$> "


def _input_line(prompt: str) -> Optional[str]:
    try:
        return input(prompt)
    except EOFError:
        return None


def run_line(
    line: str, state: ShellState, read_line: ReadLine | None = None
) -> int:
    """Parse and run one command line; return the exit status it leaves.

    Raises ShellExit when the line asks the shell to stop.
    """
    if read_line is None:
        read_line = _input_line
    commands: list[Command] = []
    try:
        try:
            commands = parse_line(line, state, read_line)
        except ShellSyntaxError as error:
            print(error.message, flush=True)
            state.exit_status = error.status
            return state.exit_status
        except HeredocLimitExceeded as error:
            print(error, flush=True)
            state.exit_status = error.status
            raise ShellExit(error.status) from error
        except KeyboardInterrupt:
            state.exit_status = 130
            return state.exit_status
        if commands:
            execute(commands, state)
        return state.exit_status
    finally:
        cleanup(commands)
        state.heredoc_count = 0


def _enable_history() -> None:
    try:
        import readline  # noqa: F401
    except ImportError:
        pass


def _loop(state: ShellState) -> int:
    while True:
        try:
            line = input(PROMPT)
        except EOFError:
            print("exit", flush=True)
            return state.exit_status
        except KeyboardInterrupt:
            print(flush=True)
            state.exit_status = 130
            continue
        try:
            run_line(line, state, _input_line)
        except ShellExit as request:
            return request.status


def main(argv: Sequence[str] | None = None) -> int:
    """Run the interactive shell; return its exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    state = ShellState.from_environ()
    if args:
        report(ErrorKind.NUM_ARGS, args[0])
        return 1
    _enable_history()
    previous = None
    if hasattr(signal, "SIGQUIT"):
        previous = signal.signal(signal.SIGQUIT, signal.SIG_IGN)
    try:
        return _loop(state)
    finally:
        if previous is not None:
            signal.signal(signal.SIGQUIT, previous)


if __name__ == "__main__":
    sys.exit(main())
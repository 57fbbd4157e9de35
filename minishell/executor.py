"""Running parsed commands: builtins inside the shell, programs as child processes."""

from __future__ import annotations

import contextlib
import copy
import io
import os
import signal
import subprocess
import sys
import threading
from typing import TYPE_CHECKING, BinaryIO, Iterable, Iterator, Optional, TextIO, Union

from minishell import builtins
from minishell.errors import ErrorKind, message, report, status_for
from minishell.heredoc import Redirection, RedirType
from minishell.textutil import split_words

if TYPE_CHECKING:
    from minishell.environment import Environment
    from minishell.parser import Command
    from minishell.state import ShellState

_BUILTINS = frozenset({"cd", "echo", "pwd", "export", "unset", "env", "exit"})
_EXEC_FAILED = 126

# What one pipeline stage hands to the next: a readable pipe, bytes or nothing.
_Upstream = Union[BinaryIO, bytes, None]


class RedirectionError(Exception):
    """A redirection could not be set up.

    ``status`` is the exit status the error sets in the shell itself, or None
    when it leaves the status unchanged; a pipeline stage always ends with 1.
    """

    def __init__(self, kind: ErrorKind, filename: str) -> None:
        super().__init__(message(kind, filename))
        self.kind = kind
        self.filename = filename
        self.status = status_for(kind, filename)


class CommandError(Exception):
    """A program could not be found or run; ``status`` is the stage's exit status."""

    def __init__(self, kind: ErrorKind, subject: str, status: int) -> None:
        super().__init__(message(kind, subject))
        self.kind = kind
        self.subject = subject
        self.status = status


def is_builtin(name: str | None) -> bool:
    """Return True if ``name`` is a command the shell runs itself."""
    return name in _BUILTINS


def run_builtin(
    args: list[str],
    state: "ShellState",
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    """Run the builtin named by ``args[0]`` and return the exit status it sets."""
    name = args[0] if args else None
    if not is_builtin(name):
        raise ValueError(f"not a builtin: {name!r}")
    state.exit_status = 0
    if name == "cd":
        builtins.cd(args, state, out, err)
    elif name == "echo":
        builtins.echo(args, state, out)
    elif name == "pwd":
        builtins.pwd(state, out)
    elif name == "export":
        builtins.export(args, state, out, err)
    elif name == "unset":
        builtins.unset(args, state)
    elif name == "env":
        builtins.env(args, state, out, err)
    else:
        builtins.exit_builtin(args, state, out, err)
    return state.exit_status


def resolve_command(name: str, environment: "Environment") -> str:
    """Find the program to run for ``name``.

    A name holding ``/`` is used as it is once checked; other names are
    looked up in PATH. Raises CommandError when nothing can be run.
    """
    if not name or name in (".", ".."):
        raise CommandError(ErrorKind.CMD_NOT_FOUND, name, 127)
    if "/" in name:
        if os.path.isdir(name):
            raise CommandError(ErrorKind.DIR_ERR, name, 126)
        if not os.path.exists(name):
            raise CommandError(ErrorKind.NO_SUCH_FILE, name, 127)
        if not os.access(name, os.X_OK):
            raise CommandError(ErrorKind.PERR_DENIED, name, 126)
        return name
    search = environment.get("PATH")
    if search is None:
        raise CommandError(ErrorKind.NO_SUCH_FILE, name, 127)
    for directory in split_words(search, ":"):
        candidate = f"{directory}/{name}"
        if os.access(candidate, os.X_OK) and not os.path.isdir(candidate):
            return candidate
    raise CommandError(ErrorKind.CMD_NOT_FOUND, name, 127)


def _open_failure(error: OSError, filename: str) -> RedirectionError:
    if isinstance(error, PermissionError):
        return RedirectionError(ErrorKind.PERR_DENIED, filename)
    if isinstance(error, IsADirectoryError):
        return RedirectionError(ErrorKind.DIR_ERR, filename)
    return RedirectionError(ErrorKind.NO_SUCH_FILE, filename)


def _open_input(redirection: Redirection) -> BinaryIO | None:
    filename = redirection.filename
    if filename.startswith("$") and redirection.kind is not RedirType.HERE_DOC:
        raise RedirectionError(ErrorKind.AMBIGUOUS, filename)
    if filename == "/dev/stdin":
        return None
    try:
        return open(filename, "rb")
    except OSError as error:
        raise _open_failure(error, filename) from error


def _open_output(redirection: Redirection) -> BinaryIO | None:
    filename = redirection.filename
    if filename.startswith("$"):
        raise RedirectionError(ErrorKind.AMBIGUOUS, filename)
    if filename == "/dev/stdout":
        return None
    flags = os.O_WRONLY | os.O_CREAT
    flags |= os.O_APPEND if redirection.kind is RedirType.APPEND else os.O_TRUNC
    try:
        fd = os.open(filename, flags, 0o644)
    except OSError as error:
        raise _open_failure(error, filename) from error
    return os.fdopen(fd, "wb")


def _close(stream: object) -> None:
    closer = getattr(stream, "close", None)
    if closer is not None:
        with contextlib.suppress(OSError):
            closer()


def open_redirections(
    command: "Command",
) -> tuple[BinaryIO | None, BinaryIO | None]:
    """Open the command's redirections in order.

    Returns the input and output files that replace the standard streams,
    None where a stream is left alone. Later redirections replace earlier
    ones; the files they leave behind are still created. Raises
    RedirectionError at the first one that fails.
    """
    stdin: BinaryIO | None = None
    stdout: BinaryIO | None = None
    try:
        for redirection in command.redirections:
            if redirection.kind in (RedirType.OUTPUT, RedirType.APPEND):
                handle = _open_output(redirection)
                if handle is not None:
                    _close(stdout)
                    stdout = handle
            else:
                handle = _open_input(redirection)
                if handle is not None:
                    _close(stdin)
                    stdin = handle
    except BaseException:
        _close(stdin)
        _close(stdout)
        raise
    return stdin, stdout


def status_from_returncode(returncode: int) -> int:
    """Turn a child's return code into a shell status; signals give 128 + number."""
    if returncode >= 0:
        return returncode
    return 128 - returncode


def cleanup(commands: Iterable["Command"]) -> None:
    """Remove the temporary files of the commands' here-documents."""
    for command in commands:
        for redirection in command.redirections:
            if redirection.kind is RedirType.HERE_DOC:
                with contextlib.suppress(OSError):
                    os.unlink(redirection.filename)


def _encode(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def _run_single_builtin(command: "Command", state: "ShellState") -> int:
    try:
        stdin, stdout = open_redirections(command)
    except RedirectionError as error:
        report(error.kind, error.filename)
        return error.status if error.status is not None else state.exit_status
    _close(stdin)
    if stdout is None:
        try:
            return run_builtin(command.args, state, sys.stdout, sys.stderr)
        finally:
            sys.stdout.flush()
    buffer = io.StringIO()
    try:
        return run_builtin(command.args, state, buffer, sys.stderr)
    finally:
        with stdout:
            stdout.write(_encode(buffer.getvalue()))


@contextlib.contextmanager
def _preserved_cwd() -> Iterator[None]:
    try:
        saved = os.open(".", os.O_RDONLY)
    except OSError:
        saved = None
    try:
        yield
    finally:
        if saved is not None:
            with contextlib.suppress(OSError):
                os.fchdir(saved)
            os.close(saved)


def _run_piped_builtin(
    command: "Command",
    state: "ShellState",
    redirected: BinaryIO | None,
    capture: bool,
) -> tuple[int, bytes]:
    """Run a builtin as one stage of a pipeline, without touching the shell's state."""
    child = copy.deepcopy(state)
    buffer = io.StringIO()
    target: TextIO = buffer if capture or redirected is not None else sys.stdout
    status = 0
    try:
        with _preserved_cwd():
            run_builtin(command.args, child, target, sys.stderr)
    except builtins.ShellExit as exit_request:
        status = exit_request.status
    finally:
        sys.stdout.flush()
        sys.stderr.flush()
    if redirected is not None:
        with redirected:
            redirected.write(_encode(buffer.getvalue()))
        return status, b""
    if capture:
        return status, _encode(buffer.getvalue())
    return status, b""


def _default_signals() -> None:
    signal.signal(signal.SIGQUIT, signal.SIG_DFL)


def _spawn(
    args: list[str],
    path: str,
    stdin: object,
    stdout: object,
    environment: "Environment",
) -> subprocess.Popen:
    child_env = {key: value or "" for key, value in environment}
    return subprocess.Popen(
        args,
        executable=path,
        stdin=stdin,
        stdout=stdout,
        env=child_env,
        preexec_fn=_default_signals if hasattr(signal, "SIGQUIT") else None,
    )


def _feed(pipe: BinaryIO, data: bytes) -> None:
    try:
        pipe.write(data)
    except OSError:
        pass
    finally:
        _close(pipe)


def _wait(process: subprocess.Popen) -> int:
    while True:
        try:
            return process.wait()
        except KeyboardInterrupt:
            continue


def _run_pipeline(commands: list["Command"], state: "ShellState") -> int:
    sys.stdout.flush()
    sys.stderr.flush()
    processes: list[subprocess.Popen] = []
    pending_input: list[tuple[BinaryIO, bytes]] = []
    upstream: _Upstream = None
    last_process: Optional[subprocess.Popen] = None
    last_status = 0
    count = len(commands)
    for index, command in enumerate(commands):
        is_last = index == count - 1
        source, upstream = upstream, None
        last_process = None
        empty_output: _Upstream = None if is_last else b""
        try:
            redirected_in, redirected_out = open_redirections(command)
        except RedirectionError as error:
            _close(source)
            report(error.kind, error.filename)
            last_status = 1
            upstream = empty_output
            continue
        stdin: _Upstream = source
        if redirected_in is not None:
            _close(source)
            stdin = redirected_in
        if not command.args:
            _close(stdin)
            _close(redirected_out)
            last_status = 0
            upstream = empty_output
            continue
        if is_builtin(command.name):
            capture = not is_last and redirected_out is None
            last_status, output = _run_piped_builtin(
                command, state, redirected_out, capture
            )
            _close(stdin)
            upstream = output if not is_last else None
            continue
        args = command.args
        if "\n" in args[0]:
            args = split_words(args[0], "\n")
        try:
            path = resolve_command(args[0] if args else "", state.environment)
        except CommandError as error:
            report(error.kind, error.subject)
            _close(stdin)
            _close(redirected_out)
            last_status = error.status
            upstream = empty_output
            continue
        if isinstance(stdin, bytes):
            child_stdin: object = subprocess.PIPE if stdin else subprocess.DEVNULL
        else:
            child_stdin = stdin
        if redirected_out is not None:
            child_stdout: object = redirected_out
        else:
            child_stdout = None if is_last else subprocess.PIPE
        try:
            process = _spawn(args, path, child_stdin, child_stdout, state.environment)
        except OSError:
            report(ErrorKind.EXECVE)
            last_status = _EXEC_FAILED
            upstream = empty_output
            continue
        finally:
            if not isinstance(stdin, bytes):
                _close(stdin)
            _close(redirected_out)
        processes.append(process)
        if isinstance(stdin, bytes) and stdin and process.stdin is not None:
            pending_input.append((process.stdin, stdin))
        if child_stdout is subprocess.PIPE:
            upstream = process.stdout
        else:
            upstream = empty_output
        last_process = process
    _close(upstream)
    feeders = [
        threading.Thread(target=_feed, args=(pipe, data), daemon=True)
        for pipe, data in pending_input
    ]
    for feeder in feeders:
        feeder.start()
    if last_process is not None:
        returncode = _wait(last_process)
        last_status = status_from_returncode(returncode)
        if returncode == -signal.SIGINT:
            sys.stdout.write("\n")
            sys.stdout.flush()
        elif hasattr(signal, "SIGQUIT") and returncode == -signal.SIGQUIT:
            sys.stderr.write("Quit (core dumped)\n")
            sys.stderr.flush()
    for process in processes:
        _wait(process)
    for feeder in feeders:
        feeder.join()
    return last_status


def execute(commands: Iterable["Command"], state: "ShellState") -> int:
    """Run a parsed pipeline and return the exit status it leaves.

    A lone builtin runs in the shell itself, so ``cd``, ``export`` and
    ``exit`` take effect; every other pipeline runs its stages side by side
    and takes the status of the last one.
    """
    stages = list(commands)
    if not stages:
        return state.exit_status
    first = stages[0]
    if len(stages) == 1 and first.args and is_builtin(first.name):
        status = _run_single_builtin(first, state)
    else:
        status = _run_pipeline(stages, state)
    state.exit_status = status
    return status
import io
import os
import signal
import sys

import pytest

from minishell.builtins import ShellExit
from minishell.environment import Environment
from minishell.errors import ErrorKind
from minishell.executor import (
    CommandError,
    RedirectionError,
    cleanup,
    execute,
    is_builtin,
    open_redirections,
    resolve_command,
    run_builtin,
    status_from_returncode,
)
from minishell.heredoc import Redirection, RedirType
from minishell.parser import Command
from minishell.state import ShellState


def make_state(tmp_path, **env):
    return ShellState(environment=Environment(env), cwd=str(tmp_path))


def make_executable(path):
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    return path


@pytest.mark.parametrize("name", ["cd", "echo", "pwd", "export", "unset", "env", "exit"])
def test_is_builtin_true(name):
    assert is_builtin(name) is True


@pytest.mark.parametrize("name", ["ls", "", None, "ECHO"])
def test_is_builtin_false(name):
    assert is_builtin(name) is False


def test_run_builtin_echo(tmp_path):
    state = make_state(tmp_path)
    out = io.StringIO()
    assert run_builtin(["echo", "a", "b"], state, out) == 0
    assert out.getvalue() == "a b\n"


def test_run_builtin_rejects_other_names(tmp_path):
    with pytest.raises(ValueError):
        run_builtin(["ls"], make_state(tmp_path))


def test_resolve_command_searches_path(tmp_path):
    program = make_executable(tmp_path / "tool")
    env = Environment({"PATH": f"/nonexistent-dir:{tmp_path}"})
    assert resolve_command("tool", env) == f"{tmp_path}/tool"
    assert os.path.samefile(resolve_command("tool", env), program)


def test_resolve_command_with_slash_returned_as_is(tmp_path):
    program = make_executable(tmp_path / "tool")
    assert resolve_command(str(program), Environment()) == str(program)


def test_resolve_command_not_found(tmp_path):
    env = Environment({"PATH": str(tmp_path)})
    with pytest.raises(CommandError) as info:
        resolve_command("missing-tool", env)
    assert info.value.kind is ErrorKind.CMD_NOT_FOUND
    assert info.value.status == 127


def test_resolve_command_without_path(tmp_path):
    with pytest.raises(CommandError) as info:
        resolve_command("tool", Environment())
    assert info.value.kind is ErrorKind.NO_SUCH_FILE
    assert info.value.status == 127


def test_resolve_command_missing_file(tmp_path):
    with pytest.raises(CommandError) as info:
        resolve_command(str(tmp_path / "nope"), Environment())
    assert info.value.kind is ErrorKind.NO_SUCH_FILE
    assert info.value.status == 127


def test_resolve_command_directory(tmp_path):
    with pytest.raises(CommandError) as info:
        resolve_command(str(tmp_path) + "/", Environment())
    assert info.value.kind is ErrorKind.DIR_ERR
    assert info.value.status == 126


def test_resolve_command_not_executable(tmp_path):
    plain = tmp_path / "plain"
    plain.write_text("data")
    plain.chmod(0o644)
    with pytest.raises(CommandError) as info:
        resolve_command(str(plain), Environment())
    assert info.value.kind is ErrorKind.PERR_DENIED
    assert info.value.status == 126


@pytest.mark.parametrize("name", [".", "..", ""])
def test_resolve_command_dot_names(tmp_path, name):
    env = Environment({"PATH": str(tmp_path)})
    with pytest.raises(CommandError) as info:
        resolve_command(name, env)
    assert info.value.status == 127


def test_open_redirections_output_and_append(tmp_path):
    target = tmp_path / "out.txt"
    target.write_bytes(b"old\n")
    _, stdout = open_redirections(
        Command(["x"], [Redirection(RedirType.APPEND, str(target))])
    )
    with stdout:
        stdout.write(b"new\n")
    assert target.read_bytes() == b"old\nnew\n"
    _, stdout = open_redirections(
        Command(["x"], [Redirection(RedirType.OUTPUT, str(target))])
    )
    with stdout:
        stdout.write(b"only\n")
    assert target.read_bytes() == b"only\n"


def test_open_redirections_last_output_wins(tmp_path):
    first = tmp_path / "first"
    second = tmp_path / "second"
    command = Command(
        ["x"],
        [
            Redirection(RedirType.OUTPUT, str(first)),
            Redirection(RedirType.OUTPUT, str(second)),
        ],
    )
    stdin, stdout = open_redirections(command)
    assert stdin is None
    with stdout:
        stdout.write(b"data")
    assert first.read_bytes() == b""
    assert second.read_bytes() == b"data"


def test_open_redirections_input(tmp_path):
    source = tmp_path / "in.txt"
    source.write_bytes(b"content")
    stdin, stdout = open_redirections(
        Command(["x"], [Redirection(RedirType.INPUT, str(source))])
    )
    assert stdout is None
    with stdin:
        assert stdin.read() == b"content"


def test_open_redirections_missing_input(tmp_path):
    missing = str(tmp_path / "missing")
    with pytest.raises(RedirectionError) as info:
        open_redirections(Command(["x"], [Redirection(RedirType.INPUT, missing)]))
    assert info.value.kind is ErrorKind.NO_SUCH_FILE
    assert info.value.status == 1
    assert info.value.filename == missing


def test_open_redirections_ambiguous():
    with pytest.raises(RedirectionError) as info:
        open_redirections(Command(["x"], [Redirection(RedirType.OUTPUT, "$NOPE")]))
    assert info.value.kind is ErrorKind.AMBIGUOUS
    assert info.value.status is None


def test_open_redirections_output_in_missing_directory(tmp_path):
    target = str(tmp_path / "no" / "file")
    with pytest.raises(RedirectionError) as info:
        open_redirections(Command(["x"], [Redirection(RedirType.OUTPUT, target)]))
    assert info.value.kind is ErrorKind.NO_SUCH_FILE


def test_open_redirections_dev_stdout_is_left_alone():
    assert open_redirections(
        Command(["x"], [Redirection(RedirType.OUTPUT, "/dev/stdout")])
    ) == (None, None)


def test_status_from_returncode():
    assert status_from_returncode(0) == 0
    assert status_from_returncode(3) == 3
    assert status_from_returncode(-signal.SIGINT) == 130
    assert status_from_returncode(-signal.SIGQUIT) == 131
    assert status_from_returncode(-signal.SIGTERM) > 128


def test_cleanup_removes_only_heredoc_files(tmp_path):
    heredoc = tmp_path / ".doc"
    heredoc.write_text("x")
    regular = tmp_path / "keep"
    regular.write_text("y")
    command = Command(
        ["cat"],
        [
            Redirection(RedirType.HERE_DOC, str(heredoc), limiter="EOF"),
            Redirection(RedirType.INPUT, str(regular)),
        ],
    )
    cleanup([command])
    assert not heredoc.exists()
    assert regular.exists()


def test_execute_builtin_with_output_redirection(tmp_path):
    state = make_state(tmp_path)
    target = tmp_path / "out"
    status = execute(
        [Command(["echo", "hi"], [Redirection(RedirType.OUTPUT, str(target))])], state
    )
    assert status == 0
    assert target.read_text() == "hi\n"


def test_execute_builtin_redirection_failure(tmp_path, capsys):
    state = make_state(tmp_path)
    missing = str(tmp_path / "missing")
    status = execute(
        [Command(["echo", "x"], [Redirection(RedirType.INPUT, missing)])], state
    )
    assert status == 1
    assert state.exit_status == 1
    captured = capsys.readouterr()
    assert "No such file or directory" in captured.err
    assert captured.out == ""


def test_execute_single_export_changes_environment(tmp_path):
    state = make_state(tmp_path)
    execute([Command(["export", "A=1"])], state)
    assert state.environment.get("A") == "1"


def test_execute_single_exit_raises(tmp_path, capsys):
    state = make_state(tmp_path)
    with pytest.raises(ShellExit) as info:
        execute([Command(["exit", "5"])], state)
    assert info.value.status == 5


def test_execute_external_program(tmp_path):
    state = make_state(tmp_path)
    target = tmp_path / "out"
    command = Command(
        [sys.executable, "-c", "print('x')"],
        [Redirection(RedirType.OUTPUT, str(target))],
    )
    assert execute([command], state) == 0
    assert target.read_text() == "x\n"


def test_execute_status_of_last_stage(tmp_path):
    state = make_state(tmp_path)
    commands = [
        Command([sys.executable, "-c", "pass"]),
        Command([sys.executable, "-c", "import sys; sys.exit(3)"]),
    ]
    assert execute(commands, state) == 3
    assert state.exit_status == 3


def test_execute_pipeline_between_programs(tmp_path):
    state = make_state(tmp_path)
    target = tmp_path / "out"
    commands = [
        Command([sys.executable, "-c", "print('abc')"]),
        Command(
            [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"],
            [Redirection(RedirType.OUTPUT, str(target))],
        ),
    ]
    assert execute(commands, state) == 0
    assert target.read_text() == "ABC\n"


def test_execute_builtin_output_feeds_pipeline(tmp_path):
    state = make_state(tmp_path)
    target = tmp_path / "out"
    commands = [
        Command(["echo", "hello"]),
        Command(
            [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read())"],
            [Redirection(RedirType.OUTPUT, str(target))],
        ),
    ]
    assert execute(commands, state) == 0
    assert target.read_text() == "hello\n"


def test_execute_piped_builtins_leave_shell_alone(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    sub = tmp_path / "sub"
    sub.mkdir()
    state = make_state(tmp_path)
    before = os.getcwd()
    commands = [
        Command(["export", "A=1"]),
        Command(["cd", str(sub)]),
        Command([sys.executable, "-c", "pass"]),
    ]
    assert execute(commands, state) == 0
    assert "A" not in state.environment
    assert os.getcwd() == before


def test_execute_exit_in_pipeline_does_not_raise(tmp_path, capsys):
    state = make_state(tmp_path)
    commands = [Command([sys.executable, "-c", "pass"]), Command(["exit", "5"])]
    assert execute(commands, state) == 5


def test_execute_command_not_found(tmp_path, capsys):
    state = make_state(tmp_path, PATH=str(tmp_path))
    assert execute([Command(["no-such-tool-here"])], state) == 127
    assert "no-such-tool-here: command not found" in capsys.readouterr().err


def test_execute_redirections_only(tmp_path):
    state = make_state(tmp_path)
    target = tmp_path / "created"
    status = execute([Command([], [Redirection(RedirType.OUTPUT, str(target))])], state)
    assert status == 0
    assert target.exists()
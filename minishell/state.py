"""State kept by the shell between command lines."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from minishell.environment import Environment

DEFAULT_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"


def _current_dir() -> str | None:
    try:
        return os.getcwd()
    except OSError:
        return None


@dataclass
class ShellState:
    """Environment, working directory and the counters the shell carries."""

    environment: Environment
    cwd: str | None = None
    exit_status: int = 0
    heredoc_count: int = 0
    last_arg: str = "]"
    default_path: str = DEFAULT_PATH

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> "ShellState":
        """Create the start-up state from an inherited environment."""
        if environ is None:
            environ = os.environ
        if cwd is None:
            cwd = _current_dir()
        environment = Environment.from_mapping(environ, DEFAULT_PATH, cwd)
        return cls(environment=environment, cwd=cwd)
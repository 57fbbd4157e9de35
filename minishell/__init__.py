"""An interactive command shell with pipes, redirections, here-documents and built-ins."""

__version__ = "0.1.0"

__all__ = [
    "builtins",
    "environment",
    "errors",
    "executor",
    "expansion",
    "heredoc",
    "parser",
    "shell",
    "state",
    "syntax",
    "textutil",
]
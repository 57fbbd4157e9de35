"""The shell's own environment: ordered variables, some declared without a value."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping

_SHELL_NAME = "minishell"


def _is_alpha(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _is_alnum(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


def is_identifier(text: str) -> bool:
    """Return True if ``text`` is a valid variable name (letter or ``_`` first)."""
    if not text or not (text[0] == "_" or _is_alpha(text[0])):
        return False
    return all(ch == "_" or _is_alnum(ch) for ch in text)


@dataclass(frozen=True)
class Assignment:
    """One ``export`` argument: ``KEY``, ``KEY=value`` or ``KEY+=value``.

    ``value`` is None when the argument only declares the name.
    """

    key: str
    value: str | None = None
    append: bool = False


def parse_assignment(text: str) -> Assignment:
    """Split an ``export`` argument into its name, value and operator.

    The name is not validated; use :func:`is_identifier` for that.
    """
    index = text.find("=")
    if index == -1:
        return Assignment(text)
    value = text[index + 1 :]
    if index > 0 and text[index - 1] == "+":
        return Assignment(text[: index - 1], value, append=True)
    return Assignment(text[:index], value)


class Environment:
    """Ordered shell variables; iterating yields ``(key, value)`` pairs."""

    def __init__(self, items: Iterable[tuple[str, str | None]] | Mapping[str, str | None] = ()) -> None:
        self._vars: dict[str, str | None] = dict(items)

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, str],
        default_path: str,
        cwd: str | None,
    ) -> "Environment":
        """Build the environment from the inherited one.

        An empty inherited environment is replaced by a minimal one holding
        PWD, PATH, SHLVL and ``_``.
        """
        if not mapping:
            self_path = os.path.join(cwd, _SHELL_NAME) if cwd else _SHELL_NAME
            return cls(
                [
                    ("PWD", cwd),
                    ("PATH", default_path),
                    ("SHLVL", "1"),
                    ("_", self_path),
                ]
            )
        return cls(mapping.items())

    def get(self, key: str) -> str | None:
        """Return the value of ``key``, or None if unset or declared without value."""
        return self._vars.get(key)

    def set(self, key: str, value: str | None) -> None:
        """Give ``key`` a value, adding it at the end if it is new."""
        self._vars[key] = value

    def unset(self, key: str) -> None:
        """Remove ``key`` if present."""
        self._vars.pop(key, None)

    def apply(self, assignment: Assignment) -> None:
        """Apply one ``export`` argument to the environment."""
        key = assignment.key
        if key not in self._vars:
            self._vars[key] = assignment.value
            return
        if assignment.value is None:
            return
        if assignment.append:
            current = self._vars[key]
            self._vars[key] = (current or "") + assignment.value
        else:
            self._vars[key] = assignment.value

    def to_envp(self) -> list[str]:
        """Return ``KEY=value`` strings for handing to a new program."""
        return [f"{key}={value or ''}" for key, value in self._vars.items()]

    def __len__(self) -> int:
        return len(self._vars)

    def __iter__(self) -> Iterator[tuple[str, str | None]]:
        return iter(list(self._vars.items()))

    def __contains__(self, key: object) -> bool:
        return key in self._vars

    def __repr__(self) -> str:
        return f"Environment({self._vars!r})"
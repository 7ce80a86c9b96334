"""Spawn request type."""

from __future__ import annotations

import os
import shlex
import subprocess
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

__all__ = [
    "EnvironmentVariables",
    "SpawnRequest",
]

IS_WINDOWS = sys.platform == "win32"

# Mapping or ordered (key, value) pairs
EnvironmentVariables = Union[Mapping[str, str], Iterable[tuple[str, str]]]


@dataclass(frozen=True)
class SpawnRequest:
    """Everything needed to start a process.

    Attributes:
        executable: Resolved executable, quoted on non-POSIX hosts
        args: Raw argument string (not an argv list)
        cwd: Absolute working directory
        env: Ordered environment overrides (None = inherit parent)
        redirect_stdin: Pipe stdin to the caller
        redirect_stdout: Pipe stdout to the caller
        redirect_stderr: Pipe stderr to the caller
    """

    executable: str
    args: str = ""
    cwd: Path | None = None
    env: tuple[tuple[str, str], ...] | None = None
    redirect_stdin: bool = False
    redirect_stdout: bool = False
    redirect_stderr: bool = False

    @staticmethod
    def normalize_env(env: EnvironmentVariables | None) -> tuple[tuple[str, str], ...] | None:
        """Freeze environment overrides into ordered pairs."""
        if env is None:
            return None
        items = env.items() if isinstance(env, Mapping) else env
        return tuple((str(key), str(value)) for key, value in items)

    @property
    def command_line(self) -> str:
        """Command line as logged: executable followed by the raw arguments."""
        return f"{self.executable} {self.args}" if self.args else self.executable

    def build_popen_args(self) -> list[str] | str:
        """Build the args parameter for subprocess.Popen.

        POSIX: argv list (executable + shlex-split arguments)
        Windows: single command line string, the native form there
        """
        if IS_WINDOWS:
            return self.command_line
        return [self.executable, *shlex.split(self.args or "")]

    def build_popen_kwargs(self) -> dict[str, Any]:
        """Build subprocess.Popen keyword arguments (streams, cwd, env)."""
        kwargs: dict[str, Any] = {
            "stdin": subprocess.PIPE if self.redirect_stdin else None,
            "stdout": subprocess.PIPE if self.redirect_stdout else None,
            "stderr": subprocess.PIPE if self.redirect_stderr else None,
            "shell": False,
        }

        if self.cwd is not None:
            kwargs["cwd"] = str(self.cwd)

        if self.env is not None:
            merged = os.environ.copy()
            for key, value in self.env:
                merged[key] = value
            kwargs["env"] = merged

        return kwargs

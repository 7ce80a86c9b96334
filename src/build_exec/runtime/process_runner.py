"""Process spawning helpers for build scripts.

build-exec runtime module

This module provides:
- spawn(): resolve the executable and start a ProcessHandle
- exec_process(): run to completion and return the validated exit code
- exec_process_async(): same, awaiting the exit without blocking the loop
- exec_capture_text(): run with stdout captured, return the joined lines
- exec_capture_lines(): lazily yield stdout lines as they are produced
  (a CapturedLines iterator; use it in a with block to stop early)

Key design points:
- Arguments are a raw argument string, not an argv list
- Every helper owns its handle and releases it on every exit path; the
  release validates the exit code, so violations surface there
- valid_exit_codes=None keeps the default (0,); an empty collection
  disables validation for that call
"""

from __future__ import annotations

import os
from collections.abc import Generator, Iterable, Iterator
from pathlib import Path

from ..context import BuildContext
from .process_handle import ProcessHandle
from .resolver import resolve_executable, to_command_path
from .types import EnvironmentVariables, SpawnRequest

__all__ = [
    "CapturedLines",
    "exec_capture_lines",
    "exec_capture_text",
    "exec_process",
    "exec_process_async",
    "spawn",
]


def _require_context(context: BuildContext | None) -> BuildContext:
    if context is None:
        raise ValueError("context must not be None")
    return context


def spawn(
    context: BuildContext,
    executable: str | Path,
    args: str = "",
    environment_variables: EnvironmentVariables | None = None,
    redirect_stdin: bool = False,
    redirect_stdout: bool = False,
    redirect_stderr: bool = False,
) -> ProcessHandle:
    """Start a process and return its handle.

    The caller owns the handle and must close it (or use it as a context
    manager) to validate the exit code and release the process.

    Args:
        context: Build context (tool locator, environment, log)
        executable: Executable name or path, resolved through the context
        args: Raw argument string
        environment_variables: Overrides applied over the inherited environment
        redirect_stdin: Pipe stdin to the caller
        redirect_stdout: Pipe stdout to the caller
        redirect_stderr: Pipe stderr to the caller

    Returns:
        Handle of the running process

    Raises:
        ValueError: If context is None
        OSError: If the process cannot be started
    """
    context = _require_context(context)

    resolved = resolve_executable(context, executable)
    file_name = to_command_path(context, resolved)
    environment = context.environment
    working_directory = environment.make_absolute(environment.working_directory)

    request = SpawnRequest(
        executable=file_name,
        args=args or "",
        cwd=working_directory,
        env=SpawnRequest.normalize_env(environment_variables),
        redirect_stdin=redirect_stdin,
        redirect_stdout=redirect_stdout,
        redirect_stderr=redirect_stderr,
    )
    context.log.debug(f"Executing: {file_name} {request.args}")

    return ProcessHandle(request)


def exec_process(
    context: BuildContext,
    executable: str | Path,
    args: str = "",
    environment_variables: EnvironmentVariables | None = None,
    valid_exit_codes: Iterable[int] | None = None,
) -> int:
    """Run a process to completion with inherited standard streams.

    Returns:
        Exit code of the process

    Raises:
        ProcessExitCodeError: If the exit code is not allowed
    """
    with spawn(context, executable, args, environment_variables) as proc:
        if valid_exit_codes is not None:
            proc.valid_exit_codes = valid_exit_codes
        return proc.wait()


async def exec_process_async(
    context: BuildContext,
    executable: str | Path,
    args: str = "",
    environment_variables: EnvironmentVariables | None = None,
    valid_exit_codes: Iterable[int] | None = None,
) -> int:
    """Async variant of exec_process; the exit is awaited, not blocked on."""
    with spawn(context, executable, args, environment_variables) as proc:
        if valid_exit_codes is not None:
            proc.valid_exit_codes = valid_exit_codes
        return await proc.wait_async()


def exec_capture_text(
    context: BuildContext,
    executable: str | Path,
    args: str = "",
    environment_variables: EnvironmentVariables | None = None,
    valid_exit_codes: Iterable[int] | None = None,
) -> str:
    """Run a process and return its stdout lines joined with os.linesep.

    Raises:
        ValueError: If context is None
        ProcessExitCodeError: If the exit code is not allowed
    """
    context = _require_context(context)
    with exec_capture_lines(context, executable, args, environment_variables, valid_exit_codes) as lines:
        return os.linesep.join(lines)


class CapturedLines(Iterator[str]):
    """Single-pass iterator over the stdout lines of one process.

    Owns the process handle through the underlying generator. Exhausting
    the iterator or calling close() releases the handle and validates the
    exit code in the caller's frame. A plain ``for ... break`` leaves the
    handle open until garbage collection, so stop early inside a with block:

        with exec_capture_lines(context, "git", "log --oneline") as lines:
            for line in lines:
                if line.startswith("fixup"):
                    break
    """

    def __init__(self, lines: Generator[str, None, None]) -> None:
        self._lines = lines

    def __iter__(self) -> "CapturedLines":
        return self

    def __next__(self) -> str:
        return next(self._lines)

    def close(self) -> None:
        """Release the process handle; raises ProcessExitCodeError on a bad exit."""
        self._lines.close()

    def __enter__(self) -> "CapturedLines":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def exec_capture_lines(
    context: BuildContext,
    executable: str | Path,
    args: str = "",
    environment_variables: EnvironmentVariables | None = None,
    valid_exit_codes: Iterable[int] | None = None,
) -> CapturedLines:
    """Lazily yield stdout lines of a process, without line terminators.

    The process is started when the first line is requested. The iterator
    is single pass; when it is exhausted or closed early the handle is
    released and the exit code validated, so a ProcessExitCodeError is
    raised from the final next() or from close(). Leaving a with block
    closes the iterator.

    Raises:
        ValueError: If context is None (raised immediately)
    """
    context = _require_context(context)
    if valid_exit_codes is not None:
        valid_exit_codes = tuple(valid_exit_codes)
    return CapturedLines(
        _iter_output_lines(context, executable, args, environment_variables, valid_exit_codes)
    )


def _iter_output_lines(
    context: BuildContext,
    executable: str | Path,
    args: str,
    environment_variables: EnvironmentVariables | None,
    valid_exit_codes: tuple[int, ...] | None,
) -> Generator[str, None, None]:
    with spawn(context, executable, args, environment_variables, redirect_stdout=True) as proc:
        if valid_exit_codes is not None:
            proc.valid_exit_codes = valid_exit_codes
        reader = proc.standard_output
        while True:
            line = reader.readline()
            if not line:
                break
            line = line.rstrip("\n")
            context.log.debug(line)
            yield line

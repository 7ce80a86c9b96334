"""Process handle with asynchronous exit notification and exit-code validation.

build-exec runtime module

This module provides:
- A single-owner wrapper around one subprocess.Popen
- An exit-code completion signal resolved once by a watcher thread
  blocked in the OS wait, observable by any number of sync or async waiters
- Raw byte and text accessors for the redirected standard streams
- Exit-code validation against a mutable allow-list on release

Lifecycle:
    RUNNING -> EXITED (OS reports termination, completion signal resolved)
    EXITED -> DISPOSED (close(): wait, validate, release; idempotent)
"""

from __future__ import annotations

import io
import logging
import shutil
import subprocess
import threading
from collections.abc import Iterable
from concurrent.futures import Future
from enum import Enum
from typing import IO, BinaryIO

import anyio

from ..config import DEFAULT_VALID_EXIT_CODES, get_config
from ..errors import ProcessExitCodeError, StreamNotRedirectedError
from .types import SpawnRequest

__all__ = [
    "DEFAULT_VALID_EXIT_CODES",
    "ProcessHandle",
    "ProcessState",
]

logger = logging.getLogger(__name__)


class ProcessState(Enum):
    """Observable lifecycle state of a ProcessHandle."""

    RUNNING = "running"
    EXITED = "exited"
    DISPOSED = "disposed"


class ProcessHandle:
    """Owns one running OS process.

    The handle is meant to be used as a context manager; leaving the block
    waits for the process, validates its exit code and releases the OS
    resources, on every exit path.

    Example:
        request = SpawnRequest("/bin/cat", redirect_stdin=True, redirect_stdout=True)
        with ProcessHandle(request) as proc:
            proc.write_all_text("hello")
            text = proc.read_all_text()

    Attributes:
        valid_exit_codes: Allow-list checked on close(). None restores the
            default (0,); an empty collection disables validation.
    """

    def __init__(self, request: SpawnRequest, *, encoding: str | None = None) -> None:
        """Start the process described by request.

        Raises:
            OSError: If the process cannot be started (propagated unchanged)
        """
        self._request = request
        self._encoding = encoding or get_config().encoding
        self._completion: Future[int] = Future()
        self._valid_exit_codes = DEFAULT_VALID_EXIT_CODES

        self._stdin_writer: io.TextIOWrapper | None = None
        self._stdout_reader: io.TextIOWrapper | None = None
        self._stderr_reader: io.TextIOWrapper | None = None

        self._process: subprocess.Popen[bytes] | None = subprocess.Popen(
            request.build_popen_args(),
            **request.build_popen_kwargs(),
        )
        self._pid = self._process.pid

        logger.debug(
            f"Started process pid={self._pid} "
            f"executable={request.executable} cwd={request.cwd}"
        )

        # Exit notification: one thread parked in the OS wait, resolving once.
        self._watcher = threading.Thread(
            target=self._watch_exit,
            args=(self._process,),
            name=f"build-exec-exit-{self._pid}",
            daemon=True,
        )
        self._watcher.start()

    def _watch_exit(self, process: subprocess.Popen[bytes]) -> None:
        try:
            exit_code = process.wait()
        except Exception as e:
            self._completion.set_exception(e)
            return
        logger.debug(f"Process exited pid={self._pid} returncode={exit_code}")
        self._completion.set_result(exit_code)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def request(self) -> SpawnRequest:
        return self._request

    @property
    def process(self) -> subprocess.Popen[bytes] | None:
        """Underlying Popen object (None after close())."""
        return self._process

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def completion(self) -> Future[int]:
        """Completion signal carrying the exit code."""
        return self._completion

    @property
    def state(self) -> ProcessState:
        if self._process is None:
            return ProcessState.DISPOSED
        if self._completion.done():
            return ProcessState.EXITED
        return ProcessState.RUNNING

    @property
    def valid_exit_codes(self) -> tuple[int, ...]:
        return self._valid_exit_codes

    @valid_exit_codes.setter
    def valid_exit_codes(self, codes: Iterable[int] | None) -> None:
        if codes is None:
            self._valid_exit_codes = DEFAULT_VALID_EXIT_CODES
        else:
            self._valid_exit_codes = tuple(codes)

    # ------------------------------------------------------------------
    # Standard streams
    # ------------------------------------------------------------------

    def _pipe(self, name: str, redirected: bool) -> IO[bytes]:
        if not redirected:
            raise StreamNotRedirectedError(name)
        if self._process is None:
            raise ValueError(f"{name} is closed: process handle was released")
        return getattr(self._process, name)

    @property
    def standard_input_stream(self) -> BinaryIO:
        return self._pipe("stdin", self._request.redirect_stdin)

    @property
    def standard_output_stream(self) -> BinaryIO:
        return self._pipe("stdout", self._request.redirect_stdout)

    @property
    def standard_error_stream(self) -> BinaryIO:
        return self._pipe("stderr", self._request.redirect_stderr)

    @property
    def standard_input(self) -> io.TextIOWrapper:
        """Text writer over stdin."""
        if self._stdin_writer is None:
            self._stdin_writer = io.TextIOWrapper(
                self.standard_input_stream,
                encoding=self._encoding,
                write_through=True,
            )
        return self._stdin_writer

    @property
    def standard_output(self) -> io.TextIOWrapper:
        """Text reader over stdout."""
        if self._stdout_reader is None:
            self._stdout_reader = io.TextIOWrapper(
                self.standard_output_stream,
                encoding=self._encoding,
                errors="replace",
            )
        return self._stdout_reader

    @property
    def standard_error(self) -> io.TextIOWrapper:
        """Text reader over stderr."""
        if self._stderr_reader is None:
            self._stderr_reader = io.TextIOWrapper(
                self.standard_error_stream,
                encoding=self._encoding,
                errors="replace",
            )
        return self._stderr_reader

    def copy_to(self, destination: IO[bytes]) -> None:
        """Copy all of stdout into destination until end of stream."""
        shutil.copyfileobj(self.standard_output_stream, destination)

    def read(self, buffer: bytearray | memoryview, offset: int, count: int) -> int:
        """Perform one bounded read from stdout into buffer[offset:offset + count].

        Returns:
            Number of bytes read (0 at end of stream)
        """
        view = memoryview(buffer)[offset:offset + count]
        return self.standard_output_stream.readinto1(view)

    def write(self, buffer: bytes | bytearray | memoryview, offset: int, count: int) -> None:
        """Write buffer[offset:offset + count] to stdin."""
        stream = self.standard_input_stream
        stream.write(memoryview(buffer)[offset:offset + count])
        stream.flush()

    def read_all_text(self) -> str:
        """Decode all of stdout until end of stream."""
        return self.standard_output.read()

    def write_all_text(self, text: str) -> None:
        """Write text to stdin, then close stdin to signal end of input."""
        writer = self.standard_input
        writer.write(text)
        writer.close()

    # ------------------------------------------------------------------
    # Completion and release
    # ------------------------------------------------------------------

    def wait(self) -> int:
        """Block until the process exits and return its exit code."""
        return self._completion.result()

    async def wait_async(self) -> int:
        """Await the exit code without blocking the event loop."""
        if self._completion.done():
            return self._completion.result()
        return await anyio.to_thread.run_sync(self._completion.result)

    def check_exit_code(self) -> None:
        """Wait for exit and validate the exit code against valid_exit_codes.

        Raises:
            ProcessExitCodeError: If the allow-list is non-empty and does not
                contain the exit code
        """
        exit_code = self.wait()
        valid_exit_codes = self._valid_exit_codes
        if not valid_exit_codes:
            return
        if exit_code not in valid_exit_codes:
            raise ProcessExitCodeError(exit_code, valid_exit_codes)

    def close(self) -> None:
        """Wait for exit, validate the exit code, then release OS resources.

        Runs at most once; later calls are no-ops. Resources are released
        even when validation raises.
        """
        if self._process is None:
            return
        try:
            self.check_exit_code()
        finally:
            self._release()

    def _release(self) -> None:
        process, self._process = self._process, None
        if process is None:
            return

        for writer in (self._stdin_writer, process.stdin):
            if writer is None:
                continue
            try:
                writer.close()
            except BrokenPipeError:
                # Child exited without reading all of its input.
                pass

        for reader in (
            self._stdout_reader,
            process.stdout,
            self._stderr_reader,
            process.stderr,
        ):
            if reader is not None:
                reader.close()

        self._watcher.join()

        logger.debug(f"Released process pid={self._pid}")

    def __enter__(self) -> "ProcessHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

"""Runtime module for spawning and supervising build-script processes.

This module provides executable resolution, the process handle with its
exit-code completion signal, and the spawn/exec helpers built on them.
"""

from __future__ import annotations

from .process_handle import DEFAULT_VALID_EXIT_CODES, ProcessHandle, ProcessState
from .process_runner import (
    CapturedLines,
    exec_capture_lines,
    exec_capture_text,
    exec_process,
    exec_process_async,
    spawn,
)
from .resolver import quote_path, resolve_executable
from .types import SpawnRequest

__all__ = [
    "CapturedLines",
    "DEFAULT_VALID_EXIT_CODES",
    "ProcessHandle",
    "ProcessState",
    "SpawnRequest",
    "exec_capture_lines",
    "exec_capture_text",
    "exec_process",
    "exec_process_async",
    "quote_path",
    "resolve_executable",
    "spawn",
]

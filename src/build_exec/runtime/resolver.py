"""Executable resolution.

Resolution never fails: the context's tool locator is asked for the
literal name, then for the name with the native executable suffix, and
when neither is found the literal name is used as given.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..context import BuildContext
from ..errors import ToolResolutionError

__all__ = [
    "EXECUTABLE_SUFFIX",
    "quote_path",
    "resolve_executable",
    "to_command_path",
]

logger = logging.getLogger(__name__)

EXECUTABLE_SUFFIX = ".exe"


def quote_path(path: str) -> str:
    """Wrap a path in double quotes unless it is already quoted."""
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        return path
    return f'"{path}"'


def resolve_executable(context: BuildContext, executable: str | Path) -> str:
    """Resolve an executable name to the path that should be started.

    Args:
        context: Build context providing the tool locator
        executable: Logical executable name or path

    Returns:
        Resolved path, or the literal input when resolution fails
    """
    name = str(executable)
    try:
        resolved = context.tools.resolve(name)
        if resolved is None and not name.lower().endswith(EXECUTABLE_SUFFIX):
            resolved = context.tools.resolve(name + EXECUTABLE_SUFFIX)
    except ToolResolutionError as e:
        # Known locator defect on valid names: degrade to the literal input.
        logger.debug(f"Tool resolution failed for {name}, using it as given: {e}")
        return name

    if resolved is None:
        logger.debug(f"Tool {name} not found, using it as given")
        return name

    return str(resolved)


def to_command_path(context: BuildContext, resolved: str) -> str:
    """Return the path in the form used to start the process.

    POSIX hosts use the path unquoted; other hosts quote it so that
    embedded spaces survive the command line.
    """
    if context.environment.is_unix():
        return resolved
    return quote_path(resolved)

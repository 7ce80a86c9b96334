"""build-exec 异常类。"""

from __future__ import annotations

from collections.abc import Collection

__all__ = [
    "BuildExecError",
    "ProcessExitCodeError",
    "StreamNotRedirectedError",
    "ToolResolutionError",
]


class BuildExecError(Exception):
    """build-exec 基础异常。"""
    pass


class ProcessExitCodeError(BuildExecError):
    """进程退出码不在允许列表中。

    Attributes:
        exit_code: 实际退出码
        valid_exit_codes: 校验时使用的允许列表
    """

    def __init__(self, exit_code: int, valid_exit_codes: Collection[int]) -> None:
        self.exit_code = exit_code
        self.valid_exit_codes = tuple(valid_exit_codes)
        super().__init__(f"Process exited with {exit_code}")


class StreamNotRedirectedError(BuildExecError):
    """访问了启动时未重定向的标准流。"""

    def __init__(self, stream_name: str) -> None:
        self.stream_name = stream_name
        super().__init__(f"{stream_name} was not redirected when the process was spawned")


class ToolResolutionError(BuildExecError):
    """工具定位器对合法名称解析失败时抛出（由 resolver 捕获并回退）。"""
    pass

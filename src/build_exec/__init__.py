"""build-exec - 构建脚本的外部进程辅助库。

环境变量:
    BX_ENCODING: 标准流文本编码 (默认 utf-8)
    BX_TOOL_PATHS: 先于 PATH 搜索的工具目录
    BX_LOG_DEBUG: 日志输出到临时文件 (默认 false)

用法:
    from build_exec import HostContext, exec_capture_text

    context = HostContext.from_config()
    revision = exec_capture_text(context, "git", "rev-parse HEAD")
"""

__version__ = "0.1.0"

from .context import BuildContext, HostContext
from .errors import (
    BuildExecError,
    ProcessExitCodeError,
    StreamNotRedirectedError,
    ToolResolutionError,
)
from .runtime import (
    ProcessHandle,
    SpawnRequest,
    exec_capture_lines,
    exec_capture_text,
    exec_process,
    exec_process_async,
    spawn,
)

__all__ = [
    "__version__",
    "BuildContext",
    "BuildExecError",
    "HostContext",
    "ProcessExitCodeError",
    "ProcessHandle",
    "SpawnRequest",
    "StreamNotRedirectedError",
    "ToolResolutionError",
    "exec_capture_lines",
    "exec_capture_text",
    "exec_process",
    "exec_process_async",
    "spawn",
]

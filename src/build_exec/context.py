"""构建脚本宿主上下文。

进程辅助函数只依赖宿主提供的三项能力：日志、工具定位器、环境信息
（工作目录与平台）。BuildContext 描述这一接口；HostContext 是基于当前
Python 进程的默认实现。
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from .config import get_config

__all__ = [
    "BuildContext",
    "BuildEnvironment",
    "HostContext",
    "HostEnvironment",
    "HostToolLocator",
    "ToolLocator",
]

logger = logging.getLogger(__name__)


@runtime_checkable
class ToolLocator(Protocol):
    """将工具名称解析为具体文件路径。"""

    def resolve(self, name: str) -> Path | None:
        ...


@runtime_checkable
class BuildEnvironment(Protocol):
    """构建宿主的工作目录与平台信息。"""

    @property
    def working_directory(self) -> Path:
        ...

    def make_absolute(self, path: Path) -> Path:
        ...

    def is_unix(self) -> bool:
        ...


@runtime_checkable
class BuildContext(Protocol):
    """进程辅助函数使用的协作者。"""

    @property
    def log(self) -> logging.Logger:
        ...

    @property
    def tools(self) -> ToolLocator:
        ...

    @property
    def environment(self) -> BuildEnvironment:
        ...


@dataclass
class HostToolLocator:
    """工具定位器：先搜索额外工具目录，再搜索 PATH。

    带目录部分的名称直接按文件检查，不做搜索。

    Attributes:
        tool_paths: 先于 PATH 搜索的目录
    """

    tool_paths: list[Path] = field(default_factory=list)

    def resolve(self, name: str) -> Path | None:
        if not name:
            return None

        candidate = Path(name)
        if candidate.parent != Path("."):
            return candidate if candidate.is_file() else None

        for directory in self.tool_paths:
            found = shutil.which(name, path=str(directory))
            if found:
                logger.debug(f"Resolved tool {name} in tool path {directory}")
                return Path(found)

        found = shutil.which(name)
        return Path(found) if found else None


@dataclass
class HostEnvironment:
    """当前 Python 进程的环境。

    Attributes:
        working_directory: 逻辑工作目录（可以是相对路径）
    """

    working_directory: Path = field(default_factory=lambda: Path("."))

    def make_absolute(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return Path(os.getcwd()) / path

    def is_unix(self) -> bool:
        return sys.platform != "win32"


@dataclass
class HostContext:
    """在当前进程中运行的构建脚本的默认 BuildContext。

    使用示例:
        context = HostContext.from_config()
        exit_code = exec_process(context, "git", "status --short")
    """

    log: logging.Logger = field(default_factory=lambda: logging.getLogger("build_exec.script"))
    tools: ToolLocator = field(default_factory=HostToolLocator)
    environment: BuildEnvironment = field(default_factory=HostEnvironment)

    @classmethod
    def from_config(cls, working_directory: Path | str | None = None) -> "HostContext":
        """使用配置中的工具目录创建上下文。

        Args:
            working_directory: 逻辑工作目录（默认当前目录）
        """
        config = get_config()
        environment = HostEnvironment(Path(working_directory) if working_directory else Path("."))
        return cls(
            tools=HostToolLocator(tool_paths=list(config.tool_paths)),
            environment=environment,
        )

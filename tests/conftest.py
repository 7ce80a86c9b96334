"""Pytest 配置和 fixtures。"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent

# 添加 src 目录到 Python 路径
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from build_exec.context import HostContext, HostEnvironment  # noqa: E402
from build_exec.runtime.resolver import quote_path  # noqa: E402
from build_exec.runtime.types import IS_WINDOWS, SpawnRequest  # noqa: E402

# 测试用子进程脚本
FAKE_CHILD = Path(__file__).parent / "fixtures" / "fake_child.py"


def child_args(*parts: str) -> str:
    """运行 fake_child.py 的原始参数字符串。"""
    return " ".join([f'"{FAKE_CHILD}"', *parts])


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """临时工作目录。"""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def context(temp_workspace: Path) -> HostContext:
    """工作目录为临时工作目录的宿主上下文。"""
    return HostContext(
        log=logging.getLogger("build_exec.script"),
        environment=HostEnvironment(temp_workspace),
    )


@pytest.fixture
def python_request() -> Callable[..., SpawnRequest]:
    """用 sys.executable 运行 fake_child.py 的 SpawnRequest 工厂。"""

    def factory(*parts: str, **kwargs) -> SpawnRequest:
        executable = quote_path(sys.executable) if IS_WINDOWS else sys.executable
        return SpawnRequest(executable=executable, args=child_args(*parts), **kwargs)

    return factory

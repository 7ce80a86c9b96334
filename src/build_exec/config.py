"""build-exec 环境变量配置管理。

环境变量:
    BX_ENCODING: 标准流读写使用的文本编码
        - 默认 utf-8
        - 未知编码回退为 utf-8

    BX_TOOL_PATHS: 解析可执行文件时额外搜索的目录
        - 以 os.pathsep 分割 (POSIX 为 ":"，Windows 为 ";")
        - 先于 PATH 搜索

    BX_LOG_DEBUG: 日志调试模式
        - true/1/yes/on = 开启 (日志以 DEBUG 级别输出到临时文件)
        - false/0/no = 关闭 (默认，日志以 INFO 级别输出到 stderr)

    BX_VALID_EXIT_CODES: 命令行入口默认允许的退出码
        - 逗号分割的整数，例: "0,1"
        - 默认 0
"""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config", "DEFAULT_ENCODING", "DEFAULT_VALID_EXIT_CODES"]

DEFAULT_ENCODING = "utf-8"
DEFAULT_VALID_EXIT_CODES: tuple[int, ...] = (0,)


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """解析布尔值环境变量。"""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_encoding(value: str | None) -> str:
    """解析编码名称，未知编码回退为 utf-8。"""
    if not value or not value.strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return DEFAULT_ENCODING


def _parse_tool_paths(value: str | None) -> list[Path]:
    """解析额外工具目录。

    Args:
        value: 环境变量值，以 os.pathsep 分割

    Returns:
        按搜索顺序排列的目录列表（忽略空项）
    """
    if not value or not value.strip():
        return []
    return [Path(item.strip()) for item in value.split(os.pathsep) if item.strip()]


def _parse_exit_codes(value: str | None) -> tuple[int, ...]:
    """解析逗号分割的退出码列表。

    无效项被忽略；结果为空时回退为 (0,)。
    """
    if not value or not value.strip():
        return DEFAULT_VALID_EXIT_CODES

    codes: list[int] = []
    for item in value.split(","):
        item = item.strip()
        try:
            code = int(item)
        except ValueError:
            continue
        if code not in codes:
            codes.append(code)

    return tuple(codes) or DEFAULT_VALID_EXIT_CODES


def _generate_log_file_path() -> str:
    """生成日志文件路径。

    Returns:
        临时目录下的日志文件绝对路径
    """
    # 使用系统临时目录下的 build-exec 子目录
    log_dir = Path(tempfile.gettempdir()) / "build-exec"
    log_dir.mkdir(parents=True, exist_ok=True)

    # 生成带时间戳的文件名
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"bx_debug_{timestamp}.log"

    return str(log_file.resolve())


@dataclass
class Config:
    """build-exec 配置。

    Attributes:
        encoding: 标准流文本编码
        tool_paths: 先于 PATH 搜索的工具目录
        log_debug: 日志调试模式（输出到临时文件）
        log_file: 日志文件路径（当 log_debug=True 时自动设置）
        valid_exit_codes: 命令行入口默认允许的退出码
    """

    encoding: str = DEFAULT_ENCODING
    tool_paths: list[Path] = field(default_factory=list)
    log_debug: bool = False
    log_file: str | None = None
    valid_exit_codes: tuple[int, ...] = DEFAULT_VALID_EXIT_CODES

    def __repr__(self) -> str:
        paths_str = os.pathsep.join(str(p) for p in self.tool_paths) or "none"
        codes_str = ",".join(str(c) for c in self.valid_exit_codes)
        return (
            f"Config(encoding={self.encoding}, "
            f"tool_paths={paths_str}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file}, "
            f"valid_exit_codes={codes_str})"
        )


def load_config() -> Config:
    """从环境变量加载配置。"""
    log_debug = _parse_bool(os.environ.get("BX_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        encoding=_parse_encoding(os.environ.get("BX_ENCODING")),
        tool_paths=_parse_tool_paths(os.environ.get("BX_TOOL_PATHS")),
        log_debug=log_debug,
        log_file=log_file,
        valid_exit_codes=_parse_exit_codes(os.environ.get("BX_VALID_EXIT_CODES")),
    )


# 全局配置实例（延迟加载）
_config: Config | None = None


def get_config() -> Config:
    """获取全局配置实例。"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """重新加载配置（用于测试）。"""
    global _config
    _config = load_config()
    return _config

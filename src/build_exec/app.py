"""build-exec 命令行入口。

对 runtime 辅助函数的薄封装，用于按构建脚本的方式试运行命令：

    build-exec --mode text git "rev-parse HEAD"
    build-exec --valid-exit-code 0 --valid-exit-code 1 -- grep "-q TODO setup.cfg"
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from . import __version__
from .config import Config, get_config
from .context import HostContext
from .errors import ProcessExitCodeError
from .runtime import exec_capture_lines, exec_capture_text, exec_process

__all__ = ["build_parser", "configure_logging", "main", "run"]

logger = logging.getLogger(__name__)


def configure_logging(config: Config) -> None:
    """根据配置设置日志输出。"""
    log_handlers: list[logging.Handler] = []
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if config.log_debug and config.log_file:
        # LOG_DEBUG 模式：输出到临时文件
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        # 默认模式：输出到 stderr
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(formatter)
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # 配置 root logger（第三方库）为 WARNING，减少噪音
    logging.basicConfig(level=logging.WARNING, handlers=log_handlers, force=True)
    logging.getLogger("build_exec").setLevel(log_level)


def _parse_env_pair(value: str) -> tuple[str, str]:
    key, sep, env_value = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return key, env_value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="build-exec",
        description="Run an external process the way build scripts do",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--mode",
        choices=("exec", "text", "lines"),
        default="exec",
        help="exec: inherit streams; text: print captured stdout; lines: stream stdout lines",
    )
    parser.add_argument(
        "--env",
        action="append",
        type=_parse_env_pair,
        default=[],
        metavar="KEY=VALUE",
        help="Environment variable override (repeatable)",
    )
    parser.add_argument(
        "--valid-exit-code",
        action="append",
        type=int,
        dest="valid_exit_codes",
        metavar="CODE",
        help="Allowed exit code (repeatable, default from BX_VALID_EXIT_CODES)",
    )
    parser.add_argument("--no-validate", action="store_true", help="Accept any exit code")
    parser.add_argument("--cwd", default=None, help="Working directory for the process")
    parser.add_argument("executable", help="Executable name or path")
    parser.add_argument("args", nargs="?", default="", help="Raw argument string")
    return parser


def run(argv: Sequence[str] | None = None) -> int:
    """执行命令行，返回子进程退出码。"""
    config = get_config()
    options = build_parser().parse_args(argv)

    if options.no_validate:
        valid_exit_codes: tuple[int, ...] = ()
    else:
        valid_exit_codes = tuple(options.valid_exit_codes or config.valid_exit_codes)

    context = HostContext.from_config(options.cwd)
    env = options.env or None

    try:
        if options.mode == "text":
            print(exec_capture_text(context, options.executable, options.args, env, valid_exit_codes))
            return 0
        if options.mode == "lines":
            with exec_capture_lines(context, options.executable, options.args, env, valid_exit_codes) as lines:
                for line in lines:
                    print(line, flush=True)
            return 0
        return exec_process(context, options.executable, options.args, env, valid_exit_codes)
    except ProcessExitCodeError as e:
        print(f"build-exec: {e}", file=sys.stderr)
        return e.exit_code or 1


def main() -> None:
    """主入口点。"""
    config = get_config()
    configure_logging(config)
    logger.debug(f"Starting build-exec: {config}")
    sys.exit(run())

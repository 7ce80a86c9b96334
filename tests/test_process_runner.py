"""spawn/exec helper tests.

Test coverage:
- Context validation
- Command logging, working directory and environment handling
- exec_process / exec_process_async exit-code policy
- exec_capture_text joining
- exec_capture_lines laziness, ordering, single pass and deferred validation
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from build_exec.context import HostContext, HostEnvironment
from build_exec.errors import ProcessExitCodeError
from build_exec.runtime.process_runner import (
    CapturedLines,
    exec_capture_lines,
    exec_capture_text,
    exec_process,
    exec_process_async,
    spawn,
)

from conftest import child_args

PYTHON = sys.executable


# =============================================================================
# Context Validation Tests
# =============================================================================


class TestContextValidation:
    """A missing context is reported immediately."""

    def test_spawn(self):
        with pytest.raises(ValueError):
            spawn(None, PYTHON, child_args())  # type: ignore[arg-type]

    def test_exec_process(self):
        with pytest.raises(ValueError):
            exec_process(None, PYTHON, child_args())  # type: ignore[arg-type]

    def test_exec_capture_text(self):
        with pytest.raises(ValueError):
            exec_capture_text(None, PYTHON, child_args())  # type: ignore[arg-type]

    def test_exec_capture_lines_is_eager(self):
        """The check happens on call, before the sequence is iterated."""
        with pytest.raises(ValueError):
            exec_capture_lines(None, PYTHON, child_args())  # type: ignore[arg-type]


# =============================================================================
# Spawn Tests
# =============================================================================


class TestSpawn:
    """Test spawn()."""

    def test_logs_command_line(self, context: HostContext, caplog: pytest.LogCaptureFixture):
        """The composed command line is logged at DEBUG."""
        caplog.set_level(logging.DEBUG, logger="build_exec.script")
        args = child_args("--line", "x")

        with spawn(context, PYTHON, args, redirect_stdout=True) as proc:
            proc.read_all_text()

        messages = [r.getMessage() for r in caplog.records if r.name == "build_exec.script"]
        assert any(m.startswith("Executing: ") and m.endswith(args) for m in messages)
        assert all(
            r.levelno == logging.DEBUG for r in caplog.records if r.name == "build_exec.script"
        )

    def test_working_directory(self, context: HostContext, temp_workspace: Path):
        """The process starts in the context's working directory."""
        with spawn(context, PYTHON, child_args("--print-cwd"), redirect_stdout=True) as proc:
            cwd = proc.read_all_text().strip()

        assert os.path.realpath(cwd) == os.path.realpath(temp_workspace)

    def test_relative_working_directory(
        self, temp_workspace: Path, monkeypatch: pytest.MonkeyPatch
    ):
        """A relative working directory is made absolute against the process cwd."""
        (temp_workspace / "sub").mkdir()
        monkeypatch.chdir(temp_workspace)
        context = HostContext(environment=HostEnvironment(Path("sub")))

        with spawn(context, PYTHON, child_args("--print-cwd"), redirect_stdout=True) as proc:
            assert proc.request.cwd is not None and proc.request.cwd.is_absolute()
            cwd = proc.read_all_text().strip()

        assert os.path.realpath(cwd) == os.path.realpath(temp_workspace / "sub")

    def test_environment_overrides(self, context: HostContext):
        """Overrides are added to the inherited environment."""
        args = child_args("--print-env", "BX_TEST_VAR", "--print-env", "PATH")

        with spawn(
            context, PYTHON, args, {"BX_TEST_VAR": "test_value_123"}, redirect_stdout=True
        ) as proc:
            lines = proc.read_all_text().splitlines()

        assert lines[0] == "BX_TEST_VAR=test_value_123"
        assert lines[1] == f"PATH={os.environ.get('PATH', '')}"

    def test_environment_pairs_later_wins(self, context: HostContext):
        args = child_args("--print-env", "BX_TEST_VAR")
        env = [("BX_TEST_VAR", "first"), ("BX_TEST_VAR", "second")]

        with spawn(context, PYTHON, args, env, redirect_stdout=True) as proc:
            assert proc.read_all_text().strip() == "BX_TEST_VAR=second"

    def test_resolves_through_context(self, context: HostContext):
        """The resolved path is used for the request."""
        with spawn(context, PYTHON, child_args()) as proc:
            assert Path(proc.request.executable.strip('"')) == Path(PYTHON)

    def test_nonexistent_executable(self, context: HostContext):
        with pytest.raises(OSError):
            spawn(context, "nonexistent_command_xyz_123", "")


# =============================================================================
# exec_process Tests
# =============================================================================


class TestExecProcess:
    """Test exec_process() and exec_process_async()."""

    def test_success(self, context: HostContext):
        assert exec_process(context, PYTHON, child_args()) == 0

    def test_default_policy_raises(self, context: HostContext):
        with pytest.raises(ProcessExitCodeError) as exc_info:
            exec_process(context, PYTHON, child_args("--exit-code", "2"))
        assert exc_info.value.exit_code == 2

    def test_none_behaves_like_default(self, context: HostContext):
        with pytest.raises(ProcessExitCodeError):
            exec_process(context, PYTHON, child_args("--exit-code", "2"), valid_exit_codes=None)

    def test_explicit_allow_list(self, context: HostContext):
        args = child_args("--exit-code", "2")
        assert exec_process(context, PYTHON, args, valid_exit_codes=[0, 2]) == 2

    def test_empty_allow_list_disables_validation(self, context: HostContext):
        args = child_args("--exit-code", "7")
        assert exec_process(context, PYTHON, args, valid_exit_codes=[]) == 7

    @pytest.mark.asyncio
    @pytest.mark.timeout(30)
    async def test_async_success(self, context: HostContext):
        assert await exec_process_async(context, PYTHON, child_args()) == 0

    @pytest.mark.asyncio
    @pytest.mark.timeout(30)
    async def test_async_policy(self, context: HostContext):
        args = child_args("--exit-code", "3")

        with pytest.raises(ProcessExitCodeError):
            await exec_process_async(context, PYTHON, args)

        assert await exec_process_async(context, PYTHON, args, valid_exit_codes=[3]) == 3


# =============================================================================
# exec_capture_text Tests
# =============================================================================


class TestExecCaptureText:
    """Test exec_capture_text()."""

    def test_joins_with_line_separator(self, context: HostContext):
        """Lines are joined with os.linesep, without a trailing separator."""
        args = child_args("--line", "a", "--line", "b", "--line", "c")

        text = exec_capture_text(context, PYTHON, args)

        assert text == os.linesep.join(["a", "b", "c"])

    def test_empty_output(self, context: HostContext):
        assert exec_capture_text(context, PYTHON, child_args()) == ""

    def test_raises_on_bad_exit_code(self, context: HostContext):
        with pytest.raises(ProcessExitCodeError):
            exec_capture_text(context, PYTHON, child_args("--line", "a", "--exit-code", "1"))

    def test_allow_list(self, context: HostContext):
        args = child_args("--line", "a", "--exit-code", "1")
        assert exec_capture_text(context, PYTHON, args, valid_exit_codes=[1]) == "a"

    def test_empty_allow_list_disables_validation(self, context: HostContext):
        """An empty explicit allow-list accepts any exit code."""
        args = child_args("--line", "a", "--exit-code", "5")
        assert exec_capture_text(context, PYTHON, args, valid_exit_codes=[]) == "a"

    def test_large_output(self, context: HostContext):
        text = exec_capture_text(context, PYTHON, child_args("--count", "2000"))
        lines = text.split(os.linesep)
        assert len(lines) == 2000
        assert lines[-1] == "line2000"


# =============================================================================
# exec_capture_lines Tests
# =============================================================================


class TestExecCaptureLines:
    """Test exec_capture_lines()."""

    def test_lines_in_order(self, context: HostContext):
        lines = exec_capture_lines(context, PYTHON, child_args("--count", "5"))
        assert list(lines) == [f"line{i}" for i in range(1, 6)]

    def test_single_pass(self, context: HostContext):
        """A second consumption yields nothing more."""
        lines = exec_capture_lines(context, PYTHON, child_args("--line", "a", "--line", "b"))

        assert list(lines) == ["a", "b"]
        assert list(lines) == []

    def test_empty_lines_preserved(self, context: HostContext):
        args = child_args("--line", "a", "--line", '""', "--line", "b")
        assert list(exec_capture_lines(context, PYTHON, args)) == ["a", "", "b"]

    def test_spawn_is_deferred(self, context: HostContext):
        """Nothing is started until the first line is requested."""
        lines = exec_capture_lines(context, "nonexistent_command_xyz_123", "")

        with pytest.raises(OSError):
            next(lines)

    def test_validation_on_exhaustion(self, context: HostContext):
        """The exit-code error surfaces once the lines are exhausted."""
        lines = exec_capture_lines(context, PYTHON, child_args("--line", "a", "--exit-code", "3"))

        assert next(lines) == "a"
        with pytest.raises(ProcessExitCodeError) as exc_info:
            next(lines)
        assert exc_info.value.exit_code == 3

    def test_validation_on_early_close(self, context: HostContext):
        """Abandoning the sequence releases the handle and validates."""
        args = child_args("--line", "a", "--line", "b", "--exit-code", "4")
        lines = exec_capture_lines(context, PYTHON, args)

        assert next(lines) == "a"
        with pytest.raises(ProcessExitCodeError):
            lines.close()

    def test_break_inside_with_raises(self, context: HostContext):
        """Breaking out of the loop inside a with block validates in the caller."""
        args = child_args("--line", "a", "--line", "b", "--exit-code", "4")

        with pytest.raises(ProcessExitCodeError) as exc_info:
            with exec_capture_lines(context, PYTHON, args) as lines:
                for line in lines:
                    assert line == "a"
                    break

        assert exc_info.value.exit_code == 4

    def test_break_inside_with_success(self, context: HostContext):
        args = child_args("--line", "a", "--line", "b")

        with exec_capture_lines(context, PYTHON, args) as lines:
            for line in lines:
                break

        assert line == "a"
        assert list(lines) == []

    def test_with_block_exhausted(self, context: HostContext):
        """Leaving the block after exhaustion does not validate twice."""
        with exec_capture_lines(context, PYTHON, child_args("--count", "2")) as lines:
            assert list(lines) == ["line1", "line2"]

    def test_close_before_start(self, context: HostContext):
        """Closing before the first line never starts the process."""
        lines = exec_capture_lines(context, "nonexistent_command_xyz_123", "")
        lines.close()

        assert list(lines) == []

    def test_returns_captured_lines(self, context: HostContext):
        lines = exec_capture_lines(context, PYTHON, child_args())
        try:
            assert isinstance(lines, CapturedLines)
            assert iter(lines) is lines
        finally:
            lines.close()

    def test_early_close_success(self, context: HostContext):
        lines = exec_capture_lines(context, PYTHON, child_args("--line", "a", "--line", "b"))

        assert next(lines) == "a"
        lines.close()
        assert list(lines) == []

    def test_empty_allow_list_disables_validation(self, context: HostContext):
        args = child_args("--line", "a", "--exit-code", "4")
        assert list(exec_capture_lines(context, PYTHON, args, valid_exit_codes=[])) == ["a"]

    def test_lines_are_logged(self, context: HostContext, caplog: pytest.LogCaptureFixture):
        caplog.set_level(logging.DEBUG, logger="build_exec.script")

        list(exec_capture_lines(context, PYTHON, child_args("--line", "echoed-line")))

        messages = [r.getMessage() for r in caplog.records if r.name == "build_exec.script"]
        assert "echoed-line" in messages

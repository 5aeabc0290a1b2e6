"""Unit tests for shared utility functions (fhevm_studio.utils).

Tests cover:
- run_command (list and shell forms, cwd, env, timeout, uncaptured output)
- format_duration
- display_path
- Rich output helpers (smoke tests)
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from fhevm_studio.utils import (
    display_path,
    format_duration,
    print_banner,
    print_error,
    print_info,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command_list(self):
        returncode, stdout, stderr = await run_command([sys.executable, "-c", "print('hello')"])
        assert returncode == 0
        assert "hello" in stdout

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command_string(self):
        returncode, stdout, stderr = await run_command("echo hello")
        assert returncode == 0
        assert "hello" in stdout

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_command(self):
        returncode, _, _ = await run_command([sys.executable, "-c", "import sys; sys.exit(3)"])
        assert returncode == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_with_cwd(self, tmp_path: Path):
        returncode, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert returncode == 0
        assert Path(stdout.strip()).resolve() == tmp_path.resolve()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_with_env(self):
        returncode, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.environ['CI'])"],
            env={"CI": "true"},
        )
        assert returncode == 0
        assert stdout == "true"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_timeout(self):
        returncode, _, stderr = await run_command(
            [sys.executable, "-c", "import time; time.sleep(10)"], timeout=1
        )
        assert returncode == -1
        assert "timed out" in stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_uncaptured_output_is_empty(self):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "print('hidden')"], capture=False
        )
        assert returncode == 0
        assert stdout == ""
        assert stderr == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_returns_stderr(self):
        _, _, stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('error_msg\\n')"]
        )
        assert "error_msg" in stderr


# ---------------------------------------------------------------------------
# format_duration
# ---------------------------------------------------------------------------


class TestFormatDuration:
    @pytest.mark.unit
    def test_seconds(self):
        assert format_duration(3.7) == "3.7s"

    @pytest.mark.unit
    def test_minutes(self):
        assert format_duration(65.2) == "1m 5s"

    @pytest.mark.unit
    def test_hours(self):
        assert format_duration(3661.0) == "1h 1m 1s"

    @pytest.mark.unit
    def test_negative(self):
        assert format_duration(-1) == "0.0s"


# ---------------------------------------------------------------------------
# display_path
# ---------------------------------------------------------------------------


class TestDisplayPath:
    @pytest.mark.unit
    def test_relative_to_base(self, tmp_path: Path):
        assert display_path(tmp_path / "output" / "x", tmp_path) == str(Path("output") / "x")

    @pytest.mark.unit
    def test_outside_base_is_unchanged(self, tmp_path: Path):
        other = tmp_path / "a"
        assert display_path(other, tmp_path / "b") == str(other)


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


class TestOutputHelpers:
    @pytest.mark.unit
    def test_helpers_print_through_console(self):
        with patch("fhevm_studio.utils.console") as console:
            print_banner("Batch")
            print_step(1, "Copying template")
            print_info("info")
            print_success("done")
            print_warning("careful")
            print_error("broken")
            print_summary_table({"Example": "fhe-add"})
        assert console.print.call_count >= 8
        printed = " ".join(str(c.args[0]) for c in console.print.call_args_list if c.args)
        assert "Copying template" in printed
        assert "careful" in printed

"""Batch generation and testing of example projects.

The orchestrator regenerates each requested example from scratch, optionally
runs its test command and records one outcome per identifier.  A failing
item never stops the run; only an invalid identifier list raises.
"""

from __future__ import annotations

import asyncio
import shutil
import time
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, computed_field
from rich.table import Table

from fhevm_studio.assembler.descriptor import DESCRIPTOR_NAME
from fhevm_studio.config import StudioConfig
from fhevm_studio.errors import ConfigError, ExternalCommandFailure, StudioError
from fhevm_studio.scaffolder import Scaffolder
from fhevm_studio.utils import (
    console,
    format_duration,
    print_banner,
    print_error,
    print_info,
    print_success,
    print_warning,
    run_command,
)

# Keeps the template's test tooling from prompting.
TEST_ENV = {"CI": "true"}


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------

class ItemStatus(str, Enum):
    SUCCESS = "success"
    GENERATION_FAILED = "generation-failed"
    TEST_FAILED = "test-failed"


class ItemOutcome(BaseModel):
    """Result of generating (and possibly testing) one example."""

    identifier: str
    status: ItemStatus
    project_dir: Path | None = None
    detail: str = Field(default="", description="Cause of a failure")
    duration_seconds: float = Field(default=0.0, ge=0.0)


class BatchRun(BaseModel):
    """Aggregate of one orchestrator invocation.  Reported, never persisted."""

    outcomes: list[ItemOutcome] = Field(default_factory=list)
    tests_run: bool = True
    duration_seconds: float = Field(default=0.0, ge=0.0)

    @computed_field  # type: ignore[misc]
    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.status is ItemStatus.SUCCESS)

    @computed_field  # type: ignore[misc]
    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    @computed_field  # type: ignore[misc]
    @property
    def failed_identifiers(self) -> list[str]:
        return [o.identifier for o in self.outcomes if o.status is not ItemStatus.SUCCESS]

    @property
    def ok(self) -> bool:
        return self.failed == 0


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class BatchOrchestrator:
    """Runs the scaffolder over many identifiers, strictly one after another."""

    def __init__(self, config: StudioConfig, scaffolder: Scaffolder) -> None:
        self.config = config
        self.scaffolder = scaffolder

    async def run_batch(self, identifiers: list[str], run_tests: bool = True) -> BatchRun:
        """Generate every identifier in order and optionally test it.

        Each per-identifier output directory is deleted first without asking.
        Generation failures and test failures are recorded, not raised.

        Raises:
            ConfigError: *identifiers* is empty.
        """
        if not identifiers:
            raise ConfigError("No examples selected for the batch run")

        run = BatchRun(tests_run=run_tests)
        started = time.monotonic()
        total = len(identifiers)
        for position, identifier in enumerate(identifiers, 1):
            print_banner(f"[{position}/{total}] {identifier}")
            run.outcomes.append(await self._run_item(identifier, run_tests))
        run.duration_seconds = time.monotonic() - started
        return run

    async def _run_item(self, identifier: str, run_tests: bool) -> ItemOutcome:
        started = time.monotonic()
        project = self.config.batch_output_dir(identifier)

        if project.exists():
            print_info(f"Removing existing directory: {project}")
            await asyncio.to_thread(shutil.rmtree, project)

        try:
            await self.scaffolder.create_example_project(
                identifier, project, with_docs=True, overwrite=True
            )
        except (StudioError, OSError, UnicodeDecodeError) as exc:
            print_error(f"Failed to generate {identifier}: {exc}")
            return ItemOutcome(
                identifier=identifier,
                status=ItemStatus.GENERATION_FAILED,
                detail=str(exc),
                duration_seconds=time.monotonic() - started,
            )

        if run_tests:
            detail = await self._test_item(project)
            if detail:
                print_error(f"Tests failed for {identifier}: {detail}")
                return ItemOutcome(
                    identifier=identifier,
                    status=ItemStatus.TEST_FAILED,
                    project_dir=project,
                    detail=detail,
                    duration_seconds=time.monotonic() - started,
                )
            print_success(f"Tests passed for {identifier}")

        return ItemOutcome(
            identifier=identifier,
            status=ItemStatus.SUCCESS,
            project_dir=project,
            duration_seconds=time.monotonic() - started,
        )

    async def _test_item(self, project: Path) -> str:
        """Run the test command; return a failure description or ``""``."""
        if not (project / DESCRIPTOR_NAME).is_file():
            return f"{DESCRIPTOR_NAME} not found in {project}"
        command = self.config.test_command
        returncode, _, _ = await run_command(command, cwd=project, capture=False, env=TEST_ENV)
        if returncode != 0:
            return f"`{command}` exited with status {returncode}"
        return ""


async def run_project_tests(config: StudioConfig, project: Path) -> None:
    """Compile and test an already generated project.

    Raises:
        ConfigError: *project* does not exist.
        ExternalCommandFailure: A command exited non-zero.
    """
    if not project.is_dir():
        raise ConfigError(f"Project directory not found: {project}")
    for command in (config.compile_command, config.project_test_command):
        print_info(f"Running `{command}` in {project}")
        returncode, _, _ = await run_command(command, cwd=project, capture=False)
        if returncode != 0:
            raise ExternalCommandFailure(
                f"`{command}` failed with exit code {returncode}",
                command=command,
                returncode=returncode,
            )


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------

_STATUS_LABELS = {
    ItemStatus.SUCCESS: "[green]PASS[/green]",
    ItemStatus.GENERATION_FAILED: "[red]GENERATION FAILED[/red]",
    ItemStatus.TEST_FAILED: "[red]TEST FAILED[/red]",
}


def print_report(run: BatchRun) -> None:
    """Print the per-identifier table and the success/failure tally."""
    table = Table(title="Batch Summary")
    table.add_column("Example", style="bold")
    table.add_column("Status")
    table.add_column("Duration")
    table.add_column("Detail")
    for outcome in run.outcomes:
        table.add_row(
            outcome.identifier,
            _STATUS_LABELS[outcome.status],
            format_duration(outcome.duration_seconds),
            outcome.detail,
        )
    console.print(table)
    console.print(
        f"\n[bold]Total:[/bold] {run.succeeded} succeeded, {run.failed} failed "
        f"({format_duration(run.duration_seconds)})"
    )
    if not run.tests_run:
        print_warning("Tests were skipped")
    if run.failed_identifiers:
        print_error("Failed examples:")
        for identifier in run.failed_identifiers:
            console.print(f"  - {identifier}")
    else:
        print_success("All examples generated successfully!")

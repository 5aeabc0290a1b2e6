"""Removal of generated outputs and generated documents."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from fhevm_studio.config import StudioConfig
from fhevm_studio.docs.index import reset_index

_KEEP_DIR_NAMES = frozenset({"node_modules"})


@dataclass
class CleanupPlan:
    """Everything a cleanup would delete."""

    output_dirs: list[Path] = field(default_factory=list)
    doc_files: list[Path] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.output_dirs and not self.doc_files


def plan_cleanup(config: StudioConfig) -> CleanupPlan:
    """List generated project directories under ``output/`` and every
    generated document under ``docs/`` (``SUMMARY.md`` excluded)."""
    plan = CleanupPlan()
    if config.output_dir.is_dir():
        plan.output_dirs = sorted(
            p for p in config.output_dir.iterdir() if p.is_dir() and p.name not in _KEEP_DIR_NAMES
        )
    if config.docs_dir.is_dir():
        plan.doc_files = sorted(
            p
            for p in config.docs_dir.glob("*.md")
            if p.is_file() and p.name != config.summary_path.name
        )
    return plan


def run_cleanup(config: StudioConfig, plan: CleanupPlan) -> None:
    """Delete what *plan* lists and reset the index to its header.

    The index is only reset when it already exists.
    """
    for directory in plan.output_dirs:
        shutil.rmtree(directory)
    for doc in plan.doc_files:
        doc.unlink()
    if config.summary_path.is_file():
        reset_index(config.summary_path)

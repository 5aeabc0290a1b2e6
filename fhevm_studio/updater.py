"""Dependency-version updates across generated projects and templates.

The updater walks the file system, not the registry: every ``package.json``
below a scope's root is a candidate, except those inside ``node_modules``.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from fhevm_studio.assembler.descriptor import (
    DESCRIPTOR_NAME,
    load_descriptor,
    set_dev_dependency,
    write_descriptor,
)
from fhevm_studio.config import StudioConfig
from fhevm_studio.errors import ConfigError
from fhevm_studio.utils import display_path, print_info, print_success, print_warning

_SKIPPED_DIR_NAMES = frozenset({"node_modules"})


class UpdateScope(str, Enum):
    ALL = "all"
    OUTPUT = "output"
    CATEGORIES = "categories"
    BASE_TEMPLATE = "base-template"
    MAIN = "main"


class UpdateReport(BaseModel):
    """Per-file outcome of one version update."""

    updated: list[Path] = Field(default_factory=list)
    skipped: list[Path] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict, description="Unreadable descriptors")

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


def find_descriptors(directory: Path) -> list[Path]:
    """Every descriptor below *directory*, skipping dependency caches."""
    if not directory.is_dir():
        return []
    return sorted(
        path
        for path in directory.rglob(DESCRIPTOR_NAME)
        if path.is_file() and not _SKIPPED_DIR_NAMES.intersection(path.relative_to(directory).parts)
    )


class VersionUpdater:
    """Sets one ``devDependencies`` version in every descriptor of the chosen scopes."""

    def __init__(self, config: StudioConfig) -> None:
        self.config = config

    def candidates(self, scope: UpdateScope) -> list[Path]:
        """Descriptor files a scope covers."""
        if scope is UpdateScope.ALL:
            return self.candidates(UpdateScope.OUTPUT) + self.candidates(UpdateScope.CATEGORIES)
        if scope is UpdateScope.OUTPUT:
            return find_descriptors(self.config.output_dir)
        if scope is UpdateScope.CATEGORIES:
            return find_descriptors(self.config.categories_dir)
        if scope is UpdateScope.BASE_TEMPLATE:
            path = self.config.template_dir / DESCRIPTOR_NAME
        else:
            path = self.config.root_dir / DESCRIPTOR_NAME
        if not path.is_file():
            print_warning(f"{DESCRIPTOR_NAME} not found: {path}")
            return []
        return [path]

    def update_package_version(
        self, name: str, version: str, scopes: list[UpdateScope]
    ) -> UpdateReport:
        """Write ``devDependencies[name] = version`` wherever it differs.

        A descriptor already declaring *version* is skipped and left untouched
        on disk.  A descriptor that does not declare *name* at all gets it
        added, which counts as an update.  A file listed by two scopes is only
        processed once.
        """
        report = UpdateReport()
        seen: set[Path] = set()
        for scope in scopes:
            print_info(f"Updating {scope.value}: {name}@{version}")
            for path in self.candidates(scope):
                resolved = path.resolve()
                if resolved in seen:
                    continue
                seen.add(resolved)
                self._update_file(path, name, version, report)
        print_success(
            f"Updated {report.updated_count} {DESCRIPTOR_NAME} files, skipped {report.skipped_count}"
        )
        return report

    def _update_file(self, path: Path, name: str, version: str, report: UpdateReport) -> None:
        try:
            data = load_descriptor(path)
        except ConfigError as exc:
            print_warning(f"Failed to update {path}: {exc}")
            report.failed[str(path)] = str(exc)
            return
        if not set_dev_dependency(data, name, version):
            report.skipped.append(path)
            return
        write_descriptor(path, data)
        report.updated.append(path)
        print_success(f"  {display_path(path, self.config.root_dir)}")

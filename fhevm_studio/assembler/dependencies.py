"""Placement of the extra files a manifest entry depends on.

A dependency's destination is decided by its logical role rather than its
physical location: a ``.sol`` helper stored under ``test/`` is still compiled
with the other source units, so it lands in ``contracts/``.
"""

from __future__ import annotations

import shutil
import warnings
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from fhevm_studio.assembler.imports import relative_import, rewrite_known_import_patterns
from fhevm_studio.errors import DependencyResolutionWarning

if TYPE_CHECKING:
    from fhevm_studio.registry.models import CategoryUnit, ExampleManifestEntry

SOURCE_AREA = "contracts"
TEST_AREA = "test"
SOURCE_SUFFIX = ".sol"


class DependencyRole(str, Enum):
    SOURCE = "source"
    TEST = "test"
    LIBRARY = "library"


@dataclass
class PlacedDependency:
    """Where one dependency file ended up inside the generated project."""

    original: str
    destination: Path
    role: DependencyRole


@dataclass
class DependencyReport:
    """Outcome of resolving every dependency of one entry."""

    placed: list[PlacedDependency] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    rewritten: list[tuple[str, str]] = field(default_factory=list)


def classify_dependency(relative_path: str) -> DependencyRole:
    """Decide which area of the generated project a dependency belongs to."""
    path = PurePosixPath(relative_path)
    if path.parts and path.parts[0] == SOURCE_AREA:
        return DependencyRole.SOURCE
    if path.parts and path.parts[0] == TEST_AREA:
        return DependencyRole.SOURCE if path.suffix == SOURCE_SUFFIX else DependencyRole.TEST
    return DependencyRole.LIBRARY


def dependency_destination(relative_path: str, *, preserve_subdirs: bool) -> PurePosixPath:
    """Project-relative destination of a dependency.

    Source-role files are flattened into ``contracts/`` unless
    *preserve_subdirs* is set, in which case the subdirectory below
    ``contracts/`` is kept (``contracts/openzeppelin/X.sol`` stays put).
    Test helpers keep their path below ``test/``.  Library files keep their
    full package path under ``contracts/`` so package-style imports resolve
    through the vendored path mapping.
    """
    path = PurePosixPath(relative_path)
    role = classify_dependency(relative_path)
    if role is DependencyRole.SOURCE:
        if preserve_subdirs and path.parts[0] == SOURCE_AREA:
            return PurePosixPath(SOURCE_AREA, *path.parts[1:])
        return PurePosixPath(SOURCE_AREA, path.name)
    if role is DependencyRole.TEST:
        return PurePosixPath(TEST_AREA, *path.parts[1:])
    return PurePosixPath(SOURCE_AREA, *path.parts)


def resolve_dependencies(
    entry: "ExampleManifestEntry | CategoryUnit",
    repo_root: Path,
    dest_root: Path,
    *,
    placed_unit: Path | None = None,
    preserve_subdirs: bool = False,
) -> DependencyReport:
    """Copy every dependency of *entry* into the project at *dest_root*.

    When *placed_unit* is given, import references inside that copied source
    unit which pointed at a dependency's original location are rewritten to
    point at its new location.

    A dependency that cannot be found is reported through
    ``DependencyResolutionWarning`` and skipped; a library file that is
    already present in the project (vendored earlier) counts as placed.
    """
    report = DependencyReport()

    for dependency in entry.dependencies:
        role = classify_dependency(dependency)
        relative_dest = dependency_destination(dependency, preserve_subdirs=preserve_subdirs)
        destination = dest_root / Path(relative_dest)
        origin = repo_root / Path(dependency)

        if origin.is_file():
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(origin, destination)
        elif role is DependencyRole.LIBRARY and destination.is_file():
            pass  # provided by the vendored library tree
        else:
            report.missing.append(dependency)
            warnings.warn(
                f"Dependency not found: {dependency}",
                DependencyResolutionWarning,
                stacklevel=2,
            )
            continue

        report.placed.append(PlacedDependency(dependency, destination, role))

    if placed_unit is not None and report.placed:
        report.rewritten = _rewrite_unit_imports(entry.source, placed_unit, dest_root, report.placed)

    return report


def _rewrite_unit_imports(
    unit_source: str,
    placed_unit: Path,
    dest_root: Path,
    placed: list[PlacedDependency],
) -> list[tuple[str, str]]:
    """Point the copied unit's relative imports at relocated dependencies."""
    original_dir = PurePosixPath(unit_source).parent
    placed_dir = PurePosixPath(placed_unit.relative_to(dest_root).as_posix()).parent

    text = placed_unit.read_text(encoding="utf-8")
    updated = text
    rewrites: list[tuple[str, str]] = []
    for dep in placed:
        if dep.role is DependencyRole.LIBRARY:
            continue
        old_ref = relative_import(original_dir, dep.original)
        new_ref = relative_import(
            placed_dir, PurePosixPath(dep.destination.relative_to(dest_root).as_posix())
        )
        if old_ref == new_ref:
            continue
        candidate = rewrite_known_import_patterns(updated, old_ref, new_ref)
        if candidate != updated:
            rewrites.append((old_ref, new_ref))
            updated = candidate

    if updated != text:
        placed_unit.write_text(updated, encoding="utf-8")
    return rewrites

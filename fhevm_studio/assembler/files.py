"""File-level operations: template copy, unit placement and unit naming."""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

EXCLUDED_DIR_NAMES: tuple[str, ...] = (
    "node_modules",
    "artifacts",
    "cache",
    "coverage",
    "types",
    "dist",
    ".git",
)
EXCLUDED_FILE_NAMES: tuple[str, ...] = (".gitignore", "package-lock.json")

# A declaration keyword followed by the unit name and then either an
# inheritance clause or the opening brace.  Anchored to a line start so that
# names mentioned inside comments are ignored.
_UNIT_DECLARATION = re.compile(r"^\s*contract\s+(\w+)(?:\s+is\s+|\s*\{)", re.MULTILINE)

PLACEHOLDER_UNIT = "FHECounter"


def copy_tree(
    src: Path,
    dst: Path,
    exclude_dir_names: Iterable[str] = EXCLUDED_DIR_NAMES,
    exclude_file_names: Iterable[str] = EXCLUDED_FILE_NAMES,
) -> Path:
    """Recursively mirror *src* into *dst*.

    Directories named in *exclude_dir_names* are skipped at any depth, as are
    files named in *exclude_file_names*.  *dst* is created if absent; any I/O
    error propagates.
    """
    dir_names = frozenset(exclude_dir_names)
    file_names = frozenset(exclude_file_names)

    def _ignore(directory: str, names: list[str]) -> set[str]:
        ignored: set[str] = set()
        for name in names:
            if (Path(directory) / name).is_dir():
                if name in dir_names:
                    ignored.add(name)
            elif name in file_names:
                ignored.add(name)
        return ignored

    shutil.copytree(src, dst, ignore=_ignore, dirs_exist_ok=True)
    return dst


def strip_category_prefix(relative_path: str, area: str, category: str) -> PurePosixPath:
    """Drop the area root and the category segment from a registry path.

    ``contracts/basic/encrypt/EncryptSingleValue.sol`` with area ``contracts``
    and category ``basic`` becomes ``encrypt/EncryptSingleValue.sol``.
    """
    parts = PurePosixPath(relative_path).parts
    if parts and parts[0] == area:
        parts = parts[1:]
    if len(parts) > 1 and parts[0] == category:
        parts = parts[1:]
    return PurePosixPath(*parts)


def place_unit(source_path: Path, dest_root: Path, relative_subpath: str | PurePosixPath) -> Path:
    """Copy one file to ``dest_root / relative_subpath``, creating parents."""
    destination = dest_root / Path(relative_subpath)
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source_path, destination)
    return destination


def derive_unit_name(source_text: str) -> str | None:
    """Return the declared unit name in *source_text*, or ``None``.

    Callers must treat ``None`` as fatal: nothing can be scaffolded without a
    name.
    """
    match = _UNIT_DECLARATION.search(source_text)
    return match.group(1) if match else None


def remove_placeholders(project_root: Path, *, all_sources: bool = False) -> list[Path]:
    """Delete the template's placeholder source and test units.

    The placeholder source unit is always removed; with *all_sources* every
    top-level ``contracts/*.sol`` goes.  Every top-level ``test/*.ts`` is
    removed in both modes.
    """
    removed: list[Path] = []
    contracts_dir = project_root / "contracts"
    if contracts_dir.is_dir():
        if all_sources:
            candidates = sorted(contracts_dir.glob("*.sol"))
        else:
            candidates = [contracts_dir / f"{PLACEHOLDER_UNIT}.sol"]
        for path in candidates:
            if path.is_file():
                path.unlink()
                removed.append(path)

    test_dir = project_root / "test"
    if test_dir.is_dir():
        for path in sorted(test_dir.glob("*.ts")):
            path.unlink()
            removed.append(path)
    return removed

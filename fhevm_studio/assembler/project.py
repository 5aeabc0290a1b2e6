"""Edits to the generated project's build configuration and task scripts."""

from __future__ import annotations

import re
from pathlib import Path

from fhevm_studio.assembler.files import PLACEHOLDER_UNIT, copy_tree
from fhevm_studio.rendering import camel_case

HARDHAT_CONFIG = "hardhat.config.ts"
VENDORED_PACKAGE = "@openzeppelin/confidential-contracts"
PLACEHOLDER_VARIABLE = "fheCounter"

_TASK_IMPORT = re.compile(rf"""import\s+["']\./tasks/{PLACEHOLDER_UNIT}["'];?""")
_EVM_VERSION = re.compile(r'(evmVersion:\s*"cancun",)')


def patch_hardhat_config(project_root: Path, unit_name: str) -> bool:
    """Point the placeholder task import at the generated unit's task file.

    Returns ``False`` when the project has no hardhat config.
    """
    path = project_root / HARDHAT_CONFIG
    if not path.is_file():
        return False
    content = path.read_text(encoding="utf-8")
    updated = _TASK_IMPORT.sub(f'import "./tasks/{unit_name}";', content)
    if updated != content:
        path.write_text(updated, encoding="utf-8")
    return True


def add_vendored_library_paths(project_root: Path) -> bool:
    """Map the vendored package name onto its copy under ``contracts/``.

    The mapping is inserted after the ``evmVersion`` setting, and only when the
    config declares no ``paths:`` entry yet.  Returns whether the file changed.
    """
    path = project_root / HARDHAT_CONFIG
    if not path.is_file():
        return False
    content = path.read_text(encoding="utf-8")
    if "paths:" in content:
        return False
    mapping = (
        r"\1" "\n"
        "      paths: {\n"
        f'        "{VENDORED_PACKAGE}": ["./contracts/{VENDORED_PACKAGE}"],\n'
        "      },"
    )
    updated = _EVM_VERSION.sub(mapping, content, count=1)
    if updated == content:
        return False
    path.write_text(updated, encoding="utf-8")
    return True


def vendor_library(library_dir: Path, project_root: Path) -> Path | None:
    """Copy the library tree to ``contracts/@openzeppelin/confidential-contracts``.

    Returns the destination, or ``None`` when *library_dir* does not exist.
    """
    if not library_dir.is_dir():
        return None
    destination = project_root / "contracts" / VENDORED_PACKAGE
    copy_tree(library_dir, destination)
    add_vendored_library_paths(project_root)
    return destination


def rename_task_script(project_root: Path, unit_name: str) -> Path | None:
    """Rewrite ``tasks/FHECounter.ts`` into ``tasks/<unit>.ts``.

    Both the type name and its variable form (``fheCounter``) are substituted.
    Returns the new path, or ``None`` when the template has no placeholder
    task script.
    """
    tasks_dir = project_root / "tasks"
    old_path = tasks_dir / f"{PLACEHOLDER_UNIT}.ts"
    if not old_path.is_file():
        return None

    content = old_path.read_text(encoding="utf-8")
    content = content.replace(PLACEHOLDER_UNIT, unit_name)
    content = content.replace(PLACEHOLDER_VARIABLE, camel_case(unit_name))

    new_path = tasks_dir / f"{unit_name}.ts"
    new_path.write_text(content, encoding="utf-8")
    if new_path != old_path:
        old_path.unlink()
    return new_path

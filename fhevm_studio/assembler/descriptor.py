"""Package-descriptor (``package.json``) patching.

Only a fixed set of top-level fields and ``devDependencies`` pins is ever
written.  Unknown fields are preserved as loaded and nothing is removed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from fhevm_studio.errors import ConfigError

DESCRIPTOR_NAME = "package.json"
LOCK_FILE_NAME = "package-lock.json"
DEV_DEPENDENCIES = "devDependencies"
HOMEPAGE_BASE = "https://github.com/zama-ai/fhevm-examples"


class DescriptorFields(BaseModel):
    """The targeted fields of one descriptor patch."""

    name: str
    description: str = ""
    homepage: str = ""
    pins: dict[str, str] = Field(default_factory=dict, description="Always written")
    pins_if_present: dict[str, str] = Field(
        default_factory=dict, description="Written only when the package is already declared"
    )

    @classmethod
    def for_project(
        cls,
        name: str,
        slug: str,
        description: str,
        pins: dict[str, str],
        pins_if_present: dict[str, str],
    ) -> "DescriptorFields":
        return cls(
            name=name,
            description=description,
            homepage=f"{HOMEPAGE_BASE}/{slug}",
            pins=pins,
            pins_if_present=pins_if_present,
        )


def load_descriptor(path: Path) -> dict[str, Any]:
    """Parse a descriptor file, raising ``ConfigError`` if it is unusable."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Package descriptor not found: {path}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Package descriptor is not valid JSON: {path} ({exc})") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Package descriptor must be a JSON object: {path}")
    return data


def write_descriptor(path: Path, data: dict[str, Any]) -> None:
    """Write *data* back with two-space indentation."""
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def set_dev_dependency(data: dict[str, Any], package: str, version: str) -> bool:
    """Set ``devDependencies[package] = version``; return whether it changed."""
    dev_deps = data.setdefault(DEV_DEPENDENCIES, {})
    if dev_deps.get(package) == version:
        return False
    dev_deps[package] = version
    return True


def patch_descriptor(dest_root: Path, fields: DescriptorFields) -> Path:
    """Overwrite the targeted fields of ``dest_root/package.json``.

    The stale lock file is deleted afterwards so the consumer regenerates it
    against the pinned versions.

    Returns:
        The descriptor path.
    """
    path = dest_root / DESCRIPTOR_NAME
    data = load_descriptor(path)

    data["name"] = fields.name
    data["description"] = fields.description
    data["homepage"] = fields.homepage

    dev_deps = data.get(DEV_DEPENDENCIES) or {}
    for package, version in fields.pins_if_present.items():
        if package in dev_deps:
            set_dev_dependency(data, package, version)
    for package, version in fields.pins.items():
        set_dev_dependency(data, package, version)

    write_descriptor(path, data)

    lock_file = dest_root / LOCK_FILE_NAME
    if lock_file.exists():
        lock_file.unlink()
    return path

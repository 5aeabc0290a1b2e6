"""Pydantic models for the three manifest tables.

Every model is frozen: the registry is built once at process start and is
never mutated afterwards.  Paths are stored as POSIX strings relative to the
examples repository root, exactly as they appear in the data files.
"""

from __future__ import annotations

from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _relative_posix(value: str) -> str:
    path = PurePosixPath(value)
    if path.is_absolute() or ".." in path.parts:
        raise ValueError(f"manifest paths must be relative to the repository root: {value!r}")
    return str(path)


# ---------------------------------------------------------------------------
# Example table
# ---------------------------------------------------------------------------

class ExampleManifestEntry(BaseModel):
    """One standalone example: a source unit, its test unit and extra files."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(..., min_length=1, description="Unique key, e.g. 'fhe-add'")
    source: str = Field(..., description="Source unit path, e.g. 'contracts/basic/FHEAdd.sol'")
    test: str = Field(..., description="Test unit path")
    description: str = Field(default="")
    category: str = Field(..., min_length=1, description="Category tag, e.g. 'basic'")
    dependencies: tuple[str, ...] = Field(
        default=(), description="Extra files the source unit needs (other units or library files)"
    )
    fixture: str | None = Field(default=None, description="Optional test fixture copied beside the test")

    @field_validator("source", "test")
    @classmethod
    def _check_paths(cls, value: str) -> str:
        return _relative_posix(value)

    @field_validator("dependencies")
    @classmethod
    def _check_dependencies(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(_relative_posix(v) for v in value)


# ---------------------------------------------------------------------------
# Category table
# ---------------------------------------------------------------------------

class CategoryUnit(BaseModel):
    """A source/test pair listed inside a category."""

    model_config = ConfigDict(frozen=True)

    source: str
    test: str
    dependencies: tuple[str, ...] = Field(default=())
    fixture: str | None = None
    skip_test: bool = Field(default=False, description="Place the source unit but not its test")

    @field_validator("source", "test")
    @classmethod
    def _check_paths(cls, value: str) -> str:
        return _relative_posix(value)

    @field_validator("dependencies")
    @classmethod
    def _check_dependencies(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(_relative_posix(v) for v in value)


class CategoryManifestEntry(BaseModel):
    """A named group of units generated together into one project."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(..., min_length=1)
    name: str = Field(..., description="Display name, e.g. 'Basic FHEVM Examples'")
    description: str = Field(default="")
    units: tuple[CategoryUnit, ...] = Field(..., min_length=1)
    extra_dependencies: dict[str, str] = Field(
        default_factory=dict,
        description="devDependency pins applied only to this category's project",
    )


# ---------------------------------------------------------------------------
# Documentation table
# ---------------------------------------------------------------------------

class DocManifestEntry(BaseModel):
    """Documentation metadata for one example."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(..., min_length=1)
    title: str
    description: str = Field(default="")
    source: str
    test: str
    output: str = Field(..., description="Document path relative to the repository root")
    category_label: str = Field(..., description="Display label used as the index heading")
    chapter: str | None = Field(default=None, description="Optional organisational tag")

    @field_validator("source", "test", "output")
    @classmethod
    def _check_paths(cls, value: str) -> str:
        return _relative_posix(value)

"""Loading and validation of the manifest registry.

The registry is read from three YAML data files bundled with the package,
validated into frozen pydantic models and wrapped in a ``Registry`` instance.
The instance is created once by the CLI and handed to every component that
needs a lookup; nothing here keeps module-level state.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from fhevm_studio.assembler.files import derive_unit_name
from fhevm_studio.errors import ConfigError
from fhevm_studio.registry.models import (
    CategoryManifestEntry,
    CategoryUnit,
    DocManifestEntry,
    ExampleManifestEntry,
)

DATA_DIR = Path(__file__).parent / "data"

EXAMPLES_FILE = "examples.yaml"
CATEGORIES_FILE = "categories.yaml"
DOCS_FILE = "docs.yaml"

_M = TypeVar("_M", bound=BaseModel)


@dataclass(frozen=True)
class ResolvedExample:
    """An example entry whose files were found and whose unit was named."""

    entry: ExampleManifestEntry
    source_path: Path
    test_path: Path
    unit_name: str


@dataclass(frozen=True)
class ResolvedUnit:
    """One unit of a category, checked against the file system."""

    unit: CategoryUnit
    source_path: Path
    test_path: Path
    unit_name: str


# ---------------------------------------------------------------------------
# Raw table loading
# ---------------------------------------------------------------------------


def _read_table(path: Path) -> list[dict[str, Any]]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Manifest file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Manifest file is not valid YAML: {path} ({exc})") from exc

    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError(f"Manifest file must contain a list of entries: {path}")
    return raw


def _build_index(rows: list[dict[str, Any]], model: type[_M], source: Path) -> dict[str, _M]:
    index: dict[str, _M] = {}
    for position, row in enumerate(rows):
        try:
            entry = model.model_validate(row)
        except ValidationError as exc:
            raise ConfigError(f"Malformed entry #{position + 1} in {source.name}: {exc}") from exc
        identifier = entry.identifier  # type: ignore[attr-defined]
        if identifier in index:
            raise ConfigError(f"Duplicate identifier '{identifier}' in {source.name}", identifier)
        index[identifier] = entry
    return index


def _read_unit(path: Path, relative: str, identifier: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigError(f"Unit is not valid UTF-8: {relative}", identifier) from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read unit {relative}: {exc}", identifier) from exc


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class Registry:
    """Immutable lookup tables for examples, categories and documents.

    Dictionaries preserve declaration order, which is also the order used by
    batch runs and ``generate-docs --all``.
    """

    def __init__(
        self,
        examples: dict[str, ExampleManifestEntry],
        categories: dict[str, CategoryManifestEntry],
        docs: dict[str, DocManifestEntry],
    ) -> None:
        self._examples = dict(examples)
        self._categories = dict(categories)
        self._docs = dict(docs)

    @classmethod
    def load(cls, data_dir: Path | None = None) -> "Registry":
        """Read and validate the three manifest tables.

        Raises:
            ConfigError: A file is missing, unparsable, has a malformed entry
                or declares an identifier twice.
        """
        data_dir = Path(data_dir) if data_dir is not None else DATA_DIR
        examples_path = data_dir / EXAMPLES_FILE
        categories_path = data_dir / CATEGORIES_FILE
        docs_path = data_dir / DOCS_FILE
        return cls(
            examples=_build_index(_read_table(examples_path), ExampleManifestEntry, examples_path),
            categories=_build_index(_read_table(categories_path), CategoryManifestEntry, categories_path),
            docs=_build_index(_read_table(docs_path), DocManifestEntry, docs_path),
        )

    # -- Read-only views ----------------------------------------------------

    @property
    def examples(self) -> tuple[ExampleManifestEntry, ...]:
        return tuple(self._examples.values())

    @property
    def categories(self) -> tuple[CategoryManifestEntry, ...]:
        return tuple(self._categories.values())

    @property
    def docs(self) -> tuple[DocManifestEntry, ...]:
        return tuple(self._docs.values())

    # -- Lookups -------------------------------------------------------------

    def example(self, identifier: str) -> ExampleManifestEntry:
        try:
            return self._examples[identifier]
        except KeyError:
            raise ConfigError(
                _unknown("example", identifier, self._examples), identifier
            ) from None

    def category(self, identifier: str) -> CategoryManifestEntry:
        try:
            return self._categories[identifier]
        except KeyError:
            raise ConfigError(
                _unknown("category", identifier, self._categories), identifier
            ) from None

    def doc(self, identifier: str) -> DocManifestEntry:
        try:
            return self._docs[identifier]
        except KeyError:
            raise ConfigError(_unknown("document", identifier, self._docs), identifier) from None

    def find_doc(self, identifier: str) -> DocManifestEntry | None:
        """Like ``doc`` but returns ``None`` for an unknown identifier."""
        return self._docs.get(identifier)

    def example_categories(self) -> list[str]:
        """Distinct example category tags in declaration order."""
        seen: dict[str, None] = {}
        for entry in self._examples.values():
            seen.setdefault(entry.category, None)
        return list(seen)

    def examples_in_category(self, category: str) -> list[ExampleManifestEntry]:
        return [e for e in self._examples.values() if e.category == category]

    def example_ids(self, category: str | None = None) -> list[str]:
        """Identifiers selected for a batch run.

        Every example in declaration order, or only those tagged *category*.

        Raises:
            ConfigError: *category* matches no example, or the table is empty.
        """
        if category is None:
            ids = list(self._examples)
        else:
            ids = [e.identifier for e in self.examples_in_category(category)]
            if not ids:
                available = ", ".join(self.example_categories())
                raise ConfigError(
                    f"No examples found for category: {category}\n\nAvailable categories: {available}",
                    category,
                )
        if not ids:
            raise ConfigError("The example registry is empty")
        return ids

    # -- File-system validation ----------------------------------------------

    def check_example(self, identifier: str, root: Path) -> ResolvedExample:
        """Resolve an example against *root* before any file is written.

        Raises:
            ConfigError: Unknown identifier, missing source or test unit, an
                unreadable source unit, or one without a recognisable
                declaration.
        """
        entry = self.example(identifier)
        source_path = root / entry.source
        test_path = root / entry.test
        if not source_path.is_file():
            raise ConfigError(f"Source unit not found: {entry.source}", identifier)
        if not test_path.is_file():
            raise ConfigError(f"Test unit not found: {entry.test}", identifier)
        unit_name = derive_unit_name(_read_unit(source_path, entry.source, identifier))
        if unit_name is None:
            raise ConfigError(f"Could not extract a unit name from {entry.source}", identifier)
        return ResolvedExample(entry, source_path, test_path, unit_name)

    def check_category(self, identifier: str, root: Path) -> list[ResolvedUnit]:
        """Resolve every unit of a category against *root*.

        The test unit is only required when the unit is not ``skip_test``.
        Two units deriving the same name are rejected, since the second would
        silently overwrite the first in the generated deployment script.
        """
        category = self.category(identifier)
        resolved: list[ResolvedUnit] = []
        names: dict[str, str] = {}
        for unit in category.units:
            source_path = root / unit.source
            test_path = root / unit.test
            if not source_path.is_file():
                raise ConfigError(f"Source unit not found: {unit.source}", identifier)
            if not unit.skip_test and not test_path.is_file():
                raise ConfigError(f"Test unit not found: {unit.test}", identifier)
            unit_name = derive_unit_name(_read_unit(source_path, unit.source, identifier))
            if unit_name is None:
                raise ConfigError(f"Could not extract a unit name from {unit.source}", identifier)
            if unit_name in names:
                raise ConfigError(
                    f"Category '{identifier}' derives unit name '{unit_name}' twice: "
                    f"{names[unit_name]} and {unit.source}",
                    identifier,
                )
            names[unit_name] = unit.source
            resolved.append(ResolvedUnit(unit, source_path, test_path, unit_name))
        return resolved

    def validate_files(self, root: Path) -> list[str]:
        """Check every example and category against *root*.

        Returns the identifiers that were checked.  The first problem found is
        raised as ``ConfigError``.
        """
        checked: list[str] = []
        for identifier in self._examples:
            self.check_example(identifier, root)
            checked.append(identifier)
        for identifier in self._categories:
            self.check_category(identifier, root)
            checked.append(identifier)
        return checked


def _unknown(kind: str, identifier: str, table: dict[str, Any]) -> str:
    listing = "\n".join(f"  - {key}" for key in table)
    return f"Unknown {kind}: {identifier}\n\nAvailable:\n{listing}"

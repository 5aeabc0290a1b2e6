"""FHEVM Studio configuration.

Centralised, typed configuration for every command.  All settings use
Pydantic v2 models so they are validated at construction time and can be
loaded from a JSON file or built from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from fhevm_studio.errors import ConfigError


class PinnedVersions(BaseModel):
    """Dependency versions forced into every generated package descriptor.

    The hardhat plugin of the base template only works with this exact pair,
    so the pins are exact versions rather than ranges.
    """

    relayer_sdk: str = Field(default="0.3.0-5", description="Pin for @zama-fhe/relayer-sdk (only if present)")
    mock_utils: str = Field(default="0.3.0-1", description="Pin for @fhevm/mock-utils (always set)")

    def always(self) -> dict[str, str]:
        """Pins written whether or not the descriptor already declares them."""
        return {"@fhevm/mock-utils": self.mock_utils}

    def if_present(self) -> dict[str, str]:
        """Pins written only when the descriptor already declares the package."""
        return {"@zama-fhe/relayer-sdk": self.relayer_sdk}


class StudioConfig(BaseModel):
    """Global FHEVM Studio configuration.

    Holds the examples repository root and every path derived from it.
    Instances are created once by the CLI and passed explicitly to the
    scaffolder, the batch orchestrator and the version updater.
    """

    root_dir: Path = Field(default=Path("."), description="Examples repository root")
    template_dir_name: str = Field(default="fhevm-hardhat-template")
    output_dir_name: str = Field(default="output")
    categories_dir_name: str = Field(default="categories")
    docs_dir_name: str = Field(default="docs")
    openzeppelin_contracts_dir: Path | None = Field(
        default=None,
        description="Vendored confidential-contracts library; defaults to a sibling checkout",
    )
    vendored_categories: list[str] = Field(
        default=["openzeppelin"],
        description="Example categories that receive the vendored library tree",
    )
    test_command: str = Field(default="npm test")
    compile_command: str = Field(default="npm run compile")
    project_test_command: str = Field(default="npm run test")
    pins: PinnedVersions = Field(default_factory=PinnedVersions)
    excluded_dir_names: list[str] = Field(
        default=["node_modules", "artifacts", "cache", "coverage", "types", "dist", ".git"],
    )
    excluded_file_names: list[str] = Field(default=[".gitignore", "package-lock.json"])

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def template_dir(self) -> Path:
        """The base project template every generated project is copied from."""
        return self.root_dir / self.template_dir_name

    @property
    def output_dir(self) -> Path:
        """Root for single-example projects."""
        return self.root_dir / self.output_dir_name

    @property
    def categories_dir(self) -> Path:
        """Root for category projects."""
        return self.root_dir / self.categories_dir_name

    @property
    def docs_dir(self) -> Path:
        return self.root_dir / self.docs_dir_name

    @property
    def summary_path(self) -> Path:
        """The cumulative documentation index."""
        return self.docs_dir / "SUMMARY.md"

    @property
    def vendored_library_dir(self) -> Path:
        """Source tree of the vendored confidential-contracts library."""
        if self.openzeppelin_contracts_dir is not None:
            return self.openzeppelin_contracts_dir
        return self.root_dir.parent / "openzeppelin-confidential-contracts" / "contracts"

    def example_output_dir(self, identifier: str) -> Path:
        """Default location of ``create-example`` output."""
        return self.output_dir / f"fhevm-example-{identifier}"

    def category_output_dir(self, category: str) -> Path:
        """Default location of ``create-category`` output."""
        return self.categories_dir / f"fhevm-examples-{category}"

    def batch_output_dir(self, identifier: str) -> Path:
        """Per-identifier directory used by the batch orchestrator."""
        return self.output_dir / identifier

    # ------------------------------------------------------------------
    # Configuration file
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path) -> "StudioConfig":
        """Load a configuration written as JSON (the CLI's ``--config FILE``).

        Raises:
            ConfigError: The file cannot be read or does not validate.
        """
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Cannot read configuration file {path}: {exc}") from exc
        try:
            return cls.model_validate_json(raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration file {path}: {exc}") from exc

    @classmethod
    def from_env(cls, root_dir: Path | None = None) -> "StudioConfig":
        """Build a ``StudioConfig`` from environment variables.

        Recognised variables (all optional):
            FHEVM_STUDIO_ROOT, FHEVM_STUDIO_TEMPLATE, FHEVM_STUDIO_OUTPUT,
            FHEVM_STUDIO_CATEGORIES, FHEVM_STUDIO_DOCS,
            FHEVM_STUDIO_OZ_CONTRACTS, FHEVM_STUDIO_TEST_COMMAND.

        An explicit *root_dir* wins over ``FHEVM_STUDIO_ROOT``.
        """
        kwargs: dict[str, Any] = {}
        if root_dir is not None:
            kwargs["root_dir"] = Path(root_dir)
        elif os.environ.get("FHEVM_STUDIO_ROOT"):
            kwargs["root_dir"] = Path(os.environ["FHEVM_STUDIO_ROOT"])
        if os.environ.get("FHEVM_STUDIO_TEMPLATE"):
            kwargs["template_dir_name"] = os.environ["FHEVM_STUDIO_TEMPLATE"]
        if os.environ.get("FHEVM_STUDIO_OUTPUT"):
            kwargs["output_dir_name"] = os.environ["FHEVM_STUDIO_OUTPUT"]
        if os.environ.get("FHEVM_STUDIO_CATEGORIES"):
            kwargs["categories_dir_name"] = os.environ["FHEVM_STUDIO_CATEGORIES"]
        if os.environ.get("FHEVM_STUDIO_DOCS"):
            kwargs["docs_dir_name"] = os.environ["FHEVM_STUDIO_DOCS"]
        if os.environ.get("FHEVM_STUDIO_OZ_CONTRACTS"):
            kwargs["openzeppelin_contracts_dir"] = Path(os.environ["FHEVM_STUDIO_OZ_CONTRACTS"])
        if os.environ.get("FHEVM_STUDIO_TEST_COMMAND"):
            kwargs["test_command"] = os.environ["FHEVM_STUDIO_TEST_COMMAND"]
        return cls(**kwargs)

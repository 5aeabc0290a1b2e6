"""Tests for project scaffolding (fhevm_studio.scaffolder).

Tests cover:
- create_example_project: template copy, placeholder removal, unit placement,
  dependency import rewriting, deploy script, descriptor, task script, README
- Fixtures, vendored library handling and missing-file warnings
- Output conflicts and overwrite
- Documentation generated alongside an example project
- create_category_project: preserved subdirectories, multi-unit deploy
  script, category pins
- Error paths (unknown identifier, missing template, unusable template
  descriptor) and removal of a partially assembled project
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from fhevm_studio.config import StudioConfig
from fhevm_studio.errors import (
    ConfigError,
    ConflictError,
    DependencyResolutionWarning,
    DocumentationError,
)
from fhevm_studio.registry.loader import Registry
from fhevm_studio.scaffolder import Scaffolder


def _tree(root: Path) -> dict[str, str]:
    return {
        path.relative_to(root).as_posix(): path.read_text(encoding="utf-8")
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


# ---------------------------------------------------------------------------
# create_example_project
# ---------------------------------------------------------------------------


class TestCreateExampleProject:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_project_layout(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "fhe-add"
        result = await scaffolder.create_example_project("fhe-add", out)

        assert result.project_dir == out
        assert result.unit_names == ["FHEAdd"]
        assert result.missing_dependencies == []
        assert (out / "contracts" / "FHEAdd.sol").is_file()
        assert (out / "contracts" / "MathHelper.sol").is_file()
        assert (out / "test" / "FHEAdd.ts").is_file()
        assert (out / "test" / "values.json").is_file()
        assert not (out / "contracts" / "FHECounter.sol").exists()
        assert not (out / "test" / "FHECounter.ts").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_excluded_template_content_not_copied(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "fhe-add"
        await scaffolder.create_example_project("fhe-add", out)
        assert not (out / "node_modules").exists()
        assert not (out / "artifacts").exists()
        assert not (out / ".gitignore").exists()
        assert not (out / "package-lock.json").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dependency_import_rewritten(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "fhe-add"
        await scaffolder.create_example_project("fhe-add", out)
        source = (out / "contracts" / "FHEAdd.sol").read_text(encoding="utf-8")
        assert 'import {MathHelper} from "./MathHelper.sol";' in source
        assert "../../helpers/MathHelper.sol" not in source

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_deploy_script(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "fhe-add"
        await scaffolder.create_example_project("fhe-add", out)
        deploy = (out / "deploy" / "deploy.ts").read_text(encoding="utf-8")
        assert 'await deploy("FHEAdd", {' in deploy
        assert 'func.id = "deploy_fheadd";' in deploy
        assert "placeholder" not in deploy

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_descriptor_patched(self, scaffolder: Scaffolder, studio_config: StudioConfig, tmp_path: Path):
        out = tmp_path / "fhe-add"
        await scaffolder.create_example_project("fhe-add", out)
        data = json.loads((out / "package.json").read_text(encoding="utf-8"))
        assert data["name"] == "fhevm-example-fhe-add"
        assert data["description"] == "Demonstrates FHE.add on encrypted values"
        assert data["homepage"] == "https://github.com/zama-ai/fhevm-examples/fhe-add"
        assert data["scripts"] == {"compile": "hardhat compile", "test": "hardhat test"}
        dev = data["devDependencies"]
        assert dev["@fhevm/mock-utils"] == studio_config.pins.mock_utils
        assert dev["@zama-fhe/relayer-sdk"] == studio_config.pins.relayer_sdk
        assert dev["hardhat"] == "^2.26.0"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_task_script_and_config(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "fhe-add"
        await scaffolder.create_example_project("fhe-add", out)
        assert not (out / "tasks" / "FHECounter.ts").exists()
        task = (out / "tasks" / "FHEAdd.ts").read_text(encoding="utf-8")
        assert 'hre.deployments.get("FHEAdd")' in task
        assert "const fHEAdd =" in task
        assert "fheCounter" not in task
        config = (out / "hardhat.config.ts").read_text(encoding="utf-8")
        assert 'import "./tasks/FHEAdd";' in config
        assert 'import "./tasks/accounts";' in config

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_readme(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "fhe-add"
        await scaffolder.create_example_project("fhe-add", out)
        readme = (out / "README.md").read_text(encoding="utf-8")
        assert readme.startswith("# FHEVM Example: fhe-add")
        assert "Demonstrates FHE.add on encrypted values" in readme

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_default_output_dir(self, scaffolder: Scaffolder, studio_config: StudioConfig):
        result = await scaffolder.create_example_project("fhe-counter")
        assert result.project_dir == studio_config.example_output_dir("fhe-counter")
        assert (result.project_dir / "contracts" / "FHECounter.sol").is_file()
        assert (result.project_dir / "tasks" / "FHECounter.ts").is_file()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing_output_conflicts(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "fhe-add"
        out.mkdir()
        (out / "keep.txt").write_text("mine", encoding="utf-8")
        with pytest.raises(ConflictError) as exc_info:
            await scaffolder.create_example_project("fhe-add", out)
        assert exc_info.value.path == out
        assert (out / "keep.txt").read_text(encoding="utf-8") == "mine"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_overwrite_is_idempotent(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "fhe-add"
        await scaffolder.create_example_project("fhe-add", out)
        first = _tree(out)
        (out / "stale.txt").write_text("old", encoding="utf-8")
        await scaffolder.create_example_project("fhe-add", out, overwrite=True)
        assert _tree(out) == first

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_example(self, scaffolder: Scaffolder, tmp_path: Path):
        with pytest.raises(ConfigError, match="fhe-nope"):
            await scaffolder.create_example_project("fhe-nope", tmp_path / "x")
        assert not (tmp_path / "x").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_template(self, scaffolder: Scaffolder, studio_config: StudioConfig, tmp_path: Path):
        shutil.rmtree(studio_config.template_dir)
        with pytest.raises(ConfigError, match="Base template not found"):
            await scaffolder.create_example_project("fhe-add", tmp_path / "x")
        assert not (tmp_path / "x").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_template_descriptor(
        self, scaffolder: Scaffolder, studio_config: StudioConfig, tmp_path: Path
    ):
        (studio_config.template_dir / "package.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="not valid JSON"):
            await scaffolder.create_example_project("fhe-add", tmp_path / "x")
        with pytest.raises(ConfigError, match="not valid JSON"):
            await scaffolder.create_category_project("basic", tmp_path / "y")
        assert not (tmp_path / "x").exists()
        assert not (tmp_path / "y").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_assembly_removes_partial_project(self, scaffolder: Scaffolder, tmp_path: Path):
        scaffolder.renderer.render_to_file = AsyncMock(side_effect=OSError("disk full"))
        with pytest.raises(OSError, match="disk full"):
            await scaffolder.create_example_project("fhe-add", tmp_path / "x")
        with pytest.raises(OSError, match="disk full"):
            await scaffolder.create_category_project("basic", tmp_path / "y")
        assert not (tmp_path / "x").exists()
        assert not (tmp_path / "y").exists()


# ---------------------------------------------------------------------------
# Optional files
# ---------------------------------------------------------------------------


class TestOptionalFiles:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_fixture_warns(
        self, studio_config: StudioConfig, make_registry, tmp_path: Path
    ):
        registry = make_registry(
            examples=[
                {
                    "identifier": "fhe-add",
                    "source": "contracts/basic/fhe-operations/FHEAdd.sol",
                    "test": "test/basic/fhe-operations/FHEAdd.ts",
                    "category": "basic",
                    "dependencies": ["contracts/helpers/MathHelper.sol"],
                    "fixture": "test/fixtures/missing.json",
                }
            ]
        )
        out = tmp_path / "fhe-add"
        with pytest.warns(DependencyResolutionWarning, match="missing.json"):
            await Scaffolder(studio_config, registry).create_example_project("fhe-add", out)
        assert (out / "contracts" / "FHEAdd.sol").is_file()
        assert not (out / "test" / "missing.json").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_dependency_warns_and_is_reported(
        self, studio_config: StudioConfig, make_registry, tmp_path: Path
    ):
        registry = make_registry(
            examples=[
                {
                    "identifier": "fhe-counter",
                    "source": "contracts/basic/FHECounter.sol",
                    "test": "test/basic/FHECounter.ts",
                    "category": "basic",
                    "dependencies": ["contracts/helpers/Gone.sol"],
                }
            ]
        )
        with pytest.warns(DependencyResolutionWarning, match="Gone.sol"):
            result = await Scaffolder(studio_config, registry).create_example_project(
                "fhe-counter", tmp_path / "counter"
            )
        assert result.missing_dependencies == ["contracts/helpers/Gone.sol"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_vendored_library(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "token"
        result = await scaffolder.create_example_project("erc7984-example", out)
        vendored = out / "contracts" / "@openzeppelin" / "confidential-contracts"
        assert (vendored / "token" / "ERC7984.sol").is_file()
        assert result.missing_dependencies == []
        config = (out / "hardhat.config.ts").read_text(encoding="utf-8")
        assert (
            '"@openzeppelin/confidential-contracts": ["./contracts/@openzeppelin/confidential-contracts"]'
            in config
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_vendored_library_warns(
        self, examples_repo: Path, registry: Registry, tmp_path: Path
    ):
        config = StudioConfig(root_dir=examples_repo, openzeppelin_contracts_dir=tmp_path / "absent")
        with pytest.warns(DependencyResolutionWarning, match="Vendored library not found"):
            result = await Scaffolder(config, registry).create_example_project(
                "erc7984-example", tmp_path / "token"
            )
        assert result.missing_dependencies == [
            "@openzeppelin/confidential-contracts/token/ERC7984.sol"
        ]
        assert (tmp_path / "token" / "contracts" / "ERC7984Example.sol").is_file()


# ---------------------------------------------------------------------------
# Documentation alongside a project
# ---------------------------------------------------------------------------


class TestExampleDocs:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_with_docs(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "fhe-add"
        result = await scaffolder.create_example_project("fhe-add", out, with_docs=True)
        assert result.doc_path == out / "docs" / "FHEAdd.md"

        markdown = result.doc_path.read_text(encoding="utf-8")
        assert markdown.startswith("# FHE Add\n")
        placed = (out / "contracts" / "FHEAdd.sol").read_text(encoding="utf-8")
        fenced = markdown.split("```solidity\n", 1)[1].split("\n```", 1)[0]
        assert fenced == placed

        summary = (out / "docs" / "SUMMARY.md").read_text(encoding="utf-8")
        assert "## Basic - FHE Operations" in summary
        assert "- [FHE Add](FHEAdd.md)" in summary

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_title_from_source_without_doc_entry(self, scaffolder: Scaffolder, tmp_path: Path):
        result = await scaffolder.create_example_project(
            "erc7984-example", tmp_path / "token", with_docs=True
        )
        assert result.doc_path is not None
        markdown = result.doc_path.read_text(encoding="utf-8")
        assert markdown.startswith("# ERC7984Example\n")
        summary = (tmp_path / "token" / "docs" / "SUMMARY.md").read_text(encoding="utf-8")
        assert "## openzeppelin" in summary

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_doc_failure_does_not_fail_scaffold(self, scaffolder: Scaffolder, tmp_path: Path):
        scaffolder.synthesizer.synthesize = AsyncMock(
            side_effect=DocumentationError("boom", stage="compose", identifier="fhe-add")
        )
        result = await scaffolder.create_example_project("fhe-add", tmp_path / "fhe-add", with_docs=True)
        assert result.doc_path is None
        assert (tmp_path / "fhe-add" / "contracts" / "FHEAdd.sol").is_file()


# ---------------------------------------------------------------------------
# create_category_project
# ---------------------------------------------------------------------------


class TestCreateCategoryProject:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_project_layout(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "basic"
        result = await scaffolder.create_category_project("basic", out)

        assert result.unit_names == ["FHECounter", "FHEAdd"]
        assert (out / "contracts" / "FHECounter.sol").is_file()
        assert (out / "contracts" / "fhe-operations" / "FHEAdd.sol").is_file()
        assert (out / "contracts" / "helpers" / "MathHelper.sol").is_file()
        assert (out / "test" / "FHECounter.ts").read_text(encoding="utf-8").startswith("import")
        assert (out / "test" / "fhe-operations" / "FHEAdd.ts").is_file()
        assert (out / "test" / "values.json").is_file()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_imports_follow_preserved_layout(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "basic"
        await scaffolder.create_category_project("basic", out)
        source = (out / "contracts" / "fhe-operations" / "FHEAdd.sol").read_text(encoding="utf-8")
        assert '"../helpers/MathHelper.sol"' in source

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_deploy_all_units(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "basic"
        await scaffolder.create_category_project("basic", out)
        deploy = (out / "deploy" / "deploy.ts").read_text(encoding="utf-8")
        assert 'await deploy("FHECounter", {' in deploy
        assert 'await deploy("FHEAdd", {' in deploy
        assert 'func.tags = ["all", "FHECounter", "FHEAdd"];' in deploy

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_descriptor_and_readme(self, scaffolder: Scaffolder, studio_config: StudioConfig):
        result = await scaffolder.create_category_project("basic")
        out = result.project_dir
        assert out == studio_config.category_output_dir("basic")

        data = json.loads((out / "package.json").read_text(encoding="utf-8"))
        assert data["name"] == "fhevm-examples-basic"
        assert data["devDependencies"]["@openzeppelin/contracts"] == "^5.0.0"
        assert data["devDependencies"]["@fhevm/mock-utils"] == studio_config.pins.mock_utils

        readme = (out / "README.md").read_text(encoding="utf-8")
        assert readme.startswith("# FHEVM Examples: Basic FHEVM Examples")
        assert "**FHEAdd**" in readme

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_template_tasks_untouched(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "basic"
        await scaffolder.create_category_project("basic", out)
        assert (out / "tasks" / "FHECounter.ts").is_file()
        assert 'import "./tasks/FHECounter";' in (out / "hardhat.config.ts").read_text(encoding="utf-8")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_category(self, scaffolder: Scaffolder, tmp_path: Path):
        with pytest.raises(ConfigError):
            await scaffolder.create_category_project("advanced", tmp_path / "x")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing_output_conflicts(self, scaffolder: Scaffolder, tmp_path: Path):
        out = tmp_path / "basic"
        await scaffolder.create_category_project("basic", out)
        with pytest.raises(ConflictError):
            await scaffolder.create_category_project("basic", out)

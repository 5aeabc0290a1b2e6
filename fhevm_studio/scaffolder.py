"""Project scaffolding orchestrator.

Creates standalone projects from the base template: one per example
(``create_example_project``) or one per category (``create_category_project``).
Every manifest problem is detected before the first file is written; an
existing output directory is only replaced when the caller says so, and a
project whose assembly fails part-way is removed again.
"""

from __future__ import annotations

import asyncio
import shutil
import warnings
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from fhevm_studio.assembler.dependencies import SOURCE_AREA, TEST_AREA, resolve_dependencies
from fhevm_studio.assembler.descriptor import (
    DESCRIPTOR_NAME,
    DescriptorFields,
    load_descriptor,
    patch_descriptor,
)
from fhevm_studio.assembler.files import (
    copy_tree,
    place_unit,
    remove_placeholders,
    strip_category_prefix,
)
from fhevm_studio.assembler.project import patch_hardhat_config, rename_task_script, vendor_library
from fhevm_studio.config import StudioConfig
from fhevm_studio.docs.extractor import extract_source_facts
from fhevm_studio.docs.synthesizer import DocRequest, DocumentationSynthesizer
from fhevm_studio.errors import ConfigError, ConflictError, DependencyResolutionWarning, DocumentationError
from fhevm_studio.registry.loader import Registry, ResolvedExample, ResolvedUnit
from fhevm_studio.registry.models import CategoryManifestEntry
from fhevm_studio.rendering import (
    CATEGORY_README,
    DEPLOY_MULTI,
    DEPLOY_SINGLE,
    EXAMPLE_README,
    TemplateRenderer,
)
from fhevm_studio.utils import display_path, print_info, print_step, print_success, print_warning

DEPLOY_SCRIPT = PurePosixPath("deploy", "deploy.ts")
DOCS_DIR = "docs"
SUMMARY_FILE = "SUMMARY.md"


@dataclass
class ScaffoldResult:
    """What one scaffolder call produced."""

    identifier: str
    project_dir: Path
    unit_names: list[str] = field(default_factory=list)
    missing_dependencies: list[str] = field(default_factory=list)
    doc_path: Path | None = None


class Scaffolder:
    """Builds example and category projects.

    The registry and configuration are injected; the scaffolder keeps no other
    state between calls.
    """

    def __init__(
        self,
        config: StudioConfig,
        registry: Registry,
        renderer: TemplateRenderer | None = None,
        synthesizer: DocumentationSynthesizer | None = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.renderer = renderer or TemplateRenderer()
        self.synthesizer = synthesizer or DocumentationSynthesizer()

    # -- Public API --------------------------------------------------------

    async def create_example_project(
        self,
        identifier: str,
        out_path: str | Path | None = None,
        with_docs: bool = False,
        overwrite: bool = False,
    ) -> ScaffoldResult:
        """Generate the standalone project of one example.

        Args:
            identifier: Example identifier from the registry.
            out_path: Project directory.  Defaults to
                ``output/fhevm-example-<identifier>``.
            with_docs: Also synthesize ``docs/<Unit>.md`` and ``docs/SUMMARY.md``
                from the copied units.
            overwrite: Replace *out_path* if it already exists.

        Raises:
            ConfigError: Unknown identifier, missing unit or template, or an
                unusable template descriptor.
            ConflictError: *out_path* exists and *overwrite* is false.
        """
        resolved = self.registry.check_example(identifier, self.config.root_dir)
        self._check_template()
        project = Path(out_path) if out_path else self.config.example_output_dir(identifier)
        await self._prepare_output(project, overwrite, identifier)
        try:
            return await self._assemble_example(resolved, project, with_docs)
        except Exception:
            await self._discard(project)
            raise

    async def create_category_project(
        self,
        category_id: str,
        out_path: str | Path | None = None,
        overwrite: bool = False,
    ) -> ScaffoldResult:
        """Generate one project holding every unit of a category.

        Source and test units keep their subdirectory below the category
        segment; a test shared by several units is copied once and units
        flagged ``skip_test`` get no test.

        Raises:
            ConfigError: Unknown category, missing unit, duplicate unit name,
                missing template or an unusable template descriptor.
            ConflictError: *out_path* exists and *overwrite* is false.
        """
        category = self.registry.category(category_id)
        units = self.registry.check_category(category_id, self.config.root_dir)
        self._check_template()
        project = Path(out_path) if out_path else self.config.category_output_dir(category_id)
        await self._prepare_output(project, overwrite, category_id)
        try:
            return await self._assemble_category(category, units, project)
        except Exception:
            await self._discard(project)
            raise

    # -- Internals ---------------------------------------------------------

    async def _assemble_example(
        self, resolved: ResolvedExample, project: Path, with_docs: bool
    ) -> ScaffoldResult:
        root = self.config.root_dir
        entry = resolved.entry
        identifier = entry.identifier
        unit = resolved.unit_name

        print_info(f"Creating FHEVM example: {identifier}")
        print_info(f"Output directory: {display_path(project)}")

        print_step(1, "Copying template")
        await self._copy_template(project)
        await asyncio.to_thread(remove_placeholders, project)

        print_step(2, "Placing source and test units")
        placed_source = place_unit(resolved.source_path, project, PurePosixPath(SOURCE_AREA, f"{unit}.sol"))
        placed_test = place_unit(resolved.test_path, project, PurePosixPath(TEST_AREA, resolved.test_path.name))
        if entry.fixture:
            self._place_fixture(entry.fixture, project)

        if entry.category in self.config.vendored_categories:
            vendored = await asyncio.to_thread(
                vendor_library, self.config.vendored_library_dir, project
            )
            if vendored is None:
                warnings.warn(
                    f"Vendored library not found: {self.config.vendored_library_dir}",
                    DependencyResolutionWarning,
                    stacklevel=2,
                )

        report = resolve_dependencies(entry, root, project, placed_unit=placed_source)
        if report.placed:
            print_success(f"Copied {len(report.placed)} dependency file(s)")

        print_step(3, "Updating configuration")
        await self.renderer.render_to_file(
            DEPLOY_SINGLE, project / Path(DEPLOY_SCRIPT), {"unit_name": unit}
        )
        patch_descriptor(
            project,
            DescriptorFields.for_project(
                name=f"fhevm-example-{identifier}",
                slug=identifier,
                description=entry.description,
                pins=self.config.pins.always(),
                pins_if_present=self.config.pins.if_present(),
            ),
        )
        patch_hardhat_config(project, unit)
        task_script = rename_task_script(project, unit)

        print_step(4, "Generating README")
        await self.renderer.render_to_file(
            EXAMPLE_README,
            project / "README.md",
            {
                "identifier": identifier,
                "description": entry.description,
                "unit_name": unit,
                "has_task": task_script is not None,
            },
        )

        result = ScaffoldResult(
            identifier=identifier,
            project_dir=project,
            unit_names=[unit],
            missing_dependencies=report.missing,
        )

        if with_docs:
            print_step(5, "Generating documentation")
            result.doc_path = await self._document_example(
                identifier, unit, placed_source, placed_test, project
            )

        print_success(f'FHEVM example "{identifier}" created successfully!')
        return result

    async def _assemble_category(
        self, category: CategoryManifestEntry, units: list[ResolvedUnit], project: Path
    ) -> ScaffoldResult:
        root = self.config.root_dir
        category_id = category.identifier

        print_info(f"Creating FHEVM project: {category.name}")
        print_info(f"Output directory: {display_path(project)}")

        print_step(1, "Copying template")
        await self._copy_template(project)
        await asyncio.to_thread(remove_placeholders, project, all_sources=True)

        print_step(2, "Placing source and test units")
        copied: set[str] = set()
        readme_units: list[dict[str, str | None]] = []
        missing: list[str] = []
        for resolved in units:
            unit = resolved.unit
            source_rel = strip_category_prefix(unit.source, SOURCE_AREA, category_id)
            placed_source = place_unit(
                resolved.source_path, project, PurePosixPath(SOURCE_AREA) / source_rel
            )

            test_rel: PurePosixPath | None = None
            if not unit.skip_test:
                test_rel = strip_category_prefix(unit.test, TEST_AREA, category_id)
                if unit.test not in copied:
                    place_unit(resolved.test_path, project, PurePosixPath(TEST_AREA) / test_rel)
                    copied.add(unit.test)

            if unit.fixture and unit.fixture not in copied:
                self._place_fixture(unit.fixture, project)
                copied.add(unit.fixture)

            report = resolve_dependencies(
                unit, root, project, placed_unit=placed_source, preserve_subdirs=True
            )
            missing.extend(report.missing)
            readme_units.append(
                {
                    "name": resolved.unit_name,
                    "source": source_rel.as_posix(),
                    "test": test_rel.as_posix() if test_rel else None,
                }
            )
        unit_names = [resolved.unit_name for resolved in units]
        print_success(f"Copied {len(unit_names)} contracts and their tests")

        print_step(3, "Generating deployment script")
        await self.renderer.render_to_file(
            DEPLOY_MULTI, project / Path(DEPLOY_SCRIPT), {"unit_names": unit_names}
        )

        print_step(4, "Updating package.json")
        patch_descriptor(
            project,
            DescriptorFields.for_project(
                name=f"fhevm-examples-{category_id}",
                slug=category_id,
                description=category.description,
                pins={**self.config.pins.always(), **category.extra_dependencies},
                pins_if_present=self.config.pins.if_present(),
            ),
        )

        print_step(5, "Generating README")
        await self.renderer.render_to_file(
            CATEGORY_README,
            project / "README.md",
            {
                "name": category.name,
                "description": category.description,
                "unit_names": unit_names,
                "units": readme_units,
            },
        )

        print_success(f"FHEVM {category.name} project created successfully!")
        return ScaffoldResult(
            identifier=category_id,
            project_dir=project,
            unit_names=unit_names,
            missing_dependencies=missing,
        )

    def _check_template(self) -> None:
        if not self.config.template_dir.is_dir():
            raise ConfigError(f"Base template not found: {self.config.template_dir}")
        load_descriptor(self.config.template_dir / DESCRIPTOR_NAME)

    async def _discard(self, project: Path) -> None:
        """Remove a partially assembled project after a failure."""
        print_warning(f"Removing incomplete project: {display_path(project)}")
        await asyncio.to_thread(shutil.rmtree, project, ignore_errors=True)

    async def _prepare_output(self, project: Path, overwrite: bool, identifier: str) -> None:
        if not project.exists():
            return
        if not overwrite:
            raise ConflictError(
                f"Output directory already exists: {project} (use --force to replace it)",
                path=project,
                identifier=identifier,
            )
        print_warning(f"Replacing existing directory: {display_path(project)}")
        await asyncio.to_thread(shutil.rmtree, project)

    async def _copy_template(self, project: Path) -> None:
        await asyncio.to_thread(
            copy_tree,
            self.config.template_dir,
            project,
            self.config.excluded_dir_names,
            self.config.excluded_file_names,
        )

    def _place_fixture(self, fixture: str, project: Path) -> None:
        origin = self.config.root_dir / fixture
        if not origin.is_file():
            warnings.warn(f"Test fixture not found: {fixture}", DependencyResolutionWarning, stacklevel=3)
            return
        place_unit(origin, project, PurePosixPath(TEST_AREA, origin.name))

    async def _document_example(
        self,
        identifier: str,
        unit: str,
        placed_source: Path,
        placed_test: Path,
        project: Path,
    ) -> Path | None:
        """Synthesize the project's own document from the copied units.

        Title and category label come from the documentation table when it
        has the identifier, otherwise from the unit's ``@title`` tag and the
        example's category tag.  Failures are reported, never raised.
        """
        doc_entry = self.registry.find_doc(identifier)
        entry = self.registry.example(identifier)
        if doc_entry is not None:
            title, label, description, chapter = (
                doc_entry.title,
                doc_entry.category_label,
                doc_entry.description,
                doc_entry.chapter,
            )
        else:
            facts = extract_source_facts(placed_source.read_text(encoding="utf-8"))
            title, label, description, chapter = facts.title or unit, entry.category, entry.description, None

        docs_dir = project / DOCS_DIR
        request = DocRequest(
            identifier=identifier,
            title=title,
            description=description,
            category_label=label,
            source_path=placed_source,
            test_path=placed_test,
            output_path=docs_dir / f"{unit}.md",
            chapter=chapter,
        )
        try:
            path = await self.synthesizer.synthesize(request, index_path=docs_dir / SUMMARY_FILE)
        except DocumentationError as exc:
            print_warning(f"Documentation skipped for {identifier} ({exc.stage}): {exc}")
            return None
        print_success(f"Documentation generated: {DOCS_DIR}/{path.name}")
        return path

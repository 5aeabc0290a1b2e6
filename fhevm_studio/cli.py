"""Command-line interface for FHEVM Studio."""

from __future__ import annotations

import argparse
import asyncio
import warnings
from pathlib import Path

from fhevm_studio import __version__
from fhevm_studio.batch import BatchOrchestrator, print_report, run_project_tests
from fhevm_studio.cleanup import plan_cleanup, run_cleanup
from fhevm_studio.config import StudioConfig
from fhevm_studio.docs.synthesizer import DocRequest, DocumentationSynthesizer
from fhevm_studio.errors import DependencyResolutionWarning, StudioError
from fhevm_studio.registry.loader import Registry
from fhevm_studio.scaffolder import Scaffolder
from fhevm_studio.updater import UpdateScope, VersionUpdater
from fhevm_studio.utils import (
    console,
    display_path,
    print_banner,
    print_error,
    print_info,
    print_success,
    print_summary_table,
    print_warning,
)

EPILOG = (
    "Examples:\n"
    "  fhevm-studio list --check\n"
    "  fhevm-studio create-example fhe-add ./my-fhe-add --with-docs\n"
    "  fhevm-studio create-category basic\n"
    "  fhevm-studio generate-docs --all\n"
    "  fhevm-studio generate-all-and-test --category basic --skip-test\n"
    "  fhevm-studio update-dependencies --package @zama-fhe/relayer-sdk 0.3.0-5 --all\n"
)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fhevm-studio",
        description="FHEVM Studio -- generate, document and test standalone FHEVM example projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--root",
        default=None,
        help="Examples repository root (default: $FHEVM_STUDIO_ROOT or the current directory)",
    )
    parser.add_argument(
        "--config",
        default=None,
        metavar="FILE",
        help="JSON configuration file (replaces the environment variables; --root still applies)",
    )
    commands = parser.add_subparsers(dest="command", required=True, metavar="<command>")

    listing = commands.add_parser("list", help="List every example grouped by category")
    listing.add_argument(
        "--check", action="store_true", help="Also check that every listed unit exists and is readable"
    )

    create = commands.add_parser("create-example", help="Generate a standalone example project")
    create.add_argument("example", help="Example identifier")
    create.add_argument("out_dir", nargs="?", default=None, help="Output directory")
    create.add_argument("--with-docs", action="store_true", help="Also generate documentation")
    create.add_argument("--force", action="store_true", help="Replace an existing output directory")

    category = commands.add_parser("create-category", help="Generate a project holding a whole category")
    category.add_argument("category", help="Category identifier")
    category.add_argument("out_dir", nargs="?", default=None, help="Output directory")
    category.add_argument("--force", action="store_true", help="Replace an existing output directory")

    docs = commands.add_parser("generate-docs", help="Generate GitBook documentation")
    target = docs.add_mutually_exclusive_group(required=True)
    target.add_argument("example", nargs="?", default=None, help="Documentation identifier")
    target.add_argument("--all", action="store_true", help="Generate every document")

    batch = commands.add_parser(
        "generate-all-and-test", help="Regenerate every example and run its tests"
    )
    batch.add_argument("--skip-test", action="store_true", help="Only generate, do not test")
    batch.add_argument("--category", default=None, help="Only examples tagged with this category")

    update = commands.add_parser(
        "update-dependencies", help="Set a devDependency version across projects"
    )
    update.add_argument(
        "--package", nargs=2, required=True, metavar=("NAME", "VERSION"), help="Package and version"
    )
    update.add_argument("--all", action="store_true", help="Generated examples and category projects")
    update.add_argument("--output", action="store_true", help="Generated examples only")
    update.add_argument("--categories", action="store_true", help="Category projects only")
    update.add_argument("--base-template", action="store_true", help="The base project template")
    update.add_argument("--main", action="store_true", help="The repository's own package.json")

    test = commands.add_parser("test-example", help="Compile and test a generated example")
    test.add_argument("example", help="Example identifier")
    test.add_argument("out_dir", nargs="?", default=None, help="Project directory")

    cleanup = commands.add_parser("cleanup", help="Remove generated outputs and documents")
    cleanup.add_argument("--yes", action="store_true", help="Delete without asking")

    return parser


def _selected_scopes(args: argparse.Namespace) -> list[UpdateScope]:
    flags = (
        (args.all, UpdateScope.ALL),
        (args.output, UpdateScope.OUTPUT),
        (args.categories, UpdateScope.CATEGORIES),
        (args.base_template, UpdateScope.BASE_TEMPLATE),
        (args.main, UpdateScope.MAIN),
    )
    return [scope for selected, scope in flags if selected]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _cmd_list(config: StudioConfig, registry: Registry, args: argparse.Namespace) -> int:
    print_banner("Available FHEVM Examples")
    for tag in registry.example_categories():
        console.print(f"[bold magenta]{tag}[/bold magenta]")
        for entry in registry.examples_in_category(tag):
            console.print(f"  [green]{entry.identifier}[/green]  {entry.description}")
        console.print()
    console.print("[bold]Categories:[/bold]")
    for category in registry.categories:
        console.print(f"  [cyan]{category.identifier}[/cyan]  {category.name} ({len(category.units)} contracts)")
    if args.check:
        console.print()
        checked = registry.validate_files(config.root_dir)
        print_success(
            f"All {len(checked)} examples and categories resolve against {display_path(config.root_dir)}"
        )
    return 0


def _cmd_create_example(config: StudioConfig, registry: Registry, args: argparse.Namespace) -> int:
    scaffolder = Scaffolder(config, registry)
    result = asyncio.run(
        scaffolder.create_example_project(
            args.example, args.out_dir, with_docs=args.with_docs, overwrite=args.force
        )
    )
    _print_next_steps(result.project_dir)
    return 0


def _cmd_create_category(config: StudioConfig, registry: Registry, args: argparse.Namespace) -> int:
    scaffolder = Scaffolder(config, registry)
    result = asyncio.run(
        scaffolder.create_category_project(args.category, args.out_dir, overwrite=args.force)
    )
    print_summary_table(
        {
            "Category": registry.category(args.category).name,
            "Contracts": str(len(result.unit_names)),
            "Location": display_path(result.project_dir),
        },
        title="Project Summary",
    )
    _print_next_steps(result.project_dir)
    return 0


def _cmd_generate_docs(config: StudioConfig, registry: Registry, args: argparse.Namespace) -> int:
    synthesizer = DocumentationSynthesizer()
    root = config.root_dir
    if not args.all:
        entry = registry.doc(args.example)
        print_info(f"Generating documentation for: {entry.title}")
        path = asyncio.run(
            synthesizer.synthesize(DocRequest.from_manifest(entry, root), index_path=config.summary_path)
        )
        print_success(f"Documentation generated: {display_path(path, root)}")
        return 0

    print_info("Generating documentation for all examples...")
    requests = [DocRequest.from_manifest(entry, root) for entry in registry.docs]
    run = asyncio.run(synthesizer.synthesize_all(requests, config.summary_path))
    for identifier, cause in run.failed.items():
        print_error(f"Failed to generate docs for {identifier}: {cause}")
    print_success(f"Generated {len(run.generated)} documentation files")
    if run.failed:
        print_warning(f"Failed: {len(run.failed)}")
    return 0


def _cmd_generate_all(config: StudioConfig, registry: Registry, args: argparse.Namespace) -> int:
    identifiers = registry.example_ids(args.category)
    suffix = f" from category: {args.category}" if args.category else ""
    print_info(f"Generating {len(identifiers)} example(s){suffix}")
    if args.skip_test:
        print_warning("Tests will be skipped")

    orchestrator = BatchOrchestrator(config, Scaffolder(config, registry))
    run = asyncio.run(orchestrator.run_batch(identifiers, run_tests=not args.skip_test))
    print_report(run)
    return 0 if run.ok else 1


def _cmd_update(config: StudioConfig, registry: Registry, args: argparse.Namespace) -> int:
    name, version = args.package
    report = VersionUpdater(config).update_package_version(name, version, _selected_scopes(args))
    return 1 if report.failed else 0


def _cmd_test_example(config: StudioConfig, registry: Registry, args: argparse.Namespace) -> int:
    registry.example(args.example)
    project = Path(args.out_dir) if args.out_dir else config.batch_output_dir(args.example)
    asyncio.run(run_project_tests(config, project))
    print_success(f"Tests passed for {args.example}")
    return 0


def _cmd_cleanup(config: StudioConfig, registry: Registry, args: argparse.Namespace) -> int:
    plan = plan_cleanup(config)
    if plan.empty:
        print_info("No studio-generated outputs or docs found.")
        return 0
    for directory in plan.output_dirs:
        console.print(f"  [yellow]{display_path(directory, config.root_dir)}/[/yellow]")
    for doc in plan.doc_files:
        console.print(f"  [yellow]{display_path(doc, config.root_dir)}[/yellow]")
    if not args.yes:
        print_warning("Nothing deleted. Re-run with --yes to remove the files listed above.")
        return 0
    run_cleanup(config, plan)
    print_success(
        f"Removed {len(plan.output_dirs)} output directories and {len(plan.doc_files)} documents"
    )
    return 0


_COMMANDS = {
    "list": _cmd_list,
    "create-example": _cmd_create_example,
    "create-category": _cmd_create_category,
    "generate-docs": _cmd_generate_docs,
    "generate-all-and-test": _cmd_generate_all,
    "update-dependencies": _cmd_update,
    "test-example": _cmd_test_example,
    "cleanup": _cmd_cleanup,
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _print_next_steps(project: Path) -> None:
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print(f"  cd {display_path(project)}")
    console.print("  npm install")
    console.print("  npm run compile")
    console.print("  npm run test")


def _show_warning(message, category, filename, lineno, file=None, line=None) -> None:  # noqa: ANN001
    print_warning(f"Warning: {message}")


def _load_config(args: argparse.Namespace) -> StudioConfig:
    root = Path(args.root) if args.root else None
    if args.config is None:
        return StudioConfig.from_env(root)
    config = StudioConfig.load(Path(args.config))
    if root is not None:
        config = config.model_copy(update={"root_dir": root})
    return config


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``fhevm-studio`` and ``python -m fhevm_studio``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "update-dependencies" and not _selected_scopes(args):
        parser.error("update-dependencies needs at least one of --all, --output, "
                     "--categories, --base-template, --main")

    with warnings.catch_warnings():
        warnings.simplefilter("always", DependencyResolutionWarning)
        warnings.showwarning = _show_warning
        try:
            config = _load_config(args)
            registry = Registry.load()
            return _COMMANDS[args.command](config, registry, args)
        except (StudioError, OSError, UnicodeDecodeError) as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            return 1

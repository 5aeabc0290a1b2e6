"""Documentation synthesis pipeline.

One document goes through ``Extract -> Classify -> Compose -> Persist`` with
no retries.  Any failure is raised as ``DocumentationError`` carrying the
stage name; callers decide whether it matters (it never does for
scaffolding).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

from fhevm_studio.assembler.files import derive_unit_name
from fhevm_studio.docs.classifier import classify
from fhevm_studio.docs.composer import DocumentComposer, DocumentInput
from fhevm_studio.docs.extractor import (
    extract_chapter,
    extract_failure_cases,
    extract_source_facts,
)
from fhevm_studio.docs.index import update_index
from fhevm_studio.errors import DocumentationError
from fhevm_studio.registry.models import DocManifestEntry
from fhevm_studio.rendering import write_file

FALLBACK_UNIT_NAME = "Contract"


@dataclass(frozen=True)
class DocRequest:
    """Where to read the units from and where the document goes."""

    identifier: str
    title: str
    description: str
    category_label: str
    source_path: Path
    test_path: Path
    output_path: Path
    chapter: str | None = None

    @classmethod
    def from_manifest(cls, entry: DocManifestEntry, root: Path) -> "DocRequest":
        return cls(
            identifier=entry.identifier,
            title=entry.title,
            description=entry.description,
            category_label=entry.category_label,
            source_path=root / entry.source,
            test_path=root / entry.test,
            output_path=root / entry.output,
            chapter=entry.chapter,
        )


@dataclass
class DocsRun:
    """Outcome of synthesizing several documents."""

    generated: list[Path] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class DocumentationSynthesizer:
    """Builds example documents and keeps the cumulative index current."""

    def __init__(self, composer: DocumentComposer | None = None) -> None:
        self.composer = composer or DocumentComposer()

    async def render(self, request: DocRequest) -> str:
        """Run the Extract, Classify and Compose stages and return the markdown."""
        try:
            source_text = await asyncio.to_thread(request.source_path.read_text, "utf-8")
            test_text = await asyncio.to_thread(request.test_path.read_text, "utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentationError(
                f"Cannot read units for '{request.identifier}': {exc}",
                stage="extract",
                identifier=request.identifier,
            ) from exc

        facts = extract_source_facts(source_text)
        failures = extract_failure_cases(test_text)
        chapter = request.chapter or extract_chapter(test_text)

        classification = classify(request.title, request.category_label, source_text, test_text)

        doc = DocumentInput(
            title=request.title,
            description=request.description,
            category_label=request.category_label,
            chapter=chapter,
            unit_name=derive_unit_name(source_text) or FALLBACK_UNIT_NAME,
            test_file_name=request.test_path.name,
            source_text=source_text,
            test_text=test_text,
        )
        try:
            return self.composer.compose(doc, facts, classification, failures)
        except (ValueError, KeyError, IndexError) as exc:
            raise DocumentationError(
                f"Cannot compose document for '{request.identifier}': {exc}",
                stage="compose",
                identifier=request.identifier,
            ) from exc

    async def synthesize(self, request: DocRequest, index_path: Path | None = None) -> Path:
        """Write the document for *request* and, optionally, index it.

        Returns:
            The written document path.

        Raises:
            DocumentationError: Any stage failed.
        """
        markdown = await self.render(request)
        try:
            await asyncio.to_thread(write_file, request.output_path, markdown)
            if index_path is not None:
                await asyncio.to_thread(
                    update_index,
                    index_path,
                    request.title,
                    request.output_path.name,
                    request.category_label,
                )
        except OSError as exc:
            raise DocumentationError(
                f"Cannot write document for '{request.identifier}': {exc}",
                stage="persist",
                identifier=request.identifier,
            ) from exc
        return request.output_path

    async def synthesize_all(self, requests: list[DocRequest], index_path: Path) -> DocsRun:
        """Synthesize every request, then index the successful ones in order.

        A failed document is recorded and does not stop the others.
        """
        run = DocsRun()
        indexed: list[DocRequest] = []
        for request in requests:
            try:
                run.generated.append(await self.synthesize(request))
            except DocumentationError as exc:
                run.failed[request.identifier] = str(exc)
                continue
            indexed.append(request)

        for request in indexed:
            await asyncio.to_thread(
                update_index,
                index_path,
                request.title,
                request.output_path.name,
                request.category_label,
            )
        return run

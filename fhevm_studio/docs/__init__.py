"""Documentation synthesis: extraction, classification, composition and indexing."""

from fhevm_studio.docs.composer import DocumentComposer, DocumentInput
from fhevm_studio.docs.index import SUMMARY_HEADER, reset_index, update_index
from fhevm_studio.docs.synthesizer import DocRequest, DocsRun, DocumentationSynthesizer

__all__ = [
    "SUMMARY_HEADER",
    "DocRequest",
    "DocsRun",
    "DocumentComposer",
    "DocumentInput",
    "DocumentationSynthesizer",
    "reset_index",
    "update_index",
]

"""Manifest registry: the example, category and documentation tables."""

from fhevm_studio.registry.loader import Registry, ResolvedExample, ResolvedUnit
from fhevm_studio.registry.models import (
    CategoryManifestEntry,
    CategoryUnit,
    DocManifestEntry,
    ExampleManifestEntry,
)

__all__ = [
    "CategoryManifestEntry",
    "CategoryUnit",
    "DocManifestEntry",
    "ExampleManifestEntry",
    "Registry",
    "ResolvedExample",
    "ResolvedUnit",
]

"""FHEVM Studio: generate, document and test standalone FHEVM example projects."""

__version__ = "0.1.0"

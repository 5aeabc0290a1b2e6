"""Error taxonomy for FHEVM Studio.

Fatal errors derive from ``StudioError`` so the CLI can report them with a
single handler.  ``DependencyResolutionWarning`` is a warning category, not an
exception: a missing optional file never aborts an operation.
"""

from __future__ import annotations

from pathlib import Path


class StudioError(Exception):
    """Base class for every error raised by FHEVM Studio."""

    def __init__(self, message: str, identifier: str = ""):
        self.identifier = identifier
        super().__init__(message)


class ConfigError(StudioError):
    """Unknown identifier, malformed manifest or missing referenced file."""


class ConflictError(StudioError):
    """The requested output path already exists and replacement was not confirmed."""

    def __init__(self, message: str, path: Path, identifier: str = ""):
        self.path = path
        super().__init__(message, identifier=identifier)


class DocumentationError(StudioError):
    """A document could not be synthesized.  Never fatal for scaffolding."""

    def __init__(self, message: str, stage: str = "", identifier: str = ""):
        self.stage = stage
        super().__init__(message, identifier=identifier)


class ExternalCommandFailure(StudioError):
    """The build or test command exited with a non-zero status."""

    def __init__(self, message: str, command: str = "", returncode: int = 1, identifier: str = ""):
        self.command = command
        self.returncode = returncode
        super().__init__(message, identifier=identifier)


class DependencyResolutionWarning(UserWarning):
    """An optional dependency file listed on a manifest entry could not be found."""

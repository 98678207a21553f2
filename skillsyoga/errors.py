"""
skillsyoga.errors

Structured error taxonomy shared by every core operation.

Each error carries a stable ``code`` so the command layer (FastMCP tools, CLI)
can report failures uniformly. Validation, path and lookup failures also derive
from ``ValueError`` so callers that only know the standard exceptions keep
working.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class SkillsYogaError(Exception):
    """Base class for all skillsyoga failures."""

    code: str = "Error"

    def __init__(self, message: str = "") -> None:
        self.detail = message
        super().__init__(message or self.code)

    def __str__(self) -> str:
        return f"{self.label}: {self.detail}" if self.detail else self.label

    @property
    def label(self) -> str:
        return _LABELS.get(self.code, self.code)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.detail}


class ValidationError(SkillsYogaError, ValueError):
    """Malformed, empty or conflicting input."""

    code = "Validation"


class InvalidPathError(SkillsYogaError, ValueError):
    """Authorization or traversal failure. Reported verbatim, never corrected."""

    code = "InvalidPath"


class NotFoundError(SkillsYogaError, ValueError):
    """Missing file, directory or tool id."""

    code = "NotFound"


class NetworkError(SkillsYogaError):
    code = "Network"


class VcsError(SkillsYogaError):
    """git clone failed; the message embeds git's stderr."""

    code = "Git"


class IoError(SkillsYogaError):
    code = "Io"


class SerializationError(SkillsYogaError):
    code = "Serde"


_LABELS = {
    "Validation": "Validation error",
    "InvalidPath": "Invalid path",
    "NotFound": "Not found",
    "Network": "Network error",
    "Git": "Git error",
    "Io": "IO error",
    "Serde": "Serialization error",
}


@contextmanager
def io_errors() -> Iterator[None]:
    """Convert ``OSError`` raised inside the block into ``IoError``."""
    try:
        yield
    except OSError as exc:
        raise IoError(str(exc)) from exc

"""Exception hierarchy shared by the kb_pages pipeline.

Validation problems are always recoverable next to the input that caused
them, render problems are scoped to a single diagram instance, and store
problems are surfaced at the form level while leaving the composer state
untouched for a retry.
"""

from __future__ import annotations

import dataclasses as dc
import enum


class KbPagesError(Exception):
    """Base class for every error raised by kb_pages."""


class ValidationError(KbPagesError, ValueError):
    """Raised when authored input fails a structural check."""


class DiagramIssue(enum.StrEnum):
    """Reasons a diagram source is rejected before rendering."""

    EMPTY_DIAGRAM = "EmptyDiagram"
    UNRECOGNIZED_KIND = "UnrecognizedDiagramKind"


class DiagramSyntaxError(ValidationError):
    """Raised when diagram source does not start with a known diagram kind."""

    def __init__(self, reason: DiagramIssue, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class BlockIssueCode(enum.StrEnum):
    """Structural problems detected on a single content block."""

    MISSING_ID = "MissingId"
    MISSING_KIND = "MissingKind"
    UNKNOWN_KIND = "UnknownKind"
    MISSING_CONTENT = "MissingContentField"
    UNKNOWN_LANGUAGE = "UnknownLanguage"


@dc.dataclass(frozen=True, slots=True)
class BlockIssue:
    """One itemized block problem, addressed by its position in the page."""

    index: int
    code: BlockIssueCode
    message: str

    def __str__(self) -> str:
        return f"Block {self.index + 1}: {self.message}"


class BlockValidationError(ValidationError):
    """Raised when one or more blocks in a page are structurally invalid."""

    def __init__(self, issues: list[BlockIssue]) -> None:
        self.issues = list(issues)
        super().__init__("; ".join(str(issue) for issue in self.issues))


class PageValidationError(ValidationError):
    """Raised when page metadata or bulk input fails validation."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class RenderError(KbPagesError):
    """Raised by a diagram backend when the diagram body cannot be rendered."""


class StoreError(KbPagesError):
    """Base class for persistence boundary failures."""


class NotFoundError(StoreError):
    """Raised when no page exists for the requested slug."""


class ConflictError(StoreError):
    """Raised when a page with the requested slug already exists."""


class BadRequestError(StoreError):
    """Raised when the store rejects a page as incomplete."""


class TransportError(StoreError):
    """Raised when the store cannot be reached or answers unexpectedly."""


__all__ = [
    "BadRequestError",
    "BlockIssue",
    "BlockIssueCode",
    "BlockValidationError",
    "ConflictError",
    "DiagramIssue",
    "DiagramSyntaxError",
    "KbPagesError",
    "NotFoundError",
    "PageValidationError",
    "RenderError",
    "StoreError",
    "TransportError",
    "ValidationError",
]

"""Reject diagram source that cannot be a supported mermaid diagram.

The check is a cheap prefix test run before the rendering backend is
invoked, so authors get an actionable message instead of a parser failure
from deep inside mermaid.

Example
-------
>>> from kb_pages.diagrams.validator import validate
>>> validate("flowchart TD\\nA-->B").ok
True
>>> validate("hello").reason
<DiagramIssue.UNRECOGNIZED_KIND: 'UnrecognizedDiagramKind'>
"""

from __future__ import annotations

import dataclasses as dc

from kb_pages._constants import DIAGRAM_KEYWORDS
from kb_pages.errors import DiagramIssue, DiagramSyntaxError

_LOWERED_KEYWORDS = tuple(keyword.lower() for keyword in DIAGRAM_KEYWORDS)


@dc.dataclass(frozen=True, slots=True)
class DiagramValidation:
    """Outcome of validating a diagram source.

    Attributes
    ----------
    ok : bool
        ``True`` when the source may be handed to the rendering backend.
    reason : DiagramIssue | None
        Machine-readable failure reason; ``None`` when ``ok`` is ``True``.
    message : str
        Human-readable explanation suitable for an inline error panel.
    """

    ok: bool
    reason: DiagramIssue | None = None
    message: str = ""


def validate(source: str) -> DiagramValidation:
    """Check that ``source`` starts with an allow-listed diagram keyword.

    Parameters
    ----------
    source : str
        Raw diagram description. Leading and trailing whitespace is ignored.

    Returns
    -------
    DiagramValidation
        ``ok`` when the trimmed, lower-cased source starts with one of the
        supported diagram kinds; otherwise the failure reason.
    """
    trimmed = source.strip()
    if not trimmed:
        return DiagramValidation(
            ok=False,
            reason=DiagramIssue.EMPTY_DIAGRAM,
            message="Diagram source is empty.",
        )
    lowered = trimmed.lower()
    if not lowered.startswith(_LOWERED_KEYWORDS):
        return DiagramValidation(
            ok=False,
            reason=DiagramIssue.UNRECOGNIZED_KIND,
            message=(
                "Invalid mermaid diagram syntax: source must start with one of "
                + ", ".join(DIAGRAM_KEYWORDS)
                + "."
            ),
        )
    return DiagramValidation(ok=True)


def ensure_valid(source: str) -> str:
    """Return the trimmed ``source`` or raise :class:`DiagramSyntaxError`."""
    result = validate(source)
    if not result.ok:
        reason = result.reason or DiagramIssue.UNRECOGNIZED_KIND
        raise DiagramSyntaxError(reason, result.message)
    return source.strip()


__all__ = ["DiagramValidation", "ensure_valid", "validate"]

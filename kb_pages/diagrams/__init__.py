"""Validate, render, and interactively view mermaid diagrams."""

from .component import DiagramComponent
from .preferences import SCROLL_ZOOM_PREFERENCE, ScrollZoomPreference
from .renderer import (
    DiagramBackend,
    DiagramRenderer,
    DiagramRenderResult,
    MermaidCliBackend,
    RenderStatus,
)
from .validator import DiagramValidation, ensure_valid, validate
from .viewport import (
    FullscreenHost,
    ViewportController,
    ViewportPhase,
    ViewportPolicy,
    ViewportState,
)

__all__ = [
    "SCROLL_ZOOM_PREFERENCE",
    "DiagramBackend",
    "DiagramComponent",
    "DiagramRenderResult",
    "DiagramRenderer",
    "DiagramValidation",
    "FullscreenHost",
    "MermaidCliBackend",
    "RenderStatus",
    "ScrollZoomPreference",
    "ViewportController",
    "ViewportPhase",
    "ViewportPolicy",
    "ViewportState",
    "ensure_valid",
    "validate",
]

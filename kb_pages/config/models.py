"""Typed dataclasses describing kb_pages configuration structures."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from kb_pages.diagrams.viewport import ViewportPolicy


class SiteConfigError(ValueError):
    """Raised when the site configuration is invalid or incomplete."""


DEFAULT_THEME_VARIABLES: dict[str, str] = {
    "primaryColor": "#1a1a2e",
    "primaryTextColor": "#eee",
    "primaryBorderColor": "#4a4a6a",
    "lineColor": "#61dafb",
    "secondaryColor": "#16213e",
    "tertiaryColor": "#0f3460",
    "noteBkgColor": "#ffd93d",
    "noteTextColor": "#000",
    "fontSize": "14px",
}


@dc.dataclass(slots=True)
class ApiSettings:
    """Where the custom-pages service lives."""

    base_url: str = "http://localhost:3001"
    timeout: float = 10.0


@dc.dataclass(slots=True)
class ThemeConfig:
    """Visual theming applied to generated pages."""

    site_name: str = "Knowledge Base"
    tagline: str = "Custom pages"
    footer_note: str = ""


@dc.dataclass(slots=True)
class FlowchartSettings:
    """Layout options passed to the mermaid flowchart renderer."""

    curve: str = "basis"
    node_spacing: int = 50
    rank_spacing: int = 50
    use_max_width: bool = False


@dc.dataclass(slots=True)
class DiagramSettings:
    """How mermaid diagrams are rendered.

    Attributes
    ----------
    command : str
        Mermaid CLI executable used by :class:`MermaidCliBackend`.
    theme : str
        Mermaid theme name.
    font_family : str
        CSS font stack applied to diagram text.
    theme_variables : dict[str, str]
        Palette overrides; defaults to the fixed dark palette.
    flowchart : FlowchartSettings
        Flowchart layout options.
    """

    command: str = "mmdc"
    theme: str = "dark"
    font_family: str = "ui-monospace, monospace"
    theme_variables: dict[str, str] = dc.field(
        default_factory=lambda: dict(DEFAULT_THEME_VARIABLES)
    )
    flowchart: FlowchartSettings = dc.field(default_factory=FlowchartSettings)

    def mermaid_config(self) -> dict[str, typ.Any]:
        """Return the mermaid configuration object for the CLI and mermaid.js."""
        return {
            "startOnLoad": False,
            "theme": self.theme,
            "themeVariables": dict(self.theme_variables),
            "fontFamily": self.font_family,
            "flowchart": {
                "curve": self.flowchart.curve,
                "nodeSpacing": self.flowchart.node_spacing,
                "rankSpacing": self.flowchart.rank_spacing,
                "useMaxWidth": self.flowchart.use_max_width,
            },
        }


@dc.dataclass(slots=True)
class ViewportSettings:
    """Bounds and steps for interactive diagram viewports."""

    min_scale: float = 0.25
    max_scale: float = 4.0
    zoom_factor: float = 1.2
    initial_scale: float = 1.0
    detail_initial_scale: float = 0.7

    def policy(self, *, detail: bool = False) -> ViewportPolicy:
        """Return the viewport policy for inline or detail views."""
        return ViewportPolicy(
            min_scale=self.min_scale,
            max_scale=self.max_scale,
            zoom_factor=self.zoom_factor,
            initial_scale=self.detail_initial_scale if detail else self.initial_scale,
        )


@dc.dataclass(slots=True)
class PreviewSettings:
    """Live preview timing."""

    debounce_seconds: float = 0.5


@dc.dataclass(slots=True)
class SiteConfig:
    """Complete configuration consumed by the CLI and generators."""

    api: ApiSettings = dc.field(default_factory=ApiSettings)
    output_dir: Path = Path("public")
    pygments_style: str = "monokai"
    theme: ThemeConfig = dc.field(default_factory=ThemeConfig)
    diagrams: DiagramSettings = dc.field(default_factory=DiagramSettings)
    viewport: ViewportSettings = dc.field(default_factory=ViewportSettings)
    preview: PreviewSettings = dc.field(default_factory=PreviewSettings)


__all__ = [
    "DEFAULT_THEME_VARIABLES",
    "ApiSettings",
    "DiagramSettings",
    "FlowchartSettings",
    "PreviewSettings",
    "SiteConfig",
    "SiteConfigError",
    "ThemeConfig",
    "ViewportSettings",
]

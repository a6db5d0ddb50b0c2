"""Load and validate kb_pages configuration YAML.

This subpackage parses the project's ``kb.yaml`` file, applies defaults to
every omitted section, and produces typed dataclasses (:class:`SiteConfig`,
:class:`DiagramSettings`, etc.) that the CLI, the generators, and the diagram
backend consume. The primary entry point is :func:`load_site_config`.

Examples
--------
>>> from pathlib import Path
>>> from kb_pages.config import load_site_config
>>> site = load_site_config(Path("config/kb.yaml"))  # doctest: +SKIP
>>> site.diagrams.mermaid_config()["theme"]  # doctest: +SKIP
'dark'
"""

from .loader import (
    DEFAULT_CONFIG_PATH,
    default_site_config,
    load_site_config,
    resolve_site_config,
)
from .models import (
    ApiSettings,
    DiagramSettings,
    FlowchartSettings,
    PreviewSettings,
    SiteConfig,
    SiteConfigError,
    ThemeConfig,
    ViewportSettings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ApiSettings",
    "DiagramSettings",
    "FlowchartSettings",
    "PreviewSettings",
    "SiteConfig",
    "SiteConfigError",
    "ThemeConfig",
    "ViewportSettings",
    "default_site_config",
    "load_site_config",
    "resolve_site_config",
]

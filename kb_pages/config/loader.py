"""Load kb_pages configuration YAML into typed dataclasses."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from .helpers import (
    _build_api_settings,
    _build_diagram_settings,
    _build_preview_settings,
    _build_theme_config,
    _build_viewport_settings,
    _section,
)
from .models import SiteConfig

DEFAULT_CONFIG_PATH = Path("config/kb.yaml")


def default_site_config() -> SiteConfig:
    """Return the built-in configuration used when no file is present."""
    return SiteConfig()


def load_site_config(path: Path) -> SiteConfig:
    """Load the YAML configuration describing the service, output, and diagrams.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML configuration file (for example,
        ``config/kb.yaml``).

    Returns
    -------
    SiteConfig
        Parsed configuration with defaults applied to every omitted section.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    TypeError
        If the top-level YAML structure is not a mapping.
    SiteConfigError
        If a section or value is invalid (for example, ``min_scale`` above
        ``max_scale``).
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from kb_pages.config import load_site_config
    >>> config = load_site_config(Path("config/kb.yaml"))  # doctest: +SKIP
    >>> config.viewport.max_scale  # doctest: +SKIP
    4.0
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise TypeError(msg)
    raw: dict[str, typ.Any] = dict(loaded)

    base = default_site_config()
    return SiteConfig(
        api=_build_api_settings(_section(raw, "api")),
        output_dir=Path(raw.get("output_dir", base.output_dir)),
        pygments_style=str(raw.get("pygments_style", base.pygments_style)),
        theme=_build_theme_config(_section(raw, "theme")),
        diagrams=_build_diagram_settings(_section(raw, "diagrams")),
        viewport=_build_viewport_settings(_section(raw, "viewport")),
        preview=_build_preview_settings(_section(raw, "preview")),
    )


def resolve_site_config(path: Path | None) -> SiteConfig:
    """Load ``path`` when given, else the default file if it exists, else defaults."""
    if path is not None:
        return load_site_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_site_config(DEFAULT_CONFIG_PATH)
    return default_site_config()


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "default_site_config",
    "load_site_config",
    "resolve_site_config",
]

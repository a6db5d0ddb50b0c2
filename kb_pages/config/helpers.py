"""Utility helpers shared by the kb_pages configuration loader."""

from __future__ import annotations

import typing as typ

from .models import (
    DEFAULT_THEME_VARIABLES,
    ApiSettings,
    DiagramSettings,
    FlowchartSettings,
    PreviewSettings,
    SiteConfigError,
    ThemeConfig,
    ViewportSettings,
)


def _section(raw: typ.Mapping[str, typ.Any], name: str) -> typ.Mapping[str, typ.Any]:
    """Return the mapping stored under ``name`` or an empty one."""
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        msg = f"Configuration section '{name}' must be a mapping."
        raise SiteConfigError(msg)
    return value


def _number(payload: typ.Mapping[str, typ.Any], key: str, default: float) -> float:
    """Read a numeric field, rejecting values that are not numbers."""
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int | float):
        msg = f"'{key}' must be a number, got {value!r}."
        raise SiteConfigError(msg)
    return float(value)


def _build_api_settings(payload: typ.Mapping[str, typ.Any]) -> ApiSettings:
    base = ApiSettings()
    base_url = str(payload.get("base_url", base.base_url)).rstrip("/")
    if not base_url.startswith(("http://", "https://")):
        msg = f"api.base_url must be an http(s) URL, got '{base_url}'."
        raise SiteConfigError(msg)
    return ApiSettings(base_url=base_url, timeout=_number(payload, "timeout", base.timeout))


def _build_theme_config(payload: typ.Mapping[str, typ.Any]) -> ThemeConfig:
    """Build a ThemeConfig instance from the provided mapping payload."""
    base = ThemeConfig()
    return ThemeConfig(
        site_name=str(payload.get("site_name", base.site_name)),
        tagline=str(payload.get("tagline", base.tagline)),
        footer_note=str(payload.get("footer_note", base.footer_note)),
    )


def _build_diagram_settings(payload: typ.Mapping[str, typ.Any]) -> DiagramSettings:
    base = DiagramSettings()
    flowchart_raw = _section(payload, "flowchart")
    flow_base = FlowchartSettings()
    flowchart = FlowchartSettings(
        curve=str(flowchart_raw.get("curve", flow_base.curve)),
        node_spacing=int(_number(flowchart_raw, "node_spacing", flow_base.node_spacing)),
        rank_spacing=int(_number(flowchart_raw, "rank_spacing", flow_base.rank_spacing)),
        use_max_width=bool(flowchart_raw.get("use_max_width", flow_base.use_max_width)),
    )
    theme_variables = dict(DEFAULT_THEME_VARIABLES)
    theme_variables.update(
        {str(key): str(value) for key, value in _section(payload, "theme_variables").items()}
    )
    return DiagramSettings(
        command=str(payload.get("command", base.command)),
        theme=str(payload.get("theme", base.theme)),
        font_family=str(payload.get("font_family", base.font_family)),
        theme_variables=theme_variables,
        flowchart=flowchart,
    )


def _build_viewport_settings(payload: typ.Mapping[str, typ.Any]) -> ViewportSettings:
    base = ViewportSettings()
    settings = ViewportSettings(
        min_scale=_number(payload, "min_scale", base.min_scale),
        max_scale=_number(payload, "max_scale", base.max_scale),
        zoom_factor=_number(payload, "zoom_factor", base.zoom_factor),
        initial_scale=_number(payload, "initial_scale", base.initial_scale),
        detail_initial_scale=_number(
            payload, "detail_initial_scale", base.detail_initial_scale
        ),
    )
    if not 0 < settings.min_scale < settings.max_scale:
        msg = (
            "viewport.min_scale must be positive and below viewport.max_scale "
            f"(got {settings.min_scale} and {settings.max_scale})."
        )
        raise SiteConfigError(msg)
    if settings.zoom_factor <= 1:
        msg = f"viewport.zoom_factor must be greater than 1, got {settings.zoom_factor}."
        raise SiteConfigError(msg)
    return settings


def _build_preview_settings(payload: typ.Mapping[str, typ.Any]) -> PreviewSettings:
    base = PreviewSettings()
    debounce = _number(payload, "debounce_seconds", base.debounce_seconds)
    if debounce < 0:
        msg = f"preview.debounce_seconds cannot be negative, got {debounce}."
        raise SiteConfigError(msg)
    return PreviewSettings(debounce_seconds=debounce)


__all__ = [
    "_build_api_settings",
    "_build_diagram_settings",
    "_build_preview_settings",
    "_build_theme_config",
    "_build_viewport_settings",
    "_number",
    "_section",
]

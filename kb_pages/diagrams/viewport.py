"""Interactive pan, zoom, and fullscreen state for one rendered diagram.

:class:`ViewportController` owns the transform applied to a diagram's SVG.
It stays ``uninitialized`` until the diagram renders, then accepts zoom, pan,
fit, reset, and fullscreen operations. Updates are synchronous and
last-write-wins. Scale changes made through the controls are clamped to the
policy bounds; ``reset_transform`` and ``fit_to_view`` assign their computed
scale directly.

Wheel events zoom only while the shared
:class:`~kb_pages.diagrams.preferences.ScrollZoomPreference` is enabled; a
right click toggles that preference for every mounted viewport.

Example
-------
>>> from kb_pages.diagrams.viewport import ViewportController
>>> from kb_pages.diagrams.renderer import DiagramRenderResult, RenderStatus
>>> viewport = ViewportController("diagram-1")
>>> viewport.mount()
>>> viewport.attach(DiagramRenderResult(RenderStatus.READY, svg_markup="<svg/>"))
>>> viewport.zoom_in()
>>> viewport.zoom_label
'120%'
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import typing as typ

from .preferences import SCROLL_ZOOM_PREFERENCE, ScrollZoomPreference

if typ.TYPE_CHECKING:
    from .renderer import DiagramRenderResult

FullscreenListener = cabc.Callable[[str | None], None]


class ViewportPhase(enum.StrEnum):
    """Whether the controller has a rendered diagram to transform."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    ERROR = "error"


@dc.dataclass(slots=True)
class ViewportState:
    """Transform applied to a rendered diagram."""

    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0
    fullscreen: bool = False


@dc.dataclass(frozen=True, slots=True)
class ViewportPolicy:
    """Scale bounds and zoom step used by the interactive controls.

    Attributes
    ----------
    min_scale : float
        Lower clamp for control-driven scale changes.
    max_scale : float
        Upper clamp for control-driven scale changes.
    zoom_factor : float
        Multiplicative step applied by ``zoom_in``/``zoom_out`` and each wheel
        notch.
    initial_scale : float
        Scale restored by ``reset_transform`` and used on first render.
    """

    min_scale: float = 0.25
    max_scale: float = 4.0
    zoom_factor: float = 1.2
    initial_scale: float = 1.0

    def clamp(self, value: float) -> float:
        return min(self.max_scale, max(self.min_scale, value))


class FullscreenHost:
    """In-process stand-in for the platform fullscreen API.

    At most one element is fullscreen at a time. Listeners are told about
    every change, including exits the controller did not request (for
    example the user pressing Escape, modelled by :meth:`exit`).
    """

    def __init__(self) -> None:
        self.fullscreen_element: str | None = None
        self._listeners: list[FullscreenListener] = []

    def request(self, element_id: str) -> None:
        self._change(element_id)

    def exit(self) -> None:
        self._change(None)

    def add_listener(self, listener: FullscreenListener) -> cabc.Callable[[], None]:
        """Register a fullscreen-change listener and return its remover."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _change(self, element_id: str | None) -> None:
        if element_id == self.fullscreen_element:
            return
        self.fullscreen_element = element_id
        for listener in list(self._listeners):
            listener(element_id)


class ViewportController:
    """Own the transform state of one interactive diagram."""

    def __init__(
        self,
        element_id: str,
        *,
        policy: ViewportPolicy | None = None,
        preference: ScrollZoomPreference | None = None,
        fullscreen_host: FullscreenHost | None = None,
    ) -> None:
        """Create a controller for the diagram container ``element_id``.

        Parameters
        ----------
        element_id : str
            Id of the container element, used for fullscreen requests.
        policy : ViewportPolicy, optional
            Clamp bounds, zoom step, and initial scale.
        preference : ScrollZoomPreference, optional
            Shared wheel preference; defaults to the process-wide instance.
        fullscreen_host : FullscreenHost, optional
            Fullscreen API; without one, fullscreen is tracked locally.
        """
        self.element_id = element_id
        self.policy = policy or ViewportPolicy()
        self.preference = preference or SCROLL_ZOOM_PREFERENCE
        self.fullscreen_host = fullscreen_host
        self.phase = ViewportPhase.UNINITIALIZED
        self.state = ViewportState(scale=self.policy.initial_scale)
        self.dragging = False
        self._scroll_zoom_enabled = self.preference.enabled
        self._drag_origin: tuple[float, float] | None = None
        self._unsubscribers: list[cabc.Callable[[], None]] = []

    # lifecycle -----------------------------------------------------------

    @property
    def mounted(self) -> bool:
        return bool(self._unsubscribers)

    def mount(self) -> None:
        """Start listening to the shared preference and fullscreen changes."""
        if self.mounted:
            return
        self._scroll_zoom_enabled = self.preference.enabled
        self._unsubscribers.append(self.preference.subscribe(self._on_preference))
        if self.fullscreen_host is not None:
            self._unsubscribers.append(
                self.fullscreen_host.add_listener(self._on_fullscreen_change)
            )

    def unmount(self) -> None:
        """Stop listening; the controller no longer reacts to shared state."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.end_drag()

    def attach(self, result: DiagramRenderResult) -> None:
        """Move to ``ready`` or ``error`` based on the latest render result."""
        if result.ready:
            if self.phase is not ViewportPhase.READY:
                self.reset_transform(force=True)
            self.phase = ViewportPhase.READY
        elif result.error_message is not None:
            self.phase = ViewportPhase.ERROR
        else:
            self.phase = ViewportPhase.UNINITIALIZED

    # derived values -------------------------------------------------------

    @property
    def ready(self) -> bool:
        return self.phase is ViewportPhase.READY

    @property
    def scroll_zoom_enabled(self) -> bool:
        return self._scroll_zoom_enabled

    @property
    def cursor(self) -> str:
        if not self.ready:
            return "default"
        return "grabbing" if self.dragging else "grab"

    @property
    def zoom_label(self) -> str:
        return f"{round(self.state.scale * 100)}%"

    @property
    def transform_css(self) -> str:
        state = self.state
        return (
            f"translate({state.translate_x:g}px, {state.translate_y:g}px) "
            f"scale({state.scale:g})"
        )

    # zoom -----------------------------------------------------------------

    def zoom_in(self) -> None:
        self.set_scale(self.state.scale * self.policy.zoom_factor)

    def zoom_out(self) -> None:
        self.set_scale(self.state.scale / self.policy.zoom_factor)

    def set_scale(self, value: float) -> None:
        """Apply ``value`` clamped to the policy bounds."""
        if not self.ready:
            return
        self.state.scale = self.policy.clamp(value)

    def reset_transform(self, *, force: bool = False) -> None:
        """Restore the initial scale and clear any translation."""
        if not (self.ready or force):
            return
        self.state.scale = self.policy.initial_scale
        self.state.translate_x = 0.0
        self.state.translate_y = 0.0

    def fit_to_view(
        self,
        container: tuple[float, float],
        content: tuple[float, float],
        padding: float = 16.0,
    ) -> None:
        """Scale and centre ``content`` inside ``container`` minus ``padding``.

        Parameters
        ----------
        container : tuple[float, float]
            Width and height of the visible area.
        content : tuple[float, float]
            Natural width and height of the rendered SVG.
        padding : float, optional
            Space kept free on every side.
        """
        if not self.ready:
            return
        content_width, content_height = content
        if content_width <= 0 or content_height <= 0:
            self.reset_transform()
            return
        width, height = container
        available_width = max(width - 2 * padding, 1.0)
        available_height = max(height - 2 * padding, 1.0)
        scale = min(available_width / content_width, available_height / content_height)
        self.state.scale = scale
        self.state.translate_x = (width - content_width * scale) / 2
        self.state.translate_y = (height - content_height * scale) / 2

    # pointer gestures ----------------------------------------------------

    def begin_drag(self, x: float, y: float) -> None:
        if not self.ready:
            return
        self.dragging = True
        self._drag_origin = (x, y)

    def drag_to(self, x: float, y: float) -> None:
        if not self.dragging or self._drag_origin is None:
            return
        origin_x, origin_y = self._drag_origin
        self.pan(x - origin_x, y - origin_y)
        self._drag_origin = (x, y)

    def end_drag(self) -> None:
        self.dragging = False
        self._drag_origin = None

    def pan(self, dx: float, dy: float) -> None:
        """Translate the diagram; ignored unless a drag gesture is active."""
        if not self.dragging:
            return
        self.state.translate_x += dx
        self.state.translate_y += dy

    def wheel(self, delta_y: float) -> bool:
        """Handle a wheel event and return ``True`` when it zoomed the diagram.

        A ``False`` result means the event should scroll the page instead.
        """
        if not self.ready or not self._scroll_zoom_enabled or delta_y == 0:
            return False
        if delta_y < 0:
            self.zoom_in()
        else:
            self.zoom_out()
        return True

    def context_menu(self) -> bool:
        """Toggle the shared scroll-zoom preference; the native menu is suppressed."""
        self.preference.toggle()
        return True

    def double_click(self) -> None:
        self.reset_transform()

    # fullscreen ----------------------------------------------------------

    def toggle_fullscreen(self) -> None:
        """Enter or leave fullscreen for this diagram's container."""
        host = self.fullscreen_host
        if host is None:
            self.state.fullscreen = not self.state.fullscreen
            return
        if self.state.fullscreen:
            host.exit()
        else:
            host.request(self.element_id)

    def _on_fullscreen_change(self, element_id: str | None) -> None:
        self.state.fullscreen = element_id == self.element_id

    def _on_preference(self, enabled: bool) -> None:  # noqa: FBT001
        self._scroll_zoom_enabled = enabled


__all__ = [
    "FullscreenHost",
    "ViewportController",
    "ViewportPhase",
    "ViewportPolicy",
    "ViewportState",
]

"""Glue a diagram render instance to its optional interactive viewport."""

from __future__ import annotations

import typing as typ

from .renderer import DiagramRenderer, DiagramRenderResult
from .viewport import ViewportController

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .preferences import ScrollZoomPreference
    from .renderer import DiagramBackend
    from .viewport import FullscreenHost, ViewportPolicy

HINT_SCROLL_ZOOM_ON = "Drag to pan • Scroll to zoom"
HINT_SCROLL_ZOOM_OFF = "Drag to pan • Scroll zoom off (right-click to toggle)"


class DiagramComponent:
    """One on-screen diagram: render state plus pan/zoom when interactive.

    ``update`` re-renders only when the source or the id hint changes; viewport
    operations never trigger a render. A new hint gives the component a new
    render instance, as if it had been remounted under another identity.
    """

    def __init__(
        self,
        source: str,
        *,
        backend: DiagramBackend,
        hint: str | None = None,
        interactive: bool = True,
        policy: ViewportPolicy | None = None,
        preference: ScrollZoomPreference | None = None,
        fullscreen_host: FullscreenHost | None = None,
    ) -> None:
        self.source = source
        self.hint = hint
        self.interactive = interactive
        self._backend = backend
        self._policy = policy
        self._preference = preference
        self._fullscreen_host = fullscreen_host
        self._mounted = False
        self._renderer_unsubscribe: cabc.Callable[[], None] | None = None
        self.renderer = self._new_renderer()
        self.viewport = self._new_viewport() if interactive else None

    @property
    def instance_id(self) -> str:
        return self.renderer.instance_id

    @property
    def result(self) -> DiagramRenderResult:
        return self.renderer.result

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def cursor(self) -> str:
        if self.viewport is None:
            return "default"
        return self.viewport.cursor

    @property
    def hint_text(self) -> str | None:
        if self.viewport is None or not self.viewport.ready:
            return None
        if self.viewport.scroll_zoom_enabled:
            return HINT_SCROLL_ZOOM_ON
        return HINT_SCROLL_ZOOM_OFF

    def mount(self) -> None:
        self._mounted = True
        if self.viewport is not None:
            self.viewport.mount()

    def unmount(self) -> None:
        """Detach listeners and ignore renders that resolve afterwards."""
        self._mounted = False
        if self.viewport is not None:
            self.viewport.unmount()
        self._release_renderer()

    async def refresh(self) -> DiagramRenderResult:
        """Render the current source through this component's instance."""
        if self.renderer.disposed:
            return self.result
        return await self.renderer.render(self.source)

    async def update(
        self, *, source: str | None = None, hint: str | None = None
    ) -> DiagramRenderResult:
        """Apply new props and re-render when source or hint changed."""
        source_changed = source is not None and source != self.source
        hint_changed = hint is not None and hint != self.hint
        if source is not None:
            self.source = source
        if hint_changed:
            self.hint = hint
            self._release_renderer()
            self.renderer = self._new_renderer()
            if self.viewport is not None:
                self.viewport.unmount()
                self.viewport = self._new_viewport()
                if self._mounted:
                    self.viewport.mount()
        if source_changed or hint_changed:
            return await self.refresh()
        return self.result

    def _new_renderer(self) -> DiagramRenderer:
        renderer = DiagramRenderer(self._backend, hint=self.hint)
        self._renderer_unsubscribe = renderer.subscribe(self._on_result)
        return renderer

    def _new_viewport(self) -> ViewportController:
        return ViewportController(
            f"{self.instance_id}-container",
            policy=self._policy,
            preference=self._preference,
            fullscreen_host=self._fullscreen_host,
        )

    def _release_renderer(self) -> None:
        if self._renderer_unsubscribe is not None:
            self._renderer_unsubscribe()
            self._renderer_unsubscribe = None
        self.renderer.dispose()

    def _on_result(self, result: DiagramRenderResult) -> None:
        if self.viewport is not None:
            self.viewport.attach(result)


__all__ = ["HINT_SCROLL_ZOOM_OFF", "HINT_SCROLL_ZOOM_ON", "DiagramComponent"]

"""Page-wide scroll-to-zoom preference shared by every diagram viewport.

Toggling the preference from any diagram changes wheel behaviour for all
diagrams on the page at once. Viewports subscribe when they mount and
unsubscribe when they unmount, so disposed viewports are never notified.

Example
-------
>>> from kb_pages.diagrams.preferences import ScrollZoomPreference
>>> preference = ScrollZoomPreference()
>>> seen = []
>>> unsubscribe = preference.subscribe(seen.append)
>>> preference.toggle()
False
>>> seen
[False]
>>> unsubscribe()
"""

from __future__ import annotations

import collections.abc as cabc

PreferenceListener = cabc.Callable[[bool], None]


class ScrollZoomPreference:
    """Observable boolean deciding whether the mouse wheel zooms diagrams."""

    def __init__(self, *, enabled: bool = True) -> None:
        self._enabled = enabled
        self._listeners: list[PreferenceListener] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def set(self, enabled: bool) -> None:  # noqa: FBT001
        """Store ``enabled`` and notify subscribers synchronously on change."""
        if enabled == self._enabled:
            return
        self._enabled = enabled
        for listener in list(self._listeners):
            listener(enabled)

    def toggle(self) -> bool:
        """Flip the preference and return the new value."""
        self.set(not self._enabled)
        return self._enabled

    def subscribe(self, listener: PreferenceListener) -> cabc.Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe


SCROLL_ZOOM_PREFERENCE = ScrollZoomPreference()
"""Process-wide instance used when a viewport is not given its own."""


__all__ = ["SCROLL_ZOOM_PREFERENCE", "ScrollZoomPreference"]

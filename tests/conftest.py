"""Shared fixtures for the kb_pages test suite.

The diagram pipeline talks to a rendering backend through the
``DiagramBackend`` protocol. ``FakeDiagramBackend`` stands in for the mermaid
CLI so every test runs without Node, a browser, or the network. It records
every render and discard call, can fail renders whose source contains a
marker, and can hold renders open until a test releases them to simulate
out-of-order completion.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

import pytest

from kb_pages.diagrams import FullscreenHost, ScrollZoomPreference
from kb_pages.errors import RenderError


@dc.dataclass(slots=True)
class HeldRender:
    """A render waiting for the test to decide its outcome."""

    render_id: str
    source: str
    future: asyncio.Future[str]


class FakeDiagramBackend:
    """In-memory diagram backend with scripted failures and manual release."""

    def __init__(self) -> None:
        self.rendered: list[tuple[str, str]] = []
        self.discarded: list[str] = []
        self.failures: dict[str, str] = {}
        self.errors: dict[str, Exception] = {}
        self.hold_renders = False
        self.held: list[HeldRender] = []

    def fail_when(self, marker: str, message: str) -> None:
        """Raise ``RenderError(message)`` for sources containing ``marker``."""
        self.failures[marker] = message

    def raise_when(self, marker: str, error: Exception) -> None:
        """Raise ``error`` itself for sources containing ``marker``."""
        self.errors[marker] = error

    async def render(self, render_id: str, source: str) -> str:
        self.rendered.append((render_id, source))
        if self.hold_renders:
            future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
            self.held.append(HeldRender(render_id, source, future))
            return await future
        for marker, message in self.failures.items():
            if marker in source:
                raise RenderError(message)
        for marker, error in self.errors.items():
            if marker in source:
                raise error
        return svg_for(render_id, source)

    def discard(self, prefix: str) -> None:
        self.discarded.append(prefix)

    def release(self, index: int) -> None:
        """Complete the held render at ``index`` successfully."""
        held = self.held[index]
        held.future.set_result(svg_for(held.render_id, held.source))


def svg_for(render_id: str, source: str) -> str:
    """Return the markup the fake backend produces for ``source``."""
    first_line = source.splitlines()[0] if source else ""
    return f'<svg id="{render_id}"><text>{first_line}</text></svg>'


async def settle() -> None:
    """Yield to the event loop until scheduled callbacks have run."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def backend() -> FakeDiagramBackend:
    """Return a fresh fake diagram backend."""
    return FakeDiagramBackend()


@pytest.fixture
def preference() -> ScrollZoomPreference:
    """Return a scroll-zoom preference isolated from the process-wide one."""
    return ScrollZoomPreference()


@pytest.fixture
def fullscreen_host() -> FullscreenHost:
    """Return a fullscreen host with no element in fullscreen."""
    return FullscreenHost()


@pytest.fixture
def page_payload() -> dict[str, typ.Any]:
    """Return a valid page in the bulk-input JSON shape."""
    return {
        "title": "Gameplay Attribute Sets",
        "slug": "gameplay-attribute-sets",
        "summary": "How **attribute sets** hold gameplay values.",
        "category": "core-systems",
        "tags": ["GAS", "Attributes"],
        "blocks": [
            {
                "id": "block-notes",
                "type": "notes",
                "content": "## Introduction\n\nAttribute sets own `FGameplayAttributeData`.",
                "title": "Overview",
            },
            {
                "id": "block-code",
                "type": "code",
                "content": "UPROPERTY()\nFGameplayAttributeData Health;",
                "language": "cpp",
            },
            {
                "id": "block-diagram",
                "type": "mermaid",
                "content": "flowchart TD\nA[Effect] --> B[Attribute]",
                "title": "Flow",
            },
            {
                "id": "block-table",
                "type": "table",
                "content": "Attribute,Default\nHealth,`100`\nMana,50",
            },
        ],
        "published": True,
    }

"""Behaviour tests for the page-wide scroll-to-zoom preference.

Two diagram components are mounted against the same ``ScrollZoomPreference``
and the fake diagram backend. Right-clicking one must change how the wheel
behaves over the other, and an unmounted diagram must stop listening.

Usage
-----
Run ``pytest tests/bdd/test_shared_scroll_zoom.py -v``.
"""

from __future__ import annotations

import asyncio
import typing as typ
from pathlib import Path

import pytest
from pytest_bdd import given, scenarios, then, when

from kb_pages.diagrams import DiagramComponent, ScrollZoomPreference
from kb_pages.diagrams.component import HINT_SCROLL_ZOOM_OFF

if typ.TYPE_CHECKING:
    from conftest import FakeDiagramBackend

FEATURE_FILE = (
    Path(__file__).resolve().parents[2] / "features" / "shared_scroll_zoom.feature"
)
scenarios(FEATURE_FILE)

ScenarioState = dict[str, typ.Any]


@pytest.fixture
def scenario_state() -> ScenarioState:
    """Return a mutable dict used to share scenario state across BDD steps."""
    return {}


def _component(scenario_state: ScenarioState, name: str) -> DiagramComponent:
    return typ.cast("DiagramComponent", scenario_state[name])


@given("two mounted diagrams on the same page")
def given_two_diagrams(
    scenario_state: ScenarioState, backend: FakeDiagramBackend
) -> None:
    """Mount and render two diagrams sharing one preference."""
    preference = ScrollZoomPreference()
    components = [
        DiagramComponent("flowchart TD\nA --> B", backend=backend, preference=preference)
        for _ in range(2)
    ]

    async def _render() -> None:
        for component in components:
            component.mount()
        await asyncio.gather(*(component.refresh() for component in components))

    asyncio.run(_render())
    scenario_state["preference"] = preference
    scenario_state["first"], scenario_state["second"] = components


@when("the author right-clicks the first diagram")
def when_right_click(scenario_state: ScenarioState) -> None:
    """Toggle the preference through the first diagram's context menu."""
    viewport = _component(scenario_state, "first").viewport
    assert viewport is not None, "interactive diagram should have a viewport"
    viewport.context_menu()


@when("the second diagram is unmounted")
def when_unmount_second(scenario_state: ScenarioState) -> None:
    """Unmount the second diagram."""
    _component(scenario_state, "second").unmount()


@then("the second diagram reports scroll zoom as disabled")
def then_second_disabled(scenario_state: ScenarioState) -> None:
    """Verify the toggle reached the other diagram."""
    second = _component(scenario_state, "second")
    assert second.viewport is not None, "second diagram should be interactive"
    assert not second.viewport.scroll_zoom_enabled, "preference did not propagate"
    assert second.hint_text == HINT_SCROLL_ZOOM_OFF, "hint should reflect the toggle"


@then("wheel input over the second diagram scrolls the page")
def then_wheel_scrolls(scenario_state: ScenarioState) -> None:
    """Verify the wheel no longer zooms the second diagram."""
    viewport = _component(scenario_state, "second").viewport
    assert viewport is not None, "second diagram should be interactive"
    assert not viewport.wheel(-120), "wheel should fall through to the page"
    assert viewport.zoom_label == "100%", "scale should be unchanged"


@then("the second diagram still reports scroll zoom as enabled")
def then_second_enabled(scenario_state: ScenarioState) -> None:
    """Verify an unmounted diagram ignores later preference changes."""
    preference = typ.cast("ScrollZoomPreference", scenario_state["preference"])
    viewport = _component(scenario_state, "second").viewport
    assert viewport is not None, "second diagram should be interactive"
    assert not preference.enabled, "the shared preference should be off"
    assert viewport.scroll_zoom_enabled, "unmounted diagram should not update"
    assert preference.subscriber_count == 1, "only the first diagram should listen"

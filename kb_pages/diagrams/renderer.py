"""Render mermaid diagram sources into SVG markup, one instance at a time.

A :class:`DiagramRenderer` represents one on-screen occurrence of a diagram.
Every call to :meth:`DiagramRenderer.render` receives a fresh, process-wide
unique render id because the backend keys its artifacts by that id; stale
artifacts from earlier attempts of the same instance are discarded before a
new attempt starts. Results of superseded attempts are dropped using a
per-instance sequence number, so a slow render can never overwrite the
outcome of a newer one.

Example
-------
>>> import asyncio
>>> from kb_pages.diagrams.renderer import DiagramRenderer
>>> renderer = DiagramRenderer(backend)  # doctest: +SKIP
>>> asyncio.run(renderer.render("flowchart TD\\nA-->B")).status  # doctest: +SKIP
<RenderStatus.READY: 'ready'>
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import dataclasses as dc
import enum
import itertools
import logging
import shutil
import tempfile
import time
import typing as typ
from pathlib import Path

import msgspec.json as msgspec_json

from kb_pages.errors import RenderError

from .validator import validate

if typ.TYPE_CHECKING:
    from kb_pages.config import DiagramSettings

logger = logging.getLogger(__name__)

_INSTANCE_COUNTER = itertools.count(1)
_RENDER_COUNTER = itertools.count(1)


class RenderStatus(enum.StrEnum):
    """Lifecycle states of a diagram render instance."""

    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dc.dataclass(frozen=True, slots=True)
class DiagramRenderResult:
    """Ephemeral outcome of the latest render attempt for one instance.

    Attributes
    ----------
    status : RenderStatus
        ``loading`` until the latest attempt settles.
    render_id : str | None
        Id used by the attempt that produced this result.
    svg_markup : str | None
        Backend output when ``status`` is ``ready``.
    error_message : str | None
        Message shown in the instance's error panel when ``status`` is
        ``error``.
    """

    status: RenderStatus
    render_id: str | None = None
    svg_markup: str | None = None
    error_message: str | None = None

    @property
    def ready(self) -> bool:
        return self.status is RenderStatus.READY


class DiagramBackend(typ.Protocol):
    """The diagram library collaborator used by :class:`DiagramRenderer`."""

    async def render(self, render_id: str, source: str) -> str:
        """Return SVG markup for ``source``.

        Backends raise :class:`RenderError` for diagram problems; any other
        exception is also reported as an error result for the instance.
        """
        ...

    def discard(self, prefix: str) -> None:
        """Drop artifacts whose render id starts with ``prefix``."""
        ...


Listener = cabc.Callable[[DiagramRenderResult], None]


def _new_instance_id(hint: str | None) -> str:
    return f"{hint or 'mermaid'}-{next(_INSTANCE_COUNTER)}"


class DiagramRenderer:
    """Render diagram sources for a single render instance."""

    def __init__(self, backend: DiagramBackend, *, hint: str | None = None) -> None:
        """Bind the renderer to ``backend`` and allocate a unique instance id.

        Parameters
        ----------
        backend : DiagramBackend
            Library wrapper producing SVG markup.
        hint : str, optional
            Caller-supplied label folded into the instance id (for example the
            owning block id). Two renderers with the same hint still receive
            distinct ids.
        """
        self.backend = backend
        self.hint = hint
        self.instance_id = _new_instance_id(hint)
        self.result = DiagramRenderResult(status=RenderStatus.LOADING)
        self._sequence = 0
        self._disposed = False
        self._listeners: list[Listener] = []

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: Listener) -> cabc.Callable[[], None]:
        """Register ``listener`` for result changes and return an unsubscriber."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def next_render_id(self) -> str:
        """Return a render id unique across every instance in the process."""
        stamp = time.time_ns() // 1_000_000
        return f"{self.instance_id}-r{next(_RENDER_COUNTER)}-{stamp}"

    async def render(self, source: str) -> DiagramRenderResult:
        """Render ``source`` and return the instance's current result.

        The returned value is the latest settled result for this instance; when
        a newer render was requested while this one was in flight, the newer
        request wins and this attempt's outcome is discarded.
        """
        self._sequence += 1
        sequence = self._sequence
        render_id = self.next_render_id()
        self.backend.discard(f"{self.instance_id}-r")
        self._publish(DiagramRenderResult(RenderStatus.LOADING, render_id=render_id))

        validation = validate(source)
        if not validation.ok:
            message = f"{validation.message} ({validation.reason})"
            outcome = DiagramRenderResult(
                RenderStatus.ERROR, render_id=render_id, error_message=message
            )
            return self._settle(sequence, outcome)

        try:
            svg = await self.backend.render(render_id, source.strip())
        except Exception as exc:  # noqa: BLE001 - backend failures settle as errors
            logger.warning("diagram render %s failed: %s", render_id, exc)
            outcome = DiagramRenderResult(
                RenderStatus.ERROR, render_id=render_id, error_message=str(exc)
            )
        else:
            outcome = DiagramRenderResult(
                RenderStatus.READY, render_id=render_id, svg_markup=svg
            )
        return self._settle(sequence, outcome)

    def dispose(self) -> None:
        """Stop publishing results; late renders resolve silently."""
        self._disposed = True
        self._listeners.clear()
        self.backend.discard(f"{self.instance_id}-r")

    def _settle(
        self, sequence: int, outcome: DiagramRenderResult
    ) -> DiagramRenderResult:
        if self._disposed or sequence != self._sequence:
            logger.debug(
                "discarding stale render %s for %s", outcome.render_id, self.instance_id
            )
            return self.result
        self._publish(outcome)
        return outcome

    def _publish(self, result: DiagramRenderResult) -> None:
        if self._disposed:
            return
        self.result = result
        for listener in list(self._listeners):
            listener(result)


class MermaidCliBackend:
    """Render diagrams with the mermaid CLI (``mmdc``) in a scratch directory."""

    def __init__(
        self, settings: DiagramSettings, *, work_dir: Path | None = None
    ) -> None:
        """Initialize the backend with diagram theming and an optional work dir.

        Parameters
        ----------
        settings : DiagramSettings
            Command name and mermaid configuration (theme, palette, flowchart
            spacing) written next to every render.
        work_dir : Path, optional
            Directory for source and SVG artifacts; a temporary directory is
            created lazily when omitted.
        """
        self.settings = settings
        self._work_dir = work_dir

    @property
    def work_dir(self) -> Path:
        if self._work_dir is None:
            self._work_dir = Path(tempfile.mkdtemp(prefix="kb-pages-diagrams-"))
        self._work_dir.mkdir(parents=True, exist_ok=True)
        return self._work_dir

    async def render(self, render_id: str, source: str) -> str:
        """Run ``mmdc`` for ``source`` and return the produced SVG markup."""
        executable = shutil.which(self.settings.command)
        if executable is None:
            msg = f"Mermaid CLI '{self.settings.command}' was not found on PATH"
            raise RenderError(msg)

        work = self.work_dir
        source_path = work / f"{render_id}.mmd"
        output_path = work / f"{render_id}.svg"
        config_path = work / f"{render_id}.config.json"
        try:
            source_path.write_text(source, encoding="utf-8")
            config_path.write_bytes(msgspec_json.encode(self.settings.mermaid_config()))
        except OSError as exc:
            msg = f"Failed to write diagram source for {render_id}: {exc}"
            raise RenderError(msg) from exc

        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                "--input",
                str(source_path),
                "--output",
                str(output_path),
                "--configFile",
                str(config_path),
                "--backgroundColor",
                "transparent",
                "--svgId",
                render_id,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            msg = f"Failed to start mermaid CLI: {exc}"
            raise RenderError(msg) from exc
        _stdout, stderr = await process.communicate()
        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            msg = detail or f"mermaid CLI exited with status {process.returncode}"
            raise RenderError(msg)
        try:
            return output_path.read_text(encoding="utf-8")
        except (OSError, ValueError) as exc:
            msg = f"Could not read mermaid CLI output for {render_id}: {exc}"
            raise RenderError(msg) from exc

    def discard(self, prefix: str) -> None:
        """Remove artifacts of earlier renders whose id starts with ``prefix``."""
        if self._work_dir is None or not self._work_dir.exists():
            return
        for path in self._work_dir.glob(f"{prefix}*"):
            path.unlink(missing_ok=True)


__all__ = [
    "DiagramBackend",
    "DiagramRenderResult",
    "DiagramRenderer",
    "MermaidCliBackend",
    "RenderStatus",
]

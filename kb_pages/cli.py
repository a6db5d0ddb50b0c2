"""Cyclopts CLI entrypoint for validating, rendering, and publishing pages.

The ``kb-pages`` console script defined here works on page JSON files in the
bulk-input shape: it validates them with itemised errors, renders them to
static HTML, exports them as markdown, and publishes them to the custom-pages
service. Every option can also be provided through a ``KB_`` environment
variable.

Examples
--------
Validate a page before publishing it:

>>> from kb_pages.cli import app
>>> app(["validate", "pages/attribute-sets.json"])  # doctest: +SKIP

Render a page with diagrams drawn in the browser:

>>> app(
...     ["render", "pages/attribute-sets.json", "--client-side-diagrams"]
... )  # doctest: +SKIP
"""

from __future__ import annotations

import asyncio
import logging
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .composer import PageComposer
from .config import SiteConfig, SiteConfigError, resolve_site_config
from .documents import decode_page_json
from .errors import BlockValidationError, StoreError, ValidationError
from .generator import PageGenerator, PagesIndexBuilder, render_bundled_html
from .store import HttpPageStore

app = App(name="kb-pages", config=cyclopts.config.Env("KB_", command=False))  # type: ignore[unknown-argument]

ConfigOption = typ.Annotated[
    Path | None,
    Parameter(help="Path to the kb.yaml configuration", env_var="KB_CONFIG"),
]
VerboseOption = typ.Annotated[
    bool, Parameter(help="Log debug output to stderr", env_var="KB_VERBOSE")
]
ApiUrlOption = typ.Annotated[
    str | None,
    Parameter(help="Override the page service URL", env_var="KB_API_URL"),
]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:
            return str(path)
    return str(path)


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> typ.NoReturn:
    print(f"error: {message}", file=sys.stderr)
    raise SystemExit(1)


def _load_config(config: Path | None) -> SiteConfig:
    try:
        return resolve_site_config(config)
    except (FileNotFoundError, TypeError, SiteConfigError) as exc:
        _fail(str(exc))


def _store(site_config: SiteConfig, api_url: str | None) -> HttpPageStore:
    return HttpPageStore(
        api_url or site_config.api.base_url, timeout=site_config.api.timeout
    )


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        _fail(f"cannot read '{path}': {exc.strerror or exc}")


def _load_composer(path: Path) -> PageComposer:
    """Import ``path`` into a composer, printing every problem on failure."""
    composer = PageComposer()
    try:
        composer.import_json(_read(path))
    except BlockValidationError as exc:
        for issue in exc.issues:
            print(f"{path}: {issue}", file=sys.stderr)
        raise SystemExit(1) from exc
    except ValidationError as exc:
        _fail(f"{path}: {exc}")
    return composer


@app.command(help="Validate a page JSON file and list every problem found.")
def validate(
    path: Path,
    *,
    verbose: VerboseOption = False,
) -> None:
    """Validate ``path`` as bulk page input.

    Parameters
    ----------
    path : Path
        Page JSON file in the bulk-input shape.
    verbose : bool, optional
        Enable debug logging.

    Raises
    ------
    SystemExit
        With status 1 when the page is invalid; each block problem is printed
        on its own line.
    """
    _configure_logging(verbose=verbose)
    composer = _load_composer(path)
    print(f"ok {composer.slug} ({len(composer.blocks)} blocks)")


@app.command(help="Render a page JSON file to static HTML.")
def render(
    path: Path,
    *,
    config: ConfigOption = None,
    output_dir: typ.Annotated[
        Path | None,
        Parameter(help="Override the output folder", env_var="KB_OUTPUT_DIR"),
    ] = None,
    client_side_diagrams: typ.Annotated[
        bool,
        Parameter(
            help="Leave diagrams to mermaid.js in the browser",
            env_var="KB_CLIENT_SIDE_DIAGRAMS",
        ),
    ] = False,
    verbose: VerboseOption = False,
) -> None:
    """Render ``path`` into ``<output_dir>/<slug>.html``.

    Diagrams that fail to render become error panels in the page; the command
    still succeeds so the rest of the page can be reviewed.
    """
    _configure_logging(verbose=verbose)
    site_config = _load_config(config)
    try:
        page = decode_page_json(_read(path))
    except ValidationError as exc:
        _fail(f"{path}: {exc}")
    generator = PageGenerator(
        site_config,
        client_side_diagrams=client_side_diagrams,
        output_dir=output_dir,
    )
    written = asyncio.run(generator.write_page(page))
    print(f"wrote {_format_path(written)}")


@app.command(help="Validate a page JSON file and create it on the page service.")
def publish(
    path: Path,
    *,
    config: ConfigOption = None,
    api_url: ApiUrlOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Submit ``path`` through the same validation the composer applies."""
    _configure_logging(verbose=verbose)
    site_config = _load_config(config)
    composer = _load_composer(path)
    store = _store(site_config, api_url)
    try:
        created = asyncio.run(composer.submit(store))
    except ValidationError as exc:
        _fail(str(exc))
    except StoreError as exc:
        _fail(f"could not publish '{composer.slug}': {exc}")
    print(f"published {created.slug} ({created.id})")


@app.command(name="list", help="List pages stored on the page service.")
def list_pages(
    *,
    all_pages: typ.Annotated[
        bool,
        Parameter(name="--all", help="Include unpublished pages", env_var="KB_ALL"),
    ] = False,
    write_index: typ.Annotated[
        bool,
        Parameter(help="Also write index.html for the listed pages"),
    ] = False,
    config: ConfigOption = None,
    api_url: ApiUrlOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Print one ``slug<TAB>title`` line per page, newest first."""
    _configure_logging(verbose=verbose)
    site_config = _load_config(config)
    store = _store(site_config, api_url)
    try:
        pages = asyncio.run(store.list_pages(include_unpublished=all_pages))
    except StoreError as exc:
        _fail(f"could not list pages: {exc}")
    for page in pages:
        marker = "" if page.published else " (draft)"
        print(f"{page.slug}\t{page.title}{marker}")
    if write_index:
        index_path = PagesIndexBuilder(site_config).write(pages)
        print(f"wrote {_format_path(index_path)}")


@app.command(help="Print the markdown export of a page JSON file.")
def export_markdown(
    path: Path,
    *,
    verbose: VerboseOption = False,
) -> None:
    _configure_logging(verbose=verbose)
    composer = _load_composer(path)
    sys.stdout.write(composer.to_markdown())


@app.command(help="Sanitize an external HTML document and wrap it in the site page.")
def render_html(
    path: Path,
    *,
    title: typ.Annotated[str, Parameter(help="Page heading")],
    config: ConfigOption = None,
    output: typ.Annotated[
        Path | None, Parameter(help="Destination file", env_var="KB_OUTPUT")
    ] = None,
    verbose: VerboseOption = False,
) -> None:
    """Write a sanitized copy of ``path`` inside the site template."""
    _configure_logging(verbose=verbose)
    site_config = _load_config(config)
    if not path.exists():
        _fail(f"'{path}' not found")
    written = render_bundled_html(path, site_config, title=title, output_path=output)
    print(f"wrote {_format_path(written)}")


def main() -> None:
    """Invoke the Cyclopts application that powers the ``kb-pages`` command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()

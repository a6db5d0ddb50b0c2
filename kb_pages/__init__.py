"""Author, validate, and render knowledge-base pages.

This package turns typed content blocks (code, markdown notes, mermaid
diagrams, and CSV tables) into themed HTML, and exposes the CLI entry points
used by the ``kb-pages`` console script.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from kb_pages import app
>>> app(["validate", "pages/attribute-sets.json"])  # doctest: +SKIP
ok attribute-sets (3 blocks)
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]

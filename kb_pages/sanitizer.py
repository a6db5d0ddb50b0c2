"""Sanitize HTML that comes from outside the authoring flow.

Bundled documents and other externally sourced HTML go through
:func:`sanitize_html` before they are placed in a rendered page. The allow-list
is bleach's default safe set widened with ordinary document structure, the
``style`` tag, and the ``target`` attribute. Markdown written by authors is
trusted and does not pass through here.
"""

from __future__ import annotations

import bleach

DOCUMENT_TAGS = frozenset(
    {
        "br",
        "div",
        "figure",
        "figcaption",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "hr",
        "img",
        "p",
        "pre",
        "section",
        "span",
        "table",
        "tbody",
        "td",
        "th",
        "thead",
        "tr",
    }
)
ALLOWED_TAGS = frozenset(bleach.sanitizer.ALLOWED_TAGS) | DOCUMENT_TAGS | {"style"}
ALLOWED_ATTRIBUTES: dict[str, list[str]] = {
    **{tag: list(attrs) for tag, attrs in bleach.sanitizer.ALLOWED_ATTRIBUTES.items()},
    "*": ["class", "id", "target"],
    "a": ["href", "title", "rel", "target"],
    "img": ["src", "alt", "title", "width", "height"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan"],
}


def sanitize_html(html: str) -> str:
    """Return ``html`` with disallowed tags, attributes, and protocols removed.

    Parameters
    ----------
    html : str
        Untrusted markup.

    Returns
    -------
    str
        Markup safe to inject into a page. Disallowed elements are stripped
        and their text kept as escaped text; comments are dropped.
    """
    cleaner = bleach.Cleaner(
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=bleach.sanitizer.ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )
    return cleaner.clean(html)


__all__ = ["ALLOWED_ATTRIBUTES", "ALLOWED_TAGS", "sanitize_html"]
